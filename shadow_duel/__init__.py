"""
Shadow Duel - Commit-Reveal Duel Engine

Two parties secretly split a fixed budget of power across three rounds,
commit to the split with a hash, then reveal and resolve round by round.
"""

from .models import Duel, DuelStatus, Reveal, RoundOutcome, RoundResult, Side
from .interfaces import DuelStore, SecretStore
from .engine import DuelEngine, EngineConfig
from .registry import DuelRegistry
from .resolver import TieBreakPolicy
from .client import DuelClient
from .watcher import DuelWatcher

__version__ = "0.1.0"
__all__ = [
    "Duel",
    "DuelStatus",
    "Reveal",
    "RoundOutcome",
    "RoundResult",
    "Side",
    "DuelStore",
    "SecretStore",
    "DuelEngine",
    "EngineConfig",
    "DuelRegistry",
    "TieBreakPolicy",
    "DuelClient",
    "DuelWatcher",
]
