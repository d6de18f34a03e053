"""
Storage implementations.

Provides implementations of the DuelStore and SecretStore interfaces.

Available implementations:
- MemoryDuelStore: In-process map, for tests and single-process use
- JSONDuelStore: One JSON file per duel plus an append-only change journal
- MemorySecretStore / JSONSecretStore: Client-side secret keeping
"""

from .json_store import JSONDuelStore
from .memory_store import MemoryDuelStore
from .secret_store import JSONSecretStore, MemorySecretStore

__all__ = ["JSONDuelStore", "MemoryDuelStore", "JSONSecretStore", "MemorySecretStore"]
