"""
Duel engine.

The caller-facing surface: wires the registry to the state machine and
logs every accepted and rejected operation. Each mutating call is one
atomic read-modify-write against the registry.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from . import state_machine
from .exceptions import ConfigurationError, DuelError, TransientStoreError
from .interfaces import DuelStore
from .logging_config import get_logger
from .models import Duel
from .registry import DuelListener, DuelRegistry
from .resolver import TieBreakPolicy


@dataclass
class EngineConfig:
    """Configuration for a duel engine."""

    tie_break: TieBreakPolicy = TieBreakPolicy.POWER_THEN_SEED
    lock_timeout: float = 5.0  # seconds to wait for a per-duel lock
    poll_interval: float = 1.0  # seconds between watcher polls

    def __post_init__(self):
        """Validate configuration."""
        self.tie_break = TieBreakPolicy(self.tie_break)
        if self.lock_timeout <= 0:
            raise ConfigurationError(f"lock_timeout must be positive, got {self.lock_timeout}")
        if self.poll_interval <= 0:
            raise ConfigurationError(f"poll_interval must be positive, got {self.poll_interval}")


class DuelEngine:
    """Commit-reveal duel engine."""

    def __init__(self, store: DuelStore, config: EngineConfig | None = None):
        """Initialize engine over a persistence collaborator."""
        self.config: EngineConfig = config or EngineConfig()
        self.registry: DuelRegistry = DuelRegistry(store, lock_timeout=self.config.lock_timeout)
        self.logger: Logger = get_logger("engine")

    def _apply(self, operation: str, duel_id: str, transition: Callable[[Duel], Duel]) -> Duel:
        try:
            duel = self.registry.update(duel_id, transition)
        except DuelError as e:
            self.logger.warning(f"Rejected {operation} on {duel_id}: {type(e).__name__}: {e}")
            raise
        except TransientStoreError as e:
            self.logger.error(f"Store failure during {operation} on {duel_id}: {e}")
            raise
        self.logger.info(f"{operation} on {duel_id} accepted, status={duel.status.value}")
        return duel

    def create_duel(self, creator: str, stake: int) -> Duel:
        try:
            return self.registry.create(creator, stake)
        except DuelError as e:
            self.logger.warning(f"Rejected create_duel by {creator}: {type(e).__name__}: {e}")
            raise

    def join_duel(self, duel_id: str, opponent: str) -> Duel:
        return self._apply("join_duel", duel_id, lambda d: state_machine.join(d, opponent))

    def submit_commitment(self, duel_id: str, party: str, commitment: str) -> Duel:
        return self._apply(
            "submit_commitment", duel_id, lambda d: state_machine.submit_commitment(d, party, commitment)
        )

    def submit_reveal(self, duel_id: str, party: str, allocation: Sequence[int], secret: str) -> Duel:
        return self._apply(
            "submit_reveal", duel_id, lambda d: state_machine.submit_reveal(d, party, allocation, secret)
        )

    def advance_round(self, duel_id: str) -> Duel:
        """Resolve the next round of a duel in showdown."""
        duel = self._apply(
            "advance_round", duel_id, lambda d: state_machine.reveal_next_round(d, self.config.tie_break)
        )
        if duel.winner is not None:
            self.logger.info(f"Duel {duel_id} completed, winner={duel.winner}")
        return duel

    def play_out(self, duel_id: str) -> Duel:
        """Advance rounds until the duel completes."""
        duel = self.get_duel(duel_id)
        while duel.winner is None:
            duel = self.advance_round(duel_id)
        return duel

    def get_duel(self, duel_id: str) -> Duel:
        return self.registry.get(duel_id)

    def list_open_duels(self) -> list[Duel]:
        return self.registry.list_open()

    def list_duels_for(self, party: str) -> list[Duel]:
        return self.registry.list_for(party)

    def list_all_duels(self) -> list[Duel]:
        return self.registry.list_all()

    def delete_duel(self, duel_id: str) -> None:
        """Administrative removal, e.g. by an external stale-duel watchdog."""
        self.registry.delete(duel_id)

    def subscribe(self, listener: DuelListener, duel_id: str | None = None) -> Callable[[], None]:
        return self.registry.subscribe(listener, duel_id)

    def close(self) -> None:
        """Flush and close the backing store."""
        self.registry.store.close()
