"""
Duel registry.

Owns the canonical Duel records. Every mutation is a read-modify-write under
a per-duel lock, so two parties acting on the same duel at once never
clobber each other's fields. Different duels never contend.
"""

import secrets
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from . import state_machine
from .exceptions import LockTimeoutError, NotFoundError, StaleSnapshotError, ValidationError
from .interfaces import DuelStore, StoreEvent
from .logging_config import get_logger
from .models import Duel, DuelChange, DuelStatus

DuelListener = Callable[[DuelChange], None]


def new_duel_id() -> str:
    """Return a fresh duel id: millisecond timestamp plus random suffix."""
    return f"duel_{int(time.time() * 1000)}_{secrets.token_hex(3)}"


class DuelRegistry:
    """Keyed collection of duels backed by a DuelStore."""

    def __init__(self, store: DuelStore, lock_timeout: float = 5.0):
        """
        Initialize registry.

        Args:
            store: Persistence collaborator
            lock_timeout: Seconds to wait for a per-duel lock before giving up
        """
        self.logger: Logger = get_logger("registry")
        self.store: DuelStore = store
        self.lock_timeout: float = lock_timeout

        self._locks = dict[str, threading.RLock]()
        self._lock_users = dict[str, int]()
        self._guard: threading.Lock = threading.Lock()
        self._sequence: int = self._max_sequence()
        self.logger.info(f"Duel registry ready (next sequence {self._sequence + 1})")

    def _max_sequence(self) -> int:
        highest = 0
        for duel in self._load_all():
            highest = max(highest, duel.sequence)
        return highest

    def _next_sequence(self) -> int:
        with self._guard:
            self._sequence += 1
            return self._sequence

    def _checkout_lock(self, duel_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(duel_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[duel_id] = lock
            self._lock_users[duel_id] = self._lock_users.get(duel_id, 0) + 1
            return lock

    def _return_lock(self, duel_id: str) -> None:
        with self._guard:
            users = self._lock_users[duel_id] - 1
            if users:
                self._lock_users[duel_id] = users
            else:
                # Nobody holds or waits on it any more
                del self._lock_users[duel_id]
                del self._locks[duel_id]

    @contextmanager
    def locked(self, duel_id: str) -> Iterator[None]:
        """Hold the per-duel write lock (reentrant for change-feed listeners)."""
        lock = self._checkout_lock(duel_id)
        try:
            if not lock.acquire(timeout=self.lock_timeout):
                raise LockTimeoutError(f"Timed out after {self.lock_timeout}s waiting for duel {duel_id}")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._return_lock(duel_id)

    def create(self, creator: str, stake: int) -> Duel:
        """Open a new duel and persist it."""
        duel_id = new_duel_id()
        while self.store.get(duel_id) is not None:
            duel_id = new_duel_id()

        duel = self.save(state_machine.create(duel_id, creator, stake, sequence=self._next_sequence()))
        self.logger.info(f"Created duel {duel.id} by {creator} for stake {stake}")
        return duel

    def find(self, duel_id: str) -> Duel | None:
        """Return the current snapshot, or None if unknown."""
        record = self.store.get(duel_id)
        if record is None:
            return None
        return Duel.from_dict(record)

    def get(self, duel_id: str) -> Duel:
        """Return the current snapshot or raise NotFoundError."""
        duel = self.find(duel_id)
        if duel is None:
            raise NotFoundError(duel_id)
        return duel

    def save(self, duel: Duel, base: Duel | None = None) -> Duel:
        """
        Persist a snapshot as a single atomic record write.

        The write is a compare-and-swap: the stored record must still equal
        base, the snapshot duel was derived from. Without a base the duel
        must not be stored yet.

        Raises:
            StaleSnapshotError: If the stored record no longer matches base
        """
        if base is not None and base.id != duel.id:
            raise ValueError(f"base snapshot {base.id} does not match duel {duel.id}")
        with self.locked(duel.id):
            current = self.find(duel.id)
            if current != base:
                if base is None:
                    raise StaleSnapshotError(f"Duel {duel.id} already exists")
                raise StaleSnapshotError(f"Duel {duel.id} changed since the saved snapshot was read")
            self.store.set(duel.id, duel.to_dict())
        self.logger.debug(f"Saved duel {duel.id} ({duel.status.value})")
        return duel

    def update(self, duel_id: str, transition: Callable[[Duel], Duel]) -> Duel:
        """
        Apply a transition to the latest snapshot and persist the result.

        The read, the transition and the write all happen under the duel's
        lock. If the transition raises, nothing is written.
        """
        with self.locked(duel_id):
            current = self.get(duel_id)
            updated = transition(current)
            self.store.set(duel_id, updated.to_dict())
        return updated

    def delete(self, duel_id: str) -> None:
        """Administrative removal of a duel."""
        with self.locked(duel_id):
            if not self.store.delete(duel_id):
                raise NotFoundError(duel_id)
        self.logger.info(f"Deleted duel {duel_id}")

    def _load_all(self) -> Iterator[Duel]:
        for key in self.store.keys():
            try:
                record = self.store.get(key)
                if record is None:
                    continue
                yield Duel.from_dict(record)
            except ValidationError as e:
                self.logger.warning(f"Skipping unreadable duel {key}: {e}")
                continue

    @staticmethod
    def _newest_first(duels: list[Duel]) -> list[Duel]:
        return sorted(duels, key=lambda d: (d.created_at, d.sequence, d.id), reverse=True)

    def list_all(self) -> list[Duel]:
        return self._newest_first(list(self._load_all()))

    def list_open(self) -> list[Duel]:
        """Duels still waiting for an opponent, most recent first."""
        return self._newest_first([d for d in self._load_all() if d.status == DuelStatus.WAITING])

    def list_for(self, party: str) -> list[Duel]:
        """Duels where party is creator or opponent, most recent first."""
        return self._newest_first([d for d in self._load_all() if d.side_of(party) is not None])

    def subscribe(self, listener: DuelListener, duel_id: str | None = None) -> Callable[[], None]:
        """
        Receive a DuelChange after every persisted write.

        Args:
            listener: Called with each change
            duel_id: Only deliver changes for this duel (all duels if None)

        Returns:
            Function that cancels the subscription
        """

        def on_event(event: StoreEvent) -> None:
            if duel_id is not None and event["key"] != duel_id:
                return
            if event["kind"] == "delete" or event["record"] is None:
                listener(DuelChange(kind="deleted", duel_id=event["key"]))
                return
            listener(DuelChange(kind="saved", duel_id=event["key"], duel=Duel.from_dict(event["record"])))

        return self.store.subscribe(on_event)
