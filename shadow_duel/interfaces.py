"""
Abstract base classes for the engine's external collaborators.

All interfaces are synchronous; implementations must be safe to call from
several threads at once.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Any, TypedDict

from .allocation import Allocation

DuelRecord = dict[str, Any]


class StoreEvent(TypedDict):
    """Change notification emitted by a DuelStore."""
    kind: str  # "set" or "delete"
    key: str
    record: DuelRecord | None


StoreListener = Callable[[StoreEvent], None]


class DuelStore(ABC):
    """
    Keyed persistence for duel records.

    Contract: a set() on a key is visible to the next get() on the same key.
    There is no cross-key transaction.
    """

    @abstractmethod
    def get(self, key: str) -> DuelRecord | None:
        """Return the record stored under key, or None."""
        pass

    @abstractmethod
    def set(self, key: str, record: DuelRecord) -> None:
        """Atomically replace the record stored under key."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove key. Returns True if something was removed."""
        pass

    @abstractmethod
    def keys(self) -> Iterable[str]:
        """Return all stored keys."""
        pass

    @abstractmethod
    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unregisters it."""
        pass

    def flush(self) -> None:
        """Push buffered writes to durable media. No-op for in-memory stores."""
        return None

    def close(self) -> None:
        """Release resources. No-op for in-memory stores."""
        return None


class SecretStore(ABC):
    """
    Private, per-party mapping from duel id to the committed pair.

    Lives on the client; the engine never sees it.
    """

    @abstractmethod
    def put(self, duel_id: str, allocation: Allocation, secret: str) -> None:
        """Remember the allocation and secret committed for a duel."""
        pass

    @abstractmethod
    def get(self, duel_id: str) -> tuple[Allocation, str] | None:
        """Return the stored (allocation, secret) for a duel, or None."""
        pass

    @abstractmethod
    def discard(self, duel_id: str) -> None:
        """Forget a duel's secret."""
        pass
