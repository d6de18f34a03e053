"""
In-memory duel store.

A thread-safe dict behind the DuelStore interface. Records are deep-copied
in and out so callers never share mutable state with the store.
"""

import copy
import threading
from collections.abc import Callable, Iterable

from typing_extensions import override

from ..interfaces import DuelRecord, DuelStore, StoreListener
from ..logging_config import get_logger
from .feed import ChangeFeed

logger = get_logger("memory_store")


class MemoryDuelStore(DuelStore):
    """Process-local DuelStore. Nothing survives the process."""

    def __init__(self) -> None:
        self._records = dict[str, DuelRecord]()
        self._feed: ChangeFeed = ChangeFeed()
        self._lock: threading.Lock = threading.Lock()

    @override
    def get(self, key: str) -> DuelRecord | None:
        with self._lock:
            record = self._records.get(key)
            return copy.deepcopy(record) if record is not None else None

    @override
    def set(self, key: str, record: DuelRecord) -> None:
        stored = copy.deepcopy(record)
        with self._lock:
            self._records[key] = stored
        logger.debug(f"Stored record {key}")
        self._feed.publish({"kind": "set", "key": key, "record": copy.deepcopy(stored)})

    @override
    def delete(self, key: str) -> bool:
        with self._lock:
            removed = self._records.pop(key, None) is not None
        if removed:
            logger.debug(f"Deleted record {key}")
            self._feed.publish({"kind": "delete", "key": key, "record": None})
        return removed

    @override
    def keys(self) -> Iterable[str]:
        with self._lock:
            return list(self._records.keys())

    @override
    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        return self._feed.subscribe(listener)
