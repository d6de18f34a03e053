"""
Listener bookkeeping shared by the DuelStore implementations.
"""

import threading
from collections.abc import Callable

from ..interfaces import StoreEvent, StoreListener
from ..logging_config import get_logger

logger = get_logger("store_feed")


class ChangeFeed:
    """Thread-safe list of store listeners."""

    def __init__(self) -> None:
        self._listeners = list[StoreListener]()
        self._lock: threading.Lock = threading.Lock()

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: StoreEvent) -> None:
        """Deliver an event to every listener. A failing listener does not stop the rest."""
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Store listener failed for {event['key']}: {e}")
