"""
Duel watcher.

Lets one party wait for the other to act. Polls the engine every
poll_interval seconds and also wakes early on change-feed events, so a
write becomes visible no later than one interval after it is persisted.
"""

import threading
import time
from collections.abc import Callable

from .engine import DuelEngine
from .logging_config import get_logger
from .models import Duel, DuelChange, DuelStatus

logger = get_logger("watcher")


class DuelWatcher:
    """Blocks until a duel reaches a wanted state or a timeout passes."""

    def __init__(self, engine: DuelEngine, poll_interval: float | None = None):
        self.engine = engine
        self.poll_interval = poll_interval if poll_interval is not None else engine.config.poll_interval
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")

    def wait_for(self, duel_id: str, predicate: Callable[[Duel], bool], timeout: float) -> Duel:
        """
        Return the first snapshot satisfying predicate.

        Raises:
            NotFoundError: The duel does not exist (or was deleted)
            TimeoutError: The predicate did not hold within timeout seconds
        """
        changed = threading.Event()

        def on_change(_: DuelChange) -> None:
            changed.set()

        unsubscribe = self.engine.subscribe(on_change, duel_id)
        deadline = time.monotonic() + timeout
        polls = 0
        try:
            while True:
                changed.clear()
                duel = self.engine.get_duel(duel_id)
                polls += 1
                if predicate(duel):
                    logger.debug(f"Duel {duel_id} condition met after {polls} polls")
                    return duel
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError(
                        f"Duel {duel_id} still {duel.status.value} after {timeout}s"
                    )
                _ = changed.wait(min(self.poll_interval, remaining))
        finally:
            unsubscribe()

    def wait_for_status(self, duel_id: str, status: DuelStatus, timeout: float) -> Duel:
        """Wait until the duel is in status, or has already moved past it."""
        order = list(DuelStatus)
        target = order.index(status)
        return self.wait_for(duel_id, lambda d: order.index(d.status) >= target, timeout)
