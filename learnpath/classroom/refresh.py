"""
ScheduledRefresh - Periodic refresh owned by the consumer.

The engine has no timers. A consumer that wants periodically refreshed
progress (a dashboard, a watch loop) holds a ScheduledRefresh and calls
tick() from its own loop; the clock is injected.
"""

import time
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class ScheduledRefresh(Generic[T]):
    """Run `callback` at most once per `interval` seconds when ticked."""

    def __init__(
        self,
        callback: Callable[[], T],
        interval: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.callback = callback
        self.interval = interval
        self.clock = clock
        self._last_run: Optional[float] = None
        self.last_value: Optional[T] = None

    def is_due(self) -> bool:
        return self._last_run is None or self.clock() - self._last_run >= self.interval

    def tick(self) -> bool:
        """Run the callback if due. Returns True if it ran."""
        if not self.is_due():
            return False
        self.refresh_now()
        return True

    def refresh_now(self) -> T:
        self._last_run = self.clock()
        self.last_value = self.callback()
        return self.last_value

    def seconds_until_due(self) -> float:
        if self._last_run is None:
            return 0.0
        return max(0.0, self.interval - (self.clock() - self._last_run))
