"""Minimum-interval limiter for the version auto-responder."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

Clock = Callable[[], float]


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class FloodGuard:
    """Allow at most one reply per `min_interval_ms`.

    Every query moves the stamp forward, suppressed or not, so a steady
    stream spaced under the interval is never answered. A zero interval
    disables suppression but the stamp is still tracked.
    """

    def __init__(self, min_interval_ms: float = 100, clock: Optional[Clock] = None) -> None:
        self.min_interval_ms = min_interval_ms
        self._clock = clock or monotonic_ms
        self._last_stamp: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def last_stamp(self) -> Optional[float]:
        return self._last_stamp

    def allow(self) -> bool:
        with self._lock:
            now = self._clock()
            last, self._last_stamp = self._last_stamp, now
            if last is None or self.min_interval_ms <= 0:
                return True
            return now - last >= self.min_interval_ms
