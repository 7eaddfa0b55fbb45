"""Clock sources used to evaluate timing windows."""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> int:
        """Current time in whole seconds."""
        ...


class SystemClock:
    """Wall clock, truncated to seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: int = 0):
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        self._now = timestamp

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("clock cannot move backwards")
        self._now += seconds
        return self._now
