"""
Clock collaborators.

The engine reads "now" as integer unix seconds through a zero-argument
callable and never mutates it. `SystemClock` is the default; `ManualClock`
drives tests and scenario replays.
"""

from __future__ import annotations

import time


class SystemClock:
    def __call__(self) -> int:
        return int(time.time())


class ManualClock:
    def __init__(self, start: int = 1_700_000_000) -> None:
        if int(start) < 0:
            raise ValueError("start must be >= 0")
        self.now = int(start)

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        if int(seconds) < 0:
            raise ValueError("clock cannot move backwards")
        self.now += int(seconds)
        return self.now

    def set(self, ts: int) -> int:
        if int(ts) < self.now:
            raise ValueError("clock cannot move backwards")
        self.now = int(ts)
        return self.now


__all__ = ["ManualClock", "SystemClock"]
