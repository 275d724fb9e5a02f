"""
Time sources.

Expiry is never scheduled: every check compares the clock to the
auction's end_time at call time. Components take a Clock so demos and
tests can drive time by hand.
"""

import time
from typing import Callable

Clock = Callable[[], int]


def system_clock() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: int):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Time cannot move backward")
        self.now += seconds
        return self.now

    def set(self, timestamp: int) -> None:
        if timestamp < self.now:
            raise ValueError("Time cannot move backward")
        self.now = timestamp
