"""
bosbase_sdk.tier1_runtime.clock
────────────────────────────────
Mockable epoch clock. Token expiry checks read "now" from here so tests can
pin the exact second a token expires.
"""
from __future__ import annotations

import time
from typing import Callable


class Clock:
    """Source of Unix time. Pass *time_fn* to control it."""

    def __init__(self, time_fn: Callable[[], float] | None = None) -> None:
        self._time_fn = time_fn or time.time

    def timestamp(self) -> float:
        return self._time_fn()

    def epoch_seconds(self) -> int:
        """Whole seconds since the epoch, as carried by an ``exp`` claim."""
        return int(self._time_fn())

    @classmethod
    def frozen(cls, epoch_seconds: float) -> "Clock":
        return cls(time_fn=lambda: epoch_seconds)


_system_clock = Clock()


def system_clock() -> Clock:
    return _system_clock


__all__ = ["Clock", "system_clock"]
