"""Whole-second ticks from a monotonic clock.

The live loop polls far more often than once a second; TickSource turns the
monotonic reading into the number of whole seconds that have passed since the
last tick it emitted, carrying the remainder so no second is lost or counted
twice. All time values are float seconds from time.monotonic().
"""

from __future__ import annotations

TICK_SECONDS = 1.0

# A gap longer than this (suspend, debugger) is not replayed as ticks.
MAX_CATCH_UP_SECONDS = 10 * 60


class TickSource:
    def __init__(self, now_mono: float):
        self._anchor = now_mono

    def due(self, now_mono: float) -> int:
        """Number of whole ticks elapsed since the last call that returned ticks."""
        elapsed = now_mono - self._anchor
        if elapsed < TICK_SECONDS:
            return 0

        ticks = int(elapsed // TICK_SECONDS)
        if ticks > MAX_CATCH_UP_SECONDS:
            self._anchor = now_mono
            return 0

        self._anchor += ticks * TICK_SECONDS
        return ticks

    def reset(self, now_mono: float) -> None:
        self._anchor = now_mono