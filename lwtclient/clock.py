"""Monotonic time source and the run-wide corrected time base.

Every worker reads the process-local monotonic clock directly; the readings
are made comparable by adding one offset fixed at program start::

    base = start_time - linear_time_nanos()      # once
    corrected = base + linear_time_nanos()       # per record

so the first corrected reading of a run is roughly ``start_time`` and no
shared counter is touched on the hot path.
"""

from __future__ import annotations

import time


def linear_time_nanos() -> int:
    """A linear time source in nanoseconds (monotonic, not wall clock)."""
    return time.monotonic_ns()


class TimeBase:
    """Fixed origin for corrected timestamps.

    Args:
        start_time: relative time, in nanoseconds, the run should start at
        clock: monotonic nanosecond source; replaceable in tests
    """

    def __init__(self, start_time: int = 0, *, clock=linear_time_nanos):
        self.start_time = start_time
        self._clock = clock
        self.base = start_time - clock()

    def corrected_time(self) -> int:
        return self.base + self._clock()

    __call__ = corrected_time

    def __repr__(self):
        return f"TimeBase(start_time={self.start_time}, base={self.base})"
