"""Run-wide allocation of logical process ids.

A downstream checker assumes the operations of one process are totally
ordered in real time. A worker whose operation ended ambiguously (``info``)
can no longer promise that: the operation may still take effect at any later
point. So the worker abandons the process and continues under a freshly
allocated id; the ambiguous record stays the last one of the old process.
"""

from __future__ import annotations

import threading


class ProcessLedger:
    """Shared, strictly increasing process id counter.

    The only mutation is :meth:`next_process`, an increment-and-fetch under
    a lock, so no id is ever handed out twice.
    """

    def __init__(self, origin: int = 0):
        self.origin = origin
        self._last = origin
        self._lock = threading.Lock()

    def next_process(self) -> int:
        with self._lock:
            self._last += 1
            return self._last

    @property
    def allocated(self) -> int:
        """Number of ids handed out so far."""
        with self._lock:
            return self._last - self.origin

    def __repr__(self):
        return f"ProcessLedger(origin={self.origin}, allocated={self.allocated})"
