"""In-process linearizable register table.

Every operation runs under one lock, so the table is trivially
linearizable. Useful for exercising the workload engine without a cluster
(``lwtclient --backend memory``) and as the test suite's store.
"""

from __future__ import annotations

import threading


class MemoryStore:
    """Register table shared by all sessions opened from it."""

    def __init__(self, initial: dict[int, int] | None = None):
        self._registers: dict[int, int] = dict(initial or {})
        self._lock = threading.Lock()
        self.sessions_opened = 0
        self.sessions_closed = 0

    def session(self) -> MemorySession:
        """Open a session; usable directly as a store factory."""
        with self._lock:
            self.sessions_opened += 1
        return MemorySession(self)

    def snapshot(self) -> dict[int, int]:
        with self._lock:
            return dict(self._registers)

    def _closed(self) -> None:
        with self._lock:
            self.sessions_closed += 1


class MemorySession:
    """A :class:`~lwtclient.store.RegisterStore` view of a :class:`MemoryStore`."""

    def __init__(self, store: MemoryStore):
        self._store = store
        self.closed = False

    def conditional_write(self, register: int, value: int) -> bool:
        with self._store._lock:
            if register not in self._store._registers:
                return False
            self._store._registers[register] = value
            return True

    def conditional_insert(self, register: int, value: int) -> bool:
        with self._store._lock:
            if register in self._store._registers:
                return False
            self._store._registers[register] = value
            return True

    def compare_and_swap(self, register: int, expected: int, new: int) -> bool:
        with self._store._lock:
            if self._store._registers.get(register) != expected:
                return False
            self._store._registers[register] = new
            return True

    def linearizable_read(self, register: int) -> int | None:
        with self._store._lock:
            return self._store._registers.get(register)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._store._closed()
