"""Workload configuration and its validation."""

from __future__ import annotations

from dataclasses import dataclass, field

from lwtclient.errors import ConfigError
from lwtclient.store import DEFAULT_KEYSPACE

DEFAULT_OPERATION_COUNT = 10000
DEFAULT_UPPER_BOUND = 5


def parse_register_set(text: str) -> list[int]:
    """Parse ``"3,4,5"`` into register ids, dropping duplicates in order.

    Raises:
        ValueError: a component is not an integer
    """
    registers: list[int] = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        register = int(part)
        if register not in registers:
            registers.append(register)
    return registers


def parse_hosts(text: str) -> list[str]:
    return [h.strip() for h in text.split(",") if h.strip()]


@dataclass
class WorkloadConfig:
    """Everything a run needs besides the store itself.

    Attributes:
        registers: register ids operations are drawn from
        thread_count: number of concurrent workers
        operation_count: total operations, split evenly across workers
        upper_bound: written values are drawn from ``[0, upper_bound)``
        hosts: store contact points
        start_time: relative time (ns) the corrected clock starts at
        seed: base seed for the per-worker random streams; ``None`` for
            OS entropy
        keyspace: keyspace holding the ``registers`` table
    """

    registers: list[int] = field(default_factory=lambda: [1])
    thread_count: int = 1
    operation_count: int = DEFAULT_OPERATION_COUNT
    upper_bound: int = DEFAULT_UPPER_BOUND
    hosts: list[str] = field(default_factory=lambda: ["localhost"])
    start_time: int = 0
    seed: int | None = None
    keyspace: str = DEFAULT_KEYSPACE

    @property
    def per_worker_quota(self) -> int:
        return self.operation_count // self.thread_count

    def problems(self) -> list[str]:
        """Return every validation failure; empty when the config is usable."""
        problems = []
        if not self.registers:
            problems.append("Must provide at least one register")
        elif any(r <= 0 for r in self.registers):
            problems.append("Register ids must be greater than 0")
        if self.thread_count <= 0:
            problems.append("Thread count must be greater than 0")
        if self.operation_count <= 0:
            problems.append("Operation count must be greater than 0")
        elif self.thread_count > 0 and self.per_worker_quota == 0:
            problems.append(
                f"Operation count ({self.operation_count}) must be at least the thread count ({self.thread_count})"
            )
        if self.upper_bound <= 0:
            problems.append("Upper bound must be greater than 0")
        if not self.hosts:
            problems.append("Must provide at least one host")
        return problems

    def validate(self) -> WorkloadConfig:
        problems = self.problems()
        if problems:
            raise ConfigError(problems)
        return self
