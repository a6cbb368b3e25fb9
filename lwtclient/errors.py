"""Failure taxonomy shared by store backends, the classifier and the CLI.

Store backends translate their driver's exceptions into the
:class:`StoreError` subclasses below; the classifier only ever looks at
these types, so it stays independent of any particular driver.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base class for classified store failures."""


class StoreUnavailable(StoreError):
    """Not enough replicas were alive to attempt the operation."""


class StoreReadTimeout(StoreError):
    """Replicas did not answer the read (or the Paxos read phase) in time."""


class StoreWriteTimeout(StoreError):
    """Replicas did not acknowledge the write in time; it may have committed."""


class NoHostAvailable(StoreError):
    """No coordinator could be reached at all."""


class StoreConnectionError(Exception):
    """Opening a store session failed; the run cannot proceed."""


class ConfigError(ValueError):
    """Workload configuration is invalid.

    Attributes:
        problems: every violation found, in option order
    """

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("; ".join(problems))
