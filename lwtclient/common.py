"""Shared data structures for lwtclient."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Union

# A register's content, a cas [expected, new] pair, or nothing.
Value = Union[int, tuple[int, int], None]


class OpType(str, Enum):
    """Record type: the invocation, or one of the four terminal outcomes."""

    INVOKE = "invoke"
    OK = "ok"
    FAIL = "fail"
    INFO = "info"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self is not OpType.INVOKE


class Function(str, Enum):
    WRITE = "write"
    CAS = "cas"
    READ = "read"


class Cause(str, Enum):
    """Why an operation did not end ``ok``."""

    UNAVAILABLE = "unavailable"
    READ_TIMED_OUT = "read-timed-out"
    WRITE_TIMED_OUT = "write-timed-out"
    NOHOST = "nohost"
    UNHANDLED_EXCEPTION = "unhandled-exception"


@dataclass(frozen=True)
class Operation:
    """One line of the emitted history.

    An invoke record and the terminal record built from it with
    :meth:`complete` form one event.

    Attributes:
        type: invoke, or the terminal outcome
        f: the function performed against the register
        process: logical process id the record is attributed to
        register: register id
        value: write value, cas ``(expected, new)`` pair, or read result
        time: corrected timestamp in nanoseconds (``None`` until stamped)
        cause: failure reason, only on fail/info/error
        details: exception text, only on error
    """

    type: OpType
    f: Function
    process: int
    register: int
    value: Value = None
    time: int | None = None
    cause: Cause | None = None
    details: str | None = None

    def complete(
        self,
        type: OpType,
        *,
        value: Value = None,
        cause: Cause | None = None,
        details: str | None = None,
        keep_value: bool = True,
    ) -> Operation:
        """Build the terminal record for this invocation.

        ``f``, ``register`` and ``process`` are copied unchanged. The invoke's
        value is kept unless *keep_value* is false, in which case *value*
        replaces it (reads report what they observed).
        """
        if self.type is not OpType.INVOKE:
            raise ValueError(f"cannot complete a {self.type.value} record")
        if not type.terminal:
            raise ValueError("terminal record type required")
        return replace(
            self,
            type=type,
            value=self.value if keep_value else value,
            time=None,
            cause=cause,
            details=details,
        )

    def stamped(self, time: int) -> Operation:
        return replace(self, time=time)

    def __repr__(self):
        return f"Operation({self.type.value}, {self.f.value}, p={self.process}, r={self.register}, v={self.value!r})"
