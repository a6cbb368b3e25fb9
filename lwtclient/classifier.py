"""Turning store responses into terminal record types.

The classification rules:

================================  ==========  ======  ===================
store outcome                     function    type    cause
================================  ==========  ======  ===================
applied                           any         ok
not applied                       write, cas  fail
read succeeded                    read        ok
unavailable                       any         fail    unavailable
read timeout                      write, cas  info    read-timed-out
read timeout                      read        fail    read-timed-out
write timeout                     write, cas  info    write-timed-out
write timeout                     read        fail    write-timed-out
no host available                 any         fail    nohost
anything else                     any         error   unhandled-exception
================================  ==========  ======  ===================

A timeout on the write path leaves the store's effect unknown: the update
may have committed. Reporting it as ``fail`` would assert it did not, so it
is ``info``. A timed-out read cannot have changed the register and is safely
``fail``.

:func:`classify` and :func:`classify_applied` are pure. :func:`execute` is the
store-call wrapper the worker uses: it never raises, and it is where the
no-host backoff pause happens.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from lwtclient.common import Cause, Function, Operation, OpType, Value
from lwtclient.errors import NoHostAvailable, StoreReadTimeout, StoreUnavailable, StoreWriteTimeout
from lwtclient.store import RegisterStore

logger = logging.getLogger(__name__)

# Pause before reporting nohost; the operation is not resubmitted.
NOHOST_BACKOFF = 1.0

_WRITE_PATH = frozenset({Function.WRITE, Function.CAS})


@dataclass(frozen=True)
class Outcome:
    """Result of one store call, as the worker records it.

    Attributes:
        type: terminal record type
        cause: failure reason (fail/info/error only)
        details: exception text (error only)
        value: what a successful read observed
    """

    type: OpType
    cause: Cause | None = None
    details: str | None = None
    value: Value = None

    @property
    def ambiguous(self) -> bool:
        return self.type is OpType.INFO


def classify_applied(applied: bool) -> Outcome:
    return Outcome(OpType.OK if applied else OpType.FAIL)


def classify(f: Function, exc: BaseException) -> Outcome:
    """Map a store exception raised while performing *f* to an outcome."""
    if isinstance(exc, StoreUnavailable):
        return Outcome(OpType.FAIL, Cause.UNAVAILABLE)
    if isinstance(exc, StoreReadTimeout):
        return Outcome(OpType.INFO if f in _WRITE_PATH else OpType.FAIL, Cause.READ_TIMED_OUT)
    if isinstance(exc, StoreWriteTimeout):
        return Outcome(OpType.INFO if f in _WRITE_PATH else OpType.FAIL, Cause.WRITE_TIMED_OUT)
    if isinstance(exc, NoHostAvailable):
        return Outcome(OpType.FAIL, Cause.NOHOST)
    return Outcome(OpType.ERROR, Cause.UNHANDLED_EXCEPTION, details=repr(exc))


# ---------------------------------------------------------------------------
# Store-call wrapper
# ---------------------------------------------------------------------------


def _write(store: RegisterStore, op: Operation) -> Outcome:
    # One insert fallback when the register does not exist yet. If a
    # concurrent first writer wins that race too, the write simply fails.
    if store.conditional_write(op.register, op.value):
        return classify_applied(True)
    return classify_applied(store.conditional_insert(op.register, op.value))


def _cas(store: RegisterStore, op: Operation) -> Outcome:
    expected, new = op.value
    return classify_applied(store.compare_and_swap(op.register, expected, new))


def _read(store: RegisterStore, op: Operation) -> Outcome:
    return Outcome(OpType.OK, value=store.linearizable_read(op.register))


_CALLS: dict[Function, Callable[[RegisterStore, Operation], Outcome]] = {
    Function.WRITE: _write,
    Function.CAS: _cas,
    Function.READ: _read,
}


def execute(
    store: RegisterStore,
    op: Operation,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> Outcome:
    """Perform the invocation *op* against *store* and classify the result.

    Args:
        store: the worker's own store session
        op: an invoke record
        sleep: pause function used for the no-host backoff

    Returns:
        The outcome; exceptions raised by the store never escape.
    """
    try:
        return _CALLS[op.f](store, op)
    except Exception as e:
        outcome = classify(op.f, e)
        if outcome.cause is Cause.NOHOST:
            sleep(NOHOST_BACKOFF)
        elif outcome.type is OpType.ERROR:
            logger.warning("unhandled exception during %s on register %s: %r", op.f.value, op.register, e)
        return outcome
