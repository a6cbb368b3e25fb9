"""The per-thread workload loop.

A worker repeatedly:

1. draws a function (write, cas, read), a register and any values,
2. emits the invoke record under its current process id,
3. performs the operation through :func:`~lwtclient.classifier.execute`,
4. emits the terminal record under the same process id,
5. after an ``info`` outcome, takes a fresh process id from the ledger.

The loop is strictly sequential, so a worker's next invoke never precedes
its previous terminal record. Failures of individual operations are
recorded and the loop moves on; nothing raised by the store escapes.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from collections import Counter
from collections.abc import Callable
from enum import Enum

from lwtclient.classifier import execute
from lwtclient.clock import TimeBase
from lwtclient.common import Function, Operation, OpType
from lwtclient.config import WorkloadConfig
from lwtclient.history import HistoryEmitter
from lwtclient.ledger import ProcessLedger
from lwtclient.store import RegisterStore

logger = logging.getLogger(__name__)

FUNCTIONS = (Function.CAS, Function.WRITE, Function.READ)


class WorkerState(str, Enum):
    IDLE = "idle"
    INVOKING = "invoking"
    AWAITING_RESULT = "awaiting-result"
    DONE = "done"


def worker_rng(seed: int | None, index: int) -> random.Random:
    """Independent random stream for worker *index*."""
    return random.Random(None if seed is None else seed + index)


class Worker:
    """Drives one store session through its share of the workload.

    Args:
        index: worker number, used for naming and seeding
        store: the worker's own store session
        config: the validated workload configuration
        ledger: the run's shared process ledger
        emitter: the run's shared history emitter
        time_base: the run's corrected clock
        rng: random stream; defaults to :func:`worker_rng`
        quota: operations to perform; defaults to ``config.per_worker_quota``
        stop: when set, the worker stops before its next operation
        sleep: pause function for the no-host backoff
    """

    def __init__(
        self,
        index: int,
        store: RegisterStore,
        config: WorkloadConfig,
        ledger: ProcessLedger,
        emitter: HistoryEmitter,
        time_base: TimeBase,
        *,
        rng: random.Random | None = None,
        quota: int | None = None,
        stop: threading.Event | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.index = index
        self.store = store
        self.config = config
        self.ledger = ledger
        self.emitter = emitter
        self.time_base = time_base
        self.rng = rng if rng is not None else worker_rng(config.seed, index)
        self.quota = config.per_worker_quota if quota is None else quota
        self.stop = stop
        self.sleep = sleep
        self.state = WorkerState.IDLE
        self.process: int | None = None
        self.completed = 0
        self.outcomes: Counter[OpType] = Counter()

    def next_invocation(self) -> Operation:
        """Draw the next operation for the current process."""
        f = self.rng.choice(FUNCTIONS)
        bound = self.config.upper_bound
        if f is Function.CAS:
            value = (self.rng.randrange(bound), self.rng.randrange(bound))
        elif f is Function.WRITE:
            value = self.rng.randrange(bound)
        else:
            value = None
        register = self.rng.choice(self.config.registers)
        return Operation(OpType.INVOKE, f, self.process, register, value)

    def _stamp(self, record: Operation) -> Operation:
        # The emitter stamps under its lock when it owns a clock.
        if self.emitter.clock is not None:
            return record
        return record.stamped(self.time_base.corrected_time())

    def step(self) -> Operation:
        """Perform one complete operation and return its terminal record."""
        self.state = WorkerState.INVOKING
        invoke = self.emitter.emit(self._stamp(self.next_invocation()))

        self.state = WorkerState.AWAITING_RESULT
        outcome = execute(self.store, invoke, sleep=self.sleep)
        terminal = invoke.complete(
            outcome.type,
            value=outcome.value,
            cause=outcome.cause,
            details=outcome.details,
            keep_value=invoke.f is not Function.READ,
        )
        terminal = self.emitter.emit(self._stamp(terminal))

        self.completed += 1
        self.outcomes[terminal.type] += 1
        if outcome.ambiguous:
            # The ambiguous record stays the last one of its process.
            self.process = self.ledger.next_process()
            logger.debug("worker %d: %s was ambiguous, continuing as process %d", self.index, invoke, self.process)
        self.state = WorkerState.IDLE
        return terminal

    def run(self) -> int:
        """Perform the whole quota; returns the number of completed operations."""
        self.process = self.ledger.next_process()
        logger.debug("worker %d starting as process %d with quota %d", self.index, self.process, self.quota)
        while self.completed < self.quota:
            if self.stop is not None and self.stop.is_set():
                logger.debug("worker %d stopping early after %d operations", self.index, self.completed)
                break
            self.step()
        self.state = WorkerState.DONE
        return self.completed
