"""Running a whole workload: one thread and one store session per worker.

The orchestrator splits the operation count evenly across the workers,
starts them, and joins them all. The history written through the emitter is
the run's only artifact; :class:`WorkloadReport` just summarises it for the
log.

Opening a store session is the one failure that is not recorded in the
history. It aborts the run: the other workers stop at their next operation
boundary and :func:`run_workload` raises
:class:`~lwtclient.errors.StoreConnectionError`.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field

from lwtclient.clock import TimeBase
from lwtclient.common import OpType
from lwtclient.config import WorkloadConfig
from lwtclient.errors import StoreConnectionError
from lwtclient.history import HistoryEmitter
from lwtclient.ledger import ProcessLedger
from lwtclient.store import StoreFactory
from lwtclient.worker import Worker

logger = logging.getLogger(__name__)


@dataclass
class WorkloadReport:
    """Summary of a finished run.

    Attributes:
        operations: completed operations across all workers
        outcomes: terminal record counts by type
        processes: logical process ids allocated
        elapsed: wall-clock seconds the run took
        unclosed_sessions: store sessions whose close() failed
    """

    operations: int = 0
    outcomes: Counter[OpType] = field(default_factory=Counter)
    processes: int = 0
    elapsed: float = 0.0
    unclosed_sessions: int = 0

    def summary(self) -> str:
        counts = ", ".join(f"{t.value}={self.outcomes.get(t, 0)}" for t in OpType if t.terminal)
        return f"{self.operations} operations ({counts}) across {self.processes} processes in {self.elapsed:.2f}s"


class _WorkerThread:
    """Thread entry point: open a session, run a worker, close the session."""

    def __init__(self, index: int, make_worker: Callable, store_factory: StoreFactory, abort: threading.Event):
        self.index = index
        self.make_worker = make_worker
        self.store_factory = store_factory
        self.abort = abort
        self.worker: Worker | None = None
        self.error: Exception | None = None
        self.connect_failed = False
        self.close_error: Exception | None = None
        self.thread = threading.Thread(target=self._run, name=f"lwt-worker-{index}")

    def _run(self) -> None:
        try:
            store = self.store_factory()
        except Exception as e:
            logger.error("worker %d could not connect to the store: %s", self.index, e)
            self.error = e
            self.connect_failed = True
            self.abort.set()
            return
        try:
            self.worker = self.make_worker(self.index, store)
            self.worker.run()
        except Exception as e:
            # Only the emitter can get here (e.g. a closed output stream).
            logger.error("worker %d died: %r", self.index, e)
            self.error = e
            self.abort.set()
        finally:
            self._close(store)

    def _close(self, store) -> None:
        try:
            store.close()
        except Exception as e:
            # Every operation is already in the history; the run still counts.
            logger.warning("worker %d could not close its store session: %r", self.index, e)
            self.close_error = e


def run_workload(
    config: WorkloadConfig,
    store_factory: StoreFactory,
    emitter: HistoryEmitter | None = None,
    *,
    time_base: TimeBase | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> WorkloadReport:
    """Run *config*'s workload against sessions from *store_factory*.

    Args:
        config: workload configuration; validated here
        store_factory: opens one independent store session per call
        emitter: shared history emitter; defaults to EDN on stdout stamped
            with the run's time base
        time_base: corrected clock; defaults to one starting at
            ``config.start_time``
        sleep: pause function for the no-host backoff

    Returns:
        A summary of the run.

    Raises:
        ConfigError: the configuration is invalid
        StoreConnectionError: a worker could not open its store session
    """
    config.validate()
    if time_base is None:
        time_base = TimeBase(config.start_time)
    if emitter is None:
        emitter = HistoryEmitter(clock=time_base.corrected_time)
    ledger = ProcessLedger()
    abort = threading.Event()

    def make_worker(index, store):
        return Worker(index, store, config, ledger, emitter, time_base, stop=abort, sleep=sleep)

    handles = [_WorkerThread(i, make_worker, store_factory, abort) for i in range(config.thread_count)]
    logger.info(
        "starting %d workers, %d operations each, registers %s, values below %d",
        config.thread_count,
        config.per_worker_quota,
        ",".join(map(str, config.registers)),
        config.upper_bound,
    )
    started = time.monotonic()
    for handle in handles:
        handle.thread.start()
    try:
        for handle in handles:
            handle.thread.join()
    except KeyboardInterrupt:
        abort.set()
        for handle in handles:
            handle.thread.join()
        raise

    report = WorkloadReport(processes=ledger.allocated, elapsed=time.monotonic() - started)
    for handle in handles:
        if handle.worker is not None:
            report.operations += handle.worker.completed
            report.outcomes.update(handle.worker.outcomes)
        if handle.close_error is not None:
            report.unclosed_sessions += 1

    failed = [h for h in handles if h.error is not None]
    if failed:
        first = next((h for h in failed if h.connect_failed), failed[0])
        if first.connect_failed:
            raise StoreConnectionError(f"worker {first.index} could not connect: {first.error}") from first.error
        raise first.error
    logger.info("finished: %s", report.summary())
    return report
