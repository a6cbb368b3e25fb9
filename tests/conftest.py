"""
Shared fixtures for the lwtclient test suite.

Workers run on real threads against an in-process register store, so every
test also checks that it joined all the threads it started.
"""

import io
import json
import os
import sys
import threading

import pytest

# Add parent directory to path so we can import lwtclient without installing it
_lwtclient_path = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _lwtclient_path not in sys.path:
    sys.path.insert(0, _lwtclient_path)

from lwtclient.clock import TimeBase
from lwtclient.history import HistoryEmitter
from lwtclient.memory_store import MemoryStore


@pytest.fixture(autouse=True)
def _check_thread_cleanup(request):
    """Fail any test that leaves worker threads running.

    A worker that never finishes would otherwise hang pytest at exit, or
    keep writing into the next test's emitter.
    """
    initial_threads = set(threading.enumerate())

    yield

    new_threads = set(threading.enumerate()) - initial_threads
    main_thread = threading.main_thread()
    alive_threads = [t for t in new_threads if t != main_thread and t.is_alive()]
    if alive_threads:
        thread_info = ", ".join(f"{t.name} ({'daemon' if t.daemon else 'NON-DAEMON'}, ident={t.ident})" for t in alive_threads)
        pytest.fail(
            f"Test {request.node.nodeid} left {len(alive_threads)} thread(s) running: {thread_info}. "
            f"All threads must be joined before test completion."
        )


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def time_base():
    return TimeBase(0)


@pytest.fixture
def history(time_base):
    """A JSON emitter writing into memory, with a ``records()`` helper."""
    stream = io.StringIO()
    emitter = HistoryEmitter(stream, fmt="json", clock=time_base.corrected_time)

    def lines():
        return stream.getvalue().splitlines()

    def records():
        return [json.loads(line) for line in lines()]

    emitter.lines = lines
    emitter.records = records
    return emitter


@pytest.fixture
def no_sleep():
    """Replacement for ``time.sleep`` that records requested pauses."""
    pauses = []

    def sleep(seconds):
        pauses.append(seconds)

    sleep.pauses = pauses
    return sleep
