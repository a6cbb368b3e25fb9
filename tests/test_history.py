"""Tests for record formatting and the shared history emitter."""

import io
import json
import threading

import pytest

from lwtclient.common import Cause, Function, Operation, OpType
from lwtclient.history import HistoryEmitter, format_record


def cas_invoke(**kwargs):
    fields = dict(type=OpType.INVOKE, f=Function.CAS, process=3, register=1, value=(0, 4), time=1234)
    fields.update(kwargs)
    return Operation(**fields)


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


class TestEdn:
    def test_invoke(self):
        assert format_record(cas_invoke()) == "{:type :invoke, :f :cas, :process 3, :register 1, :value [0 4], :time 1234}"

    def test_terminal_with_cause(self):
        record = cas_invoke().complete(OpType.INFO, cause=Cause.WRITE_TIMED_OUT).stamped(2345)
        assert format_record(record) == (
            "{:type :info, :f :cas, :process 3, :register 1, :value [0 4], :time 2345, :cause :write-timed-out}"
        )

    def test_read_invoke_has_nil_value(self):
        record = Operation(OpType.INVOKE, Function.READ, 1, 2, time=5)
        assert format_record(record) == "{:type :invoke, :f :read, :process 1, :register 2, :value nil, :time 5}"

    def test_error_details_are_escaped(self):
        record = cas_invoke().complete(
            OpType.ERROR, cause=Cause.UNHANDLED_EXCEPTION, details='RuntimeError("bad\nthing")'
        )
        line = format_record(record.stamped(9))
        assert "\n" not in line
        assert line.endswith(':cause :unhandled-exception, :details "RuntimeError(\\"bad\\nthing\\")"}')


class TestJson:
    def test_round_trips_through_json(self):
        record = cas_invoke().complete(OpType.FAIL, cause=Cause.NOHOST).stamped(10)
        assert json.loads(format_record(record, "json")) == {
            "type": "fail",
            "f": "cas",
            "process": 3,
            "register": 1,
            "value": [0, 4],
            "time": 10,
            "cause": "nohost",
        }

    def test_absent_value_is_null(self):
        record = Operation(OpType.INVOKE, Function.READ, 1, 2, time=5)
        assert json.loads(format_record(record, "json"))["value"] is None


def test_unknown_format_is_rejected():
    with pytest.raises(ValueError, match="unknown history format"):
        format_record(cas_invoke(), "xml")
    with pytest.raises(ValueError):
        HistoryEmitter(io.StringIO(), fmt="xml")


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class TestComplete:
    def test_terminal_keeps_identity_fields(self):
        terminal = cas_invoke().complete(OpType.OK)
        assert (terminal.f, terminal.process, terminal.register, terminal.value) == (Function.CAS, 3, 1, (0, 4))
        assert terminal.time is None

    def test_read_terminal_reports_observed_value(self):
        invoke = Operation(OpType.INVOKE, Function.READ, 1, 2, time=5)
        assert invoke.complete(OpType.OK, value=4, keep_value=False).value == 4

    def test_cannot_complete_twice(self):
        with pytest.raises(ValueError):
            cas_invoke().complete(OpType.OK).complete(OpType.OK)

    def test_terminal_type_required(self):
        with pytest.raises(ValueError):
            cas_invoke().complete(OpType.INVOKE)


# ---------------------------------------------------------------------------
# Emitter
# ---------------------------------------------------------------------------


class TestEmitter:
    def test_emit_stamps_with_clock(self):
        ticks = iter(range(100, 200))
        stream = io.StringIO()
        emitter = HistoryEmitter(stream, clock=lambda: next(ticks))
        written = emitter.emit(cas_invoke(time=None))
        assert written.time == 100
        assert stream.getvalue() == format_record(written) + "\n"
        assert emitter.emitted == 1

    def test_emit_without_clock_keeps_time(self):
        stream = io.StringIO()
        emitter = HistoryEmitter(stream)
        assert emitter.emit(cas_invoke(time=7)).time == 7

    def test_each_emit_flushes(self):
        class CountingStream(io.StringIO):
            flushes = 0

            def flush(self):
                self.flushes += 1
                super().flush()

        stream = CountingStream()
        emitter = HistoryEmitter(stream)
        for _ in range(3):
            emitter.emit(cas_invoke())
        assert stream.flushes == 3

    def test_concurrent_emits_never_interleave(self):
        """Writes are split in two pieces so unsynchronised output would tear."""

        class TearingStream(io.StringIO):
            def write(self, s):
                half = len(s) // 2
                super().write(s[:half])
                threading.Event().wait(0.0001)
                return super().write(s[half:])

        stream = TearingStream()
        times = iter(range(10**6))
        emitter = HistoryEmitter(stream, fmt="json", clock=lambda: next(times))
        barrier = threading.Barrier(8)

        def spam(process):
            barrier.wait()
            for i in range(50):
                emitter.emit(Operation(OpType.INVOKE, Function.WRITE, process, 1, i))

        threads = [threading.Thread(target=spam, args=(p,)) for p in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        lines = stream.getvalue().splitlines()
        assert len(lines) == 400
        records = [json.loads(line) for line in lines]
        assert [r["time"] for r in records] == sorted(r["time"] for r in records)
        for process in range(8):
            assert [r["value"] for r in records if r["process"] == process] == list(range(50))
