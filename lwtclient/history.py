"""Serialising history records to the output stream.

Workers share one :class:`HistoryEmitter`. Each :meth:`HistoryEmitter.emit`
call stamps, formats, writes and flushes exactly one line while holding the
emitter lock, so lines from different workers never interleave and the
order of lines on the stream matches the order of their timestamps.

Two line formats are supported:

``edn`` (default)
    Clojure map literals, as read by Knossos/Jepsen tooling::

        {:type :invoke, :f :cas, :process 3, :register 1, :value [0 4], :time 1234}
        {:type :info, :f :cas, :process 3, :register 1, :value [0 4], :time 2345, :cause :write-timed-out}

``json``
    One JSON object per line with the same keys.
"""

from __future__ import annotations

import json
import sys
import threading
from collections.abc import Callable
from typing import IO, Any

from lwtclient.common import Operation

FORMATS = ("edn", "json")


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def _edn_string(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t")
    return f'"{escaped}"'


def _edn_value(value: Any) -> str:
    if value is None:
        return "nil"
    if isinstance(value, (tuple, list)):
        return "[" + " ".join(_edn_value(v) for v in value) + "]"
    return str(value)


def _fields(record: Operation) -> list[tuple[str, Any]]:
    fields: list[tuple[str, Any]] = [
        ("type", record.type),
        ("f", record.f),
        ("process", record.process),
        ("register", record.register),
        ("value", record.value),
        ("time", record.time),
    ]
    if record.cause is not None:
        fields.append(("cause", record.cause))
    if record.details is not None:
        fields.append(("details", record.details))
    return fields


def format_edn(record: Operation) -> str:
    parts = []
    for key, value in _fields(record):
        if key in ("type", "f", "cause"):
            rendered = ":" + value.value
        elif key == "details":
            rendered = _edn_string(value)
        else:
            rendered = _edn_value(value)
        parts.append(f":{key} {rendered}")
    return "{" + ", ".join(parts) + "}"


def format_json(record: Operation) -> str:
    obj = {}
    for key, value in _fields(record):
        if key in ("type", "f", "cause"):
            value = value.value
        elif isinstance(value, tuple):
            value = list(value)
        obj[key] = value
    return json.dumps(obj, separators=(", ", ": "))


_FORMATTERS: dict[str, Callable[[Operation], str]] = {
    "edn": format_edn,
    "json": format_json,
}


def format_record(record: Operation, fmt: str = "edn") -> str:
    """Render *record* as a single line (without the newline)."""
    try:
        formatter = _FORMATTERS[fmt]
    except KeyError:
        raise ValueError(f"unknown history format {fmt!r}; expected one of {', '.join(FORMATS)}") from None
    return formatter(record)


# ---------------------------------------------------------------------------
# Emitter
# ---------------------------------------------------------------------------


class HistoryEmitter:
    """Thread-safe, unbuffered writer of history lines.

    Args:
        stream: text stream to write to (default: ``sys.stdout`` at emit time)
        fmt: ``"edn"`` or ``"json"``
        clock: when given, each record is stamped with ``clock()`` inside the
            critical section, so line order and time order agree
    """

    def __init__(self, stream: IO[str] | None = None, fmt: str = "edn", clock: Callable[[], int] | None = None):
        if fmt not in _FORMATTERS:
            raise ValueError(f"unknown history format {fmt!r}; expected one of {', '.join(FORMATS)}")
        self._stream = stream
        self.fmt = fmt
        self.clock = clock
        self.emitted = 0
        self._lock = threading.Lock()

    @property
    def stream(self) -> IO[str]:
        return self._stream if self._stream is not None else sys.stdout

    def emit(self, record: Operation) -> Operation:
        """Write one record as one complete line and return it as written."""
        with self._lock:
            if self.clock is not None:
                record = record.stamped(self.clock())
            line = format_record(record, self.fmt)
            stream = self.stream
            stream.write(line + "\n")
            stream.flush()
            self.emitted += 1
        return record
