"""Lifecycle events, per-call trace entries and timing for binder calls.

Events are NDJSON lines (one object per line) written to stderr so they
never mix with a command's JSON result on stdout.  The binder emits:

- ``header.scanned``: sheet, number of named columns, last column probed
- ``scan.stopped``: sheet, reason (``empty_row_gap`` or ``max_rows``), row
- ``read.done`` / ``write.done``: sheet and row counts

Traces are the in-memory counterpart: absorbed coercion misses
(``coerce.miss``) and rows kept despite failed model validation
(``record.invalid``) are recorded so callers can report them.
"""

from __future__ import annotations

import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TextIO

import orjson


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Timer:
    """``with Timer() as t: ...`` then read ``t.elapsed_ms``."""

    def __init__(self) -> None:
        self.start: float = 0
        self.elapsed_ms: int = 0

    def __enter__(self) -> "Timer":
        self.start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.elapsed_ms = int((time.perf_counter() - self.start) * 1000)


class EventEmitter:
    def __init__(
        self,
        enabled: bool = False,
        stream: TextIO | None = None,
        *,
        command: str | None = None,
    ) -> None:
        self.enabled = enabled
        self.stream = stream
        self.command = command

    def emit(self, event: str, data: dict[str, Any] | None = None) -> None:
        if not self.enabled:
            return
        payload: dict[str, Any] = {"event": event, "timestamp": _now(), "data": data or {}}
        if self.command:
            payload["command"] = self.command
        out = self.stream or sys.stderr
        out.write(orjson.dumps(payload, default=str).decode() + "\n")
        out.flush()


class TraceRecorder:
    """Collects trace entries for one binder call."""

    def __init__(self) -> None:
        self.entries: list[dict[str, Any]] = []
        self._start = time.perf_counter()

    def _elapsed_ms(self) -> int:
        return int((time.perf_counter() - self._start) * 1000)

    def record(self, category: str, data: dict[str, Any]) -> None:
        self.entries.append({"category": category, "timestamp_ms": self._elapsed_ms(), **data})

    def by_category(self, category: str) -> list[dict[str, Any]]:
        return [e for e in self.entries if e["category"] == category]

    def counts(self) -> dict[str, int]:
        """Number of entries per category."""
        out: dict[str, int] = {}
        for entry in self.entries:
            out[entry["category"]] = out.get(entry["category"], 0) + 1
        return out

    def save(self, path: str | Path) -> str:
        """Write the trace as indented JSON and return the path written."""
        trace_path = Path(path)
        document = {
            "trace_version": "1.0",
            "generated_at": _now(),
            "total_duration_ms": self._elapsed_ms(),
            "counts": self.counts(),
            "entries": self.entries,
        }
        trace_path.write_bytes(orjson.dumps(document, option=orjson.OPT_INDENT_2, default=str))
        return str(trace_path)
