"""Tests for header discovery and bounded row iteration."""

from __future__ import annotations

import io
import json

from sheetbind.addressing import cell_address
from sheetbind.config import BindConfig
from sheetbind.observe.events import EventEmitter
from sheetbind.scanner import iter_rows, scan_header


def test_header_map(codec):
    codec.put_row("Sheet1", 1, ["Name", " Phone ", "Account"])
    assert scan_header(codec, "Sheet1", BindConfig()) == {"Name": 0, "Phone": 1, "Account": 2}


def test_header_tolerates_inner_gaps(codec):
    codec.put("Sheet1", "A1", "Name")
    codec.put("Sheet1", cell_address(10, 1), "Phone")
    assert scan_header(codec, "Sheet1", BindConfig()) == {"Name": 0, "Phone": 10}


def test_header_stops_after_tail_gap(codec):
    codec.put("Sheet1", "A1", "Name")
    codec.put("Sheet1", cell_address(17, 1), "Far away")
    assert scan_header(codec, "Sheet1", BindConfig()) == {"Name": 0}
    assert scan_header(codec, "Sheet1", BindConfig(header_tail_gap=17)) == {"Name": 0, "Far away": 17}


def test_header_leading_blanks_do_not_count(codec):
    codec.put("Sheet1", cell_address(40, 1), "Late")
    assert scan_header(codec, "Sheet1", BindConfig()) == {"Late": 40}


def test_header_column_limit(codec):
    codec.put("Sheet1", cell_address(5, 1), "Out of reach")
    assert scan_header(codec, "Sheet1", BindConfig(max_header_columns=5)) == {}


def test_duplicate_header_rightmost_wins(codec):
    codec.put_row("Sheet1", 1, ["Name", "Total", "Name"])
    assert scan_header(codec, "Sheet1", BindConfig()) == {"Name": 2, "Total": 1}


def test_empty_sheet_has_no_header(codec):
    assert scan_header(codec, "Sheet1", BindConfig()) == {}


def test_rows_skip_empty_and_stop_at_gap(codec):
    codec.put_row("Sheet1", 2, ["a"])
    codec.put_row("Sheet1", 5, ["b"])
    codec.put_row("Sheet1", 9, ["c"])
    config = BindConfig(empty_row_gap=3)
    rows = [row for row, _ in iter_rows(codec, "Sheet1", [0], config)]
    assert rows == [2, 5]


def test_rows_only_bound_columns_count(codec):
    codec.put_row("Sheet1", 2, ["a", ""])
    codec.put_row("Sheet1", 3, ["", "unbound"])
    codec.put_row("Sheet1", 4, ["b", ""])
    rows = [(row, cells[0].formatted) for row, cells in iter_rows(codec, "Sheet1", [0], BindConfig())]
    assert rows == [(2, "a"), (4, "b")]


def test_rows_stop_before_max_rows(codec):
    for row in range(2, 8):
        codec.put_row("Sheet1", row, [f"v{row}"])
    rows = [row for row, _ in iter_rows(codec, "Sheet1", [0], BindConfig(max_rows=6))]
    assert rows == [2, 3, 4, 5]


def test_rows_whitespace_cell_is_empty(codec):
    codec.put("Sheet1", "A2", "   ")
    codec.put_row("Sheet1", 3, ["x"])
    assert [row for row, _ in iter_rows(codec, "Sheet1", [0], BindConfig())] == [3]


def test_no_columns_reads_nothing(codec):
    codec.put_row("Sheet1", 2, ["a"])
    assert list(iter_rows(codec, "Sheet1", [], BindConfig())) == []
    assert codec.reads == 0


def test_scan_events(codec):
    codec.put_row("Sheet1", 1, ["Name"])
    codec.put_row("Sheet1", 2, ["a"])
    stream = io.StringIO()
    events = EventEmitter(enabled=True, stream=stream)
    config = BindConfig(empty_row_gap=2)
    scan_header(codec, "Sheet1", config, events)
    list(iter_rows(codec, "Sheet1", [0], config, events))

    emitted = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert [e["event"] for e in emitted] == ["header.scanned", "scan.stopped"]
    assert emitted[0]["data"]["columns"] == 1
    assert emitted[1]["data"]["reason"] == "empty_row_gap"


def test_header_scan_reaches_last_column(codec):
    config = BindConfig(max_header_columns=16384)
    assert scan_header(codec, "Sheet1", config) == {}
    codec.put("Sheet1", cell_address(16383, 1), "XFD")
    assert scan_header(codec, "Sheet1", config) == {"XFD": 16383}

