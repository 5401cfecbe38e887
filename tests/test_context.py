"""Tests for the openpyxl codec: WorkbookContext and cell adapters."""

from __future__ import annotations

import re
import zipfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import pytest
from openpyxl import Workbook
from openpyxl.utils.datetime import MAC_EPOCH

from sheetbind import deserialize, xlsx_field
from sheetbind.adapters.openpyxl_engine import display_text, raw_text
from sheetbind.contracts.common import CellValue, StorageType, WorkbookCorruptError
from sheetbind.engine.context import WorkbookContext
from sheetbind.protocols import SheetCodec


def test_context_is_a_codec():
    assert isinstance(WorkbookContext.new(), SheetCodec)


def test_open_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        WorkbookContext(tmp_path / "nope.xlsx")


def test_open_corrupt_file(tmp_path: Path):
    path = tmp_path / "bad.xlsx"
    path.write_bytes(b"not a zip")
    with pytest.raises(WorkbookCorruptError):
        WorkbookContext(path)


def test_cell_reads(customers_workbook: Path):
    with WorkbookContext(customers_workbook) as ctx:
        assert ctx.list_sheet_names() == ["Customers", "Notes"]
        assert ctx.read_cell("Customers", "A1") == CellValue(raw="Name", formatted="Name", storage=StorageType.TEXT)
        assert ctx.get_cell_raw("Customers", "C2") == "380963334455"
        assert ctx.get_cell_formatted("Customers", "C2") == "3.80963E+11"
        assert ctx.get_cell_storage_type("Customers", "C2") is StorageType.NUMBER
        assert ctx.read_cell("Customers", "D2") == CellValue(raw="1", formatted="TRUE", storage=StorageType.BOOLEAN)
        assert ctx.get_cell_storage_type("Customers", "E2") is StorageType.NUMBER
        assert ctx.get_cell_raw("Customers", "E2") == "33010"
        assert ctx.read_cell("Customers", "A4") == CellValue()
        assert ctx.read_cell("Customers", "Z999") == CellValue()


def test_reads_do_not_grow_sheet(customers_workbook: Path):
    with WorkbookContext(customers_workbook) as ctx:
        ws = ctx.get_sheet("Customers")
        before = ws.max_row, ws.max_column
        ctx.read_cell("Customers", "AZ500")
        assert (ws.max_row, ws.max_column) == before


def test_unknown_sheet(customers_workbook: Path):
    with WorkbookContext(customers_workbook) as ctx:
        with pytest.raises(KeyError):
            ctx.read_cell("Missing", "A1")


def test_delete_returns_position_and_create_at_index():
    ctx = WorkbookContext.new()
    ctx.create_sheet("B")
    ctx.create_sheet("C")
    assert ctx.delete_sheet("B") == 1
    ctx.create_sheet("B", 1)
    assert ctx.list_sheet_names() == ["Sheet", "B", "C"]
    assert [s.index for s in ctx.list_sheets()] == [0, 1, 2]


def test_writes_and_styles():
    ctx = WorkbookContext.new()
    ctx.set_cell_value("Sheet", "B2", 2**60)
    ctx.set_cell_value("Sheet", "C2", "=SUM(A1:A2)")
    ctx.set_cell_style("Sheet", "B2", {"font_name": "Arial", "font_size": 9, "number_format": "0.00"})
    ctx.set_column_width("Sheet", "B", 30)
    ctx.set_row_height("Sheet", 2, 25)

    ws = ctx.get_sheet("Sheet")
    assert ws["B2"].value == str(2**60)
    assert ws["C2"].data_type == "s"
    assert ws["B2"].font.name == "Arial"
    assert ws["B2"].number_format == "0.00"
    assert ws.column_dimensions["B"].width == 30
    assert ws.row_dimensions[2].height == 25


def test_date1904(tmp_path: Path):
    wb = Workbook()
    wb.epoch = MAC_EPOCH
    wb.active["A1"] = datetime(2024, 1, 15)
    ctx = WorkbookContext.wrap(wb)
    assert ctx.is_date1904() is True
    serial = float(ctx.get_cell_raw("Sheet", "A1"))
    assert ctx.date_serial_to_calendar(serial, True) == datetime(2024, 1, 15)
    assert WorkbookContext.new().is_date1904() is False


def test_save_round_trip(tmp_path: Path):
    path = tmp_path / "saved.xlsx"
    ctx = WorkbookContext.new()
    ctx.set_cell_value("Sheet", "A1", "hello")
    data = ctx.save(path)
    assert path.read_bytes() == data
    with WorkbookContext(path) as again:
        assert again.get_cell_formatted("Sheet", "A1") == "hello"


@pytest.mark.parametrize(
    "value,expected",
    [(None, ""), (True, "1"), (False, "0"), (42, "42"), (12.0, "12"), (0.1, "0.1"), (1e20, "1e+20"), ("x", "x")],
)
def test_raw_text(value, expected):
    assert raw_text(value) == expected


@pytest.mark.parametrize(
    "value,fmt,expected",
    [
        (380963334455, "General", "3.80963E+11"),
        (12345678901, "General", "12345678901"),
        (0.5, "General", "0.5"),
        (1234.5, "#,##0.00", "1,234.50"),
        (0.25, "0%", "25%"),
        (3.14159, "0.00", "3.14"),
        (True, "General", "TRUE"),
        (datetime(2024, 1, 15, 10, 30), "yyyy-mm-dd h:mm", "2024-01-15 10:30"),
        (datetime(2024, 1, 15), "dd.mm.yyyy", "15.01.2024"),
    ],
)
def test_display_text(value, fmt, expected):
    assert display_text(value, fmt) == expected


def _store_calculated(path: Path, values: dict[str, str]) -> None:
    """Fill in calculated values for formula cells, as a spreadsheet app does on save."""
    with zipfile.ZipFile(path) as zf:
        parts = {name: zf.read(name) for name in zf.namelist()}
    xml = parts["xl/worksheets/sheet1.xml"].decode("utf-8")
    for formula, value in values.items():
        pattern = rf"(<f>{re.escape(formula)}</f>)<v(?:\s*/>|></v>)"
        xml = re.sub(pattern, lambda m: f"{m.group(1)}<v>{value}</v>", xml)
    parts["xl/worksheets/sheet1.xml"] = xml.encode("utf-8")
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in parts.items():
            zf.writestr(name, data)


@pytest.fixture
def formula_workbook(tmp_path: Path) -> Path:
    wb = Workbook()
    ws = wb.active
    ws.title = "Totals"
    ws.append(["Total", "Label"])
    ws["A2"] = "=SUM(C2:C10)"
    ws["B2"] = '=UPPER("x")'
    path = tmp_path / "formulas.xlsx"
    wb.save(str(path))
    _store_calculated(path, {"SUM(C2:C10)": "210"})
    return path


@dataclass
class Totals:
    total: int = xlsx_field("name:Total", default=0)
    label: str = xlsx_field("name:Label", default="")


@pytest.mark.parametrize("data_only", [False, True])
def test_formula_cells_read_calculated_value(formula_workbook: Path, data_only: bool):
    with WorkbookContext(formula_workbook, data_only=data_only) as ctx:
        assert ctx.read_cell("Totals", "A2") == CellValue(raw="210", formatted="210", storage=StorageType.NUMBER)
        # Never calculated: no value to show.
        assert ctx.read_cell("Totals", "B2") == CellValue()


def test_deserialize_uses_calculated_values(formula_workbook: Path):
    with WorkbookContext(formula_workbook) as ctx:
        assert deserialize(ctx, Totals) == [Totals(total=210, label="")]
        # Formulas survive for a later save.
        assert ctx.get_sheet("Totals")["A2"].value == "=SUM(C2:C10)"


def test_in_memory_formula_without_cache_reads_empty():
    wb = Workbook()
    wb.active["A1"] = "=1+1"
    assert WorkbookContext.wrap(wb).read_cell("Sheet", "A1") == CellValue()
