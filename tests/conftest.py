"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook
from openpyxl.utils.datetime import MAC_EPOCH, WINDOWS_EPOCH, from_excel

from sheetbind.addressing import cell_address, split_address
from sheetbind.contracts.common import CellValue, StorageType


class FakeCodec:
    """In-memory codec whose cells carry exactly the raw/formatted text given.

    Lets tests reproduce what a codec reports for cells openpyxl would never
    produce itself, e.g. a number displayed as ``3.80963E+11``.
    """

    def __init__(self, sheets: list[str] | None = None, *, date1904: bool = False) -> None:
        self.sheets: list[str] = list(sheets if sheets is not None else ["Sheet1"])
        self.cells: dict[tuple[str, str], CellValue] = {}
        self.values: dict[tuple[str, str], Any] = {}
        self.styles: dict[tuple[str, str], dict[str, Any]] = {}
        self.widths: dict[tuple[str, str], float] = {}
        self.heights: dict[tuple[str, int], float] = {}
        self.date1904 = date1904
        self.reads = 0

    def put(
        self,
        sheet: str,
        address: str,
        raw: str,
        formatted: str | None = None,
        storage: StorageType = StorageType.TEXT,
    ) -> None:
        formatted = raw if formatted is None else formatted
        self.cells[(sheet, address)] = CellValue(raw=raw, formatted=formatted, storage=storage)

    def put_row(self, sheet: str, row: int, values: list[str]) -> None:
        for col, text in enumerate(values):
            if text:
                self.put(sheet, cell_address(col, row), text)

    # -- SheetCodec ---------------------------------------------------------
    def list_sheet_names(self) -> list[str]:
        return list(self.sheets)

    def read_cell(self, sheet: str, address: str) -> CellValue:
        self.reads += 1
        return self.cells.get((sheet, address), CellValue())

    def get_cell_raw(self, sheet: str, address: str) -> str:
        return self.read_cell(sheet, address).raw

    def get_cell_formatted(self, sheet: str, address: str) -> str:
        return self.read_cell(sheet, address).formatted

    def get_cell_storage_type(self, sheet: str, address: str) -> StorageType:
        return self.read_cell(sheet, address).storage

    def set_cell_value(self, sheet: str, address: str, value: Any) -> None:
        split_address(address)
        self.values[(sheet, address)] = value

    def set_cell_style(self, sheet: str, address: str, style: dict[str, Any]) -> None:
        self.styles[(sheet, address)] = style

    def set_column_width(self, sheet: str, column: str, width: float) -> None:
        self.widths[(sheet, column)] = width

    def set_row_height(self, sheet: str, row: int, height: float) -> None:
        self.heights[(sheet, row)] = height

    def create_sheet(self, name: str, index: int | None = None) -> None:
        if index is None:
            self.sheets.append(name)
        else:
            self.sheets.insert(index, name)

    def delete_sheet(self, name: str) -> int:
        index = self.sheets.index(name)
        del self.sheets[index]
        self.values = {k: v for k, v in self.values.items() if k[0] != name}
        return index

    def is_date1904(self) -> bool:
        return self.date1904

    def date_serial_to_calendar(self, serial: float, date1904: bool) -> datetime:
        return from_excel(serial, epoch=MAC_EPOCH if date1904 else WINDOWS_EPOCH)


@pytest.fixture()
def codec() -> FakeCodec:
    return FakeCodec()


@pytest.fixture()
def make_codec() -> type[FakeCodec]:
    return FakeCodec


@pytest.fixture()
def customers_workbook(tmp_path: Path) -> Path:
    """A 'Customers' sheet holding phones, big account numbers and dates."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Customers"
    ws.append(["Name", "Phone", "Account", "Active", "Birth date"])
    ws.append(["Olena", "+380501234567", 380963334455, True, datetime(1990, 5, 17)])
    ws.append(["Taras", "0501234567", "1152921504606846977", "yes", "17.05.1985"])
    ws.append([None, None, None, None, None])
    ws.append(["Ivan", 380671112233, "1,234", "no", None])
    ws2 = wb.create_sheet("Notes")
    ws2["A1"] = "free text"

    path = tmp_path / "customers.xlsx"
    wb.save(str(path))
    wb.close()
    return path


@pytest.fixture()
def empty_workbook(tmp_path: Path) -> Path:
    wb = Workbook()
    wb.active.title = "Data"
    path = tmp_path / "empty.xlsx"
    wb.save(str(path))
    wb.close()
    return path
