"""WorkbookContext: the openpyxl-backed workbook handle used by the binder."""

from __future__ import annotations

from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Any

import openpyxl
from openpyxl.utils.datetime import MAC_EPOCH
from openpyxl.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from sheetbind.adapters.openpyxl_engine import (
    date_serial_to_calendar,
    is_formula,
    read_cell,
    style_cell,
    write_cell,
)
from sheetbind.contracts.common import CellValue, StorageType, WorkbookCorruptError
from sheetbind.contracts.responses import SheetMeta
from sheetbind.io.fileops import atomic_write


class WorkbookContext:
    """Wraps an openpyxl workbook and exposes the cell-level codec operations.

    Open a file with ``WorkbookContext(path)``, wrap an in-memory workbook
    with ``WorkbookContext.wrap(wb)`` or start empty with
    ``WorkbookContext.new()``.  The context never closes itself; use it as a
    context manager or call :meth:`close` when done.

    Formula cells read as their last calculated value.  ``data_only=True``
    loads only those values, which suits read-only use; saving such a
    context drops the formulas.
    """

    @classmethod
    def new(cls) -> "WorkbookContext":
        return cls.wrap(Workbook())

    @classmethod
    def wrap(cls, wb: Workbook, path: str | Path | None = None) -> "WorkbookContext":
        ctx = cls.__new__(cls)
        ctx.path = Path(path).resolve() if path else None
        ctx.wb = wb
        ctx.data_only = False
        ctx._cached = None
        return ctx

    def __init__(self, path: str | Path, *, data_only: bool = False) -> None:
        self.path: Path | None = Path(path).resolve()
        self.data_only = data_only
        self._cached: Workbook | None = None
        if not self.path.exists():
            raise FileNotFoundError(f"Workbook not found: {self.path}")
        self.wb: Workbook = self._load(data_only)

    def _load(self, data_only: bool) -> Workbook:
        try:
            return openpyxl.load_workbook(str(self.path), data_only=data_only)
        except Exception as e:
            raise WorkbookCorruptError(f"Cannot open workbook {self.path}: {e}") from e

    def _cached_sheet(self, name: str) -> Worksheet | None:
        """The sheet as last calculated, for resolving formula cells."""
        if self.data_only or self.path is None:
            return None
        if self._cached is None:
            self._cached = self._load(True)
        if name not in self._cached.sheetnames:
            return None
        return self._cached[name]

    def __enter__(self) -> "WorkbookContext":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # -- sheets -------------------------------------------------------------
    def list_sheet_names(self) -> list[str]:
        return list(self.wb.sheetnames)

    def list_sheets(self) -> list[SheetMeta]:
        sheets: list[SheetMeta] = []
        for idx, name in enumerate(self.wb.sheetnames):
            ws: Worksheet = self.wb[name]
            sheets.append(SheetMeta(name=name, index=idx, used_range=ws.dimensions or None))
        return sheets

    def get_sheet(self, name: str) -> Worksheet:
        if name not in self.wb.sheetnames:
            raise KeyError(f"Sheet not found: {name}")
        return self.wb[name]

    def create_sheet(self, name: str, index: int | None = None) -> None:
        self.wb.create_sheet(name, index=index)

    def delete_sheet(self, name: str) -> int:
        """Remove a sheet and return the position it held."""
        ws = self.get_sheet(name)
        index = self.wb.sheetnames.index(name)
        self.wb.remove(ws)
        return index

    # -- cell reads ---------------------------------------------------------
    def read_cell(self, sheet: str, address: str) -> CellValue:
        ws = self.get_sheet(sheet)
        cached = self._cached_sheet(sheet) if is_formula(ws, address) else None
        return read_cell(ws, address, date1904=self.is_date1904(), cached=cached)

    def get_cell_raw(self, sheet: str, address: str) -> str:
        return self.read_cell(sheet, address).raw

    def get_cell_formatted(self, sheet: str, address: str) -> str:
        return self.read_cell(sheet, address).formatted

    def get_cell_storage_type(self, sheet: str, address: str) -> StorageType:
        return self.read_cell(sheet, address).storage

    # -- cell writes --------------------------------------------------------
    def set_cell_value(self, sheet: str, address: str, value: Any) -> None:
        write_cell(self.get_sheet(sheet), address, value)

    def set_cell_style(self, sheet: str, address: str, style: dict[str, Any]) -> None:
        style_cell(self.get_sheet(sheet), address, style)

    def set_column_width(self, sheet: str, column: str, width: float) -> None:
        self.get_sheet(sheet).column_dimensions[column].width = width

    def set_row_height(self, sheet: str, row: int, height: float) -> None:
        self.get_sheet(sheet).row_dimensions[row].height = height

    # -- date system --------------------------------------------------------
    def is_date1904(self) -> bool:
        return self.wb.epoch == MAC_EPOCH

    def date_serial_to_calendar(self, serial: float, date1904: bool) -> datetime:
        return date_serial_to_calendar(serial, date1904)

    # -- persistence --------------------------------------------------------
    def save(self, path: str | Path | None = None) -> bytes:
        """Serialise the workbook to bytes, optionally writing them to ``path``."""
        buf = BytesIO()
        self.wb.save(buf)
        data = buf.getvalue()
        if path:
            atomic_write(path, data)
        return data

    def close(self) -> None:
        self.wb.close()
        if self._cached is not None:
            self._cached.close()
            self._cached = None
