"""Protocol for the spreadsheet codec the binder reads and writes through.

:class:`~sheetbind.engine.context.WorkbookContext` is the openpyxl
implementation; any object with these methods can stand in for it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from sheetbind.contracts.common import CellValue, StorageType


@runtime_checkable
class SheetCodec(Protocol):
    """Cell-level access to an open workbook."""

    def list_sheet_names(self) -> list[str]: ...

    def read_cell(self, sheet: str, address: str) -> CellValue: ...

    def get_cell_raw(self, sheet: str, address: str) -> str: ...

    def get_cell_formatted(self, sheet: str, address: str) -> str: ...

    def get_cell_storage_type(self, sheet: str, address: str) -> StorageType: ...

    def set_cell_value(self, sheet: str, address: str, value: Any) -> None: ...

    def set_cell_style(self, sheet: str, address: str, style: dict[str, Any]) -> None: ...

    def set_column_width(self, sheet: str, column: str, width: float) -> None: ...

    def set_row_height(self, sheet: str, row: int, height: float) -> None: ...

    def create_sheet(self, name: str, index: int | None = None) -> None: ...

    def delete_sheet(self, name: str) -> int: ...

    def is_date1904(self) -> bool: ...

    def date_serial_to_calendar(self, serial: float, date1904: bool) -> datetime: ...
