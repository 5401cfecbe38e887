"""openpyxl-based cell operations: stored text, display text, storage type."""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

from openpyxl.cell.cell import Cell
from openpyxl.styles import Font
from openpyxl.utils.datetime import MAC_EPOCH, WINDOWS_EPOCH, from_excel, to_excel
from openpyxl.worksheet.worksheet import Worksheet

from sheetbind.addressing import split_address
from sheetbind.contracts.common import CellValue, StorageType

_STORAGE_BY_DATA_TYPE = {
    "n": StorageType.NUMBER,
    "d": StorageType.NUMBER,
    "b": StorageType.BOOLEAN,
    "s": StorageType.TEXT,
    "inlineStr": StorageType.TEXT,
    "str": StorageType.TEXT,
}

# Excel's General format shows at most 11 characters before switching
# to scientific notation.
_GENERAL_WIDTH = 11

# Integers past 2**53 lose digits in the file's number encoding; they are
# stored as text instead.
MAX_EXACT_INT = 2**53

FORMULA = "f"


def _epoch(date1904: bool) -> datetime:
    return MAC_EPOCH if date1904 else WINDOWS_EPOCH


def date_serial_to_calendar(serial: float, date1904: bool = False) -> datetime:
    """Convert a date serial number into a naive calendar datetime."""
    value = from_excel(serial, epoch=_epoch(date1904))
    if isinstance(value, time):
        return datetime.combine(_epoch(date1904).date(), value)
    return value


# ---------------------------------------------------------------------------
# cell reads
# ---------------------------------------------------------------------------
def peek_cell(ws: Worksheet, address: str) -> Cell | None:
    """Return an existing cell without creating it.

    ``ws.cell()`` materialises missing cells and grows the sheet's
    dimensions, which a read must never do.
    """
    col, row = split_address(address)
    return ws._cells.get((row, col + 1))


def is_formula(ws: Worksheet, address: str) -> bool:
    cell = peek_cell(ws, address)
    return cell is not None and cell.data_type == FORMULA


def storage_type(cell: Cell | None) -> StorageType:
    if cell is None or cell.value is None:
        return StorageType.OTHER
    return _STORAGE_BY_DATA_TYPE.get(cell.data_type, StorageType.OTHER)


def raw_text(value: Any, date1904: bool = False) -> str:
    """Render a stored value the way it sits in the file.

    Dates become their serial number, booleans ``1``/``0``.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e16:
            return str(int(value))
        return repr(value)
    if isinstance(value, (datetime, date, time, timedelta)):
        return raw_text(float(to_excel(value, epoch=_epoch(date1904))))
    return str(value)


def _general(value: float | int) -> str:
    if isinstance(value, int) and len(str(abs(value))) <= _GENERAL_WIDTH:
        return str(value)
    f = float(value)
    if f == 0:
        return "0"
    if 1e-9 <= abs(f) < 10 ** _GENERAL_WIDTH:
        text = f"{f:.10g}"
        if "e" not in text:
            return text
    mantissa, _, exponent = f"{f:.5E}".partition("E")
    mantissa = mantissa.rstrip("0").rstrip(".")
    return f"{mantissa}E{exponent}"


_DATE_TOKENS = [
    ("yyyy", "%Y"),
    ("yy", "%y"),
    ("mmmm", "%B"),
    ("mmm", "%b"),
    ("dd", "%d"),
    ("d", "%d"),
    ("hh", "%H"),
    ("h", "%H"),
    ("ss", "%S"),
    ("am/pm", "%p"),
]
_DATE_TOKEN_RE = re.compile(r"yyyy|yy|mmmm|mmm|mm|m|dd|d|hh|h|ss|am/pm")


def _date_format_to_strftime(number_format: str) -> str:
    """Translate an Excel date number format into strftime directives."""
    fmt = re.sub(r"\[[^\]]*\]|\\|\"", "", number_format).lower()
    tokens = dict(_DATE_TOKENS)
    out: list[str] = []
    pos = 0
    matches = list(_DATE_TOKEN_RE.finditer(fmt))
    for i, m in enumerate(matches):
        out.append(fmt[pos:m.start()])
        tok = m.group(0)
        if tok in ("mm", "m"):
            # Month unless it sits between hours and seconds.
            prev_tok = matches[i - 1].group(0) if i else ""
            next_tok = matches[i + 1].group(0) if i + 1 < len(matches) else ""
            minute = prev_tok in ("h", "hh") or next_tok == "ss"
            out.append("%M" if minute else "%m")
        else:
            out.append(tokens[tok])
        pos = m.end()
    out.append(fmt[pos:])
    return "".join(out)


def display_text(value: Any, number_format: str = "General") -> str:
    """Approximate the text a spreadsheet shows for a stored value."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, str):
        return value
    if isinstance(value, (datetime, date, time)):
        if number_format and number_format != "General":
            try:
                return value.strftime(_date_format_to_strftime(number_format))
            except ValueError:
                pass
        if isinstance(value, datetime):
            return value.isoformat(sep=" ")
        return value.isoformat()
    if isinstance(value, timedelta):
        return str(value)
    if isinstance(value, Decimal):
        value = float(value)
    if not isinstance(value, (int, float)):
        return str(value)

    fmt = (number_format or "General").split(";")[0]
    if fmt in ("General", "@"):
        return _general(value)
    decimals = len(fmt.split(".", 1)[1].rstrip("%")) if "." in fmt else 0
    if fmt.endswith("%"):
        return f"{value * 100:.{decimals}f}%"
    if fmt.startswith("#,##0"):
        return f"{value:,.{decimals}f}"
    if fmt.startswith("0"):
        return f"{value:.{decimals}f}"
    return _general(value)


def read_cell(
    ws: Worksheet,
    address: str,
    *,
    date1904: bool = False,
    cached: Worksheet | None = None,
) -> CellValue:
    """Read stored text, display text and storage type of one cell.

    A formula cell reads as its last calculated value, taken from
    ``cached`` (the same sheet loaded with ``data_only=True``).  Without a
    cached value it reads as empty.
    """
    cell = peek_cell(ws, address)
    if cell is not None and cell.data_type == FORMULA:
        cell = peek_cell(cached, address) if cached is not None else None
    if cell is None or cell.value is None or cell.data_type == FORMULA:
        return CellValue()
    return CellValue(
        raw=raw_text(cell.value, date1904),
        formatted=display_text(cell.value, cell.number_format),
        storage=storage_type(cell),
    )


# ---------------------------------------------------------------------------
# cell writes
# ---------------------------------------------------------------------------
def write_cell(ws: Worksheet, address: str, value: Any) -> None:
    """Set a single cell value; None clears it."""
    col, row = split_address(address)
    if isinstance(value, Decimal):
        value = float(value)
    elif isinstance(value, int) and not isinstance(value, bool) and abs(value) > MAX_EXACT_INT:
        value = str(value)
    cell = ws.cell(row=row, column=col + 1)
    cell.value = value
    if isinstance(value, str) and value.startswith("="):
        # Text that looks like a formula stays text.
        cell.data_type = "s"


def style_cell(ws: Worksheet, address: str, style: dict[str, Any]) -> None:
    """Apply a font/number-format style mapping to one cell.

    Recognised keys: ``font_name``, ``font_size``, ``bold``, ``italic``,
    ``color`` and ``number_format``.
    """
    col, row = split_address(address)
    cell = ws.cell(row=row, column=col + 1)
    if any(k in style for k in ("font_name", "font_size", "bold", "italic", "color")):
        cell.font = Font(
            name=style.get("font_name", cell.font.name),
            size=style.get("font_size", cell.font.size),
            bold=style.get("bold", cell.font.bold),
            italic=style.get("italic", cell.font.italic),
            color=style.get("color"),
        )
    if "number_format" in style:
        cell.number_format = style["number_format"]
