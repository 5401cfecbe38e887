"""A1-style cell addressing over zero-based columns and one-based rows."""

from __future__ import annotations

import re

from openpyxl.utils import column_index_from_string, get_column_letter

MAX_COLUMNS = 16384
MAX_ROWS = 1048576

_ADDRESS_RE = re.compile(r"^\$?([A-Za-z]{1,3})\$?(\d+)$")


def column_letter(col: int) -> str:
    """Return the letters for a zero-based column: 0 -> A, 25 -> Z, 26 -> AA."""
    if not 0 <= col < MAX_COLUMNS:
        raise ValueError(f"Column index out of range: {col}")
    return get_column_letter(col + 1)


def column_index(letters: str) -> int:
    """Inverse of :func:`column_letter`."""
    return column_index_from_string(letters.upper()) - 1


def cell_address(col: int, row: int) -> str:
    """Map (zero-based column, one-based row) to an address such as ``B7``."""
    if not 1 <= row <= MAX_ROWS:
        raise ValueError(f"Row index out of range: {row}")
    return f"{column_letter(col)}{row}"


def split_address(address: str) -> tuple[int, int]:
    """Parse ``B7`` into (zero-based column, one-based row)."""
    m = _ADDRESS_RE.match(address.strip())
    if not m:
        raise ValueError(f"Invalid cell address: {address}")
    col = column_index(m.group(1))
    row = int(m.group(2))
    if not 1 <= row <= MAX_ROWS or not 0 <= col < MAX_COLUMNS:
        raise ValueError(f"Cell address out of range: {address}")
    return col, row
