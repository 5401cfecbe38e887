"""Header discovery and bounded data-row iteration."""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from sheetbind.addressing import cell_address
from sheetbind.config import BindConfig
from sheetbind.contracts.common import CellValue
from sheetbind.observe.events import EventEmitter
from sheetbind.protocols import SheetCodec

HEADER_ROW = 1
FIRST_DATA_ROW = 2


def scan_header(
    codec: SheetCodec,
    sheet: str,
    config: BindConfig,
    events: EventEmitter | None = None,
) -> dict[str, int]:
    """Map trimmed header text on row 1 to zero-based column indexes.

    Scanning stops at ``max_header_columns`` or once ``header_tail_gap``
    consecutive blank cells follow a non-blank one.  A repeated name maps to
    its right-most column.
    """
    header: dict[str, int] = {}
    gap = 0
    for col in range(config.max_header_columns):
        name = codec.get_cell_formatted(sheet, cell_address(col, HEADER_ROW)).strip()
        if not name:
            if header:
                gap += 1
                if gap >= config.header_tail_gap:
                    break
            continue
        gap = 0
        header[name] = col
    if events is not None:
        events.emit("header.scanned", {"sheet": sheet, "columns": len(header), "last_column": col})
    return header


def iter_rows(
    codec: SheetCodec,
    sheet: str,
    columns: Sequence[int],
    config: BindConfig,
    events: EventEmitter | None = None,
) -> Iterator[tuple[int, dict[int, CellValue]]]:
    """Yield ``(row, {column: cell})`` for every non-empty data row.

    Only ``columns`` are read.  A row is empty when all of them are blank;
    ``empty_row_gap`` consecutive empty rows, or reaching ``max_rows``, end
    the scan silently.
    """
    if not columns:
        return
    empty_run = 0
    reason = "max_rows"
    row = FIRST_DATA_ROW
    for row in range(FIRST_DATA_ROW, config.max_rows):
        cells = {col: codec.read_cell(sheet, cell_address(col, row)) for col in columns}
        if all(cell.is_empty() for cell in cells.values()):
            empty_run += 1
            if empty_run >= config.empty_row_gap:
                reason = "empty_row_gap"
                break
            continue
        empty_run = 0
        yield row, cells
    if events is not None:
        events.emit("scan.stopped", {"sheet": sheet, "reason": reason, "row": row})
