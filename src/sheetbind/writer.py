"""Records -> sheet: header row plus one formatted row per record."""

from __future__ import annotations

import math
from datetime import datetime
from decimal import Decimal
from typing import Any

from sheetbind.addressing import cell_address, column_letter
from sheetbind.binder import check_handle
from sheetbind.config import BindConfig
from sheetbind.contracts.common import UsageError
from sheetbind.contracts.tags import TagOptions
from sheetbind.observe.events import EventEmitter
from sheetbind.protocols import SheetCodec
from sheetbind.schema import ZERO_TIME, FieldDescriptor, describe, record_type_of

WRITE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_time(value: datetime) -> str:
    """Render a timestamp as ``YYYY-MM-DD HH:MM:SS`` wall-clock text."""
    # strftime does not zero-pad years below 1000 on every platform.
    return value.replace(tzinfo=None, microsecond=0).isoformat(sep=" ")


def _round_half_away(x: float) -> float:
    return math.copysign(math.floor(abs(x) + 0.5), x)


def apply_numeric_tags(value: int | float | Decimal, tag: TagOptions) -> int | float | Decimal:
    """Apply ``divide`` then ``round``; ``round:100`` keeps two decimals."""
    if not tag.divide and not tag.round:
        return value
    f = float(value)
    if tag.divide:
        f = f / tag.divide
    if tag.round:
        f = _round_half_away(f * tag.round) / tag.round
    return f


def _is_zero(value: Any) -> bool:
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, (int, float, Decimal)):
        return value == 0
    if isinstance(value, datetime):
        return value.replace(tzinfo=None) == ZERO_TIME
    return str(value).strip() in ("0", "0.0")


def cell_value_for(field: FieldDescriptor, value: Any) -> Any:
    """The value to store for one field of one record."""
    if value is None:
        return None
    zero = field.tag.blank_if_zero and _is_zero(value)
    if isinstance(value, datetime):
        value = format_time(value)
    elif isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        value = apply_numeric_tags(value, field.tag)
        zero = field.tag.blank_if_zero and _is_zero(value)
    return None if zero else value


def serialize(
    handle: SheetCodec,
    sheet_name: str,
    records: list[Any] | tuple[Any, ...],
    *,
    record_type: Any = None,
    config: BindConfig | None = None,
    events: EventEmitter | None = None,
) -> int:
    """Write ``records`` to ``sheet_name``, replacing that sheet if it exists.

    Returns the number of rows written.  Raises :class:`UsageError` when
    ``records`` is not a list/tuple of instances of one record type.
    """
    if not isinstance(records, (list, tuple)):
        raise UsageError(f"Source must be a list or tuple of records, got {type(records).__name__}")
    if not sheet_name:
        raise UsageError("Sheet name is required")
    names = check_handle(handle)

    if record_type is None and records:
        record_type = type(records[0])
    rtype = record_type_of(record_type) if record_type is not None else None
    if rtype is not None:
        for i, record in enumerate(records):
            if not isinstance(record, rtype):
                raise UsageError(f"Element {i} is {type(record).__name__}, expected {rtype.__name__}")

    config = config or BindConfig()
    index = handle.delete_sheet(sheet_name) if sheet_name in names else None
    handle.create_sheet(sheet_name, index)
    if rtype is None:
        return 0

    fields = describe(rtype).bound_fields()
    style = config.cell_style()

    for col, f in enumerate(fields):
        address = cell_address(col, 1)
        handle.set_cell_value(sheet_name, address, f.display_name)
        handle.set_cell_style(sheet_name, address, style)
        if f.tag.width is not None:
            handle.set_column_width(sheet_name, column_letter(col), f.tag.width)
    handle.set_row_height(sheet_name, 1, config.header_row_height)

    for i, record in enumerate(records):
        row = i + 2
        handle.set_row_height(sheet_name, row, config.row_height)
        for col, f in enumerate(fields):
            address = cell_address(col, row)
            handle.set_cell_value(sheet_name, address, cell_value_for(f, getattr(record, f.name)))
            handle.set_cell_style(sheet_name, address, style)

    if events is not None:
        events.emit("write.done", {"sheet": sheet_name, "rows": len(records), "columns": len(fields)})
    return len(records)
