"""Sheet -> records: bind header columns to fields and coerce each cell."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import Any

from pydantic import BaseModel, ValidationError

from sheetbind.coerce import coerce, resolve_zone
from sheetbind.config import BindConfig
from sheetbind.contracts.common import UsageError
from sheetbind.observe.events import EventEmitter, TraceRecorder
from sheetbind.protocols import SheetCodec
from sheetbind.scanner import iter_rows, scan_header
from sheetbind.schema import FieldDescriptor, RecordDescriptor, describe, record_type_of


@dataclass(frozen=True)
class FieldBinding:
    """A record field resolved to a sheet column, with its parse hints."""

    field: FieldDescriptor
    column: int
    time_format: str | None
    zone: tzinfo | None


def bind_fields(descriptor: RecordDescriptor, header: dict[str, int]) -> list[FieldBinding]:
    """Pair fields with header columns; fields without a column stay unbound."""
    bindings: list[FieldBinding] = []
    for f in descriptor.bound_fields():
        col = header.get(f.display_name)
        if col is None:
            continue
        bindings.append(FieldBinding(
            field=f,
            column=col,
            time_format=f.tag.time_format,
            zone=resolve_zone(f.tag.locale),
        ))
    return bindings


def check_handle(handle: Any) -> list[str]:
    """Validate a codec handle and return its sheet names."""
    if handle is None:
        raise UsageError("Workbook handle is None")
    if not isinstance(handle, SheetCodec):
        raise UsageError(f"Handle does not implement the sheet codec interface: {type(handle).__name__}")
    return handle.list_sheet_names()


def _build(descriptor: RecordDescriptor, values: dict[str, Any], trace: TraceRecorder | None) -> Any:
    record_type = descriptor.record_type
    if not issubclass(record_type, BaseModel):
        return record_type(**values)
    try:
        return record_type.model_validate(values)
    except ValidationError as e:
        # Values are already typed; keep the row rather than abort the read.
        if trace is not None:
            trace.record("record.invalid", {"type": record_type.__name__, "errors": e.errors()})
        return record_type.model_construct(**values)


def deserialize(
    handle: SheetCodec,
    record_type: Any,
    *,
    sheet: str | None = None,
    config: BindConfig | None = None,
    events: EventEmitter | None = None,
    trace: TraceRecorder | None = None,
) -> list[Any]:
    """Read a sheet into a list of records.

    ``record_type`` is a dataclass or pydantic model, or ``list[Model]``.
    The first sheet is read unless ``sheet`` names another.  Cells that
    cannot be coerced leave their field at its default (or ``None`` for
    optional fields); only malformed calls raise :class:`UsageError`.
    """
    rtype = record_type_of(record_type)
    names = check_handle(handle)
    if not names:
        raise UsageError("Workbook has no sheets")
    if sheet is None:
        sheet = names[0]
    elif sheet not in names:
        raise KeyError(f"Sheet not found: {sheet}")

    config = config or BindConfig()
    descriptor = describe(rtype)
    date1904 = handle.is_date1904()

    header = scan_header(handle, sheet, config, events)
    if not header:
        return []
    bindings = bind_fields(descriptor, header)

    records: list[Any] = []
    columns = sorted({b.column for b in bindings})
    for row, cells in iter_rows(handle, sheet, columns, config, events):
        values = descriptor.initial_values()
        for b in bindings:
            cell = cells[b.column]
            if cell.is_empty():
                continue
            value, ok = coerce(
                cell,
                b.field.kind,
                time_format=b.time_format,
                zone=b.zone,
                date1904=date1904,
                convert=handle.date_serial_to_calendar,
            )
            if ok:
                values[b.field.name] = value
            elif trace is not None:
                trace.record("coerce.miss", {
                    "row": row,
                    "column": b.column,
                    "field": b.field.name,
                    "kind": b.field.kind.value,
                    "formatted": cell.formatted,
                })
        records.append(_build(descriptor, values, trace))

    if events is not None:
        events.emit("read.done", {"sheet": sheet, "records": len(records)})
    return records
