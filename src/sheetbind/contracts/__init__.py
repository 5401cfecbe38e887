"""Pydantic models for cells, tag options, envelopes and command results."""

from sheetbind.contracts.common import (
    CellValue,
    ErrorDetail,
    FieldKind,
    Metrics,
    ResponseEnvelope,
    SheetBindError,
    StorageType,
    Target,
    UsageError,
    WarningDetail,
    WorkbookCorruptError,
)
from sheetbind.contracts.responses import (
    HeaderMeta,
    ReadResult,
    SheetMeta,
    WorkbookMeta,
    WriteResult,
)
from sheetbind.contracts.tags import TagOptions

__all__ = [
    "CellValue",
    "ErrorDetail",
    "FieldKind",
    "HeaderMeta",
    "Metrics",
    "ReadResult",
    "ResponseEnvelope",
    "SheetBindError",
    "SheetMeta",
    "StorageType",
    "TagOptions",
    "Target",
    "UsageError",
    "WarningDetail",
    "WorkbookCorruptError",
    "WorkbookMeta",
    "WriteResult",
]
