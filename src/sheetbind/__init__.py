"""sheetbind: bind spreadsheet sheets to typed record collections."""

from sheetbind.addressing import cell_address, column_index, column_letter
from sheetbind.binder import deserialize
from sheetbind.coerce import coerce, exact_integer_string
from sheetbind.config import BindConfig
from sheetbind.contracts.common import (
    CellValue,
    FieldKind,
    SheetBindError,
    StorageType,
    UsageError,
    WorkbookCorruptError,
)
from sheetbind.contracts.tags import TagOptions
from sheetbind.engine.context import WorkbookContext
from sheetbind.protocols import SheetCodec
from sheetbind.schema import UInt, ZERO_TIME, describe, xlsx_field
from sheetbind.tags import format_tag, parse_tag
from sheetbind.writer import serialize

__version__ = "0.3.0"

__all__ = [
    "BindConfig",
    "CellValue",
    "FieldKind",
    "SheetBindError",
    "SheetCodec",
    "StorageType",
    "TagOptions",
    "UInt",
    "UsageError",
    "WorkbookContext",
    "WorkbookCorruptError",
    "ZERO_TIME",
    "__version__",
    "cell_address",
    "coerce",
    "column_index",
    "column_letter",
    "describe",
    "deserialize",
    "exact_integer_string",
    "format_tag",
    "parse_tag",
    "serialize",
    "xlsx_field",
]
