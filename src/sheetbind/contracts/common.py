"""Common Pydantic models: cell representation, response envelope, errors."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SheetBindError(Exception):
    """Base class for errors raised across the public boundary."""


class UsageError(SheetBindError, ValueError):
    """Raised when a call is malformed: bad destination, no handle, no sheets."""


class WorkbookCorruptError(SheetBindError):
    """Raised when a workbook file cannot be parsed."""


class StorageType(str, Enum):
    """The codec's intrinsic classification of a stored cell value."""

    NUMBER = "number"
    BOOLEAN = "boolean"
    TEXT = "text"
    OTHER = "other"


class FieldKind(str, Enum):
    """Semantic kind of a destination record field."""

    STRING = "string"
    BOOL = "bool"
    INT = "int"
    UINT = "uint"
    FLOAT = "float"
    DECIMAL = "decimal"
    TIMESTAMP = "timestamp"
    OTHER = "other"


class CellValue(BaseModel):
    """A cell as the codec sees it: stored text, displayed text, storage type."""

    model_config = ConfigDict(frozen=True)

    raw: str = ""
    formatted: str = ""
    storage: StorageType = StorageType.OTHER

    def is_empty(self) -> bool:
        return not self.raw.strip() and not self.formatted.strip()


class Target(BaseModel):
    """Identifies the workbook/sheet a command ran against."""

    file: str | None = None
    sheet: str | None = None
    model: str | None = None


class WarningDetail(BaseModel):
    """Structured warning."""

    code: str
    message: str
    path: str | None = None


class ErrorDetail(BaseModel):
    """Structured error."""

    code: str
    message: str
    details: dict[str, Any] | None = None


class Metrics(BaseModel):
    """Execution metrics."""

    duration_ms: int = 0


class ResponseEnvelope(BaseModel):
    """Standard response envelope returned by every CLI command."""

    ok: bool = True
    command: str = ""
    target: Target = Field(default_factory=Target)
    result: Any = None
    warnings: list[WarningDetail] = Field(default_factory=list)
    errors: list[ErrorDetail] = Field(default_factory=list)
    metrics: Metrics = Field(default_factory=Metrics)
