"""Command-specific result models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class SheetMeta(BaseModel):
    """Metadata for a single worksheet."""

    name: str
    index: int
    used_range: str | None = None


class HeaderMeta(BaseModel):
    """Header map discovered on row 1 of a sheet."""

    sheet: str
    columns: dict[str, int] = Field(default_factory=dict)


class WorkbookMeta(BaseModel):
    """Metadata returned by ``sheetbind inspect``."""

    path: str
    fingerprint: str
    date1904: bool = False
    sheets: list[SheetMeta] = Field(default_factory=list)
    header: HeaderMeta | None = None


class ReadResult(BaseModel):
    """Result of ``sheetbind read``."""

    model: str
    sheet: str | None = None
    row_count: int = 0
    rows: list[dict[str, Any]] = Field(default_factory=list)
    trace_counts: dict[str, int] = Field(default_factory=dict)
    trace_path: str | None = None


class WriteResult(BaseModel):
    """Result of ``sheetbind write``."""

    model: str
    sheet: str
    rows_written: int = 0
    columns: list[str] = Field(default_factory=list)
    backup_path: str | None = None
    fingerprint_before: str | None = None
    fingerprint_after: str = ""
