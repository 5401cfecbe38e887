"""Scan limits and write styling, loadable from ``sheetbind.yaml``."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from sheetbind.addressing import MAX_COLUMNS, MAX_ROWS
from sheetbind.io.fileops import read_text_safe

CONFIG_FILENAME = "sheetbind.yaml"


class BindConfig(BaseModel):
    """Tunable bounds for header/row scanning and styling for writes.

    The gap limits are a safety valve, not a correctness rule: data sitting
    more than ``empty_row_gap`` empty rows below the last bound row, or past
    ``max_rows``, is not read.
    """

    max_header_columns: int = Field(default=1024, gt=0, le=MAX_COLUMNS)
    header_tail_gap: int = Field(default=16, gt=0)
    # Exclusive bound on the row number scanned.
    max_rows: int = Field(default=100_000, gt=1, le=MAX_ROWS + 1)
    empty_row_gap: int = Field(default=50, gt=0)
    header_row_height: float = Field(default=18.0, gt=0)
    row_height: float = Field(default=18.0, gt=0)
    font_name: str = "Helvetica Neue"
    font_size: float = Field(default=10, gt=0)

    @classmethod
    def load(cls, path: str | Path) -> "BindConfig":
        """Load config from a YAML file; missing keys keep their defaults."""
        data = yaml.safe_load(read_text_safe(path)) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        return cls(**data)

    @classmethod
    def load_from_dir(cls, directory: str | Path) -> "BindConfig | None":
        """Load ``sheetbind.yaml`` from a directory, or None if absent."""
        path = Path(directory) / CONFIG_FILENAME
        if path.exists():
            return cls.load(path)
        return None

    def cell_style(self) -> dict[str, object]:
        return {"font_name": self.font_name, "font_size": self.font_size, "bold": False, "italic": False, "color": "000000"}
