"""Typed per-field options parsed from an ``xlsx`` directive string."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class TagOptions(BaseModel):
    """Options attached to one record field.

    ``skip`` short-circuits everything else: a skipped field is neither
    written nor populated on read.  ``name`` is empty when the directive
    carries none; callers fall back to the field identifier.
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    skip: bool = False
    width: float | None = None
    divide: int | None = None
    round: int | None = None
    time_format: str | None = None
    locale: str | None = None
    blank_if_zero: bool = False

    def display_name(self, field_name: str) -> str:
        return self.name or field_name
