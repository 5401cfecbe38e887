"""Parser for the per-field ``xlsx`` directive micro-grammar.

A directive is a semicolon-separated list of ``key:value`` pairs::

    name:Phone;time_format:02-01-2006;locale:Europe/Kyiv

Recognised keys are ``name``, ``width``, ``divide``, ``round``,
``time_format`` and ``locale``; the bare word ``emptyIfZero`` blanks zero
values on write.  A directive of ``-`` (or ``name:-``) skips the field.
Malformed or unknown directives are ignored rather than rejected.
"""

from __future__ import annotations

from typing import Any

from sheetbind.contracts.tags import TagOptions

SKIP = "-"
BLANK_IF_ZERO = "emptyIfZero"


def _to_float(value: str) -> float | None:
    try:
        return float(value)
    except ValueError:
        return None


def _to_int(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        return None


def parse_tag(directive: str | None) -> TagOptions:
    """Parse a directive string into :class:`TagOptions`."""
    if not directive:
        return TagOptions()
    directive = directive.strip()
    if directive == SKIP:
        return TagOptions(skip=True)

    opts: dict[str, Any] = {}
    for part in directive.split(";"):
        part = part.strip()
        if not part:
            continue
        # Only the first colon separates; time formats contain colons.
        key, sep, value = part.partition(":")
        key, value = key.strip(), value.strip()

        if key == BLANK_IF_ZERO:
            opts["blank_if_zero"] = not sep or value.lower() in ("", "true", "1", "yes")
            continue
        if not sep or not value:
            continue

        if key == "name":
            if value == SKIP:
                return TagOptions(skip=True)
            opts["name"] = value
        elif key == "width":
            opts["width"] = _to_float(value)
        elif key == "divide":
            opts["divide"] = _to_int(value)
        elif key == "round":
            opts["round"] = _to_int(value)
        elif key == "time_format":
            opts["time_format"] = value
        elif key == "locale":
            opts["locale"] = value

    return TagOptions(**opts)


def format_tag(options: TagOptions) -> str:
    """Render options back into their canonical directive string."""
    if options.skip:
        return SKIP
    parts: list[str] = []
    if options.name:
        parts.append(f"name:{options.name}")
    if options.width is not None:
        parts.append(f"width:{options.width!r}")
    if options.divide is not None:
        parts.append(f"divide:{options.divide}")
    if options.round is not None:
        parts.append(f"round:{options.round}")
    if options.time_format:
        parts.append(f"time_format:{options.time_format}")
    if options.locale:
        parts.append(f"locale:{options.locale}")
    if options.blank_if_zero:
        parts.append(BLANK_IF_ZERO)
    return ";".join(parts)
