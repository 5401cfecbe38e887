"""Value coercion: turn a cell's stored/displayed text into a typed value.

Every coercion returns ``(value, ok)``.  A miss is ``(None, False)`` and is
never an error; the caller leaves the destination field untouched.

Integers are recovered from the raw stored text by shifting the decimal
point on the digit string itself, so values above 2**53 survive even when
the codec renders them as ``3.80963E+11``.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, time, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Any, Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sheetbind.adapters.openpyxl_engine import date_serial_to_calendar
from sheetbind.contracts.common import CellValue, FieldKind, StorageType

SerialConverter = Callable[[float, bool], datetime]

TRUE_TOKENS = frozenset({"true", "1", "yes", "y", "on", "да", "так", "si", "sí", "oui", "ja"})

FALLBACK_TIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%d/%m/%Y",
    "%m/%d/%Y",
)

# int() refuses longer digit strings by default (sys.int_info).
_MAX_DIGITS = 4300

_NUMERIC_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_EXACT_RE = re.compile(
    r"^([+-]?)(\d{1,3}(?:,\d{3})+|\d*)(?:\.(\d*))?(?:[eE]([+-]?\d+))?$"
)
_PLAIN_INT_RE = re.compile(r"^[+-]?\d+$")
_GROUPED_INT_RE = re.compile(r"^[+-]?\d{1,3}(?:,\d{3})+$")
_LEADING_ZERO_RE = re.compile(r"^0\d+$")
_WHITESPACE_RE = re.compile(r"\s+")

# Go reference-time layout tokens, longest first.
_GO_LAYOUT_TOKENS = {
    "January": "%B",
    "Monday": "%A",
    "2006": "%Y",
    "Z07:00": "%z",
    "-07:00": "%z",
    "-0700": "%z",
    ".000000": ".%f",
    ".000": ".%f",
    ".999999": ".%f",
    ".999": ".%f",
    "Jan": "%b",
    "Mon": "%a",
    "MST": "%Z",
    "15": "%H",
    "06": "%y",
    "01": "%m",
    "02": "%d",
    "_2": "%d",
    "03": "%I",
    "04": "%M",
    "05": "%S",
    "PM": "%p",
    "pm": "%p",
    "1": "%m",
    "2": "%d",
    "3": "%I",
    "4": "%M",
    "5": "%S",
}
_GO_LAYOUT_RE = re.compile("|".join(re.escape(tok) for tok in _GO_LAYOUT_TOKENS))


def to_strptime(layout: str) -> str:
    """Translate a time format into ``strptime`` directives.

    Formats already containing ``%`` are taken as ``strftime`` patterns;
    anything else is read as a Go reference layout (``02-01-2006 15:04``).
    """
    if "%" in layout:
        return layout
    out: list[str] = []
    pos = 0
    for m in _GO_LAYOUT_RE.finditer(layout):
        out.append(layout[pos:m.start()])
        out.append(_GO_LAYOUT_TOKENS[m.group(0)])
        pos = m.end()
    out.append(layout[pos:])
    return "".join(out)


def resolve_zone(name: str | None) -> tzinfo | None:
    """Load an IANA zone by name; unknown names resolve to None."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


# ---------------------------------------------------------------------------
# numeric text
# ---------------------------------------------------------------------------
def looks_numeric(text: str) -> bool:
    """Sign, digits, at most one decimal point, optional exponent."""
    return bool(_NUMERIC_RE.match(text.strip()))


def exact_integer_string(text: str) -> str | None:
    """Rewrite a numeric string as an exact decimal integer, or return None.

    Handles ``,`` thousands grouping, a fractional part and an exponent by
    moving the decimal point over the digits.  Returns None when a non-zero
    digit would remain after the point: the value is not an integer.

    >>> exact_integer_string("3.80963334455E+11")
    '380963334455'
    >>> exact_integer_string("1,234,000.00")
    '1234000'
    >>> exact_integer_string("12.5") is None
    True
    """
    m = _EXACT_RE.match(text.strip())
    if not m:
        return None
    sign, int_part, frac_part, exp = m.groups()
    if exp and len(exp.lstrip("+-")) > len(str(_MAX_DIGITS)):
        return None
    int_part = int_part.replace(",", "")
    frac_part = frac_part or ""
    if not int_part and not frac_part:
        return None

    digits = int_part + frac_part
    point = len(int_part) + (int(exp) if exp else 0)
    if point > _MAX_DIGITS:
        return None
    if point <= 0:
        whole, rest = "", digits
    elif point >= len(digits):
        whole, rest = digits + "0" * (point - len(digits)), ""
    else:
        whole, rest = digits[:point], digits[point:]

    if rest.strip("0"):
        return None
    whole = whole.lstrip("0")
    if not whole:
        return "0"
    return f"-{whole}" if sign == "-" else whole


def _parse_plain_int(text: str) -> int | None:
    s = _WHITESPACE_RE.sub("", text)
    if _GROUPED_INT_RE.match(s):
        s = s.replace(",", "")
    if _PLAIN_INT_RE.match(s) and len(s.lstrip("+-")) <= _MAX_DIGITS:
        return int(s)
    return None


def _clean_decimal_text(text: str) -> list[str]:
    """Candidate spellings of a display number, most faithful first."""
    kept = "".join(ch for ch in text if ch in "0123456789.,-+eE")
    candidates = [kept, kept.replace("e", "").replace("E", "")]
    out: list[str] = []
    for s in candidates:
        if "," in s and "." in s:
            s = s.replace(",", "")
        elif s.count(",") == 1:
            s = s.replace(",", ".")
        elif "," in s:
            s = s.replace(",", "")
        if s and s not in out:
            out.append(s)
    return out


def parse_float_text(text: str) -> float | None:
    """Parse display text as a float, tolerating ``.`` and ``,`` separators."""
    for candidate in _clean_decimal_text(text.strip()):
        try:
            value = float(candidate)
        except ValueError:
            continue
        if math.isfinite(value):
            return value
    return None


def parse_decimal_text(text: str) -> Decimal | None:
    for candidate in _clean_decimal_text(text.strip()):
        try:
            value = Decimal(candidate)
        except InvalidOperation:
            continue
        if value.is_finite():
            return value
    return None


# ---------------------------------------------------------------------------
# time
# ---------------------------------------------------------------------------
def parse_time_text(
    text: str,
    time_format: str | None = None,
    zone: tzinfo | None = None,
) -> datetime | None:
    """Parse a timestamp, trying ``time_format`` before the fallback list."""
    text = text.strip()
    if not text:
        return None
    formats = [to_strptime(time_format)] if time_format else []
    formats.extend(FALLBACK_TIME_FORMATS)
    for fmt in formats:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is None and zone is not None:
            parsed = parsed.replace(tzinfo=zone)
        return parsed
    return None


def _serial_to_time(
    raw: str,
    zone: tzinfo | None,
    date1904: bool,
    convert: SerialConverter,
) -> datetime | None:
    try:
        value = convert(float(raw), date1904)
    except (ValueError, OverflowError):
        return None
    if isinstance(value, time):
        value = datetime.combine(date(1904, 1, 1) if date1904 else date(1899, 12, 30), value)
    elif not isinstance(value, datetime) and isinstance(value, date):
        value = datetime.combine(value, time())
    if zone is not None:
        value = value.replace(tzinfo=zone)
    return value


# ---------------------------------------------------------------------------
# per-kind coercion
# ---------------------------------------------------------------------------
def coerce_bool(cell: CellValue) -> bool:
    if cell.storage is StorageType.BOOLEAN:
        return cell.raw.strip().lower() in ("1", "true")
    return cell.formatted.strip().lower() in TRUE_TOKENS


def coerce_int(cell: CellValue, *, unsigned: bool = False) -> int | None:
    exact = exact_integer_string(cell.raw)
    if exact is not None:
        value: int | None = int(exact)
    else:
        value = _parse_plain_int(cell.formatted)
        if value is None:
            f = parse_float_text(cell.formatted)
            value = int(f) if f is not None else None
    if value is None or (unsigned and value < 0):
        return None
    return value


def coerce_float(cell: CellValue) -> float | None:
    if cell.storage is StorageType.NUMBER:
        try:
            value = float(cell.raw)
        except ValueError:
            pass
        else:
            if math.isfinite(value):
                return value
    return parse_float_text(cell.formatted)


def coerce_decimal(cell: CellValue) -> Decimal | None:
    if cell.storage is StorageType.NUMBER:
        try:
            value = Decimal(cell.raw.strip())
        except InvalidOperation:
            pass
        else:
            if value.is_finite():
                return value
    return parse_decimal_text(cell.formatted)


def coerce_string(cell: CellValue) -> str:
    """Trimmed display text, with numeric text normalised to its exact spelling."""
    formatted = cell.formatted.strip()
    if cell.storage is StorageType.BOOLEAN:
        return formatted
    # Phone numbers and other identifiers keep their exact spelling.
    if formatted.startswith("+") or _LEADING_ZERO_RE.match(formatted):
        return formatted
    raw = cell.raw.strip()
    for text in (raw, formatted):
        if looks_numeric(text):
            exact = exact_integer_string(text)
            if exact is not None:
                return exact
    if looks_numeric(raw):
        return raw
    return formatted


def coerce_time(
    cell: CellValue,
    time_format: str | None = None,
    zone: tzinfo | None = None,
    date1904: bool = False,
    convert: SerialConverter | None = None,
) -> datetime | None:
    if cell.storage is StorageType.NUMBER:
        return _serial_to_time(cell.raw, zone, date1904, convert or date_serial_to_calendar)
    return parse_time_text(cell.formatted, time_format, zone)


def coerce(
    cell: CellValue,
    kind: FieldKind,
    *,
    time_format: str | None = None,
    zone: tzinfo | str | None = None,
    date1904: bool = False,
    convert: SerialConverter | None = None,
) -> tuple[Any, bool]:
    """Coerce one cell into a value of ``kind``.

    ``zone`` may be a tzinfo or an IANA name.  ``convert`` turns a date
    serial into a calendar datetime; it defaults to the openpyxl rules.
    """
    if isinstance(zone, str):
        zone = resolve_zone(zone)

    value: Any
    if kind is FieldKind.BOOL:
        return coerce_bool(cell), True
    if kind is FieldKind.STRING:
        return coerce_string(cell), True
    if kind is FieldKind.INT:
        value = coerce_int(cell)
    elif kind is FieldKind.UINT:
        value = coerce_int(cell, unsigned=True)
    elif kind is FieldKind.FLOAT:
        value = coerce_float(cell)
    elif kind is FieldKind.DECIMAL:
        value = coerce_decimal(cell)
    elif kind is FieldKind.TIMESTAMP:
        value = coerce_time(cell, time_format, zone, date1904, convert)
    else:
        value = None
    return value, value is not None
