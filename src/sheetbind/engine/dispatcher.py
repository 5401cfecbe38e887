"""Response envelopes for CLI commands and the error-code -> exit-code table."""

from __future__ import annotations

import sys
from typing import Any

import orjson

from sheetbind.contracts.common import (
    ErrorDetail,
    Metrics,
    ResponseEnvelope,
    Target,
    WarningDetail,
)

EXIT_SUCCESS = 0
EXIT_VALIDATION = 10
EXIT_IO = 50
EXIT_INTERNAL = 90

# Caller mistakes exit 10; anything about the file on disk exits 50.
ERROR_EXIT_CODES: dict[str, int] = {
    "ERR_USAGE": EXIT_VALIDATION,
    "ERR_MODEL_INVALID": EXIT_VALIDATION,
    "ERR_DATA_INVALID": EXIT_VALIDATION,
    "ERR_CONFIG_INVALID": EXIT_VALIDATION,
    "ERR_SHEET_NOT_FOUND": EXIT_VALIDATION,
    "ERR_WORKBOOK_NOT_FOUND": EXIT_IO,
    "ERR_WORKBOOK_CORRUPT": EXIT_IO,
    "ERR_LOCKED": EXIT_IO,
    "ERR_IO": EXIT_IO,
    "ERR_INTERNAL": EXIT_INTERNAL,
}


def success_envelope(
    command: str,
    result: Any,
    *,
    target: Target | None = None,
    warnings: list[WarningDetail] | None = None,
    duration_ms: int = 0,
) -> ResponseEnvelope:
    return ResponseEnvelope(
        ok=True,
        command=command,
        target=target or Target(),
        result=result,
        warnings=warnings or [],
        metrics=Metrics(duration_ms=duration_ms),
    )


def error_envelope(
    command: str,
    code: str,
    message: str,
    *,
    target: Target | None = None,
    details: dict | None = None,
    duration_ms: int = 0,
) -> ResponseEnvelope:
    """A failed response carrying a single ``ErrorDetail``."""
    return ResponseEnvelope(
        ok=False,
        command=command,
        target=target or Target(),
        errors=[ErrorDetail(code=code, message=message, details=details)],
        metrics=Metrics(duration_ms=duration_ms),
    )


def output_json(envelope: ResponseEnvelope) -> str:
    data = envelope.model_dump(mode="json")
    return orjson.dumps(data, option=orjson.OPT_INDENT_2).decode()


def print_response(envelope: ResponseEnvelope) -> None:
    sys.stdout.write(output_json(envelope) + "\n")


def exit_code_for(envelope: ResponseEnvelope) -> int:
    """Exit code for an envelope, keyed on its first error code.

    Unknown codes fall back on their suffix so a new ``ERR_*_NOT_FOUND``
    still reads as an io failure.
    """
    if envelope.ok:
        return EXIT_SUCCESS
    if not envelope.errors:
        return EXIT_INTERNAL
    code = envelope.errors[0].code.upper()
    if code in ERROR_EXIT_CODES:
        return ERROR_EXIT_CODES[code]
    if code.endswith("_INVALID"):
        return EXIT_VALIDATION
    if code.endswith("_NOT_FOUND") or code.startswith("ERR_IO"):
        return EXIT_IO
    return EXIT_INTERNAL
