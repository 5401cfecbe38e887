"""Typer CLI application: inspect, read and write sheets through record models."""

from __future__ import annotations

import dataclasses
import importlib
from pathlib import Path
from typing import Annotated, Any, Optional

import orjson
import portalocker
import typer
import yaml
from pydantic import BaseModel, TypeAdapter, ValidationError

import sheetbind
from sheetbind.addressing import cell_address
from sheetbind.config import BindConfig
from sheetbind.contracts.common import (
    SheetBindError,
    Target,
    UsageError,
    WarningDetail,
    WorkbookCorruptError,
)
from sheetbind.contracts.responses import HeaderMeta, ReadResult, WorkbookMeta, WriteResult
from sheetbind.engine.dispatcher import (
    error_envelope,
    exit_code_for,
    print_response,
    success_envelope,
)
from sheetbind.io.fileops import read_text_safe
from sheetbind.observe.events import EventEmitter, Timer, TraceRecorder

_MAIN_HELP = """\
Bind spreadsheet sheets to typed record models (dataclasses or pydantic).

**Typical workflow:**  inspect → read → write

1. `sheetbind inspect -f data.xlsx`: sheets, date system, header columns
2. `sheetbind read -f data.xlsx --model myapp.models:Customer`: rows as typed records
3. `sheetbind write -f data.xlsx --model myapp.models:Customer --data rows.json --sheet Customers`

**Every command** returns a JSON `ResponseEnvelope`:
`{"ok": bool, "command": "...", "result": {...}, "errors": [...], "warnings": [...], "metrics": {"duration_ms": N}}`

**Field tags** (`xlsx` metadata): `name:Phone;width:20;divide:100;round:100;time_format:02.01.2006;locale:Europe/Kyiv;emptyIfZero`, or `-` to skip.

**Exit codes:** 0=success, 10=validation, 50=io, 90=internal
"""

app = typer.Typer(
    name="sheetbind",
    help=_MAIN_HELP,
    no_args_is_help=True,
    rich_markup_mode="markdown",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(sheetbind.__version__)
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def callback(
    version: Annotated[
        bool, typer.Option("--version", "-V", help="Print version and exit.", is_eager=True)
    ] = False,
) -> None:
    if version:
        _version_callback(True)


# Type aliases for common options
FilePath = Annotated[str, typer.Option("--file", "-f", help="Path to .xlsx workbook file")]
SheetOpt = Annotated[Optional[str], typer.Option("--sheet", "-s", help="Sheet name (default: first sheet)")]
ModelOpt = Annotated[str, typer.Option("--model", "-m", help="Record type as 'package.module:ClassName'")]
ConfigOpt = Annotated[Optional[str], typer.Option("--config", "-c", help="Path to a sheetbind.yaml config file")]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _load_ctx(file: str, *, data_only: bool = False):
    from sheetbind.engine.context import WorkbookContext
    return WorkbookContext(file, data_only=data_only)


def _emit(envelope, code=None):
    print_response(envelope)
    raise typer.Exit(code if code is not None else exit_code_for(envelope))


def _load_ctx_or_emit(file: str, cmd: str, *, data_only: bool = False):
    """Load a WorkbookContext, or emit an error envelope and exit."""
    try:
        return _load_ctx(file, data_only=data_only)
    except FileNotFoundError:
        env = error_envelope(cmd, "ERR_WORKBOOK_NOT_FOUND", f"File not found: {file}", target=Target(file=file))
        _emit(env)
    except WorkbookCorruptError as e:
        env = error_envelope(cmd, "ERR_WORKBOOK_CORRUPT", str(e), target=Target(file=file))
        _emit(env)


def _import_model(model_ref: str) -> type:
    """Resolve ``package.module:ClassName`` to a record type."""
    from sheetbind.schema import record_type_of

    module_name, sep, attr = model_ref.partition(":")
    if not sep or not module_name or not attr:
        raise UsageError(f"Model must be given as 'module:ClassName', got {model_ref!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise UsageError(f"Cannot import module {module_name!r}: {e}") from e
    obj: Any = module
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise UsageError(f"Module {module_name!r} has no attribute {attr!r}") from e
    return record_type_of(obj)


def _import_model_or_emit(model_ref: str, cmd: str, file: str) -> type:
    try:
        return _import_model(model_ref)
    except UsageError as e:
        _emit(error_envelope(cmd, "ERR_MODEL_INVALID", str(e), target=Target(file=file, model=model_ref)))


def _load_config_or_emit(config_path: str | None, file: str, cmd: str) -> BindConfig:
    """Explicit ``--config``, else ``sheetbind.yaml`` beside the workbook, else defaults."""
    try:
        if config_path:
            return BindConfig.load(config_path)
        return BindConfig.load_from_dir(Path(file).resolve().parent) or BindConfig()
    except (OSError, yaml.YAMLError, ValidationError, ValueError) as e:
        _emit(error_envelope(cmd, "ERR_CONFIG_INVALID", f"Invalid config: {e}", target=Target(file=file)))


# Largest magnitude a JSON reader parsing numbers as doubles keeps exact.
JSON_SAFE_INT = 2**53


def _json_safe(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool) and abs(value) > JSON_SAFE_INT:
        return str(value)
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def record_to_dict(record: Any) -> dict[str, Any]:
    """Dump a dataclass or pydantic record as JSON-safe primitives."""
    if isinstance(record, BaseModel):
        data = record.model_dump()
    else:
        data = dataclasses.asdict(record)
    data = _json_safe(data)
    return orjson.loads(orjson.dumps(data, default=str))


def _miss_warnings(trace: TraceRecorder) -> list[WarningDetail]:
    warnings = []
    for entry in trace.by_category("coerce.miss"):
        warnings.append(WarningDetail(
            code="COERCE_MISS",
            message=f"Cannot read {entry['formatted']!r} as {entry['kind']} for field {entry['field']!r}",
            path=cell_address(entry["column"], entry["row"]),
        ))
    for entry in trace.by_category("record.invalid"):
        warnings.append(WarningDetail(
            code="RECORD_INVALID",
            message=f"{entry['type']} failed validation; kept unvalidated: {len(entry['errors'])} error(s)",
        ))
    return warnings


# ---------------------------------------------------------------------------
# sheetbind version
# ---------------------------------------------------------------------------
@app.command()
def version():
    """Print the sheetbind version.

    Example: `sheetbind version`
    """
    env = success_envelope("version", {"version": sheetbind.__version__})
    _emit(env)


# ---------------------------------------------------------------------------
# sheetbind inspect
# ---------------------------------------------------------------------------
@app.command("inspect")
def inspect_cmd(
    file: FilePath,
    sheet: SheetOpt = None,
    config_path: ConfigOpt = None,
):
    """Inspect a workbook: sheets, date system, fingerprint and header columns.

    The header map shows which display names a record model can bind to,
    using the same scan limits as `sheetbind read`.

    Example: `sheetbind inspect -f data.xlsx --sheet Customers`
    """
    from sheetbind.io.fileops import fingerprint
    from sheetbind.scanner import scan_header

    with Timer() as t:
        config = _load_config_or_emit(config_path, file, "inspect")
        ctx = _load_ctx_or_emit(file, "inspect", data_only=True)
        names = ctx.list_sheet_names()
        target_sheet = sheet or (names[0] if names else None)
        if target_sheet is not None and target_sheet not in names:
            ctx.close()
            env = error_envelope(
                "inspect", "ERR_SHEET_NOT_FOUND", f"Sheet not found: {target_sheet}",
                target=Target(file=file, sheet=target_sheet),
                details={"sheets": names},
            )
            _emit(env)
            return

        header = None
        if target_sheet is not None:
            header = HeaderMeta(sheet=target_sheet, columns=scan_header(ctx, target_sheet, config))
        meta = WorkbookMeta(
            path=str(ctx.path),
            fingerprint=fingerprint(file),
            date1904=ctx.is_date1904(),
            sheets=ctx.list_sheets(),
            header=header,
        )
        ctx.close()

    env = success_envelope(
        "inspect",
        meta.model_dump(),
        target=Target(file=file, sheet=target_sheet),
        duration_ms=t.elapsed_ms,
    )
    _emit(env)


# ---------------------------------------------------------------------------
# sheetbind read
# ---------------------------------------------------------------------------
@app.command("read")
def read_cmd(
    file: FilePath,
    model: ModelOpt,
    sheet: SheetOpt = None,
    config_path: ConfigOpt = None,
    events: Annotated[bool, typer.Option("--events", help="Stream NDJSON scan events to stderr")] = False,
    trace_path: Annotated[Optional[str], typer.Option("--trace", help="Save coerce.miss / record.invalid entries as JSON")] = None,
):
    """Read a sheet into records of a dataclass or pydantic model. Non-mutating.

    Row 1 is the header; each field binds to the column named by its tag
    (or its own name).  Cells that cannot be read as the field's type are
    reported as COERCE_MISS warnings and leave the field at its default.

    Example: `sheetbind read -f data.xlsx --model myapp.models:Customer`
    """
    from sheetbind.binder import deserialize

    target = Target(file=file, sheet=sheet, model=model)
    with Timer() as t:
        record_type = _import_model_or_emit(model, "read", file)
        config = _load_config_or_emit(config_path, file, "read")
        ctx = _load_ctx_or_emit(file, "read", data_only=True)
        trace = TraceRecorder()
        try:
            records = deserialize(
                ctx, record_type, sheet=sheet, config=config,
                events=EventEmitter(enabled=events, command="read"), trace=trace,
            )
        except KeyError:
            env = error_envelope(
                "read", "ERR_SHEET_NOT_FOUND", f"Sheet not found: {sheet}",
                target=target, details={"sheets": ctx.list_sheet_names()},
            )
            ctx.close()
            _emit(env)
            return
        except UsageError as e:
            ctx.close()
            _emit(error_envelope("read", "ERR_USAGE", str(e), target=target))
            return
        read_sheet = sheet or ctx.list_sheet_names()[0]
        ctx.close()
        if trace_path:
            try:
                trace.save(trace_path)
            except OSError as e:
                _emit(error_envelope("read", "ERR_IO", f"Cannot write trace: {e}", target=target))
                return

    result = ReadResult(
        model=model,
        sheet=read_sheet,
        row_count=len(records),
        rows=[record_to_dict(r) for r in records],
        trace_counts=trace.counts(),
        trace_path=trace_path,
    )
    env = success_envelope(
        "read",
        result.model_dump(),
        target=Target(file=file, sheet=read_sheet, model=model),
        warnings=_miss_warnings(trace),
        duration_ms=t.elapsed_ms,
    )
    _emit(env)


# ---------------------------------------------------------------------------
# sheetbind write
# ---------------------------------------------------------------------------
def _load_rows(data_path: str, record_type: type) -> list[Any]:
    """Parse a JSON array of objects and validate each into ``record_type``."""
    try:
        data = orjson.loads(read_text_safe(data_path))
    except (OSError, orjson.JSONDecodeError) as e:
        raise ValueError(f"Cannot parse data file: {e}") from e
    if not isinstance(data, list):
        raise ValueError("Data file must contain a JSON array of objects")
    adapter = TypeAdapter(list[record_type])  # type: ignore[valid-type]
    return adapter.validate_python(data)


@app.command("write")
def write_cmd(
    file: FilePath,
    model: ModelOpt,
    data_path: Annotated[str, typer.Option("--data", "-d", help="JSON file holding an array of row objects")],
    sheet: Annotated[str, typer.Option("--sheet", "-s", help="Sheet to write (replaced if it exists)")],
    config_path: ConfigOpt = None,
    do_backup: Annotated[bool, typer.Option("--backup/--no-backup", help="Create timestamped .bak copy before writing")] = False,
    create: Annotated[bool, typer.Option("--create", help="Create the workbook if it does not exist")] = False,
    lock_timeout: Annotated[float, typer.Option("--lock-timeout", help="Seconds to wait for another writer")] = 0,
    events: Annotated[bool, typer.Option("--events", help="Stream NDJSON write events to stderr")] = False,
):
    """Write records to a sheet, replacing it if present. Mutating.

    Rows are validated against the model first; nothing is written when
    any row is invalid.  The workbook is saved atomically while holding a
    `<file>.sheetbind.lock` sidecar lock.

    Example: `sheetbind write -f data.xlsx --model myapp.models:Customer --data rows.json --sheet Customers --backup`
    """
    from sheetbind.engine.context import WorkbookContext
    from sheetbind.io.fileops import WorkbookLock, fingerprint
    from sheetbind.io.fileops import backup as make_backup
    from sheetbind.schema import describe
    from sheetbind.writer import serialize

    target = Target(file=file, sheet=sheet, model=model)
    with Timer() as t:
        record_type = _import_model_or_emit(model, "write", file)
        config = _load_config_or_emit(config_path, file, "write")
        try:
            records = _load_rows(data_path, record_type)
        except ValidationError as e:
            env = error_envelope(
                "write", "ERR_DATA_INVALID", f"{e.error_count()} invalid value(s) in {data_path}",
                target=target, details={"errors": orjson.loads(e.json())},
            )
            _emit(env)
            return
        except ValueError as e:
            _emit(error_envelope("write", "ERR_DATA_INVALID", str(e), target=target))
            return

        path = Path(file)
        exists = path.exists()
        if not exists and not create:
            env = error_envelope(
                "write", "ERR_WORKBOOK_NOT_FOUND",
                f"File not found: {file}. Use --create to start a new workbook.",
                target=target,
            )
            _emit(env)
            return

        try:
            with WorkbookLock(path, timeout=lock_timeout):
                ctx = _load_ctx_or_emit(file, "write") if exists else WorkbookContext.new()
                fp_before = fingerprint(path) if exists else None
                placeholder = None if exists else ctx.list_sheet_names()
                try:
                    written = serialize(
                        ctx, sheet, records, record_type=record_type,
                        config=config, events=EventEmitter(enabled=events, command="write"),
                    )
                except UsageError as e:
                    ctx.close()
                    _emit(error_envelope("write", "ERR_USAGE", str(e), target=target))
                    return
                # A fresh workbook starts with a default sheet nobody asked for.
                for name in placeholder or []:
                    if name != sheet:
                        ctx.delete_sheet(name)

                try:
                    backup_path = make_backup(path) if exists and do_backup else None
                    ctx.save(path)
                except OSError as e:
                    _emit(error_envelope("write", "ERR_IO", f"Cannot save workbook: {e}", target=target))
                    return
                finally:
                    ctx.close()
                fp_after = fingerprint(path)
        except portalocker.LockException:
            env = error_envelope(
                "write", "ERR_LOCKED", f"Workbook is locked by another writer: {file}",
                target=target,
            )
            _emit(env)
            return

    result = WriteResult(
        model=model,
        sheet=sheet,
        rows_written=written,
        columns=[f.display_name for f in describe(record_type).bound_fields()],
        backup_path=backup_path,
        fingerprint_before=fp_before,
        fingerprint_after=fp_after,
    )
    env = success_envelope("write", result.model_dump(), target=target, duration_ms=t.elapsed_ms)
    _emit(env)


# ---------------------------------------------------------------------------
# sheetbind tag
# ---------------------------------------------------------------------------
@app.command("tag")
def tag_cmd(
    directive: Annotated[str, typer.Argument(help="Field directive, e.g. 'name:Phone;width:20'")],
):
    """Parse a field directive and show its options and canonical form.

    Example: `sheetbind tag "name:Born;time_format:02.01.2006;locale:Europe/Kyiv"`
    """
    from sheetbind.tags import format_tag, parse_tag

    options = parse_tag(directive)
    env = success_envelope("tag", {"options": options.model_dump(), "canonical": format_tag(options)})
    _emit(env)


# ---------------------------------------------------------------------------
# Entrypoint (for `python -m sheetbind`)
# ---------------------------------------------------------------------------
def main() -> None:
    try:
        app()
    except SystemExit:
        raise
    except SheetBindError as exc:
        print_response(error_envelope("unknown", "ERR_USAGE", str(exc)))
        raise SystemExit(10) from exc
    except Exception as exc:
        # Machine consumers get an envelope instead of a traceback.
        print_response(error_envelope("unknown", "ERR_INTERNAL", str(exc)))
        raise SystemExit(90) from exc


if __name__ == "__main__":
    main()
