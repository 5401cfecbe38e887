"""Record type descriptors built from dataclasses and pydantic models.

Tags live with the field declaration::

    @dataclass
    class Customer:
        name: str = xlsx_field("name:Name")
        phone: str = xlsx_field("name:Phone")
        birth: datetime | None = xlsx_field("name:Birth date;time_format:02-01-2006", default=None)
        internal_id: int = xlsx_field("-", default=0)

or, on a pydantic model, ``Field(json_schema_extra={"xlsx": "name:Phone"})``.
A descriptor is built once per type and cached.
"""

from __future__ import annotations

import dataclasses
import functools
import types
import typing
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, NewType, Union

from pydantic import BaseModel

from sheetbind.contracts.common import FieldKind, UsageError
from sheetbind.contracts.tags import TagOptions
from sheetbind.tags import parse_tag

TAG_KEY = "xlsx"

UInt = NewType("UInt", int)

ZERO_TIME = datetime(1, 1, 1)

_ZEROS: dict[FieldKind, Any] = {
    FieldKind.STRING: "",
    FieldKind.BOOL: False,
    FieldKind.INT: 0,
    FieldKind.UINT: 0,
    FieldKind.FLOAT: 0.0,
    FieldKind.DECIMAL: Decimal(0),
    FieldKind.TIMESTAMP: ZERO_TIME,
    FieldKind.OTHER: None,
}

_MISSING: Any = dataclasses.MISSING

# Marks a field with no declared default.
NO_DEFAULT: Any = object()


def xlsx_field(
    tag: str = "",
    *,
    default: Any = _MISSING,
    default_factory: Callable[[], Any] | Any = _MISSING,
    **kwargs: Any,
) -> Any:
    """A ``dataclasses.field`` carrying an ``xlsx`` directive."""
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[TAG_KEY] = tag
    return dataclasses.field(default=default, default_factory=default_factory, metadata=metadata, **kwargs)


@dataclass(frozen=True)
class FieldDescriptor:
    """One field of a record type, with its kind and parsed tag."""

    name: str
    position: int
    kind: FieldKind
    optional: bool
    tag: TagOptions
    annotation: Any = None
    default: Any = NO_DEFAULT
    default_factory: Callable[[], Any] | None = None

    @property
    def display_name(self) -> str:
        return self.tag.display_name(self.name)

    @property
    def skip(self) -> bool:
        return self.tag.skip

    def zero(self) -> Any:
        return None if self.optional else _ZEROS[self.kind]

    def initial(self) -> Any:
        """Declared default, else the absent/zero value for the kind."""
        if self.default is not NO_DEFAULT:
            return self.default
        if self.default_factory is not None:
            return self.default_factory()
        return self.zero()


@dataclass(frozen=True)
class RecordDescriptor:
    record_type: type
    fields: tuple[FieldDescriptor, ...]

    def bound_fields(self) -> tuple[FieldDescriptor, ...]:
        """Fields taking part in binding (everything not tagged ``-``)."""
        return tuple(f for f in self.fields if not f.skip)

    def initial_values(self) -> dict[str, Any]:
        return {f.name: f.initial() for f in self.fields}


def _unwrap(tp: Any) -> tuple[Any, bool]:
    """Strip ``Annotated`` and ``Optional``; return (inner type, optional)."""
    optional = False
    while True:
        origin = typing.get_origin(tp)
        if origin is typing.Annotated:
            tp = typing.get_args(tp)[0]
        elif origin is Union or origin is types.UnionType:
            args = [a for a in typing.get_args(tp) if a is not type(None)]
            if len(args) != len(typing.get_args(tp)):
                optional = True
            if len(args) != 1:
                return tp, optional
            tp = args[0]
        else:
            return tp, optional


def kind_of(tp: Any) -> FieldKind:
    if tp is UInt:
        return FieldKind.UINT
    if not isinstance(tp, type):
        return FieldKind.OTHER
    if issubclass(tp, bool):
        return FieldKind.BOOL
    if issubclass(tp, str):
        return FieldKind.STRING
    if issubclass(tp, int):
        return FieldKind.INT
    if issubclass(tp, float):
        return FieldKind.FLOAT
    if issubclass(tp, Decimal):
        return FieldKind.DECIMAL
    if issubclass(tp, datetime):
        return FieldKind.TIMESTAMP
    return FieldKind.OTHER


def is_record_type(tp: Any) -> bool:
    return isinstance(tp, type) and (
        dataclasses.is_dataclass(tp) or issubclass(tp, BaseModel)
    )


def record_type_of(target: Any) -> type:
    """Accept ``Record``, ``list[Record]`` or ``Sequence[Record]``."""
    origin = typing.get_origin(target)
    if origin is not None:
        args = typing.get_args(target)
        if not isinstance(origin, type) or not issubclass(origin, Sequence) or issubclass(origin, str):
            raise UsageError(f"Destination must be a sequence of records, got {target!r}")
        if len(args) != 1:
            raise UsageError(f"Destination sequence needs one element type, got {target!r}")
        target = args[0]
    if not is_record_type(target):
        raise UsageError(f"Record type must be a dataclass or pydantic model, got {target!r}")
    return target


def _dataclass_fields(record_type: type) -> list[FieldDescriptor]:
    hints = typing.get_type_hints(record_type, include_extras=True)
    out: list[FieldDescriptor] = []
    for f in dataclasses.fields(record_type):
        if not f.init:
            continue
        annotation = hints.get(f.name, Any)
        inner, optional = _unwrap(annotation)
        out.append(FieldDescriptor(
            name=f.name,
            position=len(out),
            kind=kind_of(inner),
            optional=optional,
            tag=parse_tag(f.metadata.get(TAG_KEY)),
            annotation=inner,
            default=NO_DEFAULT if f.default is _MISSING else f.default,
            default_factory=None if f.default_factory is _MISSING else f.default_factory,
        ))
    return out


def _model_fields(record_type: type[BaseModel]) -> list[FieldDescriptor]:
    out: list[FieldDescriptor] = []
    for name, info in record_type.model_fields.items():
        inner, optional = _unwrap(info.annotation)
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        tag = extra.get(TAG_KEY)
        out.append(FieldDescriptor(
            name=name,
            position=len(out),
            kind=kind_of(inner),
            optional=optional,
            tag=parse_tag(tag if isinstance(tag, str) else None),
            annotation=inner,
            default=NO_DEFAULT if info.is_required() or info.default_factory else info.default,
            default_factory=info.default_factory,
        ))
    return out


@functools.lru_cache(maxsize=None)
def describe(record_type: type) -> RecordDescriptor:
    """Build (once) the descriptor for a dataclass or pydantic model."""
    if not is_record_type(record_type):
        raise UsageError(f"Record type must be a dataclass or pydantic model, got {record_type!r}")
    if dataclasses.is_dataclass(record_type):
        fields = _dataclass_fields(record_type)
    else:
        fields = _model_fields(record_type)
    return RecordDescriptor(record_type=record_type, fields=tuple(fields))
