"""Tests for record type descriptors."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional, Sequence

import pytest

from bind_models import Counter, Customer, NotARecord, Order
from sheetbind.contracts.common import FieldKind, UsageError
from sheetbind.schema import NO_DEFAULT, ZERO_TIME, UInt, describe, kind_of, record_type_of


def test_describe_dataclass():
    desc = describe(Customer)
    assert [f.name for f in desc.fields] == ["name", "phone", "account", "active", "birth", "internal_id"]
    assert [f.position for f in desc.fields] == [0, 1, 2, 3, 4, 5]
    by_name = {f.name: f for f in desc.fields}
    assert by_name["phone"].kind is FieldKind.STRING
    assert by_name["account"].kind is FieldKind.INT
    assert by_name["active"].kind is FieldKind.BOOL
    assert by_name["birth"].kind is FieldKind.TIMESTAMP
    assert by_name["birth"].optional is True
    assert by_name["name"].tag.width == 24
    assert by_name["internal_id"].skip is True


def test_bound_fields_exclude_skipped():
    names = [f.display_name for f in describe(Customer).bound_fields()]
    assert names == ["Name", "Phone", "Account", "Active", "Birth date"]


def test_describe_is_cached():
    assert describe(Customer) is describe(Customer)


def test_describe_pydantic_model():
    desc = describe(Order)
    by_name = {f.name: f for f in desc.fields}
    assert by_name["order_id"].display_name == "Order ID"
    assert by_name["total"].kind is FieldKind.DECIMAL
    assert by_name["shipped"].optional is True
    assert by_name["note"].skip is True


def test_uint_kind():
    desc = describe(Counter)
    assert desc.fields[1].kind is FieldKind.UINT
    assert desc.fields[2].kind is FieldKind.FLOAT
    assert desc.fields[2].optional is True


def test_initial_values_use_defaults_then_zeros():
    values = describe(Customer).initial_values()
    assert values == {
        "name": "",
        "phone": "",
        "account": 0,
        "active": False,
        "birth": None,
        "internal_id": -1,
    }


def test_fields_without_defaults_are_marked():
    by_name = {f.name: f for f in describe(Customer).fields}
    assert by_name["name"].default is NO_DEFAULT
    assert by_name["name"].default_factory is None
    assert by_name["name"].initial() == ""
    assert by_name["internal_id"].default == -1

    order = {f.name: f for f in describe(Order).fields}
    assert order["order_id"].default is NO_DEFAULT
    assert order["shipped"].initial() is None


def test_none_is_a_declared_default():
    @dataclass
    class Maybe:
        label: str = None  # type: ignore[assignment]

    [f] = describe(Maybe).fields
    assert f.default is None
    assert f.initial() is None


def test_zero_values_per_kind():
    @dataclass
    class Zeros:
        s: str
        b: bool
        i: int
        f: float
        d: Decimal
        t: datetime
        items: list = field(default_factory=list)

    values = describe(Zeros).initial_values()
    assert values == {"s": "", "b": False, "i": 0, "f": 0.0, "d": Decimal(0), "t": ZERO_TIME, "items": []}


@pytest.mark.parametrize(
    "annotation,kind",
    [(str, FieldKind.STRING), (bool, FieldKind.BOOL), (int, FieldKind.INT), (UInt, FieldKind.UINT),
     (float, FieldKind.FLOAT), (Decimal, FieldKind.DECIMAL), (datetime, FieldKind.TIMESTAMP),
     (list, FieldKind.OTHER), (dict, FieldKind.OTHER)],
)
def test_kind_of(annotation, kind):
    assert kind_of(annotation) is kind


def test_annotated_and_optional_unwrap():
    @dataclass
    class Wrapped:
        a: Annotated[int, "meta"] = 0
        b: Optional[Annotated[str, "meta"]] = None
        c: int | None = None

    fields = describe(Wrapped).fields
    assert [(f.kind, f.optional) for f in fields] == [
        (FieldKind.INT, False),
        (FieldKind.STRING, True),
        (FieldKind.INT, True),
    ]


def test_record_type_of_accepts_sequences():
    assert record_type_of(Customer) is Customer
    assert record_type_of(list[Customer]) is Customer
    assert record_type_of(Sequence[Customer]) is Customer


@pytest.mark.parametrize("target", [int, NotARecord, dict[str, Customer], list, str])
def test_record_type_of_rejects(target):
    with pytest.raises(UsageError):
        record_type_of(target)
