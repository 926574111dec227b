import math
from itertools import product

import pytest

from structure.structure_errors import ImmutableError
from structure.structure_func import BridgeFunc
from structure.structure_item import (
    Absent, Attr, Bool, Data, Extant, Field, Item, Num, Slot, Text, Value, format_number,
)
from structure.structure_operator import PlusOperator
from structure.structure_record import Record
from structure.structure_selector import Selector


# --- Singletons and interning ---

def test_absent_and_extant_are_singletons():
    assert Value.absent() is Absent.absent() is Item.absent()
    assert Value.extant() is Extant.extant() is Item.extant()
    assert not Value.absent().is_defined()
    assert Value.extant().is_defined()
    assert not Value.extant().is_distinct()


def test_small_integral_nums_are_interned():
    assert Num.of(5) is Num.of(5)
    assert Num.of(5.0) is Num.of(5)
    # outside int32 range and negative zero are fresh instances
    assert Num.of(2 ** 40) is not Num.of(2 ** 40)
    assert Num.of(2 ** 40) == Num.of(2 ** 40)
    assert Num.of(-0.0) is not Num.of(0)


def test_short_texts_are_interned():
    assert Text.of("abc") is Text.of("abc")
    assert Text.of("") is Text.empty()
    long = "x" * 100
    assert Text.of(long) is not Text.of(long)
    assert Text.of(long) == Text.of(long)


def test_bool_of_is_interned():
    assert Bool.of(True) is Bool.of(True)
    assert Bool.of(False) is Bool.of(False)
    assert Bool.of(True) is not Bool.of(False)


# --- Equality, hashing and ordering ---

def test_nan_equals_nan_and_hashes_alike():
    a, b = Num.of(math.nan), Num.of(float("nan"))
    assert a.equals(b)
    assert a.hash_code() == b.hash_code()
    assert a.compare_to(b) == 0


def _sample_items():
    return [
        Attr.of("a"),
        Attr.of("a", 1),
        Slot.of("a", 1),
        Slot.of(2, "b"),
        Record.of(1, 2),
        Record.of(1, 2, 3),
        Record.empty(),
        Data.of(b"xy"),
        Text.of("x"),
        Text.of("y"),
        Num.of(1),
        Num.of(2.5),
        Num.of(math.nan),
        Bool.of(False),
        Bool.of(True),
        Selector.get("a"),
        Selector.get("a").plus(1),
        BridgeFunc("f", lambda arguments, caller: Item.absent()),
        Value.extant(),
        Value.absent(),
    ]


def _sign(x):
    return (x > 0) - (x < 0)


def test_compare_to_is_antisymmetric_across_variants():
    items = _sample_items()
    for a, b in product(items, items):
        assert _sign(a.compare_to(b)) == -_sign(b.compare_to(a)), (a, b)


def test_equal_items_hash_alike():
    items = _sample_items()
    twins = _sample_items()
    for a, b in product(items, twins):
        if a.equals(b):
            assert a.hash_code() == b.hash_code(), (a, b)


def test_sorted_orders_by_variant_rank():
    items = _sample_items()
    ordered = sorted(reversed(items))
    ranks = [item.type_order() for item in ordered]
    assert ranks == sorted(ranks)
    assert isinstance(ordered[0], Attr)
    assert ordered[-1] is Value.absent()


def test_python_equality_and_hash_delegate():
    assert Num.of(3) == Num.of(3)
    assert Num.of(3) != Num.of(4)
    assert Text.of("a") != Num.of(1)
    assert len({Num.of(1), Num.of(1.0), Text.of("1")}) == 2


# --- Arithmetic ---

def test_num_plus_num():
    assert Num.of(2).plus(Num.of(3)) == Num.of(5)
    assert Num.of(2) + 3 == Num.of(5)


def test_mismatched_operands_yield_absent():
    assert Text.of("x").plus(Num.of(1)) is Value.absent()
    assert Num.of(1).plus(Text.of("x")) is Value.absent()
    assert Record.of(1).times(Num.of(2)) is Value.absent()
    assert Value.extant().minus(1) is Value.absent()


def test_text_and_data_concatenate():
    assert Text.of("a").plus("b") == Text.of("ab")
    assert Data.of(b"ab").plus(Data.of(b"c")).value == b"abc"


def test_division_and_modulo_follow_ieee():
    assert Num.of(1).divide(0).value == math.inf
    assert Num.of(-1).divide(0).value == -math.inf
    assert Num.of(0).divide(0).is_nan()
    assert Num.of(7).modulo(3) == Num.of(1)
    # the sign follows the dividend
    assert Num.of(-7).modulo(3) == Num.of(-1)
    assert Num.of(1).modulo(0).is_nan()


def test_bitwise_ops_use_int32():
    assert Num.of(6).bitwise_and(3) == Num.of(2)
    assert Num.of(6).bitwise_or(3) == Num.of(7)
    assert Num.of(6).bitwise_xor(3) == Num.of(5)
    assert Num.of(0).bitwise_not() == Num.of(-1)
    assert Num.of(2 ** 32 + 1).bitwise_or(0) == Num.of(1)
    assert Bool.of(True).bitwise_xor(Bool.of(True)) is Bool.of(False)
    assert Bool.of(True).bitwise_and(Bool.of(False)) is Bool.of(False)


def test_unary_operators():
    assert -Num.of(2) == Num.of(-2)
    assert +Num.of(2) == Num.of(2)
    assert ~Num.of(5) == Num.of(-6)
    assert Num.of(4).inverse() == Num.of(0.25)
    assert Text.of("a").negative() is Value.absent()


def test_logical_operators():
    assert Value.absent().or_(Num.of(3)) == Num.of(3)
    assert Num.of(1).or_(Num.of(3)) == Num.of(1)
    assert Num.of(1).and_(Num.of(2)) == Num.of(2)
    assert Value.absent().and_(Num.of(2)) is Value.absent()
    assert Bool.of(False).or_(Num.of(3)) == Num.of(3)
    assert Bool.of(False).and_(Num.of(3)) is Bool.of(False)


def test_not_maps_between_absent_and_extant():
    assert Value.absent().not_() is Value.extant()
    assert Value.extant().not_() is Value.absent()
    assert Bool.of(True).not_() is Bool.of(False)


def test_comparisons_yield_true_or_absent():
    assert Num.of(1).lt(2) is Bool.of(True)
    assert Num.of(2).lt(1) is Value.absent()
    assert Num.of(2).ge(2) is Bool.of(True)
    assert Text.of("a").eq("a") is Bool.of(True)
    assert Text.of("a").ne("a") is Value.absent()
    # heterogeneous comparisons use the variant rank
    assert Text.of("a").lt(Num.of(1)) is Bool.of(True)


def test_conditional_on_values():
    assert Bool.of(True).conditional(1, 2) == Num.of(1)
    assert Bool.of(False).conditional(1, 2) == Num.of(2)
    assert Value.absent().conditional(1, 2) == Num.of(2)
    assert Text.of("x").conditional(1, 2) == Num.of(1)


def test_operators_on_expressions_build_nodes():
    node = Num.of(1).plus(Selector.get("a"))
    assert isinstance(node, PlusOperator)
    assert node.operand1 == Num.of(1)


# --- Num helpers ---

def test_num_helpers():
    assert Num.of(-3).abs() == Num.of(3)
    assert Num.of(2.1).ceil() == Num.of(3)
    assert Num.of(2.9).floor() == Num.of(2)
    assert Num.of(2.5).round() == Num.of(3)
    assert Num.of(-2.5).round() == Num.of(-2)
    assert Num.of(9).sqrt() == Num.of(3)
    assert Num.of(-1).sqrt().is_nan()
    assert Num.of(2).pow(10) == Num.of(1024)
    assert Num.of(7.9).int_value() == 7


def test_unsigned_nums_keep_their_kind():
    n = Num.uint32(-1)
    assert n.value == 4294967295.0
    assert n.is_uint32() and not n.is_uint64()
    assert Num.uint64(5).is_uint64()
    assert n.abs().is_uint32()


def test_num_rejects_bool():
    with pytest.raises(TypeError):
        Num.of(True)


# --- Conversions ---

@pytest.mark.parametrize("item, expected", [
    (Num.of(5), "5"),
    (Num.of(2.5), "2.5"),
    (Num.of(math.inf), "Infinity"),
    (Num.of(math.nan), "NaN"),
    (Bool.of(True), "true"),
    (Text.of("hi"), "hi"),
    (Value.extant(), ""),
    (Record.of("a", 1), "a1"),
])
def test_string_value(item, expected):
    assert item.string_value() == expected


def test_string_value_missing_is_none():
    assert Value.absent().string_value() is None
    assert Record.of(Slot.of("a", 1)).string_value() is None
    assert Value.absent().string_value("dflt") == "dflt"


def test_number_and_boolean_values():
    assert Text.of(" 42 ").number_value() == 42.0
    assert Text.of("abc").number_value() is None
    assert Bool.of(True).number_value() == 1.0
    assert Text.of("false").boolean_value() is False
    assert Text.of("maybe").boolean_value() is None
    assert Num.of(0).boolean_value() is False
    assert Value.absent().boolean_value() is False
    assert Value.extant().boolean_value() is True


def test_format_number():
    assert format_number(3.0) == "3"
    assert format_number(-0.5) == "-0.5"
    assert format_number(-math.inf) == "-Infinity"


# --- from_any / to_any ---

def test_from_any_primitives():
    assert Value.from_any(None) is Value.extant()
    assert Value.from_any(True) is Bool.of(True)
    assert Value.from_any(3) == Num.of(3)
    assert Value.from_any("s") == Text.of("s")
    assert Value.from_any(b"\x00\x01") == Data.of(b"\x00\x01")
    assert Value.from_any(bytearray(b"z")) == Data.of(b"z")


def test_from_any_collections():
    assert Value.from_any([1, "a"]) == Record.of(1, "a")
    assert Value.from_any({"a": 1}) == Record.of(Slot.of("a", 1))
    record = Value.from_any({"@tag": None, "$0": 1, "x": 2})
    assert record.tag == "tag"
    assert record.get_item(1) == Num.of(1)
    assert record.get("x") == Num.of(2)


def test_from_any_field_objects():
    field = Item.from_any({"$key": "@a", "$value": 1})
    assert isinstance(field, Attr)
    assert field == Attr.of("a", 1)
    assert Value.from_any({"$key": "b", "$value": 2}) == Record.of(Slot.of("b", 2))


def test_from_any_rejects_unknown_types():
    with pytest.raises(TypeError):
        Value.from_any(object())
    with pytest.raises(TypeError):
        Value.from_any({1, 2})


def test_to_any_round_trips_plain_data():
    data = {"@point": None, "x": 1, "y": [1.5, "two", True]}
    assert Value.from_any(data).to_any() == data
    assert Slot.of("k", 1).to_any() == {"$key": "k", "$value": 1}
    assert Attr.of("k").to_any() == {"$key": "@k", "$value": None}
    assert Num.of(3).to_any() == 3 and isinstance(Num.of(3).to_any(), int)


# --- Fields ---

def test_field_of_chooses_attr_for_at_keys():
    assert isinstance(Field.of("@a", 1), Attr)
    assert isinstance(Field.of("a", 1), Slot)
    assert Field.of("@a", 1).key == Text.of("a")


def test_zero_arg_attr_holds_extant():
    assert Attr.of("flag").value is Value.extant()
    assert Slot.of("k").value is Value.extant()


def test_field_arithmetic_updates_the_value():
    assert Slot.of("a", 1).plus(Num.of(2)) == Slot.of("a", 3)
    assert Num.of(2).plus(Slot.of("a", 3)) == Slot.of("a", 5)
    assert Attr.of("a", 1).plus(Slot.of("b", 1)) == Attr.of("a", 2)
    assert Slot.of("a", "x").plus(Num.of(1)) is Value.absent()


def test_committed_field_rejects_set_value():
    field = Slot.of("a", 1)
    field.set_value(2)
    assert field.value == Num.of(2)
    field.commit()
    with pytest.raises(ImmutableError):
        field.set_value(3)


def test_aliased_field_is_not_mutable():
    field = Slot.of("a", 1)
    field.alias()
    assert field.is_aliased()
    assert not field.is_mutable()
    with pytest.raises(ImmutableError):
        field.set_value(2)


def test_key_equals():
    assert Slot.of("a", 1).key_equals("a")
    assert Slot.of(1, "a").key_equals(1)
    assert not Num.of(1).key_equals(1)


# --- Persistent helpers on scalars ---

def test_scalar_updated_and_appended():
    assert Num.of(1).appended(2) == Record.of(1, 2)
    assert Num.of(1).prepended(0) == Record.of(0, 1)
    assert Num.of(1).updated("a", 2) == Record.of(1, Slot.of("a", 2))
    assert Num.of(1).concat(Record.of(2, 3)) == Record.of(1, 2, 3)


def test_max_and_min():
    assert Num.of(1).max(Num.of(4)) == Num.of(4)
    assert Num.of(1).min(Num.of(4)) == Num.of(1)
    assert Text.of("a").max(Num.of(1)) == Num.of(1)


def test_data_base64():
    data = Data.from_base64("aGk=")
    assert data.value == b"hi"
    assert data.size == 2
    assert data.to_base64() == "aGk="
