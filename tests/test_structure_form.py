import pytest

from structure.structure_form import Form, ListForm, TagForm, UnitForm
from structure.structure_item import Attr, Bool, Num, Slot, Text, Value
from structure.structure_record import Record


# --- Primitive forms ---

@pytest.mark.parametrize("item, expected", [
    (Text.of("a"), "a"),
    (Num.of(5), "5"),
    (Bool.of(True), "true"),
    (Record.of(Attr.of("t"), "x"), "x"),
    (Value.absent(), None),
])
def test_string_cast(item, expected):
    assert Form.for_string().cast(item) == expected


@pytest.mark.parametrize("item, expected", [
    (Num.of(2.5), 2.5),
    (Text.of(" 12 "), 12.0),
    (Bool.of(True), 1.0),
    (Text.of("x"), None),
])
def test_number_cast(item, expected):
    assert Form.for_number().cast(item) == expected


@pytest.mark.parametrize("item, expected", [
    (Bool.of(False), False),
    (Text.of("true"), True),
    (Num.of(0), False),
    (Text.of("x"), None),
])
def test_boolean_cast(item, expected):
    assert Form.for_boolean().cast(item) == expected


def test_coerce_falls_back_to_unit():
    assert Text.of("x").coerce(Form.for_number()) == 0
    assert Text.of("x").coerce(Form.for_boolean()) is False
    assert Value.absent().coerce(Form.for_string()) == ""
    assert Text.of("7").coerce(Form.for_number()) == 7.0


def test_cast_or_else():
    assert Text.of("x").cast(Form.for_number(), -1) == -1
    assert Num.of(3).cast(Form.for_number(), -1) == 3


def test_mold():
    assert Form.for_string().mold("a") == Text.of("a")
    assert Form.for_number().mold(3) == Num.of(3)
    assert Form.for_boolean().mold(True) is Bool.of(True)
    assert Form.for_string().mold(None) is Value.extant()


def test_forms_are_cached():
    assert Form.for_string() is Form.for_string()
    assert Form.for_any() is Form.for_any()
    assert Form.for_value() is Form.for_value()


# --- Units ---

def test_with_unit_overrides_fallback():
    form = Form.for_number().with_unit(-1)
    assert isinstance(form, UnitForm)
    assert Text.of("x").coerce(form) == -1
    assert form.cast(Num.of(4)) == 4
    assert form.with_unit(9).unit == 9
    assert repr(form) == "Form.for_number().with_unit(-1)"


def test_missing_unit_uses_or_else():
    form = Form.for_number().with_unit(None)
    assert Text.of("x").coerce(form, "default") == "default"


# --- Tags ---

def test_tagged_mold_adds_header():
    form = Form.for_number().tagged("celsius")
    assert isinstance(form, TagForm)
    item = form.mold(21.5)
    assert item.tag == "celsius"
    assert item == Record.of(Attr.of("celsius"), 21.5)


def test_tagged_cast_requires_tag():
    form = Form.for_number().tagged("celsius")
    assert form.cast(Record.of(Attr.of("celsius"), 21.5)) == 21.5
    assert form.cast(Record.of(Attr.of("fahrenheit"), 70)) is None
    assert form.cast(Num.of(5)) is None
    assert Num.of(5).coerce(form) == 0


def test_retagging_and_units_keep_the_tag():
    form = Form.for_string().tagged("a").tagged("b")
    assert form.tag == "b"
    assert form.with_unit("?").tag == "b"
    assert repr(form) == "Form.for_string().tagged('b')"


# --- Lists, any, items ---

def test_list_form():
    form = Form.for_list(Form.for_number())
    assert isinstance(form, ListForm)
    assert form.mold([1, 2]) == Record.of(1, 2)
    assert form.cast(Record.of(Attr.of("a"), 1, "2", "x")) == [1.0, 2.0]
    assert form.cast(Value.absent()) is None
    assert Value.absent().coerce(form) == []


def test_any_form():
    form = Form.for_any()
    assert form.cast(Value.from_any({"a": [1, 2]})) == {"a": [1, 2]}
    assert form.cast(Value.absent()) is None
    assert form.mold({"a": 1}) == Record.of(Slot.of("a", 1))


def test_item_and_value_forms():
    slot = Slot.of("a", 1)
    assert Form.for_item().cast(slot) is slot
    assert Form.for_value().cast(slot) == Num.of(1)
    assert Form.for_item().mold(None) is Value.absent()
    assert Form.for_value().mold(3) == Num.of(3)
