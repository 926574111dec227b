"""
Forms convert between structure items and native Python values.

`mold(obj)` builds an item from a native value; `cast(item)` extracts a
native value, returning None when the item does not convert. `unit` is
the fallback that `Item.coerce` uses when a cast fails, and `tag` names
the leading attribute a tagged form requires.
"""

from typing import Any, Generic, List, Optional, TypeVar

from structure.structure_item import Attr, Bool, Item, Num, Text, Value

T = TypeVar("T")


class Form(Generic[T]):
    """Base class of all forms."""

    @property
    def tag(self) -> Optional[str]:
        return None

    @property
    def unit(self) -> Optional[T]:
        return None

    def tagged(self, tag: str) -> 'Form[T]':
        """This form, requiring and producing a leading `@tag` attribute."""
        return TagForm(tag, self)

    def with_unit(self, unit: Optional[T]) -> 'Form[T]':
        """This form, with `unit` as its coercion fallback."""
        return UnitForm(unit, self)

    def mold(self, obj: Optional[T]) -> Item:
        raise NotImplementedError

    def cast(self, item: Item) -> Optional[T]:
        raise NotImplementedError

    _string = None
    _number = None
    _boolean = None
    _any = None
    _item = None
    _value = None

    @staticmethod
    def for_string() -> 'Form[str]':
        if Form._string is None:
            Form._string = StringForm()
        return Form._string

    @staticmethod
    def for_number() -> 'Form[float]':
        if Form._number is None:
            Form._number = NumberForm()
        return Form._number

    @staticmethod
    def for_boolean() -> 'Form[bool]':
        if Form._boolean is None:
            Form._boolean = BooleanForm()
        return Form._boolean

    @staticmethod
    def for_any() -> 'Form[Any]':
        if Form._any is None:
            Form._any = AnyForm()
        return Form._any

    @staticmethod
    def for_item() -> 'Form[Item]':
        if Form._item is None:
            Form._item = ItemForm()
        return Form._item

    @staticmethod
    def for_value() -> 'Form[Value]':
        if Form._value is None:
            Form._value = ValueForm()
        return Form._value

    @staticmethod
    def for_list(item_form: 'Form') -> 'Form[list]':
        return ListForm(item_form)


class StringForm(Form[str]):
    @property
    def unit(self) -> Optional[str]:
        return ""

    def mold(self, obj: Optional[str]) -> Item:
        if obj is None:
            return Item.extant()
        return Text.of(obj)

    def cast(self, item: Item) -> Optional[str]:
        return item.target.string_value()

    def __repr__(self) -> str:
        return "Form.for_string()"


class NumberForm(Form[float]):
    @property
    def unit(self) -> Optional[float]:
        return 0

    def mold(self, obj: Optional[float]) -> Item:
        if obj is None:
            return Item.extant()
        return Num.of(obj)

    def cast(self, item: Item) -> Optional[float]:
        return item.target.number_value()

    def __repr__(self) -> str:
        return "Form.for_number()"


class BooleanForm(Form[bool]):
    @property
    def unit(self) -> Optional[bool]:
        return False

    def mold(self, obj: Optional[bool]) -> Item:
        if obj is None:
            return Item.extant()
        return Bool.of(obj)

    def cast(self, item: Item) -> Optional[bool]:
        return item.target.boolean_value()

    def __repr__(self) -> str:
        return "Form.for_boolean()"


class AnyForm(Form[Any]):
    def mold(self, obj: Any) -> Item:
        return Item.from_any(obj)

    def cast(self, item: Item) -> Any:
        if not item.is_defined():
            return None
        return item.to_any()

    def __repr__(self) -> str:
        return "Form.for_any()"


class ItemForm(Form[Item]):
    @property
    def unit(self) -> Optional[Item]:
        return Item.absent()

    def mold(self, obj: Optional[Item]) -> Item:
        if obj is None:
            return Item.absent()
        return Item.from_any(obj)

    def cast(self, item: Item) -> Optional[Item]:
        return item

    def __repr__(self) -> str:
        return "Form.for_item()"


class ValueForm(Form[Value]):
    @property
    def unit(self) -> Optional[Value]:
        return Value.absent()

    def mold(self, obj: Optional[Value]) -> Item:
        if obj is None:
            return Value.absent()
        return Value.from_any(obj)

    def cast(self, item: Item) -> Optional[Value]:
        return item.to_value()

    def __repr__(self) -> str:
        return "Form.for_value()"


class TagForm(Form[T]):
    """Wraps molded items in a record headed by `@tag`; only casts items carrying that tag."""

    def __init__(self, tag: str, form: Form[T]):
        self._tag = tag
        self.form = form

    @property
    def tag(self) -> Optional[str]:
        return self._tag

    @property
    def unit(self) -> Optional[T]:
        return self.form.unit

    def tagged(self, tag: str) -> Form[T]:
        return TagForm(tag, self.form)

    def mold(self, obj: Optional[T]) -> Item:
        from structure.structure_record import Record
        record = Record.create().attr(self._tag)
        return record.concat(self.form.mold(obj))

    def cast(self, item: Item) -> Optional[T]:
        value = item.to_value()
        if value.tag == self._tag:
            return self.form.cast(value.body())
        return None

    def __repr__(self) -> str:
        return f"{self.form!r}.tagged({self._tag!r})"


class UnitForm(Form[T]):
    """Delegates to `form`, overriding its unit."""

    def __init__(self, unit: Optional[T], form: Form[T]):
        self._unit = unit
        self.form = form

    @property
    def tag(self) -> Optional[str]:
        return self.form.tag

    @property
    def unit(self) -> Optional[T]:
        return self._unit

    def with_unit(self, unit: Optional[T]) -> Form[T]:
        return UnitForm(unit, self.form)

    def mold(self, obj: Optional[T]) -> Item:
        return self.form.mold(obj)

    def cast(self, item: Item) -> Optional[T]:
        return self.form.cast(item)

    def __repr__(self) -> str:
        return f"{self.form!r}.with_unit({self._unit!r})"


class ListForm(Form[list]):
    """Molds a sequence into a record of values; casts the convertible values of a record."""

    def __init__(self, item_form: Form):
        self.item_form = item_form

    @property
    def unit(self) -> Optional[list]:
        return []

    def mold(self, obj: Optional[list]) -> Item:
        from structure.structure_record import Record
        if obj is None:
            return Item.extant()
        record = Record.create(len(obj))
        for element in obj:
            record.push(self.item_form.mold(element))
        return record

    def cast(self, item: Item) -> Optional[list]:
        value = item.to_value()
        if not value.is_defined():
            return None
        result: List[Any] = []
        for member in value:
            if isinstance(member, Attr):
                continue
            element = self.item_form.cast(member.to_value())
            if element is not None:
                result.append(element)
        return result

    def __repr__(self) -> str:
        return f"Form.for_list({self.item_form!r})"
