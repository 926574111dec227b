"""
Defines the core item types of the structure model.

Every node of a structure tree is an `Item`. Items are either a `Field`
(a keyed `Attr` or `Slot`) or a `Value`: one of the scalar variants
(`Absent`, `Extant`, `Bool`, `Num`, `Text`, `Data`), a `Record`, or an
`Expression` that still has to be evaluated against an interpreter.

Semantic mismatches between variants never raise. An operation that has
no meaning for its operands yields `Absent`; only contract violations
(bad conversions, mutation of committed data) are exceptions.
"""

import base64
import math
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterator, Optional, Union

from structure.structure_errors import ImmutableError
from structure.structure_util import HashGenCacheSet, hash_mash, hash_mix, hash_seed, to_int32


def _record():
    from structure.structure_record import Record
    return Record


def _operators():
    from structure import structure_operator
    return structure_operator


def _interpreter(interpreter):
    from structure.structure_interpreter import Interpreter
    return Interpreter.from_any(interpreter)


def format_number(x: float) -> str:
    """Renders a number the way its string conversion expects (`5`, not `5.0`)."""
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "Infinity" if x > 0 else "-Infinity"
    if x == int(x) and abs(x) < 1e21:
        return str(int(x))
    return repr(x)


def _compare(x, y) -> int:
    return -1 if x < y else 1 if x > y else 0


# =================================================================
# Item
# =================================================================

class Item(ABC):
    """Abstract root of the structure model."""

    _global_scope: Optional['Item'] = None

    @abstractmethod
    def is_defined(self) -> bool:
        """Returns True if this item is not `Absent`."""

    @abstractmethod
    def is_distinct(self) -> bool:
        """Returns True if this item is neither `Extant` nor `Absent`."""

    @abstractmethod
    def is_constant(self) -> bool:
        """Returns True if this item always evaluates to itself."""

    @property
    @abstractmethod
    def key(self) -> 'Value':
        """The key of a field; `Absent` for values."""

    @abstractmethod
    def to_value(self) -> 'Value':
        """The value of a field; the item itself for values."""

    @property
    @abstractmethod
    def tag(self) -> Optional[str]:
        """The key of a record's leading `Attr`, or None."""

    @property
    @abstractmethod
    def target(self) -> 'Value':
        """The flattened members of a record with all attributes removed."""

    @abstractmethod
    def flattened(self) -> 'Value':
        """Unwraps a record holding exactly one value."""

    @abstractmethod
    def unflattened(self) -> 'Record':
        """Wraps a bare value into a record."""

    @abstractmethod
    def header(self, tag: str) -> 'Value':
        """The value of the leading `Attr` if its key equals `tag`, else `Absent`."""

    @abstractmethod
    def headers(self, tag: str) -> Optional['Record']:
        """The unflattened header of `tag`, or None."""

    @abstractmethod
    def head(self) -> 'Item':
        pass

    @abstractmethod
    def tail(self) -> 'Record':
        pass

    @abstractmethod
    def body(self) -> 'Value':
        pass

    @property
    @abstractmethod
    def length(self) -> int:
        pass

    @abstractmethod
    def has(self, key) -> bool:
        pass

    @abstractmethod
    def get(self, key) -> 'Value':
        """The value of the last field whose key equals `key`, else `Absent`."""

    @abstractmethod
    def get_attr(self, key) -> 'Value':
        pass

    @abstractmethod
    def get_slot(self, key) -> 'Value':
        pass

    @abstractmethod
    def get_field(self, key) -> Optional['Field']:
        pass

    @abstractmethod
    def get_item(self, index) -> 'Item':
        pass

    # --- Persistent updates ---

    def updated(self, key, value) -> 'Record':
        record = _record().create(2)
        record.push(self)
        record.set(key, value)
        return record

    def updated_attr(self, key, value) -> 'Record':
        record = _record().create(2)
        record.push(self)
        record.set_attr(key, value)
        return record

    def updated_slot(self, key, value) -> 'Record':
        record = _record().create(2)
        record.push(self)
        record.set_slot(key, value)
        return record

    def appended(self, *items) -> 'Record':
        record = _record().create(1 + len(items))
        record.push(self)
        record.push(*items)
        return record

    def prepended(self, *items) -> 'Record':
        record = _record().create(len(items) + 1)
        record.push(*items)
        record.push(self)
        return record

    @abstractmethod
    def deleted(self, key) -> 'Item':
        pass

    def concat(self, *items) -> 'Record':
        record = _record().create()
        record.push(self)
        for item in items:
            for member in Item.from_any(item):
                record.push(member)
        return record

    # --- Operators ---

    @abstractmethod
    def conditional(self, then_term, else_term) -> 'Item':
        pass

    @abstractmethod
    def or_(self, that) -> 'Item':
        pass

    @abstractmethod
    def and_(self, that) -> 'Item':
        pass

    @abstractmethod
    def bitwise_or(self, that) -> 'Item':
        pass

    @abstractmethod
    def bitwise_xor(self, that) -> 'Item':
        pass

    @abstractmethod
    def bitwise_and(self, that) -> 'Item':
        pass

    def lt(self, that) -> 'Item':
        that = Item.from_any(that)
        return Bool.of(True) if self.compare_to(that) < 0 else Item.absent()

    def le(self, that) -> 'Item':
        that = Item.from_any(that)
        return Bool.of(True) if self.compare_to(that) <= 0 else Item.absent()

    def eq(self, that) -> 'Item':
        that = Item.from_any(that)
        return Bool.of(True) if self.equals(that) else Item.absent()

    def ne(self, that) -> 'Item':
        that = Item.from_any(that)
        return Bool.of(True) if not self.equals(that) else Item.absent()

    def ge(self, that) -> 'Item':
        that = Item.from_any(that)
        return Bool.of(True) if self.compare_to(that) >= 0 else Item.absent()

    def gt(self, that) -> 'Item':
        that = Item.from_any(that)
        return Bool.of(True) if self.compare_to(that) > 0 else Item.absent()

    @abstractmethod
    def plus(self, that) -> 'Item':
        pass

    @abstractmethod
    def minus(self, that) -> 'Item':
        pass

    @abstractmethod
    def times(self, that) -> 'Item':
        pass

    @abstractmethod
    def divide(self, that) -> 'Item':
        pass

    @abstractmethod
    def modulo(self, that) -> 'Item':
        pass

    @abstractmethod
    def not_(self) -> 'Item':
        pass

    @abstractmethod
    def bitwise_not(self) -> 'Item':
        pass

    @abstractmethod
    def negative(self) -> 'Item':
        pass

    @abstractmethod
    def positive(self) -> 'Item':
        pass

    @abstractmethod
    def inverse(self) -> 'Item':
        pass

    def invoke(self, args: 'Value') -> 'Item':
        return Item.absent()

    @abstractmethod
    def lambda_(self, template: 'Value') -> 'Value':
        pass

    def filter(self, predicate=None):
        from structure.structure_selector import Selector
        return Selector.literal(self).filter(predicate)

    def max(self, that: 'Item') -> 'Item':
        return self if self.compare_to(that) >= 0 else that

    def min(self, that: 'Item') -> 'Item':
        return self if self.compare_to(that) <= 0 else that

    def evaluate(self, interpreter) -> 'Item':
        return self

    def substitute(self, interpreter) -> 'Item':
        return self

    # --- Conversions ---

    @abstractmethod
    def string_value(self, or_else=None) -> Optional[str]:
        pass

    @abstractmethod
    def number_value(self, or_else=None) -> Optional[float]:
        pass

    @abstractmethod
    def boolean_value(self, or_else=None) -> Optional[bool]:
        pass

    def cast(self, form, or_else=None):
        obj = form.cast(self)
        return or_else if obj is None else obj

    def coerce(self, form, or_else=None):
        obj = form.cast(self)
        if obj is None:
            obj = form.unit
        if obj is None:
            obj = or_else
        return obj

    @abstractmethod
    def to_any(self) -> Any:
        """Converts this item into plain Python data."""

    # --- Mutability ---

    @abstractmethod
    def is_aliased(self) -> bool:
        pass

    @abstractmethod
    def is_mutable(self) -> bool:
        pass

    @abstractmethod
    def alias(self) -> None:
        pass

    @abstractmethod
    def branch(self) -> 'Item':
        pass

    @abstractmethod
    def clone(self) -> 'Item':
        pass

    @abstractmethod
    def commit(self) -> 'Item':
        pass

    def precedence(self) -> int:
        return 11

    # --- Iteration ---

    def for_each(self, callback: Callable[['Item', int], Any]) -> Any:
        """Calls `callback(item, index)` per member, stopping at the first non-None result."""
        return callback(self, 0)

    def __iter__(self) -> Iterator['Item']:
        yield self

    # --- Ordering, equality and hashing ---

    @abstractmethod
    def type_order(self) -> int:
        """The heterogeneous sort rank of this variant."""

    @abstractmethod
    def compare_to(self, that: 'Item') -> int:
        pass

    @abstractmethod
    def key_equals(self, key) -> bool:
        pass

    @abstractmethod
    def equals(self, that) -> bool:
        pass

    @abstractmethod
    def hash_code(self) -> int:
        pass

    def __eq__(self, other):
        return self.equals(other)

    def __ne__(self, other):
        return not self.equals(other)

    def __hash__(self):
        return self.hash_code()

    def __lt__(self, other):
        if not isinstance(other, Item):
            return NotImplemented
        return self.compare_to(other) < 0

    def __le__(self, other):
        if not isinstance(other, Item):
            return NotImplemented
        return self.compare_to(other) <= 0

    def __gt__(self, other):
        if not isinstance(other, Item):
            return NotImplemented
        return self.compare_to(other) > 0

    def __ge__(self, other):
        if not isinstance(other, Item):
            return NotImplemented
        return self.compare_to(other) >= 0

    def __add__(self, other):
        return self.plus(other)

    def __sub__(self, other):
        return self.minus(other)

    def __mul__(self, other):
        return self.times(other)

    def __truediv__(self, other):
        return self.divide(other)

    def __mod__(self, other):
        return self.modulo(other)

    def __or__(self, other):
        return self.bitwise_or(other)

    def __xor__(self, other):
        return self.bitwise_xor(other)

    def __and__(self, other):
        return self.bitwise_and(other)

    def __neg__(self):
        return self.negative()

    def __pos__(self):
        return self.positive()

    def __invert__(self):
        return self.bitwise_not()

    def __repr__(self) -> str:
        from structure.structure_printer import Printer
        return Printer().pformat(self)

    # --- Factories ---

    @staticmethod
    def empty() -> 'Item':
        return _record().empty()

    @staticmethod
    def extant() -> 'Item':
        return Extant.extant()

    @staticmethod
    def absent() -> 'Item':
        return Absent.absent()

    @staticmethod
    def from_any(obj: Any) -> 'Item':
        if isinstance(obj, Item):
            return obj
        if isinstance(obj, dict) and len(obj) == 2 and "$key" in obj and "$value" in obj:
            return Field.of(obj["$key"], obj["$value"])
        return Value.from_any(obj)

    @staticmethod
    def global_scope() -> 'Item':
        """The committed root scope every fresh interpreter starts from."""
        if Item._global_scope is None:
            from structure.structure_func import MathModule
            Item._global_scope = _record().create(1).slot("math", MathModule.scope()).commit()
        return Item._global_scope


# =================================================================
# Field
# =================================================================

class Field(Item):
    """A key/value member of a record."""

    ALIASED = 1
    IMMUTABLE = 2

    def __init__(self, key: 'Value', value: 'Value', flags: int = 0):
        self._key = key
        self._value = value
        self._flags = flags

    def is_defined(self) -> bool:
        return True

    def is_distinct(self) -> bool:
        return True

    def is_constant(self) -> bool:
        return self._key.is_constant() and self._value.is_constant()

    @property
    def key(self) -> 'Value':
        return self._key

    @property
    def value(self) -> 'Value':
        return self._value

    def set_value(self, new_value) -> 'Value':
        if self._flags != 0:
            raise ImmutableError(self)
        old_value = self._value
        self._value = Value.from_any(new_value)
        return old_value

    @abstractmethod
    def updated_value(self, value) -> 'Field':
        """Returns a copy of this field holding `value`."""

    def to_value(self) -> 'Value':
        return self._value

    @property
    def tag(self) -> Optional[str]:
        return None

    @property
    def target(self) -> 'Value':
        return self._value

    def flattened(self) -> 'Value':
        return Value.absent()

    def unflattened(self) -> 'Record':
        return _record().of(self)

    def header(self, tag: str) -> 'Value':
        return Value.absent()

    def headers(self, tag: str) -> Optional['Record']:
        return None

    def head(self) -> Item:
        return Item.absent()

    def tail(self) -> 'Record':
        return _record().empty()

    def body(self) -> 'Value':
        return Value.absent()

    @property
    def length(self) -> int:
        return 0

    def has(self, key) -> bool:
        return False

    def get(self, key) -> 'Value':
        return Value.absent()

    def get_attr(self, key) -> 'Value':
        return Value.absent()

    def get_slot(self, key) -> 'Value':
        return Value.absent()

    def get_field(self, key) -> Optional['Field']:
        return None

    def get_item(self, index) -> Item:
        return Item.absent()

    def deleted(self, key) -> 'Field':
        return self

    def _combine(self, that, method: str) -> Item:
        that = Item.from_any(that)
        if isinstance(that, Expression):
            return getattr(_operators(), method)(self, that)
        if isinstance(that, Field):
            that = that.to_value()
        new_value = getattr(self._value, _FIELD_METHODS[method])(that)
        if new_value.is_defined():
            return self.updated_value(new_value.to_value())
        return Item.absent()

    def _map(self, method: str) -> Item:
        new_value = getattr(self._value, method)()
        if new_value.is_defined():
            return self.updated_value(new_value.to_value())
        return Item.absent()

    def conditional(self, then_term, else_term) -> Item:
        return self._value.conditional(then_term, else_term)

    def or_(self, that) -> Item:
        return self._combine(that, "OrOperator")

    def and_(self, that) -> Item:
        return self._combine(that, "AndOperator")

    def bitwise_or(self, that) -> Item:
        return self._combine(that, "BitwiseOrOperator")

    def bitwise_xor(self, that) -> Item:
        return self._combine(that, "BitwiseXorOperator")

    def bitwise_and(self, that) -> Item:
        return self._combine(that, "BitwiseAndOperator")

    def plus(self, that) -> Item:
        return self._combine(that, "PlusOperator")

    def minus(self, that) -> Item:
        return self._combine(that, "MinusOperator")

    def times(self, that) -> Item:
        return self._combine(that, "TimesOperator")

    def divide(self, that) -> Item:
        return self._combine(that, "DivideOperator")

    def modulo(self, that) -> Item:
        return self._combine(that, "ModuloOperator")

    def not_(self) -> Item:
        return self._map("not_")

    def bitwise_not(self) -> Item:
        return self._map("bitwise_not")

    def negative(self) -> Item:
        return self._map("negative")

    def positive(self) -> Item:
        return self._map("positive")

    def inverse(self) -> Item:
        return self._map("inverse")

    def lambda_(self, template: 'Value') -> 'Value':
        return self._value.lambda_(template)

    def string_value(self, or_else=None) -> Optional[str]:
        return self._value.string_value(or_else)

    def number_value(self, or_else=None) -> Optional[float]:
        return self._value.number_value(or_else)

    def boolean_value(self, or_else=None) -> Optional[bool]:
        return self._value.boolean_value(or_else)

    def to_any(self) -> Any:
        return {"$key": self._key.to_any(), "$value": self._value.to_any()}

    def is_aliased(self) -> bool:
        return (self._flags & Field.ALIASED) != 0

    def is_mutable(self) -> bool:
        return self._flags == 0

    def alias(self) -> None:
        self._flags |= Field.ALIASED

    def branch(self) -> 'Field':
        return self.updated_value(self._value.branch())

    def commit(self) -> 'Field':
        self._flags |= Field.IMMUTABLE
        self._value.commit()
        return self

    def key_equals(self, key) -> bool:
        if isinstance(key, str) and isinstance(self._key, Text):
            return self._key.value == key
        if isinstance(key, Field):
            return self._key.equals(key.key)
        return self._key.equals(Value.from_any(key))

    def compare_to(self, that: Item) -> int:
        if type(that) is type(self):
            order = self._key.compare_to(that.key)
            if order == 0:
                order = self._value.compare_to(that.value)
            return order
        return _compare(self.type_order(), that.type_order())

    def equals(self, that) -> bool:
        if self is that:
            return True
        if type(that) is type(self):
            return self._key.equals(that.key) and self._value.equals(that.value)
        return False

    def hash_code(self) -> int:
        code = hash_seed(type(self).__name__)
        code = hash_mix(code, self._key.hash_code() & 0xFFFFFFFF)
        code = hash_mix(code, self._value.hash_code() & 0xFFFFFFFF)
        return hash_mash(code)

    @staticmethod
    def of(key, value=None) -> 'Field':
        """Builds an `Attr` for `@`-prefixed string keys, otherwise a `Slot`."""
        if value is None:
            value = Value.extant()
        if isinstance(key, str) and key.startswith("@"):
            return Attr.of(key[1:], value)
        return Slot.of(key, value)


_FIELD_METHODS = {
    "OrOperator": "or_",
    "AndOperator": "and_",
    "BitwiseOrOperator": "bitwise_or",
    "BitwiseXorOperator": "bitwise_xor",
    "BitwiseAndOperator": "bitwise_and",
    "PlusOperator": "plus",
    "MinusOperator": "minus",
    "TimesOperator": "times",
    "DivideOperator": "divide",
    "ModuloOperator": "modulo",
}


class Attr(Field):
    """A field whose key is always `Text`; the tag and headers of a record."""

    def __init__(self, key: 'Text', value: 'Value' = None, flags: int = 0):
        super().__init__(key, Value.extant() if value is None else value, flags)

    def updated_value(self, value) -> 'Attr':
        return Attr(self._key, Value.from_any(value))

    def evaluate(self, interpreter) -> Item:
        value = self._value.evaluate(interpreter).to_value()
        if value is self._value:
            return self
        if value.is_defined():
            return Attr(self._key, value)
        return Item.absent()

    def substitute(self, interpreter) -> Item:
        value = self._value.substitute(interpreter).to_value()
        if value is self._value:
            return self
        if value.is_defined():
            return Attr(self._key, value)
        return Item.absent()

    def to_any(self) -> Any:
        return {"$key": "@" + self._key.value, "$value": self._value.to_any()}

    def clone(self) -> 'Attr':
        return Attr(self._key, self._value.clone())

    def type_order(self) -> int:
        return 1

    @staticmethod
    def of(key, value=None) -> 'Attr':
        return Attr(Text.from_any(key), Value.extant() if value is None else Value.from_any(value))


class Slot(Field):
    """A field keyed by any value."""

    def __init__(self, key: 'Value', value: 'Value' = None, flags: int = 0):
        super().__init__(key, Value.extant() if value is None else value, flags)

    def updated_value(self, value) -> 'Slot':
        return Slot(self._key, Value.from_any(value))

    def evaluate(self, interpreter) -> Item:
        key = self._key.evaluate(interpreter).to_value()
        value = self._value.evaluate(interpreter).to_value()
        if key is self._key and value is self._value:
            return self
        if key.is_defined() and value.is_defined():
            return Slot(key, value)
        return Item.absent()

    def substitute(self, interpreter) -> Item:
        key = self._key.substitute(interpreter).to_value()
        value = self._value.substitute(interpreter).to_value()
        if key is self._key and value is self._value:
            return self
        if key.is_defined() and value.is_defined():
            return Slot(key, value)
        return Item.absent()

    def clone(self) -> 'Slot':
        return Slot(self._key.clone(), self._value.clone())

    def type_order(self) -> int:
        return 2

    @staticmethod
    def of(key, value=None) -> 'Slot':
        return Slot(Value.from_any(key), Value.extant() if value is None else Value.from_any(value))


# =================================================================
# Value
# =================================================================

class Value(Item):
    """An item that is not a field."""

    def is_defined(self) -> bool:
        return True

    def is_distinct(self) -> bool:
        return True

    def is_constant(self) -> bool:
        return True

    @property
    def key(self) -> 'Value':
        return Value.absent()

    def to_value(self) -> 'Value':
        return self

    @property
    def tag(self) -> Optional[str]:
        return None

    @property
    def target(self) -> 'Value':
        return self

    def flattened(self) -> 'Value':
        return self

    def unflattened(self) -> 'Record':
        return _record().of(self)

    def header(self, tag: str) -> 'Value':
        return Value.absent()

    def headers(self, tag: str) -> Optional['Record']:
        return None

    def head(self) -> Item:
        return Item.absent()

    def tail(self) -> 'Record':
        return _record().empty()

    def body(self) -> 'Value':
        return Value.extant()

    @property
    def length(self) -> int:
        return 0

    def has(self, key) -> bool:
        return False

    def get(self, key) -> 'Value':
        return Value.absent()

    def get_attr(self, key) -> 'Value':
        return Value.absent()

    def get_slot(self, key) -> 'Value':
        return Value.absent()

    def get_field(self, key) -> Optional[Field]:
        return None

    def get_item(self, index) -> Item:
        return Item.absent()

    def deleted(self, key) -> 'Value':
        return self

    def conditional(self, then_term, else_term) -> Item:
        return Item.from_any(then_term)

    def or_(self, that) -> Item:
        return self

    def and_(self, that) -> Item:
        return Item.from_any(that)

    def _combine(self, that, method: str) -> Item:
        # Shared dispatch for binary operators on a value receiver:
        # defer on expressions, distribute over field operands.
        that = Item.from_any(that)
        if isinstance(that, Expression):
            return getattr(_operators(), method)(self, that)
        if isinstance(that, Field):
            new_value = getattr(self, _FIELD_METHODS[method])(that.value)
            if new_value.is_defined():
                return that.updated_value(new_value.to_value())
        return Item.absent()

    def bitwise_or(self, that) -> Item:
        return self._combine(that, "BitwiseOrOperator")

    def bitwise_xor(self, that) -> Item:
        return self._combine(that, "BitwiseXorOperator")

    def bitwise_and(self, that) -> Item:
        return self._combine(that, "BitwiseAndOperator")

    def _compare_op(self, that, method: str, fallback) -> Item:
        that = Item.from_any(that)
        if isinstance(that, Expression):
            return getattr(_operators(), method)(self, that)
        return fallback(self, that)

    def lt(self, that) -> Item:
        return self._compare_op(that, "LtOperator", Item.lt)

    def le(self, that) -> Item:
        return self._compare_op(that, "LeOperator", Item.le)

    def eq(self, that) -> Item:
        return self._compare_op(that, "EqOperator", Item.eq)

    def ne(self, that) -> Item:
        return self._compare_op(that, "NeOperator", Item.ne)

    def ge(self, that) -> Item:
        return self._compare_op(that, "GeOperator", Item.ge)

    def gt(self, that) -> Item:
        return self._compare_op(that, "GtOperator", Item.gt)

    def plus(self, that) -> Item:
        return self._combine(that, "PlusOperator")

    def minus(self, that) -> Item:
        return self._combine(that, "MinusOperator")

    def times(self, that) -> Item:
        return self._combine(that, "TimesOperator")

    def divide(self, that) -> Item:
        return self._combine(that, "DivideOperator")

    def modulo(self, that) -> Item:
        return self._combine(that, "ModuloOperator")

    def not_(self) -> Item:
        return Value.absent()

    def bitwise_not(self) -> Item:
        return Value.absent()

    def negative(self) -> Item:
        return Value.absent()

    def positive(self) -> Item:
        return Value.absent()

    def inverse(self) -> Item:
        return Value.absent()

    def lambda_(self, template: 'Value') -> 'Value':
        from structure.structure_func import LambdaFunc
        return LambdaFunc(self, Value.from_any(template))

    def string_value(self, or_else=None) -> Optional[str]:
        return or_else

    def number_value(self, or_else=None) -> Optional[float]:
        return or_else

    def boolean_value(self, or_else=None) -> Optional[bool]:
        return or_else

    def is_aliased(self) -> bool:
        return False

    def is_mutable(self) -> bool:
        return False

    def alias(self) -> None:
        pass

    def branch(self) -> 'Value':
        return self

    def clone(self) -> 'Value':
        return self

    def commit(self) -> 'Value':
        return self

    def key_equals(self, key) -> bool:
        return False

    @staticmethod
    def empty() -> 'Value':
        return _record().empty()

    @staticmethod
    def extant() -> 'Value':
        return Extant.extant()

    @staticmethod
    def absent() -> 'Value':
        return Absent.absent()

    @staticmethod
    def from_any(obj: Any) -> 'Value':
        """Converts plain Python data into a value, raising TypeError when it can't."""
        if isinstance(obj, Value):
            return obj
        if isinstance(obj, Item):
            return _record().of(obj)
        if obj is None:
            return Extant.extant()
        if isinstance(obj, bool):
            return Bool.of(obj)
        if isinstance(obj, (int, float)):
            return Num.of(obj)
        if isinstance(obj, str):
            return Text.of(obj)
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return Data.of(obj)
        if isinstance(obj, (list, tuple)):
            return _record().from_array(obj)
        if isinstance(obj, dict):
            if len(obj) == 2 and "$key" in obj and "$value" in obj:
                return _record().of(Field.of(obj["$key"], obj["$value"]))
            return _record().from_object(obj)
        raise TypeError(f"cannot convert {type(obj).__name__} to a structure value: {obj!r}")


# =================================================================
# Scalar values
# =================================================================

class Absent(Value):
    """The undefined value; what every soft failure evaluates to."""

    _absent: Optional['Absent'] = None

    def is_defined(self) -> bool:
        return False

    def is_distinct(self) -> bool:
        return False

    def flattened(self) -> Value:
        return self

    def unflattened(self) -> 'Record':
        return _record().empty()

    def body(self) -> Value:
        return self

    def conditional(self, then_term, else_term) -> Item:
        return Item.from_any(else_term)

    def or_(self, that) -> Item:
        return Item.from_any(that)

    def and_(self, that) -> Item:
        return self

    def not_(self) -> Item:
        return Extant.extant()

    def boolean_value(self, or_else=None) -> Optional[bool]:
        return False

    def to_any(self) -> Any:
        return None

    def type_order(self) -> int:
        return 99

    def compare_to(self, that: Item) -> int:
        return _compare(self.type_order(), that.type_order())

    def equals(self, that) -> bool:
        return self is that

    def hash_code(self) -> int:
        return hash_seed("Absent")

    @staticmethod
    def absent() -> 'Absent':
        if Absent._absent is None:
            Absent._absent = Absent()
        return Absent._absent


class Extant(Value):
    """A value that is present but carries nothing, like a unit."""

    _extant: Optional['Extant'] = None

    def is_distinct(self) -> bool:
        return False

    def flattened(self) -> Value:
        return self

    def unflattened(self) -> 'Record':
        return _record().create()

    def not_(self) -> Item:
        return Value.absent()

    def string_value(self, or_else=None) -> Optional[str]:
        return ""

    def boolean_value(self, or_else=None) -> Optional[bool]:
        return True

    def to_any(self) -> Any:
        return None

    def type_order(self) -> int:
        return 98

    def compare_to(self, that: Item) -> int:
        return _compare(self.type_order(), that.type_order())

    def equals(self, that) -> bool:
        return self is that

    def hash_code(self) -> int:
        return hash_seed("Extant")

    @staticmethod
    def extant() -> 'Extant':
        if Extant._extant is None:
            Extant._extant = Extant()
        return Extant._extant


class Bool(Value):
    """An interned boolean value."""

    _true: Optional['Bool'] = None
    _false: Optional['Bool'] = None

    def __init__(self, value: bool):
        self._value = value

    @property
    def value(self) -> bool:
        return self._value

    def conditional(self, then_term, else_term) -> Item:
        return Item.from_any(then_term if self._value else else_term)

    def or_(self, that) -> Item:
        return self if self._value else Item.from_any(that)

    def and_(self, that) -> Item:
        return Item.from_any(that) if self._value else self

    def bitwise_or(self, that) -> Item:
        that = Item.from_any(that)
        if isinstance(that, Bool):
            return Bool.of(self._value or that.value)
        return super().bitwise_or(that)

    def bitwise_xor(self, that) -> Item:
        that = Item.from_any(that)
        if isinstance(that, Bool):
            return Bool.of(self._value != that.value)
        return super().bitwise_xor(that)

    def bitwise_and(self, that) -> Item:
        that = Item.from_any(that)
        if isinstance(that, Bool):
            return Bool.of(self._value and that.value)
        return super().bitwise_and(that)

    def not_(self) -> Item:
        return Bool.of(not self._value)

    def string_value(self, or_else=None) -> Optional[str]:
        return "true" if self._value else "false"

    def number_value(self, or_else=None) -> Optional[float]:
        return 1.0 if self._value else 0.0

    def boolean_value(self, or_else=None) -> Optional[bool]:
        return self._value

    def to_any(self) -> Any:
        return self._value

    def type_order(self) -> int:
        return 7

    def compare_to(self, that: Item) -> int:
        if isinstance(that, Bool):
            return _compare(self._value, that.value)
        return _compare(self.type_order(), that.type_order())

    def equals(self, that) -> bool:
        return isinstance(that, Bool) and self._value == that.value

    def hash_code(self) -> int:
        return hash_seed("true" if self._value else "false")

    @staticmethod
    def of(value: bool) -> 'Bool':
        if value:
            if Bool._true is None:
                Bool._true = Bool(True)
            return Bool._true
        if Bool._false is None:
            Bool._false = Bool(False)
        return Bool._false

    @staticmethod
    def from_any(value) -> 'Bool':
        if isinstance(value, Bool):
            return value
        if isinstance(value, bool):
            return Bool.of(value)
        raise TypeError(f"cannot convert {value!r} to Bool")


class Num(Value):
    """A 64-bit float, optionally tagged as an unsigned integer kind."""

    UINT32 = 1
    UINT64 = 2

    _cache: Optional[HashGenCacheSet] = None
    _hash_nan = hash_seed("NaN")

    def __init__(self, value: float, flags: int = 0):
        self._value = value
        self._flags = flags

    @property
    def value(self) -> float:
        return self._value

    @property
    def flags(self) -> int:
        return self._flags

    def is_uint32(self) -> bool:
        return (self._flags & Num.UINT32) != 0

    def is_uint64(self) -> bool:
        return (self._flags & Num.UINT64) != 0

    def is_nan(self) -> bool:
        return math.isnan(self._value)

    def int_value(self) -> int:
        return int(self._value) if math.isfinite(self._value) else 0

    def string_value(self, or_else=None) -> Optional[str]:
        return format_number(self._value)

    def number_value(self, or_else=None) -> Optional[float]:
        return self._value

    def boolean_value(self, or_else=None) -> Optional[bool]:
        return self._value != 0 and not math.isnan(self._value)

    def _arithmetic(self, that, op: Callable[[float, float], float], method: str) -> Item:
        that = Item.from_any(that)
        if isinstance(that, Num):
            return Num.of(op(self._value, that.value))
        return getattr(super(), method)(that)

    def bitwise_or(self, that) -> Item:
        return self._arithmetic(that, lambda x, y: to_int32(x) | to_int32(y), "bitwise_or")

    def bitwise_xor(self, that) -> Item:
        return self._arithmetic(that, lambda x, y: to_int32(x) ^ to_int32(y), "bitwise_xor")

    def bitwise_and(self, that) -> Item:
        return self._arithmetic(that, lambda x, y: to_int32(x) & to_int32(y), "bitwise_and")

    def plus(self, that) -> Item:
        return self._arithmetic(that, lambda x, y: x + y, "plus")

    def minus(self, that) -> Item:
        return self._arithmetic(that, lambda x, y: x - y, "minus")

    def times(self, that) -> Item:
        return self._arithmetic(that, _times, "times")

    def divide(self, that) -> Item:
        return self._arithmetic(that, _divide, "divide")

    def modulo(self, that) -> Item:
        return self._arithmetic(that, _modulo, "modulo")

    def bitwise_not(self) -> Item:
        return Num.of(~to_int32(self._value))

    def negative(self) -> Item:
        return Num.of(-self._value, self._flags)

    def positive(self) -> Item:
        return self

    def inverse(self) -> Item:
        return Num.of(_divide(1.0, self._value))

    def abs(self) -> 'Num':
        return Num.of(abs(self._value), self._flags)

    def ceil(self) -> 'Num':
        return Num.of(math.ceil(self._value) if math.isfinite(self._value) else self._value, self._flags)

    def floor(self) -> 'Num':
        return Num.of(math.floor(self._value) if math.isfinite(self._value) else self._value, self._flags)

    def round(self) -> 'Num':
        # Half-way cases round toward positive infinity.
        x = self._value
        return Num.of(math.floor(x + 0.5) if math.isfinite(x) else x, self._flags)

    def sqrt(self) -> 'Num':
        x = self._value
        return Num.of(math.sqrt(x) if x >= 0 else math.nan)

    def pow(self, that) -> 'Num':
        return Num.of(_pow(self._value, Num.from_any(that).value))

    def to_any(self) -> Any:
        x = self._value
        if self._flags != 0 or (math.isfinite(x) and x == int(x) and abs(x) < 2 ** 53):
            return int(x)
        return x

    def type_order(self) -> int:
        return 6

    def compare_to(self, that: Item) -> int:
        if isinstance(that, Num):
            x, y = self._value, that.value
            if x < y:
                return -1
            if x > y:
                return 1
            x_nan, y_nan = math.isnan(x), math.isnan(y)
            if x_nan and y_nan:
                return 0
            if y_nan:
                return -1
            if x_nan:
                return 1
            return 0
        return _compare(self.type_order(), that.type_order())

    def equals(self, that) -> bool:
        if isinstance(that, Num):
            x, y = self._value, that.value
            return x == y or (math.isnan(x) and math.isnan(y))
        return False

    def hash_code(self) -> int:
        if math.isnan(self._value):
            return Num._hash_nan
        return hash(self._value)

    @staticmethod
    def cache() -> HashGenCacheSet:
        if Num._cache is None:
            Num._cache = HashGenCacheSet(128)
        return Num._cache

    @staticmethod
    def of(value: Union[int, float], flags: int = 0) -> 'Num':
        if isinstance(value, bool):
            raise TypeError(f"cannot convert {value!r} to Num")
        x = float(value)
        if (flags == 0 and math.isfinite(x) and x == int(x) and -2 ** 31 <= x < 2 ** 31
                and not (x == 0 and math.copysign(1.0, x) < 0)):
            return Num.cache().put(Num(x))
        return Num(x, flags)

    @staticmethod
    def uint32(value: int) -> 'Num':
        return Num(float(value & 0xFFFFFFFF), Num.UINT32)

    @staticmethod
    def uint64(value: int) -> 'Num':
        return Num(float(value & 0xFFFFFFFFFFFFFFFF), Num.UINT64)

    @staticmethod
    def from_any(value) -> 'Num':
        if isinstance(value, Num):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return Num.of(value)
        raise TypeError(f"cannot convert {value!r} to Num")


def _times(x: float, y: float) -> float:
    if (math.isinf(x) and y == 0) or (math.isinf(y) and x == 0):
        return math.nan
    return x * y


def _divide(x: float, y: float) -> float:
    if y == 0:
        if x == 0 or math.isnan(x):
            return math.nan
        return math.copysign(math.inf, x) * math.copysign(1.0, y)
    return x / y


def _modulo(x: float, y: float) -> float:
    if y == 0 or math.isnan(x) or math.isnan(y) or math.isinf(x):
        return math.nan
    if math.isinf(y):
        return x
    return math.fmod(x, y)


def _pow(x: float, y: float) -> float:
    try:
        return math.pow(x, y)
    except OverflowError:
        return math.inf
    except ValueError:
        return math.nan


class Text(Value):
    """A string value; short strings are interned."""

    _cache: Optional[HashGenCacheSet] = None
    _empty: Optional['Text'] = None

    def __init__(self, value: str):
        self._value = value
        self._hash_code: Optional[int] = None

    @property
    def value(self) -> str:
        return self._value

    @property
    def size(self) -> int:
        return len(self._value)

    def plus(self, that) -> Item:
        that = Item.from_any(that)
        if isinstance(that, Text):
            return Text.of(self._value + that.value)
        return super().plus(that)

    def string_value(self, or_else=None) -> Optional[str]:
        return self._value

    def number_value(self, or_else=None) -> Optional[float]:
        try:
            return float(self._value.strip())
        except ValueError:
            return or_else

    def boolean_value(self, or_else=None) -> Optional[bool]:
        if self._value == "true":
            return True
        if self._value == "false":
            return False
        return or_else

    def to_any(self) -> Any:
        return self._value

    def type_order(self) -> int:
        return 5

    def compare_to(self, that: Item) -> int:
        if isinstance(that, Text):
            return _compare(self._value, that.value)
        return _compare(self.type_order(), that.type_order())

    def equals(self, that) -> bool:
        return isinstance(that, Text) and self._value == that.value

    def hash_code(self) -> int:
        if self._hash_code is None:
            self._hash_code = hash(self._value)
        return self._hash_code

    @staticmethod
    def cache() -> HashGenCacheSet:
        if Text._cache is None:
            Text._cache = HashGenCacheSet(128)
        return Text._cache

    @staticmethod
    def empty() -> 'Text':
        if Text._empty is None:
            Text._empty = Text("")
        return Text._empty

    @staticmethod
    def of(value: str) -> 'Text':
        if not value:
            return Text.empty()
        if len(value) <= 64:
            return Text.cache().put(Text(value))
        return Text(value)

    @staticmethod
    def from_any(value) -> 'Text':
        if isinstance(value, Text):
            return value
        if isinstance(value, str):
            return Text.of(value)
        raise TypeError(f"cannot convert {value!r} to Text")


class Data(Value):
    """An opaque binary blob."""

    def __init__(self, value: bytes):
        self._value = value

    @property
    def value(self) -> bytes:
        return self._value

    @property
    def size(self) -> int:
        return len(self._value)

    def plus(self, that) -> Item:
        that = Item.from_any(that)
        if isinstance(that, Data):
            return Data(self._value + that.value)
        return super().plus(that)

    def to_base64(self) -> str:
        return base64.b64encode(self._value).decode("ascii")

    def to_any(self) -> Any:
        return self._value

    def type_order(self) -> int:
        return 4

    def compare_to(self, that: Item) -> int:
        if isinstance(that, Data):
            return _compare(self._value, that.value)
        return _compare(self.type_order(), that.type_order())

    def equals(self, that) -> bool:
        return isinstance(that, Data) and self._value == that.value

    def hash_code(self) -> int:
        return hash(self._value)

    @staticmethod
    def of(value) -> 'Data':
        return Data(bytes(value))

    @staticmethod
    def from_base64(text: str) -> 'Data':
        return Data(base64.b64decode(text))


# =================================================================
# Expression
# =================================================================

class Expression(Value):
    """A value that must be evaluated against an interpreter to yield a result.

    Operators applied to an expression do not compute anything; they build
    the corresponding operator node instead.
    """

    def is_constant(self) -> bool:
        return False

    def conditional(self, then_term, else_term) -> Item:
        return _operators().ConditionalOperator(self, Item.from_any(then_term), Item.from_any(else_term))

    def or_(self, that) -> Item:
        return _operators().OrOperator(self, Item.from_any(that))

    def and_(self, that) -> Item:
        return _operators().AndOperator(self, Item.from_any(that))

    def bitwise_or(self, that) -> Item:
        return _operators().BitwiseOrOperator(self, Item.from_any(that))

    def bitwise_xor(self, that) -> Item:
        return _operators().BitwiseXorOperator(self, Item.from_any(that))

    def bitwise_and(self, that) -> Item:
        return _operators().BitwiseAndOperator(self, Item.from_any(that))

    def lt(self, that) -> Item:
        return _operators().LtOperator(self, Item.from_any(that))

    def le(self, that) -> Item:
        return _operators().LeOperator(self, Item.from_any(that))

    def eq(self, that) -> Item:
        return _operators().EqOperator(self, Item.from_any(that))

    def ne(self, that) -> Item:
        return _operators().NeOperator(self, Item.from_any(that))

    def ge(self, that) -> Item:
        return _operators().GeOperator(self, Item.from_any(that))

    def gt(self, that) -> Item:
        return _operators().GtOperator(self, Item.from_any(that))

    def plus(self, that) -> Item:
        return _operators().PlusOperator(self, Item.from_any(that))

    def minus(self, that) -> Item:
        return _operators().MinusOperator(self, Item.from_any(that))

    def times(self, that) -> Item:
        return _operators().TimesOperator(self, Item.from_any(that))

    def divide(self, that) -> Item:
        return _operators().DivideOperator(self, Item.from_any(that))

    def modulo(self, that) -> Item:
        return _operators().ModuloOperator(self, Item.from_any(that))

    def not_(self) -> Item:
        return _operators().NotOperator(self)

    def bitwise_not(self) -> Item:
        return _operators().BitwiseNotOperator(self)

    def negative(self) -> Item:
        return _operators().NegativeOperator(self)

    def positive(self) -> Item:
        return _operators().PositiveOperator(self)

    def inverse(self) -> Item:
        return _operators().DivideOperator(Num.of(1), self)

    def invoke(self, args) -> Item:
        return _operators().InvokeOperator(self, Value.from_any(args))

    def to_any(self) -> Any:
        return self
