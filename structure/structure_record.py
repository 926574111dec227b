"""
Records: ordered sequences of items that are list-like and map-like at once.

A `RecordMap` owns a dense item list, a field count and a hash index over
its fields that is rebuilt lazily after structural changes. Records follow a
three-state lifecycle:

    EXCLUSIVE  the record owns its storage and mutates it in place
    SHARED     the storage is shared with a branch; the next write copies it
    FROZEN     the record was committed; every write raises ImmutableError

Keys are not unique. Lookups return the last field whose key matches.
"""

from enum import Enum
from typing import Any, Callable, Iterator, List, Optional

from structure.structure_errors import ImmutableError, RecordRangeError
from structure.structure_item import Attr, Field, Item, Slot, Text, Value, _compare
from structure.structure_util import expand, hash_mash, hash_mix, hash_seed


class RecordState(Enum):
    EXCLUSIVE = "exclusive"
    SHARED = "shared"
    FROZEN = "frozen"


def _index(index) -> int:
    if isinstance(index, Item):
        return int(index.number_value(0))
    return int(index)


# =================================================================
# Record
# =================================================================

class Record(Value):
    """Abstract record. Subclasses provide storage; everything else lives here."""

    # --- Storage contract ---

    @property
    def length(self) -> int:
        raise NotImplementedError

    def is_empty(self) -> bool:
        return self.length == 0

    def field_count(self) -> int:
        count = 0
        for item in self:
            if isinstance(item, Field):
                count += 1
        return count

    def value_count(self) -> int:
        return self.length - self.field_count()

    def is_array(self) -> bool:
        return self.field_count() == 0

    def is_object(self) -> bool:
        return self.value_count() == 0

    def get_item(self, index) -> Item:
        raise NotImplementedError

    def set_item(self, index: int, item) -> 'Record':
        raise NotImplementedError

    def push(self, *items) -> int:
        raise NotImplementedError

    def splice(self, start: int, delete_count: int = 0, *items) -> List[Item]:
        raise NotImplementedError

    def delete(self, key) -> Item:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError

    def set(self, key, value) -> 'Record':
        raise NotImplementedError

    def set_attr(self, key, value) -> 'Record':
        raise NotImplementedError

    def set_slot(self, key, value) -> 'Record':
        raise NotImplementedError

    def sub_record(self, lower: Optional[int] = None, upper: Optional[int] = None) -> 'Record':
        raise NotImplementedError

    # --- Predicates ---

    def is_constant(self) -> bool:
        for item in self:
            if not item.is_constant():
                return False
        return True

    # --- Navigation ---

    @property
    def tag(self) -> Optional[str]:
        head = self.head()
        if isinstance(head, Attr):
            return head.key.value
        return None

    @property
    def target(self) -> Value:
        value = None
        record = None
        modified = False
        for item in self:
            if isinstance(item, Attr):
                modified = True
            elif value is None and isinstance(item, Value):
                value = item
            else:
                if record is None:
                    record = Record.create()
                    if value is not None:
                        record.push(value)
                record.push(item)
        if value is None:
            return Value.extant()
        if record is None:
            return value
        if modified:
            return record
        return self

    def flattened(self) -> Value:
        n = self.length
        if n == 0:
            return Value.extant()
        if n == 1:
            item = self.get_item(0)
            if isinstance(item, Value):
                return item.flattened()
        return self

    def unflattened(self) -> 'Record':
        return self

    def header(self, tag: str) -> Value:
        head = self.head()
        if isinstance(head, Attr) and head.key_equals(tag):
            return head.value
        return Value.absent()

    def headers(self, tag: str) -> Optional['Record']:
        head = self.head()
        if isinstance(head, Attr) and head.key_equals(tag):
            header = head.value
            if isinstance(header, Record):
                return header
            return Record.of(header)
        return None

    def head(self) -> Item:
        return self.get_item(0) if self.length > 0 else Item.absent()

    def tail(self) -> 'Record':
        n = self.length
        if n > 0:
            return self.sub_record(1, n)
        return Record.empty()

    def body(self) -> Value:
        n = self.length
        if n > 2:
            return self.sub_record(1, n).branch()
        if n == 2:
            item = self.get_item(1)
            if isinstance(item, Value):
                return item
            return Record.of(item)
        return Value.absent()

    def _find_field(self, key, kind=None) -> Optional[Field]:
        for i in range(self.length - 1, -1, -1):
            item = self.get_item(i)
            if isinstance(item, Field) and (kind is None or isinstance(item, kind)) and item.key.equals(key):
                return item
        return None

    def has(self, key) -> bool:
        return self._find_field(Value.from_any(key)) is not None

    def get(self, key) -> Value:
        field = self._find_field(Value.from_any(key))
        return field.value if field is not None else Value.absent()

    def get_attr(self, key) -> Value:
        field = self._find_field(Text.from_any(key), Attr)
        return field.value if field is not None else Value.absent()

    def get_slot(self, key) -> Value:
        field = self._find_field(Value.from_any(key), Slot)
        return field.value if field is not None else Value.absent()

    def get_field(self, key) -> Optional[Field]:
        return self._find_field(Value.from_any(key))

    def index_of(self, item, index: int = 0) -> int:
        item = Item.from_any(item)
        n = self.length
        if index < 0:
            index = max(0, n + index)
        while index < n:
            if item.equals(self.get_item(index)):
                return index
            index += 1
        return -1

    def last_index_of(self, item, index: Optional[int] = None) -> int:
        item = Item.from_any(item)
        n = self.length
        if index is None:
            index = n - 1
        elif index < 0:
            index = n + index
        index = min(index, n - 1)
        while index >= 0:
            if item.equals(self.get_item(index)):
                return index
            index -= 1
        return -1

    def slice(self, lower: Optional[int] = None, upper: Optional[int] = None) -> 'Record':
        return self.sub_record(lower, upper).branch()

    def deleted(self, key) -> 'Record':
        record = self.branch() if not self.is_mutable() else self
        record.delete(key)
        return record

    def updated(self, key, value) -> 'Record':
        record = self.branch() if not self.is_mutable() else self
        return record.set(key, value)

    def updated_attr(self, key, value) -> 'Record':
        record = self.branch() if not self.is_mutable() else self
        return record.set_attr(key, value)

    def updated_slot(self, key, value) -> 'Record':
        record = self.branch() if not self.is_mutable() else self
        return record.set_slot(key, value)

    def appended(self, *items) -> 'Record':
        record = self.branch() if not self.is_mutable() else self
        record.push(*items)
        return record

    def prepended(self, *items) -> 'Record':
        record = self.branch() if not self.is_mutable() else self
        record.splice(0, 0, *items)
        return record

    def concat(self, *items) -> 'Record':
        record = self.branch() if not self.is_mutable() else self
        for item in items:
            for member in Item.from_any(item):
                record.push(member)
        return record

    # --- Fluent builders ---

    def attr(self, key, value=None) -> 'Record':
        self.push(Attr.of(key, value))
        return self

    def slot(self, key, value=None) -> 'Record':
        self.push(Slot.of(key, value))
        return self

    def item(self, item) -> 'Record':
        self.push(item)
        return self

    def items(self, *items) -> 'Record':
        self.push(*items)
        return self

    # --- Evaluation ---

    def evaluate(self, interpreter) -> 'Record':
        from structure.structure_interpreter import Interpreter
        interpreter = Interpreter.from_any(interpreter)
        scope = Record.create(self.length)
        interpreter.push_scope(scope)
        changed = False
        for old_item in self:
            new_item = old_item.evaluate(interpreter)
            if new_item.is_defined():
                scope.push(new_item)
            if new_item is not old_item:
                changed = True
        interpreter.pop_scope()
        return scope if changed else self

    def substitute(self, interpreter) -> 'Record':
        from structure.structure_interpreter import Interpreter
        interpreter = Interpreter.from_any(interpreter)
        scope = Record.create(self.length)
        interpreter.push_scope(scope)
        changed = False
        for old_item in self:
            new_item = old_item.substitute(interpreter)
            if new_item.is_defined():
                scope.push(new_item)
            if new_item is not old_item:
                changed = True
        interpreter.pop_scope()
        return scope if changed else self

    # --- Conversions ---

    def string_value(self, or_else=None) -> Optional[str]:
        parts = []
        for item in self:
            if not isinstance(item, Value):
                return or_else
            part = item.string_value()
            if part is None:
                return or_else
            parts.append(part)
        return "".join(parts)

    def to_list(self) -> List[Any]:
        return [item.to_any() for item in self if isinstance(item, Value)]

    def to_dict(self) -> dict:
        obj = {}
        for index, item in enumerate(self):
            if isinstance(item, Attr):
                obj["@" + item.key.value] = item.value.to_any()
            elif isinstance(item, Field):
                key = item.key.string_value()
                obj[key if key is not None else repr(item.key)] = item.value.to_any()
            else:
                obj["$" + str(index)] = item.to_any()
        return obj

    def to_any(self) -> Any:
        if self.is_array():
            return self.to_list()
        return self.to_dict()

    def for_each(self, callback: Callable[[Item, int], Any]) -> Any:
        for index, item in enumerate(self):
            result = callback(item, index)
            if result is not None:
                return result
        return None

    # --- Python protocols ---

    def __len__(self) -> int:
        return self.length

    def __iter__(self) -> Iterator[Item]:
        for i in range(self.length):
            yield self.get_item(i)

    def __getitem__(self, index):
        if isinstance(index, slice):
            if index.step not in (None, 1):
                raise ValueError("record slices do not support a step")
            return self.slice(*slice(index.start, index.stop).indices(self.length)[:2])
        if isinstance(index, int):
            n = self.length
            if index < -n or index >= n:
                raise IndexError(index)
            return self.get_item(index)
        return self.get(index)

    # --- Ordering, equality and hashing ---

    def type_order(self) -> int:
        return 3

    def compare_to(self, that: Item) -> int:
        if isinstance(that, Record):
            for x, y in zip(self, that):
                order = x.compare_to(y)
                if order != 0:
                    return order
            return _compare(self.length, that.length)
        return _compare(self.type_order(), that.type_order())

    def equals(self, that) -> bool:
        if self is that:
            return True
        if isinstance(that, Record) and self.length == that.length:
            for x, y in zip(self, that):
                if not x.equals(y):
                    return False
            return True
        return False

    def hash_code(self) -> int:
        code = hash_seed("Record")
        for item in self:
            code = hash_mix(code, item.hash_code() & 0xFFFFFFFF)
        return hash_mash(code)

    # --- Factories ---

    @staticmethod
    def empty() -> 'RecordMap':
        return RecordMap.empty()

    @staticmethod
    def create(initial_capacity: Optional[int] = None) -> 'RecordMap':
        return RecordMap.create(initial_capacity)

    @staticmethod
    def of(*items) -> 'RecordMap':
        return RecordMap.of(*items)

    @staticmethod
    def from_array(array) -> 'RecordMap':
        record = RecordMap.create(len(array))
        for value in array:
            record.push(Value.from_any(value))
        return record

    @staticmethod
    def from_object(obj: dict) -> 'RecordMap':
        record = RecordMap.create(len(obj))
        for key, value in obj.items():
            if isinstance(key, str) and key.startswith("@"):
                record.push(Attr.of(key[1:], Value.from_any(value)))
            elif isinstance(key, str) and key.startswith("$"):
                record.push(Value.from_any(value))
            else:
                record.push(Slot.of(key, Value.from_any(value)))
        return record


# =================================================================
# RecordMap
# =================================================================

class RecordMap(Record):
    """A record backed by an item list and a lazily built open-addressing field index."""

    _empty: Optional['RecordMap'] = None

    def __init__(self, array: Optional[List[Item]] = None, table: Optional[List[Optional[Field]]] = None,
                 field_count: int = 0, state: RecordState = RecordState.EXCLUSIVE):
        self._array = array if array is not None else []
        self._table = table
        self._field_count = field_count
        self._state = state

    @property
    def state(self) -> RecordState:
        return self._state

    @property
    def length(self) -> int:
        return len(self._array)

    def is_empty(self) -> bool:
        return not self._array

    def field_count(self) -> int:
        return self._field_count

    def value_count(self) -> int:
        return len(self._array) - self._field_count

    def is_constant(self) -> bool:
        return all(item.is_constant() for item in self._array)

    @property
    def tag(self) -> Optional[str]:
        if self._field_count > 0:
            head = self._array[0]
            if isinstance(head, Attr):
                return head.key.value
        return None

    def head(self) -> Item:
        return self._array[0] if self._array else Item.absent()

    def tail(self) -> Record:
        n = len(self._array)
        if n > 0:
            return RecordMapView(self, 1, n)
        return Record.empty()

    # --- Hash index ---

    def hash_table(self) -> Optional[List[Optional[Field]]]:
        n = self._field_count
        if n != 0 and self._table is None:
            table = [None] * expand(max(n, n * 10 // 7))
            for item in self._array:
                if isinstance(item, Field):
                    RecordMap._put(table, item)
            self._table = table
        return self._table

    @staticmethod
    def _put(table: List[Optional[Field]], field: Field) -> None:
        n = len(table)
        x = abs(field.key.hash_code()) % n
        i = x
        while True:
            entry = table[i]
            if entry is None or field.key.equals(entry.key):
                table[i] = field
                return
            i = (i + 1) % n
            if i == x:
                raise RuntimeError("record hash index is full")

    def _lookup(self, key: Value, kind=None) -> Optional[Field]:
        if self._field_count == 0:
            return None
        table = self.hash_table()
        n = len(table)
        x = abs(key.hash_code()) % n
        i = x
        while True:
            field = table[i]
            if field is None:
                return None
            if field.key.equals(key):
                if kind is None or isinstance(field, kind):
                    return field
                return None
            i = (i + 1) % n
            if i == x:
                return None

    def has(self, key) -> bool:
        return self._lookup(Value.from_any(key)) is not None

    def get(self, key) -> Value:
        field = self._lookup(Value.from_any(key))
        return field.value if field is not None else Value.absent()

    def get_attr(self, key) -> Value:
        field = self._lookup(Text.from_any(key), Attr)
        return field.value if field is not None else Value.absent()

    def get_slot(self, key) -> Value:
        field = self._lookup(Value.from_any(key), Slot)
        return field.value if field is not None else Value.absent()

    def get_field(self, key) -> Optional[Field]:
        return self._lookup(Value.from_any(key))

    def get_item(self, index) -> Item:
        index = _index(index)
        n = len(self._array)
        if index < 0:
            index = n + index
        if 0 <= index < n:
            return self._array[index]
        return Item.absent()

    # --- Copy-on-write ---

    def _check_mutable(self) -> None:
        if self._state is RecordState.FROZEN:
            raise ImmutableError(self)

    def _own(self) -> None:
        # Copy shared storage before the first write after a branch.
        if self._state is RecordState.SHARED:
            self._array = list(self._array)
            self._table = None
            self._state = RecordState.EXCLUSIVE

    # --- Mutation ---

    def set(self, key, value) -> 'RecordMap':
        self._check_mutable()
        self._set_field(Value.from_any(key), Value.from_any(value), None)
        return self

    def set_attr(self, key, value) -> 'RecordMap':
        self._check_mutable()
        self._set_field(Text.from_any(key), Value.from_any(value), Attr)
        return self

    def set_slot(self, key, value) -> 'RecordMap':
        self._check_mutable()
        self._set_field(Value.from_any(key), Value.from_any(value), Slot)
        return self

    def _set_field(self, key: Value, value: Value, kind) -> None:
        self._own()
        if self._field_count == 0:
            self._push_items([Slot(key, value) if kind is None else kind(key, value)])
            return
        field = self._lookup(key)
        if field is not None and (kind is None or isinstance(field, kind)) and field.is_mutable():
            field.set_value(value)
            return
        self._update_field(key, value, kind)

    def _update_field(self, key: Value, value: Value, kind) -> None:
        array = self._array
        for i in range(len(array) - 1, -1, -1):
            item = array[i]
            if isinstance(item, Field) and item.key.equals(key):
                array[i] = item.updated_value(value) if kind is None else kind(key, value)
                self._table = None
                return
        self._push_items([Slot(key, value) if kind is None else kind(key, value)])

    def set_item(self, index: int, item) -> 'RecordMap':
        self._check_mutable()
        item = Item.from_any(item)
        n = len(self._array)
        index = _index(index)
        if index < 0:
            index = n + index
        if index < 0 or index >= n:
            raise RecordRangeError(index)
        self._own()
        self._replace_at(index, item)
        return self

    def _replace_at(self, index: int, item: Item) -> None:
        old_item = self._array[index]
        self._array[index] = item
        if isinstance(item, Field):
            self._table = None
            if not isinstance(old_item, Field):
                self._field_count += 1
        elif isinstance(old_item, Field):
            self._table = None
            self._field_count -= 1

    def push(self, *items) -> int:
        self._check_mutable()
        self._own()
        self._push_items([Item.from_any(item) for item in items])
        return len(self._array)

    def _push_items(self, items: List[Item]) -> None:
        for item in items:
            self._array.append(item)
            if isinstance(item, Field):
                self._field_count += 1
                self._table = None

    def splice(self, start: int, delete_count: int = 0, *items) -> List[Item]:
        self._check_mutable()
        n = len(self._array)
        if start < 0:
            start = n + start
        start = min(max(0, start), n)
        delete_count = min(max(0, delete_count), n - start)
        return self._splice_at(start, delete_count, [Item.from_any(item) for item in items])

    def _splice_at(self, start: int, delete_count: int, items: List[Item]) -> List[Item]:
        self._check_mutable()
        self._own()
        array = self._array
        old_items = array[start:start + delete_count]
        array[start:start + delete_count] = items
        removed_fields = sum(1 for item in old_items if isinstance(item, Field))
        added_fields = sum(1 for item in items if isinstance(item, Field))
        if removed_fields or added_fields:
            self._field_count += added_fields - removed_fields
            self._table = None
        return old_items

    def delete(self, key) -> Item:
        self._check_mutable()
        key = Value.from_any(key)
        array = self._array
        for i in range(len(array) - 1, -1, -1):
            item = array[i]
            if isinstance(item, Field) and item.key.equals(key):
                self._own()
                del self._array[i]
                self._field_count -= 1
                self._table = None
                return item
        return Item.absent()

    def clear(self) -> None:
        self._check_mutable()
        self._array = []
        self._table = None
        self._field_count = 0
        self._state = RecordState.EXCLUSIVE

    def sub_record(self, lower: Optional[int] = None, upper: Optional[int] = None) -> Record:
        n = len(self._array)
        if lower is None:
            lower = 0
        elif lower < 0:
            lower = n + lower
        if upper is None:
            upper = n
        elif upper < 0:
            upper = n + upper
        if lower < 0 or upper > n or lower > upper:
            raise RecordRangeError(lower, upper)
        return RecordMapView(self, lower, upper)

    # --- Lifecycle ---

    def is_aliased(self) -> bool:
        return self._state is not RecordState.EXCLUSIVE

    def is_mutable(self) -> bool:
        return self._state is not RecordState.FROZEN

    def alias(self) -> None:
        if self._state is RecordState.EXCLUSIVE:
            self._state = RecordState.SHARED

    def branch(self) -> 'RecordMap':
        if self._state is RecordState.EXCLUSIVE:
            for item in self._array:
                item.alias()
            self._state = RecordState.SHARED
        return RecordMap(self._array, self._table, self._field_count, RecordState.SHARED)

    def clone(self) -> 'RecordMap':
        return RecordMap([item.clone() for item in self._array], None, self._field_count)

    def commit(self) -> 'RecordMap':
        if self._state is not RecordState.FROZEN:
            self._state = RecordState.FROZEN
            for item in self._array:
                item.commit()
        return self

    def __iter__(self) -> Iterator[Item]:
        return iter(list(self._array))

    @staticmethod
    def empty() -> 'RecordMap':
        if RecordMap._empty is None:
            RecordMap._empty = RecordMap([], None, 0, RecordState.FROZEN)
        return RecordMap._empty

    @staticmethod
    def create(initial_capacity: Optional[int] = None) -> 'RecordMap':
        if initial_capacity is None:
            return RecordMap([], None, 0, RecordState.SHARED)
        return RecordMap([], None, 0, RecordState.EXCLUSIVE)

    @staticmethod
    def of(*items) -> 'RecordMap':
        if not items:
            return RecordMap([], None, 0, RecordState.SHARED)
        array = [Item.from_any(item) for item in items]
        field_count = sum(1 for item in array if isinstance(item, Field))
        return RecordMap(array, None, field_count, RecordState.EXCLUSIVE)


# =================================================================
# RecordMapView
# =================================================================

class RecordMapView(Record):
    """A `[lower, upper)` window onto a `RecordMap`.

    Structural changes go through the parent's storage and shift `upper`.
    Sibling views over overlapping windows are not kept consistent.
    """

    def __init__(self, record: RecordMap, lower: int, upper: int):
        self.record = record
        self.lower = lower
        self.upper = upper

    @property
    def length(self) -> int:
        return self.upper - self.lower

    def _window(self) -> List[Item]:
        return self.record._array[self.lower:self.upper]

    def get_item(self, index) -> Item:
        index = _index(index)
        n = self.length
        if index < 0:
            index = n + index
        if 0 <= index < n:
            return self.record._array[self.lower + index]
        return Item.absent()

    def set_item(self, index: int, item) -> 'RecordMapView':
        self.record._check_mutable()
        item = Item.from_any(item)
        n = self.length
        index = _index(index)
        if index < 0:
            index = n + index
        if index < 0 or index >= n:
            raise RecordRangeError(index)
        self.record._own()
        self.record._replace_at(self.lower + index, item)
        return self

    def push(self, *items) -> int:
        new_items = [Item.from_any(item) for item in items]
        self.record._splice_at(self.upper, 0, new_items)
        self.upper += len(new_items)
        return self.length

    def splice(self, start: int, delete_count: int = 0, *items) -> List[Item]:
        self.record._check_mutable()
        n = self.length
        if start < 0:
            start = n + start
        start = min(max(0, start), n)
        delete_count = min(max(0, delete_count), n - start)
        new_items = [Item.from_any(item) for item in items]
        old_items = self.record._splice_at(self.lower + start, delete_count, new_items)
        self.upper += len(new_items) - delete_count
        return old_items

    def delete(self, key) -> Item:
        self.record._check_mutable()
        key = Value.from_any(key)
        for i in range(self.length - 1, -1, -1):
            item = self.record._array[self.lower + i]
            if isinstance(item, Field) and item.key.equals(key):
                self.record._splice_at(self.lower + i, 1, [])
                self.upper -= 1
                return item
        return Item.absent()

    def clear(self) -> None:
        self.record._check_mutable()
        self.record._splice_at(self.lower, self.length, [])
        self.upper = self.lower

    def set(self, key, value) -> 'RecordMapView':
        self.record._check_mutable()
        self._set_field(Value.from_any(key), Value.from_any(value), None)
        return self

    def set_attr(self, key, value) -> 'RecordMapView':
        self.record._check_mutable()
        self._set_field(Text.from_any(key), Value.from_any(value), Attr)
        return self

    def set_slot(self, key, value) -> 'RecordMapView':
        self.record._check_mutable()
        self._set_field(Value.from_any(key), Value.from_any(value), Slot)
        return self

    def _set_field(self, key: Value, value: Value, kind) -> None:
        self.record._own()
        array = self.record._array
        for i in range(self.upper - 1, self.lower - 1, -1):
            item = array[i]
            if isinstance(item, Field) and item.key.equals(key):
                if (kind is None or isinstance(item, kind)) and item.is_mutable():
                    item.set_value(value)
                else:
                    self.record._replace_at(i, item.updated_value(value) if kind is None else kind(key, value))
                return
        self.push(Slot(key, value) if kind is None else kind(key, value))

    def sub_record(self, lower: Optional[int] = None, upper: Optional[int] = None) -> Record:
        n = self.length
        if lower is None:
            lower = 0
        elif lower < 0:
            lower = n + lower
        if upper is None:
            upper = n
        elif upper < 0:
            upper = n + upper
        if lower < 0 or upper > n or lower > upper:
            raise RecordRangeError(lower, upper)
        return RecordMapView(self.record, self.lower + lower, self.lower + upper)

    def is_aliased(self) -> bool:
        return self.record.is_aliased()

    def is_mutable(self) -> bool:
        return self.record.is_mutable()

    def alias(self) -> None:
        self.record.alias()

    def branch(self) -> RecordMap:
        items = self._window()
        for item in items:
            item.alias()
        field_count = sum(1 for item in items if isinstance(item, Field))
        return RecordMap(items, None, field_count)

    def clone(self) -> RecordMap:
        items = [item.clone() for item in self._window()]
        field_count = sum(1 for item in items if isinstance(item, Field))
        return RecordMap(items, None, field_count)

    def commit(self) -> 'RecordMapView':
        self.record.commit()
        return self

    def __iter__(self) -> Iterator[Item]:
        return iter(self._window())


# =================================================================
# ValueBuilder
# =================================================================

class ValueBuilder:
    """Accumulates items into a bare value, or a record once a second item or a field arrives."""

    def __init__(self):
        self.record: Optional[Record] = None
        self.value: Optional[Value] = None

    def push(self, item) -> bool:
        item = Item.from_any(item)
        if isinstance(item, Field):
            return self.push_field(item)
        return self.push_value(item)

    def push_field(self, field: Field) -> bool:
        if self.record is None:
            self.record = Record.create()
            if self.value is not None:
                self.record.push(self.value)
                self.value = None
        self.record.push(field)
        return True

    def push_value(self, value: Value) -> bool:
        if self.record is not None:
            self.record.push(value)
        elif self.value is None:
            self.value = value
        else:
            self.record = Record.create()
            self.record.push(self.value)
            self.value = None
            self.record.push(value)
        return True

    def build(self) -> Value:
        if self.record is not None:
            return self.record
        if self.value is not None:
            return self.value
        return Value.absent()
