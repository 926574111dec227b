"""
Selectors: path expressions over structure trees.

A selector is a chain of steps ending in `IdentitySelector`. Each step
narrows the scope on top of the interpreter's stack and hands it to the
next step (`then`). Chains run in two modes:

- select (`for_selected`): read-only enumeration. The callback sees the
  interpreter with the selected item on top; the first callback result
  that is not None stops the traversal and is returned.
- transform (`map_selected`): rewrites the scope in place. Members whose
  transformed result is Absent are removed, members whose result differs
  by identity are replaced, and the (mutated) scope is returned.

Chains are built fluently from the class or from an existing selector:

    Selector.get("a").get("b")
    Selector.descendants().filter(Selector.identity().eq(5))
"""

import types
from typing import Any, Callable, List, Optional, Tuple

from structure.structure_item import Attr, Expression, Field, Item, Num, Slot, Text, Value, _compare
from structure.structure_util import hash_mash, hash_mix, hash_seed

Callback = Callable[[Any], Any]
Transform = Callable[[Any], Any]

_DONE = object()


def _interpreter(interpreter):
    from structure.structure_interpreter import Interpreter
    return Interpreter.from_any(interpreter)


def _record_type():
    from structure.structure_record import Record
    return Record


class builder:
    """Makes a chain-building method callable on the class as well.

    `Selector.get("a")` is shorthand for `Selector.identity().get("a")`.
    """

    def __init__(self, method):
        self.method = method
        self.__doc__ = method.__doc__

    def __get__(self, obj, owner=None):
        if obj is None:
            obj = Selector.identity()
        return types.MethodType(self.method, obj)


class Selector(Expression):
    """Base class of all selector steps."""

    _identity: Optional['IdentitySelector'] = None

    @property
    def then(self) -> 'Selector':
        raise NotImplementedError

    def parts(self) -> Tuple[Item, ...]:
        """The values that distinguish this step, excluding `then`."""
        return ()

    def for_selected(self, interpreter, callback: Callback) -> Any:
        raise NotImplementedError

    def map_selected(self, interpreter, transform: Transform) -> Item:
        raise NotImplementedError

    def and_then(self, then: 'Selector') -> 'Selector':
        raise NotImplementedError

    # --- Chain builders ---

    @builder
    def get(self, key) -> 'Selector':
        return self.and_then(GetSelector(Value.from_any(key), Selector.identity()))

    @builder
    def get_attr(self, key) -> 'Selector':
        return self.and_then(GetAttrSelector(Text.from_any(key), Selector.identity()))

    @builder
    def get_item(self, index) -> 'Selector':
        return self.and_then(GetItemSelector(Num.from_any(index), Selector.identity()))

    @builder
    def keys(self) -> 'Selector':
        return self.and_then(KeysSelector(Selector.identity()))

    @builder
    def values(self) -> 'Selector':
        return self.and_then(ValuesSelector(Selector.identity()))

    @builder
    def children(self) -> 'Selector':
        return self.and_then(ChildrenSelector(Selector.identity()))

    @builder
    def descendants(self) -> 'Selector':
        return self.and_then(DescendantsSelector(Selector.identity()))

    @builder
    def filter(self, predicate=None) -> 'Selector':
        if predicate is None:
            return FilterSelector(self, Selector.identity())
        return self.and_then(FilterSelector(Item.from_any(predicate), Selector.identity()))

    # --- Evaluation ---

    def evaluate(self, interpreter) -> Item:
        """All selections of this chain as a flattened record, or Absent when nothing matched."""
        interpreter = _interpreter(interpreter)
        selected = _record_type().create()

        def collect(interp):
            scope = interp.peek_scope()
            if scope.is_defined():
                selected.push(scope)
            return None

        self.for_selected(interpreter, collect)
        if selected.is_empty():
            return Item.absent()
        return selected.flattened()

    def substitute(self, interpreter) -> Item:
        interpreter = _interpreter(interpreter)
        value = self.evaluate(interpreter)
        if value.is_defined():
            return value
        return self

    # --- Ordering, equality and hashing ---

    def type_order(self) -> int:
        return 10

    def _all_parts(self) -> Tuple[Item, ...]:
        if isinstance(self, IdentitySelector):
            return ()
        return self.parts() + (self.then,)

    def compare_to(self, that: Item) -> int:
        if isinstance(that, Selector):
            order = _compare(type(self).__name__, type(that).__name__)
            if order != 0:
                return order
            for x, y in zip(self._all_parts(), that._all_parts()):
                order = x.compare_to(y)
                if order != 0:
                    return order
            return 0
        return _compare(self.type_order(), that.type_order())

    def equals(self, that) -> bool:
        if self is that:
            return True
        if type(that) is type(self):
            return all(x.equals(y) for x, y in zip(self._all_parts(), that._all_parts()))
        return False

    def hash_code(self) -> int:
        code = hash_seed(type(self).__name__)
        for part in self._all_parts():
            code = hash_mix(code, part.hash_code() & 0xFFFFFFFF)
        return hash_mash(code)

    # --- Factories ---

    @staticmethod
    def identity() -> 'IdentitySelector':
        if Selector._identity is None:
            Selector._identity = IdentitySelector()
        return Selector._identity

    @staticmethod
    def literal(item) -> 'LiteralSelector':
        return LiteralSelector(Item.from_any(item), Selector.identity())


# =================================================================
# Identity
# =================================================================

class IdentitySelector(Selector):
    """Terminates a chain: selects the current scope, evaluated."""

    @property
    def then(self) -> Selector:
        return self

    def for_selected(self, interpreter, callback: Callback) -> Any:
        interpreter = _interpreter(interpreter)
        interpreter.will_select(self)
        selected = None
        if interpreter.scope_depth != 0:
            old_selection = interpreter.pop_scope().to_value()
            new_selection = old_selection.evaluate(interpreter)
            interpreter.push_scope(new_selection)
            selected = callback(interpreter)
            interpreter.swap_scope(old_selection)
        interpreter.did_select(self, selected)
        return selected

    def map_selected(self, interpreter, transform: Transform) -> Item:
        interpreter = _interpreter(interpreter)
        interpreter.will_transform(self)
        result = Item.from_any(transform(interpreter))
        interpreter.did_transform(self, result)
        return result

    def substitute(self, interpreter) -> Item:
        interpreter = _interpreter(interpreter)
        return interpreter.peek_scope().to_value().substitute(interpreter)

    def and_then(self, then: Selector) -> Selector:
        return then

    def precedence(self) -> int:
        return 11


# =================================================================
# Keyed and positional access
# =================================================================

class GetSelector(Selector):
    """Selects the value of the last field whose key matches.

    When the current scope has no such field the lookup continues in the
    enclosing scopes, outermost last, so names bound further down the
    stack (such as `math` in the global scope) stay reachable.
    """

    def __init__(self, key: Value, then: Selector):
        self.accessor = key
        self._then = then

    @property
    def then(self) -> Selector:
        return self._then

    def parts(self) -> Tuple[Item, ...]:
        return (self.accessor,)

    def _match(self, scope: Item, key: Value) -> Optional[Field]:
        if isinstance(scope, _record_type()):
            return scope.get_field(key)
        return None

    def for_selected(self, interpreter, callback: Callback) -> Any:
        interpreter = _interpreter(interpreter)
        interpreter.will_select(self)
        selected = None
        key = self.accessor.evaluate(interpreter).to_value()
        popped: List[Item] = []
        while interpreter.scope_depth != 0:
            scope = interpreter.pop_scope()
            field = self._match(scope.to_value(), key)
            if field is not None:
                interpreter.push_scope(field.to_value())
                selected = self._then.for_selected(interpreter, callback)
                interpreter.pop_scope()
            popped.append(scope)
            if field is not None:
                break
        for scope in reversed(popped):
            interpreter.push_scope(scope)
        interpreter.did_select(self, selected)
        return selected

    def map_selected(self, interpreter, transform: Transform) -> Item:
        interpreter = _interpreter(interpreter)
        interpreter.will_transform(self)
        key = self.accessor.evaluate(interpreter).to_value()
        if interpreter.scope_depth == 0:
            result = Item.absent()
            interpreter.did_transform(self, result)
            return result
        scope = interpreter.pop_scope()
        record = scope.to_value()
        old_field = self._match(record, key)
        if old_field is not None:
            old_value = old_field.to_value()
            interpreter.push_scope(old_value)
            new_value = self._then.map_selected(interpreter, transform).to_value()
            interpreter.pop_scope()
            if not new_value.is_defined():
                record.delete(key)
            elif new_value is not old_value:
                self._store(record, key, new_value)
        interpreter.push_scope(scope)
        interpreter.did_transform(self, scope)
        return scope

    def _store(self, record, key: Value, value: Value) -> None:
        record.set(key, value)

    def and_then(self, then: Selector) -> Selector:
        return type(self)(self.accessor, self._then.and_then(then))


class GetAttrSelector(GetSelector):
    """Like `GetSelector`, but only attributes match."""

    def _match(self, scope: Item, key: Value) -> Optional[Field]:
        if isinstance(scope, _record_type()):
            field = scope.get_field(key)
            if isinstance(field, Attr):
                return field
        return None

    def _store(self, record, key: Value, value: Value) -> None:
        record.set_attr(key, value)


class GetItemSelector(Selector):
    """Selects the member at a position; out-of-range indices select nothing."""

    def __init__(self, index: Num, then: Selector):
        self.index = index
        self._then = then

    @property
    def then(self) -> Selector:
        return self._then

    def parts(self) -> Tuple[Item, ...]:
        return (self.index,)

    def for_selected(self, interpreter, callback: Callback) -> Any:
        interpreter = _interpreter(interpreter)
        interpreter.will_select(self)
        selected = None
        if interpreter.scope_depth != 0:
            scope = interpreter.pop_scope()
            record = scope.to_value()
            index = self.index.int_value()
            if isinstance(record, _record_type()) and 0 <= index < record.length:
                interpreter.push_scope(record.get_item(index))
                selected = self._then.for_selected(interpreter, callback)
                interpreter.pop_scope()
            interpreter.push_scope(scope)
        interpreter.did_select(self, selected)
        return selected

    def map_selected(self, interpreter, transform: Transform) -> Item:
        interpreter = _interpreter(interpreter)
        interpreter.will_transform(self)
        if interpreter.scope_depth == 0:
            result = Item.absent()
            interpreter.did_transform(self, result)
            return result
        scope = interpreter.pop_scope()
        record = scope.to_value()
        index = self.index.int_value()
        if isinstance(record, _record_type()) and 0 <= index < record.length:
            old_item = record.get_item(index)
            interpreter.push_scope(old_item)
            new_item = self._then.map_selected(interpreter, transform)
            interpreter.pop_scope()
            if not new_item.is_defined():
                record.splice(index, 1)
            elif new_item is not old_item:
                record.set_item(index, new_item)
        interpreter.push_scope(scope)
        interpreter.did_transform(self, scope)
        return scope

    def and_then(self, then: Selector) -> Selector:
        return GetItemSelector(self.index, self._then.and_then(then))


# =================================================================
# Member enumeration
# =================================================================

class _MemberSelector(Selector):
    """Shared traversal for selectors that enumerate the members of a scope."""

    def __init__(self, then: Selector):
        self._then = then

    @property
    def then(self) -> Selector:
        return self._then

    def _select_member(self, member: Item) -> Optional[Item]:
        """The item pushed for `member`, or None when it is skipped."""
        raise NotImplementedError

    def _select_field(self, field: Field) -> Optional[Item]:
        """The item pushed when the scope itself is a bare field."""
        return None

    def _rewrite_member(self, member: Item, new_item: Item) -> Optional[Item]:
        """The replacement member for a transformed selection, or None to keep `member`."""
        raise NotImplementedError

    def for_selected(self, interpreter, callback: Callback) -> Any:
        interpreter = _interpreter(interpreter)
        interpreter.will_select(self)
        selected = None
        if interpreter.scope_depth != 0:
            scope = interpreter.pop_scope()
            if isinstance(scope, _record_type()):
                for member in scope:
                    candidate = self._select_member(member)
                    if candidate is None:
                        continue
                    interpreter.push_scope(candidate)
                    selected = self._then.for_selected(interpreter, callback)
                    interpreter.pop_scope()
                    if selected is not None:
                        break
            elif isinstance(scope, Field):
                candidate = self._select_field(scope)
                if candidate is not None:
                    interpreter.push_scope(candidate)
                    selected = self._then.for_selected(interpreter, callback)
                    interpreter.pop_scope()
            interpreter.push_scope(scope)
        interpreter.did_select(self, selected)
        return selected

    def map_selected(self, interpreter, transform: Transform) -> Item:
        interpreter = _interpreter(interpreter)
        interpreter.will_transform(self)
        if interpreter.scope_depth == 0:
            result = Item.absent()
            interpreter.did_transform(self, result)
            return result
        scope = interpreter.pop_scope()
        if isinstance(scope, _record_type()):
            i = 0
            while i < scope.length:
                member = scope.get_item(i)
                candidate = self._select_member(member)
                if candidate is None:
                    i += 1
                    continue
                interpreter.push_scope(candidate)
                new_item = self._then.map_selected(interpreter, transform)
                interpreter.pop_scope()
                if not new_item.is_defined():
                    scope.splice(i, 1)
                    continue
                if new_item is not candidate:
                    replacement = self._rewrite_member(member, new_item)
                    if replacement is None:
                        scope.splice(i, 1)
                        continue
                    scope.set_item(i, replacement)
                i += 1
        interpreter.push_scope(scope)
        interpreter.did_transform(self, scope)
        return scope


class KeysSelector(_MemberSelector):
    """Selects the key of each field."""

    def _select_member(self, member: Item) -> Optional[Item]:
        return member.key if isinstance(member, Field) else None

    def _select_field(self, field: Field) -> Optional[Item]:
        return field.key

    def _rewrite_member(self, member: Item, new_item: Item) -> Optional[Item]:
        key = new_item.to_value()
        if isinstance(member, Attr) and isinstance(key, Text):
            return Attr(key, member.value)
        return Slot(key, member.to_value())

    def and_then(self, then: Selector) -> Selector:
        return KeysSelector(self._then.and_then(then))


class ValuesSelector(_MemberSelector):
    """Selects each member's value: field values and bare values alike."""

    def _select_member(self, member: Item) -> Optional[Item]:
        return member.to_value()

    def _select_field(self, field: Field) -> Optional[Item]:
        return field.to_value()

    def _rewrite_member(self, member: Item, new_item: Item) -> Optional[Item]:
        value = new_item.to_value()
        if isinstance(member, Field):
            return member.updated_value(value)
        return value

    def and_then(self, then: Selector) -> Selector:
        return ValuesSelector(self._then.and_then(then))


class ChildrenSelector(_MemberSelector):
    """Selects each member of a record as is."""

    def _select_member(self, member: Item) -> Optional[Item]:
        return member

    def _rewrite_member(self, member: Item, new_item: Item) -> Optional[Item]:
        return new_item

    def and_then(self, then: Selector) -> Selector:
        return ChildrenSelector(self._then.and_then(then))


def _children(item: Item) -> List[Item]:
    value = item.to_value()
    if isinstance(value, _record_type()):
        return list(value)
    return []


class DescendantsSelector(Selector):
    """Selects every member at every depth, in preorder.

    Descent goes through field values as well as nested records. The first
    non-None callback result ends the whole traversal.
    """

    def __init__(self, then: Selector):
        self._then = then

    @property
    def then(self) -> Selector:
        return self._then

    def for_selected(self, interpreter, callback: Callback) -> Any:
        interpreter = _interpreter(interpreter)
        interpreter.will_select(self)
        selected = None
        if interpreter.scope_depth != 0:
            # Each descendant replaces the starting scope on the stack, so
            # lookups from it never see its ancestors.
            scope = interpreter.pop_scope()
            frames = [iter(_children(scope))]
            while frames and selected is None:
                child = next(frames[-1], _DONE)
                if child is _DONE:
                    frames.pop()
                    continue
                interpreter.push_scope(child)
                selected = self._then.for_selected(interpreter, callback)
                interpreter.pop_scope()
                if selected is None:
                    frames.append(iter(_children(child)))
            interpreter.push_scope(scope)
        interpreter.did_select(self, selected)
        return selected

    def map_selected(self, interpreter, transform: Transform) -> Item:
        interpreter = _interpreter(interpreter)
        interpreter.will_transform(self)
        if interpreter.scope_depth == 0:
            result = Item.absent()
            interpreter.did_transform(self, result)
            return result
        scope = interpreter.pop_scope()
        record = scope.to_value()
        if isinstance(record, _record_type()):
            i = 0
            while i < record.length:
                old_item = record.get_item(i)
                interpreter.push_scope(old_item)
                new_item = self._then.map_selected(interpreter, transform)
                if new_item.is_defined():
                    interpreter.swap_scope(new_item)
                    new_item = self.map_selected(interpreter, transform)
                interpreter.pop_scope()
                if not new_item.is_defined():
                    record.splice(i, 1)
                    continue
                if new_item is not old_item:
                    record.set_item(i, new_item)
                i += 1
        interpreter.push_scope(scope)
        interpreter.did_transform(self, scope)
        return scope

    def and_then(self, then: Selector) -> Selector:
        return DescendantsSelector(self._then.and_then(then))


# =================================================================
# Filter and literal
# =================================================================

class FilterSelector(Selector):
    """Continues with the current scope only if `predicate` holds for it.

    A selector predicate holds when it selects anything; any other
    predicate holds when it evaluates to a defined result. The predicate's
    own result is discarded.
    """

    def __init__(self, predicate: Item, then: Selector):
        self.predicate = predicate
        self._then = then

    @property
    def then(self) -> Selector:
        return self._then

    def parts(self) -> Tuple[Item, ...]:
        return (self.predicate,)

    def filter_selected(self, interpreter) -> bool:
        if isinstance(self.predicate, Selector):
            return self.predicate.for_selected(interpreter, lambda interp: True) is not None
        return self.predicate.evaluate(interpreter).is_defined()

    def for_selected(self, interpreter, callback: Callback) -> Any:
        interpreter = _interpreter(interpreter)
        interpreter.will_select(self)
        selected = None
        if interpreter.scope_depth != 0 and self.filter_selected(interpreter):
            selected = self._then.for_selected(interpreter, callback)
        interpreter.did_select(self, selected)
        return selected

    def map_selected(self, interpreter, transform: Transform) -> Item:
        interpreter = _interpreter(interpreter)
        interpreter.will_transform(self)
        if interpreter.scope_depth != 0 and self.filter_selected(interpreter):
            result = self._then.map_selected(interpreter, transform)
        elif interpreter.scope_depth != 0:
            result = interpreter.peek_scope()
        else:
            result = Item.absent()
        interpreter.did_transform(self, result)
        return result

    def and_then(self, then: Selector) -> Selector:
        return FilterSelector(self.predicate, self._then.and_then(then))


class LiteralSelector(Selector):
    """Selects a fixed item, evaluated in the current interpreter."""

    def __init__(self, item: Item, then: Selector):
        self.item = item
        self._then = then

    @property
    def then(self) -> Selector:
        return self._then

    def parts(self) -> Tuple[Item, ...]:
        return (self.item,)

    def for_selected(self, interpreter, callback: Callback) -> Any:
        interpreter = _interpreter(interpreter)
        interpreter.will_select(self)
        selected = None
        literal = self.item.evaluate(interpreter)
        if literal.is_defined():
            interpreter.push_scope(literal)
            selected = self._then.for_selected(interpreter, callback)
            interpreter.pop_scope()
        interpreter.did_select(self, selected)
        return selected

    def map_selected(self, interpreter, transform: Transform) -> Item:
        interpreter = _interpreter(interpreter)
        interpreter.will_transform(self)
        literal = self.item.evaluate(interpreter)
        if literal.is_defined():
            interpreter.push_scope(literal)
            literal = self._then.map_selected(interpreter, transform)
            interpreter.pop_scope()
        interpreter.did_transform(self, literal)
        return literal

    def and_then(self, then: Selector) -> Selector:
        return LiteralSelector(self.item, self._then.and_then(then))

    def precedence(self) -> int:
        return self.item.precedence()
