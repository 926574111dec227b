"""
Functions callable from expressions.

- `LambdaFunc` binds argument values to parameter names and evaluates a
  template in a fresh scope holding those bindings.
- `BridgeFunc` wraps a Python callable.
- `MathModule` is the standard library reachable as `math` from the global
  scope: max, min, abs, ceil, floor, round, pow, sqrt, rate and random.
"""

import random as _random
import time
from typing import Callable, List, Optional

from structure.structure_item import Expression, Item, Num, Text, Value, _compare
from structure.structure_util import hash_mash, hash_mix, hash_seed


def _interpreter(interpreter):
    from structure.structure_interpreter import Interpreter
    return Interpreter.from_any(interpreter)


def clock() -> float:
    """Milliseconds on a monotonic clock."""
    return time.monotonic() * 1000.0


def _members(value: Value) -> List[Item]:
    from structure.structure_record import Record
    if isinstance(value, Record):
        return list(value)
    if value.is_defined():
        return [value]
    return []


class Func(Expression):
    """A callable value. Invocation goes through `InvokeOperator`."""

    def invoke(self, args: Value, interpreter=None, caller=None) -> Item:
        raise NotImplementedError

    def expand(self, args: Value, interpreter, caller) -> Optional[Item]:
        """Inlines an invocation during substitution; None when the call has to stay deferred."""
        return None

    def evaluate(self, interpreter) -> Item:
        return self

    def substitute(self, interpreter) -> Item:
        return self

    def type_order(self) -> int:
        return 50


class LambdaFunc(Func):
    """`bindings => template`.

    `bindings` is a single parameter or a record of parameters. A parameter
    is a `Text` name or a bare `get` selector such as `$x`.
    """

    def __init__(self, bindings: Value, template: Value):
        self.bindings = bindings
        self.template = template

    def _binding_key(self, binding: Item) -> Optional[Value]:
        from structure.structure_selector import GetSelector, IdentitySelector
        if isinstance(binding, Text):
            return binding
        if isinstance(binding, GetSelector) and isinstance(binding.then, IdentitySelector):
            return binding.accessor
        return None

    def invoke(self, args: Value, interpreter=None, caller=None) -> Item:
        from structure.structure_item import Slot
        from structure.structure_record import Record
        interpreter = _interpreter(interpreter)
        bindings = _members(self.bindings)
        arguments = [arg.evaluate(interpreter).to_value() for arg in _members(args)]
        params = Record.create(max(1, len(bindings)))
        for i, binding in enumerate(bindings):
            key = self._binding_key(binding)
            if key is not None and i < len(arguments):
                params.push(Slot(key, arguments[i]))
        interpreter.push_scope(params)
        try:
            result = self.template.evaluate(interpreter)
        finally:
            interpreter.pop_scope()
        return result

    def clone(self) -> 'LambdaFunc':
        return LambdaFunc(self.bindings.clone(), self.template.clone())

    def precedence(self) -> int:
        return 1

    def compare_to(self, that: Item) -> int:
        if isinstance(that, LambdaFunc):
            order = self.bindings.compare_to(that.bindings)
            if order == 0:
                order = self.template.compare_to(that.template)
            return order
        if isinstance(that, Func):
            return _compare(type(self).__name__, type(that).__name__)
        return _compare(self.type_order(), that.type_order())

    def equals(self, that) -> bool:
        if self is that:
            return True
        if isinstance(that, LambdaFunc):
            return self.bindings.equals(that.bindings) and self.template.equals(that.template)
        return False

    def hash_code(self) -> int:
        code = hash_mix(hash_seed("LambdaFunc"), self.bindings.hash_code() & 0xFFFFFFFF)
        return hash_mash(hash_mix(code, self.template.hash_code() & 0xFFFFFFFF))


class BridgeFunc(Func):
    """A named Python function exposed to expressions.

    `function(arguments, caller)` receives the evaluated argument values and
    the invoking `InvokeOperator`, whose `state` it may use.
    """

    def __init__(self, name: str, function: Callable[[List[Value], object], Item]):
        self.name = name
        self.function = function

    def invoke(self, args: Value, interpreter=None, caller=None) -> Item:
        interpreter = _interpreter(interpreter)
        arguments = [arg.evaluate(interpreter).to_value() for arg in _members(args)]
        return self.function(arguments, caller)

    def compare_to(self, that: Item) -> int:
        if isinstance(that, BridgeFunc):
            return _compare(self.name, that.name)
        if isinstance(that, Func):
            return _compare(type(self).__name__, type(that).__name__)
        return _compare(self.type_order(), that.type_order())

    def equals(self, that) -> bool:
        return isinstance(that, BridgeFunc) and self.name == that.name and self.function is that.function

    def hash_code(self) -> int:
        return hash_seed("BridgeFunc:" + self.name)


# =================================================================
# Math module
# =================================================================

def _extremum(arguments: List[Value], caller, pick: Callable[[Item, Item], Item]) -> Item:
    from structure.structure_record import Record
    if len(arguments) >= 2:
        return pick(arguments[0], arguments[1])
    if len(arguments) == 0:
        return Item.absent()
    value = arguments[0]
    if isinstance(value, Record):
        result = None
        for item in value:
            item = item.to_value()
            result = item if result is None else pick(result, item)
        return result if result is not None else Item.absent()
    # A lone scalar folds into the running extremum kept on the calling node.
    if caller is None:
        return value
    state = caller.state
    result = value if state is None else pick(state, value)
    caller.state = result
    return result


def _num_unary(method: str) -> Callable[[List[Value], object], Item]:
    def apply(arguments: List[Value], caller) -> Item:
        if len(arguments) == 1 and isinstance(arguments[0], Num):
            return getattr(arguments[0], method)()
        return Item.absent()
    apply.__name__ = method
    return apply


class MathModule:
    """The `math` namespace of the global scope."""

    _scope: Optional[Value] = None

    @staticmethod
    def max(arguments: List[Value], caller=None) -> Item:
        return _extremum(arguments, caller, lambda x, y: x.max(y))

    @staticmethod
    def min(arguments: List[Value], caller=None) -> Item:
        return _extremum(arguments, caller, lambda x, y: x.min(y))

    @staticmethod
    def pow(arguments: List[Value], caller=None) -> Item:
        if len(arguments) == 2 and isinstance(arguments[0], Num) and isinstance(arguments[1], Num):
            return arguments[0].pow(arguments[1])
        return Item.absent()

    @staticmethod
    def rate(arguments: List[Value], caller=None) -> Item:
        """Change of a value per `period` milliseconds (default 1000) since the previous call.

        The first call on a node only records a sample and yields Absent.
        """
        if not arguments or not isinstance(arguments[0], Num) or caller is None:
            return Item.absent()
        value = arguments[0].value
        period = arguments[1].number_value(1000.0) if len(arguments) > 1 else 1000.0
        now = clock()
        state = caller.state
        caller.state = (value, now)
        if state is None:
            return Item.absent()
        old_value, old_time = state
        return Num.of(period * (value - old_value)).divide(Num.of(now - old_time))

    @staticmethod
    def random(arguments: List[Value], caller=None) -> Item:
        lower, upper = 0.0, 1.0
        if len(arguments) == 1:
            upper = arguments[0].number_value(1.0)
        elif len(arguments) >= 2:
            lower = arguments[0].number_value(0.0)
            upper = arguments[1].number_value(1.0)
        return Num.of(lower + _random.random() * (upper - lower))

    @staticmethod
    def scope() -> Value:
        """A committed record binding each function name to its `BridgeFunc`."""
        if MathModule._scope is None:
            from structure.structure_record import Record
            record = Record.create(10)
            record.slot("max", BridgeFunc("max", MathModule.max))
            record.slot("min", BridgeFunc("min", MathModule.min))
            for name in ("abs", "ceil", "floor", "round", "sqrt"):
                record.slot(name, BridgeFunc(name, _num_unary(name)))
            record.slot("pow", BridgeFunc("pow", MathModule.pow))
            record.slot("rate", BridgeFunc("rate", MathModule.rate))
            record.slot("random", BridgeFunc("random", MathModule.random))
            MathModule._scope = record.commit()
        return MathModule._scope
