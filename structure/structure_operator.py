"""
Operator nodes: deferred arithmetic, logic, comparison and invocation.

An operator node is an `Expression`. `evaluate` reduces its operands
against an interpreter and applies the matching item operation.
`substitute` does the same with partially bound scopes, so an operand that
cannot be resolved yet yields a fresh operator node instead of a value.

`InvokeOperator` is the one node with state: a stateful function such as
`rate` or a single-argument `max` keeps its accumulator in `state`, which
persists across evaluations of the same node.
"""

from typing import Any, Tuple

from structure.structure_item import Bool, Expression, Item, Value, _compare
from structure.structure_util import hash_mash, hash_mix, hash_seed


def _interpreter(interpreter):
    from structure.structure_interpreter import Interpreter
    return Interpreter.from_any(interpreter)


def is_truthy(item: Item) -> bool:
    """Whether `item` selects the `then` branch of a conditional."""
    if isinstance(item, Expression):
        return True
    return item.conditional(Bool.of(True), Bool.of(False)) is Bool.of(True)


class Operator(Expression):
    """Base class of all operator nodes."""

    PRECEDENCE = 0

    def operands(self) -> Tuple[Item, ...]:
        raise NotImplementedError

    def precedence(self) -> int:
        return self.PRECEDENCE

    def is_constant(self) -> bool:
        return False

    def type_order(self) -> int:
        return 20

    def compare_to(self, that: Item) -> int:
        if isinstance(that, Operator):
            order = _compare(type(self).__name__, type(that).__name__)
            if order != 0:
                return order
            for x, y in zip(self.operands(), that.operands()):
                order = x.compare_to(y)
                if order != 0:
                    return order
            return 0
        return _compare(self.type_order(), that.type_order())

    def equals(self, that) -> bool:
        if self is that:
            return True
        if type(that) is type(self):
            return all(x.equals(y) for x, y in zip(self.operands(), that.operands()))
        return False

    def hash_code(self) -> int:
        code = hash_seed(type(self).__name__)
        for operand in self.operands():
            code = hash_mix(code, operand.hash_code() & 0xFFFFFFFF)
        return hash_mash(code)


# =================================================================
# Binary operators
# =================================================================

class BinaryOperator(Operator):
    """An operator over two operands."""

    symbol = ""

    def __init__(self, operand1: Item, operand2: Item):
        self.operand1 = operand1
        self.operand2 = operand2

    def operands(self) -> Tuple[Item, ...]:
        return (self.operand1, self.operand2)

    def apply(self, argument1: Item, argument2: Item) -> Item:
        raise NotImplementedError

    def evaluate(self, interpreter) -> Item:
        interpreter = _interpreter(interpreter)
        interpreter.will_operate(self)
        argument1 = self.operand1.evaluate(interpreter)
        argument2 = self.operand2.evaluate(interpreter)
        result = self.apply(argument1, argument2)
        interpreter.did_operate(self, result)
        return result

    def substitute(self, interpreter) -> Item:
        interpreter = _interpreter(interpreter)
        argument1 = self.operand1.substitute(interpreter)
        argument2 = self.operand2.substitute(interpreter)
        return self.apply(argument1, argument2)

    def clone(self) -> 'BinaryOperator':
        return type(self)(self.operand1.clone(), self.operand2.clone())


class OrOperator(BinaryOperator):
    symbol = "||"
    PRECEDENCE = 3

    def apply(self, argument1: Item, argument2: Item) -> Item:
        return argument1.or_(argument2)

    def evaluate(self, interpreter) -> Item:
        interpreter = _interpreter(interpreter)
        interpreter.will_operate(self)
        argument1 = self.operand1.evaluate(interpreter)
        if is_truthy(argument1):
            result = argument1
        else:
            result = self.operand2.evaluate(interpreter)
        interpreter.did_operate(self, result)
        return result


class AndOperator(BinaryOperator):
    symbol = "&&"
    PRECEDENCE = 4

    def apply(self, argument1: Item, argument2: Item) -> Item:
        return argument1.and_(argument2)

    def evaluate(self, interpreter) -> Item:
        interpreter = _interpreter(interpreter)
        interpreter.will_operate(self)
        argument1 = self.operand1.evaluate(interpreter)
        if is_truthy(argument1):
            result = self.operand2.evaluate(interpreter)
        else:
            result = argument1
        interpreter.did_operate(self, result)
        return result


class BitwiseOrOperator(BinaryOperator):
    symbol = "|"
    PRECEDENCE = 5

    def apply(self, argument1: Item, argument2: Item) -> Item:
        return argument1.bitwise_or(argument2)


class BitwiseXorOperator(BinaryOperator):
    symbol = "^"
    PRECEDENCE = 6

    def apply(self, argument1: Item, argument2: Item) -> Item:
        return argument1.bitwise_xor(argument2)


class BitwiseAndOperator(BinaryOperator):
    symbol = "&"
    PRECEDENCE = 7

    def apply(self, argument1: Item, argument2: Item) -> Item:
        return argument1.bitwise_and(argument2)


class LtOperator(BinaryOperator):
    symbol = "<"
    PRECEDENCE = 8

    def apply(self, argument1: Item, argument2: Item) -> Item:
        return argument1.lt(argument2)


class LeOperator(BinaryOperator):
    symbol = "<="
    PRECEDENCE = 8

    def apply(self, argument1: Item, argument2: Item) -> Item:
        return argument1.le(argument2)


class EqOperator(BinaryOperator):
    symbol = "=="
    PRECEDENCE = 8

    def apply(self, argument1: Item, argument2: Item) -> Item:
        return argument1.eq(argument2)


class NeOperator(BinaryOperator):
    symbol = "!="
    PRECEDENCE = 8

    def apply(self, argument1: Item, argument2: Item) -> Item:
        return argument1.ne(argument2)


class GeOperator(BinaryOperator):
    symbol = ">="
    PRECEDENCE = 8

    def apply(self, argument1: Item, argument2: Item) -> Item:
        return argument1.ge(argument2)


class GtOperator(BinaryOperator):
    symbol = ">"
    PRECEDENCE = 8

    def apply(self, argument1: Item, argument2: Item) -> Item:
        return argument1.gt(argument2)


class PlusOperator(BinaryOperator):
    symbol = "+"
    PRECEDENCE = 9

    def apply(self, argument1: Item, argument2: Item) -> Item:
        return argument1.plus(argument2)


class MinusOperator(BinaryOperator):
    symbol = "-"
    PRECEDENCE = 9

    def apply(self, argument1: Item, argument2: Item) -> Item:
        return argument1.minus(argument2)


class TimesOperator(BinaryOperator):
    symbol = "*"
    PRECEDENCE = 10

    def apply(self, argument1: Item, argument2: Item) -> Item:
        return argument1.times(argument2)


class DivideOperator(BinaryOperator):
    symbol = "/"
    PRECEDENCE = 10

    def apply(self, argument1: Item, argument2: Item) -> Item:
        return argument1.divide(argument2)


class ModuloOperator(BinaryOperator):
    symbol = "%"
    PRECEDENCE = 10

    def apply(self, argument1: Item, argument2: Item) -> Item:
        return argument1.modulo(argument2)


# =================================================================
# Unary operators
# =================================================================

class UnaryOperator(Operator):
    """An operator over a single operand."""

    symbol = ""
    PRECEDENCE = 10

    def __init__(self, operand: Item):
        self.operand = operand

    def operands(self) -> Tuple[Item, ...]:
        return (self.operand,)

    def apply(self, argument: Item) -> Item:
        raise NotImplementedError

    def evaluate(self, interpreter) -> Item:
        interpreter = _interpreter(interpreter)
        interpreter.will_operate(self)
        result = self.apply(self.operand.evaluate(interpreter))
        interpreter.did_operate(self, result)
        return result

    def substitute(self, interpreter) -> Item:
        interpreter = _interpreter(interpreter)
        return self.apply(self.operand.substitute(interpreter))

    def clone(self) -> 'UnaryOperator':
        return type(self)(self.operand.clone())


class NotOperator(UnaryOperator):
    symbol = "!"

    def apply(self, argument: Item) -> Item:
        return argument.not_()


class BitwiseNotOperator(UnaryOperator):
    symbol = "~"

    def apply(self, argument: Item) -> Item:
        return argument.bitwise_not()


class NegativeOperator(UnaryOperator):
    symbol = "-"

    def apply(self, argument: Item) -> Item:
        return argument.negative()


class PositiveOperator(UnaryOperator):
    symbol = "+"

    def apply(self, argument: Item) -> Item:
        return argument.positive()


# =================================================================
# Conditional and invocation
# =================================================================

class ConditionalOperator(Operator):
    """`if_term ? then_term : else_term`; only the chosen branch is evaluated."""

    PRECEDENCE = 2

    def __init__(self, if_term: Item, then_term: Item, else_term: Item):
        self.if_term = if_term
        self.then_term = then_term
        self.else_term = else_term

    def operands(self) -> Tuple[Item, ...]:
        return (self.if_term, self.then_term, self.else_term)

    def evaluate(self, interpreter) -> Item:
        interpreter = _interpreter(interpreter)
        interpreter.will_operate(self)
        condition = self.if_term.evaluate(interpreter)
        branch = self.then_term if is_truthy(condition) else self.else_term
        result = branch.evaluate(interpreter)
        interpreter.did_operate(self, result)
        return result

    def substitute(self, interpreter) -> Item:
        interpreter = _interpreter(interpreter)
        condition = self.if_term.substitute(interpreter)
        if isinstance(condition, Expression):
            return ConditionalOperator(condition, self.then_term.substitute(interpreter),
                                       self.else_term.substitute(interpreter))
        branch = self.then_term if is_truthy(condition) else self.else_term
        return branch.substitute(interpreter)

    def clone(self) -> 'ConditionalOperator':
        return ConditionalOperator(self.if_term.clone(), self.then_term.clone(), self.else_term.clone())


class InvokeOperator(Operator):
    """Applies the function that `func` evaluates to onto `args`.

    `state` is scratch space owned by this node for stateful functions.
    It survives between evaluations; `clone()` starts over with none.
    """

    PRECEDENCE = 11

    def __init__(self, func: Value, args: Value):
        self.func = func
        self.args = args
        self.state: Any = None

    def operands(self) -> Tuple[Item, ...]:
        return (self.func, self.args)

    def evaluate(self, interpreter) -> Item:
        from structure.structure_func import Func
        interpreter = _interpreter(interpreter)
        interpreter.will_operate(self)
        func = self.func.evaluate(interpreter)
        if isinstance(func, Func):
            result = func.invoke(self.args, interpreter, self)
        else:
            result = Item.absent()
        interpreter.did_operate(self, result)
        return result

    def substitute(self, interpreter) -> Item:
        from structure.structure_func import Func
        interpreter = _interpreter(interpreter)
        func = self.func.evaluate(interpreter)
        if isinstance(func, Func):
            result = func.expand(self.args, interpreter, self)
            if result is not None:
                return result
        args = self.args.substitute(interpreter).to_value()
        return InvokeOperator(self.func, args)

    def clone(self) -> 'InvokeOperator':
        return InvokeOperator(self.func.clone(), self.args.clone())
