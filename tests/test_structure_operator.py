import pytest

from structure.structure_func import BridgeFunc
from structure.structure_item import Bool, Item, Num, Slot, Text, Value
from structure.structure_operator import (
    AndOperator, ConditionalOperator, DivideOperator, EqOperator, InvokeOperator, NegativeOperator,
    NotOperator, OrOperator, PlusOperator, TimesOperator, is_truthy,
)
from structure.structure_record import Record
from structure.structure_selector import Selector


def _counter(result):
    calls = []

    def count(arguments, caller):
        calls.append(arguments)
        return Item.from_any(result)

    return BridgeFunc("count", count), calls


# --- Building ---

def test_expression_operators_build_nodes():
    a = Selector.get("a")
    assert isinstance(a.plus(1), PlusOperator)
    assert isinstance(a.times(2), TimesOperator)
    assert isinstance(a.eq(1), EqOperator)
    assert isinstance(a.or_(1), OrOperator)
    assert isinstance(a.and_(1), AndOperator)
    assert isinstance(a.not_(), NotOperator)
    assert isinstance(a.negative(), NegativeOperator)
    assert isinstance(a.conditional(1, 2), ConditionalOperator)
    assert isinstance(a.invoke(Record.of()), InvokeOperator)
    inverse = a.inverse()
    assert isinstance(inverse, DivideOperator)
    assert inverse.operand1 == Num.of(1)


def test_python_operators_build_nodes():
    a = Selector.get("a")
    node = a + 1
    assert isinstance(node, PlusOperator)
    assert isinstance(-a, NegativeOperator)


@pytest.mark.parametrize("node, precedence", [
    (Selector.get("a").conditional(1, 2), 2),
    (Selector.get("a").or_(1), 3),
    (Selector.get("a").and_(1), 4),
    (Selector.get("a").bitwise_or(1), 5),
    (Selector.get("a").bitwise_xor(1), 6),
    (Selector.get("a").bitwise_and(1), 7),
    (Selector.get("a").lt(1), 8),
    (Selector.get("a").plus(1), 9),
    (Selector.get("a").modulo(1), 10),
    (Selector.get("a").bitwise_not(), 10),
    (Selector.get("a").invoke(Record.of()), 11),
])
def test_precedence(node, precedence):
    assert node.precedence() == precedence


def test_operator_equality_and_hash():
    x = Selector.get("a").plus(1)
    y = Selector.get("a").plus(1)
    assert x == y
    assert x.hash_code() == y.hash_code()
    assert x != Selector.get("a").minus(1)
    assert x != Selector.get("b").plus(1)


# --- Evaluation ---

def test_binary_operators_evaluate_operands():
    scope = Value.from_any({"a": 2, "b": 5})
    assert Selector.get("a").plus(Selector.get("b")).evaluate(scope) == Num.of(7)
    assert Selector.get("b").modulo(Selector.get("a")).evaluate(scope) == Num.of(1)
    assert Selector.get("a").gt(1).evaluate(scope) is Bool.of(True)
    assert Selector.get("a").gt(3).evaluate(scope) is Value.absent()
    assert Selector.get("a").bitwise_or(4).evaluate(scope) == Num.of(6)


def test_unary_operators_evaluate_operand():
    scope = Value.from_any({"a": 2, "f": False})
    assert Selector.get("a").negative().evaluate(scope) == Num.of(-2)
    assert Selector.get("a").bitwise_not().evaluate(scope) == Num.of(-3)
    assert Selector.get("f").not_().evaluate(scope) is Bool.of(True)
    assert Selector.get("missing").not_().evaluate(scope) is Value.extant()


def test_mismatched_operands_evaluate_to_absent():
    scope = Value.from_any({"t": "x"})
    assert Selector.get("t").plus(1).evaluate(scope) is Value.absent()


def test_nested_operators():
    scope = Value.from_any({"a": 2, "b": 3})
    node = Selector.get("a").plus(Selector.get("b")).times(Selector.get("a"))
    assert node.evaluate(scope) == Num.of(10)


def test_conditional_picks_a_branch():
    node = Selector.get("flag").conditional("yes", "no")
    assert node.evaluate(Value.from_any({"flag": True})) == Text.of("yes")
    assert node.evaluate(Value.from_any({"flag": False})) == Text.of("no")
    assert node.evaluate(Value.from_any({})) == Text.of("no")


def test_conditional_evaluates_only_the_chosen_branch():
    func, calls = _counter(0)
    node = Selector.get("flag").conditional(1, InvokeOperator(func, Record.of()))
    assert node.evaluate(Value.from_any({"flag": True})) == Num.of(1)
    assert calls == []
    assert node.evaluate(Value.from_any({"flag": False})) == Num.of(0)
    assert len(calls) == 1


def test_or_short_circuits():
    func, calls = _counter(7)
    node = Selector.get("a").or_(InvokeOperator(func, Record.of()))
    assert node.evaluate(Value.from_any({"a": 1})) == Num.of(1)
    assert calls == []
    assert node.evaluate(Value.from_any({})) == Num.of(7)
    assert len(calls) == 1


def test_and_short_circuits():
    func, calls = _counter(7)
    node = Selector.get("a").and_(InvokeOperator(func, Record.of()))
    assert node.evaluate(Value.from_any({})) is Value.absent()
    assert calls == []
    assert node.evaluate(Value.from_any({"a": 1})) == Num.of(7)
    assert len(calls) == 1


def test_is_truthy():
    assert is_truthy(Bool.of(True))
    assert not is_truthy(Bool.of(False))
    assert not is_truthy(Value.absent())
    assert is_truthy(Value.extant())
    assert is_truthy(Num.of(0))
    assert is_truthy(Selector.get("a"))


# --- Substitution ---

def test_substitute_resolves_bound_operands():
    node = Selector.get("a").plus(Selector.get("b"))
    partial = node.substitute(Value.from_any({"a": 1}))
    assert isinstance(partial, PlusOperator)
    assert partial.operand1 == Num.of(1)
    assert partial.operand2 == Selector.get("b")
    assert node.substitute(Value.from_any({"a": 1, "b": 2})) == Num.of(3)


def test_substitute_keeps_unresolved_conditions():
    node = Selector.get("c").conditional(Selector.get("a"), 0)
    partial = node.substitute(Value.from_any({"a": 5}))
    assert isinstance(partial, ConditionalOperator)
    assert partial.then_term == Num.of(5)
    assert node.substitute(Value.from_any({"c": True, "a": 5})) == Num.of(5)


# --- Invocation ---

def test_invoke_evaluates_arguments():
    node = Selector.get("math").get("pow").invoke(Record.of(2, Selector.get("n")))
    assert node.evaluate(Value.from_any({"n": 10})) == Num.of(1024)


def test_invoke_non_function_is_absent():
    node = InvokeOperator(Selector.get("a"), Record.of())
    assert node.evaluate(Value.from_any({"a": 1})) is Value.absent()


def test_invoke_state_persists_per_node():
    node = InvokeOperator(Selector.get("math").get("max"), Selector.get("x"))
    assert node.evaluate(Value.from_any({"x": 3})) == Num.of(3)
    assert node.evaluate(Value.from_any({"x": 5})) == Num.of(5)
    assert node.evaluate(Value.from_any({"x": 1})) == Num.of(5)
    assert node.state == Num.of(5)


def test_invoke_clone_starts_with_fresh_state():
    node = InvokeOperator(Selector.get("math").get("min"), Selector.get("x"))
    node.evaluate(Value.from_any({"x": 3}))
    copy = node.clone()
    assert copy.state is None
    assert copy == node
    assert copy.evaluate(Value.from_any({"x": 9})) == Num.of(9)
    assert node.evaluate(Value.from_any({"x": 9})) == Num.of(3)


def test_invoke_caller_is_passed_to_bridge_functions():
    seen = []
    func = BridgeFunc("probe", lambda arguments, caller: seen.append(caller) or Value.extant())
    node = InvokeOperator(func, Record.of())
    node.evaluate(Record.of())
    assert seen == [node]


def test_operator_clone_is_equal():
    node = Selector.get("a").plus(Record.of(1, 2))
    copy = node.clone()
    assert copy == node
    assert copy.operand2 is not node.operand2


def test_operator_inside_record_evaluates_with_siblings():
    record = Record.of(Slot.of("w", 3), Slot.of("h", 4), Slot.of("area", Selector.get("w").times(Selector.get("h"))))
    assert record.evaluate(Record.of()).get("area") == Num.of(12)
