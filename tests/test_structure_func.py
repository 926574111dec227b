import pytest

from structure import structure_func
from structure.structure_func import BridgeFunc, LambdaFunc, MathModule
from structure.structure_interpreter import Interpreter
from structure.structure_item import Item, Num, Slot, Text, Value
from structure.structure_operator import InvokeOperator
from structure.structure_record import Record
from structure.structure_selector import Selector


# --- LambdaFunc ---

def test_lambda_binds_a_named_parameter():
    double = Text.of("x").lambda_(Selector.get("x").times(2))
    assert isinstance(double, LambdaFunc)
    assert double.invoke(Num.of(21)) == Num.of(42)


def test_lambda_binds_selector_parameters():
    square = Selector.get("n").lambda_(Selector.get("n").times(Selector.get("n")))
    assert square.invoke(Num.of(4)) == Num.of(16)


def test_lambda_binds_several_parameters():
    minus = Record.of("a", "b").lambda_(Selector.get("a").minus(Selector.get("b")))
    assert minus.invoke(Record.of(10, 3)) == Num.of(7)


def test_lambda_missing_arguments_stay_unbound():
    add = Record.of("a", "b").lambda_(Selector.get("a").plus(Selector.get("b")))
    assert add.invoke(Record.of(1)) is Value.absent()


def test_lambda_restores_the_scope_stack():
    interp = Interpreter.of(Record.of())
    depth = interp.scope_depth
    Text.of("x").lambda_(Selector.get("x")).invoke(Num.of(1), interp)
    assert interp.scope_depth == depth


def test_lambda_pops_its_scope_on_error():
    def boom(arguments, caller):
        raise RuntimeError("boom")

    interp = Interpreter.of(Record.of())
    depth = interp.scope_depth
    failing = Text.of("x").lambda_(InvokeOperator(BridgeFunc("boom", boom), Record.of()))
    with pytest.raises(RuntimeError):
        failing.invoke(Num.of(1), interp)
    assert interp.scope_depth == depth


def test_lambda_stored_in_a_record_is_invocable():
    scope = Record.of(Slot.of("f", Text.of("n").lambda_(Selector.get("n").plus(1))))
    node = InvokeOperator(Selector.get("f"), Num.of(4))
    assert node.evaluate(scope) == Num.of(5)


def test_lambda_equality():
    f = Text.of("x").lambda_(Selector.get("x"))
    g = Text.of("x").lambda_(Selector.get("x"))
    assert f == g
    assert f.hash_code() == g.hash_code()
    assert f != Text.of("y").lambda_(Selector.get("y"))


# --- BridgeFunc ---

def test_bridge_receives_evaluated_arguments():
    seen = []

    def probe(arguments, caller):
        seen.extend(arguments)
        return Num.of(len(arguments))

    func = BridgeFunc("probe", probe)
    result = func.invoke(Record.of(1, Selector.get("a")), Interpreter.of(Value.from_any({"a": 2})))
    assert result == Num.of(2)
    assert seen == [Num.of(1), Num.of(2)]


def test_bridge_evaluates_to_itself():
    func = BridgeFunc("f", lambda arguments, caller: Value.absent())
    assert func.evaluate(Record.of()) is func
    assert func.substitute(Record.of()) is func
    assert not func.is_constant()


# --- MathModule ---

def test_math_scope_is_committed():
    scope = MathModule.scope()
    assert not scope.is_mutable()
    for name in ("max", "min", "abs", "ceil", "floor", "round", "sqrt", "pow", "rate", "random"):
        assert isinstance(scope.get(name), BridgeFunc), name


def test_max_and_min_of_two_arguments():
    assert MathModule.max([Num.of(1), Num.of(4)]) == Num.of(4)
    assert MathModule.min([Num.of(1), Num.of(4)]) == Num.of(1)


def test_max_and_min_of_a_record():
    assert MathModule.max([Record.of(3, 9, 2)]) == Num.of(9)
    assert MathModule.min([Record.of(3, 9, 2)]) == Num.of(2)
    assert MathModule.max([Record.of()]) is Value.absent()
    assert MathModule.max([]) is Value.absent()


@pytest.mark.parametrize("name, argument, expected", [
    ("abs", -3, 3),
    ("ceil", 1.2, 2),
    ("floor", 1.8, 1),
    ("round", 1.5, 2),
    ("sqrt", 16, 4),
])
def test_num_functions(name, argument, expected):
    func = MathModule.scope().get(name)
    assert func.invoke(Record.of(argument)) == Num.of(expected)


def test_num_functions_reject_non_numbers():
    assert MathModule.scope().get("abs").invoke(Record.of("x")) is Value.absent()


def test_pow():
    assert MathModule.pow([Num.of(2), Num.of(3)]) == Num.of(8)
    assert MathModule.pow([Num.of(2)]) is Value.absent()


def test_random_stays_in_bounds():
    for _ in range(20):
        value = MathModule.random([Num.of(5), Num.of(6)]).value
        assert 5 <= value < 6
    assert 0 <= MathModule.random([]).value < 1


def test_math_is_reachable_from_any_scope():
    node = Selector.get("math").get("max").invoke(Record.of(Selector.get("a"), 7))
    assert node.evaluate(Value.from_any({"a": 3})) == Num.of(7)


# --- rate ---

def test_rate_first_sample_is_absent(monkeypatch):
    monkeypatch.setattr(structure_func, "clock", lambda: 1000.0)
    node = InvokeOperator(Selector.get("math").get("rate"), Selector.get("v"))
    assert node.evaluate(Value.from_any({"v": 10})) is Value.absent()
    assert node.state == (10.0, 1000.0)


def test_rate_is_change_per_second(monkeypatch):
    times = iter([1000.0, 1500.0, 2500.0])
    monkeypatch.setattr(structure_func, "clock", lambda: next(times))
    node = InvokeOperator(Selector.get("math").get("rate"), Selector.get("v"))
    node.evaluate(Value.from_any({"v": 10}))
    assert node.evaluate(Value.from_any({"v": 20})) == Num.of(20)
    assert node.evaluate(Value.from_any({"v": 15})) == Num.of(-5)


def test_rate_with_custom_period(monkeypatch):
    times = iter([0.0, 2000.0])
    monkeypatch.setattr(structure_func, "clock", lambda: next(times))
    node = InvokeOperator(Selector.get("math").get("rate"), Record.of(Selector.get("v"), 60000))
    node.evaluate(Value.from_any({"v": 0}))
    assert node.evaluate(Value.from_any({"v": 1})) == Num.of(30)


def test_rate_needs_a_calling_node():
    assert MathModule.rate([Num.of(1)]) is Value.absent()
    assert MathModule.rate([Text.of("x")], caller=InvokeOperator(Value.absent(), Record.of())) is Item.absent()
