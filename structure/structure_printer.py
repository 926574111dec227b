"""
A debug printer for structure items.

Renders items as the Python expressions that build them, e.g.
`Record.of(Attr.of('shape', 'circle'), Slot.of('radius', 5))`. Every
`repr()` of an item goes through here.
"""
import math

from structure.structure_func import BridgeFunc, LambdaFunc
from structure.structure_item import Absent, Attr, Bool, Data, Extant, Item, Num, Slot, Text, format_number
from structure.structure_operator import (
    BinaryOperator, ConditionalOperator, InvokeOperator, UnaryOperator,
)
from structure.structure_record import Record
from structure.structure_selector import (
    ChildrenSelector, DescendantsSelector, FilterSelector, GetAttrSelector, GetItemSelector,
    GetSelector, IdentitySelector, KeysSelector, LiteralSelector, Selector, ValuesSelector,
)

_BINARY_METHODS = {
    "OrOperator": "or_",
    "AndOperator": "and_",
    "BitwiseOrOperator": "bitwise_or",
    "BitwiseXorOperator": "bitwise_xor",
    "BitwiseAndOperator": "bitwise_and",
    "LtOperator": "lt",
    "LeOperator": "le",
    "EqOperator": "eq",
    "NeOperator": "ne",
    "GeOperator": "ge",
    "GtOperator": "gt",
    "PlusOperator": "plus",
    "MinusOperator": "minus",
    "TimesOperator": "times",
    "DivideOperator": "divide",
    "ModuloOperator": "modulo",
}

_UNARY_METHODS = {
    "NotOperator": "not_",
    "BitwiseNotOperator": "bitwise_not",
    "NegativeOperator": "negative",
    "PositiveOperator": "positive",
}


class Printer:
    """Formats items into readable, evaluable Python expressions."""

    def __init__(self, indent_width=2, line_width=80):
        self._indent_char = " " * indent_width
        self._line_width = line_width
        self._handlers = self._create_handlers()

    def pformat(self, obj, level=0):
        """Public entry point to format an object."""
        handler = self._get_handler(obj)
        return handler(obj, level)

    def _get_handler(self, obj):
        if obj is Item.absent(): return self._pformat_absent
        if obj is Item.extant(): return self._pformat_extant

        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        if isinstance(obj, Record): return self._pformat_record
        if isinstance(obj, BinaryOperator): return self._pformat_binary
        if isinstance(obj, UnaryOperator): return self._pformat_unary
        if isinstance(obj, Selector): return self._pformat_selector
        return lambda o, l: object.__repr__(o)

    def _create_handlers(self):
        return {
            Bool: self._pformat_bool,
            Num: self._pformat_num,
            Text: self._pformat_text,
            Data: self._pformat_data,
            Attr: self._pformat_attr,
            Slot: self._pformat_slot,
            ConditionalOperator: self._pformat_conditional,
            InvokeOperator: self._pformat_invoke,
            LambdaFunc: self._pformat_lambda,
            BridgeFunc: self._pformat_bridge,
        }

    # --- Members ---

    def _pformat_member(self, obj, level):
        """Short form for constructor arguments: plain literals where `from_any` accepts them."""
        if isinstance(obj, Text):
            return repr(obj.value)
        if isinstance(obj, Bool):
            return repr(obj.value)
        if isinstance(obj, Num) and obj.flags == 0 and math.isfinite(obj.value):
            return format_number(obj.value)
        return self.pformat(obj, level)

    # --- Scalars ---

    def _pformat_absent(self, obj, level):
        return "Value.absent()"

    def _pformat_extant(self, obj, level):
        return "Value.extant()"

    def _pformat_bool(self, obj, level):
        return f"Bool.of({obj.value!r})"

    def _pformat_num(self, obj, level):
        if obj.is_uint32():
            return f"Num.uint32({format_number(obj.value)})"
        if obj.is_uint64():
            return f"Num.uint64({format_number(obj.value)})"
        if math.isfinite(obj.value):
            return f"Num.of({format_number(obj.value)})"
        return f"Num.of(float({format_number(obj.value).lower().replace('infinity', 'inf')!r}))"

    def _pformat_text(self, obj, level):
        return f"Text.of({obj.value!r})"

    def _pformat_data(self, obj, level):
        return f"Data.from_base64({obj.to_base64()!r})"

    # --- Fields and records ---

    def _pformat_attr(self, obj, level):
        if obj.value is Item.extant():
            return f"Attr.of({obj.key.value!r})"
        return f"Attr.of({obj.key.value!r}, {self._pformat_member(obj.value, level)})"

    def _pformat_slot(self, obj, level):
        key = self._pformat_member(obj.key, level)
        if obj.value is Item.extant():
            return f"Slot.of({key})"
        return f"Slot.of({key}, {self._pformat_member(obj.value, level)})"

    def _pformat_record(self, obj, level):
        members = [self._pformat_member(item, level + 1) for item in obj]
        line = "Record.of(" + ", ".join(members) + ")"
        if "\n" not in line and len(self._indent_char * level) + len(line) <= self._line_width:
            return line
        inner = self._indent_char * (level + 1)
        body = ",\n".join(inner + member for member in members)
        return "Record.of(\n" + body + ",\n" + self._indent_char * level + ")"

    # --- Expressions ---

    def _pformat_binary(self, obj, level):
        method = _BINARY_METHODS[type(obj).__name__]
        return f"{self.pformat(obj.operand1, level)}.{method}({self._pformat_member(obj.operand2, level)})"

    def _pformat_unary(self, obj, level):
        method = _UNARY_METHODS[type(obj).__name__]
        return f"{self.pformat(obj.operand, level)}.{method}()"

    def _pformat_conditional(self, obj, level):
        return (f"{self.pformat(obj.if_term, level)}.conditional("
                f"{self._pformat_member(obj.then_term, level)}, {self._pformat_member(obj.else_term, level)})")

    def _pformat_invoke(self, obj, level):
        return f"{self.pformat(obj.func, level)}.invoke({self.pformat(obj.args, level)})"

    def _pformat_lambda(self, obj, level):
        return f"{self.pformat(obj.bindings, level)}.lambda_({self.pformat(obj.template, level)})"

    def _pformat_bridge(self, obj, level):
        return f"BridgeFunc({obj.name!r})"

    def _pformat_selector(self, obj, level):
        if isinstance(obj, LiteralSelector):
            out = f"Selector.literal({self.pformat(obj.item, level)})"
        else:
            out = "Selector.identity()"
        step = obj if not isinstance(obj, LiteralSelector) else obj.then
        while not isinstance(step, IdentitySelector):
            match step:
                case GetAttrSelector():
                    out += f".get_attr({step.accessor.value!r})"
                case GetSelector():
                    out += f".get({self._pformat_member(step.accessor, level)})"
                case GetItemSelector():
                    out += f".get_item({format_number(step.index.value)})"
                case KeysSelector():
                    out += ".keys()"
                case ValuesSelector():
                    out += ".values()"
                case ChildrenSelector():
                    out += ".children()"
                case DescendantsSelector():
                    out += ".descendants()"
                case FilterSelector():
                    out += f".filter({self.pformat(step.predicate, level)})"
                case LiteralSelector():
                    out += f".and_then(Selector.literal({self.pformat(step.item, level)}))"
            step = step.then
        return out
