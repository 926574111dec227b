"""
The interpreter: an explicit, bounded stack of scopes.

Operators and selectors evaluate against the scope on top of the stack.
Every nested record and lambda call pushes a scope. Each interpreter
reserves enough Python frames for its full scope budget, so runaway depth
surfaces as a `ScopeOverflowError` rather than a `RecursionError`.
"""

import logging
import os
import sys
from dataclasses import dataclass
from typing import List, Optional

from structure.structure_errors import RecordRangeError, ScopeEmptyError, ScopeOverflowError
from structure.structure_item import Item
from structure.structure_util import expand

logger = logging.getLogger(__name__)

_TRUE_STRINGS = ("1", "true", "yes", "on")

# Python frames one scope level may hold while nested items evaluate.
_FRAMES_PER_SCOPE = 10
_FRAME_MARGIN = 1000


def _reserve_frames(max_scope_depth: int) -> None:
    """Raises the recursion limit so the scope stack overflows before the Python stack does."""
    needed = max_scope_depth * _FRAMES_PER_SCOPE + _FRAME_MARGIN
    if sys.getrecursionlimit() < needed:
        sys.setrecursionlimit(needed)


@dataclass(frozen=True)
class InterpreterSettings:
    """Limits and switches for an interpreter."""
    max_scope_depth: int = 1024
    trace: bool = False

    @classmethod
    def from_env(cls) -> 'InterpreterSettings':
        """Reads STRUCTURE_MAX_SCOPE_DEPTH and STRUCTURE_TRACE."""
        depth_env = os.environ.get("STRUCTURE_MAX_SCOPE_DEPTH")
        try:
            max_scope_depth = int(depth_env) if depth_env is not None else 1024
        except ValueError:
            logger.warning("ignoring malformed STRUCTURE_MAX_SCOPE_DEPTH=%r", depth_env)
            max_scope_depth = 1024
        trace = os.environ.get("STRUCTURE_TRACE", "").strip().lower() in _TRUE_STRINGS
        return cls(max_scope_depth=max_scope_depth, trace=trace)


class Interpreter:
    """Holds the scope stack that expressions and selectors evaluate against."""

    def __init__(self, settings: Optional[InterpreterSettings] = None):
        self.settings = settings if settings is not None else InterpreterSettings()
        self._scope_stack: List[Optional[Item]] = []
        self._scope_depth = 0
        _reserve_frames(self.settings.max_scope_depth)

    @property
    def max_scope_depth(self) -> int:
        return self.settings.max_scope_depth

    @property
    def scope_depth(self) -> int:
        return self._scope_depth

    def peek_scope(self) -> Item:
        if self._scope_depth <= 0:
            raise ScopeEmptyError("scope stack empty")
        return self._scope_stack[self._scope_depth - 1]

    def get_scope(self, index: int) -> Item:
        if index < 0 or index >= self._scope_depth:
            raise RecordRangeError(index)
        return self._scope_stack[index]

    def push_scope(self, scope) -> None:
        depth = self._scope_depth
        if depth >= self.settings.max_scope_depth:
            raise ScopeOverflowError(depth + 1)
        stack = self._scope_stack
        if depth >= len(stack):
            stack.extend([None] * (expand(max(32, depth + 1)) - len(stack)))
        stack[depth] = Item.from_any(scope)
        self._scope_depth = depth + 1

    def pop_scope(self) -> Item:
        depth = self._scope_depth
        if depth <= 0:
            raise ScopeEmptyError("scope stack empty")
        depth -= 1
        scope = self._scope_stack[depth]
        self._scope_stack[depth] = None
        self._scope_depth = depth
        return scope

    def swap_scope(self, new_scope) -> Item:
        depth = self._scope_depth
        if depth <= 0:
            raise ScopeEmptyError("scope stack empty")
        old_scope = self._scope_stack[depth - 1]
        self._scope_stack[depth - 1] = Item.from_any(new_scope)
        return old_scope

    # --- Observer hooks ---

    def will_operate(self, operator) -> None:
        pass

    def did_operate(self, operator, result) -> None:
        pass

    def will_select(self, selector) -> None:
        pass

    def did_select(self, selector, result) -> None:
        pass

    def will_transform(self, selector) -> None:
        pass

    def did_transform(self, selector, result) -> None:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(scope_depth={self._scope_depth}, max_scope_depth={self.max_scope_depth})"

    # --- Factories ---

    @staticmethod
    def create(settings: Optional[InterpreterSettings] = None) -> 'Interpreter':
        """Builds an empty interpreter; a TracingInterpreter when settings ask for tracing."""
        if settings is None:
            settings = InterpreterSettings.from_env()
        if settings.trace:
            return TracingInterpreter(settings)
        return Interpreter(settings)

    @staticmethod
    def of(*scopes, settings: Optional[InterpreterSettings] = None) -> 'Interpreter':
        interpreter = Interpreter.create(settings)
        interpreter.push_scope(Item.global_scope())
        for scope in scopes:
            interpreter.push_scope(scope)
        return interpreter

    @staticmethod
    def from_any(interpreter, global_scope=None, settings: Optional[InterpreterSettings] = None) -> 'Interpreter':
        """Returns an interpreter as is, or one seeded with the global scope and `interpreter` as its scope."""
        if isinstance(interpreter, Interpreter):
            return interpreter
        result = Interpreter.create(settings)
        result.push_scope(global_scope if global_scope is not None else Item.global_scope())
        result.push_scope(interpreter)
        return result


class TracingInterpreter(Interpreter):
    """An interpreter that logs every operate, select and transform step at DEBUG level."""

    def will_operate(self, operator) -> None:
        logger.debug("operate %r depth=%d", operator, self.scope_depth)

    def did_operate(self, operator, result) -> None:
        logger.debug("operated %r -> %r", operator, result)

    def will_select(self, selector) -> None:
        logger.debug("select %r depth=%d", selector, self.scope_depth)

    def did_select(self, selector, result) -> None:
        logger.debug("selected %r -> %r", selector, result)

    def will_transform(self, selector) -> None:
        logger.debug("transform %r depth=%d", selector, self.scope_depth)

    def did_transform(self, selector, result) -> None:
        logger.debug("transformed %r -> %r", selector, result)
