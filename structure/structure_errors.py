"""
Exception types raised by the structure model and its interpreter.

Semantic mismatches during evaluation are not errors: they yield `Absent`.
Only contract violations surface as exceptions.
"""

from typing import Any


class StructureError(Exception):
    """Base class for all structure contract violations."""
    pass


class ImmutableError(StructureError, TypeError):
    """Raised when a committed record or field is mutated."""
    def __init__(self, item: Any = None, message: str = "immutable"):
        super().__init__(message)
        self.item = item


class RecordRangeError(StructureError, IndexError):
    """Raised for an out-of-bounds index in an explicit indexed accessor."""
    def __init__(self, *index: int):
        super().__init__(", ".join(str(i) for i in index))
        self.index = index[0] if len(index) == 1 else index


class InterpreterError(StructureError):
    """Misuse of the interpreter scope stack."""
    pass


class ScopeOverflowError(InterpreterError):
    def __init__(self, depth: int):
        super().__init__(f"scope stack overflow at depth {depth}")
        self.depth = depth


class ScopeEmptyError(InterpreterError):
    def __init__(self, message: str = "scope stack empty"):
        super().__init__(message)
