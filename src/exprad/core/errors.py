# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
Exception taxonomy for expression evaluation.

All errors here are structural or programming errors: the engine raises
them where they are detected and never retries or substitutes defaults.

    ExpressionError
    ├── MissingVariableError        (also a KeyError)
    ├── VariableTypeMismatchError   (also a TypeError)
    └── MalformedExpressionError    (also a ValueError)
        └── JacobianShapeError
"""

from __future__ import annotations

from .types import format_key


class ExpressionError(Exception):
    """Base class for all expression evaluation errors."""


class MissingVariableError(ExpressionError, KeyError):
    """A leaf's key is not present in the supplied Values."""

    def __init__(self, key: int):
        self.key = key
        super().__init__(f"No value for variable {format_key(key)}")

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return self.args[0]


class VariableTypeMismatchError(ExpressionError, TypeError):
    """A leaf's key is bound to a value of a different type than expected."""

    def __init__(self, key: int, expected: type, actual: type):
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Variable {format_key(key)} holds a {actual.__name__}, "
            f"expected {expected.__name__}"
        )


class MalformedExpressionError(ExpressionError, ValueError):
    """An expression node was built from invalid parts or its function broke the Jacobian contract."""


class JacobianShapeError(MalformedExpressionError):
    """A wrapped function filled a Jacobian block of the wrong shape."""

    def __init__(self, arg_index: int, expected: tuple, actual: tuple):
        self.arg_index = arg_index
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Jacobian for argument {arg_index + 1} has shape {actual}, expected {expected}"
        )
