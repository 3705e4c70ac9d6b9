# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
Expression nodes: the objects that do the actual work behind an Expression.

Every node answers three questions about the sub-expression it represents:

    keys()              which variables does it (transitively) depend on?
    value(values)       what is its value?
    augmented(values)   what is its value, and its Jacobian w.r.t. each variable?

Node variants
-------------
ConstantNode
    A fixed value. No keys, constant Augmented value.

LeafNode
    A variable, looked up by key (and checked against an expected type)
    in the Values supplied at evaluation time.

UnaryNode / BinaryNode / TernaryNode
    A function applied to the values of 1, 2 or 3 child nodes.

Wrapped functions
-----------------
Function nodes wrap a plain callable with one positional argument per child
followed by one optional Jacobian slot per child:

    def f(a1, a2, H1=None, H2=None):
        if H1 is not None:
            H1.set(...)     # ∂f/∂a1, shape (dim(f), dim(a1))
        if H2 is not None:
            H2.set(...)
        return ...

A slot is `None` when the Jacobian is not wanted: the function must then
skip that computation. During `augmented`, a slot is only passed for a child
whose Augmented value is non-constant, so no derivative work is ever done
for sub-expressions without free variables. A slot that is passed must be
filled.

Nodes are immutable and hold their children by reference, so a node can be
shared by many parents. Children must exist before their parent is built,
which rules out cycles.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, FrozenSet, List, Optional, Tuple

import jax.numpy as jnp

from ..config import get_config
from . import manifold
from .augmented import Augmented
from .errors import (
    ExpressionError,
    JacobianShapeError,
    MalformedExpressionError,
    MissingVariableError,
    VariableTypeMismatchError,
)
from .types import Key, format_key
from .values import ValuesLike

logger = logging.getLogger(__name__)


class JacobianSlot:
    """Output slot for one requested Jacobian block."""

    __slots__ = ("_matrix",)

    def __init__(self):
        self._matrix: Optional[jnp.ndarray] = None

    def set(self, matrix: Any) -> None:
        matrix = jnp.asarray(matrix)
        if matrix.ndim == 0:
            matrix = jnp.reshape(matrix, (1, 1))
        self._matrix = matrix

    @property
    def filled(self) -> bool:
        return self._matrix is not None

    @property
    def matrix(self) -> jnp.ndarray:
        if self._matrix is None:
            raise MalformedExpressionError("Jacobian slot read before it was filled")
        return self._matrix


class ExpressionNode(ABC):
    """Base class of all nodes."""

    __slots__ = ()

    @abstractmethod
    def keys(self) -> FrozenSet[Key]:
        ...

    @abstractmethod
    def value(self, values: ValuesLike) -> Any:
        ...

    @abstractmethod
    def augmented(self, values: ValuesLike) -> Augmented:
        ...


class ConstantNode(ExpressionNode):
    __slots__ = ("_constant",)

    def __init__(self, value: Any):
        self._constant = value

    def keys(self) -> FrozenSet[Key]:
        return frozenset()

    def value(self, values: ValuesLike) -> Any:
        return self._constant

    def augmented(self, values: ValuesLike) -> Augmented:
        return Augmented.from_constant(self._constant)

    def __repr__(self) -> str:
        return f"ConstantNode({self._constant!r})"


class LeafNode(ExpressionNode):
    __slots__ = ("_key", "_value_type")

    def __init__(self, key: Key, value_type: Optional[type] = None):
        self._key = key
        self._value_type = value_type

    @property
    def key(self) -> Key:
        return self._key

    @property
    def value_type(self) -> Optional[type]:
        return self._value_type

    def keys(self) -> FrozenSet[Key]:
        return frozenset((self._key,))

    def value(self, values: ValuesLike) -> Any:
        try:
            v = values.at(self._key, self._value_type)
        except ExpressionError:
            logger.debug("Lookup of %s failed", format_key(self._key))
            raise
        except KeyError as e:
            logger.debug("Lookup of %s failed", format_key(self._key))
            raise MissingVariableError(self._key) from e
        # Containers implementing ValuesLike may skip the type check.
        if self._value_type is not None and not isinstance(v, self._value_type):
            raise VariableTypeMismatchError(self._key, self._value_type, type(v))
        return v

    def augmented(self, values: ValuesLike) -> Augmented:
        return Augmented.from_leaf(self.value(values), self._key)

    def __repr__(self) -> str:
        type_name = self._value_type.__name__ if self._value_type else "Any"
        return f"LeafNode({format_key(self._key)}, {type_name})"


class _FunctionNode(ExpressionNode):
    """Shared implementation of the unary, binary and ternary nodes."""

    __slots__ = ("_function", "_children")
    arity = 0

    def __init__(self, function: Callable[..., Any], *children: ExpressionNode):
        if not callable(function):
            raise MalformedExpressionError(
                f"{type(self).__name__} needs a callable, got {type(function).__name__}"
            )
        if len(children) != self.arity:
            raise MalformedExpressionError(
                f"{type(self).__name__} takes {self.arity} arguments, got {len(children)}"
            )
        for i, child in enumerate(children):
            if not isinstance(child, ExpressionNode):
                raise MalformedExpressionError(
                    f"Argument {i + 1} of {type(self).__name__} is not an expression node: "
                    f"{type(child).__name__}"
                )
        self._function = function
        self._children: Tuple[ExpressionNode, ...] = tuple(children)

    @property
    def function(self) -> Callable[..., Any]:
        return self._function

    @property
    def children(self) -> Tuple[ExpressionNode, ...]:
        return self._children

    def keys(self) -> FrozenSet[Key]:
        keys: FrozenSet[Key] = frozenset()
        for child in self._children:
            keys = keys | child.keys()
        return keys

    def value(self, values: ValuesLike) -> Any:
        arguments = [child.value(values) for child in self._children]
        return self._function(*arguments, *([None] * self.arity))

    def augmented(self, values: ValuesLike) -> Augmented:
        arguments = [child.augmented(values) for child in self._children]
        slots: List[Optional[JacobianSlot]] = [
            None if argument.constant() else JacobianSlot() for argument in arguments
        ]
        result = self._function(*(argument.value for argument in arguments), *slots)

        terms = []
        for i, (argument, slot) in enumerate(zip(arguments, slots)):
            H = None if slot is None else self._local_jacobian(i, slot, result, argument.value)
            terms.append((H, argument.jacobians))
        return Augmented.from_terms(result, *terms)

    def _local_jacobian(self, i: int, slot: JacobianSlot, result: Any, argument: Any) -> jnp.ndarray:
        if not slot.filled:
            raise MalformedExpressionError(
                f"{type(self).__name__} function {getattr(self._function, '__name__', self._function)!r} "
                f"did not fill the requested Jacobian for argument {i + 1}"
            )
        H = slot.matrix
        if get_config().check_jacobian_shapes:
            expected = (manifold.dim(result), manifold.dim(argument))
            if tuple(H.shape) != expected:
                raise JacobianShapeError(i, expected, tuple(H.shape))
        return H

    def __repr__(self) -> str:
        name = getattr(self._function, "__name__", repr(self._function))
        args = ", ".join(repr(child) for child in self._children)
        return f"{type(self).__name__}({name}, {args})"


class UnaryNode(_FunctionNode):
    __slots__ = ()
    arity = 1

    def __init__(self, function: Callable[..., Any], child: ExpressionNode):
        super().__init__(function, child)


class BinaryNode(_FunctionNode):
    __slots__ = ()
    arity = 2

    def __init__(self, function: Callable[..., Any], child1: ExpressionNode, child2: ExpressionNode):
        super().__init__(function, child1, child2)


class TernaryNode(_FunctionNode):
    __slots__ = ()
    arity = 3

    def __init__(
        self,
        function: Callable[..., Any],
        child1: ExpressionNode,
        child2: ExpressionNode,
        child3: ExpressionNode,
    ):
        super().__init__(function, child1, child2, child3)
