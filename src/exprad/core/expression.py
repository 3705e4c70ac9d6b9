# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
Expression: the user-facing handle of the AD engine.

An `Expression` is a cheap, copyable reference to an immutable
`ExpressionNode`. Copying an expression copies the reference, so the same
sub-expression can be used as an argument of any number of parents, and
the resulting graph is a DAG that evaluates each path correctly.

Building expressions
--------------------
    x = Expression.leaf(symbol("x", 0), jax.Array)
    s = Expression.leaf(symbol("s", 0), float)
    b = Expression.constant(jnp.array([1.0, 2.0, 3.0]))

    e = Expression.binary(f, x, b)       # f(x, b, H1, H2) with Jacobian slots
    e = Expression.lift(jnp.sin, x)      # Jacobians from jax.jacfwd
    e = s * x + b                        # Euclidean algebra

Evaluating
----------
    e.keys()               # frozenset of keys the expression depends on
    e.value(values)        # value only
    e.augmented(values)    # value + {key: Jacobian}

Notes
-----
`lift` and the arithmetic operators are meant for Euclidean values (floats
and JAX arrays), where the tangent space is the ambient space and
`jax.jacfwd` yields exactly the Jacobian the engine expects. Functions of
manifold-valued arguments (rotations, unit directions, ...) supply their own
Jacobians through the slot protocol described in `core.nodes`.
"""

from __future__ import annotations

from typing import Any, Callable, FrozenSet, Generic, TypeVar

import jax
import jax.numpy as jnp

from . import manifold
from .augmented import Augmented
from .errors import MalformedExpressionError
from .nodes import (
    BinaryNode,
    ConstantNode,
    ExpressionNode,
    LeafNode,
    TernaryNode,
    UnaryNode,
)
from .types import Key
from .values import ValuesLike

T = TypeVar("T")

_NODE_BY_ARITY = {1: UnaryNode, 2: BinaryNode, 3: TernaryNode}


class Expression(Generic[T]):
    """Value-semantic handle to a shared expression node."""

    __slots__ = ("_root",)

    def __init__(self, root: ExpressionNode):
        if not isinstance(root, ExpressionNode):
            raise MalformedExpressionError(
                f"Expression needs an ExpressionNode, got {type(root).__name__}"
            )
        self._root = root

    # --- Construction ---

    @classmethod
    def constant(cls, value: T) -> "Expression[T]":
        return cls(ConstantNode(value))

    @classmethod
    def leaf(cls, key: Key, value_type: type = jax.Array) -> "Expression[T]":
        return cls(LeafNode(key, value_type))

    @classmethod
    def unary(cls, function: Callable[..., T], e: "Expression[Any]") -> "Expression[T]":
        return cls(UnaryNode(function, _root_of(e, 1)))

    @classmethod
    def binary(
        cls,
        function: Callable[..., T],
        e1: "Expression[Any]",
        e2: "Expression[Any]",
    ) -> "Expression[T]":
        return cls(BinaryNode(function, _root_of(e1, 1), _root_of(e2, 2)))

    @classmethod
    def ternary(
        cls,
        function: Callable[..., T],
        e1: "Expression[Any]",
        e2: "Expression[Any]",
        e3: "Expression[Any]",
    ) -> "Expression[T]":
        return cls(
            TernaryNode(function, _root_of(e1, 1), _root_of(e2, 2), _root_of(e3, 3))
        )

    @classmethod
    def lift(cls, fn: Callable[..., Any], *expressions: "Expression[Any]") -> "Expression[Any]":
        """
        Wrap a pure JAX function of 1-3 Euclidean arguments.

        Jacobians are computed with `jax.jacfwd`, and only for the arguments
        whose slot is requested.
        """
        node_type = _NODE_BY_ARITY.get(len(expressions))
        if node_type is None:
            raise MalformedExpressionError(
                f"lift supports 1 to 3 arguments, got {len(expressions)}"
            )
        roots = [_root_of(e, i + 1) for i, e in enumerate(expressions)]
        return cls(node_type(_jacfwd_function(fn, len(expressions)), *roots))

    # --- Evaluation ---

    def root(self) -> ExpressionNode:
        return self._root

    def keys(self) -> FrozenSet[Key]:
        return self._root.keys()

    def value(self, values: ValuesLike) -> T:
        return self._root.value(values)

    def augmented(self, values: ValuesLike) -> Augmented[T]:
        return self._root.augmented(values)

    # --- Euclidean algebra ---

    def __add__(self, other: Any) -> "Expression[Any]":
        return Expression.binary(_add, self, _as_expression(other))

    def __radd__(self, other: Any) -> "Expression[Any]":
        return Expression.binary(_add, _as_expression(other), self)

    def __sub__(self, other: Any) -> "Expression[Any]":
        return Expression.binary(_subtract, self, _as_expression(other))

    def __rsub__(self, other: Any) -> "Expression[Any]":
        return Expression.binary(_subtract, _as_expression(other), self)

    def __neg__(self) -> "Expression[Any]":
        return Expression.unary(_negate, self)

    def __mul__(self, other: Any) -> "Expression[Any]":
        return Expression.binary(_multiply, self, _as_expression(other))

    def __rmul__(self, other: Any) -> "Expression[Any]":
        return Expression.binary(_multiply, _as_expression(other), self)

    def __repr__(self) -> str:
        return f"Expression({self._root!r})"


def _root_of(e: Any, position: int) -> ExpressionNode:
    if not isinstance(e, Expression):
        raise MalformedExpressionError(
            f"Argument {position} is not an Expression: {type(e).__name__}"
        )
    return e.root()


def _as_expression(value: Any) -> Expression[Any]:
    if isinstance(value, Expression):
        return value
    if isinstance(value, (list, tuple)):
        value = jnp.asarray(value, dtype=float)
    return Expression.constant(value)


def _jacfwd_function(fn: Callable[..., Any], arity: int) -> Callable[..., Any]:
    def wrapped(*args):
        arguments, slots = args[:arity], args[arity:]
        result = fn(*arguments)
        n = manifold.dim(result)
        for i, slot in enumerate(slots):
            if slot is None:
                continue
            J = jax.jacfwd(fn, argnums=i)(*arguments)
            slot.set(jnp.reshape(J, (n, manifold.dim(arguments[i]))))
        return result

    wrapped.__name__ = getattr(fn, "__name__", "lifted")
    return wrapped


# --- Arithmetic with Jacobians ---


def _sum_jacobian(arg: Any, n: int) -> jnp.ndarray:
    # scalar arguments broadcast over the result
    if manifold.dim(arg) == n:
        return jnp.eye(n)
    return jnp.ones((n, 1))


def _product_jacobian(arg: Any, factor: Any, n: int) -> jnp.ndarray:
    """∂(arg * factor)/∂arg for a result of dimension n."""
    factor = jnp.ravel(jnp.asarray(factor, dtype=float))
    if manifold.dim(arg) == n:
        if factor.size == 1:
            return factor[0] * jnp.eye(n)
        return jnp.diag(factor)
    return jnp.reshape(factor, (n, 1))


def _add(a, b, H1=None, H2=None):
    result = a + b
    n = manifold.dim(result)
    if H1 is not None:
        H1.set(_sum_jacobian(a, n))
    if H2 is not None:
        H2.set(_sum_jacobian(b, n))
    return result


def _subtract(a, b, H1=None, H2=None):
    result = a - b
    n = manifold.dim(result)
    if H1 is not None:
        H1.set(_sum_jacobian(a, n))
    if H2 is not None:
        H2.set(-_sum_jacobian(b, n))
    return result


def _negate(a, H=None):
    if H is not None:
        H.set(-jnp.eye(manifold.dim(a)))
    return -a


def _multiply(a, b, H1=None, H2=None):
    result = a * b
    n = manifold.dim(result)
    if H1 is not None:
        H1.set(_product_jacobian(a, b, n))
    if H2 is not None:
        H2.set(_product_jacobian(b, a, n))
    return result
