# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
Least-squares factors defined by an expression.

An `ExpressionFactor` compares the value of a prediction expression h(x)
against a measurement z:

    e(x) = local_coordinates(z, h(x))          (h(x) - z for vectors)
    whitened e(x) = e(x) / sigmas
    error(x) = ½ ‖whitened e(x)‖²

`linearize` obtains the value and all Jacobians of h from a single
`augmented` evaluation, so any expression (analytic Jacobians, lifted JAX
functions, or a mix) can be used as a factor without extra code.

Only the Jacobian of h is used. For manifold-valued measurements this
ignores the derivative of the logarithm map, which is exact at the optimum
and the usual Gauss-Newton approximation away from it.

Builders
--------
prior_factor(key, measured, sigmas)
    h(x) = x, for any value type.

between_factor(key1, key2, measured, sigmas)
    h(x1, x2) = x1⁻¹ x2 for types with a `between` method (e.g. Rot3),
    x2 - x1 for Euclidean values.

equality_factor(key, value)
    Pins a variable to `value`: a prior with noise `EQUALITY_SIGMA`, small
    enough that any other factor moves the variable by a negligible amount.
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

import jax
import jax.numpy as jnp

from ..core import manifold
from ..core.expression import Expression
from ..core.types import Key
from ..core.values import ValuesLike

EQUALITY_SIGMA = 1e-5


class ExpressionFactor:
    """Measurement `measured` of the prediction `expression`, with diagonal noise `sigmas`."""

    def __init__(self, measured: Any, expression: Expression[Any], sigmas: Any = 1.0):
        self.measured = measured
        self.expression = expression
        m = manifold.dim(measured)
        sigmas = jnp.ravel(jnp.asarray(sigmas, dtype=float))
        if sigmas.size == 1:
            sigmas = jnp.full((m,), sigmas[0])
        if sigmas.shape != (m,):
            raise ValueError(f"Expected {m} sigmas for the measurement, got {sigmas.size}")
        self.sigmas = sigmas
        self._keys = tuple(sorted(expression.keys()))

    def keys(self) -> Tuple[Key, ...]:
        return self._keys

    def dim(self) -> int:
        return manifold.dim(self.measured)

    def unwhitened_error(self, values: ValuesLike) -> jnp.ndarray:
        return manifold.local_coordinates(self.measured, self.expression.value(values))

    def whitened_error(self, values: ValuesLike) -> jnp.ndarray:
        return self.unwhitened_error(values) / self.sigmas

    def error(self, values: ValuesLike) -> float:
        e = self.whitened_error(values)
        return 0.5 * float(e @ e)

    def linearize(self, values: ValuesLike) -> Tuple[Dict[Key, jnp.ndarray], jnp.ndarray]:
        """
        Whitened linearization A·δ ≈ b around `values`.

        Returns:
            blocks: key -> A block of shape (dim(), dim(variable))
            b: right-hand side, -whitened error
        """
        augmented = self.expression.augmented(values)
        e = manifold.local_coordinates(self.measured, augmented.value) / self.sigmas

        blocks: Dict[Key, jnp.ndarray] = {}
        for key in self._keys:
            if key in augmented.jacobians:
                blocks[key] = augmented.jacobians[key] / self.sigmas[:, None]
            else:
                # every path to this key was constant-folded away
                n = manifold.dim(values.at(key))
                blocks[key] = jnp.zeros((self.dim(), n))
        return blocks, -e

    def __repr__(self) -> str:
        return f"ExpressionFactor(keys={self._keys}, measured={self.measured!r})"


def prior_factor(key: Key, measured: Any, sigmas: Any = 1.0) -> ExpressionFactor:
    return ExpressionFactor(measured, Expression.leaf(key, _leaf_type(measured)), sigmas)


def equality_factor(key: Key, value: Any) -> ExpressionFactor:
    return prior_factor(key, value, EQUALITY_SIGMA)


def between_factor(key1: Key, key2: Key, measured: Any, sigmas: Any = 1.0) -> ExpressionFactor:
    value_type = _leaf_type(measured)
    x1 = Expression.leaf(key1, value_type)
    x2 = Expression.leaf(key2, value_type)
    between = getattr(value_type, "between", None)
    if between is not None:
        prediction = Expression.binary(between, x1, x2)
    else:
        prediction = x2 - x1
    return ExpressionFactor(measured, prediction, sigmas)


def _leaf_type(measured: Any) -> type:
    if isinstance(measured, (float, int)):
        return float
    if isinstance(measured, jax.Array):
        return jax.Array
    return type(measured)
