# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
Finite-difference derivatives on manifolds.

Used to check analytic Jacobians. Both the argument and the result are
perturbed / compared in local coordinates, matching the tangent convention
of `core.manifold`:

    column i = ( local(f(x), f(retract(x, +δ eᵢ)))
               - local(f(x), f(retract(x, -δ eᵢ))) ) / 2δ

The `numerical_derivativeNM` helpers differentiate an N-argument function
w.r.t. its M-th argument, with the other arguments held fixed.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import jax.numpy as jnp

from ..config import get_config
from . import manifold


def numerical_derivative(
    f: Callable[[Any], Any], x: Any, delta: Optional[float] = None
) -> jnp.ndarray:
    """Central-difference Jacobian of `f` at `x`, shape (dim(f(x)), dim(x))."""
    if delta is None:
        delta = get_config().numerical_delta
    fx = f(x)
    m = manifold.dim(fx)
    n = manifold.dim(x)

    columns = []
    for i in range(n):
        d = jnp.zeros(n).at[i].set(delta)
        plus = manifold.local_coordinates(fx, f(manifold.retract(x, d)))
        minus = manifold.local_coordinates(fx, f(manifold.retract(x, -d)))
        columns.append((plus - minus) / (2.0 * delta))
    if not columns:
        return jnp.zeros((m, 0))
    return jnp.stack(columns, axis=1)


def numerical_derivative11(f, x, delta=None):
    return numerical_derivative(f, x, delta)


def numerical_derivative21(f, x1, x2, delta=None):
    return numerical_derivative(lambda x: f(x, x2), x1, delta)


def numerical_derivative22(f, x1, x2, delta=None):
    return numerical_derivative(lambda x: f(x1, x), x2, delta)


def numerical_derivative31(f, x1, x2, x3, delta=None):
    return numerical_derivative(lambda x: f(x, x2, x3), x1, delta)


def numerical_derivative32(f, x1, x2, x3, delta=None):
    return numerical_derivative(lambda x: f(x1, x, x3), x2, delta)


def numerical_derivative33(f, x1, x2, x3, delta=None):
    return numerical_derivative(lambda x: f(x1, x2, x), x3, delta)
