# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
Manifold traits for the value types flowing through expressions.

The AD engine treats values as opaque. The only things it ever needs to
know about a value are:

    • its tangent-space dimension, to size identity / zero Jacobian blocks
    • (for numerical checks and solvers) how to move along the tangent space
      (`retract`) and how to measure a difference in it (`local_coordinates`)

Supported value kinds
---------------------
"euclidean"
    Python floats (dimension 1) and JAX arrays (dimension = number of
    elements). Retraction is addition, local coordinates are subtraction,
    both flattened to 1-D tangent vectors.

Protocol objects
    Anything implementing

        dim() -> int
        retract(delta) -> same type
        local_coordinates(other) -> (dim,) array

    e.g. `geometry.Rot2`, `geometry.Rot3`, `geometry.Unit3`. Such classes
    may set a `manifold` class attribute ("so2", "so3", "s2", ...) that is
    reported by `manifold_name`.

The tangent convention is the one used everywhere in exprad: a Jacobian
block of f at x maps a local-coordinate perturbation of x to a
local-coordinate perturbation of f(x).
"""

from __future__ import annotations

from typing import Any

import jax
import jax.numpy as jnp

EUCLIDEAN = "euclidean"


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (float, int)) and not isinstance(value, bool)


def _is_protocol(value: Any) -> bool:
    return hasattr(value, "retract") and hasattr(value, "local_coordinates")


def manifold_name(value: Any) -> str:
    if _is_protocol(value):
        return getattr(value, "manifold", type(value).__name__.lower())
    return EUCLIDEAN


def dim(value: Any) -> int:
    """Tangent-space dimension of `value`."""
    if _is_scalar(value):
        return 1
    if _is_protocol(value):
        return int(value.dim())
    if isinstance(value, jax.Array):
        return int(value.size)
    raise TypeError(f"Cannot determine manifold dimension of {type(value).__name__}")


def retract(value: Any, delta: jnp.ndarray) -> Any:
    """Move `value` by the tangent vector `delta`."""
    delta = jnp.ravel(jnp.asarray(delta))
    if _is_scalar(value):
        return float(value + delta[0])
    if _is_protocol(value):
        return value.retract(delta)
    value = jnp.asarray(value)
    return value + jnp.reshape(delta, value.shape)


def local_coordinates(value: Any, other: Any) -> jnp.ndarray:
    """Tangent vector at `value` pointing to `other`, shape (dim(value),)."""
    if _is_scalar(value):
        return jnp.array([other - value], dtype=float)
    if _is_protocol(value):
        return jnp.ravel(value.local_coordinates(other))
    return jnp.ravel(jnp.asarray(other) - jnp.asarray(value))
