# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
Magnetometer measurement factors.

A magnetometer rigidly attached to a body measures the local magnetic field
expressed in the body frame, scaled and offset by the sensor:

    measured ≈ s · bRn · d + bias

with
    d     : field direction in the navigation frame (Unit3)
    s     : field magnitude times the sensor's scale factor (float)
    bRn   : nRbᵀ, rotation from navigation to body frame
    bias  : constant sensor offset (3-vector)

Depending on which quantities are being estimated, different subsets of
these become variables. Each builder below returns an `ExpressionFactor`
whose prediction h(x) is an expression over the unknowns, with every
known quantity folded in as a constant, so no derivative work is spent on
it.

Factors
-------
mag_factor(key, measured, scale, direction, bias)
    Unknown heading θ (Rot2): h = s · unrotate(θ, d) + bias.

mag_factor1(key, measured, scale, direction, bias)
    Unknown attitude nRb (Rot3): h = s · nRbᵀ d + bias.

mag_factor2(key_field, key_bias, measured, nRb)
    Unknown scaled field vector f and bias: h = nRbᵀ f + bias.

mag_factor3(key_scale, key_direction, key_bias, measured, nRb)
    Unknown scale, direction and bias: h = s · nRbᵀ d + bias, evaluated by
    a single ternary node.

The ternary prediction is also available on its own,
`magnetometer_prediction(scale, direction, bias, nRb)`, for callers that
want to bind some of its arguments to constants.
"""

from __future__ import annotations

from typing import Any, Callable

import jax
import jax.numpy as jnp

from ..core.expression import Expression
from ..core.types import Key
from ..geometry.expressions import point3
from ..geometry.expressions import unrotate as unrotate_expression
from ..geometry.math3d import yaw_matrix
from ..geometry.rot2 import Rot2
from ..geometry.rot3 import Rot3
from ..geometry.unit3 import Unit3
from ..nonlinear.expression_factor import ExpressionFactor


def unrotate(theta: Rot2, direction: Unit3, H1=None, H2=None) -> Unit3:
    """
    Express a navigation-frame direction in a body frame with heading θ,
    i.e. rotate it by yaw(θ).

    Jacobians: H1 (2×1) w.r.t. θ, H2 (2×2) w.r.t. the direction.
    """
    Y = yaw_matrix(theta.theta)
    q = Unit3(Y @ direction.p)
    if H1 is not None or H2 is not None:
        B = q.basis()
        if H1 is not None:
            # d(Y p)/dθ = z × (Y p)
            dq = jnp.array([-q.p[1], q.p[0], 0.0])
            H1.set(jnp.reshape(B.T @ dq, (2, 1)))
        if H2 is not None:
            H2.set(B.T @ Y @ direction.basis())
    return q


def _scaled_field(nRb: Rot3) -> Callable[..., jnp.ndarray]:
    bRn = nRb.R.T

    def scaled_field(s, d, bias, H1=None, H2=None, H3=None):
        rotated = bRn @ d.p
        if H1 is not None:
            H1.set(jnp.reshape(rotated, (3, 1)))
        if H2 is not None:
            H2.set(s * bRn @ d.basis())
        if H3 is not None:
            H3.set(jnp.eye(3))
        return s * rotated + bias

    return scaled_field


def magnetometer_prediction(
    scale: Expression[float],
    direction: Expression[Unit3],
    bias: Expression[jax.Array],
    nRb: Rot3,
) -> Expression[jax.Array]:
    """s · nRbᵀ d + bias as one ternary expression."""
    return Expression.ternary(_scaled_field(nRb), scale, direction, bias)


def mag_factor(
    key: Key,
    measured: jax.Array,
    scale: float,
    direction: Unit3,
    bias: jax.Array,
    sigmas: Any = 1.0,
) -> ExpressionFactor:
    rotated = Expression.binary(
        unrotate, Expression.leaf(key, Rot2), Expression.constant(direction)
    )
    prediction = scale * point3(rotated) + jnp.asarray(bias, dtype=float)
    return ExpressionFactor(jnp.asarray(measured, dtype=float), prediction, sigmas)


def mag_factor1(
    key: Key,
    measured: jax.Array,
    scale: float,
    direction: Unit3,
    bias: jax.Array,
    sigmas: Any = 1.0,
) -> ExpressionFactor:
    rotated = unrotate_expression(
        Expression.leaf(key, Rot3), Expression.constant(direction.p)
    )
    prediction = scale * rotated + jnp.asarray(bias, dtype=float)
    return ExpressionFactor(jnp.asarray(measured, dtype=float), prediction, sigmas)


def mag_factor2(
    key_field: Key,
    key_bias: Key,
    measured: jax.Array,
    nRb: Rot3,
    sigmas: Any = 1.0,
) -> ExpressionFactor:
    field = unrotate_expression(
        Expression.constant(nRb), Expression.leaf(key_field, jax.Array)
    )
    prediction = field + Expression.leaf(key_bias, jax.Array)
    return ExpressionFactor(jnp.asarray(measured, dtype=float), prediction, sigmas)


def mag_factor3(
    key_scale: Key,
    key_direction: Key,
    key_bias: Key,
    measured: jax.Array,
    nRb: Rot3,
    sigmas: Any = 1.0,
) -> ExpressionFactor:
    prediction = magnetometer_prediction(
        Expression.leaf(key_scale, float),
        Expression.leaf(key_direction, Unit3),
        Expression.leaf(key_bias, jax.Array),
        nRb,
    )
    return ExpressionFactor(jnp.asarray(measured, dtype=float), prediction, sigmas)
