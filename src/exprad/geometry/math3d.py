# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
SO(3) primitives for exprad's geometry types.

Key Functions
-------------
hat(w)
    3-vector -> 3×3 skew-symmetric matrix, so that hat(w) @ v == cross(w, v).

vee(W)
    Inverse of hat (antisymmetric part of a 3×3 matrix).

so3_exp(w)
    Axis-angle 3-vector -> rotation matrix (Rodrigues).

so3_log(R)
    Rotation matrix -> axis-angle 3-vector.

yaw_matrix(theta)
    Rotation about +z.

Both maps switch to series expansions near the identity so that finite
differences taken around a rotation stay well conditioned.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp


def hat(v: jnp.ndarray) -> jnp.ndarray:
    """so(3) hat operator: R^3 -> 3x3 skew-symmetric matrix."""
    v = jnp.asarray(v, dtype=float)
    x, y, z = v[0], v[1], v[2]
    return jnp.array(
        [
            [0.0, -z, y],
            [z, 0.0, -x],
            [-y, x, 0.0],
        ]
    )


def vee(W: jnp.ndarray) -> jnp.ndarray:
    """
    vee: so(3) -> R^3, inverse of hat.
    Only the antisymmetric part of W contributes.
    """
    return jnp.array([
        W[2, 1] - W[1, 2],
        W[0, 2] - W[2, 0],
        W[1, 0] - W[0, 1],
    ]) / 2.0


def so3_exp(w: jnp.ndarray) -> jnp.ndarray:
    """
    Exponential map from so(3) (rotation vector) to SO(3).

    Uses Rodrigues' formula with a small-angle fallback.
    """
    w = jnp.asarray(w, dtype=float)
    theta = jnp.linalg.norm(w)
    I = jnp.eye(3)

    def small_angle() -> jnp.ndarray:
        W = hat(w)
        return I + W + 0.5 * (W @ W)

    def normal_angle() -> jnp.ndarray:
        K = hat(w / theta)
        return I + jnp.sin(theta) * K + (1.0 - jnp.cos(theta)) * (K @ K)

    return jax.lax.cond(theta < 1e-8, small_angle, normal_angle)


def so3_log(R: jnp.ndarray) -> jnp.ndarray:
    """
    Logarithm map for SO(3).

    Handles:
      - small angles via first-order approximation
      - trace slightly outside [-1, 3] via clamping

    Returns w in R^3 such that Exp(w) ~ R.
    """
    R = jnp.asarray(R, dtype=float)
    cos_theta = jnp.clip((jnp.trace(R) - 1.0) / 2.0, -1.0, 1.0)
    theta = jnp.arccos(cos_theta)

    def small_angle_case(_) -> jnp.ndarray:
        # R ~ I + hat(w)
        return vee(R)

    def general_case(_) -> jnp.ndarray:
        # w^ = (theta / (2 sin(theta))) * (R - R^T)
        return (theta / jnp.sin(theta)) * vee(R)

    return jax.lax.cond(theta < 1e-5, small_angle_case, general_case, operand=None)


def yaw_matrix(theta: float) -> jnp.ndarray:
    """Rotation by `theta` radians about the z axis."""
    c = jnp.cos(theta)
    s = jnp.sin(theta)
    return jnp.array(
        [
            [c, -s, 0.0],
            [s, c, 0.0],
            [0.0, 0.0, 1.0],
        ]
    )
