# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
3D rotations as a manifold value type.

Rot3 stores a 3×3 rotation matrix and perturbs it on the right:

    retract(R, ω)          = R · Exp(ω)
    local_coordinates(R, Q) = Log(Rᵀ · Q)

All Jacobians below are expressed in that convention. The methods taking
optional `H*` slots follow the wrapped-function protocol of
`exprad.core.nodes`, so they can be handed to expression nodes directly:

    Expression.binary(Rot3.between, R1, R2)
    Expression.binary(Rot3.unrotate, R, p)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

import jax.numpy as jnp

from .math3d import hat, so3_exp, so3_log, yaw_matrix


@dataclass(frozen=True, eq=False)
class Rot3:
    R: jnp.ndarray

    manifold: ClassVar[str] = "so3"

    def __post_init__(self):
        object.__setattr__(self, "R", jnp.reshape(jnp.asarray(self.R, dtype=float), (3, 3)))

    @staticmethod
    def identity() -> "Rot3":
        return Rot3(jnp.eye(3))

    @staticmethod
    def expmap(w: jnp.ndarray) -> "Rot3":
        return Rot3(so3_exp(w))

    @staticmethod
    def yaw(theta: float) -> "Rot3":
        return Rot3(yaw_matrix(theta))

    def matrix(self) -> jnp.ndarray:
        return self.R

    # --- Manifold ---

    def dim(self) -> int:
        return 3

    def retract(self, delta: jnp.ndarray) -> "Rot3":
        return Rot3(self.R @ so3_exp(delta))

    def local_coordinates(self, other: "Rot3") -> jnp.ndarray:
        return so3_log(self.R.T @ other.R)

    # --- Group operations ---

    def inverse(self) -> "Rot3":
        return Rot3(self.R.T)

    def compose(self, other: "Rot3", H1=None, H2=None) -> "Rot3":
        if H1 is not None:
            H1.set(other.R.T)
        if H2 is not None:
            H2.set(jnp.eye(3))
        return Rot3(self.R @ other.R)

    def between(self, other: "Rot3", H1=None, H2=None) -> "Rot3":
        """self⁻¹ · other."""
        result = self.R.T @ other.R
        if H1 is not None:
            H1.set(-result.T)
        if H2 is not None:
            H2.set(jnp.eye(3))
        return Rot3(result)

    # --- Acting on points ---

    def rotate(self, p: jnp.ndarray, H1=None, H2=None) -> jnp.ndarray:
        """R · p."""
        p = jnp.asarray(p, dtype=float)
        if H1 is not None:
            H1.set(-self.R @ hat(p))
        if H2 is not None:
            H2.set(self.R)
        return self.R @ p

    def unrotate(self, p: jnp.ndarray, H1=None, H2=None) -> jnp.ndarray:
        """Rᵀ · p."""
        p = jnp.asarray(p, dtype=float)
        q = self.R.T @ p
        if H1 is not None:
            H1.set(hat(q))
        if H2 is not None:
            H2.set(self.R.T)
        return q

    def equals(self, other: "Rot3", tol: float = 1e-9) -> bool:
        return bool(jnp.allclose(self.R, other.R, atol=tol))

    def __repr__(self) -> str:
        return f"Rot3({self.R.tolist()})"
