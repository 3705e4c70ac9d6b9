# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
3D rigid-body poses as a manifold value type.

A Pose3 is a rotation `R` (Rot3) and a translation `t`, acting on points as

    p ↦ R · p + t

Tangent vectors are 6-vectors ξ = [ω, v], rotation first. The retraction
perturbs both parts in the body frame:

    retract(T, [ω, v])  = (R · Exp(ω), t + R · v)
    local(T1, T2)       = [Log(R1ᵀ R2), R1ᵀ (t2 - t1)]

which are exact inverses of each other. All Jacobians below use this chart.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

import jax.numpy as jnp

from .math3d import hat
from .rot3 import Rot3


def _blocks(A, B, C, D) -> jnp.ndarray:
    """[[A, B], [C, D]] from four 3×3 blocks."""
    return jnp.block([[A, B], [C, D]])


@dataclass(frozen=True, eq=False)
class Pose3:
    rotation: Rot3
    t: jnp.ndarray

    manifold: ClassVar[str] = "se3"

    def __post_init__(self):
        if not isinstance(self.rotation, Rot3):
            object.__setattr__(self, "rotation", Rot3(self.rotation))
        object.__setattr__(self, "t", jnp.reshape(jnp.asarray(self.t, dtype=float), (3,)))

    @staticmethod
    def identity() -> "Pose3":
        return Pose3(Rot3.identity(), jnp.zeros(3))

    @property
    def R(self) -> jnp.ndarray:
        return self.rotation.R

    def translation(self, H=None) -> jnp.ndarray:
        if H is not None:
            H.set(jnp.hstack([jnp.zeros((3, 3)), self.R]))
        return self.t

    def matrix(self) -> jnp.ndarray:
        """4×4 homogeneous transform."""
        top = jnp.hstack([self.R, self.t[:, None]])
        return jnp.vstack([top, jnp.array([[0.0, 0.0, 0.0, 1.0]])])

    # --- Manifold ---

    def dim(self) -> int:
        return 6

    def retract(self, delta: jnp.ndarray) -> "Pose3":
        delta = jnp.ravel(jnp.asarray(delta, dtype=float))
        return Pose3(self.rotation.retract(delta[:3]), self.t + self.R @ delta[3:])

    def local_coordinates(self, other: "Pose3") -> jnp.ndarray:
        omega = self.rotation.local_coordinates(other.rotation)
        v = self.R.T @ (other.t - self.t)
        return jnp.concatenate([omega, v])

    # --- Group operations ---

    def inverse(self) -> "Pose3":
        return Pose3(self.rotation.inverse(), -self.R.T @ self.t)

    def compose(self, other: "Pose3", H1=None, H2=None) -> "Pose3":
        if H1 is not None:
            R2t = other.R.T
            H1.set(_blocks(R2t, jnp.zeros((3, 3)), -R2t @ hat(other.t), R2t))
        if H2 is not None:
            H2.set(jnp.eye(6))
        return Pose3(self.rotation.compose(other.rotation), self.t + self.R @ other.t)

    def between(self, other: "Pose3", H1=None, H2=None) -> "Pose3":
        """self⁻¹ · other."""
        rotation = self.rotation.between(other.rotation)
        t = self.R.T @ (other.t - self.t)
        if H1 is not None:
            Rt = rotation.R.T
            H1.set(_blocks(-Rt, jnp.zeros((3, 3)), Rt @ hat(t), -Rt))
        if H2 is not None:
            H2.set(jnp.eye(6))
        return Pose3(rotation, t)

    # --- Acting on points ---

    def transform_from(self, p: jnp.ndarray, H1=None, H2=None) -> jnp.ndarray:
        """R · p + t."""
        p = jnp.asarray(p, dtype=float)
        if H1 is not None:
            H1.set(jnp.hstack([-self.R @ hat(p), self.R]))
        if H2 is not None:
            H2.set(self.R)
        return self.R @ p + self.t

    def equals(self, other: "Pose3", tol: float = 1e-9) -> bool:
        return self.rotation.equals(other.rotation, tol) and bool(
            jnp.allclose(self.t, other.t, atol=tol)
        )

    def __repr__(self) -> str:
        return f"Pose3(R={self.R.tolist()}, t={self.t.tolist()})"
