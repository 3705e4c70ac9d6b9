# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
Unit directions in R^3 (points on the sphere S²).

A Unit3 has a two-dimensional tangent space spanned by the columns of
`basis()`, an orthonormal 3×2 matrix perpendicular to the direction p.
The basis is a deterministic function of p, so the same direction always
gets the same local coordinates.

    retract(p, v)  = cos(|ξ|) p + sin(|ξ|) ξ/|ξ|,   ξ = B(p) v
    local(p, q)    = θ/sin θ · B(p)ᵀ (q - cos θ · p),  θ = angle(p, q)

Both are exact inverses of each other for |v| < π. At the antipode -p the
local coordinates are [π, 0].
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import ClassVar

import jax.numpy as jnp


@dataclass(frozen=True, eq=False)
class Unit3:
    p: jnp.ndarray

    manifold: ClassVar[str] = "s2"

    def __post_init__(self):
        p = jnp.ravel(jnp.asarray(self.p, dtype=float))
        norm = float(jnp.linalg.norm(p))
        if p.shape != (3,) or norm == 0.0:
            raise ValueError(f"Unit3 needs a non-zero 3-vector, got {self.p!r}")
        object.__setattr__(self, "p", p / norm)

    def basis(self) -> jnp.ndarray:
        """Orthonormal 3×2 tangent basis at p."""
        # cross with the axis p is least aligned with
        axis = jnp.zeros(3).at[int(jnp.argmin(jnp.abs(self.p)))].set(1.0)
        b1 = jnp.cross(self.p, axis)
        b1 = b1 / jnp.linalg.norm(b1)
        b2 = jnp.cross(self.p, b1)
        return jnp.stack([b1, b2], axis=1)

    def point3(self, H=None) -> jnp.ndarray:
        if H is not None:
            H.set(self.basis())
        return self.p

    def dim(self) -> int:
        return 2

    def retract(self, delta: jnp.ndarray) -> "Unit3":
        xi = self.basis() @ jnp.ravel(jnp.asarray(delta, dtype=float))
        theta = float(jnp.linalg.norm(xi))
        if theta < 1e-12:
            return Unit3(self.p + xi)
        return Unit3(math.cos(theta) * self.p + math.sin(theta) * xi / theta)

    def local_coordinates(self, other: "Unit3") -> jnp.ndarray:
        cos_theta = float(jnp.clip(jnp.dot(self.p, other.p), -1.0, 1.0))
        theta = math.acos(cos_theta)
        if cos_theta < -1.0 + 1e-12:
            # antipode: all tangent directions reach -p, use the first one
            return jnp.array([theta, 0.0])
        v = self.basis().T @ (other.p - cos_theta * self.p)
        if theta < 1e-8:
            return v
        return (theta / math.sin(theta)) * v

    def equals(self, other: "Unit3", tol: float = 1e-9) -> bool:
        return bool(jnp.allclose(self.p, other.p, atol=tol))

    def __repr__(self) -> str:
        return f"Unit3({self.p.tolist()})"
