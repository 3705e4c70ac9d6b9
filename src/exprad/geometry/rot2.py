# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""Planar rotation (heading) as a one-dimensional manifold value."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import ClassVar

import jax.numpy as jnp


def _wrap(angle: float) -> float:
    """Wrap to [-pi, pi)."""
    return (angle + math.pi) % (2.0 * math.pi) - math.pi


@dataclass(frozen=True)
class Rot2:
    theta: float

    manifold: ClassVar[str] = "so2"

    def __post_init__(self):
        object.__setattr__(self, "theta", float(self.theta))

    def dim(self) -> int:
        return 1

    def retract(self, delta: jnp.ndarray) -> "Rot2":
        return Rot2(self.theta + float(jnp.ravel(jnp.asarray(delta))[0]))

    def local_coordinates(self, other: "Rot2") -> jnp.ndarray:
        return jnp.array([_wrap(other.theta - self.theta)])

    def matrix(self) -> jnp.ndarray:
        c, s = math.cos(self.theta), math.sin(self.theta)
        return jnp.array([[c, -s], [s, c]])
