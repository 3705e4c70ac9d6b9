# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""Expression builders for the geometry types."""

from __future__ import annotations

import jax

from ..core.expression import Expression
from .pose3 import Pose3
from .rot3 import Rot3
from .unit3 import Unit3


def rotate(R: Expression[Rot3], p: Expression[jax.Array]) -> Expression[jax.Array]:
    return Expression.binary(Rot3.rotate, R, p)


def unrotate(R: Expression[Rot3], p: Expression[jax.Array]) -> Expression[jax.Array]:
    return Expression.binary(Rot3.unrotate, R, p)


def compose(R1: Expression[Rot3], R2: Expression[Rot3]) -> Expression[Rot3]:
    return Expression.binary(Rot3.compose, R1, R2)


def between(R1: Expression[Rot3], R2: Expression[Rot3]) -> Expression[Rot3]:
    return Expression.binary(Rot3.between, R1, R2)


def point3(direction: Expression[Unit3]) -> Expression[jax.Array]:
    return Expression.unary(Unit3.point3, direction)


def transform_from(T: Expression[Pose3], p: Expression[jax.Array]) -> Expression[jax.Array]:
    return Expression.binary(Pose3.transform_from, T, p)


def translation(T: Expression[Pose3]) -> Expression[jax.Array]:
    return Expression.unary(Pose3.translation, T)
