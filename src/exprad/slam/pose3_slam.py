# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
Pose-graph SLAM over Pose3 variables.

Pose3Graph
    FactorGraph with the three factor kinds a pose graph needs:

        add_pose_prior(key, pose, sigmas)          soft prior on one pose
        add_relative_pose(key1, key2, z, sigmas)   odometry / loop closure
        add_pose_constraint(key, pose)             pins a pose (gauge fix)

circle(n, radius)
    n poses evenly spaced on a horizontal circle, keys 0..n-1, each facing
    along the circle. Handy as ground truth or initial estimate.

translations(values)
    (m, 3) array with the translation of every Pose3 in `values`, in key order.

Example
-------
    truth = circle(8, 5.0)
    graph = Pose3Graph()
    graph.add_pose_constraint(0, truth.at(0))
    for i in range(8):
        j = (i + 1) % 8
        graph.add_relative_pose(i, j, truth.at(i).between(truth.at(j)), sigmas=0.1)
    result = gauss_newton(graph, initial)
"""

from __future__ import annotations

import math
from typing import Any

import jax.numpy as jnp

from ..core.types import Key
from ..core.values import Values
from ..geometry.pose3 import Pose3
from ..geometry.rot3 import Rot3
from ..nonlinear.expression_factor import between_factor, equality_factor, prior_factor
from ..nonlinear.factor_graph import FactorGraph


class Pose3Graph(FactorGraph):
    def add_pose_prior(self, key: Key, pose: Pose3, sigmas: Any = 1.0) -> None:
        self.add(prior_factor(key, pose, sigmas))

    def add_relative_pose(self, key1: Key, key2: Key, z: Pose3, sigmas: Any = 1.0) -> None:
        self.add(between_factor(key1, key2, z, sigmas))

    def add_pose_constraint(self, key: Key, pose: Pose3) -> None:
        self.add(equality_factor(key, pose))


def circle(n: int, radius: float) -> Values:
    """
    Poses on a circle of `radius` in the z = 0 plane, pose i at angle 2πi/n.

    Body frames follow the aerospace convention (X forward, Y right, Z down):
    pose 0 sits at (radius, 0, 0) looking along the world y axis, and each
    following pose is yawed so that it keeps looking along the circle.
    """
    if n <= 0:
        raise ValueError(f"circle needs at least one pose, got n={n}")
    # columns: body X -> world y, body Y -> world x, body Z -> world -z
    gR0 = Rot3(jnp.array([
        [0.0, 1.0, 0.0],
        [1.0, 0.0, 0.0],
        [0.0, 0.0, -1.0],
    ]))
    values = Values()
    dtheta = 2.0 * math.pi / n
    for i in range(n):
        theta = i * dtheta
        t = jnp.array([radius * math.cos(theta), radius * math.sin(theta), 0.0])
        # negative yaw turns counterclockwise with Z down
        values.insert(Key(i), Pose3(gR0.compose(Rot3.yaw(-theta)), t))
    return values


def translations(values: Values) -> jnp.ndarray:
    rows = [values.at(key).t for key in values.keys() if isinstance(values.at(key), Pose3)]
    if not rows:
        return jnp.zeros((0, 3))
    return jnp.stack(rows)
