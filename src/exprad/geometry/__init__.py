# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
from .math3d import hat, so3_exp, so3_log, vee, yaw_matrix
from .pose3 import Pose3
from .rot2 import Rot2
from .rot3 import Rot3
from .unit3 import Unit3

__all__ = [
    "Pose3",
    "Rot2",
    "Rot3",
    "Unit3",
    "hat",
    "so3_exp",
    "so3_log",
    "vee",
    "yaw_matrix",
]
