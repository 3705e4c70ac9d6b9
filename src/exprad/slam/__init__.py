# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
from .pose3_slam import Pose3Graph, circle, translations

__all__ = [
    "Pose3Graph",
    "circle",
    "translations",
]
