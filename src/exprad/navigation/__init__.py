# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
from .magnetometer import (
    mag_factor,
    mag_factor1,
    mag_factor2,
    mag_factor3,
    magnetometer_prediction,
    unrotate,
)

__all__ = [
    "mag_factor",
    "mag_factor1",
    "mag_factor2",
    "mag_factor3",
    "magnetometer_prediction",
    "unrotate",
]
