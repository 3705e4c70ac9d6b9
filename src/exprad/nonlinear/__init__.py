# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
from .expression_factor import (
    EQUALITY_SIGMA,
    ExpressionFactor,
    between_factor,
    equality_factor,
    prior_factor,
)
from .factor_graph import FactorGraph
from .solvers import GNConfig, gauss_newton

__all__ = [
    "EQUALITY_SIGMA",
    "ExpressionFactor",
    "FactorGraph",
    "GNConfig",
    "between_factor",
    "equality_factor",
    "gauss_newton",
    "prior_factor",
]
