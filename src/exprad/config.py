# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
Runtime configuration for exprad.

Solver parameters live next to their solver (`nonlinear.solvers.GNConfig`);
this module holds the process-wide settings of the AD engine itself.

Usage:
    from exprad.config import ADConfig, set_config

    set_config(ADConfig(numerical_delta=1e-6))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import jax

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ADConfig:
    """Process-wide AD engine settings."""

    # Jacobian checks against finite differences need double precision.
    enable_x64: bool = True

    # Step used by core.numerical for central differences.
    numerical_delta: float = 1e-5

    # Validate the shape of every Jacobian block a wrapped function fills.
    check_jacobian_shapes: bool = True


_config: ADConfig = ADConfig()


def get_config() -> ADConfig:
    return _config


def set_config(config: ADConfig) -> None:
    """Install `config` and apply its JAX-level settings."""
    global _config
    _config = config
    jax.config.update("jax_enable_x64", config.enable_x64)
    _log.debug("exprad config set: %s", config)
