# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
Gauss–Newton over Values.

Each iteration linearizes the factor graph around the current Values,
solves the damped normal equations

    (JᵀJ + λI) δ = Jᵀ b

clamps the step norm, and applies δ per variable through `Values.retract`,
so rotations, unit directions and other manifold variables stay on their
manifold while Euclidean variables are updated additively.

GNConfig
    - max_iters: maximum number of iterations
    - damping: Levenberg–Marquardt-style diagonal damping λ
    - max_step_norm: clamp on ‖δ‖ for stability
    - rel_tol / abs_tol: stop when the error decrease falls below
      rel_tol·error or abs_tol
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import jax.numpy as jnp

from ..core.values import Values
from .factor_graph import FactorGraph

logger = logging.getLogger(__name__)


@dataclass
class GNConfig:
    max_iters: int = 20
    damping: float = 1e-3       # LM-style diagonal damping
    max_step_norm: float = 1.0  # clamp step size for stability
    rel_tol: float = 1e-10
    abs_tol: float = 1e-12


def gauss_newton(graph: FactorGraph, initial: Values, cfg: Optional[GNConfig] = None) -> Values:
    """
    Minimize graph.error starting from `initial`.

    Returns:
        optimized Values (a new object; `initial` is left untouched)
    """
    cfg = cfg or GNConfig()
    values = initial
    error = graph.error(values)
    logger.debug("gauss_newton: initial error %.6g", error)

    for it in range(cfg.max_iters):
        J, b, index = graph.linearize(values)   # (m, n), (m,)

        H = J.T @ J                            # (n, n)
        g = J.T @ b                            # (n,)

        n = H.shape[0]
        H_damped = H + cfg.damping * jnp.eye(n)

        delta = jnp.linalg.solve(H_damped, g)  # (n,)

        # Optional step-size clamp to avoid huge jumps
        step_norm = float(jnp.linalg.norm(delta))
        scale = min(1.0, cfg.max_step_norm / (step_norm + 1e-9))
        delta = scale * delta

        values = values.retract(
            {key: delta[start:start + d] for key, (start, d) in index.items()}
        )
        new_error = graph.error(values)
        logger.debug(
            "gauss_newton: iter %d error %.6g step %.3g", it, new_error, step_norm
        )

        decrease = error - new_error
        error = new_error
        if abs(decrease) <= cfg.abs_tol or abs(decrease) <= cfg.rel_tol * error:
            logger.info("gauss_newton: converged after %d iterations, error %.6g", it + 1, error)
            return values

    logger.warning(
        "gauss_newton: stopped after max_iters=%d without converging, error %.6g",
        cfg.max_iters,
        error,
    )
    return values
