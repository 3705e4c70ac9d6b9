from __future__ import annotations

import logging

import jax.numpy as jnp
import numpy as np
import pytest

from exprad.core.types import symbol
from exprad.core.values import Values
from exprad.geometry.rot3 import Rot3
from exprad.navigation.magnetometer import mag_factor2
from exprad.nonlinear.expression_factor import between_factor, prior_factor
from exprad.nonlinear.factor_graph import FactorGraph
from exprad.nonlinear.solvers import GNConfig, gauss_newton


def test_magnetometer_calibration_recovers_field_and_bias():
    """
    Measurements of the same field from several known attitudes pin down
    both the (scaled) field vector and the sensor bias.
    """
    kf, kb = symbol("f", 0), symbol("b", 0)
    field = jnp.array([0.2, -0.1, 0.4])
    bias = jnp.array([0.05, -0.03, 0.02])
    attitudes = [
        Rot3.identity(),
        Rot3.yaw(1.0),
        Rot3.expmap(jnp.array([0.8, 0.0, 0.0])),
        Rot3.expmap(jnp.array([0.0, 0.6, 0.3])),
    ]

    fg = FactorGraph()
    for nRb in attitudes:
        measured = nRb.R.T @ field + bias
        fg.add(mag_factor2(kf, kb, measured, nRb, sigmas=0.01))

    initial = Values({kf: jnp.zeros(3), kb: jnp.zeros(3)})
    result = gauss_newton(fg, initial, GNConfig(max_step_norm=10.0, damping=1e-6))

    assert jnp.allclose(result.at(kf), field, atol=1e-6)
    assert jnp.allclose(result.at(kb), bias, atol=1e-6)
    assert fg.error(result) < 1e-8


def test_rotation_chain_converges_on_manifold():
    x0, x1, x2 = symbol("x", 0), symbol("x", 1), symbol("x", 2)
    m01 = Rot3.expmap(jnp.array([0.1, 0.0, 0.2]))
    m12 = Rot3.expmap(jnp.array([0.0, -0.1, 0.3]))

    fg = FactorGraph()
    fg.add(prior_factor(x0, Rot3.identity(), sigmas=0.01))
    fg.add(between_factor(x0, x1, m01, sigmas=0.1))
    fg.add(between_factor(x1, x2, m12, sigmas=0.1))

    initial = Values({
        x0: Rot3.expmap(jnp.array([0.05, -0.02, 0.0])),
        x1: Rot3.expmap(jnp.array([0.1, 0.05, 0.1])),
        x2: Rot3.expmap(jnp.array([0.0, 0.0, 0.6])),
    })
    result = gauss_newton(fg, initial)

    expected1 = m01
    expected2 = m01.compose(m12)
    assert result.at(x0, Rot3).equals(Rot3.identity(), tol=1e-5)
    assert result.at(x1, Rot3).equals(expected1, tol=1e-5)
    assert result.at(x2, Rot3).equals(expected2, tol=1e-5)


def test_gauss_newton_logs_convergence(caplog):
    k = symbol("x", 0)
    fg = FactorGraph([prior_factor(k, 2.0)])

    with caplog.at_level(logging.DEBUG, logger="exprad.nonlinear.solvers"):
        result = gauss_newton(fg, Values({k: 0.0}))

    assert result.at(k) == pytest.approx(2.0, abs=1e-6)
    assert any("converged" in r.getMessage() for r in caplog.records)
    assert any(r.levelno == logging.DEBUG for r in caplog.records)


def test_gauss_newton_warns_when_out_of_iterations(caplog):
    k = symbol("x", 0)
    fg = FactorGraph([prior_factor(k, 100.0)])

    with caplog.at_level(logging.WARNING, logger="exprad.nonlinear.solvers"):
        result = gauss_newton(fg, Values({k: 0.0}), GNConfig(max_iters=3))

    # step clamp of 1.0 per iteration
    assert result.at(k) == pytest.approx(3.0, abs=1e-6)
    assert any(r.levelno == logging.WARNING for r in caplog.records)


def test_noisy_calibration_matches_linear_least_squares():
    """
    mag_factor2 is linear in (field, bias), so one damped Gauss-Newton solve
    must land on the ordinary least-squares solution of the stacked system.
    """
    np.random.seed(0)
    kf, kb = symbol("f", 0), symbol("b", 0)
    field = np.array([0.2, -0.1, 0.4])
    bias = np.array([0.05, -0.03, 0.02])

    fg = FactorGraph()
    rows, rhs = [], []
    for _ in range(8):
        nRb = Rot3.expmap(jnp.array(0.7 * np.random.randn(3)))
        bRn = np.array(nRb.R.T)
        measured = bRn @ field + bias + 1e-3 * np.random.randn(3)
        fg.add(mag_factor2(kf, kb, jnp.array(measured), nRb))
        rows.append(np.hstack([bRn, np.eye(3)]))
        rhs.append(measured)

    expected, *_ = np.linalg.lstsq(np.vstack(rows), np.concatenate(rhs), rcond=None)

    initial = Values({kf: jnp.zeros(3), kb: jnp.zeros(3)})
    result = gauss_newton(fg, initial, GNConfig(max_step_norm=10.0, damping=1e-9))

    np.testing.assert_allclose(np.array(result.at(kf)), expected[:3], atol=1e-6)
    np.testing.assert_allclose(np.array(result.at(kb)), expected[3:], atol=1e-6)
