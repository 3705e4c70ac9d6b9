# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
from __future__ import annotations

import logging

import jax.numpy as jnp
import matplotlib.pyplot as plt

from exprad.core.types import symbol
from exprad.core.values import Values
from exprad.geometry.rot3 import Rot3
from exprad.geometry.unit3 import Unit3
from exprad.navigation.magnetometer import mag_factor3
from exprad.nonlinear.factor_graph import FactorGraph
from exprad.nonlinear.solvers import GNConfig, gauss_newton


def setup_calibration():
    """
    Calibrate a magnetometer from readings taken at known attitudes:

      - field direction d (Unit3) and scaled magnitude s are unknown
      - the sensor bias b is unknown
      - each reading is  s · nRbᵀ d + b  plus noise

    Factors:
      - one mag_factor3 per attitude, all sharing the keys s, d, b
    """
    # Field at the origin of a local NED frame, in nT, and a sensor scale
    nM = jnp.array([22653.29982, -1956.83010, 44202.47862])
    scale = 255.0 / 50000.0
    bias = jnp.array([10.0, -10.0, 50.0])

    ks, kd, kb = symbol("s", 0), symbol("d", 0), symbol("b", 0)

    attitudes = [
        Rot3.identity(),
        Rot3.yaw(-0.1),
        Rot3.yaw(1.2),
        Rot3.expmap(jnp.array([0.6, 0.0, 0.0])),
        Rot3.expmap(jnp.array([0.0, -0.5, 0.4])),
        Rot3.expmap(jnp.array([0.3, 0.3, 2.0])),
    ]

    fg = FactorGraph()
    for nRb in attitudes:
        measured = scale * nRb.R.T @ nM + bias
        fg.add(mag_factor3(ks, kd, kb, measured, nRb, sigmas=0.25))

    # Initial guesses are intentionally off
    initial = Values({
        ks: 200.0,
        kd: Unit3(jnp.array([0.5, 0.1, 0.8])),
        kb: jnp.zeros(3),
    })
    truth = {
        ks: float(scale * jnp.linalg.norm(nM)),
        kd: Unit3(nM),
        kb: bias,
    }
    return fg, initial, truth, (ks, kd, kb)


def print_state(values: Values, keys, label: str):
    ks, kd, kb = keys
    print(f"\n=== {label} ===")
    print(f"scale:     {values.at(ks):.4f}")
    print(f"direction: {values.at(kd)}")
    b = values.at(kb)
    print(f"bias:      ({float(b[0]):.3f}, {float(b[1]):.3f}, {float(b[2]):.3f})")


def plot_fit(fg: FactorGraph, values: Values, title: str):
    """Measured readings against the calibrated prediction, one point per attitude."""
    fig = plt.figure(figsize=(6, 6))
    ax = fig.add_subplot(111, projection="3d")
    for i, factor in enumerate(fg):
        m = factor.measured
        h = factor.expression.value(values)
        ax.scatter(float(m[0]), float(m[1]), float(m[2]), c="tab:blue", marker="o",
                   label="measured" if i == 0 else None)
        ax.scatter(float(h[0]), float(h[1]), float(h[2]), c="tab:red", marker="x",
                   label="predicted" if i == 0 else None)
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    ax.set_zlabel("z")
    ax.set_title(title)
    ax.legend()


def main():
    logging.basicConfig(level=logging.INFO)

    fg, initial, truth, keys = setup_calibration()

    print_state(initial, keys, label="INITIAL STATE")

    result = gauss_newton(fg, initial, GNConfig(max_iters=50, max_step_norm=50.0))

    print_state(result, keys, label="OPTIMIZED STATE")
    print_state(Values(truth), keys, label="GROUND TRUTH")

    plot_fit(fg, result, "Magnetometer calibration")
    plt.show()


if __name__ == "__main__":
    main()
