# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.

import time

import jax.numpy as jnp

from exprad.core.types import symbol
from exprad.core.values import Values
from exprad.geometry.rot3 import Rot3
from exprad.nonlinear.expression_factor import between_factor, prior_factor
from exprad.nonlinear.factor_graph import FactorGraph
from exprad.nonlinear.solvers import GNConfig, gauss_newton


def build_rot3_chain(num_poses: int = 10):
    """
    Rotation chain:
        R0 --between--> R1 --between--> ... --between--> R_{N-1}
    Prior on R0 at identity, each step a small rotation about z and x.
    """
    fg = FactorGraph()
    initial = Values()
    keys = [symbol("x", i) for i in range(num_poses)]

    step = Rot3.expmap(jnp.array([0.05, 0.0, 0.1]))
    for i, key in enumerate(keys):
        # Initial guesses: perturbed around ground truth
        w = jnp.array([0.05 * i + 0.02 * jnp.sin(0.3 * i), 0.03 * jnp.cos(0.2 * i), 0.1 * i])
        initial.insert(key, Rot3.expmap(w))

    fg.add(prior_factor(keys[0], Rot3.identity(), sigmas=0.01))
    for k1, k2 in zip(keys[:-1], keys[1:]):
        fg.add(between_factor(k1, k2, step, sigmas=0.1))

    return fg, initial, keys


def time_augmented(fg: FactorGraph, values: Values, repeats: int = 20) -> float:
    """Average wall time of one full `augmented` pass over every factor."""
    t0 = time.time()
    for _ in range(repeats):
        for factor in fg:
            factor.expression.augmented(values)
    return (time.time() - t0) / repeats


def run_benchmark(num_poses: int = 20, max_iters: int = 20):
    print("=== Rot3 Gauss-Newton Benchmark ===")
    print(f"num_poses = {num_poses}, max_iters = {max_iters}")

    fg, initial, keys = build_rot3_chain(num_poses)
    cfg = GNConfig(max_iters=max_iters, damping=1e-3, max_step_norm=1.0)

    # Warmup
    fg.linearize(initial)

    elapsed = time_augmented(fg, initial)
    print(f"augmented pass: {elapsed * 1000:.3f} ms ({len(fg)} factors)")

    t0 = time.time()
    result = gauss_newton(fg, initial, cfg)
    t1 = time.time()
    print(f"gauss_newton:   {(t1 - t0) * 1000:.3f} ms")

    print(f"error (initial): {fg.error(initial):.6g}")
    print(f"error (opt):     {fg.error(result):.6g}")
    print(f"R_N-1 (opt): {result.at(keys[-1], Rot3)}")


if __name__ == "__main__":
    run_benchmark(num_poses=20, max_iters=20)
