# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
Factor graph of expression factors.

The FactorGraph stores a list of `ExpressionFactor`s and turns them into
the dense linear system a Gauss–Newton step needs:

    J δ ≈ b,   J: (M, N),  b: (M,)

where N is the total tangent dimension of the variables the factors touch
and M the total factor dimension.

Primary Methods
---------------
keys()
    Sorted keys of every variable touched by at least one factor.

error(values)
    Total whitened least-squares error Σ ½‖eᵢ‖².

linearize(values)
    Stacks each factor's whitened Jacobian blocks into J (using one
    `augmented` evaluation per factor) and returns (J, b, index), with
    index: key -> (start_column, dim).

Notes
-----
Columns are laid out in sorted key order. The system is dense: the graph
is meant for the small problems used to check and calibrate expressions,
not for exploiting sparsity in large ones.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple

import jax.numpy as jnp

from ..core import manifold
from ..core.types import Key
from ..core.values import Values
from .expression_factor import ExpressionFactor


@dataclass
class FactorGraph:
    factors: List[ExpressionFactor] = field(default_factory=list)

    def add(self, factor: ExpressionFactor) -> None:
        self.factors.append(factor)

    def __len__(self) -> int:
        return len(self.factors)

    def __iter__(self) -> Iterator[ExpressionFactor]:
        return iter(self.factors)

    def keys(self) -> List[Key]:
        keys = set()
        for factor in self.factors:
            keys.update(factor.keys())
        return sorted(keys)

    # --- State indexing ---

    def _build_state_index(self, values: Values) -> Dict[Key, Tuple[int, int]]:
        """
        Returns a mapping: Key -> (start_index, dim)
        over the variables touched by the factors, in key order.
        """
        index: Dict[Key, Tuple[int, int]] = {}
        offset = 0
        for key in self.keys():
            d = manifold.dim(values.at(key))
            index[key] = (offset, d)
            offset += d
        return index

    # --- Objective ---

    def error(self, values: Values) -> float:
        return sum(factor.error(values) for factor in self.factors)

    def linearize(self, values: Values) -> Tuple[jnp.ndarray, jnp.ndarray, Dict[Key, Tuple[int, int]]]:
        if not self.factors:
            raise ValueError("Cannot linearize an empty factor graph")

        index = self._build_state_index(values)
        n = sum(d for _, d in index.values())

        rows = []
        rhs = []
        for factor in self.factors:
            blocks, b = factor.linearize(values)
            A = jnp.zeros((b.shape[0], n))
            for key, block in blocks.items():
                start, d = index[key]
                A = A.at[:, start:start + d].set(block)
            rows.append(A)
            rhs.append(b)

        return jnp.concatenate(rows, axis=0), jnp.concatenate(rhs), index
