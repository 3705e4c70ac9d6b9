# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
Values paired with their Jacobians.

An `Augmented` value is what every expression node hands to its parent
during a derivative evaluation:

    Augmented(value, {key: ∂value/∂key, ...})

The Jacobian map only carries keys the value actually depends on. A key
that is absent has an implicit zero Jacobian, and a value with an empty map
is *constant*: parents skip derivative work for it entirely.

Chain rule accumulation
-----------------------
A parent with local Jacobian H (∂parent/∂child) folds a child's map into
its own by

    J_parent[k] += H @ J_child[k]      for every k in the child's map

Contributions that land on the same key are **summed**, never overwritten,
since a variable may reach the parent through several argument paths, and
the total derivative is the sum over all of them. Because of that,
`Augmented.from_terms` gives the same result whatever the order of its terms.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Dict, Generic, Iterator, Optional, Tuple, TypeVar

import jax.numpy as jnp

from . import manifold
from .types import Key, format_key

T = TypeVar("T")

# (local Jacobian or None, child Jacobian map)
Term = Tuple[Optional[jnp.ndarray], "JacobianMap"]


class JacobianMap(Mapping):
    """Key -> Jacobian block, with insert-or-add semantics. Iterates in key order."""

    __slots__ = ("_blocks", "_frozen")

    def __init__(self, blocks: Optional[Dict[Key, jnp.ndarray]] = None):
        self._blocks: Dict[Key, jnp.ndarray] = dict(blocks) if blocks else {}
        self._frozen = False

    def __getitem__(self, key: Key) -> jnp.ndarray:
        return self._blocks[key]

    def __iter__(self) -> Iterator[Key]:
        return iter(sorted(self._blocks))

    def __len__(self) -> int:
        return len(self._blocks)

    def add(self, key: Key, block: jnp.ndarray) -> None:
        """Insert `block` under `key`, or add it to the block already there."""
        if self._frozen:
            raise TypeError("JacobianMap of a built Augmented value is read-only")
        existing = self._blocks.get(key)
        if existing is None:
            self._blocks[key] = block
        else:
            self._blocks[key] = existing + block

    def accumulate(self, H: jnp.ndarray, other: "JacobianMap") -> None:
        """Fold `other` in, premultiplying each of its blocks by `H`."""
        for key in other:
            self.add(key, H @ other[key])

    def frozen(self) -> "JacobianMap":
        """Read-only copy; `add` and `accumulate` on it raise TypeError."""
        copy = JacobianMap(self._blocks)
        copy._frozen = True
        return copy

    def __repr__(self) -> str:
        shapes = ", ".join(
            f"{format_key(k)}: {b.shape[0]}x{b.shape[1]}" for k, b in self.items()
        )
        return f"JacobianMap({{{shapes}}})"


class Augmented(Generic[T]):
    """
    A value together with its Jacobians w.r.t. every variable it depends on.

    Build with one of the factories:

        Augmented.from_constant(value)
        Augmented.from_leaf(value, key)
        Augmented.from_terms(value, (H1, map1), (H2, map2), ...)
    """

    __slots__ = ("_value", "_jacobians")

    def __init__(self, value: T, jacobians: Optional[JacobianMap] = None):
        self._value = value
        self._jacobians = (jacobians if jacobians is not None else JacobianMap()).frozen()

    @classmethod
    def from_constant(cls, value: T) -> "Augmented[T]":
        return cls(value)

    @classmethod
    def from_leaf(cls, value: T, key: Key) -> "Augmented[T]":
        n = manifold.dim(value)
        return cls(value, JacobianMap({key: jnp.eye(n)}))

    @classmethod
    def from_terms(cls, value: T, *terms: Term) -> "Augmented[T]":
        """
        Chain rule over any number of arguments.

        Each term is `(H, child_map)`; a term with `H is None` comes from a
        constant argument whose Jacobian was never requested and adds nothing.
        """
        jacobians = JacobianMap()
        for H, child_map in terms:
            if H is None:
                continue
            jacobians.accumulate(H, child_map)
        return cls(value, jacobians)

    @property
    def value(self) -> T:
        return self._value

    @property
    def jacobians(self) -> JacobianMap:
        return self._jacobians

    def constant(self) -> bool:
        """True if the value does not depend on any variable."""
        return len(self._jacobians) == 0

    def __repr__(self) -> str:
        terms = " ".join(
            f"({format_key(k)}, {b.shape[0]}x{b.shape[1]})"
            for k, b in self._jacobians.items()
        )
        return f"Augmented(value={self._value!r}, jacobians=[{terms}])"
