# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
Variable storage for expression evaluation.

Expressions only ever talk to their variable store through `ValuesLike`:

    at(key, value_type) -> value

which must fail with `MissingVariableError` when the key is absent and with
`VariableTypeMismatchError` when the stored value is not a `value_type`.
Any object with that method can be evaluated against.

`Values` is the concrete container used by the nonlinear layer and the
tests. Besides typed lookup it supports the manifold update the solvers need:

    values.retract({key: delta, ...})  -> new Values
    values.local_coordinates(other)    -> {key: tangent vector}

Values are never mutated during evaluation, so one instance can be shared
by any number of concurrent evaluations.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, Mapping, Optional, Protocol

import jax.numpy as jnp

from . import manifold
from .errors import MissingVariableError, VariableTypeMismatchError
from .types import Key, format_key


class ValuesLike(Protocol):
    def at(self, key: Key, value_type: Optional[type] = None) -> Any:
        ...


def _normalize(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, (list, tuple)):
        return jnp.asarray(value, dtype=float)
    return value


class Values:
    """Key -> current value of an optimization variable."""

    def __init__(self, items: Optional[Mapping[Key, Any]] = None):
        self._values: Dict[Key, Any] = {}
        if items:
            for key, value in items.items():
                self.insert(key, value)

    def insert(self, key: Key, value: Any) -> None:
        if key in self._values:
            raise ValueError(f"Variable {format_key(key)} already exists")
        self._values[key] = _normalize(value)

    def update(self, key: Key, value: Any) -> None:
        if key not in self._values:
            raise MissingVariableError(key)
        self._values[key] = _normalize(value)

    def at(self, key: Key, value_type: Optional[type] = None) -> Any:
        try:
            value = self._values[key]
        except KeyError:
            raise MissingVariableError(key) from None
        if value_type is not None and not isinstance(value, value_type):
            raise VariableTypeMismatchError(key, value_type, type(value))
        return value

    def exists(self, key: Key) -> bool:
        return key in self._values

    def keys(self) -> list:
        return sorted(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Key]:
        return iter(self.keys())

    def dim(self) -> int:
        """Total tangent-space dimension of all variables."""
        return sum(manifold.dim(v) for v in self._values.values())

    def retract(self, deltas: Mapping[Key, jnp.ndarray]) -> "Values":
        """Return new Values with each variable in `deltas` moved along its tangent space."""
        result = Values()
        for key in self.keys():
            value = self._values[key]
            if key in deltas:
                value = manifold.retract(value, deltas[key])
            result._values[key] = value
        return result

    def local_coordinates(self, other: "Values") -> Dict[Key, jnp.ndarray]:
        """Tangent vectors taking each of our variables to the same key in `other`."""
        return {
            key: manifold.local_coordinates(self._values[key], other.at(key))
            for key in self.keys()
        }

    def __repr__(self) -> str:
        body = ", ".join(f"{format_key(k)}: {self._values[k]!r}" for k in self.keys())
        return f"Values({{{body}}})"
