# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
exprad: expression-graph automatic differentiation for factor-graph
optimization.

Build an expression from variables (leaves), constants and functions, then
evaluate its value and its Jacobian w.r.t. every variable in one pass:

    import jax
    import jax.numpy as jnp
    from exprad import Expression, Values, symbol

    x = Expression.leaf(symbol("x", 0), jax.Array)
    e = 2.0 * x + jnp.ones(3)

    values = Values({symbol("x", 0): jnp.zeros(3)})
    augmented = e.augmented(values)
    augmented.value, augmented.jacobians[symbol("x", 0)]

Importing the package applies the default `config.ADConfig`, which turns on
JAX double precision.
"""

from .config import ADConfig, get_config, set_config
from .core import (
    Augmented,
    Expression,
    ExpressionError,
    JacobianMap,
    JacobianShapeError,
    JacobianSlot,
    Key,
    MalformedExpressionError,
    MissingVariableError,
    Values,
    VariableTypeMismatchError,
    format_key,
    symbol,
)

__version__ = "0.1.0"

set_config(get_config())

__all__ = [
    "ADConfig",
    "Augmented",
    "Expression",
    "ExpressionError",
    "JacobianMap",
    "JacobianShapeError",
    "JacobianSlot",
    "Key",
    "MalformedExpressionError",
    "MissingVariableError",
    "Values",
    "VariableTypeMismatchError",
    "format_key",
    "get_config",
    "set_config",
    "symbol",
]
