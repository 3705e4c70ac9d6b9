# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
from .augmented import Augmented, JacobianMap
from .errors import (
    ExpressionError,
    JacobianShapeError,
    MalformedExpressionError,
    MissingVariableError,
    VariableTypeMismatchError,
)
from .expression import Expression
from .nodes import (
    BinaryNode,
    ConstantNode,
    ExpressionNode,
    JacobianSlot,
    LeafNode,
    TernaryNode,
    UnaryNode,
)
from .types import Key, format_key, symbol, symbol_char, symbol_index
from .values import Values, ValuesLike

__all__ = [
    "Augmented",
    "BinaryNode",
    "ConstantNode",
    "Expression",
    "ExpressionError",
    "ExpressionNode",
    "JacobianMap",
    "JacobianShapeError",
    "JacobianSlot",
    "Key",
    "LeafNode",
    "MalformedExpressionError",
    "MissingVariableError",
    "TernaryNode",
    "UnaryNode",
    "Values",
    "ValuesLike",
    "VariableTypeMismatchError",
    "format_key",
    "symbol",
    "symbol_char",
    "symbol_index",
]
