# Copyright (c) 2025.
# This file is part of exprad, released under the MIT License.
"""
Core identifier types for exprad.

Variables in an optimization problem are addressed by opaque integer keys.
The AD engine never interprets a key: it only hashes, compares and sorts
them, so any int works. For readable problems, `symbol` packs a character
and an index into a single key, the way SLAM code usually names poses
(`x0, x1, ...`) and landmarks (`l0, l1, ...`).

Layout of a symbol key
----------------------
    bits 56..63 : character code
    bits  0..55 : index

Functions
---------
symbol(char, index)
    Build a key from a character and an index.

symbol_char(key), symbol_index(key)
    Inverse of `symbol`.

format_key(key)
    Human-readable form used in reprs and error messages: "x3" for symbol
    keys, the plain integer otherwise.
"""

from __future__ import annotations

from typing import NewType

Key = NewType("Key", int)

_CHAR_BITS = 8
_INDEX_BITS = 64 - _CHAR_BITS
_INDEX_MASK = (1 << _INDEX_BITS) - 1


def symbol(char: str, index: int) -> Key:
    """Pack a one-character tag and a non-negative index into a Key."""
    if len(char) != 1:
        raise ValueError(f"symbol character must be a single character, got {char!r}")
    if index < 0 or index > _INDEX_MASK:
        raise ValueError(f"symbol index out of range: {index}")
    return Key((ord(char) << _INDEX_BITS) | index)


def symbol_char(key: int) -> str:
    return chr(key >> _INDEX_BITS)


def symbol_index(key: int) -> int:
    return key & _INDEX_MASK


def format_key(key: int) -> str:
    c = key >> _INDEX_BITS
    if 0 < c < 256 and chr(c).isprintable():
        return f"{chr(c)}{key & _INDEX_MASK}"
    return str(key)
