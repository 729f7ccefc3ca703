"""Normalization of type identifiers onto primitive descriptors.

Schemas describe integers by bit width (``int9``, ``int65``); generated code
needs machine sized integers, so widths are rounded up to 8, 16, 32 or 64
bits, and anything wider becomes the big integer sentinel.
"""

from __future__ import annotations

import re
from typing import Tuple

from brpc_compiler.parser.brpc_ast import BrpcTypeRef

BIG_INT = "BigInt"
INT_SIZES = (8, 16, 32, 64)

# Scalar types that are primitive under their own name.
PRIMITIVE_NAMES = {"string", "bool", "float32", "float64"}

_INT_PATTERN = re.compile(r"int([0-9]+)")


def normalize_type_name(iden: str) -> Tuple[bool, str]:
    """Return ``(primitive, canonical_name)`` for a source identifier."""
    if iden in PRIMITIVE_NAMES:
        return True, iden

    match = _INT_PATTERN.fullmatch(iden)
    if match is None:
        return False, iden
    bits = int(match.group(1))
    if bits < 1:
        return False, iden

    for size in INT_SIZES:
        if bits <= size:
            return True, f"int{size}"
    return True, BIG_INT


def normalize_type_ref(ref: BrpcTypeRef) -> None:
    """Fill in ``primitive`` and ``canonical_name`` of ref and its type arguments."""
    if ref.definition is None:
        ref.primitive, ref.canonical_name = normalize_type_name(ref.iden)
    for arg in ref.type_args:
        normalize_type_ref(arg)
