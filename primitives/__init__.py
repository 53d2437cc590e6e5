"""Primitives - M31 field tower, circle group, domains and bit reversal."""

from primitives.bit_reverse import (
    bit_reverse,
    bit_reverse_index,
    bit_reverse_permutation,
    ilog2,
)
from primitives.circle import (
    M31_CIRCLE_GEN,
    M31_CIRCLE_LOG_ORDER,
    CanonicCoset,
    CircleDomain,
    CirclePoint,
    CirclePointIndex,
    Coset,
    LineDomain,
)
from primitives.field import (
    FF,
    M31_PRIME,
    SECURE_EXTENSION_DEGREE,
    SecureField,
    qm31_add,
    qm31_mul,
    qm31_mul_base,
    qm31_sub,
)
from primitives.secure_column import SecureColumn

__all__ = [
    # Field
    "FF",
    "M31_PRIME",
    "SECURE_EXTENSION_DEGREE",
    "SecureField",
    "qm31_add",
    "qm31_sub",
    "qm31_mul",
    "qm31_mul_base",
    "SecureColumn",
    # Circle
    "M31_CIRCLE_GEN",
    "M31_CIRCLE_LOG_ORDER",
    "CirclePoint",
    "CirclePointIndex",
    "Coset",
    "CanonicCoset",
    "CircleDomain",
    "LineDomain",
    # Bit reversal
    "bit_reverse",
    "bit_reverse_index",
    "bit_reverse_permutation",
    "ilog2",
]
