"""Mersenne-31 field GF(p), its complex extension CM31 and the secure field QM31.

Uses galois for base field arithmetic. FF is the base field type; host columns
are FF arrays.

CM31 = M31[i] / (i^2 + 1) and QM31 = CM31[u] / (u^2 - (2 + i)). Extension
elements are plain tuples of FF values, so the helpers below work unchanged on
scalars and on whole columns (galois broadcasts):

    CM31: (re, im)
    QM31: (a, b, c, d)  ==  (a + b*i) + (c + d*i)*u
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import galois
import numpy as np

# --- Field Construction ---

M31_PRIME = (1 << 31) - 1

FF = galois.GF(M31_PRIME)
"""Base field GF(2^31 - 1)."""

SECURE_EXTENSION_DEGREE = 4

CM31 = Tuple[FF, FF]
QM31 = Tuple[FF, FF, FF, FF]


# --- CM31 ---

def cm31_add(x: CM31, y: CM31) -> CM31:
    return (x[0] + y[0], x[1] + y[1])


def cm31_sub(x: CM31, y: CM31) -> CM31:
    return (x[0] - y[0], x[1] - y[1])


def cm31_mul(x: CM31, y: CM31) -> CM31:
    """(a + bi)(c + di) = (ac - bd) + (ad + bc)i."""
    return (x[0] * y[0] - x[1] * y[1], x[0] * y[1] + x[1] * y[0])


def cm31_mul_by_r(x: CM31) -> CM31:
    """Multiply by R = 2 + i, the square of u."""
    two = FF(2)
    return (two * x[0] - x[1], x[0] + two * x[1])


def cm31_inverse(x: CM31) -> CM31:
    """(a + bi)^-1 = (a - bi) / (a^2 + b^2)."""
    norm = x[0] * x[0] + x[1] * x[1]
    norm_inv = norm ** -1
    return (x[0] * norm_inv, -x[1] * norm_inv)


# --- QM31 ---

def qm31_add(x: QM31, y: QM31) -> QM31:
    return (x[0] + y[0], x[1] + y[1], x[2] + y[2], x[3] + y[3])


def qm31_sub(x: QM31, y: QM31) -> QM31:
    return (x[0] - y[0], x[1] - y[1], x[2] - y[2], x[3] - y[3])


def qm31_neg(x: QM31) -> QM31:
    return (-x[0], -x[1], -x[2], -x[3])


def qm31_mul(x: QM31, y: QM31) -> QM31:
    """(a + bu)(c + du) = (ac + R*bd) + (ad + bc)u."""
    a, b = (x[0], x[1]), (x[2], x[3])
    c, d = (y[0], y[1]), (y[2], y[3])
    re = cm31_add(cm31_mul(a, c), cm31_mul_by_r(cm31_mul(b, d)))
    im = cm31_add(cm31_mul(a, d), cm31_mul(b, c))
    return (re[0], re[1], im[0], im[1])


def qm31_mul_base(x: QM31, s: FF) -> QM31:
    return (x[0] * s, x[1] * s, x[2] * s, x[3] * s)


def qm31_inverse(x: QM31) -> QM31:
    """(a + bu)^-1 = (a - bu) / (a^2 - R*b^2)."""
    a, b = (x[0], x[1]), (x[2], x[3])
    denom = cm31_sub(cm31_mul(a, a), cm31_mul_by_r(cm31_mul(b, b)))
    denom_inv = cm31_inverse(denom)
    re = cm31_mul(a, denom_inv)
    im = cm31_mul(b, denom_inv)
    return (re[0], re[1], -im[0], -im[1])


# --- Secure Field Scalars ---

@dataclass(frozen=True)
class SecureField:
    """A single QM31 element held as four reduced coordinates."""
    a: int = 0
    b: int = 0
    c: int = 0
    d: int = 0

    def __post_init__(self) -> None:
        for coord in (self.a, self.b, self.c, self.d):
            if not 0 <= coord < M31_PRIME:
                raise ValueError(f"SecureField coordinate {coord} is not a reduced M31 value")

    @classmethod
    def from_m31(cls, a, b, c, d) -> "SecureField":
        return cls(int(a), int(b), int(c), int(d))

    @classmethod
    def from_coords(cls, coords: Sequence) -> "SecureField":
        """Build from (a, b, c, d) FF scalars (e.g. the output of qm31_mul)."""
        if len(coords) != SECURE_EXTENSION_DEGREE:
            raise ValueError(f"Expected {SECURE_EXTENSION_DEGREE} coordinates, got {len(coords)}")
        return cls(*(int(c) for c in coords))

    @classmethod
    def zero(cls) -> "SecureField":
        return cls()

    @classmethod
    def one(cls) -> "SecureField":
        return cls(1)

    @classmethod
    def random(cls, rng: np.random.Generator) -> "SecureField":
        return cls(*(int(v) for v in rng.integers(0, M31_PRIME, size=SECURE_EXTENSION_DEGREE)))

    def coords(self) -> QM31:
        return (FF(self.a), FF(self.b), FF(self.c), FF(self.d))

    def to_list(self) -> List[int]:
        return [self.a, self.b, self.c, self.d]

    def is_zero(self) -> bool:
        return self == SecureField.zero()

    def inverse(self) -> "SecureField":
        if self.is_zero():
            raise ZeroDivisionError("SecureField zero has no inverse")
        return SecureField.from_coords(qm31_inverse(self.coords()))

    def square(self) -> "SecureField":
        return self * self

    # --- Operators ---

    def __add__(self, other) -> "SecureField":
        return SecureField.from_coords(qm31_add(self.coords(), _lift(other)))

    __radd__ = __add__

    def __sub__(self, other) -> "SecureField":
        return SecureField.from_coords(qm31_sub(self.coords(), _lift(other)))

    def __rsub__(self, other) -> "SecureField":
        return SecureField.from_coords(qm31_sub(_lift(other), self.coords()))

    def __neg__(self) -> "SecureField":
        return SecureField.from_coords(qm31_neg(self.coords()))

    def __mul__(self, other) -> "SecureField":
        if isinstance(other, SecureField):
            return SecureField.from_coords(qm31_mul(self.coords(), other.coords()))
        return SecureField.from_coords(qm31_mul_base(self.coords(), _base(other)))

    __rmul__ = __mul__

    def __truediv__(self, other) -> "SecureField":
        if isinstance(other, SecureField):
            return self * other.inverse()
        divisor = _base(other)
        if int(divisor) == 0:
            raise ZeroDivisionError("Division by zero base field element")
        return SecureField.from_coords(qm31_mul_base(self.coords(), divisor ** -1))

    def __repr__(self) -> str:
        return f"({self.a} + {self.b}i) + ({self.c} + {self.d}i)u"


def _base(value) -> FF:
    """Coerce an int or FF scalar to FF; reject values outside the field."""
    if isinstance(value, galois.FieldArray):
        return FF(int(value))
    value = int(value)
    if not 0 <= value < M31_PRIME:
        raise ValueError(f"{value} is not a reduced M31 value")
    return FF(value)


def _lift(value) -> QM31:
    if isinstance(value, SecureField):
        return value.coords()
    zero = FF(0)
    return (_base(value), zero, zero, zero)


# --- Word Conversion ---

def ff_from_words(words: np.ndarray) -> FF:
    """Interpret raw uint32 words (already reduced) as an FF array."""
    return FF(np.asarray(words, dtype=np.int64))


def ff_to_words(values) -> np.ndarray:
    """Convert FF arrays, int sequences or numpy arrays to reduced uint32 words."""
    if isinstance(values, galois.FieldArray):
        arr = values.view(np.ndarray).astype(np.int64)
    else:
        arr = np.asarray([int(v) for v in values] if isinstance(values, (list, tuple)) else values,
                         dtype=np.int64)
    arr = arr.reshape(-1)
    if arr.size and (arr.min() < 0 or arr.max() >= M31_PRIME):
        raise ValueError("Base field values must be reduced into [0, 2^31 - 1)")
    return arr.astype(np.uint32)
