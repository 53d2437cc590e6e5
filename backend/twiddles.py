"""Twiddle trees and per-fold inverse coordinate tables.

A twiddle tree for a coset of size n holds, layer by layer, the x-coordinates
of the first half of the coset in bit-reversed order, then of the doubled
coset, and so on down to a single value, padded with a trailing 1:

    n/2 + n/4 + ... + 1 + 1 = n entries

A fold of a line evaluation of size 2^k reads its layer at offset n - 2^k.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

from primitives.bit_reverse import bit_reverse_permutation, ilog2
from primitives.circle import CircleDomain, Coset, LineDomain
from primitives.field import FF

Table = TypeVar("Table")


@dataclass
class TwiddleTree(Generic[Table]):
    """Precomputed twiddles of root_coset and their inverses."""
    root_coset: Coset
    twiddles: Table
    itwiddles: Table

    def release(self) -> None:
        for table in (self.twiddles, self.itwiddles):
            release = getattr(table, "release", None)
            if release is not None:
                release()


def slow_precompute_twiddles(coset: Coset) -> FF:
    """Line twiddles of coset, layer by layer (see module docstring)."""
    twiddles = FF.Zeros(coset.size)
    offset = 0
    for _ in range(coset.log_size):
        half = coset.size // 2
        xs, _ = coset.points()
        twiddles[offset:offset + half] = xs[:half][bit_reverse_permutation(ilog2(half))]
        offset += half
        coset = coset.double()
    # Pad with an arbitrary value to make the length a power of 2
    twiddles[offset] = FF(1)
    return twiddles


def line_fold_inverse_xs(domain: LineDomain) -> FF:
    """1 / x for the first point of every folded pair, in evaluation order."""
    rev = bit_reverse_permutation(domain.log_size)
    return domain.xs()[rev[0::2]] ** -1


def circle_fold_inverse_ys(domain: CircleDomain) -> FF:
    """1 / y for the first point of every folded pair, in evaluation order."""
    rev = bit_reverse_permutation(domain.log_size)
    _, ys = domain.points()
    return ys[rev[0::2]] ** -1
