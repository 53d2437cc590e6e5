"""Bit-reversal permutations and power-of-two helpers.

Evaluations are stored in bit-reversed order: position i of a column holds the
value at domain index bit_reverse_index(i, log_size).
"""

import numpy as np


def ilog2(size: int) -> int:
    """Compute log2 of size (must be a power of 2)."""
    if size <= 0 or size & (size - 1):
        raise ValueError(f"{size} is not a power of 2")
    return size.bit_length() - 1


def bit_reverse_index(i: int, log_size: int) -> int:
    """Reverse the low log_size bits of i."""
    if log_size == 0:
        return i
    res = 0
    for _ in range(log_size):
        res = (res << 1) | (i & 1)
        i >>= 1
    return res


def bit_reverse_permutation(log_size: int) -> np.ndarray:
    """Index array p with p[i] = bit_reverse_index(i, log_size)."""
    idx = np.arange(1 << log_size, dtype=np.int64)
    rev = np.zeros_like(idx)
    for bit in range(log_size):
        rev |= ((idx >> bit) & 1) << (log_size - 1 - bit)
    return rev


def bit_reverse(values):
    """Return values permuted into bit-reversed order (length must be a power of 2)."""
    return values[bit_reverse_permutation(ilog2(len(values)))]
