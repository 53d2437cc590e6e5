"""Kernel call boundary and the host-memory kernel library.

KernelLibrary is the raw contract of the external numeric library: device
pointers are plain ints, buffers are uint32 words, and no argument is
validated. Only DeviceContext (device/context.py) calls into it.

HostKernels emulates a device address space in host RAM with numpy. Its
arithmetic is the kernel arithmetic: uint64 intermediates reduced mod p,
written independently of the galois-based CPU backend so the two can be
cross-checked.
"""

import itertools
import logging
from abc import ABC, abstractmethod
from typing import Dict, Sequence

import numpy as np

from device.errors import DeviceError
from primitives.field import M31_PRIME

logger = logging.getLogger(__name__)

U32_MAX = 0xFFFFFFFF

DevPtr = int


class KernelLibrary(ABC):
    """Entry points of the numeric library. All calls are synchronous."""

    name: str = "abstract"

    @abstractmethod
    def copy_to_device(self, words: np.ndarray) -> DevPtr:
        """Allocate len(words) words on the device and copy words into them."""

    @abstractmethod
    def copy_to_host(self, ptr: DevPtr, out: np.ndarray, count: int) -> None:
        """Copy count words from ptr into the caller-owned uint32 array out."""

    @abstractmethod
    def alloc_zeroes(self, count: int) -> DevPtr:
        """Allocate count zero-initialised words."""

    @abstractmethod
    def copy_device_to_device(self, ptr: DevPtr, count: int) -> DevPtr:
        """Allocate count words and copy them from ptr on the device."""

    @abstractmethod
    def free(self, ptr: DevPtr) -> None:
        """Release an allocation."""

    @abstractmethod
    def sum(self, ptr: DevPtr, count: int) -> int:
        """Sum of count base field words, reduced mod p."""

    @abstractmethod
    def fold_line(
        self,
        itwiddles: DevPtr,
        twiddle_offset: int,
        n: int,
        src: Sequence[DevPtr],
        alpha: Sequence[int],
        dst: Sequence[DevPtr],
    ) -> None:
        """One FRI line fold of n values into n/2, coordinate columns in lockstep."""

    @abstractmethod
    def fold_circle_into_line(
        self,
        y_inverses: DevPtr,
        n: int,
        src: Sequence[DevPtr],
        alpha: Sequence[int],
        dst: Sequence[DevPtr],
        out: Sequence[DevPtr],
    ) -> None:
        """Fold n circle values and accumulate with dst * alpha^2 into out."""

    @abstractmethod
    def compute_g_values(self, ptr: DevPtr, count: int, lambda_coord: int) -> DevPtr:
        """Allocate a new column holding f[i] - lambda_coord."""


# --- M31 / QM31 arithmetic on uint64 words ---

_P = np.uint64(M31_PRIME)


def _add(a, b):
    return (a + b) % _P


def _sub(a, b):
    return (a + _P - b) % _P


def _mul(a, b):
    return (a * b) % _P


def _cm31_mul(x, y):
    return (_sub(_mul(x[0], y[0]), _mul(x[1], y[1])), _add(_mul(x[0], y[1]), _mul(x[1], y[0])))


def _qm31_add(x, y):
    return tuple(_add(a, b) for a, b in zip(x, y))


def _qm31_mul(x, y):
    a, b = (x[0], x[1]), (x[2], x[3])
    c, d = (y[0], y[1]), (y[2], y[3])
    ac = _cm31_mul(a, c)
    bd = _cm31_mul(b, d)
    # R * bd with R = 2 + i
    r_bd = (_sub(_add(bd[0], bd[0]), bd[1]), _add(bd[0], _add(bd[1], bd[1])))
    ad = _cm31_mul(a, d)
    bc = _cm31_mul(b, c)
    return (_add(ac[0], r_bd[0]), _add(ac[1], r_bd[1]), _add(ad[0], bc[0]), _add(ad[1], bc[1]))


def _butterfly_inverse(f_p, f_neg_p, inv):
    """(f_p + f_neg_p, (f_p - f_neg_p) * inv) on each coordinate."""
    f0 = tuple(_add(a, b) for a, b in zip(f_p, f_neg_p))
    f1 = tuple(_mul(_sub(a, b), inv) for a, b in zip(f_p, f_neg_p))
    return f0, f1


# --- Host Emulation ---

class HostKernels(KernelLibrary):
    """Kernel library whose "device memory" is a table of numpy arrays."""

    name = "host"

    _BASE_ADDRESS = 0x7F0000000000
    _ALIGNMENT = 256
    # Each instance gets its own 2^40 byte address range
    _address_spaces = itertools.count()

    def __init__(self) -> None:
        self._memory: Dict[DevPtr, np.ndarray] = {}
        self._next_address = self._BASE_ADDRESS + (next(self._address_spaces) << 40)
        logger.debug("Host kernel address space starts at %#x", self._next_address)

    @property
    def live_pointers(self) -> int:
        return len(self._memory)

    def _allocate(self, words: np.ndarray) -> DevPtr:
        ptr = self._next_address
        n_bytes = max(words.nbytes, 1)
        self._next_address += -(-n_bytes // self._ALIGNMENT) * self._ALIGNMENT
        self._memory[ptr] = words
        return ptr

    def _view(self, ptr: DevPtr, count: int) -> np.ndarray:
        try:
            buf = self._memory[ptr]
        except KeyError:
            raise DeviceError(f"invalid device pointer {ptr:#x}") from None
        if count > buf.size:
            raise DeviceError(f"access of {count} words past allocation of {buf.size} at {ptr:#x}")
        return buf[:count]

    def _load(self, ptr: DevPtr, count: int) -> np.ndarray:
        return self._view(ptr, count).astype(np.uint64)

    def _store(self, ptr: DevPtr, values: np.ndarray) -> None:
        self._view(ptr, values.size)[:] = values.astype(np.uint32)

    def copy_to_device(self, words: np.ndarray) -> DevPtr:
        return self._allocate(np.array(words, dtype=np.uint32, copy=True))

    def copy_to_host(self, ptr: DevPtr, out: np.ndarray, count: int) -> None:
        out[:count] = self._view(ptr, count)

    def alloc_zeroes(self, count: int) -> DevPtr:
        return self._allocate(np.zeros(count, dtype=np.uint32))

    def copy_device_to_device(self, ptr: DevPtr, count: int) -> DevPtr:
        return self._allocate(self._view(ptr, count).copy())

    def free(self, ptr: DevPtr) -> None:
        if self._memory.pop(ptr, None) is None:
            raise DeviceError(f"free of invalid device pointer {ptr:#x}")

    def sum(self, ptr: DevPtr, count: int) -> int:
        return int(self._load(ptr, count).sum() % _P)

    def fold_line(self, itwiddles, twiddle_offset, n, src, alpha, dst) -> None:
        half = n >> 1
        values = [self._load(p, n) for p in src]
        itw = self._load(itwiddles, twiddle_offset + half)[twiddle_offset:]
        f0, f1 = _butterfly_inverse(
            tuple(v[0::2] for v in values), tuple(v[1::2] for v in values), itw
        )
        alpha = tuple(np.uint64(a) for a in alpha)
        folded = _qm31_add(f0, _qm31_mul(alpha, f1))
        for ptr, column in zip(dst, folded):
            self._store(ptr, column)

    def fold_circle_into_line(self, y_inverses, n, src, alpha, dst, out) -> None:
        half = n >> 1
        values = [self._load(p, n) for p in src]
        y_inv = self._load(y_inverses, half)
        f0, f1 = _butterfly_inverse(
            tuple(v[0::2] for v in values), tuple(v[1::2] for v in values), y_inv
        )
        alpha = tuple(np.uint64(a) for a in alpha)
        f_prime = _qm31_add(f0, _qm31_mul(alpha, f1))
        alpha_sq = _qm31_mul(alpha, alpha)
        previous = tuple(self._load(p, half) for p in dst)
        accumulated = _qm31_add(_qm31_mul(previous, alpha_sq), f_prime)
        for ptr, column in zip(out, accumulated):
            self._store(ptr, column)

    def compute_g_values(self, ptr: DevPtr, count: int, lambda_coord: int) -> DevPtr:
        g = _sub(self._load(ptr, count), np.uint64(lambda_coord))
        return self._allocate(g.astype(np.uint32))
