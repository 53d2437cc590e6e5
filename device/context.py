"""
Device context: the audited adapter in front of a KernelLibrary.

Every call across the kernel boundary goes through DeviceContext, which
tracks each live allocation with its word count and validates pointers and
sizes before the raw call is made:

- counts must fit the boundary's uint32 count type
- pointers must be non-null live allocations owned by this context
- reads and writes must stay inside the allocation
- a pointer is freed at most once
- a pointer is claimed by at most one live buffer handle, and a claimed
  pointer is only freed through that handle

Calls are serialised by a lock. Orchestration is single-threaded, but buffer
finalizers can run on whichever thread triggers garbage collection.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Literal, Optional, Sequence, Set

import numpy as np
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from device.errors import DeviceError, KernelSizeOverflowError
from device.kernels import U32_MAX, DevPtr, HostKernels, KernelLibrary

logger = logging.getLogger(__name__)

PACKAGE_LOGGERS = ("primitives", "device", "backend")


# --- Configuration ---

class DeviceSettings(BaseSettings):
    """Device selection, read from STWO_GPU_* environment variables."""

    kernels: Literal["host", "native"] = "host"
    library_path: Optional[Path] = None
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"

    model_config = SettingsConfigDict(env_prefix="STWO_GPU_")

    @model_validator(mode="after")
    def _native_needs_library(self) -> "DeviceSettings":
        if self.kernels == "native" and self.library_path is None:
            raise ValueError("STWO_GPU_LIBRARY_PATH is required when STWO_GPU_KERNELS=native")
        return self


def create_kernel_library(settings: DeviceSettings) -> KernelLibrary:
    if settings.kernels == "native":
        # Imported lazily: ctypes loading is only needed for real devices
        from device.native import NativeKernels
        return NativeKernels(settings.library_path)
    return HostKernels()


# --- Adapter ---

@dataclass
class AllocationStats:
    """Running counters of boundary traffic."""
    allocations: int = 0
    frees: int = 0
    words_to_device: int = 0
    words_to_host: int = 0
    kernel_calls: int = 0


class DeviceContext:
    """Validating, accounting front end of one KernelLibrary."""

    def __init__(self, kernels: KernelLibrary) -> None:
        self.kernels = kernels
        self.stats = AllocationStats()
        self._allocations: Dict[DevPtr, int] = {}
        self._owned: Set[DevPtr] = set()
        self._lock = threading.RLock()
        logger.info("Device context created with %s kernels", kernels.name)

    @property
    def live_allocations(self) -> int:
        return len(self._allocations)

    def allocation_size(self, ptr: DevPtr) -> int:
        """Word count of a live allocation."""
        with self._lock:
            self._check_ptr(ptr, 0)
            return self._allocations[ptr]

    # --- Validation ---

    @staticmethod
    def _check_count(count: int, what: str = "count") -> None:
        if count < 0:
            raise DeviceError(f"negative {what} {count}")
        if count > U32_MAX:
            raise KernelSizeOverflowError(f"{what} {count} does not fit the u32 boundary count type")

    def _check_ptr(self, ptr: DevPtr, count: int) -> None:
        if not ptr:
            raise DeviceError("null device pointer")
        size = self._allocations.get(ptr)
        if size is None:
            raise DeviceError(f"device pointer {ptr:#x} is not a live allocation (freed or foreign)")
        if count > size:
            raise DeviceError(f"access of {count} words exceeds allocation of {size} words at {ptr:#x}")

    def _register(self, ptr: DevPtr, count: int) -> DevPtr:
        if not ptr:
            raise DeviceError(f"kernel library {self.kernels.name} failed to allocate {count} words")
        if ptr in self._allocations:
            raise DeviceError(f"kernel library returned live pointer {ptr:#x} for a new allocation")
        self._allocations[ptr] = count
        self.stats.allocations += 1
        logger.debug("alloc %#x (%d words)", ptr, count)
        return ptr

    # --- Memory ---

    def upload(self, words: np.ndarray) -> DevPtr:
        """Copy host words into a fresh allocation."""
        words = np.ascontiguousarray(words, dtype=np.uint32)
        self._check_count(words.size)
        with self._lock:
            ptr = self._register(self.kernels.copy_to_device(words), words.size)
            self.stats.words_to_device += words.size
            return ptr

    def download(self, ptr: DevPtr, count: int) -> np.ndarray:
        """Copy count words from the device into a new host array."""
        self._check_count(count)
        out = np.zeros(count, dtype=np.uint32)
        with self._lock:
            self._check_ptr(ptr, count)
            self.kernels.copy_to_host(ptr, out, count)
            self.stats.words_to_host += count
        return out

    def alloc_zeroes(self, count: int) -> DevPtr:
        self._check_count(count)
        with self._lock:
            return self._register(self.kernels.alloc_zeroes(count), count)

    def duplicate(self, ptr: DevPtr, count: int) -> DevPtr:
        """Device-to-device copy into a fresh allocation."""
        self._check_count(count)
        with self._lock:
            self._check_ptr(ptr, count)
            return self._register(self.kernels.copy_device_to_device(ptr, count), count)

    def free(self, ptr: DevPtr) -> None:
        with self._lock:
            if ptr in self._owned:
                raise DeviceError(f"device pointer {ptr:#x} is owned by a live handle; release the handle")
            self._free(ptr)

    def _free(self, ptr: DevPtr) -> None:
        if not ptr:
            raise DeviceError("free of null device pointer")
        if ptr not in self._allocations:
            raise DeviceError(f"double free or foreign pointer {ptr:#x}")
        self.kernels.free(ptr)
        del self._allocations[ptr]
        self.stats.frees += 1
        logger.debug("free %#x", ptr)

    # --- Ownership ---

    def claim(self, ptr: DevPtr, count: int) -> None:
        """Record ptr as owned by one handle covering count words."""
        with self._lock:
            self._check_ptr(ptr, count)
            if ptr in self._owned:
                raise DeviceError(f"device pointer {ptr:#x} is already owned by another handle")
            self._owned.add(ptr)

    def disown(self, ptr: DevPtr) -> None:
        """Drop a claim without freeing, so another handle can claim ptr."""
        with self._lock:
            if ptr not in self._owned:
                raise DeviceError(f"device pointer {ptr:#x} is not owned by a handle")
            self._owned.discard(ptr)

    def release(self, ptr: DevPtr) -> None:
        """Drop the claim on ptr and free it."""
        with self._lock:
            self.disown(ptr)
            self._free(ptr)

    def is_owned(self, ptr: DevPtr) -> bool:
        return ptr in self._owned

    # --- Kernels ---

    def sum(self, ptr: DevPtr, count: int) -> int:
        self._check_count(count)
        with self._lock:
            self._check_ptr(ptr, count)
            self.stats.kernel_calls += 1
            return self.kernels.sum(ptr, count)

    def fold_line(
        self,
        itwiddles: DevPtr,
        twiddle_offset: int,
        n: int,
        src: Sequence[DevPtr],
        alpha: Sequence[int],
        dst: Sequence[DevPtr],
    ) -> None:
        self._check_count(n)
        self._check_count(twiddle_offset, "twiddle offset")
        half = n >> 1
        with self._lock:
            self._check_ptr(itwiddles, twiddle_offset + half)
            for ptr in src:
                self._check_ptr(ptr, n)
            for ptr in dst:
                self._check_ptr(ptr, half)
            self.stats.kernel_calls += 1
            logger.debug("fold_line n=%d twiddle_offset=%d", n, twiddle_offset)
            self.kernels.fold_line(itwiddles, twiddle_offset, n, list(src), list(alpha), list(dst))

    def fold_circle_into_line(
        self,
        y_inverses: DevPtr,
        n: int,
        src: Sequence[DevPtr],
        alpha: Sequence[int],
        dst: Sequence[DevPtr],
        out: Sequence[DevPtr],
    ) -> None:
        self._check_count(n)
        half = n >> 1
        with self._lock:
            self._check_ptr(y_inverses, half)
            for ptr in src:
                self._check_ptr(ptr, n)
            for ptr in list(dst) + list(out):
                self._check_ptr(ptr, half)
            self.stats.kernel_calls += 1
            logger.debug("fold_circle_into_line n=%d", n)
            self.kernels.fold_circle_into_line(y_inverses, n, list(src), list(alpha), list(dst), list(out))

    def compute_g_values(self, ptr: DevPtr, count: int, lambda_coord: int) -> DevPtr:
        self._check_count(count)
        with self._lock:
            self._check_ptr(ptr, count)
            self.stats.kernel_calls += 1
            return self._register(self.kernels.compute_g_values(ptr, count, lambda_coord), count)


# --- Process-wide Device ---

_DEVICE: Optional[DeviceContext] = None
_DEVICE_LOCK = threading.Lock()


def configure_logging(level: str) -> None:
    """Apply level to this project's package loggers (no handlers are added)."""
    for name in PACKAGE_LOGGERS:
        logging.getLogger(name).setLevel(level)


def get_device() -> DeviceContext:
    """Return the process-wide device, creating it from DeviceSettings on first use."""
    global _DEVICE
    with _DEVICE_LOCK:
        if _DEVICE is None:
            settings = DeviceSettings()
            configure_logging(settings.log_level)
            _DEVICE = DeviceContext(create_kernel_library(settings))
        return _DEVICE


def set_device(device: Optional[DeviceContext]) -> Optional[DeviceContext]:
    """Replace the process-wide device; returns the previous one."""
    global _DEVICE
    with _DEVICE_LOCK:
        previous, _DEVICE = _DEVICE, device
        return previous
