"""
ctypes bindings for the native CUDA kernel library.

Device pointers are represented as Python ints (uintptr_t); host buffers are
contiguous numpy uint32 arrays passed by pointer. The library is loaded once
per NativeKernels instance and argtypes/restype are bound at load time.

Expected native exports
-----------------------
- copy_uint32_t_vec_from_host_to_device
- copy_uint32_t_vec_from_device_to_host
- cuda_alloc_zeroes_uint32_t
- free_uint32_t_vec
- sum
- fold_circle                (line fold, named after the CUDA source file)
- compute_g_values
- copy_uint32_t_vec_from_device_to_device (optional; copies through the host
  when absent)
- fold_circle_into_line      (optional)
"""

import ctypes
import logging
from ctypes import POINTER, c_size_t, c_uint32, c_void_p
from pathlib import Path
from typing import Sequence

import numpy as np

from device.errors import DeviceError
from device.kernels import DevPtr, KernelLibrary

logger = logging.getLogger(__name__)


class QM31Struct(ctypes.Structure):
    """By-value secure field argument: four uint32 coordinates."""
    _fields_ = [("a", c_uint32), ("b", c_uint32), ("c", c_uint32), ("d", c_uint32)]


_U32_PTR = POINTER(c_uint32)

_SIGNATURES = {
    "copy_uint32_t_vec_from_host_to_device": ([_U32_PTR, c_uint32], c_void_p),
    "copy_uint32_t_vec_from_device_to_host": ([c_void_p, _U32_PTR, c_uint32], None),
    "cuda_alloc_zeroes_uint32_t": ([c_uint32], c_void_p),
    "free_uint32_t_vec": ([c_void_p], None),
    "sum": ([c_void_p, c_uint32], c_uint32),
    "fold_circle": (
        [c_void_p, c_size_t, c_size_t] + [c_void_p] * 4 + [QM31Struct] + [c_void_p] * 4,
        None,
    ),
    "compute_g_values": ([c_void_p, c_size_t, c_uint32], c_void_p),
}

_OPTIONAL_SIGNATURES = {
    "copy_uint32_t_vec_from_device_to_device": ([c_void_p, c_void_p, c_uint32], None),
    "fold_circle_into_line": (
        [c_void_p, c_size_t] + [c_void_p] * 4 + [QM31Struct] + [c_void_p] * 8,
        None,
    ),
}


def load_native_library(path: Path) -> ctypes.CDLL:
    """Load the shared library and bind every known export."""
    path = Path(path).resolve()
    if not path.exists():
        raise FileNotFoundError(f"Native kernel library not found at: {path}")
    lib = ctypes.CDLL(str(path))

    for name, (argtypes, restype) in _SIGNATURES.items():
        try:
            fn = getattr(lib, name)
        except AttributeError:
            raise DeviceError(f"Native kernel library {path} does not export {name}") from None
        fn.argtypes = argtypes
        fn.restype = restype

    for name, (argtypes, restype) in _OPTIONAL_SIGNATURES.items():
        fn = getattr(lib, name, None)
        if fn is None:
            logger.debug("Native kernel library %s does not export optional %s", path, name)
            continue
        fn.argtypes = argtypes
        fn.restype = restype

    logger.info("Loaded native kernel library %s", path)
    return lib


def _host_ptr(arr: np.ndarray):
    if arr.dtype != np.uint32 or not arr.flags["C_CONTIGUOUS"]:
        raise DeviceError("host buffers must be C-contiguous uint32 arrays")
    return arr.ctypes.data_as(_U32_PTR)


def _qm31(alpha: Sequence[int]) -> QM31Struct:
    return QM31Struct(*(int(a) for a in alpha))


class NativeKernels(KernelLibrary):
    """KernelLibrary backed by the CUDA shared library."""

    name = "native"

    def __init__(self, library_path: Path) -> None:
        self.library_path = Path(library_path)
        self._lib = load_native_library(self.library_path)

    def _ptr(self, raw) -> DevPtr:
        return int(raw or 0)

    def copy_to_device(self, words: np.ndarray) -> DevPtr:
        words = np.ascontiguousarray(words, dtype=np.uint32)
        if words.size == 0:
            # cudaMalloc(0) may return NULL; keep one word so empty buffers own a pointer
            return self.alloc_zeroes(1)
        return self._ptr(self._lib.copy_uint32_t_vec_from_host_to_device(_host_ptr(words), words.size))

    def copy_to_host(self, ptr: DevPtr, out: np.ndarray, count: int) -> None:
        if count == 0:
            return
        self._lib.copy_uint32_t_vec_from_device_to_host(ptr, _host_ptr(out), count)

    def alloc_zeroes(self, count: int) -> DevPtr:
        return self._ptr(self._lib.cuda_alloc_zeroes_uint32_t(max(count, 1)))

    def copy_device_to_device(self, ptr: DevPtr, count: int) -> DevPtr:
        fn = getattr(self._lib, "copy_uint32_t_vec_from_device_to_device", None)
        if fn is None:
            staged = np.zeros(count, dtype=np.uint32)
            self.copy_to_host(ptr, staged, count)
            return self.copy_to_device(staged)
        new_ptr = self.alloc_zeroes(count)
        if count and new_ptr:
            fn(ptr, new_ptr, count)
        return new_ptr

    def free(self, ptr: DevPtr) -> None:
        self._lib.free_uint32_t_vec(ptr)

    def sum(self, ptr: DevPtr, count: int) -> int:
        if count == 0:
            return 0
        return int(self._lib.sum(ptr, count))

    def fold_line(self, itwiddles, twiddle_offset, n, src, alpha, dst) -> None:
        self._lib.fold_circle(itwiddles, twiddle_offset, n, *src, _qm31(alpha), *dst)

    def fold_circle_into_line(self, y_inverses, n, src, alpha, dst, out) -> None:
        fn = getattr(self._lib, "fold_circle_into_line", None)
        if fn is None:
            raise DeviceError(f"Native kernel library {self.library_path} does not export fold_circle_into_line")
        fn(y_inverses, n, *src, _qm31(alpha), *dst, *out)

    def compute_g_values(self, ptr: DevPtr, count: int, lambda_coord: int) -> DevPtr:
        return self._ptr(self._lib.compute_g_values(ptr, count, lambda_coord))
