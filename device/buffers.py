"""
Owning handles for device-resident field element arrays.

A handle is the only owner of its device allocation:

- it is created by a host-to-device copy, a zero-filled allocation, or a
  kernel that allocates its output
- its contents are never mutated through the handle
- its allocation is freed exactly once: on release(), on leaving a with
  block, or when the handle is garbage collected, whichever comes first

Shallow copies would alias the allocation, so copy.copy raises; clone() and
copy.deepcopy make a real device-to-device copy, and take() moves ownership
into a new handle. The DeviceContext records which pointers are claimed by
a live handle, so constructing a second handle over the same pointer raises.
"""

import weakref
from typing import List, Optional, Sequence

import numpy as np

from device.context import DeviceContext, get_device
from device.errors import DeviceError
from device.kernels import DevPtr
from primitives.field import FF, SECURE_EXTENSION_DEGREE, SecureField, ff_from_words, ff_to_words
from primitives.secure_column import SecureColumn


class DeviceBuffer:
    """Exclusive owner of one allocation of size * WORDS_PER_ELEMENT words."""

    WORDS_PER_ELEMENT = 1

    def __init__(self, device_ptr: DevPtr, size: int, device: DeviceContext) -> None:
        if not device_ptr:
            raise DeviceError(f"{type(self).__name__} requires a non-null device pointer")
        device.claim(device_ptr, size * self.WORDS_PER_ELEMENT)
        self.size = size
        self.device = device
        self._device_ptr = device_ptr
        self._finalizer = weakref.finalize(self, device.release, device_ptr)

    @property
    def device_ptr(self) -> DevPtr:
        if not self._finalizer.alive:
            raise DeviceError(f"{type(self).__name__} used after release")
        return self._device_ptr

    @property
    def released(self) -> bool:
        return not self._finalizer.alive

    @property
    def n_words(self) -> int:
        return self.size * self.WORDS_PER_ELEMENT

    def release(self) -> None:
        """Free the device allocation. Later calls do nothing."""
        self._finalizer()

    def take(self) -> "DeviceBuffer":
        """Move ownership into a new handle; this handle becomes released."""
        ptr = self.device_ptr
        self._finalizer.detach()
        self.device.disown(ptr)
        return type(self)(ptr, self.size, self.device)

    def clone(self) -> "DeviceBuffer":
        """Deep copy: new allocation filled by a device-to-device copy."""
        ptr = self.device.duplicate(self.device_ptr, self.n_words)
        return type(self)(ptr, self.size, self.device)

    def _download(self) -> np.ndarray:
        return self.device.download(self.device_ptr, self.n_words)

    def __copy__(self):
        raise TypeError(
            f"{type(self).__name__} cannot be shallow-copied: two handles would free "
            "the same allocation. Use clone() or take()."
        )

    def __deepcopy__(self, memo) -> "DeviceBuffer":
        return self.clone()

    def __reduce__(self):
        raise TypeError(f"{type(self).__name__} owns device memory and cannot be pickled")

    def __len__(self) -> int:
        return self.size

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self.released else f"{self._device_ptr:#x}"
        return f"{type(self).__name__}(size={self.size}, ptr={state})"


class BaseFieldVec(DeviceBuffer):
    """size base field elements, one word each."""

    @classmethod
    def from_vec(cls, values, device: Optional[DeviceContext] = None) -> "BaseFieldVec":
        device = device or get_device()
        words = ff_to_words(values)
        return cls(device.upload(words), words.size, device)

    @classmethod
    def zeros(cls, n: int, device: Optional[DeviceContext] = None) -> "BaseFieldVec":
        device = device or get_device()
        return cls(device.alloc_zeroes(n), n, device)

    def to_vec(self) -> FF:
        return ff_from_words(self._download())

    to_cpu = to_vec


class SecureFieldVec(DeviceBuffer):
    """size secure field elements packed as 4 consecutive words each."""

    WORDS_PER_ELEMENT = SECURE_EXTENSION_DEGREE

    @classmethod
    def from_vec(cls, values: Sequence[SecureField], device: Optional[DeviceContext] = None) -> "SecureFieldVec":
        device = device or get_device()
        words = np.array([v.to_list() for v in values], dtype=np.uint32).reshape(-1)
        return cls(device.upload(words), len(values), device)

    @classmethod
    def zeros(cls, n: int, device: Optional[DeviceContext] = None) -> "SecureFieldVec":
        device = device or get_device()
        return cls(device.alloc_zeroes(n * SECURE_EXTENSION_DEGREE), n, device)

    def to_vec(self) -> List[SecureField]:
        packed = self._download().reshape(-1, SECURE_EXTENSION_DEGREE)
        return [SecureField(*(int(v) for v in row)) for row in packed]

    @classmethod
    def from_cpu(cls, column: SecureColumn, device: Optional[DeviceContext] = None) -> "SecureFieldVec":
        """Pack a split host column into interleaved words without building SecureField objects."""
        device = device or get_device()
        words = np.stack([ff_to_words(c) for c in column.columns], axis=1).reshape(-1)
        return cls(device.upload(words), len(column), device)

    def to_cpu(self) -> SecureColumn:
        packed = self._download().reshape(-1, SECURE_EXTENSION_DEGREE)
        return SecureColumn([ff_from_words(packed[:, k]) for k in range(SECURE_EXTENSION_DEGREE)])
