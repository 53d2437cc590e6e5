"""Device-side secure column: four BaseFieldVec coordinate columns."""

from typing import List, Optional, Sequence

from device.buffers import BaseFieldVec
from device.context import DeviceContext, get_device
from device.kernels import DevPtr
from primitives.field import SECURE_EXTENSION_DEGREE, SecureField
from primitives.secure_column import SecureColumn


class DeviceSecureColumn:
    """Owns four equal-length coordinate columns resident on one device."""

    def __init__(self, columns: Sequence[BaseFieldVec]) -> None:
        if len(columns) != SECURE_EXTENSION_DEGREE:
            raise ValueError(f"DeviceSecureColumn needs {SECURE_EXTENSION_DEGREE} columns, got {len(columns)}")
        sizes = {c.size for c in columns}
        if len(sizes) != 1:
            raise ValueError(f"DeviceSecureColumn coordinate lengths differ: {sorted(sizes)}")
        if len({id(c.device) for c in columns}) != 1:
            raise ValueError("DeviceSecureColumn coordinates live on different devices")
        self.columns: List[BaseFieldVec] = list(columns)

    @classmethod
    def zeros(cls, n: int, device: Optional[DeviceContext] = None) -> "DeviceSecureColumn":
        device = device or get_device()
        return cls([BaseFieldVec.zeros(n, device) for _ in range(SECURE_EXTENSION_DEGREE)])

    @classmethod
    def from_cpu(cls, column: SecureColumn, device: Optional[DeviceContext] = None) -> "DeviceSecureColumn":
        device = device or get_device()
        return cls([BaseFieldVec.from_vec(c, device) for c in column.columns])

    @property
    def device(self) -> DeviceContext:
        return self.columns[0].device

    @property
    def device_ptrs(self) -> List[DevPtr]:
        return [c.device_ptr for c in self.columns]

    def to_cpu(self) -> SecureColumn:
        return SecureColumn([c.to_vec() for c in self.columns])

    def to_vec(self) -> List[SecureField]:
        return self.to_cpu().to_vec()

    def clone(self) -> "DeviceSecureColumn":
        return DeviceSecureColumn([c.clone() for c in self.columns])

    def release(self) -> None:
        for column in self.columns:
            column.release()

    def __len__(self) -> int:
        return self.columns[0].size

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.release()
