"""Device - buffer handles, the kernel call boundary and its validating adapter."""

from device.buffers import BaseFieldVec, DeviceBuffer, SecureFieldVec
from device.context import (
    AllocationStats,
    DeviceContext,
    DeviceSettings,
    create_kernel_library,
    get_device,
    set_device,
)
from device.errors import DeviceError, KernelSizeOverflowError
from device.kernels import HostKernels, KernelLibrary
from device.secure_column import DeviceSecureColumn

__all__ = [
    # Handles
    "DeviceBuffer",
    "BaseFieldVec",
    "SecureFieldVec",
    "DeviceSecureColumn",
    # Boundary
    "KernelLibrary",
    "HostKernels",
    "DeviceContext",
    "AllocationStats",
    # Configuration
    "DeviceSettings",
    "create_kernel_library",
    "get_device",
    "set_device",
    # Errors
    "DeviceError",
    "KernelSizeOverflowError",
]
