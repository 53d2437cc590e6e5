"""Device-layer exceptions. None of these are recovered from inside the library."""


class DeviceError(RuntimeError):
    """Allocation, copy or pointer-ownership failure at the kernel boundary."""


class KernelSizeOverflowError(DeviceError, OverflowError):
    """A size does not fit the boundary's unsigned 32-bit count type."""
