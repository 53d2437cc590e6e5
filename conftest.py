"""Pytest configuration: import path and device fixtures."""

import sys
from pathlib import Path

import pytest

# Add the repository root to the path so absolute imports work
root_dir = Path(__file__).parent
if str(root_dir) not in sys.path:
    sys.path.insert(0, str(root_dir))

from backend.cpu import CpuBackend  # noqa: E402
from backend.cuda import CudaBackend  # noqa: E402
from device.context import DeviceContext, set_device  # noqa: E402
from device.kernels import HostKernels  # noqa: E402


@pytest.fixture
def device():
    """Fresh emulated device, installed as the process-wide device for the test."""
    ctx = DeviceContext(HostKernels())
    previous = set_device(ctx)
    yield ctx
    set_device(previous)


@pytest.fixture
def cuda(device) -> CudaBackend:
    return CudaBackend(device)


@pytest.fixture
def cpu() -> CpuBackend:
    return CpuBackend()
