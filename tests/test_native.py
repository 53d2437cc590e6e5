"""Tests for the ctypes kernel binding against a host-memory build of the exports.

The stub library in tests/native/ is compiled once per session; the tests are
skipped when no C compiler is available.
"""

import shutil
import subprocess
from pathlib import Path

import numpy as np
import pytest

from backend.cuda import CudaBackend
from backend.evaluation import LineEvaluation, SecureEvaluation
from device.buffers import BaseFieldVec, SecureFieldVec
from device.context import DeviceContext, DeviceSettings, create_kernel_library
from device.errors import DeviceError
from device.native import NativeKernels
from primitives.circle import CanonicCoset, Coset, LineDomain
from primitives.field import FF, M31_PRIME, SecureField
from primitives.secure_column import SecureColumn

CC = shutil.which("cc") or shutil.which("gcc")
STUB_SOURCE = Path(__file__).parent / "native" / "stub_kernels.c"

pytestmark = pytest.mark.skipif(CC is None, reason="no C compiler to build the stub kernel library")


def _build(out_dir: Path, name: str, *defines: str) -> Path:
    path = out_dir / f"lib{name}.so"
    flags = [f"-D{d}" for d in defines]
    subprocess.run([CC, "-shared", "-fPIC", "-O1", *flags, "-o", str(path), str(STUB_SOURCE)], check=True)
    return path


@pytest.fixture(scope="module")
def stub_libraries(tmp_path_factory):
    out_dir = tmp_path_factory.mktemp("native")
    return {
        "full": _build(out_dir, "full"),
        "minimal": _build(out_dir, "minimal", "WITHOUT_OPTIONAL"),
        "broken": _build(out_dir, "broken", "WITHOUT_OPTIONAL", "WITHOUT_SUM"),
    }


@pytest.fixture
def native(stub_libraries) -> DeviceContext:
    return DeviceContext(NativeKernels(stub_libraries["full"]))


@pytest.fixture
def minimal(stub_libraries) -> DeviceContext:
    return DeviceContext(NativeKernels(stub_libraries["minimal"]))


def _random_column(rng: np.random.Generator, n: int) -> SecureColumn:
    return SecureColumn([FF(rng.integers(0, M31_PRIME, size=n)) for _ in range(4)])


class TestLoading:
    """Required and optional exports."""

    def test_missing_required_export(self, stub_libraries) -> None:
        with pytest.raises(DeviceError, match="sum"):
            NativeKernels(stub_libraries["broken"])

    def test_optional_exports_may_be_absent(self, minimal) -> None:
        assert isinstance(minimal.kernels, NativeKernels)

    def test_selected_by_settings(self, stub_libraries) -> None:
        settings = DeviceSettings(kernels="native", library_path=stub_libraries["full"])
        assert isinstance(create_kernel_library(settings), NativeKernels)


class TestNativeRoundTrip:
    """Host -> native device -> host copies."""

    @pytest.mark.parametrize("size", [0, 1, 1000])
    def test_base_field_vec(self, native, size: int) -> None:
        values = FF(np.arange(size) * 104729 % M31_PRIME)
        with BaseFieldVec.from_vec(values, native) as vec:
            assert np.array_equal(vec.to_vec(), values)

    def test_secure_field_vec_consecutive(self, native) -> None:
        values = [SecureField(4 * i + 1, 4 * i + 2, 4 * i + 3, 4 * i + 4) for i in range(32)]
        assert SecureFieldVec.from_vec(values, native).to_vec() == values

    def test_secure_field_vec_packed_column(self, native) -> None:
        column = _random_column(np.random.default_rng(8), 64)
        assert SecureFieldVec.from_cpu(column, native).to_cpu() == column

    def test_zeros(self, native) -> None:
        assert BaseFieldVec.zeros(7, native).to_vec().tolist() == [0] * 7

    def test_all_allocations_freed(self, native) -> None:
        with BaseFieldVec.from_vec([1, 2, 3], native) as vec:
            vec.clone().release()
        assert native.live_allocations == 0
        assert native.stats.allocations == native.stats.frees == 2


class TestNativeKernels:
    """Individual kernel entry points."""

    def test_sum(self, native) -> None:
        vec = BaseFieldVec.from_vec([1, 2, M31_PRIME - 1], native)
        assert native.sum(vec.device_ptr, 3) == 2

    def test_compute_g_values(self, native) -> None:
        vec = BaseFieldVec.from_vec([5, 0, 9], native)
        g = CudaBackend(native).compute_g_values(vec, 5)
        assert g.to_vec().tolist() == [0, M31_PRIME - 5, 4]

    @pytest.mark.parametrize("library", ["native", "minimal"])
    def test_clone(self, request, library: str) -> None:
        device = request.getfixturevalue(library)
        vec = BaseFieldVec.from_vec([3, 1, 4, 1, 5], device)
        dup = vec.clone()
        vec.release()
        assert dup.to_vec().tolist() == [3, 1, 4, 1, 5]

    def test_clone_empty_without_device_copy(self, minimal) -> None:
        assert BaseFieldVec.from_vec([], minimal).clone().to_vec().size == 0


class TestNativeFriOps:
    """FRI operations on the native binding agree with the reference backend."""

    def test_decompose(self, cpu, native) -> None:
        domain = CanonicCoset(5).circle_domain()
        host_eval = SecureEvaluation(domain, _random_column(np.random.default_rng(9), domain.size))
        expected_g, expected_lambda = cpu.decompose(host_eval)
        g, lambda_ = CudaBackend(native).decompose(host_eval.to_device(native))
        assert lambda_ == expected_lambda
        assert g.values.to_cpu() == expected_g.values

    def test_fold_line(self, cpu, native) -> None:
        domain = LineDomain(Coset.half_odds(6))
        alpha = SecureField(1, 3, 5, 7)
        host_eval = LineEvaluation(domain, _random_column(np.random.default_rng(10), domain.size))
        backend = CudaBackend(native)
        expected = cpu.fold_line(host_eval, alpha, cpu.precompute_twiddles(domain.coset))
        folded = backend.fold_line(host_eval.to_device(native), alpha, backend.precompute_twiddles(domain.coset))
        assert folded.values.to_cpu() == expected.values

    def test_fold_circle_into_line(self, cpu, native) -> None:
        rng = np.random.default_rng(11)
        src = SecureEvaluation(CanonicCoset(5).circle_domain(), _random_column(rng, 32))
        dst = LineEvaluation(LineDomain(CanonicCoset(5).half_coset()), _random_column(rng, 16))
        alpha = SecureField.random(rng)
        backend = CudaBackend(native)
        dev_dst = dst.to_device(native)

        twiddles = backend.precompute_twiddles(dst.domain.coset)
        backend.fold_circle_into_line(dev_dst, src.to_device(native), alpha, twiddles)
        cpu.fold_circle_into_line(dst, src, alpha, cpu.precompute_twiddles(dst.domain.coset))
        assert dev_dst.values.to_cpu() == dst.values

    def test_fold_circle_into_line_needs_export(self, minimal) -> None:
        src = SecureEvaluation(CanonicCoset(3).circle_domain(), SecureColumn.zeros(8)).to_device(minimal)
        dst = LineEvaluation.new_zero(LineDomain(CanonicCoset(3).half_coset())).to_device(minimal)
        backend = CudaBackend(minimal)
        with pytest.raises(DeviceError, match="fold_circle_into_line"):
            backend.fold_circle_into_line(dst, src, SecureField.one(), backend.precompute_twiddles(dst.domain.coset))
