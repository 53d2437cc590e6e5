"""Device backend: FRI round operations orchestrated over device buffer handles.

Each operation allocates its outputs, then issues the kernel calls through the
DeviceContext; inputs are never written. Results match CpuBackend exactly.
"""

import logging
from typing import Optional, Tuple

from backend.evaluation import LineEvaluation, SecureEvaluation
from backend.fri_ops import (
    DomainSizeError,
    FriOps,
    check_decompose_size,
    check_fold_circle_sizes,
    check_fold_line_size,
)
from backend.twiddles import TwiddleTree, circle_fold_inverse_ys, slow_precompute_twiddles
from device.buffers import BaseFieldVec
from device.context import DeviceContext, get_device
from device.secure_column import DeviceSecureColumn
from primitives.bit_reverse import ilog2
from primitives.circle import Coset
from primitives.field import SecureField

logger = logging.getLogger(__name__)


class CudaBackend(FriOps):
    """FriOps on device-resident columns."""

    def __init__(self, device: Optional[DeviceContext] = None) -> None:
        self._device = device

    @property
    def device(self) -> DeviceContext:
        return self._device or get_device()

    def fold_line(self, eval: LineEvaluation, alpha: SecureField, twiddles: TwiddleTree) -> LineEvaluation:
        n = len(eval)
        check_fold_line_size(n)

        remaining_folds = ilog2(n)
        twiddle_offset = twiddles.itwiddles.size - (1 << remaining_folds)
        if twiddle_offset < 0:
            raise DomainSizeError(
                f"Twiddle tree of size {twiddles.itwiddles.size} is too small for an evaluation of size {n}"
            )

        device = eval.values.device
        folded_values = DeviceSecureColumn.zeros(n >> 1, device)
        device.fold_line(
            twiddles.itwiddles.device_ptr,
            twiddle_offset,
            n,
            eval.values.device_ptrs,
            alpha.to_list(),
            folded_values.device_ptrs,
        )
        return LineEvaluation(eval.domain.double(), folded_values)

    def fold_circle_into_line(
        self,
        dst: LineEvaluation,
        src: SecureEvaluation,
        alpha: SecureField,
        twiddles: TwiddleTree,
    ) -> None:
        n = len(src)
        check_fold_circle_sizes(n, len(dst))

        device = src.values.device
        accumulated = DeviceSecureColumn.zeros(n >> 1, device)
        with BaseFieldVec.from_vec(circle_fold_inverse_ys(src.domain), device) as y_inverses:
            device.fold_circle_into_line(
                y_inverses.device_ptr,
                n,
                src.values.device_ptrs,
                alpha.to_list(),
                dst.values.device_ptrs,
                accumulated.device_ptrs,
            )
        previous, dst.values = dst.values, accumulated
        previous.release()

    def decompose(self, eval: SecureEvaluation) -> Tuple[SecureEvaluation, SecureField]:
        n = len(eval)
        check_decompose_size(n)
        columns = eval.values.columns

        a, b, c, d = (self.sum(column) for column in columns)
        lambda_ = SecureField.from_m31(a, b, c, d) / n

        g_values = DeviceSecureColumn([
            self.compute_g_values(column, coord) for column, coord in zip(columns, lambda_.to_list())
        ])
        return SecureEvaluation(eval.domain, g_values), lambda_

    def precompute_twiddles(self, coset: Coset) -> TwiddleTree:
        twiddles = slow_precompute_twiddles(coset)
        logger.debug("Uploading twiddle tree for coset of log size %d", coset.log_size)
        return TwiddleTree(
            root_coset=coset,
            twiddles=BaseFieldVec.from_vec(twiddles, self.device),
            itwiddles=BaseFieldVec.from_vec(twiddles ** -1, self.device),
        )

    def sum(self, column: BaseFieldVec) -> int:
        return column.device.sum(column.device_ptr, column.size)

    def compute_g_values(self, f_values: BaseFieldVec, lambda_coord: int) -> BaseFieldVec:
        size = f_values.size
        ptr = f_values.device.compute_g_values(f_values.device_ptr, size, lambda_coord)
        return BaseFieldVec(ptr, size, f_values.device)
