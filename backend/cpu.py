"""Reference CPU backend.

Computes every FRI operation on the host with galois FF arrays. Folding
recomputes each pair's inverse coordinate directly from the domain instead of
reading the twiddle tree, so it also checks the twiddle layout used by the
device backend.
"""

from typing import Tuple

import numpy as np

from backend.evaluation import LineEvaluation, SecureEvaluation
from backend.fri_ops import (
    FriOps,
    check_decompose_size,
    check_fold_circle_sizes,
    check_fold_line_size,
)
from backend.twiddles import TwiddleTree, circle_fold_inverse_ys, line_fold_inverse_xs, slow_precompute_twiddles
from primitives.circle import Coset
from primitives.field import FF, SecureField, qm31_add, qm31_mul, qm31_mul_base, qm31_sub
from primitives.secure_column import SecureColumn


def _fold_pairs(values: SecureColumn, inverses: FF, alpha: SecureField):
    """f0 + alpha * f1 with (f0, f1) = (f_p + f_neg_p, (f_p - f_neg_p) * inverse)."""
    f_p = tuple(c[0::2] for c in values.columns)
    f_neg_p = tuple(c[1::2] for c in values.columns)
    f0 = qm31_add(f_p, f_neg_p)
    f1 = qm31_mul_base(qm31_sub(f_p, f_neg_p), inverses)
    return qm31_add(f0, qm31_mul(alpha.coords(), f1))


class CpuBackend(FriOps):
    """Host reference implementation of FriOps."""

    def fold_line(self, eval: LineEvaluation, alpha: SecureField, twiddles: TwiddleTree) -> LineEvaluation:
        check_fold_line_size(len(eval))
        domain = eval.domain
        folded = _fold_pairs(eval.values, line_fold_inverse_xs(domain), alpha)
        return LineEvaluation(domain.double(), SecureColumn.from_coords(folded))

    def fold_circle_into_line(
        self,
        dst: LineEvaluation,
        src: SecureEvaluation,
        alpha: SecureField,
        twiddles: TwiddleTree,
    ) -> None:
        check_fold_circle_sizes(len(src), len(dst))
        f_prime = _fold_pairs(src.values, circle_fold_inverse_ys(src.domain), alpha)
        alpha_sq = alpha * alpha
        accumulated = qm31_add(qm31_mul(dst.values.coords(), alpha_sq.coords()), f_prime)
        dst.values = SecureColumn.from_coords(accumulated)

    def decompose(self, eval: SecureEvaluation) -> Tuple[SecureEvaluation, SecureField]:
        n = len(eval)
        check_decompose_size(n)
        lambda_ = self.sum(eval.values) / n
        g_values = SecureColumn([
            column - coord for column, coord in zip(eval.values.columns, lambda_.coords())
        ])
        return SecureEvaluation(eval.domain, g_values), lambda_

    def precompute_twiddles(self, coset: Coset) -> TwiddleTree:
        twiddles = slow_precompute_twiddles(coset)
        return TwiddleTree(root_coset=coset, twiddles=twiddles, itwiddles=twiddles ** -1)

    @staticmethod
    def sum(values: SecureColumn) -> SecureField:
        if len(values) == 0:
            return SecureField.zero()
        return SecureField.from_coords([np.add.reduce(c) for c in values.columns])
