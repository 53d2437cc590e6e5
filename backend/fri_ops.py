"""Backend interface for the FRI round operations."""

from abc import ABC, abstractmethod
from typing import Tuple

from backend.evaluation import LineEvaluation, SecureEvaluation
from backend.twiddles import TwiddleTree
from primitives.circle import Coset
from primitives.field import M31_PRIME, SecureField

FOLD_STEP = 1
"""log2 of the number of line values folded into one."""

CIRCLE_TO_LINE_FOLD_STEP = 1
"""log2 of the number of circle values folded into one line value."""


class DomainSizeError(ValueError):
    """An evaluation is too small (or too large) for the requested operation."""


class FriOps(ABC):
    """Operations every backend implements with identical results."""

    @abstractmethod
    def fold_line(self, eval: LineEvaluation, alpha: SecureField, twiddles: TwiddleTree) -> LineEvaluation:
        """Fold a line evaluation of size n into one of size n/2 over the doubled domain."""

    @abstractmethod
    def fold_circle_into_line(
        self,
        dst: LineEvaluation,
        src: SecureEvaluation,
        alpha: SecureField,
        twiddles: TwiddleTree,
    ) -> None:
        """Fold src to half size and accumulate it into dst: dst = dst * alpha^2 + fold(src)."""

    @abstractmethod
    def decompose(self, eval: SecureEvaluation) -> Tuple[SecureEvaluation, SecureField]:
        """Split eval into (g, lambda) with lambda the mean of eval and g = eval - lambda."""

    @abstractmethod
    def precompute_twiddles(self, coset: Coset) -> TwiddleTree:
        """Twiddle tree for folds over coset and its doublings."""


# --- Shared Precondition Checks ---

def check_fold_line_size(n: int) -> None:
    if n < 2:
        raise DomainSizeError(f"Evaluation too small: fold_line needs at least 2 values, got {n}")


def check_fold_circle_sizes(src_len: int, dst_len: int) -> None:
    if src_len < 2:
        raise DomainSizeError(f"Evaluation too small: fold_circle_into_line needs at least 2 values, got {src_len}")
    if src_len >> CIRCLE_TO_LINE_FOLD_STEP != dst_len:
        raise DomainSizeError(
            f"fold_circle_into_line: source of {src_len} values does not fold into destination of {dst_len}"
        )


def check_decompose_size(n: int) -> None:
    if n == 0:
        raise DomainSizeError("Cannot decompose an empty evaluation")
    if n >= M31_PRIME:
        raise DomainSizeError(f"Evaluation size {n} is not representable in the base field")
