"""Backend - FRI round operations on the host reference and on the device."""

from backend.cpu import CpuBackend
from backend.cuda import CudaBackend
from backend.evaluation import LineEvaluation, SecureEvaluation
from backend.fri_ops import (
    CIRCLE_TO_LINE_FOLD_STEP,
    FOLD_STEP,
    DomainSizeError,
    FriOps,
)
from backend.twiddles import TwiddleTree, slow_precompute_twiddles

__all__ = [
    # Backends
    "FriOps",
    "CpuBackend",
    "CudaBackend",
    # Evaluations
    "LineEvaluation",
    "SecureEvaluation",
    # Twiddles
    "TwiddleTree",
    "slow_precompute_twiddles",
    # Constants and errors
    "FOLD_STEP",
    "CIRCLE_TO_LINE_FOLD_STEP",
    "DomainSizeError",
]
