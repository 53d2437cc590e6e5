"""Host-side secure column: QM31 values split into four FF coordinate arrays."""

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from primitives.field import FF, QM31, SECURE_EXTENSION_DEGREE, SecureField


@dataclass
class SecureColumn:
    """Four equal-length FF arrays; value i is (columns[0][i], ..., columns[3][i])."""
    columns: List[FF]

    def __post_init__(self) -> None:
        self.columns = [FF(c) if not isinstance(c, FF) else c for c in self.columns]
        if len(self.columns) != SECURE_EXTENSION_DEGREE:
            raise ValueError(f"SecureColumn needs {SECURE_EXTENSION_DEGREE} columns, got {len(self.columns)}")
        lengths = {len(c) for c in self.columns}
        if len(lengths) != 1:
            raise ValueError(f"SecureColumn coordinate lengths differ: {sorted(lengths)}")

    @classmethod
    def zeros(cls, n: int) -> "SecureColumn":
        return cls([FF.Zeros(n) for _ in range(SECURE_EXTENSION_DEGREE)])

    @classmethod
    def from_coords(cls, coords: QM31) -> "SecureColumn":
        return cls(list(coords))

    @classmethod
    def from_vec(cls, values: Sequence[SecureField]) -> "SecureColumn":
        raw = np.array([v.to_list() for v in values], dtype=np.int64).reshape(-1, SECURE_EXTENSION_DEGREE)
        return cls([FF(raw[:, k]) for k in range(SECURE_EXTENSION_DEGREE)])

    def coords(self) -> QM31:
        return tuple(self.columns)

    def at(self, i: int) -> SecureField:
        return SecureField.from_coords([c[i] for c in self.columns])

    def set(self, i: int, value: SecureField) -> None:
        for column, coord in zip(self.columns, value.coords()):
            column[i] = coord

    def to_vec(self) -> List[SecureField]:
        raw = np.stack([c.view(np.ndarray) for c in self.columns], axis=1)
        return [SecureField(*(int(v) for v in row)) for row in raw]

    def __len__(self) -> int:
        return len(self.columns[0])

    def __eq__(self, other) -> bool:
        if not isinstance(other, SecureColumn):
            return NotImplemented
        return len(self) == len(other) and all(
            np.array_equal(a, b) for a, b in zip(self.columns, other.columns)
        )
