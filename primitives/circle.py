"""Circle group over M31, cosets and the evaluation domains built from them.

Points satisfy x^2 + y^2 = 1. The group has order 2^31 and is generated by
M31_CIRCLE_GEN; a point is addressed by its CirclePointIndex k (the point
k * M31_CIRCLE_GEN), and index arithmetic is arithmetic mod 2^31.
"""

from dataclasses import dataclass
from typing import Tuple

from primitives.field import FF

M31_CIRCLE_LOG_ORDER = 31
M31_CIRCLE_ORDER = 1 << M31_CIRCLE_LOG_ORDER

# (x, y) pairs of FF values, scalar or array
Point = Tuple[FF, FF]


def point_add(p: Point, q: Point) -> Point:
    """Group law: (x0, y0) + (x1, y1) = (x0x1 - y0y1, x0y1 + y0x1)."""
    return (p[0] * q[0] - p[1] * q[1], p[0] * q[1] + p[1] * q[0])


def point_double(p: Point) -> Point:
    two = FF(2)
    return (two * p[0] * p[0] - FF(1), two * p[0] * p[1])


# --- Points ---

@dataclass(frozen=True, eq=False)
class CirclePoint:
    """A single point of the circle group."""
    x: FF
    y: FF

    @classmethod
    def zero(cls) -> "CirclePoint":
        return cls(FF(1), FF(0))

    def as_tuple(self) -> Point:
        return (self.x, self.y)

    def double(self) -> "CirclePoint":
        return CirclePoint(*point_double(self.as_tuple()))

    def repeated_double(self, n: int) -> "CirclePoint":
        p = self
        for _ in range(n):
            p = p.double()
        return p

    def conjugate(self) -> "CirclePoint":
        return CirclePoint(self.x, -self.y)

    def mul(self, scalar: int) -> "CirclePoint":
        """Double-and-add scalar multiplication."""
        res = CirclePoint.zero()
        cur = self
        while scalar > 0:
            if scalar & 1:
                res = res + cur
            cur = cur.double()
            scalar >>= 1
        return res

    def __add__(self, other: "CirclePoint") -> "CirclePoint":
        return CirclePoint(*point_add(self.as_tuple(), other.as_tuple()))

    def __neg__(self) -> "CirclePoint":
        return self.conjugate()

    def __sub__(self, other: "CirclePoint") -> "CirclePoint":
        return self + (-other)

    def __eq__(self, other) -> bool:
        if not isinstance(other, CirclePoint):
            return NotImplemented
        return int(self.x) == int(other.x) and int(self.y) == int(other.y)

    def __hash__(self) -> int:
        return hash((int(self.x), int(self.y)))

    def __repr__(self) -> str:
        return f"CirclePoint(x={int(self.x)}, y={int(self.y)})"


M31_CIRCLE_GEN = CirclePoint(FF(2), FF(1268011823))
"""Generator of the full circle group (order 2^31)."""


@dataclass(frozen=True)
class CirclePointIndex:
    """Index k of the point k * M31_CIRCLE_GEN, reduced mod 2^31."""
    value: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", self.value % M31_CIRCLE_ORDER)

    @classmethod
    def zero(cls) -> "CirclePointIndex":
        return cls(0)

    @classmethod
    def generator(cls) -> "CirclePointIndex":
        return cls(1)

    @classmethod
    def subgroup_gen(cls, log_size: int) -> "CirclePointIndex":
        """Index of a generator of the subgroup of order 2^log_size."""
        if not 0 <= log_size <= M31_CIRCLE_LOG_ORDER:
            raise ValueError(f"log_size {log_size} exceeds circle group order")
        return cls(1 << (M31_CIRCLE_LOG_ORDER - log_size))

    def log_order(self) -> int:
        """log2 of the order of the point this index names."""
        if self.value == 0:
            return 0
        trailing_zeros = (self.value & -self.value).bit_length() - 1
        return M31_CIRCLE_LOG_ORDER - trailing_zeros

    def half(self) -> "CirclePointIndex":
        if self.value & 1:
            raise ValueError(f"Index {self.value} is odd and cannot be halved")
        return CirclePointIndex(self.value >> 1)

    def to_point(self) -> CirclePoint:
        return M31_CIRCLE_GEN.mul(self.value)

    def __add__(self, other: "CirclePointIndex") -> "CirclePointIndex":
        return CirclePointIndex(self.value + other.value)

    def __sub__(self, other: "CirclePointIndex") -> "CirclePointIndex":
        return CirclePointIndex(self.value - other.value)

    def __neg__(self) -> "CirclePointIndex":
        return CirclePointIndex(-self.value)

    def __mul__(self, scalar: int) -> "CirclePointIndex":
        return CirclePointIndex(self.value * scalar)


# --- Cosets ---

@dataclass(frozen=True)
class Coset:
    """The points initial + k * step for 0 <= k < 2^log_size."""
    initial_index: CirclePointIndex
    step_size: CirclePointIndex
    log_size: int

    @classmethod
    def new(cls, initial_index: CirclePointIndex, log_size: int) -> "Coset":
        return cls(initial_index, CirclePointIndex.subgroup_gen(log_size), log_size)

    @classmethod
    def subgroup(cls, log_size: int) -> "Coset":
        """The subgroup of order 2^log_size."""
        return cls.new(CirclePointIndex.zero(), log_size)

    @classmethod
    def odds(cls, log_size: int) -> "Coset":
        """G_{2n} + <G_n>: odd multiples of the generator of order 2n."""
        return cls.new(CirclePointIndex.subgroup_gen(log_size + 1), log_size)

    @classmethod
    def half_odds(cls, log_size: int) -> "Coset":
        """G_{4n} + <G_n>: the half coset of a canonic coset of twice the size."""
        return cls.new(CirclePointIndex.subgroup_gen(log_size + 2), log_size)

    @property
    def size(self) -> int:
        return 1 << self.log_size

    @property
    def initial(self) -> CirclePoint:
        return self.initial_index.to_point()

    @property
    def step(self) -> CirclePoint:
        return self.step_size.to_point()

    def index_at(self, i: int) -> CirclePointIndex:
        return self.initial_index + self.step_size * i

    def at(self, i: int) -> CirclePoint:
        return self.index_at(i).to_point()

    def double(self) -> "Coset":
        return Coset(self.initial_index * 2, self.step_size * 2, max(self.log_size - 1, 0))

    def repeated_double(self, n: int) -> "Coset":
        coset = self
        for _ in range(n):
            coset = coset.double()
        return coset

    def conjugate(self) -> "Coset":
        return Coset(-self.initial_index, -self.step_size, self.log_size)

    def points(self) -> Point:
        """All points in natural order, as (xs, ys) FF arrays."""
        xs = FF.Zeros(self.size)
        ys = FF.Zeros(self.size)
        initial = self.initial
        xs[0], ys[0] = initial.x, initial.y
        jump = self.step
        for j in range(self.log_size):
            m = 1 << j
            xs[m:2 * m], ys[m:2 * m] = point_add((xs[:m], ys[:m]), jump.as_tuple())
            jump = jump.double()
        return xs, ys


class CanonicCoset:
    """Coset.odds(log_size), the standard trace/evaluation coset."""

    def __init__(self, log_size: int) -> None:
        if log_size <= 0:
            raise ValueError("CanonicCoset log_size must be positive")
        self.coset = Coset.odds(log_size)

    @property
    def log_size(self) -> int:
        return self.coset.log_size

    @property
    def size(self) -> int:
        return self.coset.size

    def half_coset(self) -> Coset:
        return Coset.half_odds(self.log_size - 1)

    def circle_domain(self) -> "CircleDomain":
        return CircleDomain(self.half_coset())


# --- Domains ---

@dataclass(frozen=True)
class CircleDomain:
    """half_coset followed by its conjugate; closed under x-axis reflection."""
    half_coset: Coset

    @property
    def log_size(self) -> int:
        return self.half_coset.log_size + 1

    @property
    def size(self) -> int:
        return 1 << self.log_size

    def index_at(self, i: int) -> CirclePointIndex:
        half = self.half_coset.size
        if i < half:
            return self.half_coset.index_at(i)
        return -self.half_coset.index_at(i - half)

    def at(self, i: int) -> CirclePoint:
        return self.index_at(i).to_point()

    def points(self) -> Point:
        xs, ys = self.half_coset.points()
        all_xs = FF.Zeros(self.size)
        all_ys = FF.Zeros(self.size)
        half = self.half_coset.size
        all_xs[:half], all_ys[:half] = xs, ys
        all_xs[half:], all_ys[half:] = xs, -ys
        return all_xs, all_ys


@dataclass(frozen=True)
class LineDomain:
    """x-coordinates of a coset whose points have distinct x-coordinates."""
    coset: Coset

    def __post_init__(self) -> None:
        coset = self.coset
        if coset.size == 2:
            # A two point coset containing (0, y) is {(0, y), (0, -y)}
            if int(coset.initial.x) == 0:
                raise ValueError("coset x-coordinates not unique")
        elif coset.size > 2:
            if coset.initial_index.log_order() < coset.step_size.log_order() + 2:
                raise ValueError("coset x-coordinates not unique")

    @property
    def log_size(self) -> int:
        return self.coset.log_size

    @property
    def size(self) -> int:
        return self.coset.size

    def at(self, i: int) -> FF:
        return self.coset.at(i).x

    def xs(self) -> FF:
        return self.coset.points()[0]

    def double(self) -> "LineDomain":
        """Domain of the folded evaluation: x -> 2x^2 - 1 on every point."""
        return LineDomain(self.coset.double())
