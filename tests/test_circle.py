"""Tests for the circle group, cosets, domains and bit reversal."""

import numpy as np
import pytest

from primitives.bit_reverse import bit_reverse, bit_reverse_index, bit_reverse_permutation, ilog2
from primitives.circle import (
    M31_CIRCLE_GEN,
    CanonicCoset,
    CircleDomain,
    CirclePoint,
    CirclePointIndex,
    Coset,
    LineDomain,
)
from primitives.field import FF, M31_PRIME


class TestCirclePoint:
    """Group law on x^2 + y^2 = 1."""

    def test_generator_on_circle(self) -> None:
        g = M31_CIRCLE_GEN
        assert g.x * g.x + g.y * g.y == FF(1)

    def test_generator_order(self) -> None:
        assert M31_CIRCLE_GEN.repeated_double(31) == CirclePoint.zero()
        assert M31_CIRCLE_GEN.repeated_double(30) == CirclePoint(FF(M31_PRIME - 1), FF(0))

    def test_point_minus_itself_is_identity(self) -> None:
        p = CirclePointIndex(12345).to_point()
        assert p - p == CirclePoint.zero()

    @pytest.mark.parametrize("a,b", [(1, 2), (17, 1 << 30), (M31_PRIME, 99)])
    def test_index_addition_is_point_addition(self, a: int, b: int) -> None:
        lhs = (CirclePointIndex(a) + CirclePointIndex(b)).to_point()
        assert lhs == CirclePointIndex(a).to_point() + CirclePointIndex(b).to_point()

    def test_index_negation_conjugates(self) -> None:
        idx = CirclePointIndex(777)
        assert (-idx).to_point() == idx.to_point().conjugate()

    def test_index_wraps_at_group_order(self) -> None:
        assert CirclePointIndex(1 << 31) == CirclePointIndex.zero()
        assert CirclePointIndex(-1).value == (1 << 31) - 1


class TestCirclePointIndex:
    """Subgroup generators and orders."""

    @pytest.mark.parametrize("log_size", [0, 1, 3, 10, 31])
    def test_subgroup_gen_order(self, log_size: int) -> None:
        gen = CirclePointIndex.subgroup_gen(log_size)
        assert gen.log_order() == log_size
        assert gen.to_point().repeated_double(log_size) == CirclePoint.zero()

    def test_subgroup_gen_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            CirclePointIndex.subgroup_gen(32)

    def test_half(self) -> None:
        assert CirclePointIndex(10).half() == CirclePointIndex(5)
        with pytest.raises(ValueError):
            CirclePointIndex(3).half()


class TestCoset:
    """Cosets, their points and doubling."""

    def test_points_match_at(self) -> None:
        coset = Coset.odds(4)
        xs, ys = coset.points()
        for i in range(coset.size):
            p = coset.at(i)
            assert xs[i] == p.x and ys[i] == p.y

    def test_subgroup_doubles_to_smaller_subgroup(self) -> None:
        assert Coset.subgroup(4).double() == Coset.subgroup(3)

    def test_half_odds_doubles_to_half_odds(self) -> None:
        assert Coset.half_odds(5).double() == Coset.half_odds(4)

    def test_double_squares_points(self) -> None:
        coset = Coset.odds(3)
        doubled = coset.double()
        for i in range(doubled.size):
            assert doubled.at(i) == coset.at(i).double()

    def test_conjugate(self) -> None:
        coset = Coset.half_odds(3)
        conj = coset.conjugate()
        for i in range(coset.size):
            assert conj.at(i) == coset.at(i).conjugate()


class TestDomains:
    """Canonic cosets, circle domains and line domains."""

    def test_canonic_coset_rejects_zero(self) -> None:
        with pytest.raises(ValueError):
            CanonicCoset(0)

    @pytest.mark.parametrize("log_size", [1, 2, 5])
    def test_circle_domain_halves_are_conjugate(self, log_size: int) -> None:
        domain = CanonicCoset(log_size).circle_domain()
        assert domain.size == 1 << log_size
        half = domain.size // 2
        for i in range(half):
            assert domain.at(i + half) == domain.at(i).conjugate()

    def test_circle_domain_points_match_at(self) -> None:
        domain = CircleDomain(Coset.half_odds(3))
        xs, ys = domain.points()
        for i in range(domain.size):
            assert domain.at(i) == CirclePoint(xs[i], ys[i])

    def test_circle_domain_is_canonic_coset(self) -> None:
        domain = CanonicCoset(4).circle_domain()
        expected = {CanonicCoset(4).coset.at(i) for i in range(16)}
        assert {domain.at(i) for i in range(16)} == expected

    def test_line_domain_rejects_repeated_x(self) -> None:
        with pytest.raises(ValueError):
            LineDomain(Coset.subgroup(3))

    def test_line_domain_rejects_two_points_on_y_axis(self) -> None:
        with pytest.raises(ValueError):
            LineDomain(Coset.new(CirclePointIndex.subgroup_gen(2), 1))

    @pytest.mark.parametrize("log_size", [0, 1, 4, 8])
    def test_line_domain_xs_distinct(self, log_size: int) -> None:
        domain = LineDomain(CanonicCoset(log_size + 1).half_coset())
        xs = domain.xs()
        assert len(set(int(x) for x in xs)) == domain.size

    def test_line_domain_double(self) -> None:
        domain = LineDomain(Coset.half_odds(5))
        xs = domain.xs()
        half = domain.size // 2
        assert np.array_equal(domain.double().xs(), FF(2) * xs[:half] ** 2 - FF(1))


class TestBitReverse:
    """Bit-reversal helpers."""

    def test_index(self) -> None:
        assert bit_reverse_index(1, 3) == 4
        assert bit_reverse_index(6, 3) == 3
        assert bit_reverse_index(0, 0) == 0

    def test_permutation(self) -> None:
        assert bit_reverse_permutation(3).tolist() == [0, 4, 2, 6, 1, 5, 3, 7]

    def test_permutation_matches_index(self) -> None:
        perm = bit_reverse_permutation(6)
        assert all(perm[i] == bit_reverse_index(i, 6) for i in range(64))

    def test_involution(self) -> None:
        values = np.arange(32)
        assert np.array_equal(bit_reverse(bit_reverse(values)), values)

    @pytest.mark.parametrize("size,log", [(1, 0), (2, 1), (1024, 10)])
    def test_ilog2(self, size: int, log: int) -> None:
        assert ilog2(size) == log

    @pytest.mark.parametrize("size", [0, 3, 6, -4])
    def test_ilog2_rejects_non_powers(self, size: int) -> None:
        with pytest.raises(ValueError):
            ilog2(size)
