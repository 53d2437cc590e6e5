"""Tests for the M31 / CM31 / QM31 field tower."""

import numpy as np
import pytest

from primitives.field import (
    FF,
    M31_PRIME,
    SecureField,
    ff_from_words,
    ff_to_words,
    qm31_mul,
)
from primitives.secure_column import SecureColumn


def _random_secure(rng: np.random.Generator, n: int):
    return [SecureField.random(rng) for _ in range(n)]


class TestBaseField:
    """FF = GF(2^31 - 1)."""

    def test_wraps_at_modulus(self) -> None:
        assert FF(M31_PRIME - 1) + FF(1) == FF(0)

    def test_word_conversion_roundtrip(self) -> None:
        words = np.array([0, 1, 5, M31_PRIME - 1], dtype=np.uint32)
        assert np.array_equal(ff_to_words(ff_from_words(words)), words)

    def test_word_conversion_accepts_int_lists(self) -> None:
        assert ff_to_words([3, 2, 1]).tolist() == [3, 2, 1]

    @pytest.mark.parametrize("bad", [M31_PRIME, -1, 1 << 32])
    def test_word_conversion_rejects_unreduced(self, bad: int) -> None:
        with pytest.raises(ValueError):
            ff_to_words([1, bad])


class TestSecureField:
    """QM31 = CM31[u] / (u^2 - 2 - i)."""

    def test_i_squared_is_minus_one(self) -> None:
        i = SecureField(0, 1, 0, 0)
        assert i * i == SecureField(M31_PRIME - 1, 0, 0, 0)

    def test_u_squared_is_two_plus_i(self) -> None:
        u = SecureField(0, 0, 1, 0)
        assert u * u == SecureField(2, 1, 0, 0)

    def test_rejects_unreduced_coordinates(self) -> None:
        with pytest.raises(ValueError):
            SecureField(M31_PRIME, 0, 0, 0)

    def test_from_coords_needs_four(self) -> None:
        with pytest.raises(ValueError):
            SecureField.from_coords([FF(1), FF(2), FF(3)])

    def test_ring_laws(self) -> None:
        rng = np.random.default_rng(7)
        x, y, z = _random_secure(rng, 3)
        assert x * y == y * x
        assert (x * y) * z == x * (y * z)
        assert x * (y + z) == x * y + x * z
        assert (x - y) + y == x
        assert x + (-x) == SecureField.zero()

    def test_inverse(self) -> None:
        rng = np.random.default_rng(11)
        for x in _random_secure(rng, 8):
            assert x * x.inverse() == SecureField.one()
            assert (x / x) == SecureField.one()

    def test_zero_has_no_inverse(self) -> None:
        with pytest.raises(ZeroDivisionError):
            SecureField.zero().inverse()

    def test_division_by_base_field_scalar(self) -> None:
        x = SecureField(10, 20, 30, 40)
        assert (x / 7) * 7 == x
        assert (x / 10) == SecureField(1, 2, 3, 4)

    def test_division_by_zero_scalar(self) -> None:
        with pytest.raises(ZeroDivisionError):
            SecureField.one() / 0

    def test_base_field_scalars_embed_as_first_coordinate(self) -> None:
        x = SecureField(1, 2, 3, 4)
        assert x + 1 == SecureField(2, 2, 3, 4)
        assert 2 * x == SecureField(2, 4, 6, 8)
        assert x * FF(3) == SecureField(3, 6, 9, 12)

    def test_random_is_reproducible(self) -> None:
        a = SecureField.random(np.random.default_rng(3))
        b = SecureField.random(np.random.default_rng(3))
        assert a == b


class TestSecureColumn:
    """Column-wise QM31 arithmetic agrees with the scalar arithmetic."""

    def test_vectorised_mul_matches_scalar_mul(self) -> None:
        rng = np.random.default_rng(5)
        xs = _random_secure(rng, 16)
        ys = _random_secure(rng, 16)
        product = SecureColumn.from_coords(
            qm31_mul(SecureColumn.from_vec(xs).coords(), SecureColumn.from_vec(ys).coords())
        )
        assert product.to_vec() == [x * y for x, y in zip(xs, ys)]

    def test_at_and_set(self) -> None:
        column = SecureColumn.zeros(4)
        column.set(2, SecureField(1, 2, 3, 4))
        assert column.at(2) == SecureField(1, 2, 3, 4)
        assert column.at(0) == SecureField.zero()

    def test_from_vec_to_vec(self) -> None:
        values = [SecureField(1, 2, 3, 4), SecureField(5, 6, 7, 8)]
        assert SecureColumn.from_vec(values).to_vec() == values
        assert SecureColumn.from_vec([]).to_vec() == []

    def test_rejects_ragged_columns(self) -> None:
        with pytest.raises(ValueError):
            SecureColumn([FF.Zeros(2), FF.Zeros(2), FF.Zeros(2), FF.Zeros(3)])

    def test_rejects_wrong_column_count(self) -> None:
        with pytest.raises(ValueError):
            SecureColumn([FF.Zeros(2)] * 3)
