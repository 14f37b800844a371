"""
field 모듈 테스트: FR, Scalar, 비트 분해, 바이트 직렬화
"""
import pytest

from zkschnorr.errors import DivisionByZero, RangeViolation
from zkschnorr.field import (
    FR, Scalar, CURVE_ORDER, SUBGROUP_ORDER, COFACTOR,
    to_bits_le, from_bits_le, le_bytes,
)


# =====================================================================
# FR / Scalar arithmetic
# =====================================================================

class TestFR:
    def test_modular_reduction(self):
        assert FR(CURVE_ORDER) == FR(0)
        assert FR(CURVE_ORDER + 7) == FR(7)
        assert FR(-1) == FR(CURVE_ORDER - 1)

    def test_inverse(self):
        a = FR(12345)
        assert a * a.inverse() == FR(1)
        assert FR(1) / FR(3) * FR(3) == FR(1)

    def test_division_by_zero_raises(self):
        with pytest.raises(DivisionByZero):
            FR(5) / FR(0)
        with pytest.raises(DivisionByZero):
            FR(0).inverse()

    def test_division_by_zero_is_zero_division_error(self):
        """호출자가 표준 ZeroDivisionError로도 잡을 수 있어야 한다."""
        with pytest.raises(ZeroDivisionError):
            FR(1) / 0

    def test_rtruediv_zero(self):
        with pytest.raises(DivisionByZero):
            1 / FR(0)


class TestScalar:
    def test_subgroup_order_relation(self):
        """n은 p보다 작고 곡선 위수는 8·n."""
        assert SUBGROUP_ORDER < CURVE_ORDER
        assert COFACTOR == 8

    def test_reduces_mod_n(self):
        assert Scalar(SUBGROUP_ORDER + 3) == Scalar(3)

    def test_conversion_from_fr_reduces(self):
        """FR에서 Scalar로 바꾸면 n으로 축소된다."""
        e = FR(SUBGROUP_ORDER + 5)
        assert int(Scalar(e)) == 5

    def test_scalar_division_by_zero(self):
        with pytest.raises(DivisionByZero):
            Scalar(1) / Scalar(SUBGROUP_ORDER)


# =====================================================================
# Bits
# =====================================================================

class TestBits:
    @pytest.mark.parametrize("value,n_bits", [(0, 1), (1, 1), (5, 3), (255, 8), (2**252, 253)])
    def test_decompose_recompose_identity(self, value, n_bits):
        bits = to_bits_le(value, n_bits)
        assert len(bits) == n_bits
        assert all(b in (0, 1) for b in bits)
        assert from_bits_le(bits) == value

    def test_little_endian_order(self):
        assert to_bits_le(6, 4) == [0, 1, 1, 0]

    def test_out_of_range_rejected(self):
        with pytest.raises(RangeViolation) as exc:
            to_bits_le(256, 8)
        assert exc.value.bits == 8
        assert exc.value.value == 256

    def test_boundary(self):
        to_bits_le(2**253 - 1, 253)
        with pytest.raises(RangeViolation):
            to_bits_le(2**253, 253)

    def test_range_violation_is_value_error(self):
        with pytest.raises(ValueError):
            to_bits_le(-1, 8)

    def test_field_element_input(self):
        assert from_bits_le(to_bits_le(FR(9), 4)) == 9


class TestLeBytes:
    def test_fixed_length_little_endian(self):
        b = le_bytes(1)
        assert len(b) == 32
        assert b[0] == 1 and b[1:] == bytes(31)

    def test_field_element(self):
        assert le_bytes(FR(CURVE_ORDER - 1)) == (CURVE_ORDER - 1).to_bytes(32, "little")
