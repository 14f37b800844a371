"""
Baby Jubjub 곡선 연산 테스트

테스트 대상:
  - 곡선 멤버십: BASE8, 항등원, 곡선 밖의 점
  - 부분군 검사: BASE8 (위수 n), 위수 2인 점 (0, -1)
  - 완전 덧셈: 항등원, 같은 점, 역원
  - 스칼라 곱셈: ec_mul, base_mul, fixed_base_table
"""
import pytest

from zkschnorr.babyjub import (
    A, D, BASE8, IDENTITY, FIXED_BASE_BITS,
    is_on_curve, check_point, in_subgroup, check_subgroup, is_identity,
    ec_add, ec_double, ec_neg, ec_mul, fixed_base_table, base_mul,
)
from zkschnorr.errors import InvalidCurvePoint
from zkschnorr.field import FR, CURVE_ORDER, SUBGROUP_ORDER


# 위수 2인 점: 곡선 위에 있지만 소수 위수 부분군 밖
ORDER_TWO = (FR(0), FR(CURVE_ORDER - 1))


# ─────────────────────────────────────────────────────────────────────
# 곡선 멤버십
# ─────────────────────────────────────────────────────────────────────

class TestCurve:
    def test_parameters(self):
        assert A == FR(168700)
        assert D == FR(168696)

    def test_base8_on_curve(self):
        assert is_on_curve(BASE8)

    def test_identity_on_curve(self):
        assert is_on_curve(IDENTITY)
        assert is_identity((0, 1))

    def test_off_curve_point(self):
        assert not is_on_curve((FR(1), FR(2)))

    def test_malformed_point(self):
        assert not is_on_curve("not a point")
        assert not is_on_curve((1, 2, 3))

    def test_check_point_normalises_ints(self):
        x, y = check_point((int(BASE8[0]), int(BASE8[1])))
        assert isinstance(x, FR) and isinstance(y, FR)

    def test_check_point_raises(self):
        with pytest.raises(InvalidCurvePoint) as exc:
            check_point((1, 2))
        assert "not on curve" in str(exc.value)


class TestSubgroup:
    def test_base8_in_subgroup(self):
        assert in_subgroup(BASE8)
        assert ec_mul(BASE8, SUBGROUP_ORDER) == IDENTITY

    def test_order_two_point(self):
        assert is_on_curve(ORDER_TWO)
        assert ec_double(ORDER_TWO) == IDENTITY
        assert not in_subgroup(ORDER_TWO)

    def test_check_subgroup_rejects_low_order(self):
        with pytest.raises(InvalidCurvePoint) as exc:
            check_subgroup(ORDER_TWO)
        assert "subgroup" in str(exc.value)

    def test_check_subgroup_rejects_off_curve(self):
        with pytest.raises(InvalidCurvePoint):
            check_subgroup((1, 2))


# ─────────────────────────────────────────────────────────────────────
# 군 연산
# ─────────────────────────────────────────────────────────────────────

class TestGroupLaw:
    def test_identity_is_neutral(self):
        assert ec_add(BASE8, IDENTITY) == BASE8
        assert ec_add(IDENTITY, BASE8) == BASE8

    def test_add_same_point_equals_double(self):
        """완전 덧셈 법칙: 같은 점끼리의 덧셈에 특수 처리가 필요 없다."""
        assert ec_add(BASE8, BASE8) == ec_double(BASE8)

    def test_inverse(self):
        assert ec_add(BASE8, ec_neg(BASE8)) == IDENTITY

    def test_commutative_and_associative(self):
        p, q, r = base_mul(3), base_mul(11), base_mul(29)
        assert ec_add(p, q) == ec_add(q, p)
        assert ec_add(ec_add(p, q), r) == ec_add(p, ec_add(q, r))

    def test_results_stay_on_curve(self):
        p = BASE8
        for _ in range(5):
            p = ec_add(p, BASE8)
            assert is_on_curve(p)


class TestScalarMul:
    def test_small_multiples(self):
        assert ec_mul(BASE8, 0) == IDENTITY
        assert ec_mul(BASE8, 1) == BASE8
        assert ec_mul(BASE8, 2) == ec_double(BASE8)
        assert ec_mul(BASE8, 3) == ec_add(ec_double(BASE8), BASE8)

    def test_negative_scalar_rejected(self):
        with pytest.raises(ValueError):
            ec_mul(BASE8, -1)
        with pytest.raises(ValueError):
            base_mul(-1)

    @pytest.mark.parametrize("k", [0, 1, 5, 2**100 + 7, SUBGROUP_ORDER - 1, 2**252 + 12345])
    def test_base_mul_matches_ec_mul(self, k):
        assert base_mul(k) == ec_mul(BASE8, k)

    def test_base_mul_beyond_table(self):
        """2^253 이상의 스칼라는 ec_mul로 처리하며 결과는 같다."""
        k = 2**FIXED_BASE_BITS + 3
        assert base_mul(k) == ec_mul(BASE8, 3 + (2**FIXED_BASE_BITS % SUBGROUP_ORDER))

    def test_scalar_not_reduced_for_low_order_point(self):
        """ec_mul은 스칼라를 n으로 축소하지 않는다."""
        assert ec_mul(ORDER_TWO, 3) == ORDER_TWO
        assert ec_mul(ORDER_TWO, SUBGROUP_ORDER) == ORDER_TWO  # n은 홀수

    def test_fixed_base_table(self):
        table = fixed_base_table()
        assert len(table) == FIXED_BASE_BITS
        assert table[0] == BASE8
        assert table[1] == ec_double(BASE8)
        assert table[10] == ec_mul(BASE8, 2**10)

    def test_fixed_base_table_is_memoised(self):
        assert fixed_base_table() is fixed_base_table()

    def test_scalar_types(self):
        assert ec_mul(BASE8, FR(7)) == ec_mul(BASE8, 7)
