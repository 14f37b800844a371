"""
회로 가젯 테스트: 각 가젯이 네이티브 연산과 같은 값을 계산하는지 확인한다.
"""
import pytest

from zkschnorr.babyjub import BASE8, ec_add, ec_double, ec_mul, base_mul, fixed_base_table
from zkschnorr.circuit import CircuitBuilder, GateKind
from zkschnorr.errors import ConstraintUnsatisfied
from zkschnorr.field import FR
from zkschnorr.gadgets import (
    assert_on_curve, bits2num, edwards_add, edwards_double,
    fixed_base_mul, num2bits, poseidon, select_point, variable_base_mul,
)
from zkschnorr.poseidon import poseidon_hash


P = base_mul(5)
Q = base_mul(1234567)


def _point_inputs(b, prefix):
    return (b.private_input(prefix + "x"), b.private_input(prefix + "y"))


def _point_witness(prefix, point):
    return {prefix + "x": point[0], prefix + "y": point[1]}


def _value(point_lc, values):
    return (point_lc[0].evaluate(values), point_lc[1].evaluate(values))


# ─────────────────────────────────────────────────────────────────────
# 곡선 가젯
# ─────────────────────────────────────────────────────────────────────

class TestOnCurve:
    def _circuit(self):
        b = CircuitBuilder("on_curve")
        x, y = _point_inputs(b, "p")
        assert_on_curve(b, x, y)
        return b.build()

    def test_accepts_curve_points(self):
        cs = self._circuit()
        assert cs.is_satisfied(_point_witness("p", BASE8))
        assert cs.is_satisfied(_point_witness("p", (0, 1)))

    def test_rejects_off_curve(self):
        with pytest.raises(ConstraintUnsatisfied) as exc:
            self._circuit().evaluate({"px": 1, "py": 2})
        assert exc.value.gate == "on_curve"


class TestEdwardsAdd:
    def _circuit(self):
        b = CircuitBuilder("add")
        p1 = _point_inputs(b, "p")
        p2 = _point_inputs(b, "q")
        out = edwards_add(b, p1, p2)
        return b.build(), out

    @pytest.mark.parametrize("p1,p2", [
        (P, Q),
        (P, P),
        (BASE8, (FR(0), FR(1))),
        (P, (-P[0], P[1])),
    ])
    def test_matches_native(self, p1, p2):
        cs, out = self._circuit()
        witness = dict(_point_witness("p", p1), **_point_witness("q", p2))
        values = cs.evaluate(witness)
        assert _value(out, values) == ec_add(p1, p2)

    def test_six_gates(self):
        cs, _ = self._circuit()
        assert cs.n == 6
        assert [g.label for g in cs.gates] == ["beta", "gamma", "delta", "tau", "x3", "y3"]

    def test_double(self):
        b = CircuitBuilder("double")
        p = _point_inputs(b, "p")
        out = edwards_double(b, p)
        values = b.build().evaluate(_point_witness("p", Q))
        assert _value(out, values) == ec_double(Q)


class TestSelect:
    @pytest.mark.parametrize("bit,expected", [(1, P), (0, Q)])
    def test_select(self, bit, expected):
        b = CircuitBuilder("select")
        sel = b.private_input("bit")
        p1 = _point_inputs(b, "p")
        p2 = _point_inputs(b, "q")
        out = select_point(b, sel, p1, p2)
        witness = dict(_point_witness("p", P), **_point_witness("q", Q))
        witness["bit"] = bit
        values = b.build().evaluate(witness)
        assert _value(out, values) == expected


# ─────────────────────────────────────────────────────────────────────
# 스칼라 곱셈 가젯 (작은 비트 폭)
# ─────────────────────────────────────────────────────────────────────

class TestFixedBaseMul:
    def _circuit(self, width):
        b = CircuitBuilder("fixed")
        k = b.private_input("k")
        bits = num2bits(b, k, width)
        out = fixed_base_mul(b, bits, fixed_base_table())
        return b.build(), out

    @pytest.mark.parametrize("k", [0, 1, 2, 37, 128, 255])
    def test_matches_base_mul(self, k):
        cs, out = self._circuit(8)
        values = cs.evaluate({"k": k})
        assert _value(out, values) == base_mul(k)

    def test_no_select_gates(self):
        """상수 점 선택은 선형이므로 덧셈 게이트만 생긴다."""
        cs, _ = self._circuit(4)
        kinds = [g.kind for g in cs.gates]
        assert kinds.count(GateKind.BITS) == 1
        assert cs.n == 1 + 3 * 6

    def test_table_too_short(self):
        b = CircuitBuilder("fixed")
        k = b.private_input("k")
        bits = num2bits(b, k, 4)
        with pytest.raises(ValueError):
            fixed_base_mul(b, bits, fixed_base_table()[:2])


class TestVariableBaseMul:
    def _circuit(self, width):
        b = CircuitBuilder("variable")
        k = b.private_input("k")
        point = _point_inputs(b, "p")
        bits = num2bits(b, k, width)
        out = variable_base_mul(b, bits, point)
        return b.build(), out

    @pytest.mark.parametrize("k", [0, 1, 3, 100, 255])
    def test_matches_ec_mul(self, k):
        cs, out = self._circuit(8)
        witness = dict(_point_witness("p", Q), k=k)
        values = cs.evaluate(witness)
        assert _value(out, values) == ec_mul(Q, k)

    def test_scoped_labels(self):
        cs, _ = self._circuit(3)
        labels = [g.label for g in cs.gates]
        assert "bit1/add/x3" in labels
        assert "bit0/select/sel_x" in labels
        assert "bit1/double/y3" in labels
        assert not any(label.startswith("bit2/double") for label in labels)


class TestBits:
    def test_bits2num_inverts_num2bits(self):
        b = CircuitBuilder("bits")
        k = b.private_input("k")
        back = bits2num(num2bits(b, k, 16))
        values = b.build().evaluate({"k": 40000})
        assert back.evaluate(values) == FR(40000)

    def test_num2bits_label(self):
        b = CircuitBuilder("bits")
        k = b.private_input("k")
        num2bits(b, k, 4)
        with pytest.raises(ConstraintUnsatisfied) as exc:
            b.build().evaluate({"k": 16})
        assert exc.value.gate == "num2bits"


class TestPoseidonGadget:
    def _circuit(self):
        b = CircuitBuilder("poseidon")
        inputs = [b.private_input(f"in{i}") for i in range(4)]
        out = poseidon(b, inputs)
        return b.build(), out

    @pytest.mark.parametrize("inputs", [[0, 0, 0, 0], [1, 2, 3, 4], [int(BASE8[0]), int(BASE8[1]), 7, 2**200]])
    def test_matches_native(self, inputs):
        cs, out = self._circuit()
        values = cs.evaluate({f"in{i}": v for i, v in enumerate(inputs)})
        assert out.evaluate(values) == poseidon_hash(inputs)

    def test_sbox_gate_count(self):
        """S-box 하나에 곱셈 3개. 첫 라운드의 용량 원소는 상수라 접힌다."""
        cs, _ = self._circuit()
        assert cs.describe()["by_kind"]["mul"] == (8 * 5 + 60 - 1) * 3

    def test_wrong_arity(self):
        b = CircuitBuilder("poseidon")
        x = b.private_input("x")
        with pytest.raises(ValueError):
            poseidon(b, [x, x, x])
