"""
산술 제약 시스템 (Constraint System)
======================================

Schnorr 검증식을 필드 위의 산술 게이트 그래프로 표현한다.

**배선(wire)과 선형 결합**:
  모든 값은 FR 원소를 담는 배선에 산다. 배선 0은 상수 1이다.
  게이트의 입력은 배선들의 선형 결합(LinearCombination) Σ cᵢ·wᵢ 이다.
  상수와의 곱, 덧셈, 뺄셈은 선형 결합 안에서 처리되므로 게이트가 필요 없다.

**게이트 종류** (GateKind, 태그드 유니온):
  | 종류    | 입력          | 출력      | 제약                         |
  |---------|---------------|-----------|------------------------------|
  | LINEAR  | L             | w         | w = L          (덧셈)        |
  | MUL     | A, B          | w         | w = A · B      (곱셈)        |
  | DIV     | A, B          | w         | w · B = A,  B ≠ 0            |
  | BITS    | A             | b₀..bₙ₋₁  | bᵢ ∈ {0,1}, Σ 2ⁱ·bᵢ = A < 2ⁿ |
  | EQUAL   | A, B          | -         | A = B          (등식)        |

  게이트 종류마다 (solve, check) 함수 쌍이 GATE_RULES 테이블에 등록되어 있다.
  - solve: 입력 배선 값으로 출력 배선 값을 계산 (위트니스 계산기 역할)
  - check: 모든 배선 값이 주어졌을 때 제약이 성립하는지 확인 (검증자 역할)

**불변 그래프**:
  CircuitBuilder로 게이트를 추가한 뒤 build()하면 불변의 ConstraintSystem이
  만들어진다. 같은 ConstraintSystem을 여러 위트니스에 대해 (동시에) 재사용할 수
  있다.

사용 예시:
    >>> b = CircuitBuilder("square")
    >>> x = b.private_input("x")
    >>> y = b.public_input("y")
    >>> b.assert_equal(b.mul(x, x), y)
    >>> cs = b.build()
    >>> cs.is_satisfied({"x": 3, "y": 9})   # True
"""

import enum
import hashlib
from collections import namedtuple
from contextlib import contextmanager

from zkschnorr.errors import (
    ConstraintUnsatisfied,
    DivisionByZero,
    EncodingError,
    RangeViolation,
)
from zkschnorr.field import FR, CURVE_ORDER, from_bits_le, parse_signal, to_bits_le


ONE_WIRE = 0


# ─────────────────────────────────────────────────────────────────────
# 선형 결합
# ─────────────────────────────────────────────────────────────────────

class LinearCombination:
    """배선들의 선형 결합 Σ cᵢ·wᵢ (불변).

    terms는 (배선 인덱스, 계수) 튜플의 정렬된 튜플이며 계수는 [1, p) 정수이다.
    배선 0의 계수는 상수항이다.
    """

    __slots__ = ("terms",)

    def __init__(self, terms=()):
        acc = {}
        for wire, coeff in (terms.items() if isinstance(terms, dict) else terms):
            c = (acc.get(wire, 0) + int(coeff)) % CURVE_ORDER
            if c:
                acc[wire] = c
            else:
                acc.pop(wire, None)
        object.__setattr__(self, "terms", tuple(sorted(acc.items())))

    def __setattr__(self, name, value):
        raise AttributeError("LinearCombination is immutable")

    @classmethod
    def constant(cls, value):
        return cls(((ONE_WIRE, int(value)),))

    @classmethod
    def wire(cls, index):
        return cls(((index, 1),))

    @classmethod
    def of(cls, value):
        """정수, FR, LinearCombination을 선형 결합으로 변환한다."""
        if isinstance(value, LinearCombination):
            return value
        return cls.constant(value)

    def is_constant(self):
        return all(w == ONE_WIRE for w, _ in self.terms)

    def constant_value(self):
        """상수 결합이면 FR 값, 아니면 None."""
        if not self.is_constant():
            return None
        return FR(self.terms[0][1]) if self.terms else FR(0)

    def single_wire(self):
        """계수 1의 단일 배선이면 그 인덱스, 아니면 None."""
        if len(self.terms) == 1 and self.terms[0][0] != ONE_WIRE and self.terms[0][1] == 1:
            return self.terms[0][0]
        return None

    def evaluate(self, values):
        acc = 0
        for wire, coeff in self.terms:
            acc += coeff * values[wire].n
        return FR(acc)

    def wires(self):
        return [w for w, _ in self.terms if w != ONE_WIRE]

    def __add__(self, other):
        other = LinearCombination.of(other)
        return LinearCombination(self.terms + other.terms)

    __radd__ = __add__

    def __neg__(self):
        return LinearCombination((w, -c) for w, c in self.terms)

    def __sub__(self, other):
        return self + (-LinearCombination.of(other))

    def __rsub__(self, other):
        return LinearCombination.of(other) + (-self)

    def __mul__(self, scalar):
        if isinstance(scalar, LinearCombination):
            raise TypeError("product of two linear combinations needs a MUL gate")
        k = int(scalar)
        return LinearCombination((w, c * k) for w, c in self.terms)

    __rmul__ = __mul__

    def __eq__(self, other):
        return isinstance(other, LinearCombination) and self.terms == other.terms

    def __hash__(self):
        return hash(self.terms)

    def __repr__(self):
        parts = [f"{c}" if w == ONE_WIRE else f"{c}*w{w}" for w, c in self.terms]
        return "LC(" + " + ".join(parts or ["0"]) + ")"


LC = LinearCombination


# ─────────────────────────────────────────────────────────────────────
# 게이트
# ─────────────────────────────────────────────────────────────────────

class GateKind(enum.Enum):
    LINEAR = "linear"
    MUL = "mul"
    DIV = "div"
    BITS = "bits"
    EQUAL = "equal"


Gate = namedtuple("Gate", ["kind", "label", "inputs", "outputs", "width"])
Gate.__doc__ = """산술 게이트 (불변).

kind: GateKind, label: 오류 메시지에 쓰이는 계층적 이름,
inputs: LinearCombination 튜플, outputs: 출력 배선 인덱스 튜플,
width: BITS 게이트의 비트 폭 (그 외 None)
"""

Signal = namedtuple("Signal", ["name", "wire", "public"])


def _solve_linear(gate, values):
    return (gate.inputs[0].evaluate(values),)


def _check_linear(gate, values):
    if values[gate.outputs[0]] != gate.inputs[0].evaluate(values):
        return "output != linear combination"
    return None


def _solve_mul(gate, values):
    a, b = gate.inputs
    return (a.evaluate(values) * b.evaluate(values),)


def _check_mul(gate, values):
    a, b = gate.inputs
    if values[gate.outputs[0]] != a.evaluate(values) * b.evaluate(values):
        return "a * b != out"
    return None


def _solve_div(gate, values):
    num, den = gate.inputs
    return (num.evaluate(values) / den.evaluate(values),)


def _check_div(gate, values):
    num, den = gate.inputs
    d = den.evaluate(values)
    if d == 0:
        return "denominator is zero"
    if values[gate.outputs[0]] * d != num.evaluate(values):
        return "out * den != num"
    return None


def _solve_bits(gate, values):
    value = gate.inputs[0].evaluate(values)
    return tuple(FR(b) for b in to_bits_le(value, gate.width))


def _check_bits(gate, values):
    bits = [values[w] for w in gate.outputs]
    for i, bit in enumerate(bits):
        if bit * (bit - 1) != 0:
            return f"bit {i} is not boolean"
    value = from_bits_le(bits)
    if value >= CURVE_ORDER:
        return "bits are not the canonical decomposition"
    if FR(value) != gate.inputs[0].evaluate(values):
        return "bits do not recompose to the input"
    return None


def _solve_equal(gate, values):
    return ()


def _check_equal(gate, values):
    a, b = gate.inputs
    if a.evaluate(values) != b.evaluate(values):
        return "left != right"
    return None


GATE_RULES = {
    GateKind.LINEAR: (_solve_linear, _check_linear),
    GateKind.MUL: (_solve_mul, _check_mul),
    GateKind.DIV: (_solve_div, _check_div),
    GateKind.BITS: (_solve_bits, _check_bits),
    GateKind.EQUAL: (_solve_equal, _check_equal),
}


def _solve_gate(gate, values):
    solve, _ = GATE_RULES[gate.kind]
    try:
        outputs = solve(gate, values)
    except RangeViolation as exc:
        raise ConstraintUnsatisfied(gate.label, str(exc), cause=exc) from exc
    except DivisionByZero as exc:
        raise ConstraintUnsatisfied(gate.label, "denominator is zero", cause=exc) from exc
    for wire, value in zip(gate.outputs, outputs):
        values[wire] = value


# ─────────────────────────────────────────────────────────────────────
# 제약 시스템
# ─────────────────────────────────────────────────────────────────────

class ConstraintSystem:
    """불변 게이트 그래프와 평가기.

    속성:
        name: 회로 이름
        num_wires: 배선 수 (상수 배선 포함)
        signals: Signal 튜플 (선언 순서)
        gates: Gate 튜플 (의존 순서)
        digest: 회로 구조의 SHA-256 (16진수). 같은 구조 ⇔ 같은 digest
    """

    def __init__(self, name, num_wires, signals, gates):
        self.name = name
        self.num_wires = num_wires
        self.signals = tuple(signals)
        self.gates = tuple(gates)
        self.digest = self._compute_digest()

    @property
    def n(self):
        """게이트 수."""
        return len(self.gates)

    @property
    def public_names(self):
        return [s.name for s in self.signals if s.public]

    @property
    def private_names(self):
        return [s.name for s in self.signals if not s.public]

    def constraint_count(self):
        """R1CS 제약 수 추정치: LINEAR는 결합에 흡수되고 BITS는 n+1개."""
        count = 0
        for gate in self.gates:
            if gate.kind is GateKind.BITS:
                count += gate.width + 1
            elif gate.kind is not GateKind.LINEAR:
                count += 1
        return count

    def describe(self):
        """게이트 종류별 개수 요약."""
        by_kind = {kind.value: 0 for kind in GateKind}
        for gate in self.gates:
            by_kind[gate.kind.value] += 1
        return {
            "name": self.name,
            "digest": self.digest,
            "wires": self.num_wires,
            "gates": self.n,
            "constraints": self.constraint_count(),
            "public": self.public_names,
            "private": self.private_names,
            "by_kind": by_kind,
        }

    def _compute_digest(self):
        h = hashlib.sha256()
        h.update(f"{self.name}|{self.num_wires}|".encode())
        for s in self.signals:
            h.update(f"{s.name}:{s.wire}:{int(s.public)};".encode())
        for g in self.gates:
            inputs = ",".join(repr(lc.terms) for lc in g.inputs)
            h.update(f"{g.kind.value}|{inputs}|{g.outputs}|{g.width};".encode())
        return h.hexdigest()

    def _initial_values(self, witness):
        values = [None] * self.num_wires
        values[ONE_WIRE] = FR(1)
        for signal in self.signals:
            if signal.name not in witness:
                raise EncodingError(f"missing signal '{signal.name}' in witness")
            values[signal.wire] = parse_signal(signal.name, witness[signal.name])
        return values

    def assign(self, witness):
        """입력 신호로부터 모든 배선 값을 계산한다 (위트니스 계산).

        Args:
            witness: 신호 이름 → 정수/FR 매핑

        Returns:
            list[FR]: 배선 값

        Raises:
            EncodingError: 신호가 없거나 필드 원소가 아닌 경우
            ConstraintUnsatisfied: 계산 자체가 불가능한 게이트
                (범위 초과 비트 분해, 0으로 나누기)
        """
        values = self._initial_values(witness)
        for gate in self.gates:
            _solve_gate(gate, values)
        return values

    def check(self, values):
        """완전한 배선 할당이 모든 게이트를 만족하는지 확인한다.

        Raises:
            ConstraintUnsatisfied: 처음으로 위반된 게이트
        """
        if len(values) != self.num_wires:
            raise ConstraintUnsatisfied(
                "<assignment>", f"expected {self.num_wires} wire values, got {len(values)}"
            )
        if values[ONE_WIRE] != 1:
            raise ConstraintUnsatisfied("<one>", "constant wire must be 1")
        for gate in self.gates:
            _, check = GATE_RULES[gate.kind]
            reason = check(gate, values)
            if reason is not None:
                raise ConstraintUnsatisfied(gate.label, reason)

    def evaluate(self, witness):
        """게이트 순서대로 배선 값을 계산하며 각 제약을 바로 확인한다.

        처음으로 위반된 게이트에서 멈춘다 (fail-fast).

        Returns:
            list[FR]: 만족하는 배선 할당
        """
        values = self._initial_values(witness)
        for gate in self.gates:
            _solve_gate(gate, values)
            _, check = GATE_RULES[gate.kind]
            reason = check(gate, values)
            if reason is not None:
                raise ConstraintUnsatisfied(gate.label, reason)
        return values

    def is_satisfied(self, witness):
        try:
            self.evaluate(witness)
        except ConstraintUnsatisfied:
            return False
        return True

    def public_signals(self, witness):
        """공개 신호 값을 선언 순서대로 반환한다."""
        return [FR(int(witness[name])) for name in self.public_names]

    def wire_of(self, name):
        for s in self.signals:
            if s.name == name:
                return s.wire
        raise KeyError(name)

    def __repr__(self):
        return f"ConstraintSystem({self.name!r}, gates={self.n}, wires={self.num_wires})"


# ─────────────────────────────────────────────────────────────────────
# 빌더
# ─────────────────────────────────────────────────────────────────────

class CircuitBuilder:
    """게이트를 차례로 추가해 ConstraintSystem을 만든다.

    상수 피연산자가 있는 곱셈/나눗셈은 선형 결합으로 접어서(fold)
    게이트를 만들지 않는다.
    """

    def __init__(self, name):
        self.name = name
        self._num_wires = 1
        self._signals = []
        self._gates = []
        self._scopes = []
        self._built = False

    # ── 신호 ──

    def _declare(self, name, public):
        if any(s.name == name for s in self._signals):
            raise ValueError(f"signal '{name}' already declared")
        wire = self._new_wire()
        self._signals.append(Signal(name, wire, public))
        return LinearCombination.wire(wire)

    def public_input(self, name):
        return self._declare(name, True)

    def private_input(self, name):
        return self._declare(name, False)

    # ── 내부 헬퍼 ──

    def _new_wire(self):
        if self._built:
            raise RuntimeError("circuit already built")
        wire = self._num_wires
        self._num_wires += 1
        return wire

    def _label(self, name):
        return "/".join(self._scopes + [name])

    def _emit(self, kind, name, inputs, n_outputs=1, width=None):
        outputs = tuple(self._new_wire() for _ in range(n_outputs))
        self._gates.append(Gate(kind, self._label(name), tuple(inputs), outputs, width))
        return outputs

    @contextmanager
    def scope(self, name):
        """게이트 레이블에 계층 이름을 붙인다 (예: "e_mul_pk/bit3/add/x3")."""
        self._scopes.append(name)
        try:
            yield self
        finally:
            self._scopes.pop()

    # ── 게이트 ──

    def linear(self, value, name="lin"):
        """선형 결합을 새 배선으로 구체화한다 (결합 크기를 제한할 때 사용)."""
        lc = LinearCombination.of(value)
        if lc.is_constant() or lc.single_wire() is not None:
            return lc
        (out,) = self._emit(GateKind.LINEAR, name, [lc])
        return LinearCombination.wire(out)

    def mul(self, a, b, name="mul"):
        a, b = LinearCombination.of(a), LinearCombination.of(b)
        ca, cb = a.constant_value(), b.constant_value()
        if ca is not None:
            return b * int(ca)
        if cb is not None:
            return a * int(cb)
        (out,) = self._emit(GateKind.MUL, name, [a, b])
        return LinearCombination.wire(out)

    def div(self, a, b, name="div"):
        a, b = LinearCombination.of(a), LinearCombination.of(b)
        cb = b.constant_value()
        if cb is not None:
            return a * int(cb.inverse())
        (out,) = self._emit(GateKind.DIV, name, [a, b])
        return LinearCombination.wire(out)

    def bits(self, a, width, name="bits"):
        """a를 width개의 리틀 엔디안 비트로 분해한다 (a < 2^width 강제)."""
        outs = self._emit(GateKind.BITS, name, [LinearCombination.of(a)], n_outputs=width, width=width)
        return [LinearCombination.wire(w) for w in outs]

    def assert_equal(self, a, b, name="eq"):
        self._emit(GateKind.EQUAL, name, [LinearCombination.of(a), LinearCombination.of(b)], n_outputs=0)

    def build(self):
        """불변 ConstraintSystem을 만든다. 이후 빌더는 더 쓸 수 없다."""
        cs = ConstraintSystem(self.name, self._num_wires, self._signals, self._gates)
        self._built = True
        return cs
