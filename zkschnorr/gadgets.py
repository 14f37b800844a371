"""
회로 가젯
==========

CircuitBuilder 위에 쌓는 재사용 가능한 부분 회로들.
점은 (x, y) LinearCombination 튜플로 다룬다.

**에드워즈 덧셈** (게이트 6개):
    β = x₁·y₂          γ = y₁·x₂          δ = (y₁ - a·x₁)·(x₂ + y₂)
    τ = β·γ
    x₃ = (β + γ) / (1 + d·τ)
    y₃ = (δ + a·β - γ) / (1 - d·τ)

  δ + a·β - γ = y₁x₂ + y₁y₂ - a·x₁x₂ - a·x₁y₂ + a·x₁y₂ - y₁x₂ = y₁y₂ - a·x₁x₂ 이므로
  네이티브 ec_add와 같은 식이다.

**고정 기저 곱셈**:
  i번째 비트가 고르는 점 (bᵢ·Gᵢ.x, 1 + bᵢ·(Gᵢ.y - 1))은 bᵢ에 대해 선형이므로
  선택에 게이트가 필요 없다 (bᵢ = 0 → 항등원 (0, 1)).

**가변 기저 곱셈**:
  LSB부터 double-and-add. 매 비트마다 acc + temp를 계산하고 비트로 선택한다.
"""

from zkschnorr.babyjub import A, D
from zkschnorr.circuit import LinearCombination
from zkschnorr.poseidon import SCHNORR_PARAMS


_A = A.n
_D = D.n


def num2bits(b, value, n_bits, name="num2bits"):
    """value를 n_bits개의 LE 비트로 분해한다. value >= 2^n_bits 이면 불만족."""
    return b.bits(value, n_bits, name=name)


def bits2num(bits):
    """Σ 2ⁱ·bᵢ (선형 결합이므로 게이트 없음)."""
    acc = LinearCombination()
    for i, bit in enumerate(bits):
        acc = acc + bit * (1 << i)
    return acc


def assert_on_curve(b, x, y):
    """BabyCheck: a·x² + y² == 1 + d·x²·y²."""
    x2 = b.mul(x, x, name="x2")
    y2 = b.mul(y, y, name="y2")
    x2y2 = b.mul(x2, y2, name="x2y2")
    b.assert_equal(x2 * _A + y2, x2y2 * _D + 1, name="on_curve")


def edwards_add(b, p1, p2):
    x1, y1 = p1
    x2, y2 = p2
    beta = b.mul(x1, y2, name="beta")
    gamma = b.mul(y1, x2, name="gamma")
    delta = b.mul(y1 - x1 * _A, x2 + y2, name="delta")
    tau = b.mul(beta, gamma, name="tau")
    x3 = b.div(beta + gamma, tau * _D + 1, name="x3")
    y3 = b.div(delta + beta * _A - gamma, 1 - tau * _D, name="y3")
    return (x3, y3)


def edwards_double(b, point):
    return edwards_add(b, point, point)


def select_point(b, bit, if_one, if_zero):
    """bit ? if_one : if_zero  (bit는 불리언이어야 함)."""
    x = if_zero[0] + b.mul(bit, if_one[0] - if_zero[0], name="sel_x")
    y = if_zero[1] + b.mul(bit, if_one[1] - if_zero[1], name="sel_y")
    return (x, y)


def fixed_base_mul(b, bits, table):
    """Σ bᵢ·table[i] (table[i] = 2ⁱ·G, 상수 점).

    Args:
        bits: 불리언 LinearCombination 리스트 (LE)
        table: babyjub.fixed_base_table()
    """
    if len(bits) > len(table):
        raise ValueError(f"fixed-base table has {len(table)} entries, need {len(bits)}")
    acc = None
    for i, bit in enumerate(bits):
        gx, gy = table[i]
        selected = (bit * gx.n, bit * (gy.n - 1) + 1)
        if acc is None:
            acc = selected
            continue
        with b.scope(f"bit{i}"):
            acc = edwards_add(b, acc, selected)
    return acc


def variable_base_mul(b, bits, point):
    """Σ bᵢ·2ⁱ·point (point는 회로 신호)."""
    acc = (LinearCombination.constant(0), LinearCombination.constant(1))
    temp = point
    last = len(bits) - 1
    for i, bit in enumerate(bits):
        with b.scope(f"bit{i}"):
            with b.scope("add"):
                added = edwards_add(b, acc, temp)
            with b.scope("select"):
                acc = select_point(b, bit, added, acc)
            if i < last:
                with b.scope("double"):
                    temp = edwards_double(b, temp)
    return acc


def _sbox(b, x):
    x2 = b.mul(x, x, name="x2")
    x4 = b.mul(x2, x2, name="x4")
    return b.mul(x4, x, name="x5")


def poseidon(b, inputs, params=SCHNORR_PARAMS):
    """회로 안의 Poseidon 해시. poseidon.poseidon_hash와 같은 라운드 구조."""
    t = params.t
    if len(inputs) != t - 1:
        raise ValueError(f"poseidon arity is {t - 1}, got {len(inputs)} inputs")
    state = [LinearCombination.constant(0)] + [LinearCombination.of(x) for x in inputs]
    rc = params.round_constants
    mds = params.mds
    for r in range(params.total_rounds):
        with b.scope(f"round{r}"):
            state = [state[j] + rc[r * t + j].n for j in range(t)]
            if params.is_full_round(r):
                state = [_sbox(b, s) for s in state]
            else:
                state[0] = _sbox(b, state[0])
            mixed = []
            for i in range(t):
                acc = LinearCombination()
                for j in range(t):
                    acc = acc + state[j] * mds[i][j].n
                mixed.append(b.linear(acc, name=f"mix{i}"))
            state = mixed
    return state[0]
