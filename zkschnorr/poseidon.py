"""
Poseidon 해시 (Hash-to-Field 챌린지 함수)
==========================================

bn128 스칼라 필드 위의 대수적 순열(permutation) 기반 해시.
Schnorr 챌린지 e = H(R.x, pkX, pkY, msgHash)를 네이티브 서명과
회로 내부에서 **동일하게** 계산하기 위해 사용한다.
circomlib의 Poseidon(4)과 같은 값을 낸다.

**파라미터** (폭 t = 5, 입력 4개):
  - 전체 라운드(full round) R_F = 8   (앞 4회 + 뒤 4회)
  - 부분 라운드(partial round) R_P = 60
  - S-box: x ↦ x⁵   (gcd(5, p-1) = 1 이므로 순열)
  - MDS: 코시(Cauchy) 행렬 M[i][j] = 1 / (xᵢ + yⱼ)

**라운드 구조** (라운드마다):
  1. ARK: state[j] += C[r·t + j]
  2. S-box: 전체 라운드는 모든 원소, 부분 라운드는 state[0]만
  3. MIX: state ← M · state

**상수 도출** (Poseidon 논문의 Grain LFSR 절차, circomlib과 동일):
  80비트 레지스터를 (필드 종류, S-box, 필드 비트 수, t, R_F, R_P, 1×30)으로
  초기화하고 160비트를 버린다. 이후 자기 축소(self-shrinking) 출력에서
    - 라운드 상수: 254비트씩 읽어 p 이상이면 버리고 다시 읽는다 ((R_F+R_P)·t 개)
    - MDS: 254비트씩 2t개를 더 읽어 p로 축소, 앞 t개가 xᵢ, 뒤 t개가 yⱼ

**스펀지 규약**:
  state = [0, in₀, in₁, in₂, in₃] → 순열 1회 → state[0] 반환

사용 예시:
    >>> from zkschnorr.poseidon import poseidon_hash
    >>> e = poseidon_hash([r_x, pk_x, pk_y, msg_hash])
"""

from collections import deque
from functools import lru_cache

from zkschnorr.field import FR, CURVE_ORDER


WIDTH = 5
FULL_ROUNDS = 8
PARTIAL_ROUNDS = 60
ALPHA = 5

FIELD_BITS = CURVE_ORDER.bit_length()


def _fixed_bits(value, width):
    return [int(c) for c in format(value, f"0{width}b")]


def grain_bits(t, full_rounds, partial_rounds, field_bits=FIELD_BITS):
    """Grain LFSR 비트 스트림 (자기 축소 적용 후)."""
    register = deque(
        [0, 1]                      # GF(p)
        + [0, 0, 0, 0]              # x^α S-box
        + _fixed_bits(field_bits, 12)
        + _fixed_bits(t, 12)
        + _fixed_bits(full_rounds, 10)
        + _fixed_bits(partial_rounds, 10)
        + [1] * 30
    )

    def step():
        bit = (register[62] ^ register[51] ^ register[38]
               ^ register[23] ^ register[13] ^ register[0])
        register.popleft()
        register.append(bit)
        return bit

    for _ in range(160):
        step()
    while True:
        if step():
            yield step()
        else:
            step()


def _read_int(bits, n):
    value = 0
    for _ in range(n):
        value = (value << 1) | next(bits)
    return value


@lru_cache(maxsize=None)
def _grain_parameters(t, full_rounds, partial_rounds):
    bits = grain_bits(t, full_rounds, partial_rounds)
    constants = []
    for _ in range((full_rounds + partial_rounds) * t):
        value = _read_int(bits, FIELD_BITS)
        while value >= CURVE_ORDER:
            value = _read_int(bits, FIELD_BITS)
        constants.append(FR(value))
    xs = [FR(_read_int(bits, FIELD_BITS)) for _ in range(t)]
    ys = [FR(_read_int(bits, FIELD_BITS)) for _ in range(t)]
    mds = tuple(tuple(FR(1) / (x + y) for y in ys) for x in xs)
    return tuple(constants), mds


class PoseidonParams:
    """Poseidon 인스턴스 파라미터 (불변).

    속성:
        t: 상태 폭 (입력 수 + 1)
        full_rounds, partial_rounds: 라운드 수
        round_constants: 길이 (R_F + R_P)·t 의 FR 리스트 (튜플)
        mds: t×t FR 행렬 (튜플의 튜플)
    """

    def __init__(self, t=WIDTH, full_rounds=FULL_ROUNDS, partial_rounds=PARTIAL_ROUNDS):
        if full_rounds % 2:
            raise ValueError(f"full_rounds must be even: {full_rounds}")
        self.t = t
        self.full_rounds = full_rounds
        self.partial_rounds = partial_rounds
        self.round_constants, self.mds = _grain_parameters(t, full_rounds, partial_rounds)

    @property
    def total_rounds(self):
        return self.full_rounds + self.partial_rounds

    def is_full_round(self, r):
        half = self.full_rounds // 2
        return r < half or r >= half + self.partial_rounds


def sbox(x):
    """S-box: x⁵ (x², x⁴, x⁵ 세 번의 곱셈)."""
    x2 = x * x
    x4 = x2 * x2
    return x4 * x


def permute(state, params):
    """Poseidon 순열을 적용한다.

    Args:
        state: 길이 t의 FR 리스트
        params: PoseidonParams

    Returns:
        list[FR]: 순열 결과
    """
    t = params.t
    if len(state) != t:
        raise ValueError(f"state width must be {t}, got {len(state)}")
    state = [s if isinstance(s, FR) else FR(int(s)) for s in state]
    rc = params.round_constants
    for r in range(params.total_rounds):
        state = [state[j] + rc[r * t + j] for j in range(t)]
        if params.is_full_round(r):
            state = [sbox(s) for s in state]
        else:
            state[0] = sbox(state[0])
        state = [
            sum((params.mds[i][j] * state[j] for j in range(t)), FR(0))
            for i in range(t)
        ]
    return state


# 챌린지 해시 인스턴스 (입력 4개)
SCHNORR_PARAMS = PoseidonParams()


def poseidon_hash(inputs, params=SCHNORR_PARAMS):
    """고정 arity Poseidon 해시.

    Args:
        inputs: 정확히 t-1개의 필드 원소 (정수 또는 FR)

    Returns:
        FR: 해시값 state[0]
    """
    inputs = list(inputs)
    if len(inputs) != params.t - 1:
        raise ValueError(f"poseidon arity is {params.t - 1}, got {len(inputs)} inputs")
    return permute([FR(0)] + inputs, params)[0]
