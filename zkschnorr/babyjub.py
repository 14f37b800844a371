"""
Baby Jubjub 트위스티드 에드워즈 곡선 연산
==========================================

bn128 스칼라 필드 FR 위에 정의된 곡선 (circomlib 좌표계와 동일):

    a·x² + y² = 1 + d·x²·y²      (a = 168700, d = 168696)

**점 표현**:
  py_ecc의 bn128 점과 같이 아핀 좌표 튜플 (x, y)로 표현한다.
  항등원은 (0, 1)이다 (None이 아님).

**완전(complete) 덧셈 법칙**:
  a는 제곱수, d는 비제곱수이므로 분모 1 ± d·x₁x₂y₁y₂가 곡선 위의 점에
  대해 절대 0이 되지 않는다. 따라서 덧셈은 항등원이나 같은 점(doubling)에
  대해서도 예외 없이 동작한다.

    x₃ = (x₁y₂ + y₁x₂) / (1 + d·x₁x₂y₁y₂)
    y₃ = (y₁y₂ - a·x₁x₂) / (1 - d·x₁x₂y₁y₂)

**스칼라 곱셈**:
  - ec_mul: 가변 기저(variable-base) double-and-add. 스칼라를 n으로 축소하지
    않는다 (부분군 밖의 점에서도 회로와 같은 결과를 내기 위함).
  - base_mul: 고정 기저(fixed-base). 2^i·G 테이블을 미리 계산해 두고
    비트가 1인 항만 더한다. 결과는 ec_mul(BASE8, k)와 항상 같다.

사용 예시:
    >>> from zkschnorr.babyjub import BASE8, ec_mul, base_mul
    >>> P = base_mul(5)
    >>> P == ec_mul(BASE8, 5)   # True
"""

from functools import lru_cache

from zkschnorr.errors import InvalidCurvePoint
from zkschnorr.field import FR, SUBGROUP_ORDER


# ─────────────────────────────────────────────────────────────────────
# 곡선 상수
# ─────────────────────────────────────────────────────────────────────

A = FR(168700)
D = FR(168696)

# circomlib Base8: 소수 위수 부분군의 생성자
BASE8 = (
    FR(5299619240641551281634865583518297030282874472190772894086521144482721001553),
    FR(16950150798460657717958625567821834550301663161624707787222815936182638968203),
)

IDENTITY = (FR(0), FR(1))

# 회로의 고정 기저 곱셈이 소비하는 s의 비트 폭
FIXED_BASE_BITS = 253


def _as_point(point):
    x, y = point
    return (x if isinstance(x, FR) else FR(int(x)),
            y if isinstance(y, FR) else FR(int(y)))


# ─────────────────────────────────────────────────────────────────────
# 곡선 멤버십
# ─────────────────────────────────────────────────────────────────────

def is_on_curve(point):
    """(x, y)가 a·x² + y² = 1 + d·x²·y² 를 만족하는지 확인한다."""
    try:
        x, y = _as_point(point)
    except (TypeError, ValueError):
        return False
    x2 = x * x
    y2 = y * y
    return A * x2 + y2 == FR(1) + D * x2 * y2


def check_point(point):
    """BabyCheck: 곡선 위의 점이 아니면 InvalidCurvePoint.

    Returns:
        FR 튜플로 정규화된 점
    """
    if not is_on_curve(point):
        raise InvalidCurvePoint(point)
    return _as_point(point)


def in_subgroup(point):
    """n·P == 항등원 이면 소수 위수 부분군에 속한다."""
    return is_on_curve(point) and ec_mul(point, SUBGROUP_ORDER) == IDENTITY


def check_subgroup(point):
    """곡선 위의 점이면서 소수 위수 부분군에 속하는지 확인한다."""
    point = check_point(point)
    if ec_mul(point, SUBGROUP_ORDER) != IDENTITY:
        raise InvalidCurvePoint(point, "not in the prime-order subgroup (n*P != identity)")
    return point


def is_identity(point):
    return _as_point(point) == IDENTITY


# ─────────────────────────────────────────────────────────────────────
# 군 연산
# ─────────────────────────────────────────────────────────────────────

def ec_add(p1, p2):
    """트위스티드 에드워즈 통합(unified) 덧셈: p1 + p2.

    분모가 0이면 (곡선 밖의 입력에서만 가능) DivisionByZero가 전파된다.
    """
    x1, y1 = _as_point(p1)
    x2, y2 = _as_point(p2)
    x1x2 = x1 * x2
    y1y2 = y1 * y2
    tau = D * x1x2 * y1y2
    x3 = (x1 * y2 + y1 * x2) / (FR(1) + tau)
    y3 = (y1y2 - A * x1x2) / (FR(1) - tau)
    return (x3, y3)


def ec_double(point):
    return ec_add(point, point)


def ec_neg(point):
    """에드워즈 곡선의 역원: -(x, y) = (-x, y)."""
    x, y = _as_point(point)
    return (-x, y)


def ec_mul(point, scalar):
    """가변 기저 스칼라 곱셈 scalar · point (LSB부터 double-and-add).

    Args:
        point: 곡선 위의 점
        scalar: 음이 아닌 정수, FR, 또는 Scalar. n으로 축소하지 않는다.

    Returns:
        scalar · point
    """
    k = int(scalar)
    if k < 0:
        raise ValueError(f"scalar must be non-negative: {k}")
    result = IDENTITY
    temp = _as_point(point)
    while k:
        if k & 1:
            result = ec_add(result, temp)
        k >>= 1
        if k:
            temp = ec_double(temp)
    return result


@lru_cache(maxsize=None)
def fixed_base_table(bits=FIXED_BASE_BITS):
    """고정 기저 테이블 [G, 2G, 4G, ..., 2^(bits-1)·G] (G = BASE8).

    회로의 고정 기저 곱셈 가젯도 같은 테이블을 상수로 사용한다.
    """
    table = [BASE8]
    for _ in range(bits - 1):
        table.append(ec_double(table[-1]))
    return tuple(table)


def base_mul(scalar):
    """고정 기저 스칼라 곱셈 scalar · BASE8.

    테이블 범위를 넘는 스칼라는 ec_mul로 처리한다 (결과는 동일).
    """
    k = int(scalar)
    if k < 0:
        raise ValueError(f"scalar must be non-negative: {k}")
    if k >> FIXED_BASE_BITS:
        return ec_mul(BASE8, k)
    table = fixed_base_table()
    result = IDENTITY
    i = 0
    while k:
        if k & 1:
            result = ec_add(result, table[i])
        k >>= 1
        i += 1
    return result
