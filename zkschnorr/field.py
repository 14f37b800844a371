"""
유한체(Finite Field) 모듈
==========================

Schnorr-over-Baby-Jubjub 시스템이 사용하는 두 개의 소수체를 정의한다.

**FR (FieldElement)**:
  bn128(BN254) 곡선의 스칼라 필드. Groth16 회로의 모든 신호(signal),
  Baby Jubjub 좌표, Poseidon 해시 입출력, 챌린지 e, msgHash가 이 필드에 산다.
  - 위수 p ≈ 2^254

**Scalar**:
  Baby Jubjub 소수 위수 부분군의 스칼라 필드 Z_n.
  개인키와 서명 응답 s가 이 필드에 산다.
  - 위수 n ≈ 2^251 (곡선 위수 = 8·n)

두 필드는 서로 다른 모듈러스를 가지므로 명시적 변환 없이 섞어 쓰면 안 된다.
py_ecc의 FQ는 다른 FQ로부터 생성할 때 값을 축소(reduce)하지 않으므로,
여기서는 생성 시 항상 대상 모듈러스로 축소한다.

사용 예시:
    >>> from zkschnorr.field import FR, Scalar
    >>> e = FR(5) / FR(3)
    >>> Scalar(FR(SUBGROUP_ORDER + 1)) == Scalar(1)   # 축소된다
"""

from py_ecc.fields import bn128_FQ as FQ
from py_ecc import bn128

from zkschnorr.errors import DivisionByZero, EncodingError, RangeViolation


# 필드 크기 p (BN254 스칼라 필드 = Baby Jubjub의 기저 필드)
CURVE_ORDER = bn128.curve_order

# Baby Jubjub 소수 위수 부분군의 위수 n
SUBGROUP_ORDER = 2736030358979909402780800718157159386076813972158567259200215660948447373041

# 곡선 전체 위수 = COFACTOR · n
COFACTOR = 8


class _PrimeField(FQ):
    """FQ 위에 생성 시 축소와 0 나눗셈 검사를 추가한 공통 기반."""

    def __init__(self, val):
        if isinstance(val, FQ):
            val = val.n
        super().__init__(val)

    def inverse(self):
        """곱셈 역원. 0이면 DivisionByZero."""
        if self.n == 0:
            raise DivisionByZero(self.field_modulus)
        return type(self)(pow(self.n, self.field_modulus - 2, self.field_modulus))

    def __truediv__(self, other):
        if int(other) % self.field_modulus == 0:
            raise DivisionByZero(self.field_modulus)
        return super().__truediv__(other)

    def __rtruediv__(self, other):
        if self.n == 0:
            raise DivisionByZero(self.field_modulus)
        return super().__rtruediv__(other)


class FR(_PrimeField):
    """bn128 스칼라 필드 위의 유한체 원소 (FieldElement).

    예시:
        >>> x = FR(3)
        >>> x * x          # FR(9)
        >>> FR(1) / FR(3)   # 3의 모듈러 역원
        >>> FR(1) / FR(0)   # DivisionByZero
    """
    field_modulus = CURVE_ORDER


class Scalar(_PrimeField):
    """Baby Jubjub 부분군 스칼라 필드 Z_n 위의 원소."""
    field_modulus = SUBGROUP_ORDER


def parse_signal(name, raw):
    """회로 신호 값을 FR로 읽는다.

    FR, 정수, 10진수 문자열만 받고 값은 [0, p) 안에 있어야 한다.
    실수, bool, 음수는 조용히 절삭하거나 감싸지 않고 거부한다.

    Raises:
        EncodingError: 형식이나 범위가 맞지 않는 경우
    """
    if isinstance(raw, FR):
        return raw
    if isinstance(raw, bool):
        raise EncodingError(f"signal '{name}' must be a decimal string, got {raw!r}")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and raw.isdigit() and raw.isascii():
        value = int(raw)
    else:
        raise EncodingError(f"signal '{name}' must be a decimal string, got {raw!r}")
    if not 0 <= value < CURVE_ORDER:
        raise EncodingError(f"signal '{name}' is not below the field modulus: {value}")
    return FR(value)


def to_bits_le(value, n_bits):
    """정수(또는 필드 원소)를 n_bits 길이의 리틀 엔디안 비트 리스트로 분해한다.

    Raises:
        RangeViolation: value >= 2^n_bits 인 경우
    """
    v = int(value)
    if v < 0 or v >> n_bits:
        raise RangeViolation(v, n_bits)
    return [(v >> i) & 1 for i in range(n_bits)]


def from_bits_le(bits):
    """리틀 엔디안 비트 리스트를 정수로 재조합한다."""
    acc = 0
    for i, b in enumerate(bits):
        acc += int(b) << i
    return acc


def le_bytes(value, length=32):
    """필드 원소를 고정 길이 리틀 엔디안 바이트열로 직렬화한다."""
    return int(value).to_bytes(length, "little")
