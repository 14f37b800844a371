"""
Baby Jubjub 위의 Schnorr 서명
==============================

**서명** (개인키 sk, 메시지 해시 m):
  1. k = derive_nonce(sk, m)                 결정론적 논스
  2. R = k · G
  3. e = Poseidon(R.x, PK.x, PK.y, m)        챌린지 (FR)
  4. s = k - (e mod n) · sk   (mod n)        응답 (Scalar)
  5. 서명 = (s, e)

**검증** (공개키 PK, m, (s, e)):
  1. R' = s · G + e · PK
  2. Poseidon(R'.x, PK.x, PK.y, m) == e 이면 수락

e는 FR에 살고 (Poseidon 출력), s는 Z_n에 산다.
e · PK는 e를 n으로 축소하지 않고 전체 정수로 곱한다. 회로도 e의
254비트 분해로 같은 곱셈을 하므로, 네이티브 검증과 회로 검증은
정확히 같은 (PK, m, 서명) 집합을 수락한다.

**결정론적 논스**:
  k = HMAC-SHA512(key = sk(32바이트 LE), label ‖ m(32바이트 LE) ‖ counter) mod n
  k = 0 이면 counter를 1 올려 다시 도출한다.
  서로 다른 (sk, m) 쌍은 압도적 확률로 서로 다른 k를 얻고,
  같은 (sk, m)을 반복 서명하면 같은 서명이 나온다 (논스 재사용으로 인한
  키 유출이 일어나지 않음).

사용 예시:
    >>> kp = KeyPair.from_private_key(12345)
    >>> sig = sign(kp.private_key, msg_hash)
    >>> verify(kp.public_key, msg_hash, sig)   # True
"""

import hashlib
import hmac
import secrets
from collections import namedtuple

from zkschnorr.babyjub import base_mul, ec_add, ec_mul, is_on_curve
from zkschnorr.errors import RangeViolation
from zkschnorr.field import FR, Scalar, CURVE_ORDER, SUBGROUP_ORDER, le_bytes
from zkschnorr.poseidon import poseidon_hash


NONCE_LABEL = b"zkschnorr.nonce.v1"

# 회로의 비트 분해 폭과 같아야 한다
S_BITS = 253
E_BITS = 254


class KeyPair:
    """Schnorr 키 쌍.

    속성:
        private_key: Scalar sk ∈ [1, n)
        public_key: (FR, FR) 점 PK = sk · G
    """

    def __init__(self, private_key, public_key):
        self.private_key = private_key
        self.public_key = public_key

    @classmethod
    def generate(cls):
        """OS 난수로 새 키 쌍을 생성한다."""
        sk = secrets.randbelow(SUBGROUP_ORDER - 1) + 1
        return cls.from_private_key(sk)

    @classmethod
    def from_private_key(cls, private_key):
        """기존 개인키 스칼라로부터 키 쌍을 유도한다.

        Raises:
            RangeViolation: sk가 [1, n) 밖인 경우
        """
        sk = int(private_key)
        if not 0 < sk < SUBGROUP_ORDER:
            raise RangeViolation(
                sk, message=f"private key must lie in [1, n), got {sk}"
            )
        return cls(Scalar(sk), base_mul(sk))

    @property
    def pk_x(self):
        return self.public_key[0]

    @property
    def pk_y(self):
        return self.public_key[1]

    def __repr__(self):
        return f"KeyPair(public_key=({int(self.pk_x)}, {int(self.pk_y)}))"


class Signature(namedtuple("Signature", ["s", "e"])):
    """Schnorr 서명 (s, e). 생성 후 변경 불가.

    s: 응답 (Scalar), e: 챌린지 (FR)
    """

    __slots__ = ()

    def to_dict(self):
        return {"s": str(int(self.s)), "e": str(int(self.e))}

    @classmethod
    def from_dict(cls, data):
        return cls(Scalar(int(data["s"])), FR(int(data["e"])))


def challenge(r_x, public_key, msg_hash):
    """챌린지 e = Poseidon(R.x, PK.x, PK.y, msgHash)."""
    pk_x, pk_y = public_key
    return poseidon_hash([r_x, pk_x, pk_y, msg_hash])


def derive_nonce(private_key, msg_hash):
    """(sk, msgHash)로부터 결정론적 논스 k ∈ [1, n)을 도출한다."""
    key = le_bytes(private_key)
    m = le_bytes(msg_hash)
    counter = 0
    while True:
        digest = hmac.new(
            key, NONCE_LABEL + m + counter.to_bytes(4, "big"), hashlib.sha512
        ).digest()
        k = int.from_bytes(digest, "little") % SUBGROUP_ORDER
        if k != 0:
            return Scalar(k)
        counter += 1


def sign_with_nonce(private_key, msg_hash, nonce):
    """명시적 논스로 서명한다.

    테스트 전용: 같은 논스를 두 메시지에 재사용하면 개인키가 유출된다.
    """
    sk = Scalar(int(private_key))
    k = Scalar(int(nonce))
    if int(sk) == 0:
        raise RangeViolation(0, message="private key must be non-zero")
    if int(k) == 0:
        raise RangeViolation(0, message="nonce must be non-zero")
    msg_hash = FR(int(msg_hash))
    public_key = base_mul(sk)
    r = base_mul(k)
    e = challenge(r[0], public_key, msg_hash)
    # e는 FR이므로 Z_n으로 명시적으로 축소한 뒤 곱한다
    s = k - Scalar(int(e)) * sk
    return Signature(s, e)


def sign(private_key, msg_hash):
    """메시지 해시에 대한 Schnorr 서명 (결정론적 논스).

    Args:
        private_key: Scalar 또는 정수 sk
        msg_hash: FR 메시지 해시

    Returns:
        Signature(s, e)
    """
    return sign_with_nonce(private_key, msg_hash, derive_nonce(private_key, msg_hash))


def verify(public_key, msg_hash, signature):
    """Schnorr 서명을 검증한다.

    회로와 같은 조건을 검사한다:
      - s, e를 회로 신호처럼 FR 원소로 해석 (p로 축소)
      - s < 2^253 (회로의 고정 기저 곱셈 비트 폭)
      - PK가 곡선 위에 있음 (부분군 검사는 하지 않음)
      - Poseidon(R'.x, PK, msgHash) == e

    e < p < 2^254 이므로 e의 254비트 범위 검사는 항상 통과한다.

    Returns:
        bool: 수락 여부
    """
    s = int(signature.s) % CURVE_ORDER
    e = int(signature.e) % CURVE_ORDER
    if s >> S_BITS:
        return False
    if not is_on_curve(public_key):
        return False
    r_prime = ec_add(base_mul(s), ec_mul(public_key, e))
    return challenge(r_prime[0], public_key, msg_hash) == FR(e)
