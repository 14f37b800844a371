"""
Schnorr 검증 회로
==================

공개 입력 (pkX, pkY, msgHash)와 비공개 입력 (s, e)에 대해 다음을 강제한다:

  1. (pkX, pkY)가 곡선 위의 점
  2. s < 2^253,  e < 2^254                  (비트 분해)
  3. R' = s·G + e·PK                        (고정 기저 + 가변 기저 곱셈, 덧셈)
  4. Poseidon(R'.x, pkX, pkY, msgHash) == e

schnorr.verify와 정확히 같은 조건이므로, 네이티브로 수락되는 위트니스는
회로를 만족하고 네이티브로 거부되는 위트니스는 회로를 만족하지 않는다.
"""

from functools import lru_cache

from zkschnorr.babyjub import fixed_base_table
from zkschnorr.circuit import CircuitBuilder
from zkschnorr.gadgets import (
    assert_on_curve,
    edwards_add,
    fixed_base_mul,
    num2bits,
    poseidon,
    variable_base_mul,
)
from zkschnorr.schnorr import E_BITS, S_BITS


CIRCUIT_NAME = "schnorr"


@lru_cache(maxsize=None)
def schnorr_circuit():
    """Schnorr 검증 제약 시스템 (한 번만 만들어 공유한다)."""
    b = CircuitBuilder(CIRCUIT_NAME)
    pk_x = b.public_input("pkX")
    pk_y = b.public_input("pkY")
    msg_hash = b.public_input("msgHash")
    s = b.private_input("s")
    e = b.private_input("e")

    with b.scope("pk_on_curve"):
        assert_on_curve(b, pk_x, pk_y)
    with b.scope("s_bits"):
        s_bits = num2bits(b, s, S_BITS)
    with b.scope("e_bits"):
        e_bits = num2bits(b, e, E_BITS)
    with b.scope("s_mul_g"):
        s_g = fixed_base_mul(b, s_bits, fixed_base_table(S_BITS))
    with b.scope("e_mul_pk"):
        e_pk = variable_base_mul(b, e_bits, (pk_x, pk_y))
    with b.scope("r_prime"):
        r_prime = edwards_add(b, s_g, e_pk)
    with b.scope("challenge"):
        e_prime = poseidon(b, [r_prime[0], pk_x, pk_y, msg_hash])
    b.assert_equal(e_prime, e, name="challenge_matches")
    return b.build()


def check_witness(record):
    """위트니스가 검증 회로를 만족하는지 확인한다.

    Returns:
        list[FR]: 만족하는 배선 할당

    Raises:
        ConstraintUnsatisfied: 처음으로 위반된 게이트
        EncodingError: 신호 누락
    """
    return schnorr_circuit().evaluate(record)


def is_valid_witness(record):
    return schnorr_circuit().is_satisfied(record)
