"""
Schnorr 데이터 직렬화/역직렬화 헬퍼
=====================================

TinyDB와 JSON 응답에 저장 가능한 형태로 Schnorr 객체를 변환한다.
FR, Baby Jubjub 점, KeyPair, Signature, WitnessRecord, ConstraintSystem 요약.
"""

from zkschnorr.errors import EncodingError
from zkschnorr.field import FR, CURVE_ORDER
from zkschnorr.schnorr import KeyPair, Signature
from zkschnorr.witness import WitnessRecord


# ─── FR ───

def serialize_fr(val):
    """FR → str(int)"""
    return str(int(val))


def deserialize_fr(s):
    """10진수 str(또는 int) → FR. p 이상이면 EncodingError."""
    try:
        n = int(s)
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"not a decimal field element: {s!r}") from exc
    if not 0 <= n < CURVE_ORDER:
        raise EncodingError(f"field element out of range: {n}")
    return FR(n)


# ─── Baby Jubjub point ───

def serialize_point(point):
    """(FR, FR) → [str, str]"""
    if point is None:
        return None
    return [str(int(point[0])), str(int(point[1]))]


def deserialize_point(data):
    """[str, str] → (FR, FR)"""
    if data is None:
        return None
    if not isinstance(data, (list, tuple)) or len(data) != 2:
        raise EncodingError(f"point must be [x, y], got {data!r}")
    return (deserialize_fr(data[0]), deserialize_fr(data[1]))


# ─── KeyPair ───

def serialize_keypair(keypair):
    """KeyPair → {"private_key": str, "public_key": [str, str]} (DB 저장용)"""
    return {
        "private_key": str(int(keypair.private_key)),
        "public_key": serialize_point(keypair.public_key),
    }


def deserialize_keypair(data):
    if data is None:
        return None
    return KeyPair.from_private_key(int(data["private_key"]))


# ─── Signature ───

def serialize_signature(signature):
    return signature.to_dict()


def deserialize_signature(data):
    if not isinstance(data, dict) or "s" not in data or "e" not in data:
        raise EncodingError("signature must be an object with 's' and 'e'")
    try:
        s, e = int(data["s"]), int(data["e"])
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"signature values must be decimal: {data!r}") from exc
    return Signature(s, e)


# ─── WitnessRecord ───

def serialize_witness(record):
    return record.to_json()


def deserialize_witness(data):
    return WitnessRecord.from_json(data)


# ─── ConstraintSystem ───

def serialize_gate(gate):
    """Gate → 표 한 행 (회로 페이지용)"""
    return {
        "kind": gate.kind.value,
        "label": gate.label,
        "inputs": [[[w, str(c)] for w, c in lc.terms] for lc in gate.inputs],
        "outputs": list(gate.outputs),
        "width": gate.width,
    }


def serialize_circuit_info(cs, gate_limit=0):
    """ConstraintSystem 요약. gate_limit > 0 이면 앞쪽 게이트 일부도 포함."""
    info = cs.describe()
    if gate_limit:
        info["gates_table"] = [serialize_gate(g) for g in cs.gates[:gate_limit]]
    return info
