"""
Groth16 검증 (py_ecc 페어링)
=============================

snarkjs가 내보낸 verification_key.json / proof.json / public.json을
py_ecc의 bn128 페어링으로 직접 검증한다.

**검증 방정식**:
    vk_x = IC₀ + Σ publicᵢ · IC_{i+1}
    e(A, B) == e(α, β) · e(vk_x, γ) · e(C, δ)

**snarkjs JSON 좌표**:
  - G1: [x, y, z]              (z = "1" 아핀, z = "0" 무한원점)
  - G2: [[x.c0, x.c1], [y.c0, y.c1], [z.c0, z.c1]]
        FQ2 원소 c0 + c1·u 는 py_ecc의 FQ2([c0, c1])와 같은 순서다.

증명 내용은 신뢰할 수 없는 입력이므로 형식 오류, 곡선 밖의 점, 범위를 벗어난
공개 신호, 공개 입력 개수 불일치는 예외 대신 False로 처리한다.
"""

from py_ecc import bn128
from py_ecc.fields import bn128_FQ as FQ, bn128_FQ2 as FQ2


g1 = bn128.G1
g2 = bn128.G2

# Elliptic Curve operations
mult = bn128.multiply
pairing = bn128.pairing
add = bn128.add
is_on_curve = bn128.is_on_curve

CURVE_ORDER = bn128.curve_order
FIELD_MODULUS = bn128.field_modulus


class MalformedProofData(ValueError):
    pass


def _int(v):
    if isinstance(v, bool):
        raise MalformedProofData(f"not an integer: {v!r}")
    if isinstance(v, int):
        n = v
    elif isinstance(v, str) and v.isdigit():
        n = int(v)
    else:
        raise MalformedProofData(f"not a decimal integer: {v!r}")
    return n


def _fq(v):
    n = _int(v)
    if n >= FIELD_MODULUS:
        raise MalformedProofData(f"coordinate out of range: {n}")
    return FQ(n)


def parse_g1(data):
    if not isinstance(data, (list, tuple)) or len(data) not in (2, 3):
        raise MalformedProofData(f"bad G1 point: {data!r}")
    if len(data) == 3:
        z = _int(data[2])
        if z == 0:
            return None
        if z != 1:
            raise MalformedProofData("G1 point is not affine-normalised")
    pt = (_fq(data[0]), _fq(data[1]))
    if not is_on_curve(pt, bn128.b):
        raise MalformedProofData("G1 point not on curve")
    return pt


def _fq2(pair):
    if not isinstance(pair, (list, tuple)) or len(pair) != 2:
        raise MalformedProofData(f"bad FQ2 element: {pair!r}")
    c0, c1 = _int(pair[0]), _int(pair[1])
    if c0 >= FIELD_MODULUS or c1 >= FIELD_MODULUS:
        raise MalformedProofData("FQ2 coefficient out of range")
    return FQ2([c0, c1])


def parse_g2(data):
    if not isinstance(data, (list, tuple)) or len(data) not in (2, 3):
        raise MalformedProofData(f"bad G2 point: {data!r}")
    if len(data) == 3:
        z = _fq2(data[2])
        if z == FQ2.zero():
            return None
        if z != FQ2.one():
            raise MalformedProofData("G2 point is not affine-normalised")
    pt = (_fq2(data[0]), _fq2(data[1]))
    if not is_on_curve(pt, bn128.b2):
        raise MalformedProofData("G2 point not on curve")
    # 트위스트 곡선에는 위수 r이 아닌 점이 있다
    if mult(pt, CURVE_ORDER) is not None:
        raise MalformedProofData("G2 point not in the order-r subgroup")
    return pt


def serialize_g1(pt):
    if pt is None:
        return ["0", "1", "0"]
    return [str(int(pt[0])), str(int(pt[1])), "1"]


def serialize_g2(pt):
    if pt is None:
        return [["0", "0"], ["1", "0"], ["0", "0"]]
    return [
        [str(int(pt[0].coeffs[0])), str(int(pt[0].coeffs[1]))],
        [str(int(pt[1].coeffs[0])), str(int(pt[1].coeffs[1]))],
        ["1", "0"],
    ]


class VerifyingKey:
    """Groth16 검증 키 (snarkjs verification_key.json)."""

    def __init__(self, alpha, beta, gamma, delta, ic):
        self.alpha = alpha
        self.beta = beta
        self.gamma = gamma
        self.delta = delta
        self.ic = list(ic)

    @property
    def n_public(self):
        return len(self.ic) - 1

    @classmethod
    def from_json(cls, data):
        if not isinstance(data, dict):
            raise MalformedProofData("verification key must be a JSON object")
        if data.get("protocol", "groth16") != "groth16":
            raise MalformedProofData(f"unsupported protocol: {data.get('protocol')}")
        if data.get("curve", "bn128") not in ("bn128", "bn254"):
            raise MalformedProofData(f"unsupported curve: {data.get('curve')}")
        try:
            vk = cls(
                parse_g1(data["vk_alpha_1"]),
                parse_g2(data["vk_beta_2"]),
                parse_g2(data["vk_gamma_2"]),
                parse_g2(data["vk_delta_2"]),
                [parse_g1(p) for p in data["IC"]],
            )
        except KeyError as exc:
            raise MalformedProofData(f"verification key is missing {exc}") from exc
        if "nPublic" in data and _int(data["nPublic"]) != vk.n_public:
            raise MalformedProofData("nPublic does not match IC length")
        return vk

    def to_json(self):
        return {
            "protocol": "groth16",
            "curve": "bn128",
            "nPublic": self.n_public,
            "vk_alpha_1": serialize_g1(self.alpha),
            "vk_beta_2": serialize_g2(self.beta),
            "vk_gamma_2": serialize_g2(self.gamma),
            "vk_delta_2": serialize_g2(self.delta),
            "IC": [serialize_g1(p) for p in self.ic],
        }


class Proof:
    """Groth16 증명 (A ∈ G1, B ∈ G2, C ∈ G1)."""

    def __init__(self, a, b, c):
        self.a = a
        self.b = b
        self.c = c

    @classmethod
    def from_json(cls, data):
        if not isinstance(data, dict):
            raise MalformedProofData("proof must be a JSON object")
        if data.get("protocol", "groth16") != "groth16":
            raise MalformedProofData(f"unsupported protocol: {data.get('protocol')}")
        try:
            return cls(parse_g1(data["pi_a"]), parse_g2(data["pi_b"]), parse_g1(data["pi_c"]))
        except KeyError as exc:
            raise MalformedProofData(f"proof is missing {exc}") from exc

    def to_json(self):
        return {
            "pi_a": serialize_g1(self.a),
            "pi_b": serialize_g2(self.b),
            "pi_c": serialize_g1(self.c),
            "protocol": "groth16",
            "curve": "bn128",
        }


def compute_vk_x(vk, public_signals):
    vk_x = vk.ic[0]
    for ic, signal in zip(vk.ic[1:], public_signals):
        vk_x = add(vk_x, mult(ic, signal))
    return vk_x


def verify(vk, public_signals, proof):
    """파싱된 키와 증명에 대한 페어링 검사."""
    if len(public_signals) != vk.n_public:
        return False
    if any(not 0 <= s < CURVE_ORDER for s in public_signals):
        return False
    vk_x = compute_vk_x(vk, public_signals)

    LHS = pairing(proof.b, proof.a)
    RHS = pairing(vk.beta, vk.alpha)
    RHS = (RHS * pairing(vk.gamma, vk_x)) * pairing(vk.delta, proof.c)
    return LHS == RHS


def verify_proof(verification_key, public_signals, proof):
    """snarkjs JSON 객체로 주어진 Groth16 증명을 검증한다.

    Args:
        verification_key: verification_key.json 내용 (dict)
        public_signals: public.json 내용 (10진수 문자열 리스트)
        proof: proof.json 내용 (dict)

    Returns:
        bool: 수락 여부. 형식 오류도 False.
    """
    try:
        vk = VerifyingKey.from_json(verification_key)
        prf = Proof.from_json(proof)
        if not isinstance(public_signals, (list, tuple)):
            return False
        signals = [_int(s) for s in public_signals]
    except MalformedProofData:
        return False
    return verify(vk, signals, prf)
