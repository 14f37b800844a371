"""
Groth16 검증 테스트

신뢰 설정 없이 페어링 방정식을 만족하는 합성 벡터를 만든다:
    α = a·G1, β = b·G2, γ = g·G2, δ = d·G2, ICᵢ = icᵢ·G1
    A = x·G1, B = y·G2
    C = c·G1,  c = (x·y - a·b - vk_x·g) / d   (mod r)
"""
import pytest

from zkschnorr import groth16
from zkschnorr.groth16 import (
    MalformedProofData, Proof, VerifyingKey,
    parse_g1, parse_g2, serialize_g1, serialize_g2, verify, verify_proof,
)


R = groth16.CURVE_ORDER
G1 = groth16.g1
G2 = groth16.g2

ALPHA, BETA, GAMMA, DELTA = 11, 13, 17, 19
IC = [23, 29, 31, 37]
X, Y = 41, 43
PUBLIC = [5, 7, 9]


def _synthetic(public):
    vk_x = (IC[0] + sum(s * ic for s, ic in zip(public, IC[1:]))) % R
    c = (X * Y - ALPHA * BETA - vk_x * GAMMA) * pow(DELTA, R - 2, R) % R
    vk = VerifyingKey(
        groth16.mult(G1, ALPHA),
        groth16.mult(G2, BETA),
        groth16.mult(G2, GAMMA),
        groth16.mult(G2, DELTA),
        [groth16.mult(G1, k) for k in IC],
    )
    proof = Proof(groth16.mult(G1, X), groth16.mult(G2, Y), groth16.mult(G1, c))
    return vk, proof


@pytest.fixture(scope="module")
def vector():
    vk, proof = _synthetic(PUBLIC)
    return vk.to_json(), [str(s) for s in PUBLIC], proof.to_json()


class TestSerialization:
    def test_g1_round_trip(self):
        pt = groth16.mult(G1, 5)
        assert parse_g1(serialize_g1(pt)) == pt

    def test_g1_infinity(self):
        assert parse_g1(["0", "1", "0"]) is None
        assert serialize_g1(None) == ["0", "1", "0"]

    def test_g2_round_trip(self):
        pt = groth16.mult(G2, 7)
        assert parse_g2(serialize_g2(pt)) == pt

    def test_g1_off_curve(self):
        with pytest.raises(MalformedProofData):
            parse_g1(["1", "3", "1"])

    def test_g1_not_normalised(self):
        pt = serialize_g1(G1)
        pt[2] = "2"
        with pytest.raises(MalformedProofData):
            parse_g1(pt)

    def test_non_decimal_coordinate(self):
        with pytest.raises(MalformedProofData):
            parse_g1(["0x1", "2", "1"])

    def test_vk_json(self, vector):
        vk_json, _, _ = vector
        assert vk_json["nPublic"] == 3
        assert len(vk_json["IC"]) == 4
        assert VerifyingKey.from_json(vk_json).n_public == 3

    def test_vk_unsupported_protocol(self, vector):
        vk_json = dict(vector[0], protocol="plonk")
        with pytest.raises(MalformedProofData):
            VerifyingKey.from_json(vk_json)

    def test_vk_npublic_mismatch(self, vector):
        vk_json = dict(vector[0], nPublic=2)
        with pytest.raises(MalformedProofData):
            VerifyingKey.from_json(vk_json)


class TestVerify:
    def test_valid(self, vector):
        assert verify_proof(*vector)

    def test_tampered_public_signal(self, vector):
        vk_json, public, proof_json = vector
        assert not verify_proof(vk_json, ["6", "7", "9"], proof_json)

    def test_different_delta(self, vector):
        vk_json, public, proof_json = vector
        vk_json = dict(vk_json, vk_delta_2=serialize_g2(groth16.mult(G2, DELTA + 1)))
        assert not verify_proof(vk_json, public, proof_json)

    def test_signal_count_mismatch(self, vector):
        vk_json, public, proof_json = vector
        assert not verify_proof(vk_json, public[:2], proof_json)
        assert not verify_proof(vk_json, public + ["1"], proof_json)

    def test_signal_out_of_range(self, vector):
        vk_json, _, proof_json = vector
        assert not verify_proof(vk_json, [str(5 + R), "7", "9"], proof_json)

    @pytest.mark.parametrize("public", [None, "5,7,9", [5.0, 7, 9], ["a", "7", "9"]])
    def test_malformed_public(self, vector, public):
        vk_json, _, proof_json = vector
        assert not verify_proof(vk_json, public, proof_json)

    def test_malformed_proof(self, vector):
        vk_json, public, proof_json = vector
        assert not verify_proof(vk_json, public, {"pi_a": ["1", "2"]})
        assert not verify_proof(vk_json, public, dict(proof_json, pi_c=["1", "3", "1"]))
        assert not verify_proof(vk_json, public, "not json")

    def test_malformed_key(self, vector):
        _, public, proof_json = vector
        assert not verify_proof({}, public, proof_json)
        assert not verify_proof([], public, proof_json)

    def test_parsed_objects(self):
        vk, proof = _synthetic([1, 2, 3])
        assert verify(vk, [1, 2, 3], proof)
