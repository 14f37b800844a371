"""
Flask Blueprint (/schnorr) 테스트
"""
import pytest
from tinydb import TinyDB
from tinydb.storages import MemoryStorage

from app import create_app


TEST_PRIVATE_KEY = int("1234567890" * 7)
TEST_MESSAGE = "hello world"


@pytest.fixture
def client():
    app = create_app(TinyDB(storage=MemoryStorage))
    app.config["TESTING"] = True
    with app.test_client() as c:
        yield c


@pytest.fixture
def signed(client):
    """고정 키로 TEST_MESSAGE에 서명한 상태."""
    client.post("/schnorr/keypair", json={"private_key": str(TEST_PRIVATE_KEY)})
    return client.post("/schnorr/sign", json={"message": TEST_MESSAGE}).get_json()


class TestIndex:
    def test_lists_endpoints(self, client):
        data = client.get("/").get_json()
        assert "/schnorr/sign" in data["endpoints"]
        assert "/schnorr/circuit/check" in data["endpoints"]


class TestKeypair:
    def test_missing(self, client):
        assert client.get("/schnorr/keypair").status_code == 404

    def test_create_from_private_key(self, client, keypair):
        resp = client.post("/schnorr/keypair", json={"private_key": str(TEST_PRIVATE_KEY)})
        assert resp.status_code == 200
        expected = [str(keypair.pk_x.n), str(keypair.pk_y.n)]
        assert resp.get_json()["public_key"] == expected
        assert client.get("/schnorr/keypair").get_json()["public_key"] == expected

    def test_private_key_not_returned(self, client):
        client.post("/schnorr/keypair", json={"private_key": str(TEST_PRIVATE_KEY)})
        assert "private_key" not in client.get("/schnorr/keypair").get_json()

    def test_random_keypair(self, client):
        resp = client.post("/schnorr/keypair")
        assert resp.status_code == 200
        assert len(resp.get_json()["public_key"]) == 2

    @pytest.mark.parametrize("bad", ["0", "abc"])
    def test_invalid_private_key(self, client, bad):
        resp = client.post("/schnorr/keypair", json={"private_key": bad})
        assert resp.status_code == 400
        assert "error" in resp.get_json()

    def test_clear(self, signed, client):
        client.post("/schnorr/keypair/clear")
        assert client.get("/schnorr/keypair").status_code == 404
        assert client.get("/schnorr/witness").status_code == 404


class TestSignVerify:
    def test_sign_without_keypair(self, client):
        resp = client.post("/schnorr/sign", json={"message": "hi"})
        assert resp.status_code == 409

    def test_sign_matches_library(self, signed, hello_witness):
        assert signed["msgHash"] == str(hello_witness.msg_hash.n)
        assert signed["signature"] == {
            "s": str(hello_witness["s"].n),
            "e": str(hello_witness["e"].n),
        }

    def test_sign_without_message(self, client):
        client.post("/schnorr/keypair", json={"private_key": "5"})
        resp = client.post("/schnorr/sign", json={})
        assert resp.status_code == 400
        assert resp.get_json()["type"] == "EncodingError"

    def test_stored_witness(self, signed, client, hello_witness):
        assert client.get("/schnorr/witness").get_json() == hello_witness.to_json()

    def test_verify_stored(self, signed, client):
        assert client.post("/schnorr/verify").get_json()["valid"] is True

    def test_verify_explicit(self, signed, client):
        resp = client.post("/schnorr/verify", json={
            "public_key": signed["public_key"],
            "message": TEST_MESSAGE,
            "signature": signed["signature"],
        })
        assert resp.get_json() == {"valid": True, "msgHash": signed["msgHash"]}

    def test_verify_other_message(self, signed, client):
        resp = client.post("/schnorr/verify", json={"message": "tampered"})
        assert resp.get_json()["valid"] is False

    def test_verify_tampered_signature(self, signed, client):
        sig = dict(signed["signature"], s=str(int(signed["signature"]["s"]) ^ 1))
        resp = client.post("/schnorr/verify", json={"signature": sig})
        assert resp.get_json()["valid"] is False

    def test_verify_without_anything(self, client):
        assert client.post("/schnorr/verify", json={}).status_code == 400

    def test_verify_bad_signature_shape(self, signed, client):
        resp = client.post("/schnorr/verify", json={"signature": {"s": "1"}})
        assert resp.status_code == 400


class TestCircuit:
    def test_info(self, client, circuit):
        data = client.get("/schnorr/circuit").get_json()
        assert data["digest"] == circuit.digest
        assert data["public"] == ["pkX", "pkY", "msgHash"]
        assert "gates_table" not in data

    def test_info_with_gates(self, client):
        data = client.get("/schnorr/circuit?gates=3").get_json()
        assert len(data["gates_table"]) == 3
        assert data["gates_table"][0]["label"] == "pk_on_curve/x2"

    def test_source(self, client):
        resp = client.get("/schnorr/circuit/source")
        assert resp.mimetype == "text/plain"
        assert resp.get_data(as_text=True).startswith("pragma circom")

    def test_check_stored(self, signed, client):
        data = client.post("/schnorr/circuit/check").get_json()
        assert data["satisfied"] is True
        assert data["public"][2] == signed["msgHash"]

    def test_check_witness_body(self, client, hello_witness):
        witness = hello_witness.to_json()
        witness["s"] = str(int(witness["s"]) ^ 1)
        data = client.post("/schnorr/circuit/check", json={"witness": witness}).get_json()
        assert data == {"satisfied": False, "gate": "challenge_matches", "reason": "left != right"}

    def test_check_signature_body(self, client, hello_witness):
        data = client.post("/schnorr/circuit/check", json={
            "public_key": [str(hello_witness["pkX"].n), str(hello_witness["pkY"].n)],
            "msgHash": str(hello_witness["msgHash"].n),
            "signature": {"s": str(2**253), "e": str(hello_witness["e"].n)},
        }).get_json()
        assert data["satisfied"] is False
        assert data["gate"] == "s_bits/num2bits"

    def test_check_signature_needs_public_inputs(self, client):
        resp = client.post("/schnorr/circuit/check", json={"signature": {"s": "1", "e": "2"}})
        assert resp.status_code == 400

    def test_check_nothing(self, client):
        assert client.post("/schnorr/circuit/check").status_code == 400

    def test_check_malformed_witness(self, client):
        resp = client.post("/schnorr/circuit/check", json={"witness": {"pkX": "1"}})
        assert resp.status_code == 400
        assert resp.get_json()["type"] == "EncodingError"


class TestPipelineStatus:
    def test_fresh(self, client, tmp_path, monkeypatch):
        monkeypatch.setenv("ZKSCHNORR_BUILD_DIR", str(tmp_path / "build"))
        monkeypatch.delenv("ZKSCHNORR_CIRCUIT_NAME", raising=False)
        data = client.get("/schnorr/pipeline/status?request_id=req-1").get_json()
        assert data == {"circuit": "schnorr", "request_id": "req-1", "stage": "uncompiled"}
