"""
Schnorr Flask Blueprint: 모든 Schnorr 엔드포인트
===================================================

키 쌍, 서명, 검증, 위트니스, 회로, 파이프라인 상태.
모든 응답은 JSON이며 zkschnorr 오류는 400으로 변환한다.
"""

from flask import Blueprint, Response, jsonify, request
from tinydb import Query

from zkschnorr.circom import render_circuit
from zkschnorr.config import PipelineConfig
from zkschnorr.errors import ConstraintUnsatisfied, ZkSchnorrError
from zkschnorr.pipeline import ProofPipeline
from zkschnorr.schnorr import KeyPair, verify
from zkschnorr.verifier_circuit import check_witness, schnorr_circuit
from zkschnorr.witness import build_witness, hash_message, witness_from_signature

from schnorr_serializers import (
    deserialize_fr,
    deserialize_keypair,
    deserialize_point,
    deserialize_signature,
    deserialize_witness,
    serialize_circuit_info,
    serialize_fr,
    serialize_keypair,
    serialize_point,
    serialize_signature,
    serialize_witness,
)

schnorr_bp = Blueprint('schnorr', __name__, url_prefix='/schnorr')

DATA = Query()

# DB는 app.py에서 주입
DB = None


def init_schnorr_bp(db):
    """app.py에서 DB를 주입받는다."""
    global DB
    DB = db


# ─── DB 헬퍼 ───

def _table():
    return DB.table("schnorr")


def db_get(key):
    """DB에서 키로 데이터를 조회한다."""
    result = _table().search(DATA.type == key)
    if not result:
        return None
    return result[0].get("data")


def db_set(key, data):
    """DB에 키로 데이터를 저장한다."""
    _table().upsert({"type": key, "data": data}, DATA.type == key)


def db_remove_prefix(prefix):
    """prefix로 시작하는 모든 키를 삭제한다."""
    _table().remove(DATA.type.test(lambda t: t.startswith(prefix)))


def _body():
    return request.get_json(silent=True) or {}


@schnorr_bp.errorhandler(ZkSchnorrError)
def handle_error(exc):
    return jsonify({"error": str(exc), "type": type(exc).__name__}), 400


# ──────────────────────────────────────────────────────────────
# 키 쌍
# ──────────────────────────────────────────────────────────────

@schnorr_bp.route("/keypair", methods=["GET"])
def get_keypair():
    data = db_get("schnorr.keypair")
    if data is None:
        return jsonify({"error": "no key pair"}), 404
    return jsonify({"public_key": data["public_key"]})


@schnorr_bp.route("/keypair", methods=["POST"])
def create_keypair():
    """키 쌍 생성. private_key를 주면 그 키로부터 유도한다."""
    body = _body()
    if body.get("private_key") is not None:
        keypair = KeyPair.from_private_key(int(deserialize_fr(body["private_key"])))
    else:
        keypair = KeyPair.generate()
    db_remove_prefix("schnorr.")
    db_set("schnorr.keypair", serialize_keypair(keypair))
    return jsonify({"public_key": serialize_point(keypair.public_key)})


@schnorr_bp.route("/keypair/clear", methods=["POST"])
def clear_keypair():
    db_remove_prefix("schnorr.")
    return jsonify({"cleared": True})


# ──────────────────────────────────────────────────────────────
# 서명 / 검증
# ──────────────────────────────────────────────────────────────

@schnorr_bp.route("/sign", methods=["POST"])
def sign_message():
    """저장된 키로 메시지에 서명하고 위트니스를 저장한다."""
    keypair = deserialize_keypair(db_get("schnorr.keypair"))
    if keypair is None:
        return jsonify({"error": "no key pair"}), 409
    message = _body().get("message")
    record = build_witness(keypair, message)
    db_set("schnorr.message", message)
    db_set("schnorr.witness", serialize_witness(record))
    return jsonify({
        "msgHash": serialize_fr(record.msg_hash),
        "signature": serialize_signature(record.signature),
        "public_key": serialize_point(record.public_key),
    })


@schnorr_bp.route("/verify", methods=["POST"])
def verify_signature():
    """서명 검증. 빠진 값은 저장된 키/위트니스로 채운다."""
    body = _body()
    stored = db_get("schnorr.witness")

    if body.get("public_key") is not None:
        public_key = deserialize_point(body["public_key"])
    elif stored is not None:
        public_key = deserialize_witness(stored).public_key
    else:
        return jsonify({"error": "public_key is required"}), 400

    if body.get("message") is not None:
        msg_hash = hash_message(body["message"])
    elif body.get("msgHash") is not None:
        msg_hash = deserialize_fr(body["msgHash"])
    elif stored is not None:
        msg_hash = deserialize_witness(stored).msg_hash
    else:
        return jsonify({"error": "message or msgHash is required"}), 400

    if body.get("signature") is not None:
        signature = deserialize_signature(body["signature"])
    elif stored is not None:
        signature = deserialize_witness(stored).signature
    else:
        return jsonify({"error": "signature is required"}), 400

    return jsonify({
        "valid": verify(public_key, msg_hash, signature),
        "msgHash": serialize_fr(msg_hash),
    })


# ──────────────────────────────────────────────────────────────
# 위트니스 / 회로
# ──────────────────────────────────────────────────────────────

@schnorr_bp.route("/witness", methods=["GET"])
def get_witness():
    data = db_get("schnorr.witness")
    if data is None:
        return jsonify({"error": "no witness"}), 404
    return jsonify(data)


@schnorr_bp.route("/circuit", methods=["GET"])
def circuit_info():
    limit = request.args.get("gates", default=0, type=int)
    return jsonify(serialize_circuit_info(schnorr_circuit(), gate_limit=max(limit, 0)))


@schnorr_bp.route("/circuit/source", methods=["GET"])
def circuit_source():
    return Response(render_circuit(), mimetype="text/plain")


@schnorr_bp.route("/circuit/check", methods=["POST"])
def circuit_check():
    """위트니스(본문 또는 저장된 것)가 검증 회로를 만족하는지 확인한다."""
    body = _body()
    if body.get("witness") is not None:
        record = deserialize_witness(body["witness"])
    elif body.get("signature") is not None:
        if body.get("public_key") is None or body.get("msgHash") is None:
            return jsonify({"error": "public_key and msgHash are required with signature"}), 400
        record = witness_from_signature(
            deserialize_point(body.get("public_key")),
            deserialize_fr(body.get("msgHash")),
            deserialize_signature(body["signature"]),
        )
    elif db_get("schnorr.witness") is not None:
        record = deserialize_witness(db_get("schnorr.witness"))
    else:
        return jsonify({"error": "no witness"}), 400

    try:
        check_witness(record)
    except ConstraintUnsatisfied as exc:
        return jsonify({"satisfied": False, "gate": exc.gate, "reason": exc.reason})
    return jsonify({
        "satisfied": True,
        "public": [serialize_fr(v) for v in record.public_signals()],
    })


# ──────────────────────────────────────────────────────────────
# 파이프라인
# ──────────────────────────────────────────────────────────────

@schnorr_bp.route("/pipeline/status", methods=["GET"])
def pipeline_status():
    pipeline = ProofPipeline(PipelineConfig.from_env(), db=DB)
    request_id = request.args.get("request_id")
    return jsonify({
        "circuit": pipeline.config.circuit_name,
        "request_id": request_id,
        "stage": pipeline.status(request_id).value,
    })
