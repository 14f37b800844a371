"""
산출물 배치와 원자적 기록
==========================

  build_dir/<circuit>/                회로 단위 (compile, setup)
      <circuit>.circom
      <circuit>.r1cs
      <circuit>_js/<circuit>.wasm
      <circuit>_js/generate_witness.js
      <circuit>_0000.zkey             setup 직후 (기여 전)
      <circuit>.zkey                  기여 후 증명 키
      verification_key.json

  build_dir/requests/<request_id>/    요청 단위 (witness, prove, verify)
      input.json
      witness.wtns
      proof.json
      public.json

모든 기록은 같은 디렉터리의 임시 파일에 쓴 뒤 os.replace로 교체한다.
읽는 쪽은 완성된 파일 아니면 아무것도 보지 못한다.
"""

import json
import os
import re
import tempfile
from pathlib import Path

from zkschnorr.errors import EncodingError


_REQUEST_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$")


def check_request_id(request_id):
    """요청 ID는 디렉터리 이름으로 안전해야 한다."""
    if not isinstance(request_id, str) or not _REQUEST_ID.match(request_id) or ".." in request_id:
        raise EncodingError(f"invalid request id: {request_id!r}")
    return request_id


class CircuitArtifacts:
    """회로 단위 산출물 경로."""

    def __init__(self, circuit_dir, circuit_name):
        self.root = Path(circuit_dir)
        self.name = circuit_name

    @property
    def source(self):
        return self.root / f"{self.name}.circom"

    @property
    def r1cs(self):
        return self.root / f"{self.name}.r1cs"

    @property
    def wasm(self):
        return self.root / f"{self.name}_js" / f"{self.name}.wasm"

    @property
    def witness_generator(self):
        return self.root / f"{self.name}_js" / "generate_witness.js"

    @property
    def initial_zkey(self):
        return self.root / f"{self.name}_0000.zkey"

    @property
    def zkey(self):
        return self.root / f"{self.name}.zkey"

    @property
    def verification_key(self):
        return self.root / "verification_key.json"

    def compiled(self):
        return [self.r1cs, self.wasm, self.witness_generator]

    def setup_done(self):
        return [self.zkey, self.verification_key]


class RequestArtifacts:
    """요청 단위 산출물 경로."""

    def __init__(self, request_dir):
        self.root = Path(request_dir)

    @property
    def input(self):
        return self.root / "input.json"

    @property
    def witness(self):
        return self.root / "witness.wtns"

    @property
    def proof(self):
        return self.root / "proof.json"

    @property
    def public(self):
        return self.root / "public.json"


def missing(paths):
    """존재하지 않거나 비어 있는 경로 목록."""
    return [p for p in paths if not p.is_file() or p.stat().st_size == 0]


def atomic_write_bytes(path, data):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
    return path


def atomic_write_text(path, text):
    return atomic_write_bytes(path, text.encode("utf-8"))


def atomic_write_json(path, obj):
    return atomic_write_text(path, json.dumps(obj, indent=2) + "\n")


def read_json(path):
    with Path(path).open("r", encoding="utf-8") as f:
        return json.load(f)


def publish(tmp_path, final_path):
    """백엔드가 임시 경로에 만든 파일을 최종 경로로 옮긴다."""
    final_path = Path(final_path)
    final_path.parent.mkdir(parents=True, exist_ok=True)
    os.replace(tmp_path, final_path)
    return final_path
