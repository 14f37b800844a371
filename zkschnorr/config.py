"""
파이프라인 설정
================

외부 증명 도구 경로와 산출물 디렉터리를 담는다.
기본값 위에 ZKSCHNORR_* 환경 변수를 덮어쓴다:

  | 필드           | 환경 변수                  | 기본값                 |
  |----------------|----------------------------|------------------------|
  | build_dir      | ZKSCHNORR_BUILD_DIR        | build                  |
  | circuit_name   | ZKSCHNORR_CIRCUIT_NAME     | schnorr                |
  | ptau_path      | ZKSCHNORR_PTAU             | (없음, 운영자가 제공)  |
  | circomlib_path | ZKSCHNORR_CIRCOMLIB        | node_modules/circomlib/circuits |
  | circom_bin     | ZKSCHNORR_CIRCOM           | circom                 |
  | snarkjs_bin    | ZKSCHNORR_SNARKJS          | snarkjs                |
  | node_bin       | ZKSCHNORR_NODE             | node                   |
  | db_path        | ZKSCHNORR_DB               | zkschnorr_db.json      |
  | entropy        | ZKSCHNORR_ENTROPY          | (없음 → 매번 OS 난수)  |
"""

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Optional


ENV_PREFIX = "ZKSCHNORR_"

_ENV_NAMES = {
    "build_dir": "BUILD_DIR",
    "circuit_name": "CIRCUIT_NAME",
    "ptau_path": "PTAU",
    "circomlib_path": "CIRCOMLIB",
    "circom_bin": "CIRCOM",
    "snarkjs_bin": "SNARKJS",
    "node_bin": "NODE",
    "db_path": "DB",
    "entropy": "ENTROPY",
}

_PATH_FIELDS = ("build_dir", "ptau_path", "circomlib_path", "db_path")


@dataclass(frozen=True)
class PipelineConfig:
    """증명 파이프라인 설정"""
    build_dir: Path = Path("build")
    circuit_name: str = "schnorr"
    ptau_path: Optional[Path] = None
    circomlib_path: Path = Path("node_modules/circomlib/circuits")

    circom_bin: str = "circom"
    snarkjs_bin: str = "snarkjs"
    node_bin: str = "node"

    db_path: Path = Path("zkschnorr_db.json")
    # zkey 기여 엔트로피. None이면 단계마다 새로 뽑는다
    entropy: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_env(cls, environ=None, **overrides):
        """환경 변수(와 명시적 인자)로 기본값을 덮어쓴 설정."""
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + _ENV_NAMES[f.name])
            if raw:
                values[f.name] = Path(raw) if f.name in _PATH_FIELDS else raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        for name in _PATH_FIELDS:
            if values.get(name) is not None:
                values[name] = Path(values[name])
        return cls(**values)

    def with_overrides(self, **overrides):
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    # ── 산출물 경로 ──

    @property
    def circuit_dir(self):
        return Path(self.build_dir) / self.circuit_name

    def request_dir(self, request_id):
        return Path(self.build_dir) / "requests" / request_id
