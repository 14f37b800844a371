"""
증명 파이프라인 (Proof Pipeline)
==================================

회로 소스에서 검증된 Groth16 증명까지의 단계를 순서대로 구동한다.

**단계** (Stage):
  UNCOMPILED → COMPILED → SETUP_DONE → WITNESS_BUILT → PROVED → VERIFIED

  - compile, setup, contribute, export_verification_key: 회로 단위.
    한 번 만든 키를 여러 요청이 공유한다.
  - witness, prove, verify: 요청(request_id) 단위.

**규칙**:
  1. 각 단계는 선행 단계와 입력 산출물을 확인한 뒤에만 실행된다.
  2. 백엔드가 끝나면 출력 산출물이 실제로 있는지 확인하고 나서
     원장(TinyDB)에 전이를 기록한다.
  3. 실패하면 StageFailed(stage, cause)를 던지고 기록된 단계는 그대로 둔다.
     자동 재시도는 없다.
  4. 외부 위트니스 계산기를 부르기 전에 네이티브 제약 시스템으로
     위트니스를 먼저 검사한다.
  5. 같은 위트니스로 다시 증명(prove)하는 것은 허용된다.
  6. prove, verify는 회로가 SETUP_DONE일 때만 실행된다. 다시 컴파일하면
     이전 키를 지우므로 setup부터 다시 해야 한다.

사용 예시:
    >>> from tinydb import TinyDB
    >>> pipeline = ProofPipeline(PipelineConfig.from_env(), SnarkjsBackend(), TinyDB("db.json"))
    >>> pipeline.compile()
    >>> pipeline.setup()
    >>> pipeline.build_witness("req-1", witness_record)
    >>> pipeline.prove("req-1")
    >>> pipeline.verify("req-1")   # True
"""

import enum
import logging
import secrets
import shutil
import tempfile
import time
from pathlib import Path

from tinydb import Query

from zkschnorr.circom import render_circuit
from zkschnorr.config import PipelineConfig
from zkschnorr.errors import ConstraintUnsatisfied, EncodingError, StageFailed, ZkSchnorrError
from zkschnorr.pipeline.artifacts import (
    CircuitArtifacts,
    RequestArtifacts,
    atomic_write_json,
    atomic_write_text,
    check_request_id,
    missing,
    publish,
    read_json,
)
from zkschnorr.pipeline.backend import ProvingBackend, SnarkjsBackend
from zkschnorr.verifier_circuit import check_witness, schnorr_circuit


logger = logging.getLogger(__name__)

LEDGER = Query()


class Stage(enum.Enum):
    UNCOMPILED = "uncompiled"
    COMPILED = "compiled"
    SETUP_DONE = "setup_done"
    WITNESS_BUILT = "witness_built"
    PROVED = "proved"
    VERIFIED = "verified"

    @property
    def rank(self):
        return _ORDER.index(self)

    def __ge__(self, other):
        return self.rank >= other.rank

    def __gt__(self, other):
        return self.rank > other.rank

    def __le__(self, other):
        return self.rank <= other.rank

    def __lt__(self, other):
        return self.rank < other.rank


_ORDER = list(Stage)


class ProofPipeline:
    """단계 순서를 강제하는 증명 파이프라인 코디네이터.

    Args:
        config: PipelineConfig
        backend: ProvingBackend 구현체
        db: TinyDB 인스턴스 (원장). "circuits", "requests", "transitions" 테이블 사용
    """

    def __init__(self, config=None, backend=None, db=None):
        if db is None:
            raise ValueError("ProofPipeline needs a TinyDB ledger")
        self.config = config or PipelineConfig.from_env()
        self.backend = backend or SnarkjsBackend.from_config(self.config)
        if not isinstance(self.backend, ProvingBackend):
            raise TypeError(f"backend must implement ProvingBackend, got {type(self.backend).__name__}")
        self.db = db
        self.circuits = db.table("circuits")
        self.requests = db.table("requests")
        self.transitions = db.table("transitions")
        self.artifacts = CircuitArtifacts(self.config.circuit_dir, self.config.circuit_name)

    # ─── 원장 헬퍼 ───

    def _circuit_row(self):
        rows = self.circuits.search(LEDGER.name == self.config.circuit_name)
        return rows[0] if rows else None

    def _request_row(self, request_id):
        rows = self.requests.search(LEDGER.request_id == request_id)
        return rows[0] if rows else None

    def _record(self, stage, request_id=None, **fields):
        now = time.time()
        if request_id is None:
            row = {"name": self.config.circuit_name, "stage": stage.value, "updated": now}
            row.update(fields)
            self.circuits.upsert(row, LEDGER.name == self.config.circuit_name)
        else:
            row = {"request_id": request_id, "circuit": self.config.circuit_name,
                   "stage": stage.value, "updated": now}
            row.update(fields)
            self.requests.upsert(row, LEDGER.request_id == request_id)
        self.transitions.insert({
            "circuit": self.config.circuit_name,
            "request_id": request_id,
            "stage": stage.value,
            "at": now,
        })
        logger.info("%s%s -> %s", self.config.circuit_name,
                    f"/{request_id}" if request_id else "", stage.value)

    def circuit_stage(self):
        row = self._circuit_row()
        return Stage(row["stage"]) if row else Stage.UNCOMPILED

    def request_stage(self, request_id):
        row = self._request_row(request_id)
        return Stage(row["stage"]) if row else None

    def status(self, request_id=None):
        """현재 단계. request_id가 없거나 아직 위트니스가 없으면 회로 단계."""
        if request_id is not None:
            stage = self.request_stage(request_id)
            if stage is not None:
                return stage
        return self.circuit_stage()

    def history(self, request_id=None):
        if request_id is None:
            rows = self.transitions.search(LEDGER.circuit == self.config.circuit_name)
        else:
            rows = self.transitions.search(LEDGER.request_id == request_id)
        return [Stage(r["stage"]) for r in rows]

    def request_paths(self, request_id):
        return RequestArtifacts(self.config.request_dir(check_request_id(request_id)))

    def _paths(self, target, request_id):
        try:
            return self.request_paths(request_id)
        except EncodingError as exc:
            raise StageFailed(target, exc) from exc

    # ─── 전이 검사 ───

    @staticmethod
    def _require(target, current, needed):
        if current is None or current < needed:
            got = current.value if current is not None else "none"
            raise StageFailed(target, ZkSchnorrError(
                f"requires stage '{needed.value}' or later, current stage is '{got}'"
            ))

    @staticmethod
    def _require_files(target, paths):
        absent = missing(paths)
        if absent:
            raise StageFailed(target, ZkSchnorrError(
                "missing input artifacts: " + ", ".join(str(p) for p in absent)
            ))

    def _call(self, target, fn, *args):
        try:
            return fn(*args)
        except (ZkSchnorrError, OSError, ValueError) as exc:
            logger.error("stage %s failed: %s", target.value, exc)
            raise StageFailed(target, exc) from exc

    # ─── 회로 단위 단계 ───

    def compile(self):
        """circom 소스를 내보내고 컴파일한다: UNCOMPILED/… → COMPILED.

        다시 컴파일하면 이전 키는 무효가 되므로 지우고 단계는 COMPILED로 돌아간다.
        prove/verify는 다시 setup할 때까지 실패한다.
        """
        target = Stage.COMPILED
        art = self.artifacts
        include = [self.config.circomlib_path] if self.config.circomlib_path else []

        def run():
            atomic_write_text(art.source, render_circuit())
            work = Path(tempfile.mkdtemp(dir=str(art.root), prefix=".compile-"))
            try:
                self.backend.compile(art.source, work, include)
                produced = [
                    work / art.r1cs.name,
                    work / art.wasm.parent.name / art.wasm.name,
                    work / art.wasm.parent.name / art.witness_generator.name,
                ]
                absent = missing(produced)
                if absent:
                    raise ZkSchnorrError("backend produced no " + ", ".join(p.name for p in absent))
                publish(produced[0], art.r1cs)
                if art.wasm.parent.exists():
                    shutil.rmtree(art.wasm.parent)
                publish(work / art.wasm.parent.name, art.wasm.parent)
                for stale in art.setup_done():
                    if stale.exists():
                        stale.unlink()
            finally:
                shutil.rmtree(work, ignore_errors=True)

        logger.info("compiling circuit %s", self.config.circuit_name)
        self._call(target, run)
        self._record(target, digest=schnorr_circuit().digest)

    def setup(self, ptau_path=None):
        """Groth16 회로별 설정: COMPILED → SETUP_DONE.

        ptau 파일은 운영자가 제공한다 (네트워크에서 받지 않는다).
        """
        target = Stage.SETUP_DONE
        art = self.artifacts
        self._require(target, self.circuit_stage(), Stage.COMPILED)
        self._require_files(target, art.compiled())
        ptau = ptau_path or self.config.ptau_path
        if not ptau:
            raise StageFailed(target, ZkSchnorrError("no powers-of-tau file configured"))
        ptau = Path(ptau)
        self._require_files(target, [ptau])
        entropy = self.config.entropy or secrets.token_hex(32)

        def run():
            work = Path(tempfile.mkdtemp(dir=str(art.root), prefix=".setup-"))
            try:
                zkey0 = work / art.initial_zkey.name
                zkey = work / art.zkey.name
                vkey = work / art.verification_key.name
                self.backend.setup(art.r1cs, ptau, zkey0, zkey, vkey, entropy)
                absent = missing([zkey, vkey])
                if absent:
                    raise ZkSchnorrError("backend produced no " + ", ".join(p.name for p in absent))
                publish(zkey, art.zkey)
                publish(vkey, art.verification_key)
            finally:
                shutil.rmtree(work, ignore_errors=True)

        logger.info("running groth16 setup with %s", ptau)
        self._call(target, run)
        self._record(target, digest=schnorr_circuit().digest)

    def contribute(self, entropy=None):
        """증명 키에 엔트로피를 한 번 더 기여한다 (SETUP_DONE 유지).

        증명 키와 검증 키가 함께 바뀌므로 이전 키로 만든 증명은 더 이상
        기본 검증 키로 검증되지 않는다.
        """
        target = Stage.SETUP_DONE
        art = self.artifacts
        self._require(target, self.circuit_stage(), Stage.SETUP_DONE)
        self._require_files(target, art.setup_done())
        entropy = entropy or self.config.entropy or secrets.token_hex(32)

        def run():
            work = Path(tempfile.mkdtemp(dir=str(art.root), prefix=".contribute-"))
            try:
                zkey = work / art.zkey.name
                vkey = work / art.verification_key.name
                self.backend.contribute(art.zkey, zkey, entropy)
                self.backend.export_verification_key(zkey, vkey)
                absent = missing([zkey, vkey])
                if absent:
                    raise ZkSchnorrError("backend produced no " + ", ".join(p.name for p in absent))
                publish(zkey, art.zkey)
                publish(vkey, art.verification_key)
            finally:
                shutil.rmtree(work, ignore_errors=True)

        logger.info("contributing entropy to %s", art.zkey.name)
        self._call(target, run)
        self._record(target, digest=schnorr_circuit().digest)

    def export_verification_key(self, out_path):
        """현재 증명 키의 검증 키를 out_path로 내보낸다. 단계는 바뀌지 않는다."""
        target = Stage.SETUP_DONE
        art = self.artifacts
        self._require(target, self.circuit_stage(), Stage.SETUP_DONE)
        self._require_files(target, [art.zkey])
        out_path = Path(out_path)

        def run():
            out_path.parent.mkdir(parents=True, exist_ok=True)
            tmp = out_path.parent / f".{out_path.name}.tmp"
            self.backend.export_verification_key(art.zkey, tmp)
            if missing([tmp]):
                raise ZkSchnorrError(f"backend produced no {out_path.name}")
            publish(tmp, out_path)

        self._call(target, run)
        return out_path

    # ─── 요청 단위 단계 ───

    def build_witness(self, request_id, record):
        """위트니스 입력을 기록하고 외부 위트니스를 계산한다: SETUP_DONE → WITNESS_BUILT."""
        target = Stage.WITNESS_BUILT
        paths = self._paths(target, request_id)
        self._require(target, self.circuit_stage(), Stage.SETUP_DONE)
        art = self.artifacts
        self._require_files(target, [art.wasm, art.witness_generator])

        try:
            check_witness(record)
        except (ConstraintUnsatisfied, EncodingError) as exc:
            logger.warning("witness for %s rejected natively: %s", request_id, exc)
            raise StageFailed(target, exc) from exc

        def run():
            atomic_write_json(paths.input, record.to_json())
            tmp = paths.root / ".witness.wtns.tmp"
            self.backend.generate_witness(art.wasm, art.witness_generator, paths.input, tmp)
            if missing([tmp]):
                raise ZkSchnorrError(f"backend produced no {paths.witness.name}")
            publish(tmp, paths.witness)

        self._call(target, run)
        public = [str(v.n) for v in record.public_signals()]
        self._record(target, request_id, public=public)

    def prove(self, request_id):
        """증명 생성: WITNESS_BUILT(또는 이후) → PROVED."""
        target = Stage.PROVED
        paths = self._paths(target, request_id)
        self._require(target, self.request_stage(request_id), Stage.WITNESS_BUILT)
        self._require(target, self.circuit_stage(), Stage.SETUP_DONE)
        art = self.artifacts
        self._require_files(target, [art.zkey, paths.witness])
        expected = self._request_row(request_id).get("public")

        def run():
            proof_tmp = paths.root / ".proof.json.tmp"
            public_tmp = paths.root / ".public.json.tmp"
            self.backend.prove(art.zkey, paths.witness, proof_tmp, public_tmp)
            absent = missing([proof_tmp, public_tmp])
            if absent:
                raise ZkSchnorrError("backend produced no " + ", ".join(p.name for p in absent))
            produced = [str(v) for v in read_json(public_tmp)]
            if expected is not None and produced != expected:
                raise ZkSchnorrError("public signals in proof do not match the witness")
            publish(proof_tmp, paths.proof)
            publish(public_tmp, paths.public)

        self._call(target, run)
        self._record(target, request_id, public=expected)

    def verify(self, request_id, vkey_path=None):
        """증명을 검증한다: PROVED → VERIFIED.

        Args:
            vkey_path: 다른 검증 키로 검증할 때 (기본: setup 산출물)

        Returns:
            bool: 수락 여부. 거부되면 단계는 PROVED에 머문다.
        """
        target = Stage.VERIFIED
        paths = self._paths(target, request_id)
        self._require(target, self.request_stage(request_id), Stage.PROVED)
        self._require(target, self.circuit_stage(), Stage.SETUP_DONE)
        vkey = Path(vkey_path) if vkey_path else self.artifacts.verification_key
        self._require_files(target, [vkey, paths.public, paths.proof])

        accepted = self._call(target, self.backend.verify, vkey, paths.public, paths.proof)
        if not accepted:
            logger.warning("proof for %s rejected by %s", request_id, vkey)
            return False
        row = self._request_row(request_id)
        self._record(target, request_id, public=row.get("public"))
        return True

    def run(self, request_id, record, ptau_path=None):
        """필요한 단계만 골라 끝까지 실행한다."""
        if self.circuit_stage() < Stage.COMPILED or missing(self.artifacts.compiled()):
            self.compile()
        if self.circuit_stage() < Stage.SETUP_DONE or missing(self.artifacts.setup_done()):
            self.setup(ptau_path)
        self.build_witness(request_id, record)
        self.prove(request_id)
        return self.verify(request_id)


__all__ = [
    "Stage",
    "ProofPipeline",
    "ProvingBackend",
    "SnarkjsBackend",
    "PipelineConfig",
]
