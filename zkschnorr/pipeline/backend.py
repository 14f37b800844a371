"""
증명 백엔드
============

ProvingBackend는 외부 Groth16 도구 체인에 대한 능력(capability) 인터페이스다.
파이프라인은 파일 경로만 주고받으며, 백엔드는 주어진 출력 경로에 산출물을
만들거나 BackendError를 던진다.

  | 연산              | snarkjs / circom 명령                                      |
  |-------------------|------------------------------------------------------------|
  | compile           | circom <src> --r1cs --wasm --sym -l <circomlib> -o <dir>   |
  | setup             | snarkjs groth16 setup → contribute → export_verification_key |
  | contribute        | snarkjs zkey contribute <in.zkey> <out.zkey> -e=<entropy>  |
  | export_verification_key | snarkjs zkey export verificationkey <zkey> <vkey>    |
  | generate_witness  | node generate_witness.js <wasm> <input.json> <wtns>        |
  | prove             | snarkjs groth16 prove <zkey> <wtns> <proof> <public>       |
  | verify            | snarkjs groth16 verify <vkey> <public> <proof>             |
"""

import logging
import subprocess
from pathlib import Path

from zkschnorr.errors import BackendError
from zkschnorr.groth16 import verify_proof
from zkschnorr.pipeline.artifacts import missing, read_json


logger = logging.getLogger(__name__)


class ProvingBackend:
    """외부 증명 시스템 인터페이스. 구현체는 모든 메서드를 제공해야 한다."""

    def compile(self, source_path, out_dir, include_paths=()):
        """circom 소스를 out_dir에 <name>.r1cs, <name>_js/로 컴파일한다."""
        raise NotImplementedError

    def setup(self, r1cs_path, ptau_path, initial_zkey_path, zkey_path, vkey_path, entropy):
        raise NotImplementedError

    def contribute(self, zkey_in_path, zkey_out_path, entropy):
        """기존 증명 키에 엔트로피를 기여해 새 증명 키를 만든다."""
        raise NotImplementedError

    def export_verification_key(self, zkey_path, vkey_path):
        raise NotImplementedError

    def generate_witness(self, wasm_path, generator_path, input_path, witness_path):
        raise NotImplementedError

    def prove(self, zkey_path, witness_path, proof_path, public_path):
        raise NotImplementedError

    def verify(self, vkey_path, public_path, proof_path):
        """증명을 검증한다. 수락하면 True, 거부하면 False."""
        raise NotImplementedError


class SnarkjsBackend(ProvingBackend):
    """circom + snarkjs + node를 subprocess로 구동한다.

    native_verify=True 이면 verify는 snarkjs 대신 py_ecc 페어링 검증
    (zkschnorr.groth16)을 사용한다.
    """

    def __init__(self, circom_bin="circom", snarkjs_bin="snarkjs", node_bin="node",
                 timeout=1800, native_verify=False):
        self.circom_bin = circom_bin
        self.snarkjs_bin = snarkjs_bin
        self.node_bin = node_bin
        self.timeout = timeout
        self.native_verify = native_verify

    @classmethod
    def from_config(cls, config, **kwargs):
        return cls(config.circom_bin, config.snarkjs_bin, config.node_bin, **kwargs)

    # ── subprocess 헬퍼 ──

    def _run(self, cmd):
        cmd = [str(c) for c in cmd]
        logger.debug("running: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError as exc:
            raise BackendError(cmd, f"executable not found: {cmd[0]}") from exc
        except subprocess.TimeoutExpired as exc:
            raise BackendError(cmd, f"{cmd[0]} timed out after {self.timeout}s") from exc
        if result.returncode != 0:
            tail = (result.stderr or result.stdout or "").strip()[-800:]
            raise BackendError(
                cmd,
                f"{Path(cmd[0]).name} exited with code {result.returncode}: {tail}",
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result

    @staticmethod
    def _expect(cmd, paths):
        absent = missing([Path(p) for p in paths])
        if absent:
            raise BackendError(
                cmd, "expected output missing: " + ", ".join(str(p) for p in absent)
            )

    # ── 연산 ──

    def compile(self, source_path, out_dir, include_paths=()):
        source_path = Path(source_path)
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        name = source_path.stem
        cmd = [self.circom_bin, source_path, "--r1cs", "--wasm", "--sym"]
        for inc in include_paths:
            cmd += ["-l", inc]
        cmd += ["-o", out_dir]
        self._run(cmd)
        self._expect(cmd, [
            out_dir / f"{name}.r1cs",
            out_dir / f"{name}_js" / f"{name}.wasm",
            out_dir / f"{name}_js" / "generate_witness.js",
        ])

    def setup(self, r1cs_path, ptau_path, initial_zkey_path, zkey_path, vkey_path, entropy):
        cmd = [self.snarkjs_bin, "groth16", "setup", r1cs_path, ptau_path, initial_zkey_path]
        self._run(cmd)
        self._expect(cmd, [initial_zkey_path])

        self.contribute(initial_zkey_path, zkey_path, entropy)
        self.export_verification_key(zkey_path, vkey_path)

    def contribute(self, zkey_in_path, zkey_out_path, entropy):
        cmd = [self.snarkjs_bin, "zkey", "contribute", zkey_in_path, zkey_out_path,
               "--name=zkschnorr", f"-e={entropy}"]
        self._run(cmd)
        self._expect(cmd, [zkey_out_path])

    def export_verification_key(self, zkey_path, vkey_path):
        cmd = [self.snarkjs_bin, "zkey", "export", "verificationkey", zkey_path, vkey_path]
        self._run(cmd)
        self._expect(cmd, [vkey_path])

    def generate_witness(self, wasm_path, generator_path, input_path, witness_path):
        cmd = [self.node_bin, generator_path, wasm_path, input_path, witness_path]
        self._run(cmd)
        self._expect(cmd, [witness_path])

    def prove(self, zkey_path, witness_path, proof_path, public_path):
        cmd = [self.snarkjs_bin, "groth16", "prove", zkey_path, witness_path, proof_path, public_path]
        self._run(cmd)
        self._expect(cmd, [proof_path, public_path])

    def verify(self, vkey_path, public_path, proof_path):
        if self.native_verify:
            return verify_proof(read_json(vkey_path), read_json(public_path), read_json(proof_path))

        cmd = [str(c) for c in (self.snarkjs_bin, "groth16", "verify", vkey_path, public_path, proof_path)]
        logger.debug("running: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError as exc:
            raise BackendError(cmd, f"executable not found: {cmd[0]}") from exc
        output = (result.stdout or "") + (result.stderr or "")
        if result.returncode == 0 and "OK" in output:
            return True
        if "Invalid proof" in output:
            return False
        raise BackendError(
            cmd, f"snarkjs verify failed with code {result.returncode}: {output.strip()[-800:]}",
            returncode=result.returncode, stderr=result.stderr,
        )
