#!/usr/bin/env python3
"""
zkschnorr 명령줄 도구
======================

  zkschnorr keygen   [--private-key N] [--out key.json]
  zkschnorr sign     (--key key.json | --private-key N) --message M [--out input.json]
  zkschnorr verify   (--witness input.json | --public-key X Y (--message M | --msg-hash H) --s S --e E)
  zkschnorr witness  (--key key.json | --private-key N) --message M --out input.json
  zkschnorr check    --witness input.json
  zkschnorr circom   [--out schnorr.circom]
  zkschnorr pipeline {compile,setup,contribute,export-vkey,witness,prove,verify,run,status} ...

종료 코드: 0 성공, 1 검증 거부 / 회로 불만족, 2 오류.
"""

import argparse
import json
import logging
import sys

from tinydb import TinyDB

from zkschnorr.circom import render_circuit
from zkschnorr.config import PipelineConfig
from zkschnorr.errors import ConstraintUnsatisfied, StageFailed, ZkSchnorrError
from zkschnorr.field import FR
from zkschnorr.pipeline import ProofPipeline
from zkschnorr.pipeline.artifacts import atomic_write_json, atomic_write_text, read_json
from zkschnorr.pipeline.backend import SnarkjsBackend
from zkschnorr.schnorr import KeyPair, Signature, verify
from zkschnorr.verifier_circuit import check_witness
from zkschnorr.witness import WitnessRecord, build_witness, hash_message, write_witness


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_ERROR = 2


def _emit(obj):
    print(json.dumps(obj, indent=2))


def _load_keypair(args):
    if args.private_key is not None:
        return KeyPair.from_private_key(int(args.private_key))
    if args.key:
        return KeyPair.from_private_key(int(read_json(args.key)["private_key"]))
    raise ZkSchnorrError("either --key or --private-key is required")


def _keypair_json(keypair):
    return {
        "private_key": str(int(keypair.private_key)),
        "public_key": [str(int(keypair.pk_x)), str(int(keypair.pk_y))],
    }


# ─── 서명 명령 ───

def cmd_keygen(args):
    keypair = KeyPair.from_private_key(int(args.private_key)) if args.private_key else KeyPair.generate()
    data = _keypair_json(keypair)
    if args.out:
        atomic_write_json(args.out, data)
        logger.info("wrote key pair to %s", args.out)
        _emit({"public_key": data["public_key"]})
    else:
        _emit(data)
    return EXIT_OK


def cmd_sign(args):
    record = build_witness(_load_keypair(args), args.message)
    if args.out:
        write_witness(record, args.out)
        logger.info("wrote witness input to %s", args.out)
    _emit({"msgHash": str(record.msg_hash.n), "signature": record.signature.to_dict()})
    return EXIT_OK


def cmd_witness(args):
    record = build_witness(_load_keypair(args), args.message)
    write_witness(record, args.out)
    _emit(record.to_json())
    return EXIT_OK


def cmd_verify(args):
    if args.witness:
        record = WitnessRecord.from_json(read_json(args.witness))
        public_key, msg_hash, signature = record.public_key, record.msg_hash, record.signature
    else:
        if args.public_key is None or args.s is None or args.e is None:
            raise ZkSchnorrError("--public-key, --s and --e are required without --witness")
        public_key = (FR(int(args.public_key[0])), FR(int(args.public_key[1])))
        if args.message is not None:
            msg_hash = hash_message(args.message)
        elif args.msg_hash is not None:
            msg_hash = FR(int(args.msg_hash))
        else:
            raise ZkSchnorrError("--message or --msg-hash is required")
        signature = Signature(int(args.s), int(args.e))
    valid = verify(public_key, msg_hash, signature)
    _emit({"valid": valid})
    return EXIT_OK if valid else EXIT_REJECTED


def cmd_check(args):
    record = WitnessRecord.from_json(read_json(args.witness))
    try:
        check_witness(record)
    except ConstraintUnsatisfied as exc:
        _emit({"satisfied": False, "gate": exc.gate, "reason": exc.reason})
        return EXIT_REJECTED
    _emit({"satisfied": True})
    return EXIT_OK


def cmd_circom(args):
    source = render_circuit()
    if args.out:
        atomic_write_text(args.out, source)
        logger.info("wrote circuit source to %s", args.out)
    else:
        sys.stdout.write(source)
    return EXIT_OK


# ─── 파이프라인 명령 ───

def _pipeline(args):
    config = PipelineConfig.from_env(
        build_dir=args.build_dir,
        ptau_path=args.ptau,
        circomlib_path=args.circomlib,
        db_path=args.db,
    )
    backend = SnarkjsBackend.from_config(config, native_verify=args.native_verify)
    return ProofPipeline(config, backend, TinyDB(config.db_path))


def cmd_pipeline(args):
    pipeline = _pipeline(args)
    action = args.action
    if action == "compile":
        pipeline.compile()
    elif action == "setup":
        pipeline.setup()
    elif action == "contribute":
        pipeline.contribute(args.entropy)
    elif action == "export-vkey":
        out = pipeline.export_verification_key(args.out)
        _emit({"verification_key": str(out)})
        return EXIT_OK
    elif action == "witness":
        pipeline.build_witness(args.request_id, WitnessRecord.from_json(read_json(args.witness)))
    elif action == "prove":
        if args.witness:
            pipeline.build_witness(args.request_id, WitnessRecord.from_json(read_json(args.witness)))
        pipeline.prove(args.request_id)
    elif action == "verify":
        accepted = pipeline.verify(args.request_id, vkey_path=args.vkey)
        _emit({"request_id": args.request_id, "valid": accepted})
        return EXIT_OK if accepted else EXIT_REJECTED
    elif action == "run":
        record = WitnessRecord.from_json(read_json(args.witness))
        accepted = pipeline.run(args.request_id, record)
        _emit({"request_id": args.request_id, "valid": accepted})
        return EXIT_OK if accepted else EXIT_REJECTED
    elif action == "status":
        pass
    else:
        raise ValueError(f"Unknown action: {action}")
    _emit({"request_id": args.request_id, "stage": pipeline.status(args.request_id).value})
    return EXIT_OK


# ─── 인자 파서 ───

def _add_key_args(p):
    p.add_argument("--key", help="Key pair JSON written by keygen")
    p.add_argument("--private-key", help="Private key as a decimal integer")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="zkschnorr",
        description="Schnorr signatures over Baby Jubjub with a Groth16 verification circuit."
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("keygen", help="Generate a key pair")
    p.add_argument("--private-key", help="Derive from this private key instead of random")
    p.add_argument("--out", help="Write the key pair JSON here")
    p.set_defaults(func=cmd_keygen)

    p = sub.add_parser("sign", help="Sign a message")
    _add_key_args(p)
    p.add_argument("--message", required=True)
    p.add_argument("--out", help="Also write the witness input JSON here")
    p.set_defaults(func=cmd_sign)

    p = sub.add_parser("verify", help="Verify a signature natively")
    p.add_argument("--witness", help="Witness input JSON")
    p.add_argument("--public-key", nargs=2, metavar=("X", "Y"))
    p.add_argument("--message")
    p.add_argument("--msg-hash")
    p.add_argument("--s")
    p.add_argument("--e")
    p.set_defaults(func=cmd_verify)

    p = sub.add_parser("witness", help="Sign and write the witness input JSON")
    _add_key_args(p)
    p.add_argument("--message", required=True)
    p.add_argument("--out", required=True)
    p.set_defaults(func=cmd_witness)

    p = sub.add_parser("check", help="Check a witness against the verification circuit")
    p.add_argument("--witness", required=True)
    p.set_defaults(func=cmd_check)

    p = sub.add_parser("circom", help="Print the circom source of the verification circuit")
    p.add_argument("--out")
    p.set_defaults(func=cmd_circom)

    p = sub.add_parser("pipeline", help="Drive circom/snarkjs through the proof stages")
    p.add_argument("action", choices=[
        "compile", "setup", "contribute", "export-vkey", "witness", "prove", "verify", "run", "status",
    ])
    p.add_argument("--request-id", default=None)
    p.add_argument("--witness", help="Witness input JSON (witness, run; optional for prove)")
    p.add_argument("--entropy", help="Contribution entropy (contribute)")
    p.add_argument("--out", help="Verification key destination (export-vkey)")
    p.add_argument("--build-dir")
    p.add_argument("--ptau")
    p.add_argument("--circomlib")
    p.add_argument("--db")
    p.add_argument("--vkey", help="Verify against this verification key instead")
    p.add_argument("--native-verify", action="store_true",
                   help="Verify with the py_ecc pairing check instead of snarkjs")
    p.set_defaults(func=cmd_pipeline)
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.command == "pipeline" and args.action in ("witness", "prove", "verify", "run") and not args.request_id:
        parser.error(f"pipeline {args.action} requires --request-id")
    if args.command == "pipeline" and args.action in ("witness", "run") and not args.witness:
        parser.error(f"pipeline {args.action} requires --witness")
    if args.command == "pipeline" and args.action == "export-vkey" and not args.out:
        parser.error("pipeline export-vkey requires --out")

    try:
        return args.func(args)
    except StageFailed as exc:
        logger.error("%s", exc)
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_ERROR
    except (ZkSchnorrError, ValueError, OSError, KeyError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
