"""
위트니스 빌더
==============

메시지와 키 쌍으로부터 회로가 소비하는 신호 할당을 만든다.

**신호** (회로 선언 순서):
  | 신호     | 공개 여부 | 내용                        |
  |----------|-----------|-----------------------------|
  | pkX, pkY | public    | 공개키 좌표                 |
  | msgHash  | public    | SHA-256(message) LE mod p   |
  | s        | private   | 서명 응답                   |
  | e        | private   | 서명 챌린지                 |

**JSON 형식** (외부 위트니스 계산기 입력):
  {"pkX": "...", "pkY": "...", "msgHash": "...", "s": "...", "e": "..."}
  모든 값은 [0, p) 범위의 10진수 문자열이다.
"""

import hashlib
from collections.abc import Mapping

from zkschnorr.babyjub import check_subgroup
from zkschnorr.errors import EncodingError, ZkSchnorrError
from zkschnorr.field import FR, CURVE_ORDER, parse_signal
from zkschnorr.pipeline.artifacts import atomic_write_json
from zkschnorr.schnorr import Signature, sign, verify


PUBLIC_SIGNALS = ("pkX", "pkY", "msgHash")
PRIVATE_SIGNALS = ("s", "e")
SIGNAL_ORDER = PUBLIC_SIGNALS + PRIVATE_SIGNALS


def hash_message(message):
    """메시지를 필드 원소로 매핑한다: SHA-256 다이제스트를 LE 정수로 읽고 p로 축소.

    Args:
        message: bytes 또는 str (UTF-8로 인코딩)

    Raises:
        EncodingError: bytes/str가 아니거나 UTF-8로 인코딩할 수 없는 경우
    """
    if isinstance(message, str):
        try:
            data = message.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise EncodingError(f"message is not encodable as UTF-8: {exc}") from exc
    elif isinstance(message, (bytes, bytearray, memoryview)):
        data = bytes(message)
    else:
        raise EncodingError(
            f"message must be bytes or str, got {type(message).__name__}"
        )
    digest = hashlib.sha256(data).digest()
    return FR(int.from_bytes(digest, "little") % CURVE_ORDER)


class WitnessRecord(Mapping):
    """회로 입력 신호 할당 (불변 매핑: 신호 이름 → FR).

    ConstraintSystem.evaluate()에 그대로 넘길 수 있다.
    """

    def __init__(self, pk_x, pk_y, msg_hash, s, e):
        self._values = {
            "pkX": FR(int(pk_x)),
            "pkY": FR(int(pk_y)),
            "msgHash": FR(int(msg_hash)),
            "s": FR(int(s)),
            "e": FR(int(e)),
        }

    def __getitem__(self, name):
        return self._values[name]

    def __iter__(self):
        return iter(SIGNAL_ORDER)

    def __len__(self):
        return len(SIGNAL_ORDER)

    @property
    def public_key(self):
        return (self._values["pkX"], self._values["pkY"])

    @property
    def msg_hash(self):
        return self._values["msgHash"]

    @property
    def signature(self):
        return Signature(self._values["s"], self._values["e"])

    def public_signals(self):
        """[pkX, pkY, msgHash] (회로 선언 순서)."""
        return [self._values[name] for name in PUBLIC_SIGNALS]

    def to_json(self):
        return {name: str(self._values[name].n) for name in SIGNAL_ORDER}

    @classmethod
    def from_json(cls, data):
        """10진수 문자열 매핑으로부터 복원한다.

        Raises:
            EncodingError: 신호 누락, 10진수가 아닌 문자열, p 이상의 값
        """
        if not isinstance(data, Mapping):
            raise EncodingError(f"witness must be a JSON object, got {type(data).__name__}")
        missing = [name for name in SIGNAL_ORDER if name not in data]
        if missing:
            raise EncodingError(f"witness is missing signals: {', '.join(missing)}")
        parsed = {name: parse_signal(name, data[name]) for name in SIGNAL_ORDER}
        return cls(parsed["pkX"], parsed["pkY"], parsed["msgHash"], parsed["s"], parsed["e"])

    def __repr__(self):
        return f"WitnessRecord(msgHash={self.msg_hash.n})"


def witness_from_signature(public_key, msg_hash, signature):
    """임의의 (PK, msgHash, 서명)을 검증 없이 위트니스로 묶는다."""
    pk_x, pk_y = public_key
    s, e = signature
    return WitnessRecord(pk_x, pk_y, msg_hash, int(s) % CURVE_ORDER, int(e) % CURVE_ORDER)


def build_witness(keypair, message):
    """메시지에 서명하고 회로 위트니스를 만든다.

    1. 공개키가 곡선 위, 소수 위수 부분군 안에 있는지 확인
    2. msgHash = hash_message(message)
    3. 서명 후 네이티브 검증 (실패하면 위트니스를 만들지 않음)

    Raises:
        InvalidCurvePoint: 공개키가 곡선/부분군 밖인 경우
        EncodingError: 메시지를 인코딩할 수 없는 경우
    """
    public_key = check_subgroup(keypair.public_key)
    msg_hash = hash_message(message)
    signature = sign(keypair.private_key, msg_hash)
    if not verify(public_key, msg_hash, signature):
        raise ZkSchnorrError("freshly produced signature failed native verification")
    return witness_from_signature(public_key, msg_hash, signature)


def write_witness(record, path):
    """위트니스 입력 JSON을 원자적으로 기록한다 (임시 파일 → rename)."""
    return atomic_write_json(path, record.to_json())
