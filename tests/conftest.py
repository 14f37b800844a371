import sys
import os
import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from tinydb import TinyDB
from tinydb.storages import MemoryStorage

from zkschnorr.schnorr import KeyPair
from zkschnorr.verifier_circuit import schnorr_circuit
from zkschnorr.witness import build_witness


# ── 테스트 상수 ──
TEST_PRIVATE_KEY = int("1234567890" * 7)
TEST_MESSAGE = "hello world"
OTHER_PRIVATE_KEY = 987654321987654321


@pytest.fixture(scope="session")
def keypair():
    """고정 개인키로부터 유도한 키 쌍."""
    return KeyPair.from_private_key(TEST_PRIVATE_KEY)


@pytest.fixture(scope="session")
def other_keypair():
    return KeyPair.from_private_key(OTHER_PRIVATE_KEY)


@pytest.fixture(scope="session")
def hello_witness(keypair):
    """"hello world"에 대한 유효한 위트니스."""
    return build_witness(keypair, TEST_MESSAGE)


@pytest.fixture(scope="session")
def circuit():
    """Schnorr 검증 제약 시스템 (세션 동안 공유)."""
    return schnorr_circuit()


@pytest.fixture
def memory_db():
    """테스트마다 새로 만드는 메모리 TinyDB."""
    db = TinyDB(storage=MemoryStorage)
    yield db
    db.close()
