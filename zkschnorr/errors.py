"""
zkschnorr 예외 계층
====================

모든 실패는 위반된 불변식(invariant)의 이름을 메시지에 담는다.
로컬 복구는 하지 않는다: 예외는 현재 연산을 중단시키고,
재시도 여부는 호출자가 결정한다.

  ZkSchnorrError
  ├── InvalidCurvePoint      곡선 밖의 점 / 소수 위수 부분군 밖의 점
  ├── DivisionByZero         0의 역원 (ZeroDivisionError 호환)
  ├── RangeViolation         비트 폭을 넘는 스칼라 (ValueError 호환)
  ├── EncodingError          필드 원소로 인코딩할 수 없는 입력 (ValueError 호환)
  ├── ConstraintUnsatisfied  위트니스가 제약 시스템을 만족하지 않음
  ├── BackendError           외부 증명 도구(circom / snarkjs) 실패
  └── StageFailed            파이프라인 단계 실패 (stage, cause)
"""


class ZkSchnorrError(Exception):
    """zkschnorr의 모든 오류의 기반 클래스."""


class InvalidCurvePoint(ZkSchnorrError):
    """(x, y)가 Baby Jubjub 곡선 방정식 또는 부분군 조건을 만족하지 않는다."""

    def __init__(self, point, reason="not on curve a*x^2 + y^2 = 1 + d*x^2*y^2"):
        self.point = point
        self.reason = reason
        super().__init__(f"invalid curve point {_fmt_point(point)}: {reason}")


class DivisionByZero(ZkSchnorrError, ZeroDivisionError):
    """필드 원소 0의 역원을 요구했다."""

    def __init__(self, modulus=None):
        self.modulus = modulus
        msg = "inverse of zero does not exist"
        if modulus is not None:
            msg += f" (mod {modulus})"
        super().__init__(msg)


class RangeViolation(ZkSchnorrError, ValueError):
    """값이 가젯이 가정한 비트 폭(또는 허용 구간)을 벗어났다."""

    def __init__(self, value, bits=None, message=None):
        self.value = value
        self.bits = bits
        if message is None:
            message = f"value {value} does not fit in {bits} bits"
        super().__init__(message)


class EncodingError(ZkSchnorrError, ValueError):
    """메시지나 신호 값을 필드 원소로 단사 매핑할 수 없다."""


class ConstraintUnsatisfied(ZkSchnorrError):
    """위트니스가 제약 시스템의 한 게이트를 위반했다.

    속성:
        gate: 위반된 게이트의 레이블
        reason: 위반 조건 설명
        cause: 원인이 된 하위 예외 (RangeViolation, DivisionByZero 등) 또는 None
    """

    def __init__(self, gate, reason, cause=None):
        self.gate = gate
        self.reason = reason
        self.cause = cause
        super().__init__(f"constraint '{gate}' unsatisfied: {reason}")


class BackendError(ZkSchnorrError):
    """외부 증명 백엔드 호출이 실패했다 (종료 코드 != 0 또는 산출물 누락)."""

    def __init__(self, command, message, returncode=None, stderr=None):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class StageFailed(ZkSchnorrError):
    """파이프라인이 `stage`로 전이하지 못하고 멈췄다."""

    def __init__(self, stage, cause):
        self.stage = stage
        self.cause = cause
        name = getattr(stage, "value", stage)
        super().__init__(f"stage '{name}' failed: {cause}")


def _fmt_point(point):
    try:
        x, y = point
        return f"({int(x)}, {int(y)})"
    except (TypeError, ValueError):
        return repr(point)
