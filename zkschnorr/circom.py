"""
circom 소스 내보내기
=====================

verifier_circuit와 같은 관계를 circom 2 프로그램으로 출력한다.
외부 컴파일러(circom)와 snarkjs가 이 소스로 R1CS, wasm 위트니스 계산기,
Groth16 키를 만든다.

  | 단계           | circomlib 템플릿       |
  |----------------|------------------------|
  | 곡선 검사      | BabyCheck              |
  | s 비트 분해    | Num2Bits(253)          |
  | e 비트 분해    | Num2Bits_strict (254)  |
  | s · G          | EscalarMulFix(253, G)  |
  | e · PK         | EscalarMulAny(254)     |
  | R' = sG + ePK  | BabyAdd                |
  | 챌린지         | Poseidon(4)            |

zkschnorr.poseidon은 circomlib Poseidon(4)와 같은 상수를 쓰므로
네이티브 해시, 회로 가젯, 컴파일된 회로가 같은 e를 계산한다.
"""

from string import Template

from zkschnorr.babyjub import BASE8
from zkschnorr.poseidon import SCHNORR_PARAMS
from zkschnorr.schnorr import E_BITS, S_BITS


CIRCOM_VERSION = "2.1.6"

CIRCOMLIB_INCLUDES = (
    "bitify.circom",
    "babyjub.circom",
    "escalarmulfix.circom",
    "escalarmulany.circom",
    "poseidon.circom",
)


_MAIN_TEMPLATE = Template("""\
template $name() {
    signal input pkX;
    signal input pkY;
    signal input msgHash;
    signal input s;
    signal input e;

    component pkCheck = BabyCheck();
    pkCheck.x <== pkX;
    pkCheck.y <== pkY;

    component sBits = Num2Bits($s_bits);
    sBits.in <== s;
    component eBits = Num2Bits_strict();
    eBits.in <== e;

    var BASE8[2] = [
        $base_x,
        $base_y
    ];
    component sG = EscalarMulFix($s_bits, BASE8);
    for (var i = 0; i < $s_bits; i++) {
        sG.e[i] <== sBits.out[i];
    }

    component ePK = EscalarMulAny($e_bits);
    for (var i = 0; i < $e_bits; i++) {
        ePK.e[i] <== eBits.out[i];
    }
    ePK.p[0] <== pkX;
    ePK.p[1] <== pkY;

    component rPrime = BabyAdd();
    rPrime.x1 <== sG.out[0];
    rPrime.y1 <== sG.out[1];
    rPrime.x2 <== ePK.out[0];
    rPrime.y2 <== ePK.out[1];

    component challenge = Poseidon($n_inputs);
    challenge.inputs[0] <== rPrime.xout;
    challenge.inputs[1] <== pkX;
    challenge.inputs[2] <== pkY;
    challenge.inputs[3] <== msgHash;
    challenge.out === e;
}

component main {public [pkX, pkY, msgHash]} = $name();
""")


def render_circuit(name="Schnorr"):
    """circom 2 소스 문자열을 만든다.

    Args:
        name: 메인 템플릿 이름

    Returns:
        str: circomlib 경로(-l)를 주고 컴파일할 수 있는 소스
    """
    header = [f"pragma circom {CIRCOM_VERSION};", ""]
    header += [f'include "{inc}";' for inc in CIRCOMLIB_INCLUDES]
    main = _MAIN_TEMPLATE.substitute(
        name=name,
        s_bits=S_BITS,
        e_bits=E_BITS,
        n_inputs=SCHNORR_PARAMS.t - 1,
        base_x=BASE8[0].n,
        base_y=BASE8[1].n,
    )
    return "\n".join(header) + "\n\n" + main
