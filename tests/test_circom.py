"""
circom 소스 내보내기 테스트
"""
from zkschnorr.babyjub import BASE8
from zkschnorr.circom import CIRCOM_VERSION, CIRCOMLIB_INCLUDES, render_circuit


class TestRenderCircuit:
    def test_pragma_first(self):
        assert render_circuit().splitlines()[0] == f"pragma circom {CIRCOM_VERSION};"

    def test_includes(self):
        source = render_circuit()
        for inc in CIRCOMLIB_INCLUDES:
            assert f'include "{inc}";' in source

    def test_main_component_public_inputs(self):
        source = render_circuit()
        assert "component main {public [pkX, pkY, msgHash]} = Schnorr();" in source
        assert source.count("component main") == 1

    def test_custom_name(self):
        source = render_circuit(name="MySchnorr")
        assert "template MySchnorr() {" in source
        assert "= MySchnorr();" in source

    def test_bit_widths(self):
        source = render_circuit()
        assert "Num2Bits(253)" in source
        assert "Num2Bits_strict()" in source
        assert "EscalarMulFix(253, BASE8)" in source
        assert "EscalarMulAny(254)" in source

    def test_base_point(self):
        source = render_circuit()
        assert str(BASE8[0].n) in source
        assert str(BASE8[1].n) in source

    def test_challenge_binds_public_inputs(self):
        source = render_circuit()
        assert "challenge.inputs[0] <== rPrime.xout;" in source
        assert "challenge.inputs[3] <== msgHash;" in source
        assert "challenge.out === e;" in source

    def test_challenge_uses_circomlib_poseidon(self):
        source = render_circuit()
        assert 'include "poseidon.circom";' in source
        assert "component challenge = Poseidon(4);" in source
        assert "template Poseidon" not in source

    def test_deterministic(self):
        assert render_circuit() == render_circuit()

    def test_balanced_brackets(self):
        source = render_circuit()
        assert source.count("{") == source.count("}")
        assert source.count("[") == source.count("]")
        assert source.count("(") == source.count(")")

    def test_no_template_placeholders_left(self):
        assert "$" not in render_circuit()

