"""Tests for instruction decoding and disassembly."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from chip8_vm.decode import (
    Decoder,
    DecodeResult,
    Indicator,
    Instruction,
    decode,
    disassemble,
)
from chip8_vm.errors import DecodeError
from chip8_vm.registry import get_registry


class TestInstructionFields:
    """Test nibble field extraction."""

    def test_fields(self):
        inst = decode(0xD12F)
        assert inst.indicator == Indicator.DRW
        assert inst.x == 0x1
        assert inst.y == 0x2
        assert inst.n == 0xF
        assert inst.nn == 0x2F
        assert inst.nnn == 0x12F

    def test_from_bytes(self):
        assert Instruction.from_bytes(0x6A, 0xB3).opcode == 0x6AB3
        assert Instruction.from_bytes(0x6A, 0xB3).x == 0xA

    def test_decode_masks_to_16_bits(self):
        assert decode(0x1_2345).opcode == 0x2345

    def test_immutable(self):
        inst = decode(0x1234)
        with pytest.raises(AttributeError):
            inst.opcode = 0

    def test_str(self):
        assert str(decode(0x00E0)) == "00E0"


class TestDecoderKeys:
    """Test operation key resolution."""

    @pytest.fixture
    def decoder(self):
        return Decoder()

    @pytest.mark.parametrize("word,key", [
        (0x00E0, "OP_CLS"),
        (0x00EE, "OP_RET"),
        (0x1ABC, "OP_JP"),
        (0x2ABC, "OP_CALL"),
        (0x3A12, "OP_SE_IMM"),
        (0x4A12, "OP_SNE_IMM"),
        (0x5AB0, "OP_SE_REG"),
        (0x5AB1, "OP_SE_REG"),
        (0x6A12, "OP_LD_IMM"),
        (0x7A12, "OP_ADD_IMM"),
        (0x8AB0, "OP_LD_REG"),
        (0x8AB1, "OP_OR"),
        (0x8AB2, "OP_AND"),
        (0x8AB3, "OP_XOR"),
        (0x8AB4, "OP_ADD_REG"),
        (0x8AB5, "OP_SUB"),
        (0x8AB6, "OP_SHR"),
        (0x8AB7, "OP_SUBN"),
        (0x8ABE, "OP_SHL"),
        (0x9AB0, "OP_SNE_REG"),
        (0x9AB4, "OP_SNE_REG"),
        (0xA123, "OP_LD_I"),
        (0xB123, "OP_JP_V0"),
        (0xDAB5, "OP_DRW"),
        (0xEA9E, "OP_SKP"),
        (0xEAA1, "OP_SKNP"),
        (0xFA07, "OP_LD_VX_DT"),
        (0xFA0A, "OP_LD_VX_K"),
        (0xFA15, "OP_LD_DT_VX"),
        (0xFA18, "OP_LD_ST_VX"),
        (0xFA1E, "OP_ADD_I"),
        (0xFA33, "OP_LD_BCD"),
        (0xFA55, "OP_LD_MEM_VX"),
        (0xFA65, "OP_LD_VX_MEM"),
    ])
    def test_key(self, decoder, word, key):
        result = decoder.decode(word)
        assert result.valid is True
        assert result.key == key
        assert result.instruction.opcode == word

    @pytest.mark.parametrize("word", [0x0123, 0x8AB8, 0xC0FF, 0xEA00, 0xFAFF])
    def test_unmatched_is_unknown(self, decoder, word):
        result = decoder.decode(word)
        assert result.valid is False
        assert result.key == "OP_UNKNOWN"
        assert result.error == f"Unknown opcode: {word:04X}"

    def test_strict_mode_raises(self):
        with pytest.raises(DecodeError) as exc_info:
            Decoder(strict=True).decode(0x8AB8)
        assert exc_info.value.opcode == 0x8AB8

    def test_strict_mode_still_decodes_valid(self):
        assert Decoder(strict=True).decode(0x00E0).key == "OP_CLS"

    def test_every_key_is_registered(self):
        """Every key the decoder can emit has a registry primitive."""
        assert Decoder.VALID_KEYS == get_registry().get_valid_keys()


class TestDecodeResultDataclass:

    def test_defaults(self):
        result = DecodeResult("OP_CLS", decode(0x00E0))
        assert result.valid is True
        assert result.error is None


class TestDisassemble:

    @pytest.mark.parametrize("word,text", [
        (0x00E0, "CLS"),
        (0x00EE, "RET"),
        (0x1228, "JP 0x228"),
        (0x600A, "LD V0, 0x0A"),
        (0x8014, "ADD V0, V1"),
        (0xA22A, "LD I, 0x22A"),
        (0xD01F, "DRW V0, V1, 15"),
        (0xF30A, "LD V3, K"),
        (0xF233, "LD B, V2"),
        (0xFF65, "LD VF, [I]"),
    ])
    def test_mnemonics(self, word, text):
        assert disassemble(decode(word)) == text

    def test_unknown_renders_as_data(self):
        assert disassemble(decode(0xC0FF)) == "DW 0xC0FF"

    def test_uses_resolved_key(self):
        assert disassemble(decode(0x8014), "OP_ADD_REG") == "ADD V0, V1"
        assert disassemble(decode(0x8014), "OP_UNKNOWN") == "DW 0x8014"

    def test_register_skip_ignores_low_nibble(self):
        assert disassemble(decode(0x5AB1)) == "SE VA, VB"
