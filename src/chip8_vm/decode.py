"""Instruction decoding for the CHIP-8 interpreter.

Decoding happens in two stages:

    word -> decode() -> Instruction -> Decoder.decode() -> DecodeResult(key)

``decode`` splits a 16-bit word into its nibble fields and never fails.
``Decoder`` then resolves the instruction to an operation key understood by
the OpcodeRegistry, matching first on the top nibble (Indicator) and then on
N or NN where a family has sub-opcodes. Words that match no family resolve
to OP_UNKNOWN, which the registry executes as a no-op unless strict decoding
is enabled.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Set

from .errors import DecodeError


class Indicator(IntEnum):
    """Top nibble of an instruction word: the opcode family."""
    SYS = 0x0
    JP = 0x1
    CALL = 0x2
    SE_IMM = 0x3
    SNE_IMM = 0x4
    SE_REG = 0x5
    LD_IMM = 0x6
    ADD_IMM = 0x7
    ALU = 0x8
    SNE_REG = 0x9
    LD_I = 0xA
    JP_V0 = 0xB
    RND = 0xC
    DRW = 0xD
    KEY = 0xE
    MISC = 0xF


@dataclass(frozen=True)
class Instruction:
    """Immutable view over one fetched 16-bit instruction word.

    Attributes:
        opcode: Raw 16-bit word
    """
    opcode: int

    @classmethod
    def from_bytes(cls, high: int, low: int) -> "Instruction":
        return cls(((high & 0xFF) << 8) | (low & 0xFF))

    @property
    def indicator(self) -> Indicator:
        return Indicator((self.opcode & 0xF000) >> 12)

    @property
    def x(self) -> int:
        return (self.opcode & 0x0F00) >> 8

    @property
    def y(self) -> int:
        return (self.opcode & 0x00F0) >> 4

    @property
    def n(self) -> int:
        return self.opcode & 0x000F

    @property
    def nn(self) -> int:
        return self.opcode & 0x00FF

    @property
    def nnn(self) -> int:
        return self.opcode & 0x0FFF

    def __str__(self) -> str:
        return f"{self.opcode:04X}"


def decode(word: int) -> Instruction:
    """Split a 16-bit word into an Instruction. Never fails."""
    return Instruction(word & 0xFFFF)


@dataclass
class DecodeResult:
    """Result of resolving an instruction to an operation key.

    Attributes:
        key: Operation key (e.g., "OP_ADD_REG")
        instruction: The decoded instruction
        valid: False when no opcode family matched
        error: Description of the mismatch, if any
    """
    key: str
    instruction: Instruction
    valid: bool = True
    error: Optional[str] = None


# 8XY_ sub-opcodes, indexed by N
_ALU_KEYS = {
    0x0: "OP_LD_REG",
    0x1: "OP_OR",
    0x2: "OP_AND",
    0x3: "OP_XOR",
    0x4: "OP_ADD_REG",
    0x5: "OP_SUB",
    0x6: "OP_SHR",
    0x7: "OP_SUBN",
    0xE: "OP_SHL",
}

# FX__ sub-opcodes, indexed by NN
_MISC_KEYS = {
    0x07: "OP_LD_VX_DT",
    0x0A: "OP_LD_VX_K",
    0x15: "OP_LD_DT_VX",
    0x18: "OP_LD_ST_VX",
    0x1E: "OP_ADD_I",
    0x33: "OP_LD_BCD",
    0x55: "OP_LD_MEM_VX",
    0x65: "OP_LD_VX_MEM",
}

# EX__ sub-opcodes, indexed by NN
_KEY_KEYS = {
    0x9E: "OP_SKP",
    0xA1: "OP_SKNP",
}


class Decoder:
    """Resolves instructions to registry operation keys.

    Attributes:
        strict: Raise DecodeError for unmatched words instead of
            returning an OP_UNKNOWN result
    """

    VALID_KEYS: Set[str] = {
        "OP_CLS", "OP_RET", "OP_JP", "OP_CALL",
        "OP_SE_IMM", "OP_SNE_IMM", "OP_SE_REG", "OP_SNE_REG",
        "OP_LD_IMM", "OP_ADD_IMM",
        "OP_LD_I", "OP_JP_V0", "OP_DRW",
        "OP_UNKNOWN",
    } | set(_ALU_KEYS.values()) | set(_MISC_KEYS.values()) | set(_KEY_KEYS.values())

    def __init__(self, strict: bool = False):
        self.strict = strict

    def decode(self, word: int) -> DecodeResult:
        """Decode a word and resolve its operation key.

        Raises:
            DecodeError: Only in strict mode, for an unmatched word
        """
        inst = decode(word)
        key = self._resolve(inst)
        if key is not None:
            return DecodeResult(key, inst)

        if self.strict:
            raise DecodeError(inst.opcode)
        return DecodeResult(
            "OP_UNKNOWN",
            inst,
            valid=False,
            error=f"Unknown opcode: {inst.opcode:04X}",
        )

    def _resolve(self, inst: Instruction) -> Optional[str]:
        family = inst.indicator

        if family == Indicator.SYS:
            if inst.opcode == 0x00E0:
                return "OP_CLS"
            if inst.opcode == 0x00EE:
                return "OP_RET"
            return None
        if family == Indicator.JP:
            return "OP_JP"
        if family == Indicator.CALL:
            return "OP_CALL"
        if family == Indicator.SE_IMM:
            return "OP_SE_IMM"
        if family == Indicator.SNE_IMM:
            return "OP_SNE_IMM"
        if family == Indicator.SE_REG:
            return "OP_SE_REG"
        if family == Indicator.LD_IMM:
            return "OP_LD_IMM"
        if family == Indicator.ADD_IMM:
            return "OP_ADD_IMM"
        if family == Indicator.ALU:
            return _ALU_KEYS.get(inst.n)
        if family == Indicator.SNE_REG:
            return "OP_SNE_REG"
        if family == Indicator.LD_I:
            return "OP_LD_I"
        if family == Indicator.JP_V0:
            return "OP_JP_V0"
        if family == Indicator.RND:
            # Not part of this instruction set; executes as a no-op.
            return None
        if family == Indicator.DRW:
            return "OP_DRW"
        if family == Indicator.KEY:
            return _KEY_KEYS.get(inst.nn)
        if family == Indicator.MISC:
            return _MISC_KEYS.get(inst.nn)
        return None


_MNEMONICS = {
    "OP_CLS": "CLS",
    "OP_RET": "RET",
    "OP_JP": "JP 0x{nnn:03X}",
    "OP_CALL": "CALL 0x{nnn:03X}",
    "OP_SE_IMM": "SE {vx}, 0x{nn:02X}",
    "OP_SNE_IMM": "SNE {vx}, 0x{nn:02X}",
    "OP_SE_REG": "SE {vx}, {vy}",
    "OP_LD_IMM": "LD {vx}, 0x{nn:02X}",
    "OP_ADD_IMM": "ADD {vx}, 0x{nn:02X}",
    "OP_LD_REG": "LD {vx}, {vy}",
    "OP_OR": "OR {vx}, {vy}",
    "OP_AND": "AND {vx}, {vy}",
    "OP_XOR": "XOR {vx}, {vy}",
    "OP_ADD_REG": "ADD {vx}, {vy}",
    "OP_SUB": "SUB {vx}, {vy}",
    "OP_SHR": "SHR {vx}",
    "OP_SUBN": "SUBN {vx}, {vy}",
    "OP_SHL": "SHL {vx}",
    "OP_SNE_REG": "SNE {vx}, {vy}",
    "OP_LD_I": "LD I, 0x{nnn:03X}",
    "OP_JP_V0": "JP V0, 0x{nnn:03X}",
    "OP_DRW": "DRW {vx}, {vy}, {n}",
    "OP_SKP": "SKP {vx}",
    "OP_SKNP": "SKNP {vx}",
    "OP_LD_VX_DT": "LD {vx}, DT",
    "OP_LD_VX_K": "LD {vx}, K",
    "OP_LD_DT_VX": "LD DT, {vx}",
    "OP_LD_ST_VX": "LD ST, {vx}",
    "OP_ADD_I": "ADD I, {vx}",
    "OP_LD_BCD": "LD B, {vx}",
    "OP_LD_MEM_VX": "LD [I], {vx}",
    "OP_LD_VX_MEM": "LD {vx}, [I]",
}

_DECODER = Decoder()


def disassemble(inst: Instruction, key: Optional[str] = None) -> str:
    """Render an instruction as a conventional CHIP-8 mnemonic.

    Unknown words render as a raw data directive.

    Args:
        inst: Instruction to render
        key: Operation key already resolved for inst (resolved here if None)

    Examples:
        >>> disassemble(decode(0x600A))
        'LD V0, 0x0A'
        >>> disassemble(decode(0x8014), "OP_ADD_REG")
        'ADD V0, V1'
    """
    if key is None:
        key = _DECODER.decode(inst.opcode).key
    template = _MNEMONICS.get(key)
    if template is None:
        return f"DW 0x{inst.opcode:04X}"
    return template.format(
        vx=f"V{inst.x:X}",
        vy=f"V{inst.y:X}",
        n=inst.n,
        nn=inst.nn,
        nnn=inst.nnn,
    )
