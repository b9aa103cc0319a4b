"""Decoder: E20 instruction decoding into registry keys.

This module turns a raw 16-bit word into a structured ``DecodeResult``
that the registry can execute:

    Raw word -> Decoder -> (operation_key, params) -> Registry -> Execute

Field layout (bit 0 is the least-significant bit, ranges inclusive):

    15..13   opcode
    12..10   regA
     9..7    regB, or regDst for two-register forms
     6..4    regDst for three-register forms
     3..0    func for three-register forms
     6..0    imm7 (sign-extended)
    12..0    imm13 (unsigned)

Every 3-bit opcode is defined, so decoding never fails. Within opcode 000,
function codes outside add/sub/or/and/slt/jr decode to ``OP_NOP``.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Set

from .state import WORD_MASK


class Opcode(IntEnum):
    """Instruction family selected by bits 15-13."""
    ALU = 0b000
    ADDI = 0b001
    J = 0b010
    JAL = 0b011
    LW = 0b100
    SW = 0b101
    JEQ = 0b110
    SLTI = 0b111


class AluFunc(IntEnum):
    """Function code in bits 3-0 of an opcode-000 instruction."""
    ADD = 0b0000
    SUB = 0b0001
    OR = 0b0010
    AND = 0b0011
    SLT = 0b0100
    JR = 0b1000


ALU_KEYS: Dict[AluFunc, str] = {
    AluFunc.ADD: "OP_ADD",
    AluFunc.SUB: "OP_SUB",
    AluFunc.OR: "OP_OR",
    AluFunc.AND: "OP_AND",
    AluFunc.SLT: "OP_SLT",
    AluFunc.JR: "OP_JR",
}


def extract_bits(word: int, low: int, high: int) -> int:
    """Return the unsigned value of bits ``low`` through ``high`` of ``word``.

    Args:
        word: Instruction word
        low: Lowest bit position (0 = LSB)
        high: Highest bit position, inclusive

    Returns:
        Extracted bit field as an unsigned integer
    """
    mask = (1 << (high - low + 1)) - 1
    return (word >> low) & mask


def sign_extend7(value: int) -> int:
    """Sign-extend a 7-bit value to a 16-bit unsigned representation.

    >>> hex(sign_extend7(0x40))
    '0xffc0'
    >>> hex(sign_extend7(0x3F))
    '0x3f'
    """
    if value & 0b1000000:
        value = value | 0xFF80
    return value & WORD_MASK


def to_signed16(value: int) -> int:
    """Interpret an unsigned 16-bit value as two's complement."""
    return value - (1 << 16) if value & 0x8000 else value


@dataclass
class DecodeResult:
    """Result of instruction decode operation.

    Attributes:
        key: Operation key (e.g., "OP_ADDI")
        params: Decoded fields; immediates are already sign-extended
        word: Original 16-bit instruction word
        opcode: Instruction family
    """
    key: str
    params: Dict[str, int]
    word: int
    opcode: Opcode

    def mnemonic(self) -> str:
        """Render the decoded instruction as E20 assembly text."""
        p = self.params
        key = self.key

        if key in ("OP_ADD", "OP_SUB", "OP_OR", "OP_AND", "OP_SLT"):
            name = key[3:].lower()
            return f"{name} ${p['reg_dst']}, ${p['reg_a']}, ${p['reg_b']}"
        if key == "OP_JR":
            return f"jr ${p['reg_a']}"
        if key == "OP_NOP":
            return f".fill {self.word}"
        if key in ("OP_J", "OP_JAL"):
            return f"{key[3:].lower()} {p['imm']}"

        imm = to_signed16(p["imm"])
        if key in ("OP_ADDI", "OP_SLTI"):
            return f"{key[3:].lower()} ${p['reg_dst']}, ${p['reg_a']}, {imm}"
        if key == "OP_LW":
            return f"lw ${p['reg_dst']}, {imm}(${p['reg_a']})"
        if key == "OP_SW":
            return f"sw ${p['reg_b']}, {imm}(${p['reg_a']})"
        # OP_JEQ
        return f"jeq ${p['reg_a']}, ${p['reg_b']}, {imm}"


class Decoder:
    """Bit-exact E20 instruction decoder.

    Attributes:
        VALID_KEYS: Every operation key the decoder can emit
    """

    VALID_KEYS: Set[str] = {
        "OP_ADD",
        "OP_SUB",
        "OP_OR",
        "OP_AND",
        "OP_SLT",
        "OP_JR",
        "OP_NOP",
        "OP_ADDI",
        "OP_J",
        "OP_JAL",
        "OP_LW",
        "OP_SW",
        "OP_JEQ",
        "OP_SLTI",
    }

    def decode(self, word: int) -> DecodeResult:
        """Decode a 16-bit word to operation key and parameters.

        Args:
            word: Instruction word read from memory

        Returns:
            DecodeResult with operation key and parameters
        """
        word &= WORD_MASK
        opcode = Opcode(extract_bits(word, 13, 15))

        if opcode is Opcode.ALU:
            return self._decode_alu(word)

        if opcode in (Opcode.J, Opcode.JAL):
            return DecodeResult(
                f"OP_{opcode.name}",
                {"imm": extract_bits(word, 0, 12)},
                word,
                opcode
            )

        params = {
            "reg_a": extract_bits(word, 10, 12),
            "imm": sign_extend7(extract_bits(word, 0, 6)),
        }
        # SW and JEQ read regB; the others write to the same field
        if opcode in (Opcode.SW, Opcode.JEQ):
            params["reg_b"] = extract_bits(word, 7, 9)
        else:
            params["reg_dst"] = extract_bits(word, 7, 9)

        return DecodeResult(f"OP_{opcode.name}", params, word, opcode)

    def _decode_alu(self, word: int) -> DecodeResult:
        """Decode the three-register group, including JR."""
        params = {
            "reg_a": extract_bits(word, 10, 12),
            "reg_b": extract_bits(word, 7, 9),
            "reg_dst": extract_bits(word, 4, 6),
        }
        func = extract_bits(word, 0, 3)

        try:
            key = ALU_KEYS[AluFunc(func)]
        except ValueError:
            return DecodeResult("OP_NOP", {"func": func}, word, Opcode.ALU)

        return DecodeResult(key, params, word, Opcode.ALU)
