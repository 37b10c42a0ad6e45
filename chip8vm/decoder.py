"""
Opcode decoder.

Every 16-bit word decodes to an ``Instruction``: the operand fields are
plain bit slices, and ``op`` names which of the 35 CHIP-8 instructions the
word is. Words that match nothing decode to ``Op.UNKNOWN``.
"""

from dataclasses import dataclass
from enum import Enum


class Op(Enum):
    """Instruction kinds, named after their opcode pattern"""
    CLS = '00E0'
    RET = '00EE'
    SYS = '0nnn'
    JP = '1nnn'
    CALL = '2nnn'
    SE_BYTE = '3xkk'
    SNE_BYTE = '4xkk'
    SE_REG = '5xy0'
    LD_BYTE = '6xkk'
    ADD_BYTE = '7xkk'
    LD_REG = '8xy0'
    OR = '8xy1'
    AND = '8xy2'
    XOR = '8xy3'
    ADD_REG = '8xy4'
    SUB = '8xy5'
    SHR = '8xy6'
    SUBN = '8xy7'
    SHL = '8xyE'
    SNE_REG = '9xy0'
    LD_I = 'Annn'
    JP_V0 = 'Bnnn'
    RND = 'Cxkk'
    DRW = 'Dxyn'
    SKP = 'Ex9E'
    SKNP = 'ExA1'
    LD_VX_DT = 'Fx07'
    LD_VX_K = 'Fx0A'
    LD_DT_VX = 'Fx15'
    LD_ST_VX = 'Fx18'
    ADD_I = 'Fx1E'
    LD_F = 'Fx29'
    LD_B = 'Fx33'
    LD_MEM_VX = 'Fx55'
    LD_VX_MEM = 'Fx65'
    UNKNOWN = '????'


# Families with a single member are identified by the top nibble alone
_BY_NIBBLE = {
    0x1: Op.JP,
    0x2: Op.CALL,
    0x3: Op.SE_BYTE,
    0x4: Op.SNE_BYTE,
    0x6: Op.LD_BYTE,
    0x7: Op.ADD_BYTE,
    0xA: Op.LD_I,
    0xB: Op.JP_V0,
    0xC: Op.RND,
    0xD: Op.DRW,
}

# Second level: whole word for 0, low byte for E/F, low nibble for 5/8/9
_SUB_TABLES = {
    0x0: {0x00E0: Op.CLS, 0x00EE: Op.RET},
    0x5: {0x0: Op.SE_REG},
    0x8: {
        0x0: Op.LD_REG, 0x1: Op.OR, 0x2: Op.AND, 0x3: Op.XOR, 0x4: Op.ADD_REG,
        0x5: Op.SUB, 0x6: Op.SHR, 0x7: Op.SUBN, 0xE: Op.SHL,
    },
    0x9: {0x0: Op.SNE_REG},
    0xE: {0x9E: Op.SKP, 0xA1: Op.SKNP},
    0xF: {
        0x07: Op.LD_VX_DT, 0x0A: Op.LD_VX_K, 0x15: Op.LD_DT_VX, 0x18: Op.LD_ST_VX,
        0x1E: Op.ADD_I, 0x29: Op.LD_F, 0x33: Op.LD_B, 0x55: Op.LD_MEM_VX,
        0x65: Op.LD_VX_MEM,
    },
}

_NIBBLE_KEYED = (0x5, 0x8, 0x9)


@dataclass(frozen=True)
class Instruction:
    word: int
    op: Op
    x: int
    y: int
    n: int
    kk: int
    nnn: int

    def __str__(self) -> str:
        return f"${self.word:04X} {self.op.name}"


def nibble(word: int) -> int:
    """Instruction family: bits 15-12"""
    return (word >> 12) & 0xF


def classify(word: int) -> Op:
    family = nibble(word)
    if family in _BY_NIBBLE:
        return _BY_NIBBLE[family]
    if family == 0x0:
        # 0nnn machine-code calls are ignored by modern interpreters
        return _SUB_TABLES[0x0].get(word, Op.SYS)

    key = word & 0x000F if family in _NIBBLE_KEYED else word & 0x00FF
    return _SUB_TABLES[family].get(key, Op.UNKNOWN)


def decode(word: int) -> Instruction:
    """Split a raw instruction word into its kind and operand fields"""
    if not 0 <= word <= 0xFFFF:
        raise ValueError(f"instruction word out of range: {word!r}")

    return Instruction(
        word=word,
        op=classify(word),
        x=(word >> 8) & 0x0F,     # 4-bit register index
        y=(word >> 4) & 0x0F,     # 4-bit register index
        n=word & 0x000F,          # 4-bit constant
        kk=word & 0x00FF,         # 8-bit constant
        nnn=word & 0x0FFF,        # 12-bit address
    )
