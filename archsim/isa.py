"""Instruction set definitions: opcodes, formats, conditions and decode tables."""

from __future__ import annotations

import itertools
from enum import IntEnum


class Opcode(IntEnum):
    """Opcodes known to the emulator; the conditional-select group needs EC."""

    NOP = 0
    LDUR = 1
    STUR = 2
    MOVK = 3
    MOVZ = 4
    ADRP = 5
    ADD_RI = 6
    ADDS_RR = 7
    CMN_RR = 8
    SUB_RI = 9
    SUBS_RR = 10
    CMP_RR = 11
    MVN = 12
    ORR_RR = 13
    EOR_RR = 14
    ANDS_RR = 15
    TST_RR = 16
    LSL_RI = 17
    LSR_RI = 18
    UBFM = 19
    LSL_RR = 20
    LSR_RR = 21
    UBFMV = 22
    ASR = 23
    B = 24
    B_COND = 25
    BL = 26
    RET = 27
    HLT = 28
    CSEL = 29
    CSINV = 30
    CSINC = 31
    CSNEG = 32
    CBZ = 33
    CBNZ = 34
    BR = 35
    BLR = 36
    ERROR = 37


class Format(IntEnum):
    """Instruction encoding formats."""

    ERROR = 0
    M = 1
    I1 = 2
    I2 = 3
    RR = 4
    RI = 5
    B1 = 6
    B2 = 7
    B3 = 8
    S = 9
    EC = 10

    @property
    def label(self) -> str:
        return _FORMAT_LABELS[self]


class Cond(IntEnum):
    """Condition codes as encoded in conditional instructions."""

    EQ = 0
    NE = 1
    CS = 2
    CC = 3
    MI = 4
    PL = 5
    VS = 6
    VC = 7
    HI = 8
    LS = 9
    GE = 10
    LT = 11
    GT = 12
    LE = 13
    AL = 14
    NV = 15


class AluOp(IntEnum):
    """Operations the ALU can perform."""

    PLUS_OP = 0
    MINUS_OP = 1
    INV_OP = 2
    OR_OP = 3
    EOR_OP = 4
    AND_OP = 5
    MOV_OP = 6
    MOVK_OP = 7
    LSL_OP = 8
    LSR_OP = 9
    ASR_OP = 10
    PASS_A_OP = 11
    CSEL_OP = 12
    CSINV_OP = 13
    CSINC_OP = 14
    CSNEG_OP = 15
    CBZ_OP = 16
    CBNZ_OP = 17
    BR_OP = 18
    BLR_OP = 19

    @property
    def label(self) -> str:
        return _ALU_LABELS.get(self, self.name)


class Status(IntEnum):
    """Status of an instruction travelling through the pipeline."""

    AOK = 0
    BUB = 1
    HLT = 2
    ADR = 3
    INS = 4


class Stage(IntEnum):
    """Pipeline stages."""

    FETCH = 0
    DECODE = 1
    EXECUTE = 2
    MEMORY = 3
    WBACK = 4


class PipeControl(IntEnum):
    """What a pipeline register does at the end of a cycle."""

    LOAD = 0
    BUBBLE = 1
    STALL = 2
    ERROR = 3


_OPCODE_NAMES = {
    Opcode.NOP: "NOP ",
    Opcode.LDUR: "LDUR ",
    Opcode.STUR: "STUR ",
    Opcode.MOVK: "MOVK ",
    Opcode.MOVZ: "MOVZ ",
    Opcode.ADRP: "ADRP ",
    Opcode.ADD_RI: "ADD ",
    Opcode.ADDS_RR: "ADDS ",
    Opcode.CMN_RR: "CMN ",
    Opcode.SUB_RI: "SUB",
    Opcode.SUBS_RR: "SUBS ",
    Opcode.CMP_RR: "CMP ",
    Opcode.MVN: "MVN ",
    Opcode.ORR_RR: "ORR ",
    Opcode.EOR_RR: "EOR ",
    Opcode.ANDS_RR: "ANDS ",
    Opcode.TST_RR: "TST ",
    Opcode.LSL_RI: "LSL ",
    Opcode.LSR_RI: "LSR ",
    Opcode.UBFM: "UBFM ",
    Opcode.LSL_RR: "LSL ",
    Opcode.LSR_RR: "LSR ",
    Opcode.UBFMV: "UBFMV ",
    Opcode.ASR: "ASR ",
    Opcode.B: "B ",
    Opcode.B_COND: "B.cond ",
    Opcode.BL: "BL ",
    Opcode.RET: "RET ",
    Opcode.HLT: "HLT ",
    Opcode.CSEL: "CSEL",
    Opcode.CSINV: "CSINV",
    Opcode.CSINC: "CSINC",
    Opcode.CSNEG: "CSNEG",
    Opcode.CBZ: "CBZ",
    Opcode.CBNZ: "CBNZ",
    Opcode.BR: "BR",
    Opcode.BLR: "BLR",
    Opcode.ERROR: "ERR ",
}

_FORMAT_LABELS = {
    Format.ERROR: "ERR",
    Format.M: "M",
    Format.I1: "I1",
    Format.I2: "I2",
    Format.RR: "RR",
    Format.RI: "RI",
    Format.B1: "B1",
    Format.B2: "B2",
    Format.B3: "B3",
    Format.S: "S",
    Format.EC: "FORMAT_EC",
}

_ALU_LABELS = {
    AluOp.CBZ_OP: "CBZ",
    AluOp.CBNZ_OP: "CBNZ",
    AluOp.BR_OP: "BR",
    AluOp.BLR_OP: "BLR",
}

_ITABLE_SIZE = 2 << 11

# (opcode, first index, last index) of the 11-bit opcode field.
_BASE_ENCODINGS = (
    (Opcode.LDUR, 0x7C2, 0x7C2),
    (Opcode.STUR, 0x7C0, 0x7C0),
    (Opcode.MOVK, 0x794, 0x797),
    (Opcode.MOVZ, 0x694, 0x697),
    (Opcode.ADRP, 0x480, 0x487),
    (Opcode.ADRP, 0x580, 0x587),
    (Opcode.ADRP, 0x680, 0x687),
    (Opcode.ADRP, 0x780, 0x787),
    (Opcode.ADD_RI, 0x488, 0x489),
    (Opcode.ADDS_RR, 0x558, 0x558),
    (Opcode.SUB_RI, 0x688, 0x689),
    (Opcode.SUBS_RR, 0x758, 0x758),
    (Opcode.MVN, 0x551, 0x551),
    (Opcode.ORR_RR, 0x550, 0x550),
    (Opcode.EOR_RR, 0x650, 0x650),
    (Opcode.ANDS_RR, 0x750, 0x750),
    (Opcode.UBFM, 0x69A, 0x69B),
    (Opcode.UBFMV, 0x4D6, 0x4D6),
    (Opcode.ASR, 0x49A, 0x49B),
    (Opcode.B, 0x0A0, 0x0BF),
    (Opcode.B_COND, 0x2A0, 0x2A7),
    (Opcode.BL, 0x4A0, 0x4BF),
    (Opcode.RET, 0x6B2, 0x6B2),
    (Opcode.NOP, 0x6A8, 0x6A8),
    (Opcode.HLT, 0x6A2, 0x6A2),
)

_EC_ENCODINGS = (
    (Opcode.CSEL, 0x4D4, 0x4D4),
    (Opcode.CSNEG, 0x6D4, 0x6D4),
    (Opcode.CBZ, 0x5A0, 0x5A7),
    (Opcode.CBNZ, 0x5A8, 0x5AF),
    (Opcode.BR, 0x6B0, 0x6B0),
    (Opcode.BLR, 0x6B1, 0x6B1),
)

_BASE_FORMATS = (
    (Opcode.LDUR, Format.M),
    (Opcode.STUR, Format.M),
    (Opcode.MOVK, Format.I1),
    (Opcode.MOVZ, Format.I1),
    (Opcode.ADRP, Format.I2),
    (Opcode.ADD_RI, Format.RI),
    (Opcode.ADDS_RR, Format.RR),
    (Opcode.CMN_RR, Format.RR),
    (Opcode.SUB_RI, Format.RI),
    (Opcode.SUBS_RR, Format.RR),
    (Opcode.CMP_RR, Format.RR),
    (Opcode.MVN, Format.RR),
    (Opcode.ORR_RR, Format.RR),
    (Opcode.EOR_RR, Format.RR),
    (Opcode.ANDS_RR, Format.RR),
    (Opcode.TST_RR, Format.RR),
    (Opcode.LSL_RI, Format.RI),
    (Opcode.LSR_RI, Format.RI),
    (Opcode.UBFM, Format.RI),
    (Opcode.LSL_RR, Format.RR),
    (Opcode.LSR_RR, Format.RR),
    (Opcode.UBFMV, Format.RR),
    (Opcode.ASR, Format.RI),
    (Opcode.B, Format.B1),
    (Opcode.B_COND, Format.B2),
    (Opcode.BL, Format.B1),
    (Opcode.RET, Format.B3),
    (Opcode.NOP, Format.S),
    (Opcode.HLT, Format.S),
)

_EC_FORMATS = tuple(
    (op, Format.EC)
    for op in (
        Opcode.CSEL,
        Opcode.CSINV,
        Opcode.CSINC,
        Opcode.CSNEG,
        Opcode.CBZ,
        Opcode.CBNZ,
        Opcode.BR,
        Opcode.BLR,
    )
)


def _as_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def bitfield_u32(src: int, frompos: int, width: int) -> int:
    """Return bits src[frompos+width-1:frompos] as an unsigned value."""
    return ((_as_int32(src) >> frompos) & ((1 << width) - 1)) & 0xFFFFFFFF


def bitfield_s64(src: int, frompos: int, width: int) -> int:
    """Return bits src[frompos+width-1:frompos] sign-extended to a signed value."""
    field = (_as_int32(src) >> frompos) & ((1 << width) - 1)
    if field & (1 << (width - 1)):
        field -= 1 << width
    return field


def pack_nzcv(n: int, z: int, c: int, v: int) -> int:
    """Pack the four condition flags into a 4-bit NZCV value."""
    return (bool(n) << 3) | (bool(z) << 2) | (bool(c) << 1) | int(bool(v))


def unpack_nzcv(nzcv: int) -> tuple[int, int, int, int]:
    """Split a 4-bit NZCV value into its (N, Z, C, V) flags."""
    return (nzcv >> 3) & 1, (nzcv >> 2) & 1, (nzcv >> 1) & 1, nzcv & 1


def opcode_name(op: Opcode) -> str:
    """Return the mnemonic shown in pipeline traces for an opcode."""
    return _OPCODE_NAMES[Opcode(op)]


def stage_orderings() -> tuple[tuple[Stage, ...], ...]:
    """Return every ordering of the five stages, in lexicographic order."""
    return tuple(itertools.permutations(Stage))


class InstructionSet:
    """Opcode and format lookup tables, with or without the extra-credit instructions."""

    def __init__(self, ec: bool = False) -> None:
        self.ec = ec
        self._itable = [Opcode.ERROR] * _ITABLE_SIZE
        encodings = _BASE_ENCODINGS + (_EC_ENCODINGS if ec else ())
        for op, first, last in encodings:
            for idx in range(first, last + 1):
                if self._itable[idx] is not Opcode.ERROR:
                    raise ValueError(f"opcode index {idx:#x} assigned twice")
                self._itable[idx] = op

        self._ftable: dict[Opcode, Format] = {}
        formats = _BASE_FORMATS + (_EC_FORMATS if ec else ())
        for op, fmt in formats:
            if op in self._ftable:
                raise ValueError(f"format of {op.name} assigned twice")
            self._ftable[op] = fmt

    def lookup(self, insnbits: int) -> Opcode:
        """Return the opcode selected by the top 11 bits of an instruction."""
        return self._itable[bitfield_u32(insnbits, 21, 11)]

    def format_of(self, op: Opcode) -> Format:
        """Return the encoding format of an opcode."""
        return self._ftable.get(op, Format.ERROR)