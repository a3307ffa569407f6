import pytest

from archsim.isa import (
    Format,
    InstructionSet,
    Opcode,
    Stage,
    bitfield_s64,
    bitfield_u32,
    opcode_name,
    pack_nzcv,
    stage_orderings,
    unpack_nzcv,
)


def test_hlt_encoding_decodes_to_hlt():
    assert bitfield_u32(0xD4400000, 21, 11) == 0x6A2
    assert InstructionSet().lookup(0xD4400000) is Opcode.HLT


def test_bitfield_s64_sign_extends():
    assert bitfield_s64(0x03FFFFFF, 0, 26) == -1
    assert bitfield_s64(0x01FFFFFF, 0, 26) == 0x01FFFFFF


def test_bitfield_u32_never_negative():
    for pos in range(0, 27):
        assert 0 <= bitfield_u32(0xFFFFFFFF, pos, 5) <= 31


@pytest.mark.parametrize("index", [0x0A0, 0x0AF, 0x0BF])
def test_branch_range(index):
    assert InstructionSet().lookup(index << 21) is Opcode.B


def test_ec_opcodes_only_with_ec():
    insn = 0x4D4 << 21
    assert InstructionSet(ec=False).lookup(insn) is Opcode.ERROR
    assert InstructionSet(ec=True).lookup(insn) is Opcode.CSEL


def test_format_table():
    isa = InstructionSet()
    assert isa.format_of(Opcode.LDUR) is Format.M
    assert isa.format_of(Opcode.RET) is Format.B3
    assert isa.format_of(Opcode.CSEL) is Format.ERROR
    assert InstructionSet(ec=True).format_of(Opcode.CSEL) is Format.EC


def test_unknown_encoding_is_error():
    assert InstructionSet().lookup(0) is Opcode.ERROR


@pytest.mark.parametrize("flags", [(0, 0, 0, 0), (1, 0, 1, 0), (0, 1, 0, 1), (1, 1, 1, 1)])
def test_nzcv_round_trip(flags):
    assert unpack_nzcv(pack_nzcv(*flags)) == flags


def test_opcode_names():
    assert opcode_name(Opcode.ERROR) == "ERR "
    assert opcode_name(Opcode.B_COND) == "B.cond "
    assert Format.EC.label == "FORMAT_EC"


def test_stage_orderings():
    orders = stage_orderings()
    assert len(orders) == 120
    assert len(set(orders)) == 120
    assert orders[0] == (Stage.FETCH, Stage.DECODE, Stage.EXECUTE, Stage.MEMORY, Stage.WBACK)
    assert orders[-1] == (Stage.WBACK, Stage.MEMORY, Stage.EXECUTE, Stage.DECODE, Stage.FETCH)
    assert all(sorted(order) == list(Stage) for order in orders)