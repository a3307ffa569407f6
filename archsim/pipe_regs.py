"""Pipeline registers, control signals and the wires between stages."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from typing import Callable, Generic, Iterator, TypeVar

from .isa import AluOp, Cond, Format, Opcode, PipeControl, Status


@dataclass
class XSignals:
    """Control signals consumed by the execute stage."""

    vala_sel: bool = False
    valb_sel: bool = False
    set_flags: bool = False


@dataclass
class MSignals:
    """Control signals consumed by the memory stage."""

    dmem_read: bool = False
    dmem_write: bool = False


@dataclass
class WSignals:
    """Control signals consumed by the writeback stage."""

    dst_sel: bool = False
    wval_sel: bool = False
    w_enable: bool = False


class _Multipurpose:
    """One shared value seen as sequential successor, ADRP page or correction PC."""

    multipurpose_val: int

    @property
    def seq_succ_pc(self) -> int:
        return self.multipurpose_val

    @seq_succ_pc.setter
    def seq_succ_pc(self, value: int) -> None:
        self.multipurpose_val = value

    @property
    def adrp_val(self) -> int:
        return self.multipurpose_val

    @adrp_val.setter
    def adrp_val(self, value: int) -> None:
        self.multipurpose_val = value

    @property
    def correction_pc(self) -> int:
        return self.multipurpose_val

    @correction_pc.setter
    def correction_pc(self, value: int) -> None:
        self.multipurpose_val = value


@dataclass
class FetchReg:
    """Input of the fetch stage."""

    pred_pc: int = 0
    status: Status = Status.AOK


@dataclass
class DecodeReg(_Multipurpose):
    """Input of the decode stage."""

    insnbits: int = 0
    op: Opcode = Opcode.NOP
    print_op: Opcode = Opcode.NOP
    format: Format = Format.ERROR
    multipurpose_val: int = 0
    status: Status = Status.AOK


@dataclass
class ExecuteReg(_Multipurpose):
    """Input of the execute stage."""

    op: Opcode = Opcode.NOP
    print_op: Opcode = Opcode.NOP
    multipurpose_val: int = 0
    X_sigs: XSignals = field(default_factory=XSignals)
    M_sigs: MSignals = field(default_factory=MSignals)
    W_sigs: WSignals = field(default_factory=WSignals)
    alu_op: AluOp = AluOp.PLUS_OP
    val_a: int = 0
    val_b: int = 0
    val_imm: int = 0
    cond: Cond = Cond.EQ
    val_hw: int = 0
    dst: int = 0
    status: Status = Status.AOK


@dataclass
class MemoryReg(_Multipurpose):
    """Input of the memory stage."""

    op: Opcode = Opcode.NOP
    print_op: Opcode = Opcode.NOP
    multipurpose_val: int = 0
    M_sigs: MSignals = field(default_factory=MSignals)
    W_sigs: WSignals = field(default_factory=WSignals)
    dst: int = 0
    val_ex: int = 0
    val_b: int = 0
    cond_holds: bool = False
    status: Status = Status.AOK


@dataclass
class WritebackReg:
    """Input of the writeback stage."""

    op: Opcode = Opcode.NOP
    print_op: Opcode = Opcode.NOP
    W_sigs: WSignals = field(default_factory=WSignals)
    dst: int = 0
    val_ex: int = 0
    val_mem: int = 0
    status: Status = Status.AOK


R = TypeVar("R")


def _assign(dst: object, src: object) -> None:
    for f in fields(dst):  # type: ignore[arg-type]
        setattr(dst, f.name, copy.copy(getattr(src, f.name)))


class PipeRegister(Generic[R]):
    """A clocked register with an input side, an output side and a control setting."""

    def __init__(self, factory: Callable[[], R]) -> None:
        self._factory = factory
        self.in_: R = factory()
        self.out: R = factory()
        self.ctl = PipeControl.BUBBLE

    def clock(self) -> bool:
        """Apply the control setting at a clock edge; return True on an error bubble."""
        if self.ctl is PipeControl.LOAD:
            _assign(self.out, self.in_)
        elif self.ctl in (PipeControl.BUBBLE, PipeControl.ERROR):
            _assign(self.out, self._factory())
        return self.ctl is PipeControl.ERROR


@dataclass
class PipelineRegisters:
    """The five pipeline registers, one in front of each stage."""

    f: PipeRegister[FetchReg] = field(default_factory=lambda: PipeRegister(FetchReg))
    d: PipeRegister[DecodeReg] = field(default_factory=lambda: PipeRegister(DecodeReg))
    x: PipeRegister[ExecuteReg] = field(default_factory=lambda: PipeRegister(ExecuteReg))
    m: PipeRegister[MemoryReg] = field(default_factory=lambda: PipeRegister(MemoryReg))
    w: PipeRegister[WritebackReg] = field(
        default_factory=lambda: PipeRegister(WritebackReg)
    )

    def __iter__(self) -> Iterator[PipeRegister]:
        return iter((self.f, self.d, self.x, self.m, self.w))


@dataclass
class Wires:
    """Signals that stages hand to the clocked logic at the end of a cycle."""

    f_pc: int = 0
    d_src1: int = 0
    d_src2: int = 0
    x_nzcvval: int = 0
    x_set_flags: bool = False
    m_pc: int = 0
    w_wval: int = 0
    deassert_flags: bool = False