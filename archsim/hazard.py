"""Hazard detection and pipeline stall/bubble control."""

from __future__ import annotations

from .isa import Opcode, PipeControl, Status
from .memory import MemStatus
from .pipe_regs import PipelineRegisters, PipeRegister, Wires

_LOAD = (False, False)
_STALL = (False, True)
_BUBBLE = (True, False)


def pipe_control_stage(reg: PipeRegister, bubble: bool, stall: bool) -> None:
    """Set how a pipeline register behaves at the next clock edge."""
    if bubble and stall:
        print("Error: cannot bubble and stall at the same time.")
        reg.ctl = PipeControl.ERROR
    if reg.ctl is PipeControl.ERROR:
        return
    if bubble:
        reg.ctl = PipeControl.BUBBLE
    elif stall:
        reg.ctl = PipeControl.STALL
    else:
        reg.ctl = PipeControl.LOAD


def check_ret_hazard(op: Opcode) -> bool:
    """A RET in decode must wait for its target."""
    return op == Opcode.RET


def check_br_hazard(op: Opcode) -> bool:
    """A BR or BLR in decode must wait for its target."""
    return op in (Opcode.BR, Opcode.BLR)


def check_cb_hazard(op: Opcode, condval: bool) -> bool:
    """A CBZ/CBNZ in execute was mispredicted when its condition fails."""
    return op in (Opcode.CBZ, Opcode.CBNZ) and not condval


def check_mispred_branch_hazard(op: Opcode, condval: bool) -> bool:
    """A B.cond in execute was mispredicted when its condition fails."""
    return op == Opcode.B_COND and not condval


def check_load_use_hazard(
    d_op: Opcode, d_src1: int, d_src2: int, x_op: Opcode, x_dst: int
) -> bool:
    """Decode reads a register that a load in execute has yet to produce."""
    if x_op != Opcode.LDUR:
        return False
    return d_src1 == x_dst or d_src2 == x_dst


def is_error(status: Status) -> bool:
    """Return True for statuses that stop the machine."""
    return status not in (Status.BUB, Status.AOK)


def _apply(regs: PipelineRegisters, *settings: tuple[bool, bool]) -> None:
    for reg, (bubble, stall) in zip(regs, settings):
        pipe_control_stage(reg, bubble, stall)


def handle_hazards(
    regs: PipelineRegisters,
    wires: Wires,
    dmem_status: MemStatus,
    d_op: Opcode,
    d_src1: int,
    d_src2: int,
    x_op: Opcode,
    x_dst: int,
    x_condval: bool,
    pipelined: bool = True,
    ec: bool = False,
) -> None:
    """Decide the control setting of every pipeline register for this cycle."""
    if not pipelined:
        f_stall = regs.f.out.status in (Status.HLT, Status.INS)
        _apply(regs, (False, f_stall), _LOAD, _LOAD, _LOAD, _LOAD)
        return

    if is_error(regs.w.in_.status):
        wires.deassert_flags = True
        _apply(regs, _STALL, _STALL, _STALL, _STALL, _LOAD)
    elif dmem_status is MemStatus.IN_FLIGHT:
        _apply(regs, _STALL, _STALL, _STALL, _STALL, _LOAD)
    elif is_error(regs.m.in_.status):
        _apply(regs, _STALL, _STALL, _STALL, _LOAD, _LOAD)
    elif check_mispred_branch_hazard(x_op, x_condval) or (
        ec and check_cb_hazard(x_op, x_condval)
    ):
        _apply(regs, _LOAD, _BUBBLE, _BUBBLE, _LOAD, _LOAD)
    elif check_load_use_hazard(d_op, d_src1, d_src2, x_op, x_dst):
        _apply(regs, _STALL, _STALL, _BUBBLE, _LOAD, _LOAD)
    elif (ec and check_br_hazard(d_op)) or check_ret_hazard(d_op):
        _apply(regs, _LOAD, _BUBBLE, _LOAD, _LOAD, _LOAD)
    else:
        _apply(regs, _LOAD, _LOAD, _LOAD, _LOAD, _LOAD)