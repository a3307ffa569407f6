from archsim.hazard import (
    check_br_hazard,
    check_cb_hazard,
    check_load_use_hazard,
    check_mispred_branch_hazard,
    check_ret_hazard,
    handle_hazards,
    is_error,
    pipe_control_stage,
)
from archsim.isa import Opcode, PipeControl, Status
from archsim.memory import MemStatus
from archsim.pipe_regs import FetchReg, PipelineRegisters, PipeRegister, Wires

L, S, B = PipeControl.LOAD, PipeControl.STALL, PipeControl.BUBBLE


def _ctls(regs):
    return [reg.ctl for reg in regs]


def _run(regs=None, wires=None, dmem_status=MemStatus.READY, d_op=Opcode.NOP,
         d_src1=0, d_src2=0, x_op=Opcode.NOP, x_dst=0, x_condval=True,
         pipelined=True, ec=False):
    regs = regs or PipelineRegisters()
    wires = wires or Wires()
    handle_hazards(regs, wires, dmem_status, d_op, d_src1, d_src2, x_op, x_dst,
                   x_condval, pipelined, ec)
    return regs, wires


def test_pipe_control_stage_settings():
    reg = PipeRegister(FetchReg)
    pipe_control_stage(reg, False, False)
    assert reg.ctl is L
    pipe_control_stage(reg, False, True)
    assert reg.ctl is S
    pipe_control_stage(reg, True, False)
    assert reg.ctl is B


def test_bubble_and_stall_is_a_sticky_error(capsys):
    reg = PipeRegister(FetchReg)
    pipe_control_stage(reg, True, True)
    assert reg.ctl is PipeControl.ERROR
    assert "cannot bubble and stall" in capsys.readouterr().out
    pipe_control_stage(reg, False, False)
    assert reg.ctl is PipeControl.ERROR


def test_hazard_predicates():
    assert check_ret_hazard(Opcode.RET) and not check_ret_hazard(Opcode.BL)
    assert check_br_hazard(Opcode.BLR) and not check_br_hazard(Opcode.B)
    assert check_cb_hazard(Opcode.CBZ, False) and not check_cb_hazard(Opcode.CBZ, True)
    assert check_mispred_branch_hazard(Opcode.B_COND, False)
    assert not check_mispred_branch_hazard(Opcode.B_COND, True)


def test_load_use_requires_load_and_matching_register():
    assert check_load_use_hazard(Opcode.ADD_RI, 5, 0, Opcode.LDUR, 5)
    assert check_load_use_hazard(Opcode.ADD_RI, 0, 5, Opcode.LDUR, 5)
    assert not check_load_use_hazard(Opcode.ADD_RI, 5, 0, Opcode.ADD_RI, 5)
    assert not check_load_use_hazard(Opcode.ADD_RI, 1, 2, Opcode.LDUR, 5)


def test_is_error_statuses():
    assert [is_error(s) for s in Status] == [False, False, True, True, True]


def test_no_hazard_loads_everything():
    regs, wires = _run()
    assert _ctls(regs) == [L, L, L, L, L]
    assert wires.deassert_flags is False


def test_writeback_error_freezes_and_deasserts_flags():
    regs = PipelineRegisters()
    regs.w.in_.status = Status.ADR
    regs, wires = _run(regs=regs)
    assert _ctls(regs) == [S, S, S, S, L]
    assert wires.deassert_flags is True


def test_memory_in_flight_stalls():
    regs, _ = _run(dmem_status=MemStatus.IN_FLIGHT)
    assert _ctls(regs) == [S, S, S, S, L]


def test_memory_stage_error_stalls_front():
    regs = PipelineRegisters()
    regs.m.in_.status = Status.INS
    regs, _ = _run(regs=regs)
    assert _ctls(regs) == [S, S, S, L, L]


def test_mispredicted_branch_squashes_two_stages():
    regs, _ = _run(x_op=Opcode.B_COND, x_condval=False)
    assert _ctls(regs) == [L, B, B, L, L]


def test_cb_hazard_only_with_ec():
    regs, _ = _run(x_op=Opcode.CBNZ, x_condval=False, ec=True)
    assert _ctls(regs) == [L, B, B, L, L]
    regs, _ = _run(x_op=Opcode.CBNZ, x_condval=False, ec=False)
    assert _ctls(regs) == [L, L, L, L, L]


def test_load_use_stalls_and_bubbles_execute():
    regs, _ = _run(d_op=Opcode.ADD_RI, d_src1=4, x_op=Opcode.LDUR, x_dst=4)
    assert _ctls(regs) == [S, S, B, L, L]


def test_ret_bubbles_decode():
    regs, _ = _run(d_op=Opcode.RET)
    assert _ctls(regs) == [L, B, L, L, L]


def test_br_bubbles_decode_only_with_ec():
    regs, _ = _run(d_op=Opcode.BR, ec=True)
    assert _ctls(regs) == [L, B, L, L, L]
    regs, _ = _run(d_op=Opcode.BR, ec=False)
    assert _ctls(regs) == [L, L, L, L, L]


def test_unpipelined_stalls_fetch_on_halt():
    regs = PipelineRegisters()
    regs.f.out.status = Status.HLT
    regs, _ = _run(regs=regs, pipelined=False)
    assert _ctls(regs) == [S, L, L, L, L]