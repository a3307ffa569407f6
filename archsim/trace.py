"""Text rendering of pipeline state for debug output."""

from __future__ import annotations

from .isa import AluOp, Cond, Format, Opcode, Stage, Status, opcode_name, unpack_nzcv
from .pipe_regs import PipelineRegisters

_MASK64 = (1 << 64) - 1


def _hex(value: int) -> str:
    return f"{value & _MASK64:X}"


def _name(op: int) -> str:
    return "ERR" if op == Opcode.ERROR else opcode_name(Opcode(op))


def _status(status: int) -> str:
    return Status(status).name


def _tf(flag: bool, padded: bool = False) -> str:
    if flag:
        return "true " if padded else "true"
    return "false"


def format_nzcv(nzcv: int) -> str:
    """Return the line showing the four condition flags."""
    n, z, c, v = unpack_nzcv(nzcv)
    return f"NZCV: [N, Z, C, V] = [{n}, {z}, {c}, {v}]\n"


def _fetch(level: int, regs: PipelineRegisters, pc: int) -> str:
    d_in = regs.d.in_
    if level > 2:
        is_adrp = d_in.op == Opcode.ADRP
        seq_succ = 0 if is_adrp else d_in.seq_succ_pc
        adrp_val = d_in.adrp_val if is_adrp else 0
    else:
        seq_succ = d_in.seq_succ_pc
        adrp_val = d_in.adrp_val
    return (
        f"F: {_name(d_in.print_op):<6}[PC, insn_bits] = "
        f"[{pc & _MASK64:08X},  {d_in.insnbits & 0xFFFFFFFF:08X}], "
        f"seq_succ_PC: 0x{_hex(seq_succ)}, pred_PC: 0x{_hex(regs.f.in_.pred_pc)}, "
        f"adrp_val: 0x{_hex(adrp_val)}, format: {Format(d_in.format).label}, "
        f"status: {_status(d_in.status)}\n"
    )


def _decode(level: int, regs: PipelineRegisters) -> str:
    x_in = regs.x.in_
    d_out = regs.d.out
    if level > 2:
        show_b = x_in.X_sigs.valb_sel or d_out.op == Opcode.STUR
        val_b = x_in.val_b if show_b else 0
        val_imm = 0 if x_in.X_sigs.valb_sel else x_in.val_imm
        cond = Cond(x_in.cond).name if d_out.op == Opcode.B_COND else "N/A"
        dst = x_in.dst if x_in.W_sigs.w_enable else 0
    else:
        val_b = x_in.val_b
        val_imm = x_in.val_imm
        cond = Cond(x_in.cond).name
        dst = x_in.dst
    text = (
        f"D: {_name(d_out.print_op):<6}[val_a, val_b, imm] = "
        f"[0x{_hex(x_in.val_a)}, 0x{_hex(val_b)}, 0x{_hex(val_imm)}], "
        f"alu_op: {AluOp(x_in.alu_op).label}, cond: {cond}, dst: X{dst}, "
        f"status: {_status(x_in.status)}\n"
    )
    if level == 1:
        return text
    xs, ms, ws = x_in.X_sigs, x_in.M_sigs, x_in.W_sigs
    return (
        text
        + f"\t X_sigs: [vala_sel, valb_sel, set_flags] = "
        f"[{_tf(xs.vala_sel)}, {_tf(xs.valb_sel)}, {_tf(xs.set_flags)}]\n"
        + f"\t M_sigs: [dmem_read, dmem_write] = "
        f"[{_tf(ms.dmem_read, True)}, {_tf(ms.dmem_write)}]\n"
        + f"\t W_sigs: [dst_sel, wval_sel, w_enable] = "
        f"[{_tf(ws.dst_sel, True)}, {_tf(ws.wval_sel, True)}, {_tf(ws.w_enable)}]\n"
    )


def _execute(level: int, regs: PipelineRegisters) -> str:
    x_out = regs.x.out
    m_in = regs.m.in_
    if level > 2:
        show_b = x_out.X_sigs.valb_sel or x_out.op == Opcode.STUR
        val_b = x_out.val_b if show_b else 0
        val_imm = 0 if x_out.X_sigs.valb_sel else x_out.val_imm
        val_hw = x_out.val_hw if x_out.alu_op == AluOp.MOV_OP else 0
    else:
        val_b = x_out.val_b
        val_imm = x_out.val_imm
        val_hw = x_out.val_hw
    text = (
        f"X: {_name(x_out.print_op):<6}[val_ex, a, b, imm, hw] = "
        f"[0x{_hex(m_in.val_ex)}, 0x{_hex(x_out.val_a)}, 0x{_hex(val_b)}, "
        f"0x{_hex(val_imm)}, 0x{val_hw & 0xFF:X}], "
        f"alu_op: {AluOp(x_out.alu_op).label}, status: {_status(m_in.status)}\n"
        f"\t X_condval: {_tf(m_in.cond_holds)}\n"
    )
    if level == 1:
        return text
    xs = x_out.X_sigs
    return (
        text
        + f"\t X_sigs: [vala_sel, valb_sel, set_flags] = "
        f"[{_tf(xs.vala_sel)}, {_tf(xs.valb_sel)}, {_tf(xs.set_flags)}]\n"
    )


def _memory(level: int, regs: PipelineRegisters) -> str:
    m_out = regs.m.out
    w_in = regs.w.in_
    ms = m_out.M_sigs
    if level > 2:
        val_mem = w_in.val_mem if ms.dmem_read or ms.dmem_write else 0
        val_b = m_out.val_b if ms.dmem_write else 0
    else:
        val_mem = w_in.val_mem
        val_b = m_out.val_b
    text = (
        f"M: {_name(m_out.print_op):<6}[val_ex, val_b, val_mem] = "
        f"[0x{_hex(m_out.val_ex)}, 0x{_hex(val_b)}, 0x{_hex(val_mem)}], "
        f"status: {_status(w_in.status)}\n"
    )
    if level == 1:
        return text
    return (
        text
        + f"\t M_sigs: [dmem_read, dmem_write] = "
        f"[{_tf(ms.dmem_read, True)}, {_tf(ms.dmem_write)}]\n"
    )


def _wback(level: int, regs: PipelineRegisters, w_wval: int) -> str:
    w_out = regs.w.out
    ws = w_out.W_sigs
    if level > 2:
        if not ws.w_enable:
            dst, val_ex, val_mem = 0, 0, 0
        else:
            dst = w_out.dst
            val_ex = 0 if ws.wval_sel else w_out.val_ex
            val_mem = w_out.val_mem if ws.wval_sel else 0
    else:
        dst, val_ex, val_mem = w_out.dst, w_out.val_ex, w_out.val_mem
    text = (
        f"W: {_name(w_out.print_op):<6}[dst, val_ex, val_mem] = "
        f"[X{dst}, 0x{_hex(val_ex)}, 0x{_hex(val_mem)}], "
        f"status: {_status(w_out.status)}\n"
    )
    if level == 1:
        return text
    return (
        text
        + f"\t W_sigs: [dst_sel, wval_sel, w_enable] = "
        f"[{_tf(ws.dst_sel, True)}, {_tf(ws.wval_sel, True)}, {_tf(ws.w_enable)}], "
        f"W_wval: 0x{w_wval & _MASK64:x}\n"
    )


def format_stage(
    stage: Stage, level: int, regs: PipelineRegisters, pc: int = 0, w_wval: int = 0
) -> str:
    """Describe one stage's pipeline register at the given debug level ('' below 1)."""
    if level < 1:
        return ""
    stage = Stage(stage)
    if stage is Stage.FETCH:
        return _fetch(level, regs, pc)
    if stage is Stage.DECODE:
        return _decode(level, regs)
    if stage is Stage.EXECUTE:
        return _execute(level, regs)
    if stage is Stage.MEMORY:
        return _memory(level, regs)
    return _wback(level, regs, w_wval)