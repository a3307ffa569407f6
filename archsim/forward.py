"""Forwarding of register values from later stages back to decode."""

from __future__ import annotations


def _select(
    src: int,
    current: int,
    x_dst: int,
    m_dst: int,
    w_dst: int,
    x_val_ex: int,
    m_val_ex: int,
    m_val_mem: int,
    w_val_ex: int,
    w_val_mem: int,
    m_wval_sel: bool,
    w_wval_sel: bool,
    x_w_enable: bool,
    m_w_enable: bool,
    w_w_enable: bool,
) -> int:
    if src == x_dst and x_w_enable:
        return x_val_ex
    if src == m_dst and m_w_enable:
        return m_val_mem if m_wval_sel else m_val_ex
    if src == w_dst and w_w_enable:
        return w_val_mem if w_wval_sel else w_val_ex
    return current


def forward_reg(
    d_src1: int,
    d_src2: int,
    x_dst: int,
    m_dst: int,
    w_dst: int,
    x_val_ex: int,
    m_val_ex: int,
    m_val_mem: int,
    w_val_ex: int,
    w_val_mem: int,
    m_wval_sel: bool,
    w_wval_sel: bool,
    x_w_enable: bool,
    m_w_enable: bool,
    w_w_enable: bool,
    val_a: int,
    val_b: int,
    pipelined: bool = True,
) -> tuple[int, int]:
    """Return decode's (val_a, val_b), replaced by the newest in-flight results."""
    if not pipelined:
        return val_a, val_b
    shared = (
        x_dst, m_dst, w_dst, x_val_ex, m_val_ex, m_val_mem, w_val_ex, w_val_mem,
        m_wval_sel, w_wval_sel, x_w_enable, m_w_enable, w_w_enable,
    )
    return _select(d_src1, val_a, *shared), _select(d_src2, val_b, *shared)