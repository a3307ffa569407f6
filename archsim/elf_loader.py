"""Loading 64-bit ELF executables into emulated memory."""

from __future__ import annotations

import os
import struct

from .log import Severity
from .memory import MASK64, Memory, Segment
from .ptable import PAGESIZE, Page

_EHDR = struct.Struct("<16sHHIQQQIHHHHHH")
_PHDR = struct.Struct("<IIQQQQQQ")
_SHDR = struct.Struct("<IIQQQQIIQQ")

_ELF_MAGIC = b"\x7fELF"
ET_EXEC = 2
PT_LOAD = 1


class ElfError(ValueError):
    """Raised for files that are not loadable ELF executables."""


def _unpack(layout: struct.Struct, data: bytes, offset: int, what: str) -> tuple:
    if offset < 0 or offset + layout.size > len(data):
        raise ElfError(f"truncated {what}")
    return layout.unpack_from(data, offset)


def _cstring(data: bytes, start: int) -> bytes:
    if start >= len(data):
        return b""
    end = data.find(b"\0", start)
    return data[start:] if end < 0 else data[start:end]


def _page(memory: Memory, pnum: int, prot: int) -> Page:
    page = memory.pages.get_page(pnum)
    if page is None:
        page = memory.pages.add_page(pnum, prot)
    return page


def _place(memory: Memory, vaddr: int, chunk: bytes, prot: int) -> None:
    pos = 0
    while pos < len(chunk):
        pnum, poff = divmod((vaddr + pos) & MASK64, PAGESIZE)
        count = min(PAGESIZE - poff, len(chunk) - pos)
        _page(memory, pnum, prot).data[poff : poff + count] = chunk[pos : pos + count]
        pos += count


def _load_segment(memory: Memory, data: bytes, phdr: tuple) -> None:
    _, flags, offset, vaddr, _, filesz, memsz, _ = phdr
    v_align = vaddr % PAGESIZE
    f_align = filesz + (PAGESIZE - ((filesz + vaddr) % PAGESIZE))
    prot = bool(flags & 0x4) | (bool(flags & 0x2) << 1) | (bool(flags & 0x1) << 2)

    count = filesz + v_align
    _place(memory, vaddr, data[offset : offset + count].ljust(count, b"\0"), prot)

    if memsz > filesz:
        start = vaddr + f_align
        end = start + (memsz - filesz) - 1
        for pnum in range(start // PAGESIZE, end // PAGESIZE + 1):
            _page(memory, pnum & (MASK64 // PAGESIZE), prot)


def load_elf_bytes(data: bytes, memory: Memory) -> int:
    """Load the PT_LOAD segments of an ELF executable image; return its entry point."""
    memory.log.log(Severity.INFO, "Loading ELF executable")
    data = bytes(data)
    header = _unpack(_EHDR, data, 0, "ELF header")
    (ident, e_type, _, _, entry, phoff, shoff, _, _,
     phentsize, phnum, shentsize, shnum, shstrndx) = header
    if not ident.startswith(_ELF_MAGIC):
        raise ElfError("not an ELF file")
    if e_type != ET_EXEC:
        raise ElfError(f"ELF type {e_type} is not an executable")

    for i in range(phnum):
        phdr = _unpack(_PHDR, data, phoff + i * phentsize, "program header")
        if phdr[0] == PT_LOAD:
            _load_segment(memory, data, phdr)

    if shnum:
        strings = _unpack(_SHDR, data, shoff + shstrndx * shentsize, "section header")[4]
        for i in range(shnum):
            shdr = _unpack(_SHDR, data, shoff + i * shentsize, "section header")
            name = _cstring(data, strings + shdr[0])
            if name == b".text":
                memory.seg_start[Segment.TEXT] = shdr[3]
            elif name == b".data":
                memory.seg_start[Segment.DATA] = shdr[3]

    return entry


def load_elf(path: str | os.PathLike[str], memory: Memory) -> int:
    """Load an ELF executable from a file; return its entry point."""
    with open(path, "rb") as handle:
        data = handle.read()
    return load_elf_bytes(data, memory)