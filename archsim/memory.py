"""Emulated memory: demand-paged storage, special I/O addresses and the data cache."""

from __future__ import annotations

import sys
from enum import Enum, IntEnum
from typing import Callable, TextIO

from .cache import Cache, EvictedLine, Operation
from .log import EventLog, Severity
from .ptable import PAGESIZE, Page, PageTable

MASK64 = (1 << 64) - 1

NULL_ADDR = 0x0
IO_CHAR_ADDR = 0xFFFFFFFFFFFFFFFF
RET_FROM_MAIN_ADDR = 0x0
CHECKPOINT_ADDR = 0xFFFFFFFFFFFFFFFF - 8


class Segment(IntEnum):
    """Regions of the guest address space, in address order."""

    NULL = 0
    TEXT = 1
    DATA = 2
    HEAP = 3
    LIB = 4
    STACK = 5
    KERNEL = 6


SEG_STARTS = (
    0x0,
    0x400000,
    0x800000,
    0x10000000,
    0x400000000,
    0x800000000,
    0x1000000000000,
)

SEG_PROTS = (0x0, 0x5, 0x6, 0x6, 0x5, 0x6, 0x0)


class MemStatus(Enum):
    """Whether the data memory finished the access this cycle."""

    READY = "ready"
    IN_FLIGHT = "in_flight"


class NullPointerError(RuntimeError):
    """Raised when the guest reads from the null address."""


def is_special_addr(addr: int) -> bool:
    """Return True for addresses that do not refer to ordinary memory."""
    return addr in (NULL_ADDR, IO_CHAR_ADDR, RET_FROM_MAIN_ADDR, CHECKPOINT_ADDR)


def _signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    return value - (1 << bits) if value & (1 << (bits - 1)) else value


def _alt_hex(value: int, width: int) -> str:
    # The alternate hex form carries no 0x prefix for zero.
    if value == 0:
        return "0" * width
    return f"{value:#0{width}x}"


class Memory:
    """Guest memory with segment bounds, special addresses and an optional cache."""

    def __init__(
        self,
        cache: Cache | None = None,
        log: EventLog | None = None,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
        on_checkpoint: Callable[[], None] | None = None,
    ) -> None:
        self.cache = cache
        self.log = log if log is not None else EventLog()
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.on_checkpoint = on_checkpoint
        self.pages = PageTable()
        self.seg_start = list(SEG_STARTS)
        self.seg_prot = list(SEG_PROTS)
        self.dmem_status = MemStatus.READY
        self.inflight = False
        self.inflight_addr = 0
        self.inflight_cycles = cache.delay if cache is not None else 0
        self._pushback: list[str] = []

    # --- segment queries ---------------------------------------------------

    def addr_in_imem(self, addr: int) -> bool:
        """Return True if the address lies in the text segment."""
        return self.seg_start[Segment.TEXT] <= addr < self.seg_start[Segment.DATA]

    def addr_in_dmem(self, addr: int) -> bool:
        """Return True if the address lies between the data and kernel segments."""
        return self.seg_start[Segment.DATA] <= addr < self.seg_start[Segment.KERNEL]

    def _prot_bits(self, addr: int) -> int:
        for seg in range(Segment.KERNEL):
            if self.seg_start[seg] <= addr < self.seg_start[seg + 1]:
                return self.seg_prot[seg]
        return self.seg_prot[Segment.KERNEL]

    # --- plain byte access -------------------------------------------------

    def _page_for(self, addr: int, prot: int) -> Page:
        pnum = addr // PAGESIZE
        page = self.pages.get_page(pnum)
        if page is None:
            page = self.pages.add_page(pnum, prot)
        return page

    def _read_byte(self, addr: int) -> int:
        addr &= MASK64
        return self._page_for(addr, self._prot_bits(addr)).data[addr % PAGESIZE]

    def _write_byte(self, addr: int, byte: int) -> None:
        addr &= MASK64
        self._page_for(addr, 7).data[addr % PAGESIZE] = byte & 0xFF

    def _read_le(self, addr: int, width: int) -> int:
        raw = bytes(self._read_byte(addr + i) for i in range(width))
        return int.from_bytes(raw, "little")

    def _write_le(self, addr: int, data: int, width: int) -> bool:
        for i, byte in enumerate((data & MASK64).to_bytes(8, "little")[:width]):
            self._write_byte(addr + i, byte)
        return True

    # --- console input ------------------------------------------------------

    def _getc(self) -> str:
        if self._pushback:
            return self._pushback.pop()
        return self.stdin.read(1)

    def _skip_space(self) -> None:
        while True:
            ch = self._getc()
            if not ch:
                return
            if not ch.isspace():
                self._pushback.append(ch)
                return

    def _scan_char(self) -> int:
        ch = self._getc()
        self._skip_space()
        return ord(ch) & 0xFF if ch else 0

    def _scan_int(self) -> int:
        self._skip_space()
        text = ""
        ch = self._getc()
        if ch and ch in "+-":
            text = ch
            ch = self._getc()
        while ch and ch in "0123456789":
            text += ch
            ch = self._getc()
        if ch:
            self._pushback.append(ch)
        self._skip_space()
        try:
            return int(text)
        except ValueError:
            return 0

    # --- special addresses --------------------------------------------------

    def _read_special(self, addr: int, width: int) -> int:
        if addr == NULL_ADDR:
            self.log.log(Severity.FATAL, "Null pointer read attempt")
            raise NullPointerError("Null pointer read attempt")
        if addr == IO_CHAR_ADDR:
            if width == 1:
                return _signed(self._scan_char(), 8) & MASK64
            if width in (2, 4, 8):
                return _signed(self._scan_int(), width * 8) & MASK64
            raise ValueError(f"unsupported console read width {width}")
        if addr == CHECKPOINT_ADDR:
            if self.on_checkpoint is not None:
                self.on_checkpoint()
            return 0
        raise ValueError(f"address {addr:#x} is not special")

    def _write_special(self, addr: int, data: int, width: int) -> bool:
        if addr == NULL_ADDR:
            self.log.log(Severity.INFO, "Null pointer write attempt")
            return True
        if addr != IO_CHAR_ADDR:
            raise ValueError(f"cannot write to special address {addr:#x}")
        if width == 1:
            self.stdout.write(chr(data & 0xFF))
        elif width == 2:
            half = data & 0xFFFF
            self.stdout.write(f"{_signed(half, 16)} {_alt_hex(half, 4)}\n")
        elif width == 4:
            word = data & 0xFFFFFFFF
            self.stdout.write(f"{_signed(word, 32)} {_alt_hex(word, 8)}\n")
        elif width == 8:
            dword = data & MASK64
            self.log.log(
                Severity.OUTPUT, f"{_signed(dword, 64)} {_alt_hex(dword, 16)}"
            )
        else:
            raise ValueError(f"unsupported console write width {width}")
        return True

    # --- cached access -------------------------------------------------------

    def _miss_ready(self, block_addr: int) -> bool:
        """Count down the miss delay; True once the block may be brought in."""
        assert self.cache is not None
        if self.inflight_addr != block_addr or not self.inflight:
            self.inflight_addr = block_addr
            self.inflight_cycles = self.cache.delay
            self.inflight = True
        self.inflight_cycles = (self.inflight_cycles - 1) & MASK64
        if self.inflight_cycles > 0:
            self.dmem_status = MemStatus.IN_FLIGHT
            return False
        self.inflight = False
        return True

    def _write_back(self, evicted: EvictedLine) -> None:
        if evicted.valid and evicted.dirty:
            for j, byte in enumerate(evicted.data):
                self._write_byte(evicted.block_addr + j, byte)

    def _read_cache(self, addr: int, width: int) -> int:
        cache = self.cache
        assert cache is not None
        size = cache.block_size
        mask = ~(size - 1) & MASK64
        current = addr
        for _ in range(width):
            if not cache.check_hit(current, Operation.READ):
                block_addr = current & mask
                if not self._miss_ready(block_addr):
                    return 0
                base = addr & mask
                block = bytes(self._read_byte(base + j) for j in range(size))
                self._write_back(cache.handle_miss(block_addr, Operation.READ, block))
            current = (current + 1) & MASK64
        data = cache.get_word(addr)
        self.dmem_status = MemStatus.READY
        return data

    def _write_cache(self, addr: int, data: int, width: int) -> bool:
        cache = self.cache
        assert cache is not None
        size = cache.block_size
        mask = ~(size - 1) & MASK64
        current = addr
        for _ in range(width):
            if not cache.check_hit(current, Operation.WRITE):
                block_addr = current & mask
                if not self._miss_ready(block_addr):
                    return False
                block = bytes(self._read_byte(block_addr + j) for j in range(size))
                self._write_back(cache.handle_miss(block_addr, Operation.WRITE, block))
            current = (current + 1) & MASK64
        cache.set_word(addr, data)
        self.dmem_status = MemStatus.READY
        return True

    # --- public interface ----------------------------------------------------

    def _use_cache(self, addr: int) -> bool:
        return self.cache is not None and addr >= self.seg_start[Segment.DATA]

    def read(self, addr: int, width: int) -> int:
        """Read a little-endian value of `width` bytes as an unsigned 64-bit value.

        Returns 0 while a cache miss is still in flight.
        """
        addr &= MASK64
        if is_special_addr(addr):
            return self._read_special(addr, width)
        if self._use_cache(addr):
            return self._read_cache(addr, width)
        return self._read_le(addr, width)

    def write(self, addr: int, data: int, width: int) -> bool:
        """Write the low `width` bytes of data; False while a cache miss is in flight."""
        addr &= MASK64
        if is_special_addr(addr):
            return self._write_special(addr, data, width)
        if self._use_cache(addr):
            return self._write_cache(addr, data, width)
        return self._write_le(addr, data, width)