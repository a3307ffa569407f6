"""A set-associative write-back cache with matrix-based LRU replacement."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum

_MASK64 = (1 << 64) - 1
_WORD_BYTES = 8


class Operation(Enum):
    """Kind of memory access presented to the cache."""

    READ = "R"
    WRITE = "W"


@dataclass
class CacheLine:
    """One line of a cache set."""

    data: bytearray
    valid: bool = False
    tag: int = 0
    dirty: bool = False


@dataclass
class CacheSet:
    """A set of lines plus the LRU bookkeeping for it."""

    lines: list[CacheLine]
    lru_matrix: int = 0
    next_lru: int = _MASK64


@dataclass
class EvictedLine:
    """What a line held before it was replaced on a miss."""

    valid: bool
    dirty: bool
    block_addr: int
    data: bytes = field(default=b"")


def _log2(x: int) -> int:
    return max(x.bit_length() - 1, 0)


def lru(assoc: int, access: int, matrix: int) -> tuple[int, int]:
    """Record an access to way `access`; return (least recently used way, new matrix).

    The matrix holds one byte-wide row per way; associativity may be at most 8.
    """
    if assoc > 8:
        raise ValueError(f"associativity {assoc} exceeds 8")
    row_mask = (1 << assoc) - 1
    matrix = (matrix | (row_mask << (access * 8))) & _MASK64
    for i in range(assoc):
        matrix &= ~(1 << (i * 8 + access)) & _MASK64
    for i in range(assoc):
        if (matrix >> (i * 8)) & row_mask == 0:
            return i, matrix
    return 0, matrix


class Cache:
    """Write-back cache keeping hit, miss and eviction statistics."""

    def __init__(
        self, assoc: int, block_size: int, capacity: int, delay: int = 0
    ) -> None:
        self.assoc = assoc
        self.block_size = block_size
        self.capacity = capacity
        self.delay = delay
        self.num_sets = capacity // (assoc * block_size)
        self._b = _log2(block_size)
        self._s = _log2(self.num_sets)
        self.sets = [
            CacheSet([CacheLine(bytearray(block_size)) for _ in range(assoc)])
            for _ in range(self.num_sets)
        ]
        self.hit_count = 0
        self.miss_count = 0
        self.dirty_eviction_count = 0
        self.clean_eviction_count = 0

    def _set_index(self, addr: int) -> int:
        return (addr >> self._b) & ((1 << self._s) - 1)

    def _tag(self, addr: int) -> int:
        return (addr & _MASK64) >> (self._b + self._s)

    def _find_way(self, addr: int) -> int | None:
        tag = self._tag(addr)
        for way, line in enumerate(self.get_set(addr).lines):
            if line.valid and line.tag == tag:
                return way
        return None

    def _select_way(self, addr: int) -> int:
        cset = self.get_set(addr)
        for way, line in enumerate(cset.lines):
            if not line.valid:
                return way
        return cset.next_lru

    def _touch(self, cset: CacheSet, way: int) -> None:
        cset.next_lru, cset.lru_matrix = lru(self.assoc, way, cset.lru_matrix)

    def get_set(self, addr: int) -> CacheSet:
        """Return the set an address maps to."""
        return self.sets[self._set_index(addr)]

    def get_line(self, addr: int) -> CacheLine | None:
        """Return the valid line holding an address, or None on a miss."""
        way = self._find_way(addr)
        return None if way is None else self.get_set(addr).lines[way]

    def select_line(self, addr: int) -> CacheLine:
        """Return the line to fill for an address: an invalid one, else the LRU one."""
        return self.get_set(addr).lines[self._select_way(addr)]

    def check_hit(self, addr: int, operation: Operation) -> bool:
        """Look an address up, updating statistics and LRU state; True on a hit."""
        way = self._find_way(addr)
        if way is None:
            self.miss_count += 1
            return False
        self.hit_count += 1
        cset = self.get_set(addr)
        if operation is Operation.WRITE:
            cset.lines[way].dirty = True
        self._touch(cset, way)
        return True

    def handle_miss(
        self, addr: int, operation: Operation, incoming: bytes | None
    ) -> EvictedLine:
        """Bring the block of an address into the cache; return what was replaced."""
        cset = self.get_set(addr)
        way = self._select_way(addr)
        line = cset.lines[way]
        evicted = EvictedLine(
            valid=line.valid,
            dirty=line.dirty,
            block_addr=((line.tag << (self._s + self._b))
                        | (self._set_index(addr) << self._b)) & _MASK64,
            data=bytes(line.data),
        )
        if line.valid:
            if line.dirty:
                self.dirty_eviction_count += 1
            else:
                self.clean_eviction_count += 1

        line.valid = True
        line.dirty = operation is Operation.WRITE
        line.tag = self._tag(addr)
        if incoming is not None:
            block = bytes(incoming[: self.block_size])
            line.data[:] = block.ljust(self.block_size, b"\0")
        else:
            line.data[:] = bytes(self.block_size)

        self._touch(cset, way)
        return evicted

    def get_word(self, addr: int) -> int:
        """Return the 8-byte little-endian word at an address held in the cache."""
        line = self.get_line(addr)
        if line is None:
            raise KeyError(f"address {addr:#x} is not in the cache")
        offset = addr & (self.block_size - 1)
        raw = bytes(line.data[offset : offset + _WORD_BYTES]).ljust(_WORD_BYTES, b"\0")
        return int.from_bytes(raw, "little")

    def set_word(self, addr: int, val: int) -> None:
        """Store an 8-byte little-endian word at an address held in the cache."""
        line = self.get_line(addr)
        if line is None:
            raise KeyError(f"address {addr:#x} is not in the cache")
        offset = addr & (self.block_size - 1)
        raw = (val & _MASK64).to_bytes(_WORD_BYTES, "little")
        count = min(_WORD_BYTES, self.block_size - offset)
        line.data[offset : offset + count] = raw[:count]
        line.dirty = True

    def access(self, addr: int, operation: Operation) -> None:
        """Access an address, filling its block on a miss."""
        if not self.check_hit(addr, operation):
            self.handle_miss(addr, operation, None)

    def checkpoint(self) -> Cache:
        """Return an independent copy of the cache and its statistics."""
        return copy.deepcopy(self)

    def display_set(self, index: int) -> str:
        """Describe the LRU state and lines of one set."""
        if not 0 <= index < self.num_sets:
            return f"Invalid Set {index}. 0 <= Set < {self.num_sets}\n"
        cset = self.sets[index]
        parts = [f"LRU Matrix: {cset.lru_matrix:X}, next_lru: {cset.next_lru}\n"]
        parts.extend(
            f"Valid: {int(line.valid)} Tag: {line.tag:x} Dirty: {int(line.dirty)}\n"
            for line in cset.lines
        )
        return "".join(parts)