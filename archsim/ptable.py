"""Demand-paged memory: pages are created the first time they are touched."""

from __future__ import annotations

from dataclasses import dataclass, field

PAGESIZE = 4096
HASHSIZE = 128

_MASK64 = (1 << 64) - 1


def ptable_hash(pnum: int) -> int:
    """Hash a page number into one of HASHSIZE buckets."""
    h = 0
    for byte in (pnum & _MASK64).to_bytes(8, "little")[:7]:
        signed = byte - 256 if byte & 0x80 else byte
        h = ((h << 4) + signed) & _MASK64
        high = h & 0xF0000000
        if high:
            h ^= high >> 24
        h &= ~high & _MASK64
    return h % HASHSIZE


@dataclass
class Page:
    """One page of memory with its protection bits."""

    num: int
    prot: int
    data: bytearray = field(default_factory=lambda: bytearray(PAGESIZE))


class PageTable:
    """Hash table of materialised pages; pages are never replaced."""

    def __init__(self) -> None:
        self._buckets: list[dict[int, Page]] = [{} for _ in range(HASHSIZE)]

    def get_page(self, pnum: int) -> Page | None:
        """Return the page with this number, or None if it was never added."""
        return self._buckets[ptable_hash(pnum)].get(pnum)

    def add_page(self, pnum: int, prot: int) -> Page:
        """Create a zero-filled page and return it."""
        page = Page(pnum, prot)
        self._buckets[ptable_hash(pnum)][pnum] = page
        return page