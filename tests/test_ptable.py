import pytest

from archsim.ptable import HASHSIZE, PAGESIZE, PageTable, ptable_hash


def test_hash_of_zero():
    assert ptable_hash(0) == 0


@pytest.mark.parametrize("pnum", [1, 0x80, 0xFF, 0x400, 0x10000000, 2**56 - 1, 2**64 - 1])
def test_hash_in_range(pnum):
    assert 0 <= ptable_hash(pnum) < HASHSIZE


def test_hash_ignores_top_byte():
    assert ptable_hash(0x1234) == ptable_hash(0x1234 | (0xAB << 56))


def test_missing_page_is_none():
    assert PageTable().get_page(5) is None


def test_added_page_is_zeroed_and_found():
    table = PageTable()
    page = table.add_page(0x400, 5)
    assert table.get_page(0x400) is page
    assert page.prot == 5
    assert len(page.data) == PAGESIZE
    assert not any(page.data)


def test_pages_are_independent():
    table = PageTable()
    a = table.add_page(1, 6)
    b = table.add_page(1 + HASHSIZE, 6)
    a.data[0] = 0xAA
    assert table.get_page(1 + HASHSIZE) is b
    assert b.data[0] == 0


def test_readding_replaces_page():
    table = PageTable()
    table.add_page(9, 5)
    newer = table.add_page(9, 7)
    assert table.get_page(9) is newer