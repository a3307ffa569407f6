import pytest

from archsim.cache import Cache, Operation, lru


def test_lru_single_way_is_always_victim():
    victim, matrix = lru(1, 0, 0)
    assert victim == 0
    assert matrix == 0


def test_lru_two_ways_victim_is_other_way():
    victim, matrix = lru(2, 0, 0)
    assert victim == 1
    victim, matrix = lru(2, 1, matrix)
    assert victim == 0


def test_lru_rejects_large_associativity():
    with pytest.raises(ValueError):
        lru(9, 0, 0)


def test_miss_then_hit_same_block():
    cache = Cache(1, 16, 64)
    assert cache.check_hit(0, Operation.READ) is False
    cache.handle_miss(0, Operation.READ, None)
    assert cache.check_hit(0, Operation.READ) is True
    assert cache.check_hit(8, Operation.READ) is True
    assert cache.hit_count + cache.miss_count == 3


def test_set_mapping_invariants():
    cache = Cache(1, 16, 64)
    assert cache.get_set(0) is cache.get_set(64)
    assert cache.get_set(0) is not cache.get_set(16)
    assert cache.get_set(0) is cache.get_set(15)


def test_conflict_causes_clean_eviction():
    cache = Cache(1, 16, 64)
    cache.access(0, Operation.READ)
    cache.access(64, Operation.READ)
    assert cache.clean_eviction_count == 1
    assert cache.dirty_eviction_count == 0
    assert cache.get_line(0) is None
    assert cache.get_line(64) is not None


def test_dirty_eviction_returns_block_and_data():
    cache = Cache(1, 16, 64)
    cache.handle_miss(32, Operation.WRITE, bytes(range(16)))
    cache.set_word(40, 0x1122334455667788)
    evicted = cache.handle_miss(96, Operation.READ, None)
    assert evicted.valid and evicted.dirty
    assert evicted.block_addr == 32
    assert evicted.data[8:16] == (0x1122334455667788).to_bytes(8, "little")
    assert evicted.data[:8] == bytes(range(8))
    assert cache.dirty_eviction_count == 1


def test_first_miss_evicts_nothing():
    cache = Cache(2, 16, 64)
    evicted = cache.handle_miss(0, Operation.READ, None)
    assert evicted.valid is False
    assert cache.clean_eviction_count == 0


def test_word_round_trip_marks_dirty():
    cache = Cache(2, 32, 128)
    cache.access(0x100, Operation.READ)
    assert cache.get_line(0x100).dirty is False
    cache.set_word(0x108, 0xDEADBEEFCAFEF00D)
    assert cache.get_word(0x108) == 0xDEADBEEFCAFEF00D
    assert cache.get_line(0x100).dirty is True


def test_write_hit_sets_dirty():
    cache = Cache(1, 16, 64)
    cache.access(0, Operation.READ)
    cache.check_hit(0, Operation.WRITE)
    assert cache.get_line(0).dirty is True


def test_incoming_data_is_loaded():
    cache = Cache(1, 16, 64)
    cache.handle_miss(0, Operation.READ, bytes([7] * 16))
    assert cache.get_word(0) == int.from_bytes(bytes([7] * 8), "little")


def test_get_word_missing_raises():
    cache = Cache(1, 16, 64)
    with pytest.raises(KeyError):
        cache.get_word(0)


def test_lru_replacement_in_single_set():
    cache = Cache(2, 16, 32)
    cache.access(0, Operation.READ)
    cache.access(16, Operation.READ)
    assert cache.check_hit(0, Operation.READ) is True
    cache.access(32, Operation.READ)
    assert cache.check_hit(0, Operation.READ) is True
    assert cache.check_hit(16, Operation.READ) is False


def test_select_line_prefers_invalid():
    cache = Cache(2, 16, 32)
    cache.access(0, Operation.READ)
    line = cache.select_line(16)
    assert line.valid is False


def test_checkpoint_is_independent():
    cache = Cache(1, 16, 64)
    cache.access(0, Operation.READ)
    snap = cache.checkpoint()
    cache.set_word(0, 99)
    cache.access(64, Operation.READ)
    assert snap.get_word(0) == 0
    assert snap.hit_count + snap.miss_count == 1
    assert snap.get_line(0) is not None


def test_display_set_lists_lines():
    cache = Cache(2, 16, 64)
    text = cache.display_set(0)
    assert text.startswith("LRU Matrix: 0, next_lru: ")
    assert text.count("Valid: 0 Tag: 0 Dirty: 0") == 2


def test_display_set_invalid_index():
    cache = Cache(1, 16, 64)
    assert cache.display_set(9) == "Invalid Set 9. 0 <= Set < 4\n"