import io

from archsim.cache import Cache
from archsim.csim import main, print_summary, replay_trace


def test_replay_counts_every_access():
    cache = Cache(1, 16, 64)
    lines = [" L 0,8\n", " S 0,8\n", " M 10,4\n", "I 400,4\n"]
    replay_trace(cache, lines)
    assert cache.hit_count + cache.miss_count == 4


def test_replay_repeated_load_hits():
    cache = Cache(1, 16, 64)
    replay_trace(cache, [" L 20,8", " L 20,8"])
    assert cache.check_hit(0x20, cache_op := __import_op())
    assert cache.miss_count == 1


def __import_op():
    from archsim.cache import Operation

    return Operation.READ


def test_replay_verbose_output():
    cache = Cache(1, 16, 64)
    out = io.StringIO()
    replay_trace(cache, [" L 1f,8\n"], verbose=True, out=out)
    assert out.getvalue() == "L 1f,8 \n"


def test_replay_ignores_instruction_records():
    cache = Cache(1, 16, 64)
    replay_trace(cache, ["I 400,4", "", "x"])
    assert cache.hit_count + cache.miss_count == 0


def test_print_summary_writes_results(tmp_path):
    cache = Cache(1, 16, 64)
    replay_trace(cache, [" L 0,8", " L 0,8", " S 40,8"])
    out = io.StringIO()
    path = tmp_path / "results"
    print_summary(cache, out=out, results_path=str(path))
    assert out.getvalue().startswith(f"hits:{cache.hit_count} misses:{cache.miss_count}")
    numbers = [int(x) for x in path.read_text().split()]
    assert numbers == [
        cache.hit_count,
        cache.miss_count,
        cache.dirty_eviction_count,
        cache.clean_eviction_count,
    ]


def test_main_runs_trace(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "t.trace").write_text(" L 0,8\n S 0,8\n L 100,8\n")
    status = main(["-A", "1", "-B", "16", "-C", "64", "-t", "t.trace"])
    assert status == 0
    printed = capsys.readouterr().out
    assert printed.startswith("hits:")
    recorded = (tmp_path / ".csim_results").read_text().split()
    assert f"hits:{recorded[0]} misses:{recorded[1]}" in printed


def test_main_missing_arguments(capsys):
    status = main(["-A", "1"])
    assert status == 0
    assert "Missing required command line argument" in capsys.readouterr().out


def test_main_invalid_set_count(tmp_path, capsys):
    status = main(["-A", "1", "-B", "16", "-C", "48", "-t", str(tmp_path / "x")])
    assert status == 1
    assert "number of sets must be a power of 2" in capsys.readouterr().out


def test_main_invalid_block_size(capsys):
    main(["-B", "12"])
    assert "Block size invalid" in capsys.readouterr().out


def test_main_missing_trace_file(tmp_path):
    status = main(["-A", "1", "-B", "16", "-C", "64", "-t", str(tmp_path / "none")])
    assert status == 1