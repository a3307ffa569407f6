"""Replay memory-access traces against the cache and report statistics."""

from __future__ import annotations

import getopt
import re
import sys
from typing import Iterable, TextIO

from .cache import Cache, Operation

_PROG = "csim"
_ADDR_RE = re.compile(r"\s*(?:0[xX])?([0-9a-fA-F]+)")
_LEN_RE = re.compile(r",\s*(\d+)")
_INT_RE = re.compile(r"\s*([+-]?\d+)")


def replay_trace(
    cache: Cache, lines: Iterable[str], verbose: bool = False, out: TextIO | None = None
) -> None:
    """Apply every load, store and modify record of a trace to the cache."""
    out = out if out is not None else sys.stdout
    addr = 0
    length = 0
    for line in lines:
        if len(line) < 2 or line[1] not in "SLM":
            continue
        kind = line[1]
        rest = line[3:]
        match = _ADDR_RE.match(rest)
        if match:
            addr = int(match.group(1), 16)
            len_match = _LEN_RE.match(rest, match.end())
            if len_match:
                length = int(len_match.group(1))

        if verbose:
            out.write(f"{kind} {addr:x},{length} ")

        if kind == "S":
            cache.access(addr, Operation.WRITE)
        elif kind == "L":
            cache.access(addr, Operation.READ)
        else:
            cache.access(addr, Operation.READ)
            cache.access(addr, Operation.WRITE)

        if verbose:
            out.write("\n")


def print_summary(
    cache: Cache, out: TextIO | None = None, results_path: str = ".csim_results"
) -> None:
    """Print the statistics and record them in the results file."""
    out = out if out is not None else sys.stdout
    hits = cache.hit_count
    misses = cache.miss_count
    dirty = cache.dirty_eviction_count
    clean = cache.clean_eviction_count
    out.write(
        f"hits:{hits} misses:{misses} dirty evictions:{dirty} "
        f"clean evictions:{clean}\n"
    )
    with open(results_path, "w", encoding="utf-8") as results:
        results.write(f"{hits} {misses} {dirty} {clean}\n")


def _print_usage() -> None:
    print(f"Usage: {_PROG} [-hv] -A <num> -B <num> -C <num> -t <file>")
    print("Options:")
    print("  -h         Print this help message.")
    print("  -v         Optional verbose flag.")
    print("  -A <num>   Number of lines per set.")
    print("  -B <num>   Number of bytes per block. Must be >= 8 and a power of 2.")
    print("  -C <num>   Number of bytes in the cache. ")
    print("  -t <file>  Trace file.")
    print()
    print("Examples:")
    print(f"  linux>  {_PROG} -A 1 -B 16 -C 64 -t testcases/cache/yi.trace")
    print(f"  linux>  {_PROG} -v -A 2 -B 16 -C 256 -t testcases/cache/yi.trace")


def _atoi(text: str) -> int:
    match = _INT_RE.match(text)
    return int(match.group(1)) if match else 0


def _is_power_of_two(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


def main(argv: list[str] | None = None) -> int:
    """Run the trace-driven cache simulator; return the exit status."""
    args = sys.argv[1:] if argv is None else argv
    try:
        opts, _ = getopt.gnu_getopt(args, "A:B:C:t:vh")
    except getopt.GetoptError:
        _print_usage()
        return 0

    assoc = block = capacity = -1
    trace_file: str | None = None
    verbose = False
    for opt, value in opts:
        if opt == "-A":
            assoc = _atoi(value)
        elif opt == "-B":
            block = _atoi(value)
            if not _is_power_of_two(block) or block < 8:
                print("Block size invalid. Refer to usage:")
                _print_usage()
                return 0
        elif opt == "-C":
            capacity = _atoi(value)
        elif opt == "-t":
            trace_file = value
        elif opt == "-v":
            verbose = True
        elif opt == "-h":
            _print_usage()
            return 0

    if assoc == -1 or block == -1 or capacity == -1 or trace_file is None:
        print(f"{_PROG}: Missing required command line argument")
        _print_usage()
        return 0

    ways_bytes = assoc * block
    num_sets = int(capacity / ways_bytes) if ways_bytes else 0
    if not _is_power_of_two(num_sets):
        print(
            "Invalid cache configuration; the number of sets must be a power of 2."
        )
        return 1

    cache = Cache(assoc, block, capacity, 0)
    try:
        with open(trace_file, encoding="utf-8", errors="replace") as trace:
            replay_trace(cache, trace, verbose)
    except OSError as exc:
        sys.stderr.write(f"{trace_file}: {exc.strerror}\n")
        return 1

    print_summary(cache)
    return 0