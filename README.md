# archsim

archsim provides the parts of a cycle-level emulator for a five-stage
pipelined processor (fetch, decode, execute, memory, writeback) running a
teaching subset of 64-bit ARM: instruction tables, pipeline registers,
forwarding and hazard logic, demand-paged guest memory with special I/O
addresses, an ELF loader, and a set-associative, write-back cache with
matrix-based LRU replacement. A command-line cache simulator replays memory
traces against that cache.

## Installation

```
pip install .
```

## Cache simulator

```
archsim-csim -A 1 -B 16 -C 64 -t trace.txt
```

| Option      | Meaning                                                  |
|-------------|----------------------------------------------------------|
| `-h`        | Print help.                                              |
| `-v`        | Echo each access as it is replayed.                      |
| `-A <num>`  | Lines per set (at most 8).                               |
| `-B <num>`  | Bytes per block; a power of two, at least 8.             |
| `-C <num>`  | Bytes in the cache.                                      |
| `-t <file>` | Trace file.                                              |

The number of sets, `C / (A * B)`, must be a power of two.

Each trace line has the form ` L 10,8`, ` S 18,8` or ` M 20,8`: load, store,
or modify (a load followed by a store), with a hexadecimal address and a
size. Other lines are skipped. The simulator prints

```
hits:H misses:M dirty evictions:D clean evictions:E
```

and writes the same four numbers to `.csim_results` in the current directory.

## Using it as a library

The cache:

```python
from archsim.cache import Cache, Operation

cache = Cache(2, 16, 256, 0)        # associativity, block size, capacity, miss delay
cache.access(0x1000, Operation.READ)   # miss
cache.access(0x1000, Operation.WRITE)  # hit, marks the line dirty
print(cache.hit_count, cache.miss_count)   # 1 1
print(cache.display_set(0))
```

`archsim.csim.replay_trace` and `archsim.csim.print_summary` run a trace from
any iterable of lines and report on it.

Guest memory and program loading:

```python
from archsim.memory import Memory
from archsim.elf_loader import load_elf

mem = Memory()                      # optionally Memory(cache=Cache(...))
entry = load_elf("program.elf", mem)
word = mem.read(0x800000, 8)
mem.write(0x800008, 42, 8)
```

`Memory` materialises pages on first touch (`archsim.ptable.PageTable`),
treats the null, console and checkpoint addresses specially, and routes data
accesses through the cache, reporting `MemStatus.IN_FLIGHT` while a miss
delay counts down. Reading the null address raises `NullPointerError`;
`load_elf` raises `ElfError` for files that are not ELF executables.

Instruction decoding and pipeline logic:

- `archsim.isa`: `Opcode`, `Format`, `Cond`, `AluOp`, `Status`, `Stage`,
  `PipeControl`, `InstructionSet` (`lookup`, `format_of`, with or without the
  extra-credit instructions), `bitfield_u32`, `bitfield_s64`, `pack_nzcv`,
  `unpack_nzcv`, `opcode_name` and `stage_orderings`.
- `archsim.pipe_regs`: the per-stage register contents, `PipeRegister` with
  its `clock` edge, `PipelineRegisters` and the inter-stage `Wires`.
- `archsim.forward.forward_reg`: forwarding from execute, memory and
  writeback back to decode.
- `archsim.hazard.handle_hazards`: stall and bubble control for errors,
  in-flight cache misses, mispredicted branches, load-use hazards and returns.
- `archsim.trace`: `format_stage` and `format_nzcv` render pipeline state at
  debug levels 1 to 3.
- `archsim.log.EventLog`: coloured diagnostics that keep only the first
  warning or error and nothing after a fatal message.

## What the package does not do

The package has no command that runs an ELF program, and no cycle loop that
drives the stages. It does not include the ALU and register file, the fetch,
decode, execute, memory and writeback stage logic, or the machine-state
checkpoint writer. The pieces above can be assembled into such an emulator,
but the package does not do so itself.