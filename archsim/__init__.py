"""Pipeline, memory, ELF-loading and cache components of a 64-bit ARM subset emulator, with a trace-driven cache simulator."""

__version__ = "0.1.0"