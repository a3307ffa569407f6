"""Coloured diagnostic logging with the emulator's suppression rules."""

from __future__ import annotations

import sys
from enum import IntEnum
from typing import TextIO

ANSI_RESET = "\x1b[0m"
ANSI_BOLD = "\x1b[1m"
ANSI_COLOR_RED = "\x1b[31m"
ANSI_COLOR_GREEN = "\x1b[32m"
ANSI_COLOR_YELLOW = "\x1b[33m"
ANSI_COLOR_CYAN = "\x1b[36m"


class Severity(IntEnum):
    """Severity of a log message."""

    INFO = 0
    WARNING = 1
    ERROR = 2
    FATAL = 3
    OUTPUT = 4


_NAMES = {
    Severity.INFO: "INFO",
    Severity.WARNING: "WARNING",
    Severity.ERROR: "ERROR",
    Severity.FATAL: "FATAL",
    Severity.OUTPUT: "OUTPUT",
}

_COLORS = {
    Severity.INFO: ANSI_COLOR_CYAN,
    Severity.WARNING: ANSI_COLOR_YELLOW,
    Severity.ERROR: ANSI_COLOR_RED,
    Severity.FATAL: ANSI_BOLD + ANSI_COLOR_RED,
    Severity.OUTPUT: ANSI_COLOR_GREEN,
}


def format_message(severity: Severity, msg: str) -> str:
    """Return a message decorated with its severity's colour and name."""
    return f"{_COLORS[severity]}\t[{_NAMES[severity]}] {msg}{ANSI_RESET}"


class EventLog:
    """Writes diagnostics; only the first warning or error and nothing after a fatal one."""

    def __init__(self, err: TextIO | None = None, out: TextIO | None = None) -> None:
        self.err = err if err is not None else sys.stderr
        self.out = out if out is not None else sys.stdout
        self.terminate = False
        self.ignore_input = False

    def log(self, severity: Severity, msg: str) -> int:
        """Log a message; return the number of characters written (0 if suppressed)."""
        if self.terminate:
            return 0
        if severity in (Severity.WARNING, Severity.ERROR):
            if self.ignore_input:
                return 0
            self.ignore_input = True
        elif severity is Severity.FATAL:
            self.terminate = True
        if self.out is not sys.stdout and severity is Severity.ERROR:
            self.out.write("\t[ERROR]\n")
        return self.err.write(format_message(severity, msg) + "\n")