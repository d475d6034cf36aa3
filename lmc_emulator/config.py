"""
LMC Emulator — Machine Constants + Run Configuration

Everything that sizes the machine lives here so the assembler, the
engine, the image codec and the CLI all agree on the same numbers.

Machine model:
  MEMORY_SIZE        — 100 cells, addresses 0–99
  CELL_MAX           — a cell holds 0–999 (three decimal digits)
  ACC_MIN / ACC_MAX  — accumulator range, -999..999
  EXTENDED_SENTINEL  — cell 0 holding 010 switches the run into extended mode
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


# ──────────────────────────────────────────────
# Machine model
# ──────────────────────────────────────────────

MEMORY_SIZE = 100
ADDRESS_MAX = MEMORY_SIZE - 1
CELL_MAX = 999
ACC_MIN = -999
ACC_MAX = 999
WRAP = 1000                 # arithmetic wraps modulo 10^3

EXTENDED_SENTINEL = 10      # "EXT" / "DAT 010" at address 0

CHAR_MASK = 0xFF            # INA/OTA carry one byte


# ──────────────────────────────────────────────
# Runtime defaults
# ──────────────────────────────────────────────

DEFAULT_MAX_STEPS = 10_000

SERIAL_BAUD = 9600
SERIAL_TIMEOUT = 0.0        # non-blocking reads: no byte yet -> AWAITING_INPUT
SERIAL_WRITE_TIMEOUT = 1.0



@dataclass
class RunConfig:
    """Options shared by every CLI command that assembles or runs a program."""
    max_steps: int = DEFAULT_MAX_STEPS
    extended: bool = True
    trace: bool = False
    serial_port: Optional[str] = None
    baudrate: int = SERIAL_BAUD
    log_level: int = logging.WARNING
    log_file: Optional[Path] = None

    @classmethod
    def from_args(cls, args) -> "RunConfig":
        """Build a config from an argparse namespace, ignoring missing options."""
        verbose = getattr(args, "verbose", 0) or 0
        quiet = getattr(args, "quiet", False)
        if quiet:
            level = logging.ERROR
        elif verbose >= 2:
            level = logging.DEBUG
        elif verbose == 1:
            level = logging.INFO
        else:
            level = logging.WARNING

        log_file = getattr(args, "log_file", None)
        return cls(
            max_steps=getattr(args, "max_steps", None) or DEFAULT_MAX_STEPS,
            extended=not getattr(args, "no_extended", False),
            trace=getattr(args, "trace", False),
            serial_port=getattr(args, "serial", None),
            baudrate=getattr(args, "baud", None) or SERIAL_BAUD,
            log_level=level,
            log_file=Path(log_file) if log_file else None,
        )
