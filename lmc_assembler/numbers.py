"""
Number-list assembler.

Builds a memory image from a file of raw cell values, one per line, for
programs that were hand-assembled or dumped from another tool:

    512     # LDA 12
    113
    902
    ; blank lines and comments are skipped

Values go into consecutive addresses from 0; unused cells stay 0.
"""

from __future__ import annotations
import logging

from lmc_emulator.config import CELL_MAX, MEMORY_SIZE
from lmc_emulator.mem.memory import Memory
from .assembler import AssemblerError, strip_comment

__all__ = ['NumberFileError', 'assemble_numbers']

log = logging.getLogger(__name__)


class NumberFileError(AssemblerError):
    """Bad value or too many values in a number list."""


def assemble_numbers(text: str) -> Memory:
    """Parse a number list into a Memory."""
    values = []
    for line_num, raw in enumerate(text.splitlines(), 1):
        code, _ = strip_comment(raw)
        code = code.strip()
        if not code:
            continue
        if not code.isdecimal():
            raise NumberFileError(f"Expected a number 0-{CELL_MAX}, got '{code}'",
                                  line_num, raw.strip())
        value = int(code)
        if value > CELL_MAX:
            raise NumberFileError(f"Value out of range 0-{CELL_MAX}: {value}",
                                  line_num, raw.strip())
        if len(values) == MEMORY_SIZE:
            raise NumberFileError(f"More than {MEMORY_SIZE} numbers",
                                  line_num, raw.strip())
        values.append(value)

    log.debug("Loaded %d numbers", len(values))
    return Memory(values)
