"""
LMC Assembler — Little Minion Computer toolchain front end
==========================================================
Turns mnemonic source (or a plain list of numbers) into the 100-cell
memory image the emulator runs, and back again.

Architecture:
    ┌───────────┐    ┌───────────┐    ┌───────────┐
    │ .lmc text │───>│ Assembler │───>│  Memory   │───> lmc_emulator
    └───────────┘    │ (2 passes)│    │ 100 cells │
                     └───────────┘    └───────────┘
                           │                │
                      encoding.py      listing.py
                     (opcode table)   (cells -> text)

    - encoding.py:  mnemonic <-> cell, shared with the emulator's decoder
    - assembler.py: two-pass label resolver + error classes
    - numbers.py:   one cell value per line, no mnemonics
    - listing.py:   disassembly of a memory image
"""

__version__ = "0.2.0"

from .encoding import Instruction, EncodingError, encode, decode, disassemble
from .assembler import (
    Assembler, AssemblerError, AssemblerSyntaxError, DuplicateLabelError,
    UndefinedLabelError, OperandRangeError, ProgramTooLargeError,
    FeatureDisabledError, assemble,
)
from .numbers import NumberFileError, assemble_numbers
from .listing import listing, source_text
