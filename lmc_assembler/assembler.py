"""
LMC Two-Pass Assembler

Assembles Little Minion Computer mnemonic source into a 100-cell memory
image ready for the emulator.

Input:  Assembly text, one statement per line
Output: lmc_emulator Memory

Line format (whitespace separated, 1–3 words):
  [label] MNEMONIC [operand]   [# comment | ; comment | // comment]

  loop    LDA count    ; label, mnemonic, operand
          OUT          # mnemonic only
  count   DAT 10       // label + data literal

Mnemonics are case-insensitive (STA/BRA/IN are accepted spellings of
STO/BR/INP). Labels are case-sensitive identifiers and may be referenced
before or after the line that defines them.

How the two-pass algorithm works:
  Pass 1: Walk the statements assigning addresses 0, 1, 2, ... A label
          binds to the address of the statement on its line. Duplicate
          labels, a 101st statement and disabled extended mnemonics are
          caught here.
  Pass 2: Resolve operands (labels or literals), range-check them and
          encode each statement into its cell.

Assembly is all or nothing: errors from a pass are collected, and if
there are any no memory image is produced.
"""

from __future__ import annotations
from typing import Dict, List, Optional
from dataclasses import dataclass
import logging
import re

from lmc_emulator.config import ADDRESS_MAX, CELL_MAX, MEMORY_SIZE
from lmc_emulator.mem.memory import Memory
from .encoding import (
    OPCODES, EXTENDED_MNEMONICS, encode, normalize_mnemonic, takes_operand,
)

__all__ = [
    'Assembler', 'AssemblerError', 'AssemblerSyntaxError', 'DuplicateLabelError',
    'UndefinedLabelError', 'OperandRangeError', 'ProgramTooLargeError',
    'FeatureDisabledError', 'AsmLine', 'assemble', 'strip_comment',
]

log = logging.getLogger(__name__)


class AssemblerError(Exception):
    """Raised on assembly errors.

    When a pass finds more than one problem the raised error is a plain
    AssemblerError whose ``errors`` list holds each individual error.
    """
    def __init__(self, message: str, line_num: int = 0, line_text: str = "",
                 errors: Optional[List["AssemblerError"]] = None):
        self.message = message
        self.line_num = line_num
        self.line_text = line_text
        self.errors: List[AssemblerError] = errors or []
        super().__init__(f"Line {line_num}: {message}" if line_num else message)


class AssemblerSyntaxError(AssemblerError):
    """Malformed statement: wrong word count, bad label, misplaced EXT, ..."""


class DuplicateLabelError(AssemblerError):
    """A label was defined twice."""


class UndefinedLabelError(AssemblerError):
    """An operand names a label that is never defined."""


class OperandRangeError(AssemblerError):
    """Address operand outside 0–99 or DAT literal outside 0–999."""


class ProgramTooLargeError(AssemblerError):
    """More than 100 statements."""


class FeatureDisabledError(AssemblerError):
    """Extended mnemonic used while extended mode is off."""


# ──────────────────────────────────────────────
# Line Parser
# ──────────────────────────────────────────────

COMMENT_MARKERS = ('//', '#', ';')

_LABEL_RE = re.compile(r'[A-Za-z_][A-Za-z0-9_]*$')
_NUMBER_RE = re.compile(r'[+-]?\d+$')


@dataclass
class AsmLine:
    """Parsed assembly source line. ``mnemonic`` is already canonical."""
    label: Optional[str] = None
    mnemonic: Optional[str] = None
    operand: Optional[str] = None
    comment: Optional[str] = None
    line_num: int = 0
    raw: str = ""
    address: Optional[int] = None


def strip_comment(line: str):
    """Split ``line`` into (code, comment) at the first comment marker."""
    cut = -1
    width = 0
    for marker in COMMENT_MARKERS:
        pos = line.find(marker)
        if pos >= 0 and (cut < 0 or pos < cut):
            cut, width = pos, len(marker)
    if cut < 0:
        return line, None
    return line[:cut], line[cut + width:].strip()


def _parse_line(line: str, line_num: int) -> AsmLine:
    """Parse one line of assembly into label, mnemonic, operand, comment."""
    result = AsmLine(line_num=line_num, raw=line)

    text, result.comment = strip_comment(line)
    words = text.split()
    if not words:
        return result

    def fail(message):
        raise AssemblerSyntaxError(message, line_num, line.strip())

    if len(words) > 3:
        fail(f"Too many words ({len(words)}); expected [label] mnemonic [operand]")

    first = normalize_mnemonic(words[0])
    if first is not None:
        # mnemonic [operand]
        if len(words) == 3:
            if normalize_mnemonic(words[1]) is not None:
                fail(f"Multiple instructions on one line: {words[0]} {words[1]}")
            fail(f"Unexpected word after operand: {words[2]}")
        result.mnemonic = first
        if len(words) == 2:
            if normalize_mnemonic(words[1]) is not None:
                fail(f"Multiple instructions on one line: {words[0]} {words[1]}")
            result.operand = words[1]
    else:
        # label mnemonic [operand]
        label = words[0]
        if _NUMBER_RE.match(label):
            fail(f"Expected a label or instruction, got number {label}")
        if not _LABEL_RE.match(label):
            fail(f"Invalid label: {label}")
        if len(words) == 1:
            fail(f"Unknown instruction: {label}")
        mnem = normalize_mnemonic(words[1])
        if mnem is None:
            fail(f"Unknown instruction: {words[1]}")
        result.label = label
        result.mnemonic = mnem
        if len(words) == 3:
            if normalize_mnemonic(words[2]) is not None:
                fail(f"Multiple instructions on one line: {words[1]} {words[2]}")
            result.operand = words[2]

    # Operand shape is a pass-1 concern so pass 2 only deals with values
    if takes_operand(result.mnemonic):
        if result.operand is None and result.mnemonic != 'DAT':
            fail(f"{result.mnemonic} requires an address operand")
    elif result.operand is not None:
        fail(f"{result.mnemonic} takes no operand, got {result.operand}")

    return result


# ──────────────────────────────────────────────
# Assembler
# ──────────────────────────────────────────────

class Assembler:
    """Two-pass LMC assembler.

    Usage:
        asm = Assembler()
        memory = asm.assemble(source_text)
        print(asm.get_listing())
    """

    def __init__(self, extended_enabled: bool = True):
        self.extended_enabled = extended_enabled
        self.symbols: Dict[str, int] = {}          # label -> address
        self.errors: List[AssemblerError] = []     # errors from the current pass
        self.memory: Optional[Memory] = None       # last successful image
        self._lines: List[AsmLine] = []            # statements only, in address order

    def assemble(self, source: str) -> Memory:
        """Assemble source text into a fresh Memory.

        Raises the AssemblerError subclass for the problem, or a plain
        AssemblerError listing every problem when a pass finds several.
        """
        self.symbols = {}
        self.errors = []
        self._lines = []
        self.memory = None

        # Pass 1: parse, assign addresses, register labels
        self._pass1(source)
        self._raise_errors("Pass 1")

        # Pass 2: resolve operands and encode
        memory = self._pass2()
        self._raise_errors("Pass 2")

        self.memory = memory
        log.debug("Assembled %d statements, %d labels", len(self._lines), len(self.symbols))
        return memory

    def _raise_errors(self, stage: str):
        if not self.errors:
            return
        log.debug("%s failed with %d error(s)", stage, len(self.errors))
        if len(self.errors) == 1:
            raise self.errors[0]
        raise AssemblerError(
            f"{stage} errors:\n" + "\n".join(str(e) for e in self.errors),
            errors=list(self.errors),
        )

    def _pass1(self, source: str):
        """Pass 1: assign an address to every statement and bind labels."""
        address = 0
        too_large_reported = False

        for line_num, raw in enumerate(source.splitlines(), 1):
            try:
                line = _parse_line(raw, line_num)
            except AssemblerError as e:
                self.errors.append(e)
                continue
            if line.mnemonic is None:
                continue

            if address >= MEMORY_SIZE:
                if not too_large_reported:
                    self.errors.append(ProgramTooLargeError(
                        f"Program exceeds {MEMORY_SIZE} statements",
                        line_num, raw.strip()))
                    too_large_reported = True
                address += 1
                continue

            line.address = address
            try:
                self._pass1_line(line)
            except AssemblerError as e:
                self.errors.append(e)
            self._lines.append(line)
            address += 1

    def _pass1_line(self, line: AsmLine):
        """Label registration + extended-mode checks for one statement."""
        text = line.raw.strip()

        if line.label is not None:
            if line.label in self.symbols:
                raise DuplicateLabelError(
                    f"Duplicate label '{line.label}' "
                    f"(first defined at address {self.symbols[line.label]})",
                    line.line_num, text)
            self.symbols[line.label] = line.address

        if line.mnemonic in EXTENDED_MNEMONICS and not self.extended_enabled:
            raise FeatureDisabledError(
                f"{line.mnemonic} requires extended mode", line.line_num, text)

        if line.mnemonic == 'EXT' and line.address != 0:
            raise AssemblerSyntaxError(
                "EXT must be the first statement (address 0)", line.line_num, text)

    def _pass2(self) -> Memory:
        """Pass 2: encode every statement into its cell."""
        memory = Memory()
        for line in self._lines:
            try:
                memory.write(line.address, self._pass2_line(line))
            except AssemblerError as e:
                self.errors.append(e)
        return memory

    def _pass2_line(self, line: AsmLine) -> int:
        text = line.raw.strip()
        if line.operand is None:
            return encode(line.mnemonic)

        value = self._resolve(line.operand, line.line_num, text)
        limit = CELL_MAX if line.mnemonic == 'DAT' else ADDRESS_MAX
        if not 0 <= value <= limit:
            kind = "DAT value" if line.mnemonic == 'DAT' else "Address"
            raise OperandRangeError(
                f"{kind} out of range 0-{limit}: {value}", line.line_num, text)
        return encode(line.mnemonic, value)

    def _resolve(self, operand: str, line_num: int, text: str) -> int:
        """Numeric literal or label reference -> int."""
        if _NUMBER_RE.match(operand):
            return int(operand, 10)
        if not _LABEL_RE.match(operand):
            raise AssemblerSyntaxError(f"Invalid operand: {operand}", line_num, text)
        if operand not in self.symbols:
            raise UndefinedLabelError(f"Undefined label: {operand}", line_num, text)
        return self.symbols[operand]

    # ══════════════════════════════════════════════
    # Listing
    # ══════════════════════════════════════════════

    def get_listing(self) -> str:
        """Return a listing of address, cell and source for every statement."""
        if self.memory is None:
            return ""
        lines = [f"{'ADDR':>4}  {'CELL':>4}  SOURCE", "-" * 40]
        for asmline in self._lines:
            cell = self.memory.read(asmline.address)
            raw = asmline.raw.strip()
            if len(raw) > 40:
                raw = raw[:40]
            lines.append(f"{asmline.address:>4}   {cell:03d}  {raw}")
        return '\n'.join(lines)


# ──────────────────────────────────────────────
# Convenience functions
# ──────────────────────────────────────────────

def assemble(source: str, extended_enabled: bool = True) -> Memory:
    """Assemble source text, return the memory image."""
    return Assembler(extended_enabled=extended_enabled).assemble(source)
