"""
LMC Instruction Encoding — mnemonic <-> cell

Pure functions, no state. A cell is just an int 0–999; whether it is an
instruction or data is decided by whoever reads it. Both the assembler
(encode) and the execution engine (decode, on every fetch) go through
this one table so the two can never disagree.

Cell layout (three decimal digits):
  hundreds digit — opcode
  last two digits — address operand (0–99)

  HLT  000 (0xx: the trailing digits are ignored)
  ADD  1xx    SUB  2xx    STO  3xx
  LDA  5xx    BR   6xx    BRZ  7xx    BRP  8xx
  INP  901    OUT  902

Extended subset, only decoded when the run is in extended mode:
  EXT  010  — the sentinel; a no-op when executed at address 0
  INA  911  — read one character into the accumulator
  OTA  912  — write the accumulator as one character

4xx and any other 9xx never decode. An undecodable cell gives the
explicit INVALID instruction, never HLT.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional

from lmc_emulator.config import ADDRESS_MAX, CELL_MAX, EXTENDED_SENTINEL

__all__ = [
    'Instruction', 'EncodingError', 'OPCODES', 'ALIASES', 'EXTENDED_MNEMONICS',
    'encode', 'decode', 'disassemble', 'normalize_mnemonic', 'takes_operand',
]


class EncodingError(ValueError):
    """Raised when a mnemonic/operand pair has no cell encoding."""


# ──────────────────────────────────────────────
# Addressing forms
# ──────────────────────────────────────────────

NONE = 'NONE'    # fixed code, no operand
ADDR = 'ADDR'    # hundreds digit + address 0–99
DATA = 'DATA'    # raw cell value (DAT, assembler only)


# ──────────────────────────────────────────────
# Opcode Table
# ──────────────────────────────────────────────
# Format: { 'MNEMONIC': (form, base_code, extended_only) }

OPCODES: Dict[str, tuple] = {}

def _op(mnemonic: str, form: str, code: int, extended: bool = False):
    """Register an opcode entry."""
    OPCODES[mnemonic] = (form, code, extended)

_op('HLT', NONE, 0)
_op('ADD', ADDR, 100)
_op('SUB', ADDR, 200)
_op('STO', ADDR, 300)
_op('LDA', ADDR, 500)
_op('BR',  ADDR, 600)
_op('BRZ', ADDR, 700)
_op('BRP', ADDR, 800)
_op('INP', NONE, 901)
_op('OUT', NONE, 902)
_op('DAT', DATA, 0)

# ── Extended subset ──
_op('EXT', NONE, EXTENDED_SENTINEL, extended=True)
_op('INA', NONE, 911, extended=True)
_op('OTA', NONE, 912, extended=True)

# Spellings accepted by the assembler, mapped to the canonical mnemonic
ALIASES: Dict[str, str] = {
    'STA': 'STO',
    'BRA': 'BR',
    'IN': 'INP',
}

EXTENDED_MNEMONICS = frozenset(m for m, (_, _, ext) in OPCODES.items() if ext)

# hundreds digit -> mnemonic, for the address forms
_ADDR_BY_DIGIT = {code // 100: m for m, (form, code, _) in OPCODES.items() if form == ADDR}
# full code -> mnemonic, for the fixed 9xx forms
_FIXED_9XX = {901: 'INP', 902: 'OUT'}
_FIXED_9XX_EXT = {911: 'INA', 912: 'OTA'}


@dataclass(frozen=True)
class Instruction:
    """A decoded cell. ``operand`` is None for no-operand instructions."""
    mnemonic: str
    operand: Optional[int] = None

    @property
    def is_valid(self) -> bool:
        return self.mnemonic != 'INVALID'

    def __str__(self) -> str:
        if self.operand is None:
            return self.mnemonic
        return f"{self.mnemonic} {self.operand:02d}"


INVALID = Instruction('INVALID')


def normalize_mnemonic(text: str) -> Optional[str]:
    """Canonical mnemonic for ``text`` (any case, aliases allowed), or None."""
    upper = text.upper()
    upper = ALIASES.get(upper, upper)
    return upper if upper in OPCODES else None


def takes_operand(mnemonic: str) -> bool:
    """True when the canonical ``mnemonic`` has an address or data operand."""
    return OPCODES[mnemonic][0] != NONE


def encode(mnemonic: str, operand: Optional[int] = None) -> int:
    """Encode one instruction into a cell value.

    ``DAT`` passes its literal through unchanged (0 when omitted).
    """
    mnem = normalize_mnemonic(mnemonic)
    if mnem is None:
        raise EncodingError(f"Unknown mnemonic: {mnemonic}")
    form, code, _ = OPCODES[mnem]

    if form == NONE:
        if operand is not None:
            raise EncodingError(f"{mnem} takes no operand")
        return code

    if form == DATA:
        value = 0 if operand is None else operand
        if not 0 <= value <= CELL_MAX:
            raise EncodingError(f"DAT value out of range 0-{CELL_MAX}: {value}")
        return value

    if operand is None:
        raise EncodingError(f"{mnem} requires an address operand")
    if not 0 <= operand <= ADDRESS_MAX:
        raise EncodingError(f"{mnem} address out of range 0-{ADDRESS_MAX}: {operand}")
    return code + operand


def decode(cell: int, extended: bool = False) -> Instruction:
    """Decode a cell value. Never raises; undecodable cells give INVALID."""
    if not 0 <= cell <= CELL_MAX:
        return INVALID

    digit, address = divmod(cell, 100)

    if digit == 0:
        if extended and cell == EXTENDED_SENTINEL:
            return Instruction('EXT')
        return Instruction('HLT')

    if digit in _ADDR_BY_DIGIT:
        return Instruction(_ADDR_BY_DIGIT[digit], address)

    if digit == 9:
        if cell in _FIXED_9XX:
            return Instruction(_FIXED_9XX[cell])
        if extended and cell in _FIXED_9XX_EXT:
            return Instruction(_FIXED_9XX_EXT[cell])

    # 4xx, unknown 9xx
    return INVALID


def disassemble(cell: int, extended: bool = False) -> str:
    """Render a cell as source text. Undecodable cells come out as DAT."""
    ins = decode(cell, extended)
    if not ins.is_valid:
        return f"DAT {cell:03d}"
    # 0xx other than 000 decodes as HLT but would not reassemble to the same cell
    if ins.mnemonic == 'HLT' and cell != 0:
        return f"DAT {cell:03d}"
    return str(ins)
