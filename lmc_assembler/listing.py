"""
LMC Disassembler — memory image back to source text.

    from lmc_assembler.listing import listing, disassemble_memory

    print(listing(memory))
    #  00: 512  LDA 12
    #  01: 113  ADD 13
    #  ...

Cells do not know whether they are code or data, so every cell is shown as
the instruction it would decode to. Cells that cannot be executed (4xx,
unknown 9xx, 0xx other than 000) are shown as DAT so that
``source_text()`` reassembles to the identical image.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional

from lmc_emulator.config import EXTENDED_SENTINEL
from .encoding import decode, disassemble

__all__ = ['DisassembledCell', 'disassemble_memory', 'listing', 'source_text']


@dataclass
class DisassembledCell:
    """One memory cell with its rendering."""
    address: int
    cell: int
    text: str
    comment: str = ""

    def format(self) -> str:
        line = f"{self.address:02d}: {self.cell:03d}  {self.text}"
        if self.comment:
            line += f"  ; {self.comment}"
        return line


def disassemble_memory(memory, extended: Optional[bool] = None,
                       trim: bool = True) -> List[DisassembledCell]:
    """Disassemble every cell of ``memory``.

    ``extended`` defaults to what a run would latch: cell 0 == 010.
    With ``trim`` the trailing run of zero cells is dropped.
    """
    cells = list(memory)
    if extended is None:
        extended = cells[0] == EXTENDED_SENTINEL

    if trim:
        while cells and cells[-1] == 0:
            cells.pop()

    results = []
    for addr, cell in enumerate(cells):
        comment = ""
        if not decode(cell, extended).is_valid:
            comment = "not executable"
        elif addr == 0 and extended and cell == EXTENDED_SENTINEL:
            comment = "extended mode"
        text = disassemble(cell, extended)
        # 010 is only EXT at address 0; anywhere else it halts
        if addr != 0 and cell == EXTENDED_SENTINEL:
            text = f"DAT {cell:03d}"
        results.append(DisassembledCell(addr, cell, text, comment))
    return results


def listing(memory, extended: Optional[bool] = None) -> str:
    """Human-readable listing: address, cell, instruction."""
    return '\n'.join(d.format() for d in disassemble_memory(memory, extended))


def source_text(memory, extended: Optional[bool] = None) -> str:
    """Assembler source that reproduces ``memory`` exactly."""
    return '\n'.join(d.text for d in disassemble_memory(memory, extended)) + '\n'
