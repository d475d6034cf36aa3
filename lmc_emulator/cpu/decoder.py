"""
LMC Emulator — Instruction Fetch/Decode

The decode table itself lives in lmc_assembler.encoding, shared with the
assembler. This module adds the fetch side: read the cell at PC and decode
it fresh, every time. Nothing is cached, so a cell rewritten by STO is
seen on its very next fetch.
"""

from lmc_assembler.encoding import Instruction, decode


class IllegalOpcode(Exception):
    """Cell at PC does not decode in the current mode."""
    def __init__(self, address: int, cell: int):
        self.address = address
        self.cell = cell
        super().__init__(f"Invalid instruction {cell:03d} at address {address:02d}")


def decode_opcode(memory, pc: int, extended: bool = False):
    """Fetch and decode the cell at the given PC.

    Returns: (instruction, cell)

    Raises IllegalOpcode when the cell has no meaning in this mode
    (4xx, unknown 9xx, or 911/912 outside extended mode).
    """
    cell = memory.read(pc)
    ins: Instruction = decode(cell, extended)
    if not ins.is_valid:
        raise IllegalOpcode(pc, cell)
    return ins, cell
