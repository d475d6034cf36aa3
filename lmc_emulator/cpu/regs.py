"""
LMC Emulator — CPU Register Set

Register model:
  ACC  — accumulator, signed -999..999
  PC   — program counter, 0..99
  N    — negative flag: last ADD/SUB left the 0..999 range
  steps — instructions executed since reset

The accumulator is stored signed so SUB can go below zero; everything that
leaves the CPU (STO, OUT, OTA) goes through ``cell_value`` which folds it
back into a 0..999 cell.
"""

from ..config import WRAP


class Registers:
    """LMC CPU register set."""

    __slots__ = ('ACC', 'PC', 'N', 'steps')

    def __init__(self):
        self.ACC: int = 0     # Accumulator (signed, -999..999)
        self.PC: int = 0      # Program counter (0..99)
        self.N: bool = False  # Negative flag
        self.steps: int = 0   # Executed instruction counter

    @property
    def negative(self) -> bool:
        return self.N

    @property
    def cell_value(self) -> int:
        """Accumulator as it would be stored in a cell: |ACC| mod 1000."""
        return abs(self.ACC) % WRAP

    # --- Display ---

    def display(self) -> str:
        """Format register state for trace lines."""
        flag = 'N' if self.N else '.'
        return f"PC={self.PC:02d} ACC={self.ACC:+04d} [{flag}] steps={self.steps}"

    def reset(self):
        """Power-on state."""
        self.ACC = 0
        self.PC = 0
        self.N = False
        self.steps = 0
