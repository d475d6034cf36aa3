"""
LMC Emulator — 100-Cell Memory

One flat array of 100 cells (addresses 0–99), each holding 0–999. Code and
data share the same cells: there is no type tag, so a STO into a cell the
program later executes changes what that fetch decodes to (self-modifying
code works with no special handling).

Out-of-range addresses and values are rejected, never wrapped or clamped.
The engine keeps its own arithmetic inside range before it ever calls
write(); anything that reaches these errors is a caller bug.
"""

from __future__ import annotations
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from ..config import MEMORY_SIZE, CELL_MAX


class MemoryAddressError(IndexError):
    """Address outside 0–99."""


class CellValueError(ValueError):
    """Cell value outside 0–999."""


def _check_address(addr: int):
    if not isinstance(addr, int) or not 0 <= addr < MEMORY_SIZE:
        raise MemoryAddressError(f"Address out of range 0-{MEMORY_SIZE - 1}: {addr!r}")


def _check_value(value: int):
    if not isinstance(value, int) or not 0 <= value <= CELL_MAX:
        raise CellValueError(f"Cell value out of range 0-{CELL_MAX}: {value!r}")


class Memory:
    """100 decimal cells, shared by instructions and data.

    Usage:
        mem = Memory()
        mem.write(99, 123)
        mem.read(99)        # 123
        print(mem.dump())
    """

    def __init__(self, cells: Optional[Iterable[int]] = None):
        self._cells: List[int] = [0] * MEMORY_SIZE

        # Watchpoints: addr -> callbacks(addr, old_val, new_val)
        self._watchpoints: Dict[int, List[Callable]] = {}

        if cells is not None:
            self.load_cells(cells)

    # --- Core read/write ---

    def read(self, addr: int) -> int:
        """Read the cell at ``addr``."""
        _check_address(addr)
        return self._cells[addr]

    def write(self, addr: int, value: int):
        """Write ``value`` to the cell at ``addr``.

        Watchpoint callbacks fire on every write, changed or not.
        """
        _check_address(addr)
        _check_value(value)
        old = self._cells[addr]

        if addr in self._watchpoints:
            for cb in self._watchpoints[addr]:
                cb(addr, old, value)

        self._cells[addr] = value

    # --- Bulk load ---

    def load_cells(self, values: Iterable[int]):
        """Replace memory with ``values`` from address 0; the rest is zeroed.

        Validates everything before touching memory, so a bad list leaves
        the current contents alone.
        """
        values = list(values)
        if len(values) > MEMORY_SIZE:
            raise MemoryAddressError(
                f"Image has {len(values)} cells, memory holds {MEMORY_SIZE}")
        for value in values:
            _check_value(value)
        self._cells = values + [0] * (MEMORY_SIZE - len(values))

    @property
    def cells(self) -> List[int]:
        """Copy of all 100 cells."""
        return list(self._cells)

    def copy(self) -> "Memory":
        """Independent memory with the same contents (no watchpoints)."""
        return Memory(self._cells)

    # --- Watchpoints ---

    def add_watchpoint(self, addr: int, callback: Callable):
        """Call ``callback(addr, old_val, new_val)`` on every write to ``addr``.

        Handy for spotting self-modifying code: watch the cell the program
        rewrites and log each new instruction it stores there.
        """
        _check_address(addr)
        self._watchpoints.setdefault(addr, []).append(callback)

    def remove_watchpoint(self, addr: int, callback: Optional[Callable] = None):
        """Remove a watchpoint. If callback is None, removes all on that addr."""
        if addr in self._watchpoints:
            if callback is None:
                del self._watchpoints[addr]
            else:
                self._watchpoints[addr] = [
                    cb for cb in self._watchpoints[addr] if cb != callback
                ]

    # --- Snapshots ---

    def snapshot(self) -> tuple:
        """Immutable copy of the cells for later diffing."""
        return tuple(self._cells)

    @staticmethod
    def diff_snapshots(snap_a: tuple, snap_b: tuple) -> Dict[int, tuple]:
        """Compare two snapshots, return {addr: (old, new)} for changes."""
        return {
            addr: (a, b)
            for addr, (a, b) in enumerate(zip(snap_a, snap_b))
            if a != b
        }

    # --- Dump ---

    def dump(self) -> str:
        """Ten rows of ten cells, each row prefixed with its base address."""
        lines = ['    ' + ' '.join(f'  {col}' for col in range(10))]
        for row in range(0, MEMORY_SIZE, 10):
            cells = ' '.join(f'{self._cells[row + col]:03d}' for col in range(10))
            lines.append(f'{row:02d}  {cells}')
        return '\n'.join(lines)

    # --- Container protocol ---

    def __len__(self) -> int:
        return MEMORY_SIZE

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._cells))

    def __eq__(self, other) -> bool:
        if isinstance(other, Memory):
            return self._cells == other._cells
        return NotImplemented

    def __repr__(self) -> str:
        used = sum(1 for c in self._cells if c)
        return f"Memory({used} non-zero cells)"
