"""
LMC Memory Image Codec — packed binary save/load

File format:
  100 cells x 10 bits each, packed MSB-first into a bit stream:
  cell 0 fills bits 0–9, cell 1 bits 10–19, ... = 1000 bits = 125 bytes.

    byte 0   byte 1   byte 2
    AAAAAAAA AABBBBBB BBBBCCCC ...

  Trailing zero bytes are dropped on save (an all-zero memory saves as an
  empty file) and padded back on load, so short files are valid.

Load rejects files longer than 125 bytes and any 10-bit field above 999
(10 bits can hold up to 1023).
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Union

from .config import MEMORY_SIZE, CELL_MAX
from .mem.memory import Memory

__all__ = ['ImageError', 'MAX_FILE_SIZE', 'save_to_bytes', 'load_from_bytes', 'save', 'load']

log = logging.getLogger(__name__)

BITS_PER_CELL = 10
MAX_FILE_SIZE = MEMORY_SIZE * BITS_PER_CELL // 8      # 125
_FIELD_MASK = (1 << BITS_PER_CELL) - 1


class ImageError(ValueError):
    """Raised on a malformed image file."""


def save_to_bytes(memory: Memory) -> bytes:
    """Pack ``memory`` into the image format."""
    packed = 0
    for cell in memory:
        packed = (packed << BITS_PER_CELL) | cell
    data = packed.to_bytes(MAX_FILE_SIZE, 'big')
    return data.rstrip(b'\x00')


def load_from_bytes(data: bytes) -> Memory:
    """Unpack an image into a fresh Memory."""
    data = bytes(data)
    if len(data) > MAX_FILE_SIZE:
        raise ImageError(f"Image is {len(data)} bytes, maximum is {MAX_FILE_SIZE}")

    packed = int.from_bytes(data.ljust(MAX_FILE_SIZE, b'\x00'), 'big')
    cells = []
    for addr in range(MEMORY_SIZE):
        shift = BITS_PER_CELL * (MEMORY_SIZE - 1 - addr)
        value = (packed >> shift) & _FIELD_MASK
        if value > CELL_MAX:
            raise ImageError(f"Cell {addr:02d} holds {value}, maximum is {CELL_MAX}")
        cells.append(value)
    return Memory(cells)


def save(path: Union[str, Path], memory: Memory):
    """Write ``memory`` to an image file."""
    data = save_to_bytes(memory)
    Path(path).write_bytes(data)
    log.debug("Saved %d-byte image to %s", len(data), path)


def load(path: Union[str, Path]) -> Memory:
    """Read an image file."""
    data = Path(path).read_bytes()
    log.debug("Loaded %d-byte image from %s", len(data), path)
    return load_from_bytes(data)
