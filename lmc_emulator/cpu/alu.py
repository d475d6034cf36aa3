"""
LMC Emulator — ALU Operations

Decimal arithmetic on a three-digit accumulator. Each function returns a
tuple (result, negative_flag); the caller stores both.

Overflow handling:
  add: result > 999  -> wrap mod 1000, flag set
       result < 0    -> only from a negative ACC, flag set
  sub: result < 0    -> flag set; below -999 it wraps mod 1000 keeping
                        the sign
The flag is what BRP tests: BRP branches only when it is clear.
"""

from ..config import ACC_MAX, ACC_MIN, WRAP


def _wrap(value: int) -> int:
    """Fold ``value`` into -999..999, keeping its sign."""
    if value > ACC_MAX:
        return value % WRAP
    if value < ACC_MIN:
        return -((-value) % WRAP)
    return value


def add(acc: int, value: int) -> tuple:
    """ACC + cell. Flag set when the true result leaves 0..999."""
    result = acc + value
    negative = result < 0 or result > ACC_MAX
    return (_wrap(result), negative)


def sub(acc: int, value: int) -> tuple:
    """ACC - cell. Flag set when the true result is below zero."""
    result = acc - value
    return (_wrap(result), result < 0)


def clamp_input(value: int) -> int:
    """Numeric input forced into a cell's 0..999 range."""
    return max(0, min(ACC_MAX, value))
