"""
LMC Emulator — I/O Handlers

The engine never touches a terminal. INP/OUT/INA/OTA call into an
IOHandler, and whoever drives the engine decides where the values come
from and go to:

  ScriptedIO  — queued inputs, captured outputs (tests, batch runs)
  ConsoleIO   — blocking stdin/stdout for interactive runs
  SerialIO    — a serial port (see serial_io.py)

Input requests return None when no value is available yet. The engine
reports that as AWAITING_INPUT without changing any state, so the same
step can be retried once input has arrived.
"""

from __future__ import annotations
import logging
import sys
from collections import deque
from typing import Iterable, List, Optional, Tuple

log = logging.getLogger(__name__)


class IOHandler:
    """Interface between the engine and the outside world."""

    def request_number(self) -> Optional[int]:
        """Next numeric input, or None if none is available yet."""
        raise NotImplementedError

    def request_character(self) -> Optional[int]:
        """Next character input as a code point, or None."""
        raise NotImplementedError

    def emit_number(self, value: int):
        raise NotImplementedError

    def emit_character(self, value: int):
        raise NotImplementedError


class ScriptedIO(IOHandler):
    """Queue-backed handler.

    Usage:
        io = ScriptedIO(numbers=[5, 6])
        emu = LMCEmulator(memory, io)
        emu.run()
        io.outputs      # [30]
    """

    def __init__(self, numbers: Iterable[int] = (), characters: Iterable = ()):
        self._numbers: deque = deque(numbers)
        self._characters: deque = deque(_char_codes(characters))

        self.outputs: List[int] = []            # numbers, in order
        self.char_outputs: List[int] = []       # character codes, in order
        self.events: List[Tuple[str, int]] = []  # ('num'|'char', value) interleaved

    # --- Injection ---

    def push_number(self, value: int):
        """Queue another numeric input (e.g. after AWAITING_INPUT)."""
        self._numbers.append(value)

    def push_characters(self, chars):
        """Queue character inputs from a str or iterable of codes."""
        self._characters.extend(_char_codes(chars))

    @property
    def pending_numbers(self) -> int:
        return len(self._numbers)

    @property
    def pending_characters(self) -> int:
        return len(self._characters)

    # --- IOHandler ---

    def request_number(self) -> Optional[int]:
        if not self._numbers:
            return None
        return self._numbers.popleft()

    def request_character(self) -> Optional[int]:
        if not self._characters:
            return None
        return self._characters.popleft()

    def emit_number(self, value: int):
        self.outputs.append(value)
        self.events.append(('num', value))

    def emit_character(self, value: int):
        self.char_outputs.append(value)
        self.events.append(('char', value))

    @property
    def text(self) -> str:
        """Character outputs as a string."""
        return ''.join(chr(c) for c in self.char_outputs)


def _char_codes(chars) -> List[int]:
    if isinstance(chars, str):
        return [ord(c) for c in chars]
    return list(chars)


class ConsoleIO(IOHandler):
    """Blocking terminal handler.

    Numbers are read one per line and re-prompted until valid. Each
    character request reads a fresh line and keeps only its first
    character; the rest of the line is discarded, and an empty line gives
    a newline (10). End of input returns None.
    """

    def __init__(self, stdin=None, stdout=None, prompt: bool = True):
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.prompt = prompt

    def _readline(self, prompt: str) -> Optional[str]:
        if self.prompt:
            self.stdout.write(prompt)
            self.stdout.flush()
        line = self.stdin.readline()
        if not line:
            return None
        return line

    def request_number(self) -> Optional[int]:
        while True:
            line = self._readline("Input: ")
            if line is None:
                return None
            text = line.strip()
            try:
                value = int(text, 10)
            except ValueError:
                log.warning("Not a number: %r", text)
                continue
            if not 0 <= value <= 999:
                log.warning("Input out of range 0-999: %d", value)
                continue
            return value

    def request_character(self) -> Optional[int]:
        line = self._readline("Input char: ")
        if line is None:
            return None
        text = line.rstrip('\r\n')
        if not text:
            return 10
        if len(text) > 1:
            log.debug("Discarding extra character input %r", text[1:])
        return ord(text[0])

    def emit_number(self, value: int):
        self.stdout.write(f"{value}\n")
        self.stdout.flush()

    def emit_character(self, value: int):
        self.stdout.write(chr(value))
        self.stdout.flush()
