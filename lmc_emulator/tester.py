"""
LMC Program Tester — run a program against expected I/O

Each test case is one CSV line (semicolon separated):

  name;inputs;outputs;max_steps
  name;inputs;outputs;char_inputs;char_outputs;max_steps

  inputs / outputs          comma-separated numbers 0–999 ("5,6" / "30")
  char_inputs / char_outputs the characters themselves ("Hi" = 72, 105)

Example file:

  # name      in     out   steps
  multiply;   5,6;   30;   500
  zero;       0,9;   0;    500

Every case runs on its own copy of the memory image, so a program that
modifies itself cannot leak state from one case into the next. A case
fails with TestFailure as soon as the program does something unexpected:
an output that differs or is one too many, an input request with nothing
left to give, running out of steps, an invalid instruction, or finishing
with inputs or outputs still unused.

max_steps bounds the number of steps taken, the final HLT included: a
program that executes 54 instructions and then halts needs max_steps >= 55.
"""

from __future__ import annotations
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .config import CELL_MAX, CHAR_MASK
from .emu import LMCEmulator, StepOutcome
from .mem.memory import Memory
from .periph.console import IOHandler

log = logging.getLogger(__name__)


class TestCaseError(ValueError):
    """Malformed test case line."""
    __test__ = False

    def __init__(self, message: str, line_num: int = 0):
        self.line_num = line_num
        super().__init__(f"Line {line_num}: {message}" if line_num else message)


class FailureKind(Enum):
    RAN_OUT_OF_STEPS = 'Ran out of steps'
    RAN_OUT_OF_INPUTS = 'Requested more inputs than expected'
    RAN_OUT_OF_CHAR_INPUTS = 'Requested more char inputs than expected'
    TOO_MANY_OUTPUTS = 'Gave more outputs than expected'
    TOO_MANY_CHAR_OUTPUTS = 'Gave more char outputs than expected'
    DIFFERENT_OUTPUT = 'Different output than expected'
    DIFFERENT_CHAR_OUTPUT = 'Different char output than expected'
    EXPECTED_MORE_INPUTS = 'Expected more inputs'
    EXPECTED_MORE_OUTPUTS = 'Expected more outputs'
    EXPECTED_MORE_CHAR_INPUTS = 'Expected more char inputs'
    EXPECTED_MORE_CHAR_OUTPUTS = 'Expected more char outputs'
    COMPUTER_ERROR = 'Computer error'


class TestFailure(Exception):
    """A test case did not behave as expected."""
    __test__ = False

    def __init__(self, kind: FailureKind, steps: int, detail: str = "",
                 test_name: Optional[str] = None):
        self.kind = kind
        self.steps = steps
        self.detail = detail
        self.test_name = test_name
        super().__init__(kind.value)

    def __str__(self) -> str:
        message = self.kind.value
        if self.detail:
            message += f" ({self.detail})"
        message += f" after {self.steps} steps"
        if self.test_name:
            message = f"Test {self.test_name}: {message}"
        return message


def _char_repr(code: int) -> str:
    return f"{code} = {chr(code)!r}"


class _CheckingIO(IOHandler):
    """Feeds scripted inputs and checks outputs the moment they appear."""

    def __init__(self, test: "ProgramTest"):
        self.numbers = deque(test.inputs)
        self.chars = deque(test.char_inputs)
        self.expected = deque(test.outputs)
        self.expected_chars = deque(test.char_outputs)
        self.starved: Optional[FailureKind] = None
        self.emu: Optional[LMCEmulator] = None

    def request_number(self) -> Optional[int]:
        if not self.numbers:
            self.starved = FailureKind.RAN_OUT_OF_INPUTS
            return None
        return self.numbers.popleft()

    def request_character(self) -> Optional[int]:
        if not self.chars:
            self.starved = FailureKind.RAN_OUT_OF_CHAR_INPUTS
            return None
        return self.chars.popleft()

    def emit_number(self, value: int):
        steps = self.emu.steps
        if not self.expected:
            raise TestFailure(FailureKind.TOO_MANY_OUTPUTS, steps, f"output: {value}")
        expected = self.expected.popleft()
        if value != expected:
            raise TestFailure(FailureKind.DIFFERENT_OUTPUT, steps,
                              f"expected {expected}, got {value}")

    def emit_character(self, value: int):
        steps = self.emu.steps
        if not self.expected_chars:
            raise TestFailure(FailureKind.TOO_MANY_CHAR_OUTPUTS, steps,
                              f"output: {_char_repr(value)}")
        expected = self.expected_chars.popleft()
        if value != expected:
            raise TestFailure(FailureKind.DIFFERENT_CHAR_OUTPUT, steps,
                              f"expected {_char_repr(expected)}, got {_char_repr(value)}")


@dataclass
class ProgramTest:
    """One test case: inputs to feed and outputs to expect."""

    name: Optional[str] = None
    inputs: List[int] = field(default_factory=list)
    outputs: List[int] = field(default_factory=list)
    char_inputs: List[int] = field(default_factory=list)
    char_outputs: List[int] = field(default_factory=list)
    max_steps: int = 1000

    # ──────────────────────────────────────────────
    # CSV parsing
    # ──────────────────────────────────────────────

    @classmethod
    def from_csv_line(cls, text: str, line_num: int = 0) -> "ProgramTest":
        """Parse ``name;inputs;outputs;[char_inputs;char_outputs;]max_steps``."""
        sections = text.rstrip('\r\n').split(';')
        if len(sections) == 4:
            name, inputs, outputs, steps = sections
            char_inputs = char_outputs = ""
        elif len(sections) == 6:
            name, inputs, outputs, char_inputs, char_outputs, steps = sections
        else:
            raise TestCaseError(
                f"Expected 4 or 6 ';'-separated sections, got {len(sections)}", line_num)

        try:
            max_steps = int(steps.strip(), 10)
        except ValueError:
            raise TestCaseError(f"Invalid maximum steps: {steps.strip()!r}", line_num) from None
        if max_steps < 0:
            raise TestCaseError(f"Invalid maximum steps: {max_steps}", line_num)

        return cls(
            name=name.strip() or None,
            inputs=_parse_numbers(inputs, "input", line_num),
            outputs=_parse_numbers(outputs, "output", line_num),
            char_inputs=_parse_chars(char_inputs, "input", line_num),
            char_outputs=_parse_chars(char_outputs, "output", line_num),
            max_steps=max_steps,
        )

    @classmethod
    def from_csv(cls, text: str) -> List["ProgramTest"]:
        """Parse a whole test file; blank lines and '#' lines are skipped."""
        tests = []
        for line_num, line in enumerate(text.splitlines(), 1):
            if not line.strip() or line.lstrip().startswith('#'):
                continue
            tests.append(cls.from_csv_line(line, line_num))
        return tests

    # ──────────────────────────────────────────────
    # Running
    # ──────────────────────────────────────────────

    def run(self, memory: Memory) -> int:
        """Run this case on a copy of ``memory``. Returns steps executed.

        Raises TestFailure on the first mismatch.
        """
        io = _CheckingIO(self)
        emu = LMCEmulator(memory.copy(), io)
        io.emu = emu

        try:
            self._drive(emu, io)
        except TestFailure as failure:
            failure.test_name = self.name
            raise

        log.debug("Test %s passed in %d steps", self.name or "<unnamed>", emu.steps)
        return emu.steps

    def _drive(self, emu: LMCEmulator, io: _CheckingIO):
        # The budget counts every step() call, the final HLT included
        cycles = 0
        while True:
            if cycles >= self.max_steps:
                raise TestFailure(FailureKind.RAN_OUT_OF_STEPS, emu.steps)

            result = emu.step()
            cycles += 1
            outcome = result.outcome
            if outcome is StepOutcome.CONTINUED:
                continue
            if outcome is StepOutcome.AWAITING_INPUT:
                raise TestFailure(io.starved, emu.steps)
            if outcome is StepOutcome.HALTED:
                break
            raise TestFailure(FailureKind.COMPUTER_ERROR, emu.steps, str(result))

        leftovers = (
            (io.numbers, FailureKind.EXPECTED_MORE_INPUTS),
            (io.expected, FailureKind.EXPECTED_MORE_OUTPUTS),
            (io.chars, FailureKind.EXPECTED_MORE_CHAR_INPUTS),
            (io.expected_chars, FailureKind.EXPECTED_MORE_CHAR_OUTPUTS),
        )
        for remaining, kind in leftovers:
            if remaining:
                raise TestFailure(kind, emu.steps, f"{len(remaining)} left")


def _parse_numbers(text: str, what: str, line_num: int) -> List[int]:
    values = []
    for item in text.split(','):
        item = item.strip()
        if not item:
            continue
        if not item.isdecimal() or int(item) > CELL_MAX:
            raise TestCaseError(f"Invalid {what} number: {item!r}", line_num)
        values.append(int(item))
    return values


def _parse_chars(text: str, what: str, line_num: int) -> List[int]:
    values = []
    for ch in text:
        if ord(ch) > CHAR_MASK:
            raise TestCaseError(f"Invalid {what} character: {ch!r}", line_num)
        values.append(ord(ch))
    return values


def run_tests(memory: Memory, tests: List[ProgramTest]) -> List[Tuple[ProgramTest, Optional[TestFailure], int]]:
    """Run every case, collecting (test, failure or None, steps) for each."""
    results = []
    for test in tests:
        try:
            steps = test.run(memory)
            results.append((test, None, steps))
        except TestFailure as failure:
            log.info("%s", failure)
            results.append((test, failure, failure.steps))
    return results
