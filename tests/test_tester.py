"""
Program tester tests — CSV test case parsing and every failure kind.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from lmc_assembler.assembler import assemble
from lmc_emulator.mem.memory import Memory
from lmc_emulator.tester import (
    ProgramTest, TestCaseError, TestFailure, FailureKind, run_tests,
)

EXAMPLES_DIR = os.path.join(os.path.dirname(__file__), "..", "examples")


def _read(name: str) -> str:
    with open(os.path.join(EXAMPLES_DIR, name), encoding="utf-8") as f:
        return f.read()


def _failure(memory, line) -> TestFailure:
    with pytest.raises(TestFailure) as exc:
        ProgramTest.from_csv_line(line).run(memory)
    return exc.value


# ═══════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════

class TestParsing:

    def test_four_sections(self):
        case = ProgramTest.from_csv_line("mult;5, 6;30;500")
        assert case.name == "mult"
        assert case.inputs == [5, 6]
        assert case.outputs == [30]
        assert case.char_inputs == []
        assert case.max_steps == 500

    def test_six_sections(self):
        case = ProgramTest.from_csv_line("echo;;;Hi.;Hi;500")
        assert case.inputs == []
        assert case.char_inputs == [72, 105, 46]
        assert case.char_outputs == [72, 105]

    def test_empty_name(self):
        assert ProgramTest.from_csv_line(";1;1;10").name is None

    @pytest.mark.parametrize("line", [
        "a;1;2",                    # three sections
        "a;1;2;3;4",                # five sections
        "a;1;2;lots",               # steps not a number
        "a;1;2;-5",                 # negative steps
        "a;1000;2;10",              # input above 999
        "a;x;2;10",                 # input not a number
        "a;1;-2;10",                # negative output
    ])
    def test_malformed(self, line):
        with pytest.raises(TestCaseError):
            ProgramTest.from_csv_line(line, 3)

    def test_error_carries_line_number(self):
        with pytest.raises(TestCaseError) as exc:
            ProgramTest.from_csv("# header\n\nok;1;1;10\nbad;1\n")
        assert exc.value.line_num == 4
        assert str(exc.value).startswith("Line 4:")

    def test_file_skips_comments_and_blanks(self):
        tests = ProgramTest.from_csv(_read("multiply.csv"))
        assert [t.name for t in tests] == ["five_by_six", "zero_left", "zero_right"]


# ═══════════════════════════════════════════════
# Running
# ═══════════════════════════════════════════════

class TestPassing:

    def test_multiply_cases(self):
        memory = assemble(_read("multiply.lmc"))
        results = run_tests(memory, ProgramTest.from_csv(_read("multiply.csv")))
        assert [failure for _, failure, _ in results] == [None, None, None]
        assert results[0][2] == 54

    def test_echo_cases(self):
        memory = assemble(_read("echo.lmc"))
        results = run_tests(memory, ProgramTest.from_csv(_read("echo.csv")))
        assert all(failure is None for _, failure, _ in results)

    def test_each_case_gets_fresh_memory(self):
        memory = assemble(_read("table.lmc"))
        case = ProgramTest.from_csv_line("t;;3,1,4,1,5;200")
        case.run(memory)
        case.run(memory)
        assert memory.read(0) == 509


class TestFailures:

    @pytest.fixture
    def multiply(self):
        return assemble(_read("multiply.lmc"))

    def test_different_output(self, multiply):
        failure = _failure(multiply, "wrong;5,6;31;500")
        assert failure.kind is FailureKind.DIFFERENT_OUTPUT
        assert "expected 31, got 30" in str(failure)
        assert str(failure).startswith("Test wrong:")

    def test_ran_out_of_inputs(self, multiply):
        assert _failure(multiply, "t;5;30;500").kind is FailureKind.RAN_OUT_OF_INPUTS

    def test_ran_out_of_steps(self, multiply):
        failure = _failure(multiply, "t;5,6;30;10")
        assert failure.kind is FailureKind.RAN_OUT_OF_STEPS
        assert failure.steps == 10

    def test_budget_counts_the_halt(self, multiply):
        """54 instructions plus the HLT need a budget of 55."""
        assert ProgramTest.from_csv_line("t;5,6;30;55").run(multiply) == 54
        failure = _failure(multiply, "t;5,6;30;54")
        assert failure.kind is FailureKind.RAN_OUT_OF_STEPS
        assert failure.steps == 54

    def test_unused_inputs(self, multiply):
        assert _failure(multiply, "t;5,6,7;30;500").kind is FailureKind.EXPECTED_MORE_INPUTS

    def test_missing_outputs(self, multiply):
        assert _failure(multiply, "t;5,6;30,1;500").kind is FailureKind.EXPECTED_MORE_OUTPUTS

    def test_too_many_outputs(self):
        fib = assemble(_read("fibonacci.lmc"))
        assert _failure(fib, "t;;1,1;500").kind is FailureKind.TOO_MANY_OUTPUTS

    def test_char_output_mismatch(self):
        echo = assemble(_read("echo.lmc"))
        failure = _failure(echo, "t;;;Hi.;Ho;500")
        assert failure.kind is FailureKind.DIFFERENT_CHAR_OUTPUT

    def test_ran_out_of_char_inputs(self):
        echo = assemble(_read("echo.lmc"))
        assert _failure(echo, "t;;;Hi;Hi;500").kind is FailureKind.RAN_OUT_OF_CHAR_INPUTS

    def test_computer_error(self):
        failure = _failure(Memory([400]), "t;;;10")
        assert failure.kind is FailureKind.COMPUTER_ERROR
        assert "INVALID_INSTRUCTION" in failure.detail

    def test_run_tests_collects_failures(self, multiply):
        tests = ProgramTest.from_csv("good;5,6;30;500\nbad;5,6;31;500\n")
        results = run_tests(multiply, tests)
        assert results[0][1] is None
        assert results[1][1].kind is FailureKind.DIFFERENT_OUTPUT
