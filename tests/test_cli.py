"""
lmckit CLI tests — every subcommand driven through main() with files in
a temporary directory.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import io

import pytest
import lmckit

EXAMPLES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "examples")
FIB_OUTPUT = "1\n1\n2\n3\n5\n8\n13\n21\n34\n55\n89\n"


def _example(name: str) -> str:
    return os.path.join(EXAMPLES_DIR, name)


@pytest.fixture
def stdin(monkeypatch):
    """Replace stdin with a non-tty buffer; returns a setter."""
    def feed(text: str):
        monkeypatch.setattr(sys, "stdin", io.StringIO(text))
    feed("")
    return feed


@pytest.fixture
def fib_bin(tmp_path):
    out = tmp_path / "fib.bin"
    assert lmckit.main(["asm", _example("fibonacci.lmc"), "-o", str(out)]) == 0
    return out


class TestAsm:

    def test_listing_to_stdout(self, capsys):
        assert lmckit.main(["asm", _example("multiply.lmc")]) == 0
        out = capsys.readouterr().out
        assert out.startswith("ADDR  CELL  SOURCE")
        assert "901" in out

    def test_image_written(self, fib_bin):
        assert 0 < fib_bin.stat().st_size <= 125

    def test_number_list_written(self, tmp_path, stdin, capsys):
        out = tmp_path / "fib.txt"
        assert lmckit.main(["asm", _example("fibonacci.lmc"), "-o", str(out)]) == 0
        lines = out.read_text().split()
        assert lines[:3] == ["516", "213", "804"]
        assert len(lines) == 100
        capsys.readouterr()
        assert lmckit.main(["run-nums", str(out)]) == 0
        assert capsys.readouterr().out == FIB_OUTPUT

    def test_listing_file_written(self, tmp_path):
        out = tmp_path / "fib.lst"
        assert lmckit.main(["asm", _example("fibonacci.lmc"), "-o", str(out)]) == 0
        assert out.read_text().startswith("ADDR  CELL  SOURCE")

    def test_assembler_error(self, tmp_path, capsys):
        src = tmp_path / "bad.lmc"
        src.write_text("LDA nowhere\n")
        assert lmckit.main(["asm", str(src)]) == 1
        assert "Line 1" in capsys.readouterr().err

    def test_no_extended(self, capsys):
        assert lmckit.main(["asm", _example("hello.lmc"), "--no-extended"]) == 1

    def test_nums(self, tmp_path, capsys):
        out = tmp_path / "fib.bin"
        assert lmckit.main(["nums", _example("fibonacci.txt"), "-o", str(out)]) == 0
        assert out.stat().st_size > 0


class TestRun:

    def test_run_image(self, fib_bin, stdin, capsys):
        assert lmckit.main(["run", str(fib_bin)]) == 0
        assert capsys.readouterr().out == FIB_OUTPUT

    def test_run_asm_with_input(self, stdin, capsys):
        stdin("5\n6\n")
        assert lmckit.main(["run-asm", _example("multiply.lmc")]) == 0
        assert capsys.readouterr().out == "30\n"

    def test_run_characters(self, stdin, capsys):
        stdin("H\ni\n.\n")
        assert lmckit.main(["run-asm", _example("echo.lmc")]) == 0
        assert capsys.readouterr().out == "Hi"

    def test_input_runs_out(self, stdin, capsys):
        stdin("5\n")
        assert lmckit.main(["run-asm", _example("multiply.lmc")]) == 1
        assert "waiting" in capsys.readouterr().err

    def test_step_budget(self, fib_bin, stdin, capsys):
        assert lmckit.main(["run", str(fib_bin), "--max-steps", "10"]) == 1
        assert "No HLT within 10 steps" in capsys.readouterr().err

    def test_trace(self, fib_bin, stdin, capsys):
        assert lmckit.main(["run", str(fib_bin), "--trace"]) == 0
        assert "00: 516  LDA 16" in capsys.readouterr().err

    def test_bad_image(self, tmp_path, capsys):
        path = tmp_path / "big.bin"
        path.write_bytes(bytes(126))
        assert lmckit.main(["run", str(path)]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert lmckit.main(["run", str(tmp_path / "nope.bin")]) == 1


class TestInspect:

    def test_dump(self, fib_bin, capsys):
        assert lmckit.main(["dump", str(fib_bin)]) == 0
        lines = capsys.readouterr().out.split("\n")
        assert lines[1].startswith("00  516 213 804")

    def test_disasm(self, fib_bin, capsys):
        assert lmckit.main(["disasm", str(fib_bin)]) == 0
        assert capsys.readouterr().out.startswith("00: 516  LDA 16")

    def test_disasm_source_reassembles(self, fib_bin, tmp_path, stdin, capsys):
        assert lmckit.main(["disasm", str(fib_bin), "--source"]) == 0
        src = tmp_path / "again.lmc"
        src.write_text(capsys.readouterr().out)
        assert lmckit.main(["run-asm", str(src)]) == 0
        assert capsys.readouterr().out == FIB_OUTPUT


class TestTestCommand:

    def test_all_pass(self, capsys):
        assert lmckit.main(["test", _example("multiply.lmc"), _example("multiply.csv")]) == 0
        out = capsys.readouterr().out
        assert "PASS  five_by_six  (54 steps)" in out
        assert "3/3 passed" in out

    def test_failure_reported(self, fib_bin, tmp_path, capsys):
        cases = tmp_path / "fib.csv"
        cases.write_text("short;;1,1;500\n")
        assert lmckit.main(["test", str(fib_bin), str(cases)]) == 1
        out = capsys.readouterr().out
        assert "FAIL  short" in out
        assert "0/1 passed" in out

    def test_bad_csv(self, fib_bin, tmp_path, capsys):
        cases = tmp_path / "bad.csv"
        cases.write_text("only;two\n")
        assert lmckit.main(["test", str(fib_bin), str(cases)]) == 1
        assert "Line 1" in capsys.readouterr().err


def test_no_command_prints_help(capsys):
    assert lmckit.main([]) == 0
    assert "usage" in capsys.readouterr().out
