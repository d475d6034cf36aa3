#!/usr/bin/env python3
"""
lmckit — Little Minion Computer Toolkit
=======================================

One CLI for everything:
    lmckit asm       — Assemble LMC source to an image, number list or listing
    lmckit nums      — Build an image from a list of numbers
    lmckit run       — Run a binary image
    lmckit run-asm   — Assemble and run LMC source
    lmckit run-nums  — Build from a number list and run
    lmckit dump      — Show the 100 cells of an image as a table
    lmckit disasm    — Disassemble an image back to source
    lmckit test      — Run an image against a CSV file of test cases

Usage:
    python lmckit.py <command> [options]
    python lmckit.py --help
    python lmckit.py <command> --help

Examples:
    python lmckit.py asm examples/fibonacci.lmc -o fib.bin
    python lmckit.py run fib.bin --max-steps 5000
    python lmckit.py run-asm examples/multiply.lmc --serial /dev/ttyUSB0
    python lmckit.py test examples/multiply.lmc examples/multiply.csv
    python lmckit.py disasm fib.bin
"""

import argparse
import logging
import os
import sys
import time

__version__ = "0.2.0"

# Ensure our packages are importable when run from a checkout
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from lmc_assembler.assembler import Assembler, AssemblerError
from lmc_assembler.numbers import assemble_numbers
from lmc_assembler.listing import listing, source_text
from lmc_emulator import image
from lmc_emulator.config import RunConfig, DEFAULT_MAX_STEPS
from lmc_emulator.emu import LMCEmulator, StepOutcome
from lmc_emulator.log_setup import setup_logging
from lmc_emulator.periph.console import ConsoleIO
from lmc_emulator.periph.serial_io import SerialIO
from lmc_emulator.tester import ProgramTest, TestCaseError, run_tests

log = logging.getLogger("lmckit")

SERIAL_POLL_INTERVAL = 0.01

EXIT_OK = 0
EXIT_USER_ERROR = 1
EXIT_INTERNAL_ERROR = 2


class CommandError(Exception):
    """User-facing failure; printed without a traceback, exit status 1."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lmckit",
        description="Little Minion Computer toolkit — assemble, run, test, inspect",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""commands:
  asm        Assemble LMC source
  nums       Build an image from a number list
  run        Run a binary image
  run-asm    Assemble and run LMC source
  run-nums   Build from a number list and run
  dump       Show an image as a 10x10 table
  disasm     Disassemble an image
  test       Run an image against CSV test cases
""",
    )
    parser.add_argument("--version", action="version", version=f"lmckit {__version__}")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # Options every command shares
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="count", default=0,
                        help="More log output (-vv for debug)")
    common.add_argument("-q", "--quiet", action="store_true", help="Errors only")
    common.add_argument("--log-file", help="Also write a full debug log here")

    # Options for commands that execute a program
    running = argparse.ArgumentParser(add_help=False)
    running.add_argument("--max-steps", type=int, default=DEFAULT_MAX_STEPS,
                         help=f"Instruction budget (default: {DEFAULT_MAX_STEPS})")
    running.add_argument("--trace", action="store_true",
                         help="Print an instruction trace to stderr when done")
    running.add_argument("--serial", metavar="PORT",
                         help="Do program I/O over a serial port or pyserial URL")
    running.add_argument("--baud", type=int, default=None, help="Serial baud rate")

    # Options for commands that assemble
    assembling = argparse.ArgumentParser(add_help=False)
    assembling.add_argument("--no-extended", action="store_true",
                            help="Reject the extended instructions (EXT, INA, OTA)")

    # ── asm ──────────────────────────────────────────────────────────────
    p_asm = sub.add_parser("asm", parents=[common, assembling],
                           help="Assemble LMC source")
    p_asm.add_argument("input", help="Input .lmc file")
    p_asm.add_argument("-o", "--output",
                       help="Output file (.bin image, .txt number list, or .lst listing)")
    p_asm.add_argument("--listing", action="store_true", help="Print listing to stdout")

    # ── nums ─────────────────────────────────────────────────────────────
    p_nums = sub.add_parser("nums", parents=[common], help="Build an image from a number list")
    p_nums.add_argument("input", help="Input number list, one value per line")
    p_nums.add_argument("-o", "--output", required=True, help="Output .bin image")

    # ── run / run-asm / run-nums ─────────────────────────────────────────
    p_run = sub.add_parser("run", parents=[common, running], help="Run a binary image")
    p_run.add_argument("input", help="Input .bin image")

    p_runa = sub.add_parser("run-asm", parents=[common, running, assembling],
                            help="Assemble and run LMC source")
    p_runa.add_argument("input", help="Input .lmc file")

    p_runn = sub.add_parser("run-nums", parents=[common, running],
                            help="Build from a number list and run")
    p_runn.add_argument("input", help="Input number list")

    # ── dump ─────────────────────────────────────────────────────────────
    p_dump = sub.add_parser("dump", parents=[common], help="Show an image as a 10x10 table")
    p_dump.add_argument("input", help="Input .bin image")

    # ── disasm ───────────────────────────────────────────────────────────
    p_dis = sub.add_parser("disasm", parents=[common], help="Disassemble an image")
    p_dis.add_argument("input", help="Input .bin image")
    p_dis.add_argument("--source", action="store_true",
                       help="Emit plain re-assemblable source instead of a listing")

    # ── test ─────────────────────────────────────────────────────────────
    p_test = sub.add_parser("test", parents=[common], help="Run an image against CSV test cases")
    p_test.add_argument("input", help="Input .bin image (or .lmc source)")
    p_test.add_argument("cases", help="CSV file of test cases")

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return EXIT_OK

    config = RunConfig.from_args(args)
    for name in ("lmckit", "lmc_assembler", "lmc_emulator"):
        setup_logging(name, console_level=config.log_level, log_file=config.log_file)

    handler = COMMANDS[args.command]
    try:
        return handler(args, config)
    except (CommandError, AssemblerError, TestCaseError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USER_ERROR
    except Exception:
        log.exception("Internal error in '%s'", args.command)
        return EXIT_INTERNAL_ERROR


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND IMPLEMENTATIONS
# ═════════════════════════════════════════════════════════════════════════════

def _read_text(path):
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _assemble_file(path, config):
    asm = Assembler(extended_enabled=config.extended)
    memory = asm.assemble(_read_text(path))
    return asm, memory


# ── asm ──────────────────────────────────────────────────────────────────
def cmd_asm(args, config):
    asm, memory = _assemble_file(args.input, config)

    if args.listing or not args.output:
        print(asm.get_listing())
        if not args.output:
            return EXIT_OK

    out = args.output
    ext = os.path.splitext(out)[1].lower()
    if ext == ".lst":
        with open(out, "w", encoding="utf-8") as f:
            f.write(asm.get_listing() + "\n")
    elif ext == ".txt":
        with open(out, "w", encoding="utf-8") as f:
            f.write("\n".join(str(c) for c in memory) + "\n")
    else:  # .bin or anything else
        image.save(out, memory)
    print(f"Assembled {len(asm.symbols)} labels -> {out}")
    return EXIT_OK


# ── nums ─────────────────────────────────────────────────────────────────
def cmd_nums(args, config):
    memory = assemble_numbers(_read_text(args.input))
    image.save(args.output, memory)
    print(f"Wrote image -> {args.output}")
    return EXIT_OK


# ── run / run-asm / run-nums ─────────────────────────────────────────────
def cmd_run(args, config):
    return execute(image.load(args.input), config)


def cmd_run_asm(args, config):
    _, memory = _assemble_file(args.input, config)
    return execute(memory, config)


def cmd_run_nums(args, config):
    return execute(assemble_numbers(_read_text(args.input)), config)


def execute(memory, config, io=None) -> int:
    """Run ``memory`` to completion with console or serial I/O."""
    serial_io = None
    if io is None:
        if config.serial_port:
            serial_io = SerialIO(config.serial_port, config.baudrate)
            if not serial_io.open():
                raise CommandError(f"Could not open serial port {config.serial_port}")
            io = serial_io
        else:
            io = ConsoleIO(prompt=sys.stdin.isatty())

    emu = LMCEmulator(memory, io)
    emu.enable_trace(config.trace)
    try:
        result = _drive(emu, config.max_steps, polling=serial_io is not None)
    finally:
        if serial_io is not None:
            serial_io.close()
        if config.trace:
            print(emu.get_trace(), file=sys.stderr)

    log.info("%s after %d steps", result, emu.steps)
    if result.outcome is StepOutcome.HALTED:
        return EXIT_OK
    if result.outcome is StepOutcome.AWAITING_INPUT:
        raise CommandError(f"Input ended while the program was waiting for it ({result})")
    if result.outcome is StepOutcome.TIMEOUT:
        raise CommandError(f"No HLT within {config.max_steps} steps ({result})")
    raise CommandError(str(result))


def _drive(emu, max_steps, polling=False):
    while True:
        result = emu.run(max_steps=max_steps - emu.steps)
        # A serial peer may simply not have typed anything yet
        if polling and result.outcome is StepOutcome.AWAITING_INPUT:
            time.sleep(SERIAL_POLL_INTERVAL)
            continue
        return result


# ── dump ─────────────────────────────────────────────────────────────────
def cmd_dump(args, config):
    print(image.load(args.input).dump())
    return EXIT_OK


# ── disasm ───────────────────────────────────────────────────────────────
def cmd_disasm(args, config):
    memory = image.load(args.input)
    if args.source:
        sys.stdout.write(source_text(memory))
    else:
        print(listing(memory))
    return EXIT_OK


# ── test ─────────────────────────────────────────────────────────────────
def cmd_test(args, config):
    if args.input.lower().endswith(".lmc"):
        _, memory = _assemble_file(args.input, config)
    else:
        memory = image.load(args.input)
    tests = ProgramTest.from_csv(_read_text(args.cases))

    failed = 0
    for number, (test, failure, steps) in enumerate(run_tests(memory, tests), 1):
        name = test.name or f"#{number}"
        if failure is None:
            print(f"PASS  {name}  ({steps} steps)")
        else:
            failed += 1
            print(f"FAIL  {name}  {failure}")
    print(f"{len(tests) - failed}/{len(tests)} passed")
    return EXIT_OK if failed == 0 else EXIT_USER_ERROR


COMMANDS = {
    "asm": cmd_asm,
    "nums": cmd_nums,
    "run": cmd_run,
    "run-asm": cmd_run_asm,
    "run-nums": cmd_run_nums,
    "dump": cmd_dump,
    "disasm": cmd_disasm,
    "test": cmd_test,
}


if __name__ == "__main__":
    sys.exit(main())
