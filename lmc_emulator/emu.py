"""
LMC Emulator — Main Emulator Class

Integrates:
  - CPU registers (cpu/regs.py)
  - 100-cell memory (mem/memory.py)
  - Fetch/decode (cpu/decoder.py, table shared with the assembler)
  - ALU operations (cpu/alu.py)
  - An I/O handler (periph/console.py, periph/serial_io.py)

Execution model, one step():
  1. Terminal state already reached -> report it again, change nothing
  2. Fetch the cell at PC and decode it fresh (self-modified cells are
     seen immediately)
  3. HLT -> HALTED, PC stays on the HLT cell
  4. Work out the next PC (branch target or PC+1). Past address 99 ->
     REACHED_END, nothing executed
  5. Execute. An input instruction with no input available -> AWAITING_INPUT,
     nothing changed, retry the same step later
  6. PC = next PC, step counter + 1 -> CONTINUED

Step outcomes:
  - CONTINUED:            instruction executed, keep going
  - HALTED:               HLT reached (terminal)
  - AWAITING_INPUT:       INP/INA found no input (retriable)
  - INVALID_INSTRUCTION:  cell does not decode (terminal)
  - REACHED_END:          execution would run past address 99 (terminal)

run() adds two stop reasons of its own:
  - TIMEOUT:  step budget used up
  - BREAK:    breakpoint address reached

Extended mode is latched at construction and reset(): it is on exactly
when cell 0 holds 010 at that moment. Rewriting cell 0 mid-run does not
change the mode of the current run.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Set

from .config import MEMORY_SIZE, DEFAULT_MAX_STEPS, EXTENDED_SENTINEL, CHAR_MASK
from .cpu.regs import Registers
from .cpu.decoder import decode_opcode, IllegalOpcode
from .cpu import alu
from .mem.memory import Memory
from .periph.console import IOHandler, ScriptedIO

log = logging.getLogger(__name__)


class StepOutcome(Enum):
    CONTINUED = 'CONTINUED'
    HALTED = 'HALTED'
    AWAITING_INPUT = 'AWAITING_INPUT'
    INVALID_INSTRUCTION = 'INVALID_INSTRUCTION'
    REACHED_END = 'REACHED_END'
    # run() only
    TIMEOUT = 'TIMEOUT'
    BREAK = 'BREAK'


TERMINAL_OUTCOMES = frozenset({
    StepOutcome.HALTED,
    StepOutcome.INVALID_INSTRUCTION,
    StepOutcome.REACHED_END,
})


@dataclass(frozen=True)
class StepResult:
    """What one step (or one run) ended with.

    ``address`` and ``cell`` identify the instruction involved: the one
    executed, the HLT, the invalid cell, or the cell that would have run
    past the end.
    """
    outcome: StepOutcome
    address: int
    cell: int

    @property
    def is_terminal(self) -> bool:
        return self.outcome in TERMINAL_OUTCOMES

    @property
    def is_error(self) -> bool:
        return self.outcome in (StepOutcome.INVALID_INSTRUCTION, StepOutcome.REACHED_END)

    def __str__(self) -> str:
        return f"{self.outcome.value} at {self.address:02d} (cell {self.cell:03d})"


class LMCEmulator:
    """Little Minion Computer.

    Usage:
        emu = LMCEmulator(assemble(source), ScriptedIO(numbers=[5, 6]))
        result = emu.run(max_steps=1000)
        result.outcome        # StepOutcome.HALTED
        emu.io.outputs        # [30]
    """

    DEFAULT_MAX_STEPS = DEFAULT_MAX_STEPS

    def __init__(self, memory: Optional[Memory] = None, io: Optional[IOHandler] = None):
        self.regs = Registers()
        self.mem = memory if memory is not None else Memory()
        self.io = io if io is not None else ScriptedIO()

        self.extended = False
        self._final: Optional[StepResult] = None

        # Breakpoints: set of PC addresses that trigger BREAK
        self._breakpoints: Set[int] = set()

        # Trace output
        self._trace = False
        self._trace_output: List[str] = []

        # Instruction dispatch table (built in _build_dispatch)
        self._dispatch = self._build_dispatch()

        self._latch_mode()

    # ══════════════════════════════════════════════
    # Loading / state
    # ══════════════════════════════════════════════

    def load(self, memory: Memory):
        """Replace memory with a new image and reset the CPU."""
        self.mem = memory
        self.reset()

    def _latch_mode(self):
        self.extended = self.mem.read(0) == EXTENDED_SENTINEL
        log.debug("Run start: extended mode %s", "on" if self.extended else "off")

    @property
    def accumulator(self) -> int:
        return self.regs.ACC

    @property
    def pc(self) -> int:
        return self.regs.PC

    @property
    def negative(self) -> bool:
        return self.regs.N

    @property
    def steps(self) -> int:
        return self.regs.steps

    @property
    def final(self) -> Optional[StepResult]:
        """The terminal result, once one has been reached."""
        return self._final

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> StepResult:
        """Execute one instruction and report what happened."""
        if self._final is not None:
            return self._final

        pc = self.regs.PC

        # Fetch + decode, fresh every time
        try:
            ins, cell = decode_opcode(self.mem, pc, self.extended)
        except IllegalOpcode as e:
            log.warning("%s", e)
            return self._finish(StepOutcome.INVALID_INSTRUCTION, pc, e.cell)

        # 010 away from address 0 is just a 0xx cell: halt
        if ins.mnemonic == 'HLT' or (ins.mnemonic == 'EXT' and pc != 0):
            self._trace_line(pc, cell, ins)
            log.debug("HLT at %02d after %d steps", pc, self.regs.steps)
            return self._finish(StepOutcome.HALTED, pc, cell)

        next_pc = self._next_pc(ins.mnemonic, ins.operand, pc)
        if next_pc >= MEMORY_SIZE:
            log.warning("Execution ran past address %02d (cell %03d)", pc, cell)
            return self._finish(StepOutcome.REACHED_END, pc, cell)

        handler = self._dispatch[ins.mnemonic]
        if not handler(ins.operand):
            return StepResult(StepOutcome.AWAITING_INPUT, pc, cell)

        self.regs.PC = next_pc
        self.regs.steps += 1
        self._trace_line(pc, cell, ins)
        return StepResult(StepOutcome.CONTINUED, pc, cell)

    def run(self, max_steps: Optional[int] = None) -> StepResult:
        """Run until something other than CONTINUED happens.

        Args:
            max_steps: Instructions to execute in this call before TIMEOUT

        Returns:
            The stopping StepResult. AWAITING_INPUT may be resumed by
            supplying input and calling run() again; so may TIMEOUT and
            BREAK.
        """
        if max_steps is None:
            max_steps = self.DEFAULT_MAX_STEPS

        executed = 0
        first = True
        while executed < max_steps:
            pc = self.regs.PC
            # A breakpoint stops before its instruction, but not twice in a row
            if not first and pc in self._breakpoints and self._final is None:
                return StepResult(StepOutcome.BREAK, pc, self.mem.read(pc))
            first = False

            result = self.step()
            if result.outcome is not StepOutcome.CONTINUED:
                return result
            executed += 1

        log.debug("Step budget of %d used up at %02d", max_steps, self.regs.PC)
        return StepResult(StepOutcome.TIMEOUT, self.regs.PC, self.mem.read(self.regs.PC))

    def _finish(self, outcome: StepOutcome, address: int, cell: int) -> StepResult:
        self._final = StepResult(outcome, address, cell)
        return self._final

    def _next_pc(self, mnem: str, operand: Optional[int], pc: int) -> int:
        if mnem == 'BR':
            return operand
        if mnem == 'BRZ' and self.regs.ACC == 0:
            return operand
        if mnem == 'BRP' and not self.regs.N:
            return operand
        return pc + 1

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Each returns True when the instruction completed, False when it
    # needs input that is not there yet (and then has changed nothing).

    def _build_dispatch(self) -> Dict[str, Callable[[Optional[int]], bool]]:
        """Build mnemonic -> handler dispatch table."""
        return {
            # ── Arithmetic ──
            'ADD': self._op_add,
            'SUB': self._op_sub,
            # ── Load/Store ──
            'STO': self._op_sto,
            'LDA': self._op_lda,
            # ── Branches (target already applied by _next_pc) ──
            'BR':  self._op_nop,
            'BRZ': self._op_nop,
            'BRP': self._op_nop,
            # ── I/O ──
            'INP': self._op_inp,
            'OUT': self._op_out,
            # ── Extended ──
            'EXT': self._op_nop,
            'INA': self._op_ina,
            'OTA': self._op_ota,
        }

    def _op_add(self, addr: int) -> bool:
        self.regs.ACC, self.regs.N = alu.add(self.regs.ACC, self.mem.read(addr))
        return True

    def _op_sub(self, addr: int) -> bool:
        self.regs.ACC, self.regs.N = alu.sub(self.regs.ACC, self.mem.read(addr))
        return True

    def _op_sto(self, addr: int) -> bool:
        self.mem.write(addr, self.regs.cell_value)
        return True

    def _op_lda(self, addr: int) -> bool:
        self.regs.ACC = self.mem.read(addr)
        self.regs.N = False
        return True

    def _op_nop(self, _operand) -> bool:
        return True

    def _op_inp(self, _operand) -> bool:
        value = self.io.request_number()
        if value is None:
            return False
        clamped = alu.clamp_input(value)
        if clamped != value:
            log.warning("Input %d out of range, clamped to %d", value, clamped)
        self.regs.ACC = clamped
        self.regs.N = False
        return True

    def _op_out(self, _operand) -> bool:
        self.io.emit_number(self.regs.cell_value)
        return True

    def _op_ina(self, _operand) -> bool:
        value = self.io.request_character()
        if value is None:
            return False
        self.regs.ACC = value & CHAR_MASK
        self.regs.N = False
        return True

    def _op_ota(self, _operand) -> bool:
        self.io.emit_character(self.regs.cell_value & CHAR_MASK)
        return True

    # ══════════════════════════════════════════════
    # Breakpoints
    # ══════════════════════════════════════════════

    def add_breakpoint(self, addr: int):
        """Add a breakpoint at PC address. run() stops before executing it."""
        self._breakpoints.add(addr)

    def remove_breakpoint(self, addr: int):
        self._breakpoints.discard(addr)

    def clear_breakpoints(self):
        self._breakpoints.clear()

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        """Enable instruction trace logging."""
        self._trace = enable

    def _trace_line(self, pc: int, cell: int, ins):
        if self._trace:
            self._trace_output.append(f"{pc:02d}: {cell:03d}  {str(ins):7s} {self.regs.display()}")

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()

    def reset(self):
        """CPU reset: registers cleared, mode re-latched. Memory is kept."""
        self.regs.reset()
        self._final = None
        self._trace_output.clear()
        self._latch_mode()
