# LMC Emulator: Little Minion Computer execution engine
# Part of the lmckit toolchain
#
# Layout:
#   config.py      machine constants, RunConfig
#   emu.py         LMCEmulator, StepOutcome, StepResult
#   cpu/           registers, ALU, fetch/decode
#   mem/           100-cell memory
#   periph/        I/O handlers (scripted, console, serial)
#   image.py       packed binary image save/load
#   tester.py      run a program against CSV test cases
#   log_setup.py   rich console + file logging
#
# Import the modules directly (lmc_emulator.emu etc.); this file stays
# empty so lmc_assembler can use lmc_emulator.mem without pulling in the
# engine.
