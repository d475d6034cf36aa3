"""
Instruction encoding tests.

Every mnemonic/operand pair must survive encode -> decode, in both the
standard and the extended instruction space, and every cell that is not
an instruction must decode to INVALID (never HLT).
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from lmc_assembler.encoding import (
    Instruction, EncodingError, encode, decode, disassemble, normalize_mnemonic,
)


ADDRESS_OPS = ['ADD', 'SUB', 'STO', 'LDA', 'BR', 'BRZ', 'BRP']


class TestEncode:
    """Cell values from the opcode table."""

    def test_address_instructions(self):
        cases = [
            ('ADD', 12, 112),
            ('SUB', 0, 200),
            ('STO', 99, 399),
            ('LDA', 5, 505),
            ('BR', 42, 642),
            ('BRZ', 7, 707),
            ('BRP', 80, 880),
        ]
        for mnem, operand, expected in cases:
            assert encode(mnem, operand) == expected, f"{mnem} {operand}: expected {expected}"

    def test_fixed_instructions(self):
        assert encode('HLT') == 0
        assert encode('INP') == 901
        assert encode('OUT') == 902
        assert encode('EXT') == 10
        assert encode('INA') == 911
        assert encode('OTA') == 912

    def test_dat_passes_value_through(self):
        assert encode('DAT', 999) == 999
        assert encode('DAT', 0) == 0
        assert encode('DAT') == 0

    def test_aliases_and_case(self):
        assert encode('sta', 10) == encode('STO', 10)
        assert encode('Bra', 3) == encode('BR', 3)
        assert encode('in') == encode('INP')
        assert normalize_mnemonic('lda') == 'LDA'
        assert normalize_mnemonic('NOPE') is None

    def test_rejects_bad_operands(self):
        with pytest.raises(EncodingError):
            encode('ADD', 100)
        with pytest.raises(EncodingError):
            encode('ADD', -1)
        with pytest.raises(EncodingError):
            encode('ADD')
        with pytest.raises(EncodingError):
            encode('OUT', 1)
        with pytest.raises(EncodingError):
            encode('DAT', 1000)
        with pytest.raises(EncodingError):
            encode('XYZ', 1)


class TestRoundTrip:
    """decode(encode(op, a)) == (op, a) for every valid pair."""

    def test_every_address_instruction(self):
        for mnem in ADDRESS_OPS:
            for addr in range(100):
                ins = decode(encode(mnem, addr))
                assert ins == Instruction(mnem, addr), f"{mnem} {addr}: got {ins}"

    def test_no_operand_instructions(self):
        for mnem in ['HLT', 'INP', 'OUT']:
            assert decode(encode(mnem)) == Instruction(mnem)
            assert decode(encode(mnem), extended=True) == Instruction(mnem)

    def test_extended_instructions(self):
        for mnem in ['EXT', 'INA', 'OTA']:
            assert decode(encode(mnem), extended=True) == Instruction(mnem)


class TestDecode:
    """Undecodable cells and mode gating."""

    def test_4xx_is_invalid(self):
        for cell in (400, 450, 499):
            assert not decode(cell).is_valid
            assert not decode(cell, extended=True).is_valid

    def test_unknown_9xx_is_invalid(self):
        for cell in (900, 903, 910, 913, 999):
            assert not decode(cell).is_valid, f"{cell} should not decode"
            assert not decode(cell, extended=True).is_valid, f"{cell} should not decode"

    def test_extended_codes_invalid_outside_extended_mode(self):
        assert not decode(911).is_valid
        assert not decode(912).is_valid
        assert decode(911, extended=True) == Instruction('INA')

    def test_0xx_is_halt(self):
        assert decode(0) == Instruction('HLT')
        assert decode(55) == Instruction('HLT')
        # 010 is only EXT when the run is extended
        assert decode(10) == Instruction('HLT')
        assert decode(10, extended=True) == Instruction('EXT')

    def test_out_of_range_cell_is_invalid(self):
        assert not decode(1000).is_valid
        assert not decode(-1).is_valid


class TestDisassemble:

    def test_instructions(self):
        assert disassemble(512) == 'LDA 12'
        assert disassemble(902) == 'OUT'
        assert disassemble(0) == 'HLT'
        assert disassemble(603) == 'BR 03'

    def test_non_instructions_render_as_data(self):
        assert disassemble(450) == 'DAT 450'
        assert disassemble(911) == 'DAT 911'
        assert disassemble(7) == 'DAT 007'
        assert disassemble(911, extended=True) == 'INA'
