"""
Image file tests — 10-bit packing, trimming, and load validation.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from lmc_assembler.assembler import assemble
from lmc_emulator import image
from lmc_emulator.image import ImageError, MAX_FILE_SIZE, save_to_bytes, load_from_bytes
from lmc_emulator.mem.memory import Memory

EXAMPLES_DIR = os.path.join(os.path.dirname(__file__), "..", "examples")


class TestPacking:

    def test_empty_memory_is_empty_file(self):
        assert save_to_bytes(Memory()) == b''

    def test_all_ones_fills_every_byte(self):
        data = save_to_bytes(Memory([1] * 100))
        assert len(data) == MAX_FILE_SIZE == 125
        # 0000000001 0000000001 ... -> 00 40 10 04 01 repeating
        assert data == b'\x00\x40\x10\x04\x01' * 25

    def test_first_cell_msb_first(self):
        # 999 = 1111100111
        assert save_to_bytes(Memory([999])) == b'\xf9\xc0'

    def test_trailing_zero_bytes_trimmed(self):
        data = save_to_bytes(Memory([0, 0, 5]))
        assert data[-1] != 0
        assert len(data) < MAX_FILE_SIZE


class TestLoading:

    def test_short_file_is_padded(self):
        mem = load_from_bytes(b'\xf9\xc0')
        assert mem.read(0) == 999
        assert mem.cells[1:] == [0] * 99

    def test_empty_file_is_zero_memory(self):
        assert load_from_bytes(b'') == Memory()

    def test_too_long_rejected(self):
        with pytest.raises(ImageError):
            load_from_bytes(bytes(MAX_FILE_SIZE + 1))

    def test_field_above_999_rejected(self):
        # 1111111111 in cell 0 = 1023
        with pytest.raises(ImageError) as exc:
            load_from_bytes(b'\xff\xc0')
        assert "1023" in str(exc.value)

    def test_image_error_is_value_error(self):
        assert issubclass(ImageError, ValueError)


class TestFiles:

    def test_save_and_load(self, tmp_path):
        with open(os.path.join(EXAMPLES_DIR, "fibonacci.lmc"), encoding="utf-8") as f:
            mem = assemble(f.read())
        path = tmp_path / "fib.bin"
        image.save(path, mem)
        assert path.stat().st_size <= MAX_FILE_SIZE
        assert image.load(path) == mem

    def test_load_accepts_str_path(self, tmp_path):
        path = tmp_path / "one.bin"
        path.write_bytes(b'\x00\x40')
        assert image.load(str(path)).read(0) == 1
