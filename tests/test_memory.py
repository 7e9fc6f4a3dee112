"""Tests for the Memory address space."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from chip8_vm.errors import MemoryBoundsError
from chip8_vm.memory import Memory, MEMORY_SIZE, PROGRAM_START


@pytest.fixture
def memory():
    return Memory()


class TestMemoryLoad:
    """Test program loading."""

    def test_load_places_bytes_at_0x200(self, memory):
        program = bytes(range(1, 40))
        memory.load(program)
        for offset, value in enumerate(program):
            assert memory.read(PROGRAM_START + offset) == value

    def test_load_leaves_reserved_area_zero(self, memory):
        memory.load(b"\xff" * 10)
        assert memory.dump(0, PROGRAM_START) == bytes(PROGRAM_START)

    def test_load_returns_count(self, memory):
        assert memory.load(b"\x01\x02\x03") == 3

    def test_load_truncates_silently(self, memory):
        """An oversized image fills memory up to 0xFFF and drops the rest."""
        capacity = MEMORY_SIZE - PROGRAM_START
        program = bytes([0xAB]) * (capacity + 100)
        assert memory.load(program) == capacity
        assert memory.read(MEMORY_SIZE - 1) == 0xAB

    def test_load_empty(self, memory):
        assert memory.load(b"") == 0


class TestMemoryAccess:
    """Test byte, word and block access."""

    def test_write_read(self, memory):
        memory.write(0x300, 0x42)
        assert memory.read(0x300) == 0x42

    def test_write_truncates_to_byte(self, memory):
        memory.write(0x300, 0x1FF)
        assert memory.read(0x300) == 0xFF

    def test_read_word_big_endian(self, memory):
        memory.write(0x200, 0x12)
        memory.write(0x201, 0x34)
        assert memory.read_word(0x200) == 0x1234

    def test_block_roundtrip(self, memory):
        memory.write_block(0x400, [1, 2, 3])
        assert memory.read_block(0x400, 3) == b"\x01\x02\x03"

    def test_first_and_last_address(self, memory):
        memory.write(0, 1)
        memory.write(MEMORY_SIZE - 1, 2)
        assert memory.read(0) == 1
        assert memory.read(MEMORY_SIZE - 1) == 2

    def test_clear(self, memory):
        memory.load(b"\x01\x02")
        memory.clear()
        assert memory.read(PROGRAM_START) == 0


class TestMemoryBounds:
    """Out-of-range access raises MemoryBoundsError."""

    @pytest.mark.parametrize("address", [-1, MEMORY_SIZE, MEMORY_SIZE + 10])
    def test_read_out_of_bounds(self, memory, address):
        with pytest.raises(MemoryBoundsError):
            memory.read(address)

    def test_write_out_of_bounds(self, memory):
        with pytest.raises(MemoryBoundsError) as exc_info:
            memory.write(MEMORY_SIZE, 1)
        assert exc_info.value.address == MEMORY_SIZE

    def test_read_word_straddling_end(self, memory):
        with pytest.raises(MemoryBoundsError):
            memory.read_word(MEMORY_SIZE - 1)

    def test_write_block_checked_before_writing(self, memory):
        """A block that runs off the end writes nothing."""
        with pytest.raises(MemoryBoundsError) as exc_info:
            memory.write_block(MEMORY_SIZE - 2, [9, 9, 9])
        assert exc_info.value.length == 3
        assert memory.read(MEMORY_SIZE - 2) == 0
        assert memory.read(MEMORY_SIZE - 1) == 0

    def test_read_block_out_of_bounds(self, memory):
        with pytest.raises(MemoryBoundsError):
            memory.read_block(MEMORY_SIZE - 1, 2)
