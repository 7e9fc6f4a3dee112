"""Tests for Chip8State dataclass."""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from chip8_vm.errors import StackOverflowError, StackUnderflowError
from chip8_vm.state import Chip8State, create_initial_state, STACK_DEPTH


class TestChip8StateCreation:
    """Test Chip8State initialization and defaults."""

    def test_default_state(self):
        """Default state has zeroed registers and PC at 0x200."""
        state = Chip8State()
        assert state.pc == 0x200
        assert state.i == 0
        assert state.sp == 0
        assert state.cycle_count == 0
        assert state.halted is False
        assert state.awaiting_key is False
        assert state.v == [0] * 16
        assert state.delay_timer == 0
        assert state.sound_timer == 0
        assert state.keys == [False] * 16

    def test_create_initial_state(self):
        """create_initial_state loads program at 0x200."""
        state = create_initial_state(bytes([0x60, 0x0A, 0x00, 0xE0]))
        assert state.memory.read(0x200) == 0x60
        assert state.memory.read(0x201) == 0x0A
        assert state.memory.read(0x203) == 0xE0
        assert state.pc == 0x200

    def test_instances_do_not_share_storage(self):
        """Each state owns its own registers, memory and display."""
        a = Chip8State()
        b = Chip8State()
        a.v[0] = 1
        a.memory.write(0x300, 7)
        a.display.rows[0] = 1
        assert b.v[0] == 0
        assert b.memory.read(0x300) == 0
        assert b.display.rows[0] == 0


class TestChip8StateValidation:
    """Test state validation."""

    def test_valid_state(self):
        assert Chip8State().validate() is True

    def test_invalid_register_value(self):
        """Register value out of 8-bit range fails validation."""
        state = Chip8State()
        state.v[3] = 256
        assert state.validate() is False

    def test_invalid_stack_pointer(self):
        state = Chip8State(sp=17)
        assert state.validate() is False

    def test_invalid_timer(self):
        state = Chip8State(delay_timer=-1)
        assert state.validate() is False


class TestChip8StateRegisters:
    """Test register accessors."""

    def test_get_register_by_index_and_name(self):
        state = Chip8State()
        state.v[0xA] = 42
        assert state.get_register(0xA) == 42
        assert state.get_register("VA") == 42
        assert state.get_register("va") == 42

    def test_set_register_wraps(self):
        """set_register keeps values 8-bit."""
        state = Chip8State()
        state.set_register("V1", 0x1FF)
        assert state.v[1] == 0xFF

    @pytest.mark.parametrize("reg", ["V", "VG", "R0", 16, -1])
    def test_get_register_invalid(self, reg):
        with pytest.raises(KeyError):
            Chip8State().get_register(reg)

    def test_dump_registers(self):
        """dump_registers returns a copy keyed V0-VF."""
        state = Chip8State()
        state.v[0] = 1
        state.v[15] = 2
        regs = state.dump_registers()
        assert regs["V0"] == 1
        assert regs["VF"] == 2
        assert len(regs) == 16

        regs["V0"] = 99
        assert state.v[0] == 1


class TestChip8StateStack:
    """Test the return address stack."""

    def test_push_pop(self):
        state = Chip8State()
        state.push(0x202)
        state.push(0x304)
        assert state.sp == 2
        assert state.pop() == 0x304
        assert state.pop() == 0x202
        assert state.sp == 0

    def test_overflow(self):
        """Pushing a seventeenth address raises."""
        state = Chip8State()
        for n in range(STACK_DEPTH):
            state.push(0x200 + 2 * n)
        with pytest.raises(StackOverflowError):
            state.push(0x400)
        assert state.sp == STACK_DEPTH

    def test_underflow(self):
        with pytest.raises(StackUnderflowError):
            Chip8State().pop()


class TestChip8StateTimers:
    """Test timer ticking."""

    def test_tick_decrements_both(self):
        state = Chip8State(delay_timer=3, sound_timer=1)
        state.tick_timers()
        assert state.delay_timer == 2
        assert state.sound_timer == 0

    def test_tick_floors_at_zero(self):
        state = Chip8State()
        state.tick_timers()
        assert state.delay_timer == 0
        assert state.sound_timer == 0


class TestChip8StateSnapshot:
    """Test state snapshot for tracing."""

    def test_snapshot_is_copy(self):
        state = Chip8State()
        state.v[0] = 42
        state.push(0x206)
        snapshot = state.snapshot()

        assert snapshot["registers"]["V0"] == 42
        assert snapshot["pc"] == 0x200
        assert snapshot["stack"] == [0x206]

        snapshot["registers"]["V0"] = 999
        assert state.v[0] == 42

    def test_str(self):
        state = Chip8State()
        text = str(state)
        assert "PC=200" in text
        assert "V0=00" in text


class TestChip8StateKeys:

    def test_set_keys(self):
        state = Chip8State()
        keys = [False] * 16
        keys[5] = True
        state.set_keys(keys)
        assert state.keys[5] is True

    def test_set_keys_wrong_length(self):
        with pytest.raises(ValueError):
            Chip8State().set_keys([True] * 4)
