"""Chip8State: the owned machine state of one CHIP-8 interpreter.

This module defines the single aggregate that the executor mutates. An
interpreter instance owns exactly one Chip8State; nothing in it is shared
with other instances.

State Components:
    - Registers: V0-VF (16 general-purpose 8-bit unsigned values)
    - I: Index register (16-bit, conceptually a 12-bit address)
    - PC: Program counter, starts at 0x200
    - Stack: 16 return addresses plus stack pointer SP
    - Timers: Delay and sound timers (8-bit, floor at 0)
    - Memory: 4096-byte address space
    - Display: 64x32 one-bit frame buffer
    - Keys: 16 held/released flags, refreshed from the input source
    - awaiting_key: Set while FX0A is blocked waiting for a key press
    - cycle_count: Total executed cycles

VF doubles as the flag output of arithmetic, shift and draw opcodes, so
its register value does not survive those operations.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Union

from .display import DisplayBuffer
from .errors import StackOverflowError, StackUnderflowError
from .memory import Memory, PROGRAM_START


NUM_REGISTERS = 16
STACK_DEPTH = 16
NUM_KEYS = 16

RegisterRef = Union[int, str]


@dataclass
class Chip8State:
    """Mutable CHIP-8 machine state.

    Attributes:
        v: The sixteen 8-bit registers, indexed 0x0-0xF
        i: Index register
        pc: Program counter
        stack: Return address slots
        sp: Number of pushed return addresses, in [0, 16]
        delay_timer: Delay timer value
        sound_timer: Sound timer value
        memory: Address space
        display: Frame buffer
        keys: Current keypad state, one flag per hex key
        awaiting_key: True while FX0A is waiting for a key
        halted: Whether the run loop has stopped
        cycle_count: Number of execution cycles completed
    """
    v: List[int] = field(default_factory=lambda: [0] * NUM_REGISTERS)
    i: int = 0
    pc: int = PROGRAM_START
    stack: List[int] = field(default_factory=lambda: [0] * STACK_DEPTH)
    sp: int = 0
    delay_timer: int = 0
    sound_timer: int = 0
    memory: Memory = field(default_factory=Memory)
    display: DisplayBuffer = field(default_factory=DisplayBuffer)
    keys: List[bool] = field(default_factory=lambda: [False] * NUM_KEYS)
    awaiting_key: bool = False
    halted: bool = False
    cycle_count: int = 0

    def snapshot(self) -> dict:
        """Capture the register file for tracing.

        Memory and display are left out; they are large and the trace only
        needs to show register-level changes.

        Returns:
            Dictionary copy of registers, I, PC, SP, stack and timers
        """
        return {
            "registers": self.dump_registers(),
            "i": self.i,
            "pc": self.pc,
            "sp": self.sp,
            "stack": list(self.stack[:self.sp]),
            "delay_timer": self.delay_timer,
            "sound_timer": self.sound_timer,
            "halted": self.halted,
            "cycle_count": self.cycle_count,
        }

    def validate(self) -> bool:
        """Validate state integrity.

        Checks:
            - Sixteen registers, each in [0, 255]
            - I and PC are 16-bit values
            - SP is in [0, 16]
            - Timers are 8-bit values

        Returns:
            True if state is valid, False otherwise
        """
        if len(self.v) != NUM_REGISTERS:
            return False
        for value in self.v:
            if not isinstance(value, int) or not 0 <= value <= 0xFF:
                return False

        if not 0 <= self.i <= 0xFFFF or not 0 <= self.pc <= 0xFFFF:
            return False

        if len(self.stack) != STACK_DEPTH or not 0 <= self.sp <= STACK_DEPTH:
            return False

        for timer in (self.delay_timer, self.sound_timer):
            if not 0 <= timer <= 0xFF:
                return False

        if len(self.keys) != NUM_KEYS or self.cycle_count < 0:
            return False

        return True

    @staticmethod
    def _index(reg: RegisterRef) -> int:
        if isinstance(reg, str):
            name = reg.upper()
            if len(name) != 2 or name[0] != "V":
                raise KeyError(f"Invalid register: {reg}")
            try:
                index = int(name[1], 16)
            except ValueError:
                raise KeyError(f"Invalid register: {reg}") from None
        else:
            index = reg
        if not 0 <= index < NUM_REGISTERS:
            raise KeyError(f"Invalid register: {reg}")
        return index

    def get_register(self, reg: RegisterRef) -> int:
        """Get value of a register.

        Args:
            reg: Register index (0-15) or name ("V0"-"VF", case insensitive)

        Raises:
            KeyError: If register doesn't exist
        """
        return self.v[self._index(reg)]

    def set_register(self, reg: RegisterRef, value: int) -> None:
        """Set a register, wrapping value into 8 bits."""
        self.v[self._index(reg)] = value & 0xFF

    def push(self, address: int) -> None:
        """Push a return address.

        Raises:
            StackOverflowError: If all 16 slots are in use
        """
        if self.sp >= STACK_DEPTH:
            raise StackOverflowError(self.sp)
        self.stack[self.sp] = address & 0xFFFF
        self.sp += 1

    def pop(self) -> int:
        """Pop a return address.

        Raises:
            StackUnderflowError: If no address has been pushed
        """
        if self.sp == 0:
            raise StackUnderflowError()
        self.sp -= 1
        return self.stack[self.sp]

    def advance_pc(self, amount: int = 2) -> None:
        self.pc = (self.pc + amount) & 0xFFFF

    def tick_timers(self) -> None:
        """Decrement both timers by one, never below zero."""
        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            self.sound_timer -= 1

    def set_keys(self, keys: Sequence[bool]) -> None:
        """Copy the keypad state reported by the input source."""
        if len(keys) != NUM_KEYS:
            raise ValueError(f"Expected {NUM_KEYS} key states, got {len(keys)}")
        self.keys = [bool(k) for k in keys]

    def dump_registers(self) -> Dict[str, int]:
        """Get a copy of all register values keyed by name."""
        return {f"V{index:X}": value for index, value in enumerate(self.v)}

    def __str__(self) -> str:
        """Human-readable state representation."""
        regs = " ".join(f"V{k:X}={v:02X}" for k, v in enumerate(self.v))
        return (
            f"[Cycle {self.cycle_count}] PC={self.pc:03X} I={self.i:03X} "
            f"SP={self.sp} DT={self.delay_timer} ST={self.sound_timer} "
            f"{regs} {'HALTED' if self.halted else ''}"
        ).rstrip()


def create_initial_state(program: bytes) -> Chip8State:
    """Create initial machine state with a loaded program.

    Args:
        program: Raw program image, placed at 0x200 (truncated if too large)

    Returns:
        Fresh Chip8State with PC at 0x200
    """
    state = Chip8State()
    state.memory.load(program)
    return state
