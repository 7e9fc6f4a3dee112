"""chip8-vm: a CHIP-8 virtual machine interpreter.

This package loads a binary CHIP-8 program image into a 4096-byte emulated
memory and executes it cycle by cycle against a register, timer and display
model. The only visible output is a 64x32 monochrome bitmap handed to a
render sink.

Pipeline:
    MEMORY -> FETCH -> DECODE -> KEY -> REGISTRY -> EXECUTE -> STATE
               |         |        |        |           |
           [PC-based] [Nibbles] [OP_*]  [Frozen]   [Owned aggregate]
                                       Primitives

Modules:
    memory: 4096-byte address space with bounds-checked access
    display: 64x32 one-bit frame buffer with sprite XOR
    state: Chip8State aggregate (registers, stack, timers, memory, display)
    decode: Instruction fields, operation key resolution, disassembly
    registry: Frozen table of opcode primitives
    cpu: Chip8VM cycle driver
    config: Chip8Config run-time settings
    peripherals: Render sink and input source implementations
    errors: Exception hierarchy
"""

__version__ = "0.1.0"

from .config import Chip8Config
from .cpu import Chip8VM, ExecutionTraceEntry, MachineStatus
from .decode import Decoder, DecodeResult, Instruction, decode, disassemble
from .display import DisplayBuffer
from .errors import (
    Chip8Error,
    DecodeError,
    ExecutionFault,
    MemoryBoundsError,
    StackOverflowError,
    StackUnderflowError,
)
from .memory import Memory
from .registry import OpcodeRegistry
from .state import Chip8State

__all__ = [
    "Chip8Config",
    "Chip8VM",
    "ExecutionTraceEntry",
    "MachineStatus",
    "Decoder",
    "DecodeResult",
    "Instruction",
    "decode",
    "disassemble",
    "DisplayBuffer",
    "Chip8Error",
    "DecodeError",
    "ExecutionFault",
    "MemoryBoundsError",
    "StackOverflowError",
    "StackUnderflowError",
    "Memory",
    "OpcodeRegistry",
    "Chip8State",
]
