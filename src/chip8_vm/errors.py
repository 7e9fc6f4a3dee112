"""Exception hierarchy for the CHIP-8 interpreter.

Every fatal condition raised by the core derives from Chip8Error, which is
itself a RuntimeError so callers that already guard the run loop with
``except RuntimeError`` keep working.

Hierarchy:
    Chip8Error
        MemoryBoundsError   - access outside [0, 4096)
        StackError
            StackOverflowError  - CALL with all 16 slots in use
            StackUnderflowError - RET with an empty stack
        DecodeError         - unmatched word while strict decoding is on
        ExecutionFault      - any of the above, tagged with opcode and PC
"""

from typing import Optional


class Chip8Error(RuntimeError):
    """Base class for all interpreter errors."""


class MemoryBoundsError(Chip8Error):
    """Raised when a read or write touches an address outside memory.

    Attributes:
        address: First address of the offending access
        length: Number of bytes the access spanned
    """

    def __init__(self, address: int, length: int = 1, size: int = 4096):
        self.address = address
        self.length = length
        if length == 1:
            message = f"Address 0x{address:04X} outside memory [0x000, 0x{size:03X})"
        else:
            message = (
                f"Range 0x{address:04X}+{length} outside memory [0x000, 0x{size:03X})"
            )
        super().__init__(message)


class StackError(Chip8Error):
    """Base class for call stack violations."""


class StackOverflowError(StackError):
    """Raised when a subroutine call would push past the last stack slot."""

    def __init__(self, depth: int):
        self.depth = depth
        super().__init__(f"Stack overflow: {depth} return addresses already pushed")


class StackUnderflowError(StackError):
    """Raised when a return is executed with no pushed frame."""

    def __init__(self):
        super().__init__("Stack underflow: return with empty stack")


class DecodeError(Chip8Error):
    """Raised for an unmatched instruction word when strict decoding is on."""

    def __init__(self, opcode: int):
        self.opcode = opcode
        super().__init__(f"Unknown opcode: {opcode:04X}")


class ExecutionFault(Chip8Error):
    """A fatal error raised while executing one instruction.

    Wraps the underlying Chip8Error with the context needed to diagnose it.

    Attributes:
        opcode: Raw 16-bit instruction word being executed
        pc: Address the instruction was fetched from
        cause: Original exception
    """

    def __init__(self, opcode: int, pc: int, cause: Optional[Exception] = None):
        self.opcode = opcode
        self.pc = pc
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Fault at PC=0x{pc:03X} executing {opcode:04X}{detail}")
