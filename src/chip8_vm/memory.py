"""Memory: the 4096-byte CHIP-8 address space.

Addresses 0x000-0x1FF are reserved and left zeroed; programs are loaded
starting at 0x200. Every access is bounds-checked so that a misbehaving
program surfaces as a MemoryBoundsError instead of a silent clamp.
"""

from typing import Iterable, Optional

from .errors import MemoryBoundsError


MEMORY_SIZE = 4096
PROGRAM_START = 0x200


class Memory:
    """Fixed-size byte-addressable memory.

    Attributes:
        size: Number of addressable bytes
    """

    def __init__(self, size: int = MEMORY_SIZE):
        self.size = size
        self._data = bytearray(size)

    def __len__(self) -> int:
        return self.size

    def _check(self, address: int, length: int = 1) -> None:
        if address < 0 or length < 0 or address + length > self.size:
            raise MemoryBoundsError(address, length, self.size)

    def load(self, program: bytes) -> int:
        """Copy a program image into memory starting at 0x200.

        Bytes that would land past the end of memory are dropped.

        Args:
            program: Raw program image

        Returns:
            Number of bytes actually written
        """
        count = min(len(program), self.size - PROGRAM_START)
        self._data[PROGRAM_START:PROGRAM_START + count] = program[:count]
        return count

    def read(self, address: int) -> int:
        """Read one byte.

        Raises:
            MemoryBoundsError: If address is outside memory
        """
        self._check(address)
        return self._data[address]

    def write(self, address: int, value: int) -> None:
        """Write one byte (value is truncated to 8 bits).

        Raises:
            MemoryBoundsError: If address is outside memory
        """
        self._check(address)
        self._data[address] = value & 0xFF

    def read_word(self, address: int) -> int:
        """Read a big-endian 16-bit word from address and address+1."""
        self._check(address, 2)
        return (self._data[address] << 8) | self._data[address + 1]

    def read_block(self, address: int, length: int) -> bytes:
        """Read length bytes starting at address.

        The whole range is checked before anything is read.
        """
        self._check(address, length)
        return bytes(self._data[address:address + length])

    def write_block(self, address: int, data: Iterable[int]) -> None:
        """Write a sequence of bytes starting at address.

        The whole range is checked before any byte is written.
        """
        values = bytes(v & 0xFF for v in data)
        self._check(address, len(values))
        self._data[address:address + len(values)] = values

    def dump(self, start: int = 0, end: Optional[int] = None) -> bytes:
        """Return a copy of memory in [start, end)."""
        if end is None:
            end = self.size
        self._check(start, end - start)
        return bytes(self._data[start:end])

    def clear(self) -> None:
        """Zero the whole address space."""
        self._data[:] = bytes(self.size)
