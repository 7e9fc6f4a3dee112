"""ROM helpers: read a program image from disk and hexdump it."""

from pathlib import Path
from typing import Union

from .memory import PROGRAM_START


BYTES_PER_LINE = 16


def read_rom(path: Union[str, Path]) -> bytes:
    """Read a raw CHIP-8 program image.

    Raises:
        FileNotFoundError: If path does not exist
    """
    return Path(path).read_bytes()


def hexdump(data: bytes, base: int = PROGRAM_START) -> str:
    """Format a program image as rows of 16-bit opcodes.

    Each line shows the load address of its first byte followed by up to 16
    bytes grouped into big-endian words. A trailing odd byte is shown alone.

    Example:
        >>> hexdump(bytes([0x00, 0xE0, 0x60, 0x0A]))
        '0200: 00E0 600A'
    """
    lines = []
    for start in range(0, len(data), BYTES_PER_LINE):
        chunk = data[start:start + BYTES_PER_LINE]
        words = [chunk[i:i + 2].hex().upper() for i in range(0, len(chunk), 2)]
        lines.append(f"{base + start:04X}: {' '.join(words)}")
    return "\n".join(lines)
