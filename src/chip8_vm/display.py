"""DisplayBuffer: the 64x32 monochrome frame buffer.

The buffer is stored as 32 row integers of 64 bits each. Bit (63 - x) of a
row is column x, so the leftmost pixel is the most significant bit and a
sprite byte can be XORed into a row with a single shift.
"""

from typing import List


DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32

_ROW_MASK = (1 << DISPLAY_WIDTH) - 1


class DisplayBuffer:
    """One-bit-per-pixel frame buffer.

    Attributes:
        rows: List of DISPLAY_HEIGHT integers, one per scanline
    """

    def __init__(self):
        self.rows: List[int] = [0] * DISPLAY_HEIGHT

    def clear(self) -> None:
        """Turn every pixel off."""
        for y in range(DISPLAY_HEIGHT):
            self.rows[y] = 0

    def get_pixel(self, x: int, y: int) -> bool:
        return bool((self.rows[y] >> (DISPLAY_WIDTH - 1 - x)) & 1)

    def draw_sprite(self, x: int, y: int, sprite: bytes) -> bool:
        """XOR a sprite onto the buffer.

        The origin wraps around the screen; pixels that run off the right or
        bottom edge are clipped.

        Args:
            x: Origin column (wrapped modulo 64)
            y: Origin row (wrapped modulo 32)
            sprite: One byte per sprite row, MSB is the leftmost pixel

        Returns:
            True if any lit pixel was turned off (collision)
        """
        x %= DISPLAY_WIDTH
        y %= DISPLAY_HEIGHT
        collision = False

        for offset, sprite_byte in enumerate(sprite):
            row = y + offset
            if row >= DISPLAY_HEIGHT:
                break

            # Place the byte at column x; bits shifted past column 63 fall off.
            shift = DISPLAY_WIDTH - 8 - x
            if shift >= 0:
                mask = sprite_byte << shift
            else:
                mask = sprite_byte >> -shift
            mask &= _ROW_MASK

            if self.rows[row] & mask:
                collision = True
            self.rows[row] ^= mask

        return collision

    def snapshot(self) -> List[int]:
        """Return a copy of the row list."""
        return list(self.rows)

    def to_matrix(self) -> List[List[bool]]:
        """Expand the buffer into a 32x64 matrix of booleans."""
        return [
            [bool((row >> (DISPLAY_WIDTH - 1 - x)) & 1) for x in range(DISPLAY_WIDTH)]
            for row in self.rows
        ]

    def lit_count(self) -> int:
        """Number of pixels currently on."""
        return sum(bin(row).count("1") for row in self.rows)

    def __str__(self) -> str:
        return "\n".join(
            "".join("#" if lit else "." for lit in line) for line in self.to_matrix()
        )
