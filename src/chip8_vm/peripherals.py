"""Render sinks and input sources the cycle driver talks to.

The interpreter core never draws or polls hardware itself. It hands the
display rows to a RenderSink and asks an InputSource for the 16 logical key
states once per cycle. Mapping physical keys to indices 0x0-0xF is up to
the caller.
"""

import sys
from typing import Iterable, List, Optional, Protocol, Sequence, TextIO

from .display import DISPLAY_WIDTH
from .state import NUM_KEYS


class RenderSink(Protocol):
    def render(self, rows: Sequence[int]) -> None:
        """Redraw the full 64x32 frame from 32 row integers."""


class InputSource(Protocol):
    def keys(self) -> Sequence[bool]:
        """Return 16 held/released flags indexed by hex key."""


class NullRenderer:
    """Render sink that discards frames, counting them."""

    def __init__(self):
        self.frames = 0

    def render(self, rows: Sequence[int]) -> None:
        self.frames += 1


class TerminalRenderer:
    """Render sink that redraws the frame in a terminal.

    Each lit pixel is two full-block glyphs so the 64x32 frame keeps a
    roughly square aspect. The cursor is moved home before each frame.
    """

    LIT = "██"
    UNLIT = "  "

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    def format_frame(self, rows: Sequence[int]) -> str:
        lines = []
        for row in rows:
            lines.append("".join(
                self.LIT if (row >> (DISPLAY_WIDTH - 1 - x)) & 1 else self.UNLIT
                for x in range(DISPLAY_WIDTH)
            ))
        return "\n".join(lines) + "\n"

    def render(self, rows: Sequence[int]) -> None:
        self.stream.write("\x1b[H" + self.format_frame(rows))
        self.stream.flush()


class StaticKeypad:
    """Input source backed by a set of held key indices."""

    def __init__(self, held: Iterable[int] = ()):
        self._held = set()
        for key in held:
            self.press(key)

    @staticmethod
    def _check(key: int) -> None:
        if not 0 <= key < NUM_KEYS:
            raise ValueError(f"Key index out of range: {key}")

    def press(self, key: int) -> None:
        self._check(key)
        self._held.add(key)

    def release(self, key: int) -> None:
        self._check(key)
        self._held.discard(key)

    def release_all(self) -> None:
        self._held.clear()

    def keys(self) -> List[bool]:
        return [index in self._held for index in range(NUM_KEYS)]
