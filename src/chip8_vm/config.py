"""Chip8Config: run-time settings for the interpreter.

Settings:
    hz: Instruction cycles per second. None or 0 runs unthrottled.
    timer_hz: None keeps the single shared cadence, where both timers tick
        once per instruction cycle. A positive value clocks the timers
        independently at that rate from wall-clock time.
    strict_decode: Raise DecodeError on unmatched words instead of
        executing them as no-ops.
    trace_limit: Number of execution trace entries to keep (0 disables).
    max_cycles: Stop after this many cycles. None means no limit.
    render_on_change: Only call the render sink after opcodes that
        modified the display. False renders every cycle.
"""

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional


DEFAULT_HZ = 60


@dataclass
class Chip8Config:
    hz: Optional[float] = DEFAULT_HZ
    timer_hz: Optional[float] = None
    strict_decode: bool = False
    trace_limit: int = 1000
    max_cycles: Optional[int] = None
    render_on_change: bool = True

    def validate(self) -> "Chip8Config":
        """Check settings, returning self.

        Raises:
            ValueError: On a negative rate or limit
        """
        if self.hz is not None and self.hz < 0:
            raise ValueError(f"hz must be >= 0, got {self.hz}")
        if self.timer_hz is not None and self.timer_hz <= 0:
            raise ValueError(f"timer_hz must be > 0, got {self.timer_hz}")
        if self.trace_limit < 0:
            raise ValueError(f"trace_limit must be >= 0, got {self.trace_limit}")
        if self.max_cycles is not None and self.max_cycles < 0:
            raise ValueError(f"max_cycles must be >= 0, got {self.max_cycles}")
        return self

    @property
    def cycle_period(self) -> float:
        """Target seconds per cycle; 0.0 when unthrottled."""
        if not self.hz:
            return 0.0
        return 1.0 / self.hz

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "Chip8Config":
        """Build a config from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in known}).validate()
