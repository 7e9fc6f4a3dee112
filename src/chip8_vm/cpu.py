"""Chip8VM: the cycle driver for the CHIP-8 interpreter.

This module implements the full execution pipeline:
    MEMORY → FETCH → DECODE → KEY → REGISTRY → EXECUTE → TIMERS → RENDER → PACE

Lifecycle:
    IDLE --load_program()--> LOADED --start()--> RUNNING --+--> HALTED
                                                           +--> FAULTED

A run halts gracefully when the PC would fetch past the end of memory. Any
memory or stack violation faults the machine and is re-raised to the caller
as an ExecutionFault carrying the opcode and PC.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, Dict, List, Optional

from .config import Chip8Config
from .decode import Decoder, decode, disassemble
from .errors import Chip8Error, ExecutionFault
from .memory import PROGRAM_START
from .peripherals import InputSource, NullRenderer, RenderSink, StaticKeypad
from .registry import DISPLAY_KEYS, OpcodeRegistry, get_registry
from .state import Chip8State, create_initial_state


logger = logging.getLogger(__name__)


class MachineStatus(Enum):
    IDLE = "idle"
    LOADED = "loaded"
    RUNNING = "running"
    HALTED = "halted"
    FAULTED = "faulted"


@dataclass
class ExecutionTraceEntry:
    """Single entry in the execution trace.

    Captures one fetch-decode-execute cycle for debugging.

    Attributes:
        cycle: Cycle number (0-indexed)
        pc: Address the instruction was fetched from
        opcode: Raw instruction word, None when the fetch ran off memory
        key: Operation key the word decoded to
        mnemonic: Disassembled instruction text
        pre_state: Register snapshot before execution
        post_state: Register snapshot after execution
        error: Error message if execution failed
    """
    cycle: int
    pc: int
    opcode: Optional[int]
    key: str
    mnemonic: str
    pre_state: dict
    post_state: dict
    error: Optional[str] = None


class Chip8VM:
    """CHIP-8 interpreter: owns one machine state and drives its cycles.

    Attributes:
        config: Run-time settings
        decoder: Decoder resolving words to operation keys
        registry: OpcodeRegistry with the executable primitives
        renderer: Sink receiving the display rows
        keypad: Source of the 16 key states, polled every cycle
        state: Current machine state (None until a program is loaded)
        status: Lifecycle status
        trace: Most recent execution trace entries
    """

    def __init__(
        self,
        config: Optional[Chip8Config] = None,
        renderer: Optional[RenderSink] = None,
        keypad: Optional[InputSource] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        """Initialize the interpreter.

        Args:
            config: Run-time settings (defaults to Chip8Config())
            renderer: Render sink (defaults to a NullRenderer)
            keypad: Input source (defaults to a StaticKeypad with no keys held)
            clock: Monotonic time source in seconds, used for pacing and
                the independent timer clock
        """
        self.config = (config or Chip8Config()).validate()
        self.decoder = Decoder(strict=self.config.strict_decode)
        self.registry: OpcodeRegistry = get_registry()
        self.renderer = renderer if renderer is not None else NullRenderer()
        self.keypad = keypad if keypad is not None else StaticKeypad()
        self.state: Optional[Chip8State] = None
        self.status = MachineStatus.IDLE
        self.trace: Deque[ExecutionTraceEntry] = deque(maxlen=self.config.trace_limit)
        self.loaded_bytes = 0
        self._clock = clock
        self._stop_event = threading.Event()
        self._timer_last = 0.0
        self._timer_debt = 0.0
        self._clock_paused = False

    def load_program(self, program: bytes) -> int:
        """Load a program image at 0x200 and reset the machine.

        Bytes beyond the end of memory are silently dropped.

        Returns:
            Number of bytes placed in memory
        """
        self.state = create_initial_state(program)
        self.loaded_bytes = min(len(program), len(self.state.memory) - PROGRAM_START)
        if self.loaded_bytes < len(program):
            logger.warning(
                "Program truncated: %d of %d bytes loaded", self.loaded_bytes, len(program)
            )
        self.status = MachineStatus.LOADED
        self.trace.clear()
        self._stop_event.clear()
        logger.debug("Loaded %d bytes at 0x200", self.loaded_bytes)
        return self.loaded_bytes

    def start(self) -> None:
        """Move a loaded machine into the running state.

        Raises:
            RuntimeError: If no program is loaded or the machine has stopped
        """
        if self.status == MachineStatus.RUNNING:
            return
        if self.status != MachineStatus.LOADED:
            raise RuntimeError(f"Cannot start machine in state {self.status.value}")
        self.status = MachineStatus.RUNNING
        self._stop_event.clear()
        self._resume_clock()

    def stop(self) -> None:
        """Ask a running loop to return after the current cycle.

        Interrupts a pacing sleep. The machine stays RUNNING and a later
        run() resumes it.
        """
        self._stop_event.set()

    def step(self) -> ExecutionTraceEntry:
        """Execute a single instruction cycle.

        Performs: FETCH → DECODE → EXECUTE → TIMERS → RENDER. A LOADED
        machine is started first.

        Returns:
            ExecutionTraceEntry with full cycle information

        Raises:
            RuntimeError: If no program loaded or machine halted/faulted
            ExecutionFault: On a memory, stack or strict decode violation
        """
        if self.state is None:
            raise RuntimeError("No program loaded")
        if self.status == MachineStatus.LOADED:
            self.start()
        if self.status != MachineStatus.RUNNING:
            raise RuntimeError(f"Machine is {self.status.value}")
        if self._clock_paused:
            self._resume_clock()

        state = self.state
        pc = state.pc

        # FETCH: stop cleanly once the word at PC would run off memory
        if pc + 1 >= len(state.memory):
            state.halted = True
            self.status = MachineStatus.HALTED
            logger.info("Halted: PC=0x%03X past end of memory", pc)
            snapshot = state.snapshot()
            entry = ExecutionTraceEntry(
                cycle=state.cycle_count,
                pc=pc,
                opcode=None,
                key="HALT",
                mnemonic="<END OF MEMORY>",
                pre_state=snapshot,
                post_state=snapshot,
            )
            self.trace.append(entry)
            return entry

        state.set_keys(self.keypad.keys())
        pre_state = state.snapshot()
        word = state.memory.read_word(pc)
        state.advance_pc()

        # DECODE + EXECUTE
        key = "OP_UNKNOWN"
        try:
            result = self.decoder.decode(word)
            key = result.key
            self.registry.execute(state, key, result.instruction)
        except Chip8Error as err:
            state.halted = True
            self.status = MachineStatus.FAULTED
            logger.error("Fault at PC=0x%03X executing %04X: %s", pc, word, err)
            self.trace.append(ExecutionTraceEntry(
                cycle=state.cycle_count,
                pc=pc,
                opcode=word,
                key=key,
                mnemonic=disassemble(decode(word), key),
                pre_state=pre_state,
                post_state=state.snapshot(),
                error=str(err),
            ))
            raise ExecutionFault(word, pc, err) from err

        self._update_timers()

        if key in DISPLAY_KEYS or not self.config.render_on_change:
            self.renderer.render(state.display.snapshot())

        entry = ExecutionTraceEntry(
            cycle=state.cycle_count - 1,
            pc=pc,
            opcode=word,
            key=key,
            mnemonic=disassemble(result.instruction, key),
            pre_state=pre_state,
            post_state=state.snapshot(),
        )
        self.trace.append(entry)
        return entry

    def _resume_clock(self) -> None:
        # Time spent outside a run does not count toward timer ticks
        self._timer_last = self._clock()
        self._timer_debt = 0.0
        self._clock_paused = False

    def _update_timers(self) -> None:
        if self.config.timer_hz is None:
            self.state.tick_timers()
            return

        # Independent timer clock: tick once per elapsed 1/timer_hz seconds
        now = self._clock()
        self._timer_debt += (now - self._timer_last) * self.config.timer_hz
        self._timer_last = now
        ticks = int(self._timer_debt)
        self._timer_debt -= ticks
        for _ in range(min(ticks, 0xFF)):
            self.state.tick_timers()

    def _pace(self, cycle_start: float) -> None:
        period = self.config.cycle_period
        if period <= 0:
            return
        remaining = period - (self._clock() - cycle_start)
        if remaining > 0:
            self._stop_event.wait(remaining)

    def run(self, max_cycles: Optional[int] = None) -> List[ExecutionTraceEntry]:
        """Run until the machine halts, stop() is called, or a cycle limit.

        Args:
            max_cycles: Cycles to execute in this call (uses config default
                if None; no limit if both are None)

        Returns:
            Retained execution trace

        Raises:
            RuntimeError: If no program loaded
            ExecutionFault: On a fatal execution error
        """
        if self.state is None:
            raise RuntimeError("No program loaded")
        if self.status == MachineStatus.LOADED:
            self.start()
        else:
            self._stop_event.clear()
            self._resume_clock()

        limit = max_cycles if max_cycles is not None else self.config.max_cycles
        executed = 0

        while self.status == MachineStatus.RUNNING and not self._stop_event.is_set():
            if limit is not None and executed >= limit:
                break
            cycle_start = self._clock()
            self.step()
            executed += 1
            if self.status == MachineStatus.RUNNING:
                self._pace(cycle_start)

        self._clock_paused = True
        return list(self.trace)

    def get_register(self, reg) -> int:
        """Get value of a register.

        Args:
            reg: Register index (0-15) or name ("V0"-"VF")
        """
        if self.state is None:
            raise RuntimeError("No program loaded")
        return self.state.get_register(reg)

    def dump_registers(self) -> Dict[str, int]:
        if self.state is None:
            raise RuntimeError("No program loaded")
        return self.state.dump_registers()

    def get_pc(self) -> int:
        if self.state is None:
            raise RuntimeError("No program loaded")
        return self.state.pc

    def get_display(self) -> List[int]:
        """Copy of the 32 display rows."""
        if self.state is None:
            raise RuntimeError("No program loaded")
        return self.state.display.snapshot()

    def get_cycle_count(self) -> int:
        if self.state is None:
            return 0
        return self.state.cycle_count

    def is_halted(self) -> bool:
        """True once the machine has halted or faulted (or has no program)."""
        if self.state is None:
            return True
        return self.state.halted

    def get_trace(self) -> List[ExecutionTraceEntry]:
        return list(self.trace)

    def print_trace(self) -> None:
        """Print execution trace in human-readable format."""
        print("=" * 70)
        print("CHIP-8 EXECUTION TRACE")
        print("=" * 70)

        for entry in self.trace:
            status = "OK" if not entry.error else f"ERROR: {entry.error}"
            opcode = f"{entry.opcode:04X}" if entry.opcode is not None else "----"
            print(f"\n[Cycle {entry.cycle}] PC=0x{entry.pc:03X} {opcode} {status}")
            print(f"  Instruction: {entry.mnemonic}")
            print(f"  Decoded Key: {entry.key}")

            # Show register changes
            pre_regs = entry.pre_state.get("registers", {})
            post_regs = entry.post_state.get("registers", {})
            changes = []
            for reg in sorted(pre_regs.keys()):
                if pre_regs[reg] != post_regs.get(reg, pre_regs[reg]):
                    changes.append(f"{reg}: {pre_regs[reg]} → {post_regs[reg]}")
            for name in ("i", "sp", "delay_timer", "sound_timer"):
                if entry.pre_state.get(name) != entry.post_state.get(name):
                    changes.append(f"{name}: {entry.pre_state[name]} → {entry.post_state[name]}")
            if changes:
                print(f"  Changes: {', '.join(changes)}")

        print("\n" + "=" * 70)
        print("FINAL STATE")
        print("=" * 70)
        if self.state:
            print(f"  Registers: {self.dump_registers()}")
            print(f"  I: 0x{self.state.i:03X}  SP: {self.state.sp}")
            print(f"  PC: 0x{self.get_pc():03X}")
            print(f"  Cycles: {self.get_cycle_count()}")
            print(f"  Status: {self.status.value}")

    def get_summary(self) -> Dict:
        """Get execution summary.

        Returns:
            Dictionary with execution statistics and final state
        """
        return {
            "status": self.status.value,
            "cycles": self.get_cycle_count(),
            "halted": self.is_halted(),
            "registers": self.dump_registers() if self.state else {},
            "i": self.state.i if self.state else 0,
            "pc": self.get_pc() if self.state else 0,
            "delay_timer": self.state.delay_timer if self.state else 0,
            "sound_timer": self.state.sound_timer if self.state else 0,
            "lit_pixels": self.state.display.lit_count() if self.state else 0,
            "trace_length": len(self.trace),
            "errors": [e.error for e in self.trace if e.error],
        }
