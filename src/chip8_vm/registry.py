"""OpcodeRegistry: executable primitives for every CHIP-8 operation key.

This module implements the registry pattern for CPU operations: each
operation key produced by the Decoder maps to one primitive that mutates the
interpreter's Chip8State in place. The registry is frozen once built, so the
set of executable operations is fixed for the lifetime of the process.

Registry Keys:
    OP_CLS, OP_RET: 00E0 clear display, 00EE return from subroutine
    OP_JP, OP_CALL, OP_JP_V0: 1NNN, 2NNN, BNNN control flow
    OP_SE_IMM, OP_SNE_IMM, OP_SE_REG, OP_SNE_REG: 3XNN, 4XNN, 5XY0, 9XY0 skips
    OP_LD_IMM, OP_ADD_IMM: 6XNN, 7XNN immediate loads
    OP_LD_REG .. OP_SHL: 8XY0-8XYE register ALU
    OP_LD_I: ANNN
    OP_DRW: DXYN sprite draw with collision detection
    OP_SKP, OP_SKNP: EX9E, EXA1 key skips
    OP_LD_VX_DT .. OP_LD_VX_MEM: FX__ timers, index and block transfer
    OP_UNKNOWN: unmatched word, executed as a no-op

Every primitive has the signature (Chip8State, Instruction) -> None. The PC
has already been advanced past the instruction when a primitive runs, so a
skip adds another 2 and a jump overwrites it.
"""

import logging
from typing import Callable, Dict, Optional

from .decode import Instruction
from .display import DISPLAY_HEIGHT, DISPLAY_WIDTH
from .state import Chip8State, NUM_KEYS


logger = logging.getLogger(__name__)

Primitive = Callable[[Chip8State, Instruction], None]

# Operation keys that modify the display buffer
DISPLAY_KEYS = frozenset({"OP_CLS", "OP_DRW"})


class OpcodeRegistry:
    """Frozen registry of CHIP-8 primitives.

    Attributes:
        _primitives: Dictionary mapping operation keys to handler functions
        _frozen: Whether the registry is locked against modifications
    """

    def __init__(self):
        """Initialize registry with all CHIP-8 primitives."""
        self._primitives: Dict[str, Primitive] = {}
        self._frozen = False
        self._register_all_primitives()
        self.freeze()

    def _register_all_primitives(self) -> None:
        # Display and subroutines
        self.register("OP_CLS", self._op_cls)
        self.register("OP_RET", self._op_ret)

        # Control flow
        self.register("OP_JP", self._op_jp)
        self.register("OP_CALL", self._op_call)
        self.register("OP_JP_V0", self._op_jp_v0)

        # Conditional skips
        self.register("OP_SE_IMM", self._op_se_imm)
        self.register("OP_SNE_IMM", self._op_sne_imm)
        self.register("OP_SE_REG", self._op_se_reg)
        self.register("OP_SNE_REG", self._op_sne_reg)

        # Immediate loads
        self.register("OP_LD_IMM", self._op_ld_imm)
        self.register("OP_ADD_IMM", self._op_add_imm)

        # Register ALU
        self.register("OP_LD_REG", self._op_ld_reg)
        self.register("OP_OR", self._op_or)
        self.register("OP_AND", self._op_and)
        self.register("OP_XOR", self._op_xor)
        self.register("OP_ADD_REG", self._op_add_reg)
        self.register("OP_SUB", self._op_sub)
        self.register("OP_SHR", self._op_shr)
        self.register("OP_SUBN", self._op_subn)
        self.register("OP_SHL", self._op_shl)

        # Index register and drawing
        self.register("OP_LD_I", self._op_ld_i)
        self.register("OP_DRW", self._op_drw)

        # Keypad
        self.register("OP_SKP", self._op_skp)
        self.register("OP_SKNP", self._op_sknp)
        self.register("OP_LD_VX_K", self._op_ld_vx_k)

        # Timers, index arithmetic, memory transfer
        self.register("OP_LD_VX_DT", self._op_ld_vx_dt)
        self.register("OP_LD_DT_VX", self._op_ld_dt_vx)
        self.register("OP_LD_ST_VX", self._op_ld_st_vx)
        self.register("OP_ADD_I", self._op_add_i)
        self.register("OP_LD_BCD", self._op_ld_bcd)
        self.register("OP_LD_MEM_VX", self._op_ld_mem_vx)
        self.register("OP_LD_VX_MEM", self._op_ld_vx_mem)

        self.register("OP_UNKNOWN", self._op_unknown)

    def register(self, key: str, handler: Primitive) -> None:
        """Register a primitive operation.

        Raises:
            RuntimeError: If registry is frozen
            ValueError: If key already registered
        """
        if self._frozen:
            raise RuntimeError("Cannot register primitives: registry is frozen")
        if key in self._primitives:
            raise ValueError(f"Primitive already registered: {key}")
        self._primitives[key] = handler

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        return self._frozen

    def get_valid_keys(self) -> set:
        return set(self._primitives.keys())

    def execute(self, state: Chip8State, key: str, inst: Instruction) -> None:
        """Execute a registered primitive against state.

        Args:
            state: Machine state, mutated in place
            key: Operation key
            inst: Decoded instruction supplying operand fields

        Raises:
            KeyError: If key not in registry
            Chip8Error: Memory or stack violations raised by the primitive
        """
        if key not in self._primitives:
            raise KeyError(f"Unknown operation key: {key}")

        self._primitives[key](state, inst)
        state.cycle_count += 1

    # =========================================================================
    # Display and Subroutines
    # =========================================================================

    def _op_cls(self, state: Chip8State, inst: Instruction) -> None:
        """00E0 - Clear the display."""
        state.display.clear()

    def _op_ret(self, state: Chip8State, inst: Instruction) -> None:
        """00EE - Return from subroutine.

        Raises:
            StackUnderflowError: If no frame has been pushed
        """
        state.pc = state.pop()

    # =========================================================================
    # Control Flow
    # =========================================================================

    def _op_jp(self, state: Chip8State, inst: Instruction) -> None:
        """1NNN - Jump to NNN."""
        state.pc = inst.nnn

    def _op_call(self, state: Chip8State, inst: Instruction) -> None:
        """2NNN - Call subroutine at NNN.

        The pushed return address is the already-advanced PC, i.e. the
        instruction after the call.

        Raises:
            StackOverflowError: If all 16 frames are in use
        """
        state.push(state.pc)
        state.pc = inst.nnn

    def _op_jp_v0(self, state: Chip8State, inst: Instruction) -> None:
        """BNNN - Jump to V0 + NNN."""
        state.pc = state.v[0] + inst.nnn

    # =========================================================================
    # Conditional Skips
    # =========================================================================

    def _op_se_imm(self, state: Chip8State, inst: Instruction) -> None:
        """3XNN - Skip next instruction if VX == NN."""
        if state.v[inst.x] == inst.nn:
            state.advance_pc()

    def _op_sne_imm(self, state: Chip8State, inst: Instruction) -> None:
        """4XNN - Skip next instruction if VX != NN."""
        if state.v[inst.x] != inst.nn:
            state.advance_pc()

    def _op_se_reg(self, state: Chip8State, inst: Instruction) -> None:
        """5XY0 - Skip next instruction if VX == VY."""
        if state.v[inst.x] == state.v[inst.y]:
            state.advance_pc()

    def _op_sne_reg(self, state: Chip8State, inst: Instruction) -> None:
        """9XY0 - Skip next instruction if VX != VY."""
        if state.v[inst.x] != state.v[inst.y]:
            state.advance_pc()

    # =========================================================================
    # Immediate Loads
    # =========================================================================

    def _op_ld_imm(self, state: Chip8State, inst: Instruction) -> None:
        """6XNN - VX := NN."""
        state.v[inst.x] = inst.nn

    def _op_add_imm(self, state: Chip8State, inst: Instruction) -> None:
        """7XNN - VX := VX + NN (mod 256). VF is not touched."""
        state.v[inst.x] = (state.v[inst.x] + inst.nn) & 0xFF

    # =========================================================================
    # Register ALU (8XY_)
    #
    # Flag-producing ops compute the flag from the operands first and write
    # VF last, so that with X = F the flag wins over the result.
    # =========================================================================

    def _op_ld_reg(self, state: Chip8State, inst: Instruction) -> None:
        """8XY0 - VX := VY."""
        state.v[inst.x] = state.v[inst.y]

    def _op_or(self, state: Chip8State, inst: Instruction) -> None:
        """8XY1 - VX := VX | VY."""
        state.v[inst.x] |= state.v[inst.y]

    def _op_and(self, state: Chip8State, inst: Instruction) -> None:
        """8XY2 - VX := VX & VY."""
        state.v[inst.x] &= state.v[inst.y]

    def _op_xor(self, state: Chip8State, inst: Instruction) -> None:
        """8XY3 - VX := VX ^ VY."""
        state.v[inst.x] ^= state.v[inst.y]

    def _op_add_reg(self, state: Chip8State, inst: Instruction) -> None:
        """8XY4 - VX := VX + VY, VF := carry."""
        total = state.v[inst.x] + state.v[inst.y]
        state.v[inst.x] = total & 0xFF
        state.v[0xF] = 1 if total > 0xFF else 0

    def _op_sub(self, state: Chip8State, inst: Instruction) -> None:
        """8XY5 - VX := VX - VY, VF := 1 if VX >= VY (no borrow)."""
        vx, vy = state.v[inst.x], state.v[inst.y]
        state.v[inst.x] = (vx - vy) & 0xFF
        state.v[0xF] = 1 if vx >= vy else 0

    def _op_shr(self, state: Chip8State, inst: Instruction) -> None:
        """8XY6 - VX := VX >> 1, VF := bit shifted out."""
        vx = state.v[inst.x]
        state.v[inst.x] = vx >> 1
        state.v[0xF] = vx & 0x1

    def _op_subn(self, state: Chip8State, inst: Instruction) -> None:
        """8XY7 - VX := VY - VX, VF := 1 if VY >= VX (no borrow)."""
        vx, vy = state.v[inst.x], state.v[inst.y]
        state.v[inst.x] = (vy - vx) & 0xFF
        state.v[0xF] = 1 if vy >= vx else 0

    def _op_shl(self, state: Chip8State, inst: Instruction) -> None:
        """8XYE - VX := VX << 1 (mod 256), VF := bit shifted out."""
        vx = state.v[inst.x]
        state.v[inst.x] = (vx << 1) & 0xFF
        state.v[0xF] = (vx >> 7) & 0x1

    # =========================================================================
    # Index Register and Drawing
    # =========================================================================

    def _op_ld_i(self, state: Chip8State, inst: Instruction) -> None:
        """ANNN - I := NNN."""
        state.i = inst.nnn

    def _op_drw(self, state: Chip8State, inst: Instruction) -> None:
        """DXYN - Draw an N-row sprite from memory[I] at (VX, VY).

        VF is cleared first and set to 1 if any lit pixel is turned off.
        Only rows that land on screen are read from memory.

        Raises:
            MemoryBoundsError: If the visible sprite rows extend past memory
        """
        x = state.v[inst.x] % DISPLAY_WIDTH
        y = state.v[inst.y] % DISPLAY_HEIGHT
        state.v[0xF] = 0

        visible_rows = min(inst.n, DISPLAY_HEIGHT - y)
        if visible_rows == 0:
            return
        sprite = state.memory.read_block(state.i, visible_rows)
        if state.display.draw_sprite(x, y, sprite):
            state.v[0xF] = 1

    # =========================================================================
    # Keypad
    # =========================================================================

    def _op_skp(self, state: Chip8State, inst: Instruction) -> None:
        """EX9E - Skip next instruction if key VX is held."""
        if state.keys[state.v[inst.x] % NUM_KEYS]:
            state.advance_pc()

    def _op_sknp(self, state: Chip8State, inst: Instruction) -> None:
        """EXA1 - Skip next instruction if key VX is released."""
        if not state.keys[state.v[inst.x] % NUM_KEYS]:
            state.advance_pc()

    def _op_ld_vx_k(self, state: Chip8State, inst: Instruction) -> None:
        """FX0A - Wait for a key press and store its index in VX.

        Keys are scanned in ascending order and the first held one wins. With
        no key held the PC is rewound so this instruction runs again next
        cycle, and the state is flagged as awaiting a key.
        """
        for index, held in enumerate(state.keys):
            if held:
                state.v[inst.x] = index
                state.awaiting_key = False
                return
        state.awaiting_key = True
        state.advance_pc(-2)

    # =========================================================================
    # Timers, Index Arithmetic and Memory Transfer (FX__)
    # =========================================================================

    def _op_ld_vx_dt(self, state: Chip8State, inst: Instruction) -> None:
        """FX07 - VX := delay timer."""
        state.v[inst.x] = state.delay_timer

    def _op_ld_dt_vx(self, state: Chip8State, inst: Instruction) -> None:
        """FX15 - delay timer := VX."""
        state.delay_timer = state.v[inst.x]

    def _op_ld_st_vx(self, state: Chip8State, inst: Instruction) -> None:
        """FX18 - sound timer := VX."""
        state.sound_timer = state.v[inst.x]

    def _op_add_i(self, state: Chip8State, inst: Instruction) -> None:
        """FX1E - I := I + VX. No flag is set."""
        state.i = (state.i + state.v[inst.x]) & 0xFFFF

    def _op_ld_bcd(self, state: Chip8State, inst: Instruction) -> None:
        """FX33 - Store hundreds, tens and units of VX at I, I+1, I+2."""
        value = state.v[inst.x]
        digits = [value // 100, (value // 10) % 10, value % 10]
        state.memory.write_block(state.i, digits)

    def _op_ld_mem_vx(self, state: Chip8State, inst: Instruction) -> None:
        """FX55 - Store V0..VX inclusive to memory starting at I."""
        state.memory.write_block(state.i, state.v[:inst.x + 1])

    def _op_ld_vx_mem(self, state: Chip8State, inst: Instruction) -> None:
        """FX65 - Load V0..VX inclusive from memory starting at I."""
        block = state.memory.read_block(state.i, inst.x + 1)
        state.v[:inst.x + 1] = list(block)

    # =========================================================================
    # Unmatched
    # =========================================================================

    def _op_unknown(self, state: Chip8State, inst: Instruction) -> None:
        """Unmatched instruction word - no operation."""
        logger.debug("Ignoring unknown opcode %04X at PC=0x%03X", inst.opcode, state.pc - 2)


# Singleton registry instance
_registry: Optional[OpcodeRegistry] = None


def get_registry() -> OpcodeRegistry:
    """Get the singleton opcode registry instance."""
    global _registry
    if _registry is None:
        _registry = OpcodeRegistry()
    return _registry
