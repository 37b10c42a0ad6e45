"""
CHIP-8 CPU core: dispatch table, instruction semantics and the execution cycle.

One call to ``Chip8CPU.step`` executes exactly one instruction. The caller
owns the outer loop: it interleaves steps with ``tick_timers`` at 60Hz,
renders ``display`` and stops once ``terminated`` is set.
"""

import logging
import random
from enum import Enum
from typing import Callable, Dict, List, Optional

import numpy as np

from .constants import (
    ADDRESS_MASK, BYTE_MASK, DISPLAY_H, DISPLAY_W, FLAG_REGISTER, FONT_GLYPH_SIZE,
    FONT_START, MEMORY_SIZE, NUM_KEYS, SPRITE_WIDTH, STACK_SIZE,
)
from .decoder import Instruction, Op, decode
from .errors import MachineTerminatedError
from .state import MachineState

logger = logging.getLogger(__name__)

KeyCheck = Callable[[int], bool]
KeyWait = Callable[[], int]
DrawCallback = Callable[[np.ndarray], None]

_HANDLERS: Dict[Op, Callable[['Chip8CPU', Instruction], None]] = {}


def handles(*ops: Op):
    """Register the decorated method as the handler for ``ops``"""
    def register(fn):
        for op in ops:
            _HANDLERS[op] = fn
        return fn
    return register


class StepResult(Enum):
    EXECUTED = 'executed'
    WAITING_FOR_KEY = 'waiting_for_key'
    TERMINATED = 'terminated'


class Chip8CPU:
    """Complete CHIP-8 CPU emulator"""

    def __init__(self, program: bytes,
                 is_key_down: Optional[KeyCheck] = None,
                 wait_for_key: Optional[KeyWait] = None,
                 *,
                 rng: Optional[random.Random] = None,
                 seed: Optional[int] = None,
                 stack_capacity: int = STACK_SIZE,
                 on_draw: Optional[DrawCallback] = None):
        """
        Args:
            program: ROM image, loaded at 0x200
            is_key_down: key-check collaborator; defaults to the built-in
                keypad driven through ``key_down``/``key_up``
            wait_for_key: blocking key-read collaborator for Fx0A. Without
                one, Fx0A suspends the machine until ``step(key=...)``
            rng: random source for Cxkk, or ``seed`` to build one
            stack_capacity: maximum subroutine nesting depth
            on_draw: called with a copy of the display once at power-on,
                then after every 00E0 and Dxyn
        """
        self.state = MachineState.create(program, stack_capacity=stack_capacity)
        self.keys: List[bool] = [False] * NUM_KEYS
        self.is_key_down = is_key_down or self._builtin_key_down
        self.wait_for_key = wait_for_key
        self.rng = rng if rng is not None else random.Random(seed)
        self.on_draw = on_draw
        self.draw_flag = False
        if on_draw is not None:
            # Renderers start from the blank power-on frame
            self._notify_draw()

    # ─── Collaborator-facing views ───

    @property
    def terminated(self) -> bool:
        return self.state.terminate

    @property
    def waiting_for_key(self) -> bool:
        return self.state.waiting_for_key

    @property
    def display(self) -> np.ndarray:
        return self.state.display

    @property
    def sound_active(self) -> bool:
        return self.state.sound_active

    def tick_timers(self):
        """Decrement timers (call at 60Hz)"""
        self.state.tick_timers()

    def key_down(self, key: int):
        """Handle key press"""
        if 0 <= key < NUM_KEYS:
            self.keys[key] = True

    def key_up(self, key: int):
        """Handle key release"""
        if 0 <= key < NUM_KEYS:
            self.keys[key] = False

    def _builtin_key_down(self, key: int) -> bool:
        return self.keys[key]

    # ─── Execution cycle ───

    def step(self, key: Optional[int] = None) -> StepResult:
        """
        Execute one instruction.

        While the machine is suspended on Fx0A, a step consumes ``key`` (or
        the blocking collaborator's answer) instead of fetching.

        Raises:
            MachineTerminatedError: the program already returned from top level
            StackOverflowError: 2nnn beyond the stack capacity
            MemoryAccessError: PC ran off the end of memory
        """
        s = self.state
        if s.terminate:
            raise MachineTerminatedError("Tried to continue executing a terminated machine")

        if s.waiting_for_key:
            return self._resume_key_wait(key)

        word = s.read_word(s.PC)
        s.PC += 2
        self.execute(word)

        if s.terminate:
            return StepResult.TERMINATED
        if s.waiting_for_key:
            if self.wait_for_key is not None:
                self._store_key(self.wait_for_key())
                return StepResult.EXECUTED
            return StepResult.WAITING_FOR_KEY
        return StepResult.EXECUTED

    def execute(self, word: int):
        """Decode and execute a single opcode"""
        instr = decode(word)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("PC=$%03X %s", (self.state.PC - 2) & 0xFFFF, instr)
        _HANDLERS[instr.op](self, instr)

    def run(self, max_steps: int) -> bool:
        """
        Execute up to ``max_steps`` instructions, stopping early on
        termination or a key wait. Returns True if the machine can be
        stepped again.
        """
        for _ in range(max_steps):
            if self.step() is not StepResult.EXECUTED:
                break
        return not self.state.terminate

    def _resume_key_wait(self, key: Optional[int]) -> StepResult:
        if key is None and self.wait_for_key is not None:
            key = self.wait_for_key()
        if key is None:
            return StepResult.WAITING_FOR_KEY
        self._store_key(key)
        return StepResult.EXECUTED

    def _store_key(self, key: int):
        s = self.state
        s.V[s.key_register] = key & 0xF
        s.waiting_for_key = False
        logger.debug("Key %X stored in V%X, resuming", key & 0xF, s.key_register)

    def _notify_draw(self):
        self.draw_flag = True
        if self.on_draw is not None:
            self.on_draw(self.state.framebuffer())

    def _skip_if(self, condition: bool):
        if condition:
            self.state.PC += 2

    # ═══════════════════════════════════════════════════════════════════════
    # INSTRUCTION SEMANTICS
    # ═══════════════════════════════════════════════════════════════════════

    # ─── 0x0XXX ───

    @handles(Op.CLS)
    def _cls(self, instr: Instruction):
        self.state.clear_display()
        self._notify_draw()

    @handles(Op.RET)
    def _ret(self, instr: Instruction):
        address = self.state.pop()
        if address is None:
            # Returning from the top level routine ends the program
            logger.debug("Return with empty stack, terminating")
            self.state.terminate = True
        else:
            self.state.PC = address

    @handles(Op.SYS, Op.UNKNOWN)
    def _ignore(self, instr: Instruction):
        logger.debug("Ignoring opcode $%04X", instr.word)

    # ─── 1NNN: JP addr ───

    @handles(Op.JP)
    def _jp(self, instr: Instruction):
        self.state.PC = instr.nnn

    # ─── 2NNN: CALL addr ───

    @handles(Op.CALL)
    def _call(self, instr: Instruction):
        self.state.push(self.state.PC)
        self.state.PC = instr.nnn

    # ─── 3XKK / 4XKK / 5XY0 / 9XY0: skips ───

    @handles(Op.SE_BYTE)
    def _se_byte(self, instr: Instruction):
        self._skip_if(self.state.V[instr.x] == instr.kk)

    @handles(Op.SNE_BYTE)
    def _sne_byte(self, instr: Instruction):
        self._skip_if(self.state.V[instr.x] != instr.kk)

    @handles(Op.SE_REG)
    def _se_reg(self, instr: Instruction):
        V = self.state.V
        self._skip_if(V[instr.x] == V[instr.y])

    @handles(Op.SNE_REG)
    def _sne_reg(self, instr: Instruction):
        V = self.state.V
        self._skip_if(V[instr.x] != V[instr.y])

    # ─── 6XKK / 7XKK ───

    @handles(Op.LD_BYTE)
    def _ld_byte(self, instr: Instruction):
        self.state.V[instr.x] = instr.kk

    @handles(Op.ADD_BYTE)
    def _add_byte(self, instr: Instruction):
        V = self.state.V
        V[instr.x] = (V[instr.x] + instr.kk) & BYTE_MASK

    # ─── 8XYZ: ALU operations ───

    @handles(Op.LD_REG)
    def _ld_reg(self, instr: Instruction):
        V = self.state.V
        V[instr.x] = V[instr.y]

    @handles(Op.OR)
    def _or(self, instr: Instruction):
        V = self.state.V
        V[instr.x] |= V[instr.y]

    @handles(Op.AND)
    def _and(self, instr: Instruction):
        V = self.state.V
        V[instr.x] &= V[instr.y]

    @handles(Op.XOR)
    def _xor(self, instr: Instruction):
        V = self.state.V
        V[instr.x] ^= V[instr.y]

    # Flag-setting ops write VF last so it wins when x == F

    @handles(Op.ADD_REG)
    def _add_reg(self, instr: Instruction):
        V = self.state.V
        result = V[instr.x] + V[instr.y]
        V[instr.x] = result & BYTE_MASK
        V[FLAG_REGISTER] = 1 if result > BYTE_MASK else 0

    @handles(Op.SUB)
    def _sub(self, instr: Instruction):
        V = self.state.V
        vx, vy = V[instr.x], V[instr.y]
        V[instr.x] = (vx - vy) & BYTE_MASK
        V[FLAG_REGISTER] = 1 if vx > vy else 0

    @handles(Op.SHR)
    def _shr(self, instr: Instruction):
        V = self.state.V
        vx = V[instr.x]
        V[instr.x] = vx >> 1
        V[FLAG_REGISTER] = vx & 0x1

    @handles(Op.SUBN)
    def _subn(self, instr: Instruction):
        V = self.state.V
        vx, vy = V[instr.x], V[instr.y]
        V[instr.x] = (vy - vx) & BYTE_MASK
        V[FLAG_REGISTER] = 1 if vy > vx else 0

    @handles(Op.SHL)
    def _shl(self, instr: Instruction):
        V = self.state.V
        vx = V[instr.x]
        V[instr.x] = (vx << 1) & BYTE_MASK
        V[FLAG_REGISTER] = (vx >> 7) & 0x1

    # ─── ANNN / BNNN / CXKK ───

    @handles(Op.LD_I)
    def _ld_i(self, instr: Instruction):
        self.state.I = instr.nnn

    @handles(Op.JP_V0)
    def _jp_v0(self, instr: Instruction):
        self.state.PC = (self.state.V[0] + instr.nnn) & ADDRESS_MASK

    @handles(Op.RND)
    def _rnd(self, instr: Instruction):
        self.state.V[instr.x] = self.rng.randint(0, 255) & instr.kk

    # ─── DXYN: DRW Vx, Vy, nibble ───

    @handles(Op.DRW)
    def _drw(self, instr: Instruction):
        """XOR an n-row sprite from memory[I] onto the display, wrapping both axes"""
        s = self.state
        V = s.V
        height = instr.n

        rows = np.array([s.memory[(s.I + r) % MEMORY_SIZE] for r in range(height)], dtype=np.uint8)
        sprite = np.unpackbits(rows).reshape(height, SPRITE_WIDTH).astype(bool)

        ys = (V[instr.y] + np.arange(height)) % DISPLAY_H
        xs = (V[instr.x] + np.arange(SPRITE_WIDTH)) % DISPLAY_W
        region = np.ix_(ys, xs)

        collision = bool(np.any(s.display[region] & sprite))
        s.display[region] ^= sprite
        V[FLAG_REGISTER] = 1 if collision else 0

        self._notify_draw()

    # ─── EX9E / EXA1: key skips ───

    @handles(Op.SKP)
    def _skp(self, instr: Instruction):
        self._skip_if(bool(self.is_key_down(self.state.V[instr.x] & 0xF)))

    @handles(Op.SKNP)
    def _sknp(self, instr: Instruction):
        self._skip_if(not self.is_key_down(self.state.V[instr.x] & 0xF))

    # ─── FX07-FX65: timers, keys, memory ───

    @handles(Op.LD_VX_DT)
    def _ld_vx_dt(self, instr: Instruction):
        self.state.V[instr.x] = self.state.delay_timer

    @handles(Op.LD_VX_K)
    def _ld_vx_k(self, instr: Instruction):
        # Resolved by step(): blocking collaborator or the next step(key=...)
        self.state.waiting_for_key = True
        self.state.key_register = instr.x
        logger.debug("Waiting for key into V%X", instr.x)

    @handles(Op.LD_DT_VX)
    def _ld_dt_vx(self, instr: Instruction):
        self.state.delay_timer = self.state.V[instr.x]

    @handles(Op.LD_ST_VX)
    def _ld_st_vx(self, instr: Instruction):
        self.state.sound_timer = self.state.V[instr.x]

    @handles(Op.ADD_I)
    def _add_i(self, instr: Instruction):
        self.state.I = (self.state.I + self.state.V[instr.x]) & ADDRESS_MASK

    @handles(Op.LD_F)
    def _ld_f(self, instr: Instruction):
        self.state.I = FONT_START + (self.state.V[instr.x] & 0xF) * FONT_GLYPH_SIZE

    @handles(Op.LD_B)
    def _ld_b(self, instr: Instruction):
        s = self.state
        value = s.V[instr.x]
        for offset, digit in enumerate((value // 100, (value // 10) % 10, value % 10)):
            s.memory[(s.I + offset) % MEMORY_SIZE] = digit

    @handles(Op.LD_MEM_VX)
    def _ld_mem_vx(self, instr: Instruction):
        s = self.state
        for i in range(instr.x + 1):
            s.memory[(s.I + i) % MEMORY_SIZE] = s.V[i]

    @handles(Op.LD_VX_MEM)
    def _ld_vx_mem(self, instr: Instruction):
        s = self.state
        for i in range(instr.x + 1):
            s.V[i] = s.memory[(s.I + i) % MEMORY_SIZE]


_missing = set(Op) - set(_HANDLERS)
if _missing:
    raise RuntimeError(f"No handler for {sorted(op.name for op in _missing)}")
