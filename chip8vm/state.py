"""
CHIP-8 memory & register model.

Pure storage: the address space, register file, call stack, timers and
display bitmap, plus the handful of checks that keep them inside their
fixed bounds. All instruction behaviour lives in ``chip8vm.cpu``.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .constants import (
    DISPLAY_H, DISPLAY_W, FONT_START, FONTSET, MAX_PROGRAM_SIZE,
    MEMORY_SIZE, NUM_REGISTERS, PROGRAM_START, STACK_SIZE,
)
from .errors import MemoryAccessError, ProgramTooLargeError, StackOverflowError


@dataclass
class MachineState:
    """CHIP-8 machine state container"""
    # Memory
    memory: bytearray = field(default_factory=lambda: bytearray(MEMORY_SIZE))

    # Registers (bytearray keeps every value in 0..255)
    V: bytearray = field(default_factory=lambda: bytearray(NUM_REGISTERS))  # V0-VF
    I: int = 0              # Index register (12-bit)
    PC: int = PROGRAM_START # Program counter

    # Stack
    stack: List[int] = field(default_factory=list)
    stack_capacity: int = STACK_SIZE

    # Timers (60Hz, ticked by the driver)
    delay_timer: int = 0
    sound_timer: int = 0

    # Display (64x32), indexed [y, x]
    display: np.ndarray = field(default_factory=lambda: np.zeros((DISPLAY_H, DISPLAY_W), dtype=bool))

    # Wait for key state
    waiting_for_key: bool = False
    key_register: int = 0

    terminate: bool = False

    @classmethod
    def create(cls, program: bytes, stack_capacity: int = STACK_SIZE) -> 'MachineState':
        """Build a fresh machine with the font table and ``program`` loaded"""
        if len(program) > MAX_PROGRAM_SIZE:
            raise ProgramTooLargeError(len(program), MAX_PROGRAM_SIZE)
        if stack_capacity < 1:
            raise ValueError(f"stack capacity must be positive, got {stack_capacity}")

        state = cls(stack_capacity=stack_capacity)
        state.memory[FONT_START:FONT_START + len(FONTSET)] = FONTSET
        state.memory[PROGRAM_START:PROGRAM_START + len(program)] = program
        return state

    # ─── Stack ───

    def push(self, address: int):
        if len(self.stack) >= self.stack_capacity:
            # The return address sits just past the 2nnn that overflowed
            raise StackOverflowError(address - 2, self.stack_capacity)
        self.stack.append(address)

    def pop(self) -> Optional[int]:
        """Pop a return address; ``None`` means we are already at top level"""
        if not self.stack:
            return None
        return self.stack.pop()

    # ─── Memory ───

    def read_word(self, address: int) -> int:
        """Big-endian 16-bit read"""
        if address < 0 or address + 1 >= MEMORY_SIZE:
            raise MemoryAccessError(address)
        return (self.memory[address] << 8) | self.memory[address + 1]

    def clear_display(self):
        self.display.fill(False)

    # ─── Timers ───

    def tick_timers(self):
        """Decrement timers (call at 60Hz)"""
        if self.delay_timer > 0:
            self.delay_timer -= 1

        if self.sound_timer > 0:
            self.sound_timer -= 1

    @property
    def sound_active(self) -> bool:
        return self.sound_timer > 0

    # ─── Snapshots for collaborators ───

    def memory_copy(self) -> bytes:
        return bytes(self.memory)

    def registers_copy(self) -> bytes:
        return bytes(self.V)

    def framebuffer(self) -> np.ndarray:
        """Copy of the display that renderers may keep or mutate"""
        return self.display.copy()
