"""CHIP-8 byte-code interpreter core."""

from .constants import DISPLAY_H, DISPLAY_W, MEMORY_SIZE, PROGRAM_START, STACK_SIZE
from .cpu import Chip8CPU, StepResult
from .decoder import Instruction, Op, decode
from .errors import (
    Chip8Error, MachineTerminatedError, MemoryAccessError, ProgramTooLargeError,
    StackOverflowError,
)
from .state import MachineState

__all__ = [
    'Chip8CPU', 'StepResult', 'MachineState', 'Instruction', 'Op', 'decode',
    'Chip8Error', 'ProgramTooLargeError', 'StackOverflowError', 'MemoryAccessError',
    'MachineTerminatedError',
    'DISPLAY_W', 'DISPLAY_H', 'MEMORY_SIZE', 'PROGRAM_START', 'STACK_SIZE',
]
