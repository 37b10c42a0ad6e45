"""Exceptions raised by the CHIP-8 core."""


class Chip8Error(Exception):
    """Base class for every fault the interpreter reports to its driver"""


class ProgramTooLargeError(Chip8Error):
    """Program image does not fit between 0x200 and the end of memory"""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Program is {size} bytes, at most {limit} fit in memory")
        self.size = size
        self.limit = limit


class StackOverflowError(Chip8Error):
    """Subroutine call nested deeper than the stack capacity"""

    def __init__(self, pc: int, capacity: int):
        super().__init__(f"Stack overflow calling from ${pc:03X} (capacity {capacity})")
        self.pc = pc
        self.capacity = capacity


class MemoryAccessError(Chip8Error):
    """Instruction fetch outside the address space"""

    def __init__(self, address: int):
        super().__init__(f"Illegal instruction fetch at ${address:04X}")
        self.address = address


class MachineTerminatedError(Chip8Error):
    """The machine was stepped after the program returned from top level"""
