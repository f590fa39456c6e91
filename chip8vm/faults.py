"""Fault codes reported by the interpreter and host-boundary exceptions.

The engine runs under ``jax.jit`` and cannot raise, so every abnormal outcome
of a cycle is written to ``EmulatorState.fault`` as one of the codes below.
Codes at or above ``FATAL_THRESHOLD`` abort the rest of the cycle (including
the timer tick); lower codes are recovered locally with a safe default.
"""

from enum import IntEnum

from chip8vm.constants import MAX_ROM_SIZE

FATAL_THRESHOLD = 0x10


class Fault(IntEnum):
    """Outcome of the last executed cycle."""
    NONE = 0x00
    UNKNOWN_OPCODE = 0x01
    FONT_OUT_OF_RANGE = 0x02
    INDEX_OVERFLOW = 0x03
    FETCH_OUT_OF_RANGE = 0x10
    STACK_OVERFLOW = 0x11
    STACK_UNDERFLOW = 0x12
    REGISTER_TRANSFER_OUT_OF_RANGE = 0x13

    @property
    def is_fatal(self) -> bool:
        return self >= FATAL_THRESHOLD


FAULT_MESSAGES = {
    Fault.UNKNOWN_OPCODE: "Unknown instruction",
    Fault.FONT_OUT_OF_RANGE: "Font digit out of range, I reset to 0",
    Fault.INDEX_OVERFLOW: "I exceeded memory range, I reset to 0",
    Fault.FETCH_OUT_OF_RANGE: "PC out of memory range",
    Fault.STACK_OVERFLOW: "Stack overflow",
    Fault.STACK_UNDERFLOW: "Stack underflow, return with an empty stack",
    Fault.REGISTER_TRANSFER_OUT_OF_RANGE: "I + x exceeded memory range",
}


class RomTooLarge(ValueError):
    """ROM does not fit between the program start and the end of memory."""

    def __init__(self, size: int):
        self.size = size
        super().__init__(f"ROM is too large ({size} bytes). Maximum size: {MAX_ROM_SIZE} bytes.")
