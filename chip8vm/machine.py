"""Host-facing CHIP-8 interpreter object.

``Chip8`` owns one ``EmulatorState`` and exposes the host contract: load a
ROM, run cycles, feed key states, and read back pixels, the redraw flag and
the sound flag. Every cycle's fault is logged and returned to the caller.
"""

from typing import Iterable, Optional

import jax
import numpy as np

from chip8vm import state as state_lib
from chip8vm.emulator import load_rom, load_rom_bytes, run_cycles, step
from chip8vm.faults import FAULT_MESSAGES, Fault
from chip8vm.logging import ConsoleLogger, get_logger
from chip8vm.state import EmulatorState, create_state

_jit_step = jax.jit(step)


class Chip8:
    """A single CHIP-8 machine driven one cycle at a time."""

    def __init__(self, seed: int = 0, logger: Optional[ConsoleLogger] = None):
        self.logger = logger or get_logger("chip8vm.machine")
        self.state: EmulatorState = create_state(jax.random.PRNGKey(seed))

    def load_rom(self, filename: str):
        """Load a ROM file. Nothing but the program region is reset."""
        self.state = load_rom(self.state, filename)

    def load_rom_bytes(self, rom_data: bytes):
        self.state = load_rom_bytes(self.state, rom_data)

    def cycle(self) -> Fault:
        """Run one fetch/decode/execute/tick cycle and report its outcome."""
        fetch_pc = int(self.state.pc)
        self.state = _jit_step(self.state)
        fault = Fault(int(self.state.fault))
        if fault != Fault.NONE:
            self._report(fault, f"opcode: 0x{int(self.state.opcode):04X}, PC: 0x{fetch_pc:03X}")
        return fault

    def run(self, n: int) -> list[Fault]:
        """Run ``n`` cycles in one compiled loop and report every fault."""
        self.state, faults = run_cycles(self.state, n)
        faults = [Fault(int(code)) for code in np.asarray(faults)]
        for index, fault in enumerate(faults):
            if fault != Fault.NONE:
                self._report(fault, f"cycle {index + 1} of {n}")
        return faults

    def _report(self, fault: Fault, context: str):
        message = f"{fault.name}: {FAULT_MESSAGES[fault]} ({context})"
        if fault.is_fatal:
            self.logger.error(message)
        else:
            self.logger.warning(message)

    def pixel(self, x: int, y: int) -> int:
        return state_lib.read_pixel(self.state, x, y)

    def set_key(self, key_index: int, pressed: bool):
        self.state = state_lib.set_key(self.state, key_index, pressed)

    def set_keys(self, pressed: Iterable[bool]):
        self.state = state_lib.set_keys(self.state, pressed)

    def consume_redraw(self) -> bool:
        """True if the screen changed since the last call."""
        self.state, pending = state_lib.consume_redraw(self.state)
        return pending

    @property
    def play_sound(self) -> bool:
        return state_lib.play_sound(self.state)

    @property
    def rom_overrun(self) -> bool:
        return state_lib.rom_overrun(self.state)

    @property
    def display(self) -> np.ndarray:
        """Read-only copy of the framebuffer, shape (64, 32), indexed [x, y]."""
        return np.asarray(self.state.display)
