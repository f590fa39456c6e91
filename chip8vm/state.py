"""CHIP-8 emulator state structures and host-side accessors."""

from typing import Iterable, Tuple

import jax
import jax.numpy as jnp
from flax.struct import PyTreeNode, field

from chip8vm.constants import (
    FONT_DATA, FONT_START, MEMORY_SIZE, NUM_KEYS, NUM_REGISTERS, PROGRAM_START,
    SCREEN_HEIGHT, SCREEN_WIDTH, STACK_SIZE,
)
from chip8vm.faults import Fault
from chip8vm.logging import get_logger

logger = get_logger("chip8vm.state")


class StackState(PyTreeNode):
    """Stack state for subroutine calls."""
    data: jnp.ndarray = field(default_factory=lambda: jnp.zeros(STACK_SIZE, dtype=jnp.uint16))
    pointer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))


class EmulatorState(PyTreeNode):
    """Main CHIP-8 emulator state.

    Every field is a JAX array so the whole state can flow through
    ``jax.jit``, ``jax.lax.scan`` and ``jax.vmap``. Engine functions never
    mutate a state; they return a new one built with ``replace``.
    """
    rng: jax.Array
    memory: jnp.ndarray = field(default_factory=lambda: jnp.zeros(MEMORY_SIZE, dtype=jnp.uint8))
    pc: jnp.ndarray = field(default_factory=lambda: jnp.asarray(PROGRAM_START, dtype=jnp.uint16))
    display: jnp.ndarray = field(default_factory=lambda: jnp.zeros((SCREEN_WIDTH, SCREEN_HEIGHT), dtype=jnp.bool_))
    stack: StackState = field(default_factory=StackState)
    delay_timer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    sound_timer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    keypad: jnp.ndarray = field(default_factory=lambda: jnp.zeros(NUM_KEYS, dtype=jnp.bool_))
    V: jnp.ndarray = field(default_factory=lambda: jnp.zeros(NUM_REGISTERS, dtype=jnp.uint8))
    I: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint16))
    rom_size: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint16))
    draw_flag: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.bool_))
    fault: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    opcode: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint16))

    def with_fault(self, fault: Fault) -> "EmulatorState":
        """Record ``fault`` as the outcome of the current cycle."""
        return self.replace(fault=jnp.asarray(int(fault), dtype=jnp.uint8))


def create_state(rng: jax.Array = None) -> EmulatorState:
    """Create initial emulator state with font data loaded."""
    if rng is None:
        rng = jax.random.PRNGKey(0)
    state = EmulatorState(rng)
    font = jnp.asarray(FONT_DATA, dtype=jnp.uint8)
    return state.replace(memory=state.memory.at[FONT_START:FONT_START + len(FONT_DATA)].set(font))


def read_pixel(state: EmulatorState, x: int, y: int) -> int:
    """Return the framebuffer pixel at (x, y), or 0 when outside the screen."""
    if not (0 <= x < SCREEN_WIDTH and 0 <= y < SCREEN_HEIGHT):
        logger.error(f"OutOfRange: screen coordinates out of range! x: {x}, y: {y}")
        return 0
    return int(state.display[x, y])


def set_key(state: EmulatorState, key_index: int, pressed: bool) -> EmulatorState:
    """Set one key's pressed flag. Invalid indices are logged and ignored."""
    if not 0 <= key_index < NUM_KEYS:
        logger.error(f"OutOfRange: key index out of range! Index: {key_index}")
        return state
    return state.replace(keypad=state.keypad.at[key_index].set(bool(pressed)))


def set_keys(state: EmulatorState, pressed: Iterable[bool]) -> EmulatorState:
    """Replace the whole keypad with one pressed/released flag per key."""
    pressed = [bool(p) for p in pressed]
    if len(pressed) != NUM_KEYS:
        raise ValueError(f"Expected {NUM_KEYS} key states, got {len(pressed)}")
    return state.replace(keypad=jnp.asarray(pressed, dtype=jnp.bool_))


def consume_redraw(state: EmulatorState) -> Tuple[EmulatorState, bool]:
    """Return whether a redraw is pending and clear the flag."""
    pending = bool(state.draw_flag)
    if pending:
        state = state.replace(draw_flag=jnp.zeros((), dtype=jnp.bool_))
    return state, pending


def play_sound(state: EmulatorState) -> bool:
    """True while the sound timer is nonzero."""
    return int(state.sound_timer) > 0


def rom_overrun(state: EmulatorState) -> bool:
    """True once the program counter has left the loaded ROM."""
    return int(state.pc) >= PROGRAM_START + int(state.rom_size)
