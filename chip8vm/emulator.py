"""Main CHIP-8 emulator execution engine."""

from functools import partial
from typing import Union

import jax
import jax.lax
import jax.numpy as jnp
from chip8vm.state import EmulatorState
from chip8vm.decode import decode
from chip8vm.constants import MAX_ROM_SIZE, MEMORY_SIZE, PROGRAM_START
from chip8vm.faults import FATAL_THRESHOLD, Fault, RomTooLarge
from chip8vm.logging import get_logger
from chip8vm.instructions.system import execute_system_instruction
from chip8vm.instructions.control_flow import (
    execute_jump, execute_call, execute_skip_if_equal_immediate,
    execute_skip_if_not_equal_immediate, execute_skip_if_equal_register,
    execute_skip_if_not_equal_register, execute_jump_with_offset,
    execute_key_instruction
)
from chip8vm.instructions.alu import execute_alu_operation
from chip8vm.instructions.memory import execute_set, execute_add, execute_set_index, execute_random
from chip8vm.instructions.display import execute_display
from chip8vm.instructions.misc import execute_misc_instruction

logger = get_logger("chip8vm.emulator")


def execute(state: EmulatorState, instruction: Union[int, jnp.ndarray]) -> EmulatorState:
    """Execute single CHIP-8 instruction.

    The program counter is expected to already point past the instruction.
    """
    decoded_instruction = decode(instruction)

    return jax.lax.switch(
        decoded_instruction.opcode,
        [
            execute_system_instruction,
            execute_jump,
            execute_call,
            execute_skip_if_equal_immediate,
            execute_skip_if_not_equal_immediate,
            execute_skip_if_equal_register,
            execute_set,
            execute_add,
            execute_alu_operation,
            execute_skip_if_not_equal_register,
            execute_set_index,
            execute_jump_with_offset,
            execute_random,
            execute_display,
            execute_key_instruction,
            execute_misc_instruction,
        ],
        state, decoded_instruction
    )


def _pack_u16(high: jnp.uint8, low: jnp.uint8) -> jnp.uint16:
    """Pack two bytes into uint16."""
    return (high.astype(jnp.uint16) << 8) | low.astype(jnp.uint16)


def fetch(state: EmulatorState) -> tuple[EmulatorState, jnp.ndarray]:
    """Fetch next instruction from memory and advance the PC by 2.

    Reading past the last byte of memory reports ``FETCH_OUT_OF_RANGE`` and
    leaves the PC untouched.
    """
    def _fetch(state):
        pc = state.pc.astype(jnp.int32)
        instruction = _pack_u16(state.memory[pc], state.memory[pc + 1])
        return state.replace(pc=(state.pc + 2).astype(jnp.uint16), opcode=instruction), instruction

    def _out_of_range(state):
        return state.with_fault(Fault.FETCH_OUT_OF_RANGE), jnp.zeros((), dtype=jnp.uint16)

    return jax.lax.cond(state.pc >= MEMORY_SIZE - 1, _out_of_range, _fetch, state)


def tick_timers(state: EmulatorState) -> EmulatorState:
    """Decrement delay and sound timers by one, stopping at zero."""
    return state.replace(
        delay_timer=jnp.where(state.delay_timer > 0, state.delay_timer - 1, 0).astype(jnp.uint8),
        sound_timer=jnp.where(state.sound_timer > 0, state.sound_timer - 1, 0).astype(jnp.uint8),
    )


def is_fatal(state: EmulatorState) -> jnp.ndarray:
    return state.fault >= FATAL_THRESHOLD


def step(state: EmulatorState) -> EmulatorState:
    """Run one cycle: fetch, decode, execute, then tick the timers.

    ``state.fault`` holds the outcome. A fatal fault stops the cycle where it
    happened, so neither the rest of the instruction nor the timer tick is
    applied.
    """
    state = state.with_fault(Fault.NONE)
    state, instruction = fetch(state)
    state = jax.lax.cond(
        is_fatal(state),
        lambda s: s,
        lambda s: execute(s, instruction),
        state
    )
    return jax.lax.cond(is_fatal(state), lambda s: s, tick_timers, state)


def _run_cycle(state, _):
    state = step(state)
    return state, state.fault


@partial(jax.jit, static_argnums=1)
def run_cycles(state: EmulatorState, n: int) -> tuple[EmulatorState, jnp.ndarray]:
    """Run ``n`` cycles, returning the final state and each cycle's fault code."""
    return jax.lax.scan(_run_cycle, state, length=n)


def load_rom_bytes(state: EmulatorState, rom_data: bytes) -> EmulatorState:
    """Copy ROM bytes into memory starting at 0x200 and record their size.

    Registers, timers, stack and display are left as they are.
    """
    if len(rom_data) > MAX_ROM_SIZE:
        raise RomTooLarge(len(rom_data))
    rom_array = jnp.asarray(list(rom_data), dtype=jnp.uint8)
    new_memory = state.memory.at[PROGRAM_START:PROGRAM_START + len(rom_data)].set(rom_array)
    return state.replace(memory=new_memory, rom_size=jnp.asarray(len(rom_data), dtype=jnp.uint16))


def load_rom(state: EmulatorState, filename: str) -> EmulatorState:
    """Load ROM data into CHIP-8 memory starting at 0x200."""
    with open(filename, 'rb') as f:
        rom_data = f.read()
    try:
        state = load_rom_bytes(state, rom_data)
    except RomTooLarge as e:
        logger.error(f"{filename}: {e}")
        raise
    logger.info(f"ROM loaded: {len(rom_data)} bytes.")
    return state
