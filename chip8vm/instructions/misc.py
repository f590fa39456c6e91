"""CHIP-8 miscellaneous instructions (Fxxx)."""

import jax
import jax.lax
import jax.numpy as jnp
from chip8vm.state import EmulatorState
from chip8vm.decode import DecodedInstruction
from chip8vm.constants import FONT_GLYPH_SIZE, FONT_START, MEMORY_SIZE, NUM_REGISTERS
from chip8vm.faults import Fault
from chip8vm.instructions.system import unknown_instruction


def execute_get_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX07 - Set VX to delay timer value."""
    return state.replace(V=state.V.at[instruction.x].set(state.delay_timer))


def execute_set_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX15 - Set delay timer to VX."""
    return state.replace(delay_timer=state.V[instruction.x])


def execute_set_sound_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX18 - Set sound timer to VX."""
    return state.replace(sound_timer=state.V[instruction.x])


def execute_add_to_index(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX1E - Add VX to I register. Past the end of memory, I is reset to 0."""
    new_i = state.I.astype(jnp.int32) + state.V[instruction.x].astype(jnp.int32)
    overflow = new_i >= MEMORY_SIZE
    return state.replace(
        I=jnp.where(overflow, 0, new_i).astype(jnp.uint16),
        fault=jnp.where(overflow, jnp.uint8(int(Fault.INDEX_OVERFLOW)), state.fault),
    )


def execute_wait_for_key(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX0A - Wait for key press.

    Does not block: without a pressed key the PC is rewound so the same
    instruction is fetched again on the next cycle.
    """
    def key_pressed_action(state):
        pressed_key = jnp.argmax(state.keypad).astype(jnp.uint8)
        return state.replace(V=state.V.at[instruction.x].set(pressed_key))

    def wait_action(state):
        return state.replace(pc=(state.pc - 2).astype(jnp.uint16))

    return jax.lax.cond(jnp.any(state.keypad), key_pressed_action, wait_action, state)


def execute_font_character(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX29 - Set I to location of sprite for digit VX."""
    digit = state.V[instruction.x].astype(jnp.uint16)
    out_of_range = digit >= 16
    font_address = FONT_START + digit * FONT_GLYPH_SIZE
    return state.replace(
        I=jnp.where(out_of_range, 0, font_address).astype(jnp.uint16),
        fault=jnp.where(out_of_range, jnp.uint8(int(Fault.FONT_OUT_OF_RANGE)), state.fault),
    )


def execute_bcd_conversion(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX33 - Store BCD representation of VX at I, I+1, I+2."""
    value = state.V[instruction.x]

    digits = jnp.array([
        value // 100,
        (value // 10) % 10,
        value % 10
    ], dtype=jnp.uint8)

    indices = jnp.arange(3) + state.I.astype(jnp.int32)
    new_memory = state.memory.at[indices].set(digits, mode="drop")
    return state.replace(memory=new_memory)


def _register_block_fits(state: EmulatorState, instruction: DecodedInstruction) -> jnp.ndarray:
    return state.I.astype(jnp.int32) + instruction.x < MEMORY_SIZE


def execute_store_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX55 - Store V0 through VX in memory starting at I. I is left unchanged."""
    def _store(state):
        register_mask = jnp.arange(NUM_REGISTERS) <= instruction.x
        base_indices = state.I.astype(jnp.int32) + jnp.arange(NUM_REGISTERS)
        current_memory_values = state.memory[base_indices]
        new_memory_values = jnp.where(register_mask, state.V, current_memory_values)
        return state.replace(memory=state.memory.at[base_indices].set(new_memory_values, mode="drop"))

    return jax.lax.cond(
        _register_block_fits(state, instruction),
        _store,
        lambda state: state.with_fault(Fault.REGISTER_TRANSFER_OUT_OF_RANGE),
        state
    )


def execute_load_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX65 - Load V0 through VX from memory starting at I. I is left unchanged."""
    def _load(state):
        register_mask = jnp.arange(NUM_REGISTERS) <= instruction.x
        base_indices = state.I.astype(jnp.int32) + jnp.arange(NUM_REGISTERS)
        memory_values = state.memory[base_indices]
        return state.replace(V=jnp.where(register_mask, memory_values, state.V))

    return jax.lax.cond(
        _register_block_fits(state, instruction),
        _load,
        lambda state: state.with_fault(Fault.REGISTER_TRANSFER_OUT_OF_RANGE),
        state
    )


def execute_misc_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """Dispatch misc instructions using arithmetic switch."""
    is_0x07 = instruction.nn == 0x07
    is_0x0A = instruction.nn == 0x0A
    is_0x15 = instruction.nn == 0x15
    is_0x18 = instruction.nn == 0x18
    is_0x1E = instruction.nn == 0x1E
    is_0x29 = instruction.nn == 0x29
    is_0x33 = instruction.nn == 0x33
    is_0x55 = instruction.nn == 0x55
    is_0x65 = instruction.nn == 0x65

    switch_index = (
        is_0x07 * 0 +
        is_0x0A * 1 +
        is_0x15 * 2 +
        is_0x18 * 3 +
        is_0x1E * 4 +
        is_0x29 * 5 +
        is_0x33 * 6 +
        is_0x55 * 7 +
        is_0x65 * 8 +
        (~(is_0x07 | is_0x0A | is_0x15 | is_0x18 | is_0x1E | is_0x29 | is_0x33 | is_0x55 | is_0x65)) * 9
    )

    return jax.lax.switch(
        switch_index,
        [
            execute_get_delay_timer,
            execute_wait_for_key,
            execute_set_delay_timer,
            execute_set_sound_timer,
            execute_add_to_index,
            execute_font_character,
            execute_bcd_conversion,
            execute_store_registers,
            execute_load_registers,
            unknown_instruction,
        ],
        state, instruction
    )
