"""CHIP-8 control flow instructions."""

import jax
import jax.lax
import jax.numpy as jnp
from chip8vm.state import EmulatorState
from chip8vm.decode import DecodedInstruction
from chip8vm.constants import NUM_KEYS, STACK_SIZE
from chip8vm.faults import Fault
from chip8vm.stack import push
from chip8vm.instructions.system import unknown_instruction


def execute_jump(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """1NNN - Jump to address NNN."""
    return state.replace(pc=jnp.asarray(instruction.nnn, dtype=jnp.uint16))


def execute_call(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """2NNN - Call subroutine at NNN."""
    def _call(state):
        state = state.replace(stack=push(state.stack, state.pc))
        return execute_jump(state, instruction)

    return jax.lax.cond(
        state.stack.pointer >= STACK_SIZE,
        lambda state: state.with_fault(Fault.STACK_OVERFLOW),
        _call,
        state
    )


def make_skip_instruction(condition_fn):
    """Factory for skip instructions."""
    def skip_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        condition = condition_fn(state, instruction)
        return jax.lax.cond(
            condition,
            lambda s: s.replace(pc=(s.pc + 2).astype(jnp.uint16)),
            lambda s: s,
            state
        )
    return skip_instruction


execute_skip_if_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == inst.nn
)

execute_skip_if_not_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != inst.nn
)

# 5XYN / 9XYN: the low nibble is not checked
execute_skip_if_equal_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == state.V[inst.y]
)

execute_skip_if_not_equal_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != state.V[inst.y]
)


def execute_jump_with_offset(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """BNNN - Jump to address NNN + V0.

    The target is not masked to 12 bits; an address past the end of memory
    is reported by the next fetch.
    """
    jump_address = instruction.nnn + state.V[0].astype(jnp.uint16)
    return state.replace(pc=jump_address.astype(jnp.uint16))


def _key_pressed(state: EmulatorState, instruction: DecodedInstruction) -> jnp.ndarray:
    key_index = state.V[instruction.x]
    return (key_index < NUM_KEYS) & state.keypad[key_index & 0xF]


execute_skip_if_key_pressed = make_skip_instruction(_key_pressed)

execute_skip_if_key_not_pressed = make_skip_instruction(
    lambda state, inst: ~_key_pressed(state, inst)
)


def execute_key_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """EX9E/EXA1 - Skip if key VX pressed/not pressed."""
    index = jnp.where(instruction.nn == 0x9E, 0, jnp.where(instruction.nn == 0xA1, 1, 2))
    return jax.lax.switch(
        index,
        [
            execute_skip_if_key_pressed,
            execute_skip_if_key_not_pressed,
            unknown_instruction,
        ],
        state, instruction
    )
