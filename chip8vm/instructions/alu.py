"""CHIP-8 ALU operations (8xxx).

Each operation maps the whole register file to a new one. Flag-setting
operations write VF first and then the result, re-reading the registers after
the flag write, so that X or Y equal to F behave like the sequential original.
"""

import jax
import jax.lax
import jax.numpy as jnp
from chip8vm.state import EmulatorState
from chip8vm.decode import DecodedInstruction
from chip8vm.constants import FLAG_REGISTER
from chip8vm.faults import Fault


def _flag(condition: jnp.ndarray) -> jnp.ndarray:
    return jnp.asarray(condition, dtype=jnp.uint8)


def alu_set(V: jnp.ndarray, x: int, y: int) -> jnp.ndarray:
    """8XY0 - Set: VX = VY."""
    return V.at[x].set(V[y])


def alu_or(V: jnp.ndarray, x: int, y: int) -> jnp.ndarray:
    """8XY1 - Binary OR: VX |= VY."""
    return V.at[x].set(V[x] | V[y])


def alu_and(V: jnp.ndarray, x: int, y: int) -> jnp.ndarray:
    """8XY2 - Binary AND: VX &= VY."""
    return V.at[x].set(V[x] & V[y])


def alu_xor(V: jnp.ndarray, x: int, y: int) -> jnp.ndarray:
    """8XY3 - Logical XOR: VX ^= VY."""
    return V.at[x].set(V[x] ^ V[y])


def alu_add(V: jnp.ndarray, x: int, y: int) -> jnp.ndarray:
    """8XY4 - Add: VX += VY, VF = carry."""
    total = V[x].astype(jnp.uint16) + V[y].astype(jnp.uint16)
    V = V.at[FLAG_REGISTER].set(_flag(total > 0xFF))
    return V.at[x].set((total & 0xFF).astype(jnp.uint8))


def alu_sub_xy(V: jnp.ndarray, x: int, y: int) -> jnp.ndarray:
    """8XY5 - Subtract: VX -= VY, VF = 1 when VX > VY."""
    V = V.at[FLAG_REGISTER].set(_flag(V[x] > V[y]))
    return V.at[x].set(V[x] - V[y])


def alu_shift_right(V: jnp.ndarray, x: int, y: int) -> jnp.ndarray:
    """8XY6 - Shift right: VX >>= 1, VF = shifted out bit. VY is ignored."""
    V = V.at[FLAG_REGISTER].set(V[x] & 1)
    return V.at[x].set(V[x] >> 1)


def alu_sub_yx(V: jnp.ndarray, x: int, y: int) -> jnp.ndarray:
    """8XY7 - Subtract: VX = VY - VX, VF = 1 when VY > VX."""
    V = V.at[FLAG_REGISTER].set(_flag(V[y] > V[x]))
    return V.at[x].set(V[y] - V[x])


def alu_shift_left(V: jnp.ndarray, x: int, y: int) -> jnp.ndarray:
    """8XYE - Shift left: VX <<= 1, VF = shifted out bit. VY is ignored."""
    V = V.at[FLAG_REGISTER].set(V[x] >> 7)
    return V.at[x].set(V[x] << 1)


ALU_OPERATIONS = [
    alu_set, alu_or, alu_and, alu_xor, alu_add,
    alu_sub_xy, alu_shift_right, alu_sub_yx, alu_shift_left,
]


def execute_alu_operation(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """8XYN - ALU operations dispatcher."""
    valid_ops = jnp.array([1, 1, 1, 1, 1, 1, 1, 1, 0, 0, 0, 0, 0, 0, 1, 0], dtype=bool)

    def _execute(state):
        # Map only valid operations: 0,1,2,3,4,5,6,7,14 -> 0,1,2,3,4,5,6,7,8
        index = jnp.where(instruction.n == 14, 8, instruction.n)
        V = jax.lax.switch(index, ALU_OPERATIONS, state.V, instruction.x, instruction.y)
        return state.replace(V=V)

    return jax.lax.cond(
        valid_ops[instruction.n],
        _execute,
        lambda state: state.with_fault(Fault.UNKNOWN_OPCODE),
        state
    )
