"""CHIP-8 stack operations.

Bounds are checked by the callers (CALL / RET) so that overflow and underflow
can be reported as faults before the stack is touched.
"""

import jax.numpy as jnp
from chip8vm.state import StackState


def push(stack: StackState, address: jnp.ndarray) -> StackState:
    """Push address onto stack. The full 16-bit return address is kept."""
    new_data = stack.data.at[stack.pointer].set(jnp.asarray(address, dtype=jnp.uint16))
    return stack.replace(data=new_data, pointer=(stack.pointer + 1).astype(jnp.uint8))


def pop(stack: StackState) -> tuple[StackState, jnp.ndarray]:
    """Pop address from stack."""
    new_pointer = (stack.pointer - 1).astype(jnp.uint8)
    popped_address = stack.data[new_pointer]
    new_data = stack.data.at[new_pointer].set(0)
    return stack.replace(data=new_data, pointer=new_pointer), popped_address
