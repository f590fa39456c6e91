"""Test configuration and fixtures for CHIP-8 emulator tests."""

import pytest
import jax.numpy as jnp
from chip8vm import create_state
from chip8vm.logging import set_log_level


@pytest.fixture(autouse=True)
def reset_log_level():
    """Keep log level changes from leaking between tests."""
    yield
    set_log_level("INFO")


@pytest.fixture
def fresh_state():
    """Provide a fresh emulator state for each test."""
    return create_state()


def setup_sprite_in_memory(state, address, sprite_bytes):
    """Helper to put sprite data in memory."""
    return state.replace(
        memory=state.memory.at[address:address+len(sprite_bytes)].set(
            jnp.array(sprite_bytes, dtype=jnp.uint8)
        )
    )


def assemble(*instructions):
    """Encode 16-bit instruction words as big-endian ROM bytes."""
    return b"".join(instruction.to_bytes(2, "big") for instruction in instructions)


def set_registers(state, **registers):
    """Helper to set registers by name, e.g. set_registers(state, V1=0x10, VF=1)."""
    V = state.V
    for name, value in registers.items():
        V = V.at[int(name[1:], 16)].set(value)
    return state.replace(V=V)
