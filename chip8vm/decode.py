"""CHIP-8 instruction decoding."""

import jax.numpy as jnp
from chex import dataclass


@dataclass(frozen=True)
class DecodedInstruction:
    """Decoded CHIP-8 instruction with extracted operands."""
    raw: jnp.ndarray
    opcode: jnp.ndarray  # First nibble
    x: jnp.ndarray       # Second nibble (VX register)
    y: jnp.ndarray       # Third nibble (VY register)
    n: jnp.ndarray       # Fourth nibble (4-bit immediate)
    nn: jnp.ndarray      # Last byte (8-bit immediate)
    nnn: jnp.ndarray     # Last 12 bits (12-bit address)


def decode(instruction) -> DecodedInstruction:
    """Decode 16-bit instruction into components."""
    instruction = jnp.asarray(instruction, dtype=jnp.uint16)
    return DecodedInstruction(
        raw=instruction,
        opcode=((instruction & 0xF000) >> 12).astype(jnp.int32),
        x=((instruction & 0x0F00) >> 8).astype(jnp.int32),
        y=((instruction & 0x00F0) >> 4).astype(jnp.int32),
        n=(instruction & 0x000F).astype(jnp.int32),
        nn=(instruction & 0x00FF).astype(jnp.uint8),
        nnn=instruction & 0x0FFF
    )
