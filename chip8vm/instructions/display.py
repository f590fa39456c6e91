"""CHIP-8 display operations."""

import jax.numpy as jnp
from chip8vm.state import EmulatorState
from chip8vm.decode import DecodedInstruction
from chip8vm.constants import FLAG_REGISTER, SCREEN_WIDTH, SCREEN_HEIGHT, SPRITE_WIDTH

# Pre-computed coordinate grids for display operations
xx, yy = jnp.meshgrid(jnp.arange(SCREEN_WIDTH), jnp.arange(SCREEN_HEIGHT), indexing='ij')


def sprite_mask(memory: jnp.ndarray, index: jnp.ndarray, x: jnp.ndarray, y: jnp.ndarray,
                height: jnp.ndarray) -> jnp.ndarray:
    """Boolean screen mask of the sprite pixels drawn at (x, y).

    Columns wrap around the right edge; rows past the bottom edge are clipped.
    """
    sprite_x = x.astype(jnp.int32) % SCREEN_WIDTH
    sprite_y = y.astype(jnp.int32) % SCREEN_HEIGHT

    col_offset = (xx - sprite_x) % SCREEN_WIDTH
    row_offset = yy - sprite_y
    in_sprite = (col_offset < SPRITE_WIDTH) & (row_offset >= 0) & (row_offset < height)

    sprite_bytes = memory[index.astype(jnp.int32) + jnp.clip(row_offset, 0, 15)]
    bits = (sprite_bytes >> (SPRITE_WIDTH - 1 - jnp.clip(col_offset, 0, SPRITE_WIDTH - 1))) & 1
    return (bits == 1) & in_sprite


def execute_display(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """DXYN - Draw sprite at (VX, VY) with height N, VF = collision."""
    sprite = sprite_mask(state.memory, state.I, state.V[instruction.x], state.V[instruction.y], instruction.n)
    collision = jnp.any(state.display & sprite)

    return state.replace(
        display=state.display ^ sprite,
        V=state.V.at[FLAG_REGISTER].set(collision.astype(jnp.uint8)),
        draw_flag=jnp.ones((), dtype=jnp.bool_),
    )
