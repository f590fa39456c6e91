"""Framebuffer rendering for the pygame window and headless runs."""

import jax.numpy as jnp
import numpy as np

ON_COLOR = (255, 255, 255)
OFF_COLOR = (0, 0, 0)


def frame_rgb(display: jnp.ndarray, scale: int = 1) -> np.ndarray:
    """RGB frame of shape (32 * scale, 64 * scale, 3), rows first."""
    # framebuffer is indexed [x, y]; images are [row, column]
    lit = np.asarray(display, dtype=np.bool_).T
    palette = np.array([OFF_COLOR, ON_COLOR], dtype=np.uint8)
    frame = palette[lit.astype(np.intp)]
    return frame.repeat(scale, axis=0).repeat(scale, axis=1)


def render_ascii(display: jnp.ndarray, on_char: str = "#", off_char: str = " ") -> str:
    """Render the framebuffer as text, one line per screen row."""
    pixels = np.asarray(display, dtype=np.bool_).T
    lines = ["".join(on_char if pixel else off_char for pixel in row) for row in pixels]
    return "\n".join(lines)
