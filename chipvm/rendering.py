"""CHIP-8 rendering utilities for visualization."""

from typing import Iterable, Tuple

import jax.numpy as jnp
import numpy as np
from PIL import Image


def display_to_rgb(
    display: jnp.ndarray,
    scale: int = 8,
    on_color: Tuple[int, int, int] = (255, 255, 255),
    off_color: Tuple[int, int, int] = (0, 0, 0),
) -> np.ndarray:
    """Convert a boolean display to an upscaled RGB image.

    Args:
        display: Boolean array of shape (height, width), row-major
        scale: Integer upscaling factor, nearest neighbour
        on_color: RGB color for lit pixels
        off_color: RGB color for dark pixels

    Returns:
        uint8 array of shape (height*scale, width*scale, 3)
    """
    if scale < 1:
        raise ValueError(f"scale must be >= 1, got {scale}")

    pixels = np.asarray(display, dtype=np.bool_)
    rgb_frame = np.where(
        pixels[..., None],
        np.asarray(on_color, dtype=np.uint8),
        np.asarray(off_color, dtype=np.uint8),
    )
    if scale > 1:
        rgb_frame = rgb_frame.repeat(scale, axis=0).repeat(scale, axis=1)
    return rgb_frame


def create_color_scheme(
    scheme: str = "classic",
) -> Tuple[Tuple[int, int, int], Tuple[int, int, int]]:
    """Get predefined color schemes for CHIP-8 rendering.

    Args:
        scheme: Color scheme name ("classic", "green", "amber", "blue", "retro")

    Returns:
        Tuple of (on_color, off_color) as RGB tuples
    """
    schemes = {
        "classic": ((255, 255, 255), (0, 0, 0)),  # White on black
        "green": ((0, 255, 0), (0, 0, 0)),  # Green on black
        "amber": ((255, 176, 0), (0, 0, 0)),  # Amber on black
        "blue": ((0, 255, 255), (0, 0, 64)),  # Cyan on dark blue
        "retro": ((255, 255, 0), (64, 0, 64)),  # Yellow on purple
    }

    if scheme not in schemes:
        raise ValueError(
            f"Unknown color scheme '{scheme}'. Available: {list(schemes.keys())}"
        )

    return schemes[scheme]


def display_to_text(display: jnp.ndarray, on: str = "#", off: str = ".") -> str:
    """One text row per display row."""
    pixels = np.array(display, dtype=np.bool_)
    return "\n".join("".join(on if pixel else off for pixel in row) for row in pixels)


def save_frame(display: jnp.ndarray, filename: str, scale: int = 8, color_scheme: str = "classic") -> None:
    """Write a single display frame as an image (format from the file extension)."""
    on_color, off_color = create_color_scheme(color_scheme)
    Image.fromarray(display_to_rgb(display, scale, on_color, off_color)).save(filename)


def save_animation(
    displays: Iterable[jnp.ndarray],
    filename: str,
    fps: float = 60.0,
    scale: int = 8,
    color_scheme: str = "classic",
) -> int:
    """Write a sequence of display frames as an animated GIF.

    Returns:
        Number of frames written
    """
    on_color, off_color = create_color_scheme(color_scheme)
    frames = [
        Image.fromarray(display_to_rgb(display, scale, on_color, off_color))
        for display in displays
    ]
    if not frames:
        raise ValueError("No frames to save")

    frames[0].save(
        filename,
        save_all=True,
        append_images=frames[1:],
        duration=int(round(1000 / fps)),
        loop=0,
    )
    return len(frames)
