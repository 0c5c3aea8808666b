"""Render whiteness as black ink over a background colour or transparency."""

import numpy as np

from score_cli.buffer import PixelBuffer
from score_cli.settings import ProcessingSettings


def _to_uint8(values: np.ndarray) -> np.ndarray:
    # Round half to even, clamp to the byte range.
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def composite(whiteness: np.ndarray, settings: ProcessingSettings) -> PixelBuffer:
    """Build the processed RGBA buffer from a whiteness array.

    Transparent: RGB is always black and alpha is ``255 - whiteness``.
    Opaque:      RGB is ``background_color * whiteness / 255``, alpha 255.
    """
    height, width = whiteness.shape
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    if settings.is_transparent:
        pixels[:, :, 3] = _to_uint8(255.0 - whiteness)
    else:
        t = whiteness / 255.0
        bg = np.asarray(settings.background_color, dtype=np.float64)
        pixels[:, :, :3] = _to_uint8(t[:, :, np.newaxis] * bg)
        pixels[:, :, 3] = 255
    return PixelBuffer.from_array(pixels)
