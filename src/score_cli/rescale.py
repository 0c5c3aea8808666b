"""High-quality upsampling of the source page."""

import logging
import math

from PIL import Image

from score_cli.buffer import PixelBuffer, check_dimensions

logger = logging.getLogger(__name__)

RESAMPLE = Image.Resampling.LANCZOS


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def scaled_size(width: int, height: int, scale: float) -> tuple[int, int]:
    """Dimensions of a width×height raster after scaling by *scale*."""
    return round_half_up(width * scale), round_half_up(height * scale)


def rescale(source: PixelBuffer, scale: float) -> PixelBuffer:
    """Return a new buffer of ``round(w*scale) x round(h*scale)`` pixels.

    A scale of 1.0 reproduces the source pixels exactly.
    """
    width, height = scaled_size(source.width, source.height, scale)
    check_dimensions(width, height)
    img = source.to_image()
    if (width, height) != img.size:
        img = img.resize((width, height), resample=RESAMPLE)
    logger.debug("Rescaled %dx%d -> %dx%d (x%.2f)", source.width, source.height, width, height, scale)
    return PixelBuffer.from_image(img)
