"""Synchronized crop-and-pad of the processed page and the rescaled original."""

import logging
from dataclasses import dataclass

import numpy as np

from score_cli.buffer import TRANSPARENT, PixelBuffer
from score_cli.locate import BoundingBox
from score_cli.settings import ProcessingSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    processed: PixelBuffer
    cropped_original: PixelBuffer
    bounds: BoundingBox


def fill_color(settings: ProcessingSettings) -> tuple[int, int, int, int]:
    if settings.is_transparent:
        return TRANSPARENT
    return (*settings.background_color, 255)


def _source_over(dst: np.ndarray, src: np.ndarray) -> np.ndarray:
    """Composite *src* over *dst* (both straight-alpha RGBA uint8)."""
    sa = src[:, :, 3:4] / 255.0
    da = dst[:, :, 3:4] / 255.0
    out_a = sa + da * (1.0 - sa)
    numerator = src[:, :, :3] * sa + dst[:, :, :3] * da * (1.0 - sa)
    safe_a = np.where(out_a > 0, out_a, 1.0)
    rgb = np.where(out_a > 0, numerator / safe_a, 0.0)
    out = np.empty_like(dst)
    out[:, :, :3] = np.clip(np.rint(rgb), 0, 255)
    out[:, :, 3:4] = np.clip(np.rint(out_a * 255.0), 0, 255)
    return out


def pad_region(
    source: PixelBuffer,
    bounds: BoundingBox,
    paddings: tuple[int, int, int, int],
    fill: tuple[int, int, int, int],
) -> PixelBuffer:
    """Allocate a filled canvas and draw the *bounds* region of *source* into it.

    The region lands at ``(left, top)``; the canvas is the region grown by the
    four margins given as (top, right, bottom, left).
    """
    top, right, bottom, left = paddings
    width = bounds.width + left + right
    height = bounds.height + top + bottom
    canvas = PixelBuffer.allocate(width, height, fill)

    pixels = canvas.pixels.copy()
    region = source.pixels[bounds.min_y:bounds.max_y + 1, bounds.min_x:bounds.max_x + 1]
    window = (slice(top, top + bounds.height), slice(left, left + bounds.width))
    pixels[window] = _source_over(pixels[window], region)
    return PixelBuffer.from_array(pixels)


def assemble(
    composited: PixelBuffer,
    pristine: PixelBuffer,
    bounds: BoundingBox,
    settings: ProcessingSettings,
) -> ProcessResult:
    """Produce the two output buffers from one bounding box and one set of margins.

    Without auto-crop, or when no content was found, both full frames are
    returned unchanged.
    """
    if not settings.auto_crop or not bounds.has_content:
        if settings.auto_crop:
            logger.info("No content found; returning the full frame")
        return ProcessResult(processed=composited, cropped_original=pristine, bounds=bounds)

    fill = fill_color(settings)
    paddings = settings.paddings
    processed = pad_region(composited, bounds, paddings, fill)
    cropped_original = pad_region(pristine, bounds, paddings, fill)
    logger.debug(
        "Cropped to %dx%d content, output %dx%d",
        bounds.width, bounds.height, processed.width, processed.height,
    )
    return ProcessResult(processed=processed, cropped_original=cropped_original, bounds=bounds)
