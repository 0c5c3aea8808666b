"""Local paper-brightness estimate for adaptive thresholding."""

import logging

from PIL import ImageFilter

from score_cli.buffer import PixelBuffer

logger = logging.getLogger(__name__)

BASE_BLUR_RADIUS = 20


def blur_radius(scale: float) -> float:
    """Blur radius in rescaled pixels, so it covers the same page area at any scale."""
    return BASE_BLUR_RADIUS * scale


def estimate_background(rescaled: PixelBuffer, scale: float) -> PixelBuffer:
    """Gaussian-blur the rescaled source into a same-size background estimate.

    Strokes are thin compared with the blur radius, so they wash out and what
    remains is how bright the paper is around each pixel: shadows, vignetting
    and creases included.
    """
    radius = blur_radius(scale)
    blurred = rescaled.to_image().filter(ImageFilter.GaussianBlur(radius=radius))
    logger.debug("Background estimate with blur radius %.1f", radius)
    return PixelBuffer.from_image(blurred)
