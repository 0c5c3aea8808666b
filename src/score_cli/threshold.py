"""Per-pixel whiteness scores.

Whiteness runs from 0 (full ink) to 255 (full paper).  Only the red channel
is read; it stands in for luminance and drops red pencil marks and coloured
cursors that a channel average would keep.
"""

from typing import Optional

import numpy as np

from score_cli.buffer import PixelBuffer
from score_cli.settings import Algorithm, ProcessingSettings

# Classic mode darkens everything up to this far above the threshold.
INK_BOOST_MARGIN = 40


def soft_threshold(value, threshold, smoothness: int) -> np.ndarray:
    """Map intensities to whiteness with a linear band of half-width *smoothness*.

    With ``smoothness == 0`` this is a hard step: 0 below *threshold*, 255 at
    or above it.  Otherwise whiteness ramps from 0 at ``threshold - smoothness``
    to 255 at ``threshold + smoothness`` and is clamped outside that band.
    *value* and *threshold* may be scalars or broadcastable arrays.
    """
    value = np.asarray(value, dtype=np.float64)
    threshold = np.asarray(threshold, dtype=np.float64)
    if smoothness == 0:
        return np.where(value < threshold, 0.0, 255.0)
    lower = threshold - smoothness
    return np.clip((value - lower) / (2 * smoothness) * 255.0, 0.0, 255.0)


def classic_whiteness(working: PixelBuffer, settings: ProcessingSettings) -> np.ndarray:
    red = working.red.astype(np.float64)
    boost = 1 - settings.contrast_boost / 100
    red = np.where(red < settings.threshold + INK_BOOST_MARGIN, red * boost, red)
    return soft_threshold(red, settings.threshold, settings.smoothness)


def adaptive_whiteness(
    working: PixelBuffer,
    background: PixelBuffer,
    settings: ProcessingSettings,
) -> np.ndarray:
    # threshold is a sensitivity: 100 puts the cut at the local paper level,
    # 0 puts it 50 levels below.
    offset = (100 - settings.threshold) / 2
    local_threshold = background.red.astype(np.float64) - offset
    return soft_threshold(working.red, local_threshold, settings.smoothness)


def compute_whiteness(
    working: PixelBuffer,
    settings: ProcessingSettings,
    background: Optional[PixelBuffer] = None,
) -> np.ndarray:
    """Return a float ``(height, width)`` whiteness array for *working*."""
    if settings.algorithm is Algorithm.ADAPTIVE:
        if background is None:
            raise ValueError("Adaptive thresholding needs a background estimate.")
        return adaptive_whiteness(working, background, settings)
    return classic_whiteness(working, settings)
