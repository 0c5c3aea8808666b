"""The processing core: source buffer + settings -> ProcessResult.

    source ─► rescale ─┬─► pristine copy ──────────────────────────┐
                       └─► [background estimate] ─► whiteness ─►    │
                           composite ─► content bounds ─► crop & pad (both)

Every stage produces a fresh buffer, so concurrent calls share nothing.
"""

import logging
import time

from score_cli.background import estimate_background
from score_cli.buffer import PixelBuffer
from score_cli.composite import composite
from score_cli.crop import ProcessResult, assemble
from score_cli.errors import BufferAllocationFailed, InvalidSettings
from score_cli.locate import find_content_bounds
from score_cli.rescale import rescale
from score_cli.settings import Algorithm, ProcessingSettings
from score_cli.threshold import compute_whiteness

logger = logging.getLogger(__name__)


def process(source: PixelBuffer, settings: ProcessingSettings) -> ProcessResult:
    """Clean up one page.

    Raises:
        InvalidSettings:         *settings* is not a ProcessingSettings.
        BufferAllocationFailed:  a working buffer would exceed surface limits
                                 or memory ran out.
    """
    if not isinstance(settings, ProcessingSettings):
        raise InvalidSettings(f"Expected ProcessingSettings, got {type(settings).__name__}.")

    started = time.perf_counter()
    try:
        pristine = rescale(source, settings.scale_multiplier)

        background = None
        if settings.algorithm is Algorithm.ADAPTIVE:
            background = estimate_background(pristine, settings.scale_multiplier)

        whiteness = compute_whiteness(pristine, settings, background)
        composited = composite(whiteness, settings)
        bounds = find_content_bounds(composited, settings)
        result = assemble(composited, pristine, bounds, settings)
    except MemoryError as e:
        raise BufferAllocationFailed("Out of memory while processing.") from e

    logger.debug(
        "Processed %dx%d -> %dx%d (%s) in %.0f ms",
        source.width, source.height,
        result.processed.width, result.processed.height,
        settings.algorithm.value,
        (time.perf_counter() - started) * 1000,
    )
    return result
