"""Find the content bounding box of a composited buffer."""

import logging
from dataclasses import dataclass

import numpy as np

from score_cli.buffer import PixelBuffer
from score_cli.settings import ProcessingSettings

logger = logging.getLogger(__name__)

# Transparent mode: a pixel is content when its alpha exceeds this.
ALPHA_CONTENT_MIN = 10
# Opaque mode: content when the Manhattan RGB distance from the background
# exceeds this.  Ink is always rendered black, so a near-black background
# hides it from this test.
COLOR_DISTANCE_MIN = 30


@dataclass(frozen=True)
class BoundingBox:
    """Inclusive pixel bounds in rescaled-buffer coordinates."""

    min_x: int
    min_y: int
    max_x: int
    max_y: int
    has_content: bool = True

    @classmethod
    def empty(cls) -> "BoundingBox":
        return cls(min_x=0, min_y=0, max_x=-1, max_y=-1, has_content=False)

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1 if self.has_content else 0

    @property
    def height(self) -> int:
        return self.max_y - self.min_y + 1 if self.has_content else 0

    def as_box(self) -> tuple[int, int, int, int]:
        """Pillow-style (left, upper, right, lower) box with exclusive right/lower."""
        return self.min_x, self.min_y, self.max_x + 1, self.max_y + 1


def content_mask(composited: PixelBuffer, settings: ProcessingSettings) -> np.ndarray:
    """Boolean ``(height, width)`` mask of pixels that count as content."""
    if settings.is_transparent:
        return composited.alpha > ALPHA_CONTENT_MIN
    rgb = composited.pixels[:, :, :3].astype(np.int16)
    bg = np.asarray(settings.background_color, dtype=np.int16)
    distance = np.abs(rgb - bg).sum(axis=2)
    return distance > COLOR_DISTANCE_MIN


def find_content_bounds(composited: PixelBuffer, settings: ProcessingSettings) -> BoundingBox:
    mask = content_mask(composited, settings)
    rows = np.flatnonzero(mask.any(axis=1))
    if rows.size == 0:
        logger.debug("No content found in %dx%d buffer", composited.width, composited.height)
        return BoundingBox.empty()
    cols = np.flatnonzero(mask.any(axis=0))
    box = BoundingBox(
        min_x=int(cols[0]),
        min_y=int(rows[0]),
        max_x=int(cols[-1]),
        max_y=int(rows[-1]),
    )
    logger.debug("Content bounds %s", box.as_box())
    return box
