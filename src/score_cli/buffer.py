"""RGBA pixel buffers shared by every pipeline stage.

A :class:`PixelBuffer` wraps an ``(height, width, 4)`` ``uint8`` numpy array
in row-major RGBA order, so ``to_bytes()`` yields the familiar packed layout
with a stride of ``width * 4``.  The array is made read-only on construction:
a stage that wants different pixels builds a new buffer instead of editing
one it was handed.
"""

import io
import logging
from dataclasses import dataclass

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from score_cli.errors import BufferAllocationFailed, DecodeFailed

logger = logging.getLogger(__name__)

# Surface limits of a typical 2D canvas implementation.
MAX_SIDE = 32767
MAX_PIXELS = 268_435_456

RGBA = tuple[int, int, int, int]
TRANSPARENT: RGBA = (0, 0, 0, 0)


def check_dimensions(width: int, height: int) -> None:
    """Raise BufferAllocationFailed if a width×height surface cannot exist."""
    if width <= 0 or height <= 0:
        raise BufferAllocationFailed(f"Cannot allocate a {width}x{height} buffer.")
    if width > MAX_SIDE or height > MAX_SIDE or width * height > MAX_PIXELS:
        raise BufferAllocationFailed(
            f"A {width}x{height} buffer exceeds the surface limit "
            f"({MAX_SIDE}px per side, {MAX_PIXELS} pixels)."
        )


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.pixels.shape != (self.height, self.width, 4) or self.pixels.dtype != np.uint8:
            raise ValueError(
                f"Expected a ({self.height}, {self.width}, 4) uint8 array, "
                f"got {self.pixels.shape} {self.pixels.dtype}."
            )
        self.pixels.flags.writeable = False

    # ── Construction ──────────────────────────────────────────────────────

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> "PixelBuffer":
        """Wrap an RGBA array; the caller gives up ownership of it."""
        height, width = pixels.shape[:2]
        return cls(width=width, height=height, pixels=pixels)

    @classmethod
    def allocate(cls, width: int, height: int, fill: RGBA = TRANSPARENT) -> "PixelBuffer":
        """Create a new buffer of the given size filled with one RGBA colour."""
        check_dimensions(width, height)
        try:
            pixels = np.empty((height, width, 4), dtype=np.uint8)
        except MemoryError as e:
            raise BufferAllocationFailed(
                f"Out of memory allocating a {width}x{height} buffer."
            ) from e
        pixels[...] = fill
        return cls.from_array(pixels)

    @classmethod
    def from_image(cls, img: Image.Image) -> "PixelBuffer":
        check_dimensions(*img.size)
        if img.mode != "RGBA":
            img = img.convert("RGBA")
        return cls.from_array(np.array(img, dtype=np.uint8))

    @classmethod
    def from_bytes(cls, width: int, height: int, data: bytes) -> "PixelBuffer":
        """Build a buffer from packed row-major RGBA bytes."""
        check_dimensions(width, height)
        expected = width * height * 4
        if len(data) != expected:
            raise ValueError(f"Expected {expected} bytes of RGBA data, got {len(data)}.")
        pixels = np.frombuffer(data, dtype=np.uint8).reshape(height, width, 4).copy()
        return cls.from_array(pixels)

    @classmethod
    def decode(cls, data: bytes) -> "PixelBuffer":
        """Decode encoded image bytes (PNG, JPEG, WebP, GIF, ...) into a buffer.

        EXIF orientation is applied so photographs come out upright.  Only the
        first frame of an animated image is used.
        """
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
            logger.debug("Decoded %s image %dx%d (%s)", img.format, img.width, img.height, img.mode)
            img = ImageOps.exif_transpose(img)
        except Image.DecompressionBombError as e:
            raise BufferAllocationFailed(str(e)) from e
        except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
            raise DecodeFailed(f"Could not decode image data: {e}") from e
        return cls.from_image(img)

    # ── Views and encoding ────────────────────────────────────────────────

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def red(self) -> np.ndarray:
        """The red channel, used throughout as the luminance proxy."""
        return self.pixels[:, :, 0]

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[:, :, 3]

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.pixels.copy())

    def to_bytes(self) -> bytes:
        return self.pixels.tobytes()

    def to_png(self) -> bytes:
        buf = io.BytesIO()
        self.to_image().save(buf, format="PNG")
        return buf.getvalue()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self.size == other.size and np.array_equal(self.pixels, other.pixels)
