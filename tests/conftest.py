"""Shared fixtures for the test suite.

All fixtures here produce real files / real bytes so tests exercise actual
code paths rather than hand-crafted stubs.
"""

import io
from concurrent.futures import Future
from pathlib import Path

import fitz  # PyMuPDF
import numpy as np
import pytest
from click.testing import CliRunner
from PIL import Image, ImageDraw

from score_cli.buffer import PixelBuffer

# The page fixture: a 40×30 white page with a 10×6 black block.
PAGE_SIZE = (40, 30)
BLOCK = (10, 8, 19, 13)  # inclusive (min_x, min_y, max_x, max_y)


def grey_buffer(rows: list[list[int]]) -> PixelBuffer:
    """Build an opaque grey PixelBuffer from a 2-D list of intensities."""
    grey = np.asarray(rows, dtype=np.uint8)
    pixels = np.empty(grey.shape + (4,), dtype=np.uint8)
    pixels[:, :, 0] = grey
    pixels[:, :, 1] = grey
    pixels[:, :, 2] = grey
    pixels[:, :, 3] = 255
    return PixelBuffer.from_array(pixels)


# ── CLI runner ─────────────────────────────────────────────────────────────


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


# ── Image fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def page_image() -> Image.Image:
    img = Image.new("RGB", PAGE_SIZE, color=(255, 255, 255))
    ImageDraw.Draw(img).rectangle(BLOCK, fill=(0, 0, 0))
    return img


@pytest.fixture
def png_bytes(page_image: Image.Image) -> bytes:
    """A real PNG of the page fixture as raw bytes."""
    buf = io.BytesIO()
    page_image.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_file(tmp_path: Path, png_bytes: bytes) -> Path:
    """The page PNG written to a temporary file on disk."""
    path = tmp_path / "page.png"
    path.write_bytes(png_bytes)
    return path


@pytest.fixture
def page_buffer(page_image: Image.Image) -> PixelBuffer:
    return PixelBuffer.from_image(page_image)


@pytest.fixture
def gradient_buffer() -> PixelBuffer:
    """4×4 grey image whose rows have intensities 50, 100, 150, 200."""
    return grey_buffer([[v] * 4 for v in (50, 100, 150, 200)])


@pytest.fixture
def white_buffer() -> PixelBuffer:
    return grey_buffer([[255] * 10 for _ in range(8)])


# ── PDF fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def single_page_pdf(tmp_path: Path) -> Path:
    """A real single-page PDF with a filled rectangle on it."""
    path = tmp_path / "single.pdf"
    doc = fitz.open()
    page = doc.new_page(width=595, height=842)  # A4
    page.draw_rect(fitz.Rect(100, 100, 300, 160), color=(0, 0, 0), fill=(0, 0, 0))
    doc.save(str(path))
    doc.close()
    return path


@pytest.fixture
def multi_page_pdf(tmp_path: Path) -> Path:
    """A real 3-page PDF with distinct text on each page."""
    path = tmp_path / "multi.pdf"
    doc = fitz.open()
    for i in range(3):
        page = doc.new_page(width=595, height=842)
        page.insert_text((72, 100), f"Page {i + 1} content")
    doc.save(str(path))
    doc.close()
    return path


# ── Scheduling doubles ─────────────────────────────────────────────────────


class ImmediateExecutor:
    """Runs submitted work inline, so results are visible as soon as submit returns."""

    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait: bool = True) -> None:
        pass


class ManualTimer:
    """threading.Timer stand-in that only fires when the test says so."""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.function(*self.args, **self.kwargs)


@pytest.fixture
def executor() -> ImmediateExecutor:
    return ImmediateExecutor()


@pytest.fixture
def timers() -> list[ManualTimer]:
    return []


@pytest.fixture
def timer_factory(timers):
    def factory(interval, function, args=None, kwargs=None):
        timer = ManualTimer(interval, function, args=args, kwargs=kwargs)
        timers.append(timer)
        return timer
    return factory
