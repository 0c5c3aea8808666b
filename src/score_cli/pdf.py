"""PDF to image conversion using PyMuPDF."""

from pathlib import Path

import fitz  # PyMuPDF

from score_cli.errors import DecodeFailed


def pdf_to_images(pdf_path: Path, dpi: int = 150) -> list[bytes]:
    """Render each page of a PDF to a PNG byte string.

    Every page becomes its own source image; pages are never stitched
    together.

    Args:
        pdf_path: Path to the PDF file.
        dpi:      Render resolution.  Scores with small note heads read better
                  at 200 DPI or more.
    """
    try:
        doc = fitz.open(str(pdf_path))
    except RuntimeError as e:
        raise DecodeFailed(f"Could not open PDF {pdf_path}: {e}") from e

    results = []
    matrix = fitz.Matrix(dpi / 72, dpi / 72)  # PDF user space is 72 units per inch
    try:
        for page in doc:
            pixmap = page.get_pixmap(matrix=matrix, colorspace=fitz.csRGB)
            results.append(pixmap.tobytes("png"))
    finally:
        doc.close()
    return results
