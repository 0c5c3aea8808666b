"""Turn input paths into named, encoded source images."""

from pathlib import Path

from score_cli.pdf import pdf_to_images

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp", ".tif", ".tiff"}
PDF_EXTENSION = ".pdf"


def is_supported(path: Path) -> bool:
    suffix = path.suffix.lower()
    return suffix == PDF_EXTENSION or suffix in IMAGE_EXTENSIONS


def read_sources(path: Path, dpi: int = 150) -> list[tuple[str, bytes]]:
    """Return ``(filename, data)`` pairs for an image file or each page of a PDF.

    PDF pages are named ``<stem>_p<N>.png`` (1-based).  Raises ValueError for
    unsupported file types.
    """
    suffix = path.suffix.lower()
    if suffix == PDF_EXTENSION:
        pages = pdf_to_images(path, dpi=dpi)
        return [(f"{path.stem}_p{i + 1}.png", page) for i, page in enumerate(pages)]
    if suffix in IMAGE_EXTENSIONS:
        return [(path.name, path.read_bytes())]
    raise ValueError(f"Unsupported file type: {suffix or path.name}")
