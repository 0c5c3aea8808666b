"""Clean up photographed or scanned score pages for printing."""

from score_cli.errors import (
    BufferAllocationFailed,
    DecodeFailed,
    InvalidSettings,
    ProcessingError,
)
from score_cli.pipeline import process
from score_cli.settings import Algorithm, ProcessingSettings

__all__ = [
    "Algorithm",
    "BufferAllocationFailed",
    "DecodeFailed",
    "InvalidSettings",
    "ProcessingError",
    "ProcessingSettings",
    "process",
]
