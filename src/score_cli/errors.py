"""Error kinds raised by the processing core."""


class ProcessingError(Exception):
    """Base class for failures of a single image job."""


class DecodeFailed(ProcessingError):
    """The source bytes could not be decoded into a pixel buffer."""


class BufferAllocationFailed(ProcessingError):
    """A working surface could not be created."""


class InvalidSettings(ProcessingError, ValueError):
    """A setting is outside its documented range."""
