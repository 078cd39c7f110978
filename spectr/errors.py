"""Exception hierarchy shared by the decoding and transform layers.

Each error also derives from the closest builtin exception, so callers that
only know about ``ValueError`` / ``OSError`` / ``RuntimeError`` still catch
them.
"""


class SpectrError(Exception):
    """Base class for every error raised by spectr."""


class InvalidInputError(SpectrError, ValueError):
    """Malformed or unsupported bitstream, bad window geometry, bad buffer."""


class AudioIOError(SpectrError, OSError):
    """The input file could not be read, or is too short to inspect."""


class OutOfMemoryError(SpectrError, MemoryError):
    """A sample or spectrum buffer could not be allocated."""


class LibraryError(SpectrError, RuntimeError):
    """The external codec (ffmpeg) failed or is missing."""
