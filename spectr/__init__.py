"""spectr: spectrogram extraction from compressed audio files."""

__version__ = "0.1.0"

from .audio import copy_window, decode
from .dsp import compute_stft, select_window_size, transform
from .errors import (
    AudioIOError,
    InvalidInputError,
    LibraryError,
    OutOfMemoryError,
    SpectrError,
)
from .types import (
    ContainerKind,
    DFTResult,
    RawAudio,
    STFTResult,
    StereoSample,
    StreamStat,
)

__all__ = [
    "AudioIOError",
    "ContainerKind",
    "DFTResult",
    "InvalidInputError",
    "LibraryError",
    "OutOfMemoryError",
    "RawAudio",
    "STFTResult",
    "SpectrError",
    "StereoSample",
    "StreamStat",
    "compute_stft",
    "copy_window",
    "decode",
    "select_window_size",
    "transform",
]
