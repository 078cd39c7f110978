"""
Immutable value types passed between the decoding and transform layers.

Design principles:
    - No I/O, no state, no side effects.
    - Sequences are tuples, so every type is hashable and can't be mutated
      by a consumer holding a reference.
    - Invariants are documented here but enforced at the creation sites
      (audio.decode, dsp.transform, dsp.compute_stft), not in __post_init__.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import NamedTuple

from .complexmath import Complex


class ContainerKind(enum.Enum):
    """Compressed audio formats the decoder knows how to name."""

    MP3 = "mp3"
    FLAC = "flac"
    OGG = "ogg"
    AAC = "aac"
    INVALID = "invalid"


@dataclass(frozen=True)
class StreamStat:
    """Encoding parameters of an audio stream.

    Invariants:
        bit_depth is a positive multiple of 8 once decoded
        sample_rate > 0 once decoded
    """

    container_kind: ContainerKind = ContainerKind.INVALID
    bit_depth: int = 0
    sample_rate: int = 0


class StereoSample(NamedTuple):
    """One PCM frame. Values occupy the low ``bit_depth`` bits, sign-extended."""

    left: int
    right: int


@dataclass(frozen=True)
class RawAudio:
    """Decoded stereo PCM for a whole file (or a window of one)."""

    stat: StreamStat = field(default_factory=StreamStat)
    samples: tuple[StereoSample, ...] = ()

    def __len__(self) -> int:
        return len(self.samples)


@dataclass(frozen=True)
class DFTResult:
    """Full N-bin spectrum of one window.

    For real input ``values[k]`` and ``values[(N - k) % N]`` are complex
    conjugates; both halves are stored so consumers can index bins directly.
    """

    length: int
    values: tuple[Complex, ...]

    def magnitudes(self, log_scale: bool = False) -> list[float]:
        """Per-bin magnitude, optionally compressed as ``log10(1 + |X|)``."""
        mags = [v.magnitude() for v in self.values]
        if log_scale:
            return [math.log10(1.0 + m) for m in mags]
        return mags

    def is_conjugate_symmetric(self, tolerance: float = 1e-6) -> bool:
        n = self.length
        for k in range(n):
            a = self.values[k]
            b = self.values[(n - k) % n]
            if abs(a.re - b.re) > tolerance or abs(a.im + b.im) > tolerance:
                return False
        return True


@dataclass(frozen=True)
class STFTResult:
    """Ordered per-window spectra plus the stream they were computed from.

    Invariants:
        window_size is a power of two
        every frame has length == window_size
        0 <= overlap < window_size
    """

    source_sample_count: int
    stat: StreamStat
    window_size: int
    overlap: int = 0
    frames: tuple[DFTResult, ...] = ()

    @property
    def hop_size(self) -> int:
        return self.window_size - self.overlap
