"""Pure-Python DSP primitives: windowing, radix-2 FFT, and the STFT."""

import logging
import math

from .audio import copy_window, mono_sample
from .bitwise import flp2, is_pow2
from .complexmath import Complex, cexp
from .errors import InvalidInputError
from .types import DFTResult, STFTResult

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Window functions
# ---------------------------------------------------------------------------

def hann(index, window_length):
    """Hann coefficient for sample *index* of a *window_length*-sample window."""
    if window_length <= 1:
        return 1.0
    return 0.5 * (1.0 - math.cos(2.0 * math.pi * index / (window_length - 1)))


def window_coefficients(window_fn, length):
    """Materialise *window_fn* over ``range(length)``."""
    return [window_fn(n, length) for n in range(length)]


# ---------------------------------------------------------------------------
# FFT  (recursive radix-2 decimation in time)
# ---------------------------------------------------------------------------

def transform(samples, window_fn=None):
    """Compute the DFT of a window of stereo samples.

    Each sample is down-mixed to mono first. ``len(samples)`` must be a
    power of two.

    Parameters
    ----------
    samples : Sequence[StereoSample]
        One analysis window.
    window_fn : callable | None
        ``window_fn(index, length) -> float`` applied to each input sample.

    Returns
    -------
    DFTResult
        All ``len(samples)`` bins, including the conjugate-symmetric upper
        half.
    """
    return transform_real([mono_sample(s) for s in samples], window_fn)


def transform_real(values, window_fn=None):
    """Compute the DFT of real *values* (length must be a power of two)."""
    n = len(values)
    if not is_pow2(n):
        raise InvalidInputError(f"FFT length must be a power of two, got {n}")

    out = [None] * n
    _fft_radix2(values, out, 0, 0, 1, n, window_fn)
    return DFTResult(length=n, values=tuple(out))


def _fft_radix2(x, out, lo, offset, stride, n, window_fn):
    """Transform ``x[offset::stride]`` (*n* values) into ``out[lo:lo + n]``.

    The even-indexed half lands in ``out[lo:lo + n/2]`` and the odd half in
    ``out[lo + n/2:lo + n]``; both are snapshotted before the combine step
    overwrites that range.
    """
    if n == 1:
        v = float(x[offset])
        if window_fn is not None:
            # offset is the sample's position in the whole window
            v *= window_fn(offset, len(x))
        out[lo] = Complex(v, 0.0)
        return

    half = n // 2
    _fft_radix2(x, out, lo, offset, stride * 2, half, window_fn)
    _fft_radix2(x, out, lo + half, offset + stride, stride * 2, half, window_fn)

    even = out[lo:lo + half]
    odd = out[lo + half:lo + n]
    for k in range(half):
        w_lower = cexp(-2.0 * math.pi * k / n)
        w_upper = cexp(-2.0 * math.pi * (k + half) / n)
        out[lo + k] = even[k] + w_lower * odd[k]
        out[lo + k + half] = even[k] + w_upper * odd[k]


def naive_dft(values):
    """Reference O(N²) DFT of real *values*, for validating :func:`transform`."""
    n = len(values)
    return [
        sum(
            (cexp(-2.0 * math.pi * k * m / n) * float(values[k]) for k in range(n)),
            Complex(),
        )
        for m in range(n)
    ]


# ---------------------------------------------------------------------------
# STFT
# ---------------------------------------------------------------------------

def select_window_size(pixel_width, sample_count):
    """Pick the largest power-of-two window giving one frame per pixel column.

    A window of 1 is the smallest possible, so *sample_count* must be at
    least *pixel_width*.
    """
    if pixel_width <= 0:
        raise InvalidInputError(f"Pixel width must be positive, got {pixel_width}")
    if sample_count < pixel_width:
        raise InvalidInputError(
            f"{sample_count} samples is too few for a {pixel_width}-pixel spectrogram"
        )
    return flp2(sample_count // pixel_width)


def frame_count(sample_count, window_size, overlap=0):
    """Number of full windows of *window_size* that fit in *sample_count*."""
    hop = window_size - overlap
    if sample_count < window_size:
        return 0
    return (sample_count - window_size) // hop + 1


def compute_stft(raw, window_size, overlap=0):
    """Compute the Short-Time Fourier Transform of *raw*.

    Parameters
    ----------
    raw : RawAudio
        Decoded stereo audio.
    window_size : int
        FFT frame length; must be a power of two.
    overlap : int
        Samples shared by consecutive windows, ``0 <= overlap < window_size``.

    Returns
    -------
    STFTResult
        One Hann-windowed :class:`DFTResult` per full window, in order.
    """
    if not is_pow2(window_size):
        raise InvalidInputError(
            f"Window size must be a power of two, got {window_size}"
        )
    if not 0 <= overlap < window_size:
        raise InvalidInputError(
            f"Overlap must be in [0, {window_size}), got {overlap}"
        )

    hop = window_size - overlap
    count = frame_count(len(raw.samples), window_size, overlap)
    logger.debug("computing %d frames of %d samples (hop %d)", count, window_size, hop)

    frames = []
    for i in range(count):
        window = copy_window(raw, i * hop, window_size)
        frames.append(transform(window.samples, hann))

    return STFTResult(
        source_sample_count=len(raw.samples),
        stat=raw.stat,
        window_size=window_size,
        overlap=overlap,
        frames=tuple(frames),
    )


# ---------------------------------------------------------------------------
# Spectrogram helpers
# ---------------------------------------------------------------------------

def scale(omin, omax, nmin, nmax, v):
    """Linearly map *v* from ``[omin, omax]`` onto ``[nmin, nmax]``."""
    if omax == omin:
        return nmin
    return nmin + (v - omin) * (nmax - nmin) / (omax - omin)


def spectrogram_matrix(stft, log_scale=False):
    """Return per-frame magnitudes of bins ``0..N/2``, normalised to [0, 1].

    Only the non-redundant half of each real-input spectrum is kept; the
    result has one row per frame and ``window_size // 2 + 1`` columns.
    """
    bins = stft.window_size // 2 + 1
    rows = [frame.magnitudes(log_scale)[:bins] for frame in stft.frames]
    peak = max((max(row) for row in rows if row), default=0.0)
    return [[scale(0.0, peak, 0.0, 1.0, v) for v in row] for row in rows]
