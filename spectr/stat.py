"""Read stream parameters (sample rate, bit depth) from an MP3 frame header."""

from .container import locate_frame_offset, read_file
from .errors import AudioIOError, InvalidInputError
from .types import ContainerKind, StreamStat

# ffmpeg decodes MP3 to 16-bit signed PCM.
DECODED_BIT_DEPTH = 16

FRAME_HEADER_LENGTH = 4

MPEG_2_5 = 0b00
MPEG_2 = 0b10
MPEG_1 = 0b11

# version id -> sample rate by rate index
_SAMPLE_RATES = {
    MPEG_1: (44100, 48000, 32000),
    MPEG_2: (22050, 24000, 16000),
    MPEG_2_5: (11025, 12000, 8000),
}


def interpret_mp3_rate(version, rate):
    """Map an MPEG version id and sampling-rate index to a rate in Hz.

    Both codes are two-bit fields taken from the frame header::

                      Version 00    Version 10    Version 11
           Rate 00         11025         22050         44100
           Rate 01         12000         24000         48000
           Rate 10          8000         16000         32000

    Version ``01`` is reserved and rate index ``11`` is invalid.
    """
    rates = _SAMPLE_RATES.get(version)
    if rates is None or not 0 <= rate < len(rates):
        raise InvalidInputError(
            f"Invalid MPEG version/rate combination ({version:#04b}, {rate:#04b})"
        )
    return rates[rate]


def read_stats(file_bytes, frame_offset=None):
    """Compute the :class:`StreamStat` of an MP3 held in *file_bytes*.

    The 4-byte frame header is laid out as::

        AAAAAAAA AAABBCCD EEEEFFGH IIJJKLMM

    where A is the frame sync, B the MPEG version id and F the sampling-rate
    index. Every frame in a sane file shares the same version and rate, so
    only the first header is read. Pass *frame_offset* when the first frame
    has already been located.
    """
    off = frame_offset
    if off is None:
        off = locate_frame_offset(file_bytes)
    header = file_bytes[off:off + FRAME_HEADER_LENGTH]
    if len(header) != FRAME_HEADER_LENGTH:
        raise AudioIOError(f"Truncated MP3 frame header at offset {off}")

    version = (header[1] & 0x18) >> 3
    rate = (header[2] & 0x0C) >> 2

    return StreamStat(
        container_kind=ContainerKind.MP3,
        bit_depth=DECODED_BIT_DEPTH,
        sample_rate=interpret_mp3_rate(version, rate),
    )


def audio_stat(path):
    """Read the file at *path* and return its :class:`StreamStat`."""
    return read_stats(read_file(path))


# ---------------------------------------------------------------------------
# Axis-label helpers
# ---------------------------------------------------------------------------

def duration_sec(stat, sample_count):
    """Whole seconds of audio represented by *sample_count* stereo samples."""
    if stat.sample_rate <= 0:
        raise InvalidInputError("Stream has no sample rate")
    return sample_count // stat.sample_rate


def duration_str(stat, sample_count):
    """Format the duration as ``M:SS`` (or ``H:MM:SS`` past an hour)."""
    total = duration_sec(stat, sample_count)
    hours, rem = divmod(total, 3600)
    minutes, seconds = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def nyquist_frequency(stat):
    return stat.sample_rate // 2


def nyquist_frequency_str(stat):
    """Format the Nyquist frequency, e.g. ``22050 Hz``."""
    return f"{nyquist_frequency(stat)} Hz"
