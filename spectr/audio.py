"""Decode compressed audio into stereo PCM samples.

The codec itself is ffmpeg, run as a subprocess: we locate the first frame,
pipe everything from there on into ffmpeg, and read back big-endian signed
16-bit interleaved stereo PCM.
"""

import logging
import math
import struct
import subprocess

from .container import codec_for_container, locate_frame_offset, read_file
from .errors import InvalidInputError, LibraryError, OutOfMemoryError
from .stat import read_stats
from .types import ContainerKind, RawAudio, StereoSample

logger = logging.getLogger(__name__)

FFMPEG_BINARY = "ffmpeg"

# Big-endian (left, right) pair formats for the common sample widths.
_PAIR_FORMATS = {
    1: ">bb",
    2: ">hh",
    4: ">ii",
}


def _sample_width(bit_depth):
    if bit_depth <= 0 or bit_depth % 8:
        raise InvalidInputError(f"Unsupported bit depth: {bit_depth}")
    return bit_depth // 8


def _read_be(buf, offset, width):
    """Assemble *width* bytes MSB-first into a sign-extended integer."""
    val = 0
    for b in buf[offset:offset + width]:
        val = (val << 8) | b
    sign = 1 << (8 * width - 1)
    if val & sign:
        val -= sign << 1
    return val


def samples_from_pcm(buf, bit_depth):
    """Reinterpret interleaved big-endian PCM bytes as stereo samples.

    Each channel value takes ``bit_depth // 8`` bytes, left before right.
    The buffer length must be a whole number of stereo frames.
    """
    width = _sample_width(bit_depth)
    frame_bytes = 2 * width
    if len(buf) % frame_bytes != 0:
        raise InvalidInputError(
            f"PCM buffer of {len(buf)} bytes is not a multiple of the "
            f"{frame_bytes}-byte stereo frame size"
        )

    fmt = _PAIR_FORMATS.get(width)
    try:
        if fmt is not None:
            return tuple(map(StereoSample._make, struct.iter_unpack(fmt, buf)))
        # 24-bit and other odd widths: assemble manually
        return tuple(
            StereoSample(_read_be(buf, i, width), _read_be(buf, i + width, width))
            for i in range(0, len(buf), frame_bytes)
        )
    except MemoryError:
        raise OutOfMemoryError(
            f"Not enough memory for {len(buf) // frame_bytes} samples"
        ) from None


def to_pcm(raw):
    """Serialise *raw* back to interleaved big-endian PCM bytes."""
    width = _sample_width(raw.stat.bit_depth)
    fmt = _PAIR_FORMATS.get(width)
    try:
        if fmt is not None:
            packer = struct.Struct(fmt)
            return b"".join(packer.pack(s.left, s.right) for s in raw.samples)

        frames = bytearray()
        for s in raw.samples:
            frames.extend(s.left.to_bytes(width, "big", signed=True))
            frames.extend(s.right.to_bytes(width, "big", signed=True))
        return bytes(frames)
    except (struct.error, OverflowError) as e:
        raise InvalidInputError(
            f"Sample out of range for {raw.stat.bit_depth}-bit PCM: {e}"
        ) from None


def write_raw_audio(stream, raw):
    """Write *raw* as PCM to a binary *stream*; return the byte count."""
    data = to_pcm(raw)
    stream.write(data)
    return len(data)


def mono_sample(sample):
    """Average the two channels of *sample* without overflowing."""
    return math.floor(sample.left / 2.0 + sample.right / 2.0)


def to_mono(raw):
    """Down-mix every sample of *raw* to a mono integer value."""
    return [mono_sample(s) for s in raw.samples]


def copy_window(src, offset, length):
    """Return a new RawAudio holding samples ``[offset, offset + length)``.

    The source's stream stats are copied along with the samples.
    """
    if offset < 0 or length < 0 or offset + length > len(src.samples):
        raise InvalidInputError(
            f"Window [{offset}, {offset + length}) is outside "
            f"{len(src.samples)} samples"
        )
    return RawAudio(stat=src.stat, samples=src.samples[offset:offset + length])


def copy_raw_audio(src):
    return copy_window(src, 0, len(src.samples))


def decode_frames(path, frame_offset, kind=ContainerKind.MP3, ffmpeg=FFMPEG_BINARY):
    """Decode the frames of *path* starting at *frame_offset* with ffmpeg.

    Args:
        path: Path to the compressed audio file.
        frame_offset: Byte offset of the first frame header.
        kind: Container kind, used to pick ffmpeg's demuxer.
        ffmpeg: Name or path of the ffmpeg executable.

    Returns:
        Big-endian signed 16-bit interleaved stereo PCM bytes.

    Raises:
        AudioIOError: If the file can't be read.
        InvalidInputError: If the offset or container kind is unusable.
        LibraryError: If ffmpeg is not available or decoding fails.
    """
    data = read_file(path)
    if not 0 <= frame_offset < len(data):
        raise InvalidInputError(
            f"Frame offset {frame_offset} is outside the {len(data)}-byte file"
        )

    demuxer = codec_for_container(kind)
    if demuxer is None:
        raise InvalidInputError(f"No codec available for {kind.value}")

    cmd = [
        ffmpeg, "-v", "error",
        "-f", demuxer, "-i", "pipe:0",
        "-f", "s16be", "-acodec", "pcm_s16be", "-ac", "2",
        "pipe:1",
    ]
    logger.debug("decoding %s from offset %d: %s", path, frame_offset, " ".join(cmd))

    try:
        result = subprocess.run(
            cmd,
            input=data[frame_offset:],
            capture_output=True,
            check=True,
        )
    except FileNotFoundError:
        raise LibraryError("ffmpeg is not installed or not in PATH")
    except subprocess.CalledProcessError as e:
        raise LibraryError(
            f"Failed to decode {path}: {e.stderr.decode(errors='replace')}"
        )
    return result.stdout


def decode(path, decoder=None):
    """Decode the audio file at *path* into a :class:`RawAudio`.

    *decoder* is the codec collaborator, called as
    ``decoder(path, frame_offset)`` and returning PCM bytes; it defaults to
    :func:`decode_frames`.
    """
    if decoder is None:
        decoder = decode_frames

    file_bytes = read_file(path)
    offset = locate_frame_offset(file_bytes)
    stat = read_stats(file_bytes, offset)

    pcm = decoder(path, offset)
    samples = samples_from_pcm(pcm, stat.bit_depth)
    logger.debug("decoded %d samples @ %d Hz from %s", len(samples), stat.sample_rate, path)
    return RawAudio(stat=stat, samples=samples)
