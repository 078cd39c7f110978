"""Locate compressed-audio frame data inside a container file.

Only MP3 is recognised today. Real-world MP3s usually start with an ID3v2
tag whose declared size is used to skip straight to the first frame; when
the tag is missing or lies about its size we fall back to scanning the file
for the first frame-sync pattern.
"""

import logging
from pathlib import Path

from .bitwise import from_synchsafe_int32
from .errors import AudioIOError, InvalidInputError
from .types import ContainerKind

logger = logging.getLogger(__name__)

ID3_MAGIC = b"ID3"
ID3_HEADER_LENGTH = 10
ID3_FOOTER_LENGTH = 10
ID3_FLAGS_OFFSET = 5
ID3_SIZE_OFFSET = 6
ID3_FOOTER_FLAG = 0x10

FRAME_SYNC_BYTE = 0xFF
FRAME_SYNC_SECOND = frozenset({0xFB, 0xFA})

# ffmpeg demuxer names
_CODECS = {
    ContainerKind.MP3: "mp3",
    ContainerKind.FLAC: "flac",
    ContainerKind.OGG: "ogg",
    ContainerKind.AAC: "aac",
}


def read_file(path):
    """Read the whole file at *path*, mapping OS failures to AudioIOError."""
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise AudioIOError(f"Failed to read {path}: {e}") from e


def is_frame_sync(buf, offset):
    """Whether an MP3 frame header (``FF FB`` or ``FF FA``) starts at *offset*."""
    if offset < 0 or offset + 1 >= len(buf):
        return False
    return buf[offset] == FRAME_SYNC_BYTE and buf[offset + 1] in FRAME_SYNC_SECOND


def _id3_skip_offset(buf):
    """Return the offset just past an ID3v2 tag, or 0 if there is none.

    The 10-byte header is laid out as::

        49 44 33 yy yy xx zz zz zz zz

    ``yy`` is the tag version, ``xx`` the flags byte and the ``zz`` bytes the
    tag size as a synchsafe integer. The size excludes the header itself and
    the optional footer (flag 0x10).
    """
    if buf[:3] != ID3_MAGIC:
        return 0
    off = from_synchsafe_int32(buf, ID3_SIZE_OFFSET) + ID3_HEADER_LENGTH
    if buf[ID3_FLAGS_OFFSET] & ID3_FOOTER_FLAG:
        off += ID3_FOOTER_LENGTH
    return off


def locate_frame_offset(file_bytes):
    """Return the byte offset of the first MP3 frame header in *file_bytes*.

    If the ID3v2 tag points at something other than a frame header, the tag
    is assumed to be corrupt and the buffer is scanned from the start. The
    scan is a heuristic: in a damaged file it can match a sync-like byte
    pair inside audio data.

    Raises
    ------
    AudioIOError
        The buffer is shorter than an ID3v2 header.
    InvalidInputError
        No frame sync exists anywhere in the buffer.
    """
    if len(file_bytes) < ID3_HEADER_LENGTH:
        raise AudioIOError(
            f"File too short to contain audio ({len(file_bytes)} bytes)"
        )

    off = _id3_skip_offset(file_bytes)
    if is_frame_sync(file_bytes, off):
        return off

    logger.debug("no frame sync at offset %d, scanning file", off)
    found = file_bytes.find(b"\xff\xfb")
    alt = file_bytes.find(b"\xff\xfa")
    candidates = [i for i in (found, alt) if i >= 0]
    if not candidates:
        raise InvalidInputError("No MP3 frame header found")
    off = min(candidates)
    logger.debug("frame sync found by scan at offset %d", off)
    return off


# Locators by container kind; FLAC/OGG/AAC have no locator yet.
_LOCATORS = {
    ContainerKind.MP3: locate_frame_offset,
}


def detect_container(file_bytes):
    """Identify the container kind of *file_bytes*.

    Raises InvalidInputError when no registered locator accepts the data.
    """
    for kind, locate in _LOCATORS.items():
        try:
            locate(file_bytes)
        except InvalidInputError:
            continue
        return kind
    raise InvalidInputError("Unsupported or unrecognised audio format")


def locate(file_bytes, kind=ContainerKind.MP3):
    """Locate the first frame of *file_bytes* using the locator for *kind*."""
    try:
        locator = _LOCATORS[kind]
    except KeyError:
        raise InvalidInputError(f"No frame locator for {kind.value}") from None
    return locator(file_bytes)


def codec_for_container(kind):
    """Return the ffmpeg demuxer name for *kind*, or None if there is none."""
    return _CODECS.get(kind)
