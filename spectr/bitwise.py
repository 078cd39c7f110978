"""Bit-twiddling helpers for container headers and FFT sizing."""


def from_synchsafe_int32(buf, offset):
    """Decode a 32-bit "synchsafe" integer starting at *offset* in *buf*.

    Synchsafe integers (used by ID3v2 tags) store 7 bits per byte, most
    significant byte first; the top bit of every byte is ignored, so e.g.
    ``7F 7F 7F 7F`` decodes to ``0x0FFFFFFF``.
    """
    if offset < 0 or offset + 4 > len(buf):
        raise IndexError(f"synchsafe integer at {offset} runs past end of buffer")
    return (
        (buf[offset] & 0x7F) << 21
        | (buf[offset + 1] & 0x7F) << 14
        | (buf[offset + 2] & 0x7F) << 7
        | (buf[offset + 3] & 0x7F)
    )


def to_synchsafe_int32(value):
    """Encode *value* (< 2**28) as four synchsafe bytes."""
    if not 0 <= value < (1 << 28):
        raise ValueError(f"{value} does not fit in a synchsafe integer")
    return bytes(
        [(value >> 21) & 0x7F, (value >> 14) & 0x7F, (value >> 7) & 0x7F, value & 0x7F]
    )


def rmo_off(v):
    """Turn off the rightmost set bit of *v*."""
    return v & (v - 1)


def is_pow2(v):
    return v > 0 and rmo_off(v) == 0


def flp2(v):
    """Return the largest power of two <= *v* (0 for 0)."""
    if v <= 0:
        return 0
    return 1 << (v.bit_length() - 1)
