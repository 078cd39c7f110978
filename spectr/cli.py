"""Command-line interface for spectr."""

import argparse
import csv
import functools
import logging
import os
import sys
import time

from . import __version__
from .audio import FFMPEG_BINARY, decode, decode_frames, write_raw_audio
from .container import detect_container, locate, read_file
from .dsp import compute_stft, select_window_size, spectrogram_matrix
from .errors import AudioIOError, SpectrError
from .stat import duration_str, nyquist_frequency_str, read_stats

# Width of the original spectrogram viewport, in pixels.
DEFAULT_PIXEL_WIDTH = 800
DEFAULT_OVERLAP = 0


def _resolve_output(input_path, ext, output):
    """Return *output*, or the input path with its extension replaced."""
    if output:
        return output
    base = os.path.splitext(input_path)[0]
    return f"{base}.{ext}"


def _open_output(path, mode="wb", **kwargs):
    try:
        return open(path, mode, **kwargs)
    except OSError as e:
        raise AudioIOError(f"Failed to write {path}: {e}") from e


def _load_raw(args):
    """Decode ``args.input`` with the configured ffmpeg, reporting progress."""
    decoder = functools.partial(decode_frames, ffmpeg=args.ffmpeg)

    print(f"[spectr] Decoding {args.input} …")
    t0 = time.time()
    raw = decode(args.input, decoder=decoder)
    elapsed = time.time() - t0
    print(f"[spectr]   {len(raw.samples)} samples @ {raw.stat.sample_rate} Hz "
          f"({raw.stat.bit_depth}-bit) in {elapsed:.1f}s")
    return raw


# ---------------------------------------------------------------------------
# Sub-command handlers
# ---------------------------------------------------------------------------

def _cmd_info(args):
    file_bytes = read_file(args.input)
    kind = detect_container(file_bytes)
    offset = locate(file_bytes, kind)
    stat = read_stats(file_bytes, offset)

    print(f"[spectr] {args.input}")
    print(f"[spectr]   container:    {kind.value}")
    print(f"[spectr]   frame offset: {offset}")
    print(f"[spectr]   sample rate:  {stat.sample_rate} Hz")
    print(f"[spectr]   bit depth:    {stat.bit_depth}")


def _cmd_decode(args):
    raw = _load_raw(args)
    out_path = _resolve_output(args.input, "pcm", args.output)
    with _open_output(out_path) as f:
        n = write_raw_audio(f, raw)
    print(f"[spectr] Wrote {n} bytes to {out_path}")


def _cmd_stft(args):
    raw = _load_raw(args)

    window_size = args.window_size
    if window_size is None:
        window_size = select_window_size(args.width, len(raw.samples))

    print(f"[spectr] Computing STFT (window {window_size}, overlap {args.overlap}) …")
    t0 = time.time()
    result = compute_stft(raw, window_size, args.overlap)
    elapsed = time.time() - t0
    print(f"[spectr]   {len(result.frames)} frames in {elapsed:.1f}s")
    print(f"[spectr]   duration: {duration_str(result.stat, result.source_sample_count)}")
    print(f"[spectr]   nyquist:  {nyquist_frequency_str(result.stat)}")

    if args.csv:
        matrix = spectrogram_matrix(result, log_scale=args.log)
        with _open_output(args.csv, "w", newline="") as f:
            writer = csv.writer(f)
            for row in matrix:
                writer.writerow(f"{v:.6f}" for v in row)
        print(f"[spectr] Wrote {args.csv}")


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def build_parser():
    """Construct and return the top-level :class:`ArgumentParser`."""
    parser = argparse.ArgumentParser(
        prog="spectr",
        description="Compute spectrograms of compressed audio files.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    parser.add_argument("--ffmpeg", default=FFMPEG_BINARY, help="ffmpeg executable (default: ffmpeg)")

    sub = parser.add_subparsers(dest="command", help="action")

    # --- info ---------------------------------------------------------------
    p_info = sub.add_parser(
        "info",
        help="Show stream parameters",
        description="Locate the first audio frame and print the stream parameters.",
    )
    p_info.add_argument("input", help="input audio file (MP3)")
    p_info.set_defaults(func=_cmd_info)

    # --- decode -------------------------------------------------------------
    p_dec = sub.add_parser(
        "decode",
        help="Decode to raw PCM",
        description="Decode to big-endian signed interleaved stereo PCM.",
    )
    p_dec.add_argument("input", help="input audio file (MP3)")
    p_dec.add_argument("-o", "--output", default=None, help="output PCM file (default: <input>.pcm)")
    p_dec.set_defaults(func=_cmd_decode)

    # --- stft ---------------------------------------------------------------
    p_stft = sub.add_parser(
        "stft",
        help="Short-Time Fourier Transform",
        description="Compute the STFT and optionally export a spectrogram matrix.",
    )
    p_stft.add_argument("input", help="input audio file (MP3)")
    p_stft.add_argument("--width", type=int, default=DEFAULT_PIXEL_WIDTH,
                        help=f"spectrogram width in pixels, used to pick the window size (default: {DEFAULT_PIXEL_WIDTH})")
    p_stft.add_argument("--window-size", type=int, default=None, help="FFT window size; must be a power of two")
    p_stft.add_argument("--overlap", type=int, default=DEFAULT_OVERLAP, help="samples shared by adjacent windows (default: 0)")
    p_stft.add_argument("--csv", default=None, help="write normalised magnitudes as CSV, one row per frame")
    p_stft.add_argument("--log", action="store_true", help="log-scale magnitudes before normalising")
    p_stft.set_defaults(func=_cmd_stft)

    return parser


def main(argv=None):
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except SpectrError as e:
        print(f"[spectr] error: {e}", file=sys.stderr)
        sys.exit(1)
