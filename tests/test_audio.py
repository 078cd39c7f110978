"""Tests for spectr.audio – PCM materialisation and the ffmpeg collaborator."""

import io
import math
import os
import struct
import subprocess
import tempfile
import unittest
import wave
from unittest.mock import MagicMock, patch

from spectr.audio import (
    copy_raw_audio,
    copy_window,
    decode,
    decode_frames,
    mono_sample,
    samples_from_pcm,
    to_mono,
    to_pcm,
    write_raw_audio,
)
from spectr.bitwise import to_synchsafe_int32
from spectr.errors import AudioIOError, InvalidInputError, LibraryError, OutOfMemoryError
from spectr.types import ContainerKind, RawAudio, StereoSample, StreamStat

STAT_16 = StreamStat(ContainerKind.MP3, 16, 44100)


def _mp3_bytes(tag_size=32):
    """A fake MP3: an ID3v2 tag followed by one MPEG1 44.1 kHz frame header."""
    tag = b"ID3\x04\x00\x00" + to_synchsafe_int32(tag_size) + b"\x00" * tag_size
    return tag + b"\xff\xfb\x90\x44" + b"\x00" * 64


def _pcm16(pairs):
    return b"".join(struct.pack(">hh", l, r) for l, r in pairs)


class TestSamplesFromPCM(unittest.TestCase):
    def test_16_bit_big_endian(self):
        samples = samples_from_pcm(b"\x00\x01\xff\xfe\x12\x34\x80\x00", 16)
        self.assertEqual(samples, (StereoSample(1, -2), StereoSample(0x1234, -32768)))

    def test_24_bit_sign_extension(self):
        samples = samples_from_pcm(b"\x80\x00\x00\x7f\xff\xff", 24)
        self.assertEqual(samples, (StereoSample(-8388608, 8388607),))

    def test_8_and_32_bit(self):
        self.assertEqual(samples_from_pcm(b"\x7f\x80", 8), (StereoSample(127, -128),))
        buf = struct.pack(">ii", -5, 2**31 - 1)
        self.assertEqual(samples_from_pcm(buf, 32), (StereoSample(-5, 2**31 - 1),))

    def test_empty(self):
        self.assertEqual(samples_from_pcm(b"", 16), ())

    def test_length_not_multiple_of_frame(self):
        with self.assertRaises(InvalidInputError):
            samples_from_pcm(b"\x00" * 6, 16)
        with self.assertRaises(InvalidInputError):
            samples_from_pcm(b"\x00" * 9, 24)

    def test_bad_bit_depth(self):
        for depth in (0, 12, -16):
            with self.assertRaises(InvalidInputError):
                samples_from_pcm(b"\x00" * 4, depth)

    def test_memory_error_becomes_out_of_memory(self):
        with patch("spectr.audio.struct.iter_unpack", side_effect=MemoryError):
            with self.assertRaises(OutOfMemoryError) as ctx:
                samples_from_pcm(b"\x00" * 8, 16)
        self.assertIsNone(ctx.exception.__cause__)
        self.assertTrue(ctx.exception.__suppress_context__)
        self.assertIsInstance(ctx.exception, MemoryError)

    def test_memory_error_on_24_bit_path(self):
        with patch("spectr.audio._read_be", side_effect=MemoryError):
            with self.assertRaises(OutOfMemoryError):
                samples_from_pcm(b"\x00" * 12, 24)


class TestToPCM(unittest.TestCase):
    def test_16_bit(self):
        raw = RawAudio(STAT_16, (StereoSample(1, -2), StereoSample(300, 0)))
        self.assertEqual(to_pcm(raw), b"\x00\x01\xff\xfe\x01\x2c\x00\x00")

    def test_24_bit_inverse(self):
        buf = b"\x80\x00\x00\x7f\xff\xff\x00\x00\x01\xff\xff\xff"
        stat = StreamStat(ContainerKind.MP3, 24, 48000)
        raw = RawAudio(stat, samples_from_pcm(buf, 24))
        self.assertEqual(to_pcm(raw), buf)

    def test_out_of_range_sample(self):
        raw = RawAudio(STAT_16, (StereoSample(40000, 0),))
        with self.assertRaises(InvalidInputError):
            to_pcm(raw)

    def test_out_of_range_24_bit_sample(self):
        stat = StreamStat(ContainerKind.MP3, 24, 48000)
        raw = RawAudio(stat, (StereoSample(0, -(2**23) - 1),))
        with self.assertRaises(InvalidInputError):
            to_pcm(raw)

    def test_write_raw_audio(self):
        raw = RawAudio(STAT_16, (StereoSample(-1, 1),))
        out = io.BytesIO()
        self.assertEqual(write_raw_audio(out, raw), 4)
        self.assertEqual(out.getvalue(), b"\xff\xff\x00\x01")


class TestMono(unittest.TestCase):
    def test_average_floors(self):
        self.assertEqual(mono_sample(StereoSample(3, 4)), 3)
        self.assertEqual(mono_sample(StereoSample(-3, -4)), -4)
        self.assertEqual(mono_sample(StereoSample(-8, -8)), -8)

    def test_no_overflow_at_extremes(self):
        top = 2**31 - 1
        self.assertEqual(mono_sample(StereoSample(top, top)), top)
        self.assertEqual(mono_sample(StereoSample(-2**31, -2**31)), -2**31)

    def test_to_mono(self):
        raw = RawAudio(STAT_16, (StereoSample(2, 4), StereoSample(-1, 1)))
        self.assertEqual(to_mono(raw), [3, 0])


class TestCopyWindow(unittest.TestCase):
    def setUp(self):
        self.raw = RawAudio(STAT_16, tuple(StereoSample(i, -i) for i in range(10)))

    def test_window_contents(self):
        win = copy_window(self.raw, 3, 4)
        self.assertEqual([s.left for s in win.samples], [3, 4, 5, 6])
        self.assertEqual(win.stat, self.raw.stat)

    def test_independent_copy(self):
        win = copy_window(self.raw, 0, 5)
        self.assertIsNot(win, self.raw)
        self.assertEqual(len(self.raw), 10)
        self.assertEqual(len(win), 5)

    def test_full_copy(self):
        self.assertEqual(copy_raw_audio(self.raw), self.raw)

    def test_empty_window(self):
        self.assertEqual(len(copy_window(self.raw, 10, 0)), 0)

    def test_out_of_range(self):
        for offset, length in ((8, 4), (-1, 2), (0, -1), (11, 0)):
            with self.assertRaises(InvalidInputError, msg=(offset, length)):
                copy_window(self.raw, offset, length)


class TestDecode(unittest.TestCase):
    """decode() with an injected codec collaborator."""

    def setUp(self):
        fd, self.path = tempfile.mkstemp(suffix=".mp3")
        os.close(fd)

    def tearDown(self):
        os.unlink(self.path)

    def _write(self, data):
        with open(self.path, "wb") as f:
            f.write(data)

    def test_decode_with_fake_codec(self):
        self._write(_mp3_bytes(tag_size=32))
        decoder = MagicMock(return_value=_pcm16([(1, 2), (-3, -4), (5, 6)]))

        raw = decode(self.path, decoder=decoder)

        decoder.assert_called_once_with(self.path, 42)
        self.assertEqual(raw.stat, STAT_16)
        self.assertEqual(raw.samples, (StereoSample(1, 2), StereoSample(-3, -4), StereoSample(5, 6)))

    def test_decode_rejects_partial_frame(self):
        self._write(_mp3_bytes())
        decoder = MagicMock(return_value=b"\x00" * 10)
        with self.assertRaises(InvalidInputError):
            decode(self.path, decoder=decoder)

    def test_decode_without_frames_never_calls_codec(self):
        self._write(b"\x00" * 128)
        decoder = MagicMock()
        with self.assertRaises(InvalidInputError):
            decode(self.path, decoder=decoder)
        decoder.assert_not_called()

    def test_decode_missing_file(self):
        with self.assertRaises(AudioIOError):
            decode(self.path + ".missing", decoder=MagicMock())

    def test_codec_errors_propagate(self):
        self._write(_mp3_bytes())
        decoder = MagicMock(side_effect=LibraryError("boom"))
        with self.assertRaises(LibraryError):
            decode(self.path, decoder=decoder)

    def test_default_codec_is_decode_frames(self):
        self._write(_mp3_bytes(tag_size=0))
        with patch("spectr.audio.decode_frames", return_value=_pcm16([(7, 7)])) as fake:
            raw = decode(self.path)
        fake.assert_called_once_with(self.path, 10)
        self.assertEqual(raw.samples, (StereoSample(7, 7),))

    def test_frame_offset_located_once(self):
        self._write(b"\x01" * 40 + b"\xff\xfb\x90\x44" + b"\x00" * 64)
        decoder = MagicMock(return_value=_pcm16([(0, 0)]))
        with patch("spectr.stat.locate_frame_offset",
                   side_effect=AssertionError("located twice")):
            raw = decode(self.path, decoder=decoder)
        decoder.assert_called_once_with(self.path, 40)
        self.assertEqual(raw.stat, STAT_16)


class TestDecodeFrames(unittest.TestCase):
    """decode_frames() with subprocess.run mocked out."""

    def setUp(self):
        fd, self.path = tempfile.mkstemp(suffix=".mp3")
        os.close(fd)
        with open(self.path, "wb") as f:
            f.write(_mp3_bytes(tag_size=32))

    def tearDown(self):
        os.unlink(self.path)

    def test_pipes_frames_into_ffmpeg(self):
        with patch("spectr.audio.subprocess.run") as run:
            run.return_value = MagicMock(stdout=b"\x00\x01\x00\x02")
            pcm = decode_frames(self.path, 42)

        self.assertEqual(pcm, b"\x00\x01\x00\x02")
        cmd = run.call_args[0][0]
        self.assertEqual(cmd[0], "ffmpeg")
        self.assertIn("s16be", cmd)
        self.assertEqual(cmd[cmd.index("-f") + 1], "mp3")
        self.assertTrue(run.call_args[1]["input"].startswith(b"\xff\xfb"))

    def test_custom_binary(self):
        with patch("spectr.audio.subprocess.run") as run:
            run.return_value = MagicMock(stdout=b"")
            decode_frames(self.path, 42, ffmpeg="/opt/ffmpeg/bin/ffmpeg")
        self.assertEqual(run.call_args[0][0][0], "/opt/ffmpeg/bin/ffmpeg")

    def test_missing_ffmpeg(self):
        with patch("spectr.audio.subprocess.run", side_effect=FileNotFoundError):
            with self.assertRaises(LibraryError):
                decode_frames(self.path, 42)

    def test_ffmpeg_failure(self):
        err = subprocess.CalledProcessError(1, ["ffmpeg"], stderr=b"Invalid data")
        with patch("spectr.audio.subprocess.run", side_effect=err):
            with self.assertRaises(LibraryError) as ctx:
                decode_frames(self.path, 42)
        self.assertIn("Invalid data", str(ctx.exception))

    def test_offset_out_of_range(self):
        with self.assertRaises(InvalidInputError):
            decode_frames(self.path, 10_000)

    def test_kind_without_codec(self):
        with self.assertRaises(InvalidInputError):
            decode_frames(self.path, 42, kind=ContainerKind.INVALID)


class TestDecodeWithFFmpeg(unittest.TestCase):
    """End-to-end decode of a real MP3 produced by ffmpeg, if available."""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        wav_path = os.path.join(self.tmpdir, "tone.wav")
        self.mp3_path = os.path.join(self.tmpdir, "tone.mp3")

        sr = 44100
        frames = bytearray()
        for i in range(sr // 2):
            v = int(0.5 * 32767 * math.sin(2 * math.pi * 440 * i / sr))
            frames.extend(struct.pack("<hh", v, v))
        with wave.open(wav_path, "wb") as wf:
            wf.setnchannels(2)
            wf.setsampwidth(2)
            wf.setframerate(sr)
            wf.writeframes(bytes(frames))

        try:
            subprocess.run(
                ["ffmpeg", "-y", "-i", wav_path, "-codec:a", "libmp3lame", self.mp3_path],
                capture_output=True,
                check=True,
            )
            self.ffmpeg_available = True
        except (FileNotFoundError, subprocess.CalledProcessError):
            self.ffmpeg_available = False

    def tearDown(self):
        for f in os.listdir(self.tmpdir):
            os.unlink(os.path.join(self.tmpdir, f))
        os.rmdir(self.tmpdir)

    def test_decode_real_mp3(self):
        if not self.ffmpeg_available:
            self.skipTest("ffmpeg with an MP3 encoder not available")

        raw = decode(self.mp3_path)
        self.assertEqual(raw.stat.sample_rate, 44100)
        self.assertEqual(raw.stat.bit_depth, 16)
        self.assertGreater(len(raw.samples), 44100 // 4)
        peak = max(abs(s.left) for s in raw.samples)
        self.assertGreater(peak, 8000)


if __name__ == "__main__":
    unittest.main()
