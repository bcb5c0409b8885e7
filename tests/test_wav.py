import io
import struct
import unittest
import wave
from typing import Optional

import numpy as np

from ebl.decoder import decode
from ebl.errors import EncodeError
from ebl.model import DecodedSample
from ebl.wav import (
    WAV_HEADER,
    NamingPolicy,
    build_header,
    encode,
    encode_wav,
    interleave,
    output_filename,
    sanitize_filename,
)

from ebl_builder import build_ebl, pcm


class TestInterleave(unittest.TestCase):
    def test_two_frames(self) -> None:
        left = b"\x01\x02" + b"\x03\x04"
        right = b"\x11\x12" + b"\x13\x14"
        self.assertEqual(interleave(left, right), b"\x01\x02\x11\x12\x03\x04\x13\x14")

    def test_short_right_channel_is_zero_filled(self) -> None:
        out = interleave(pcm([1, 2, 3]), pcm([9]))
        self.assertEqual(len(out), 3 * 4)
        np.testing.assert_array_equal(
            np.frombuffer(out, dtype="<i2").reshape(-1, 2),
            [[1, 9], [2, 0], [3, 0]],
        )

    def test_empty(self) -> None:
        self.assertEqual(interleave(b"", b""), b"")


class TestHeader(unittest.TestCase):
    def test_stereo_fields(self) -> None:
        header = build_header(2, 44100, 400)
        self.assertEqual(len(header), 44)
        fields = WAV_HEADER.unpack(header)
        self.assertEqual(
            fields,
            (b"RIFF", 436, b"WAVE", b"fmt ", 16, 1, 2, 44100, 176400, 4, 16, b"data", 400),
        )

    def test_mono_fields(self) -> None:
        riff, size, wave_id, fmt, fmt_size, tag, ch, sr, byte_rate, align, bits, data_id, data_size = (
            WAV_HEADER.unpack(build_header(1, 22050, 10))
        )
        self.assertEqual((ch, sr, byte_rate, align, bits), (1, 22050, 44100, 2, 16))
        self.assertEqual(size, 36 + 10)

    def test_out_of_range_values(self) -> None:
        with self.assertRaises(EncodeError):
            build_header(1, 0, 10)
        with self.assertRaises(EncodeError):
            build_header(2, 44100, 0xFFFFFFFF)


class TestEncode(unittest.TestCase):
    def test_mono_round_trip(self) -> None:
        rng = np.random.default_rng(1)
        audio = pcm(rng.integers(-32768, 32768, size=257, dtype=np.int16))
        sample = decode(build_ebl(audio, sample_rate=44100))

        out, sr, ch = _read_wav(encode_wav(sample))

        self.assertEqual(sr, 44100)
        self.assertEqual(ch, 1)
        self.assertEqual(out, audio)

    def test_stereo_round_trip(self) -> None:
        t = np.arange(128, dtype=np.float64)
        left = (np.sin(t / 5.0) * 12000).astype(np.int16)
        right = (np.cos(t / 7.0) * 9000).astype(np.int16)
        sample = decode(build_ebl(pcm(left), pcm(right), sample_rate=32000))

        data = encode_wav(sample)
        out, sr, ch = _read_wav(data)

        self.assertEqual(sr, 32000)
        self.assertEqual(ch, 2)
        self.assertEqual(len(data), 44 + 128 * 4)
        frames = np.frombuffer(out, dtype="<i2").reshape(-1, 2)
        np.testing.assert_array_equal(frames[:, 0], left)
        np.testing.assert_array_equal(frames[:, 1], right)

    def test_encode_returns_name_and_bytes(self) -> None:
        sample = _sample(pcm([1, 2]), name="Hat Open")
        wav = encode(sample)
        self.assertEqual(wav.filename, "Hat_Open.wav")
        self.assertEqual(wav.data, encode_wav(sample))
        self.assertEqual(struct.unpack_from("<I", wav.data, 40)[0], 4)


class TestNaming(unittest.TestCase):
    def test_sanitize(self) -> None:
        self.assertEqual(sanitize_filename("Pad/1:Warm*.ebl"), "Pad_1:Warm_")
        self.assertEqual(sanitize_filename("A,B.C%D-E_F#G"), "A,B.C%D-E_F#G")
        self.assertEqual(sanitize_filename("two  spaces"), "two_spaces")

    def test_prefers_metadata_block_name(self) -> None:
        sample = _sample(pcm([1]), name="Bass C2", header_name="Other", source_name="000123.ebl")
        self.assertEqual(output_filename(sample), "Bass_C2.wav")

    def test_falls_back_to_header_name(self) -> None:
        sample = _sample(pcm([1]), name="", header_name="Bass C2", source_name="000123.ebl")
        self.assertEqual(output_filename(sample), "Bass_C2.wav")

    def test_falls_back_to_source_name(self) -> None:
        sample = _sample(pcm([1]), name="", header_name="", source_name="000123.ebl")
        self.assertEqual(output_filename(sample), "000123.wav")

    def test_preserve_source_name(self) -> None:
        sample = _sample(pcm([1]), name="Bass C2", source_name="000123.ebl")
        policy = NamingPolicy(preserve_filename=True)
        self.assertEqual(output_filename(sample, policy), "000123.wav")

    def test_prefix(self) -> None:
        sample = _sample(pcm([1]), name="Bass C2")
        policy = NamingPolicy(prefix="Vintage Keys")
        self.assertEqual(output_filename(sample, policy), "Vintage Keys - Bass_C2.wav")

    def test_naming_is_idempotent(self) -> None:
        sample = _sample(pcm([1, 2]), name="Pad/1:Warm*")
        policy = NamingPolicy(prefix="Bank")
        self.assertEqual(encode(sample, policy).filename, encode(sample, policy).filename)


def _sample(
    channel_a: bytes,
    channel_b: bytes = b"",
    *,
    name: str = "Kick 01",
    header_name: Optional[str] = None,
    source_name: Optional[str] = None,
    sample_rate: int = 44100,
) -> DecodedSample:
    words = (301, 0, 0, 0, 0, 0, 0, 0, 0, sample_rate, 0, 0)
    return DecodedSample(
        declared_total_size=0,
        bytes_consumed=0,
        header_filename=name if header_name is None else header_name,
        embedded_filename=name,
        embedded_comment="",
        words=words,
        channel_a_bytes=channel_a,
        channel_b_bytes=channel_b,
        source_name=source_name,
    )


def _read_wav(data: bytes) -> tuple[bytes, int, int]:
    with wave.open(io.BytesIO(data), "rb") as wf:
        ch = wf.getnchannels()
        sr = wf.getframerate()
        raw = wf.readframes(wf.getnframes())
    return raw, int(sr), int(ch)


if __name__ == "__main__":
    unittest.main()
