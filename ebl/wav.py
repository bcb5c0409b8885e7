"""
ebl.wav

Encoder from DecodedSample to canonical 16-bit PCM RIFF/WAVE bytes.

The output is a 44-byte header (RIFF, a single 16-byte fmt chunk, data
chunk header) followed by the sample payload. Mono payloads are channel A
verbatim; stereo payloads interleave channel A and channel B frame by frame
because .ebl stores each channel contiguously.
"""

from __future__ import annotations

import os
import re
import struct
from dataclasses import dataclass
from typing import NamedTuple, Optional

import numpy as np

from .errors import EncodeError
from .model import DecodedSample

__all__ = [
    "WAV_HEADER",
    "NamingPolicy",
    "EncodedWav",
    "sanitize_filename",
    "output_filename",
    "interleave",
    "wav_payload",
    "build_header",
    "encode_wav",
    "encode",
]


# ===================== Header layout =====================

# RIFF id, RIFF size, WAVE id,
# fmt id, fmt size, format tag, channels, sample rate, byte rate, block align, bits,
# data id, data size
WAV_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")  # 44 bytes

FMT_CHUNK_SIZE = 16
FORMAT_PCM = 1
BITS_PER_SAMPLE = 16
BYTES_PER_SAMPLE = BITS_PER_SAMPLE // 8

# RIFF size = "WAVE" + fmt chunk (8 + 16) + data chunk header (8) + payload
RIFF_PREAMBLE = 4 + (8 + FMT_CHUNK_SIZE) + 8

_U32_MAX = 0xFFFFFFFF

SOURCE_EXTENSION = ".ebl"

_UNSAFE_CHARS = re.compile(r"[^0-9a-zA-Z.,:%\-_#]+")


# ===================== Naming =====================

@dataclass(frozen=True)
class NamingPolicy:
    """
    How the output file of an encoded sample is named.

    preserve_filename : keep the source file name (extension stripped)
        instead of the name embedded in the sample.
    prefix : optional collection name, rendered as ``"<prefix> - <name>"``.
    extension : output extension without the dot.
    """

    preserve_filename: bool = False
    prefix: Optional[str] = None
    extension: str = "wav"


def sanitize_filename(name: str) -> str:
    """
    Turn an embedded sample name into a safe file stem.

    A trailing ``.ebl`` extension is dropped, then every run of characters
    outside ``[0-9a-zA-Z.,:%-_#]`` becomes a single ``_``.
    """
    if name.lower().endswith(SOURCE_EXTENSION):
        name = name[: -len(SOURCE_EXTENSION)]
    return _UNSAFE_CHARS.sub("_", name)


def _strip_extension(name: Optional[str]) -> str:
    if not name:
        return ""
    return os.path.splitext(os.path.basename(name))[0]


def output_filename(sample: DecodedSample, policy: Optional[NamingPolicy] = None) -> str:
    """
    Resolve the output file name for ``sample``.

    Priority: the source name when the policy preserves it, then the
    metadata-block name, then the frame-header name, then the source name.
    """
    policy = policy or NamingPolicy()

    if policy.preserve_filename:
        base = _strip_extension(sample.source_name)
    else:
        base = sanitize_filename(sample.embedded_filename)
        if not base:
            base = sanitize_filename(sample.header_filename)
        if not base:
            base = _strip_extension(sample.source_name)

    if policy.prefix:
        base = f"{policy.prefix} - {base}"
    return f"{base}.{policy.extension}"


# ===================== Payload =====================

def interleave(channel_a: bytes, channel_b: bytes) -> bytes:
    """
    Interleave two contiguous 16-bit channels into L R L R ... frames.

    The frame count follows channel A. Right samples missing from a shorter
    channel B are written as silence.
    """
    n_frames = len(channel_a) // BYTES_PER_SAMPLE
    frames = np.zeros((n_frames, 2), dtype="<i2")
    if n_frames == 0:
        return b""
    frames[:, 0] = np.frombuffer(channel_a, dtype="<i2", count=n_frames)

    n_right = min(n_frames, len(channel_b) // BYTES_PER_SAMPLE)
    if n_right:
        frames[:n_right, 1] = np.frombuffer(channel_b, dtype="<i2", count=n_right)
    return frames.tobytes()


def wav_payload(sample: DecodedSample) -> bytes:
    if sample.is_stereo:
        return interleave(sample.channel_a_bytes, sample.channel_b_bytes)
    return sample.channel_a_bytes


def build_header(channels: int, sample_rate: int, data_size: int) -> bytes:
    """Pack the canonical 44-byte PCM WAV header."""
    if not 0 < sample_rate <= _U32_MAX:
        raise EncodeError(f"Sample rate out of range: {sample_rate}")
    byte_rate = sample_rate * channels * BYTES_PER_SAMPLE
    if byte_rate > _U32_MAX:
        raise EncodeError(f"Byte rate does not fit a WAV header: {byte_rate}")
    riff_size = RIFF_PREAMBLE + data_size
    if riff_size > _U32_MAX:
        raise EncodeError(f"Payload too large for a RIFF file: {data_size} bytes")

    return WAV_HEADER.pack(
        b"RIFF",
        riff_size,
        b"WAVE",
        b"fmt ",
        FMT_CHUNK_SIZE,
        FORMAT_PCM,
        channels,
        sample_rate,
        byte_rate,
        channels * BYTES_PER_SAMPLE,
        BITS_PER_SAMPLE,
        b"data",
        data_size,
    )


def encode_wav(sample: DecodedSample) -> bytes:
    """Serialize ``sample`` as a complete WAV file image."""
    payload = wav_payload(sample)
    header = build_header(sample.channels, int(sample.sample_rate), len(payload))
    return header + payload


class EncodedWav(NamedTuple):
    filename: str
    data: bytes


def encode(sample: DecodedSample, policy: Optional[NamingPolicy] = None) -> EncodedWav:
    """
    Encode ``sample`` and resolve its output name in one step.

    Raises
    ------
    EncodeError
        A header field does not fit the WAV format.
    """
    return EncodedWav(output_filename(sample, policy), encode_wav(sample))
