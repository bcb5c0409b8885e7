#!/usr/bin/env python3
"""
ebl.decoder

Binary decoder for E-MU .ebl sample files.

An .ebl file is a chain of framed chunks followed by raw 16-bit PCM:

    FORM      [4s][u32 BE remaining size]
    E5B0TOC2  [8s][u32 BE next header size]
    E5S1      [4s][u32 BE data size][u32 BE data offset][2 zero bytes][64 B UTF-16LE name]
    (padding up to data offset, which may already hold the next E5S1 header)
    E5S1      [4s][u32 BE size][6 opaque bytes]
    metadata  [64 B UTF-16LE name][12 x u32 LE][64 B UTF-16LE comment]
    (padding)
    channel A bytes, channel B bytes
    (optional trailer)

This module is stateless: decode() reads one stream and returns one
DecodedSample. File-system policy (where outputs go, what to do with
broken inputs) lives in ebl.convert.

Typical usage:

    from ebl.decoder import decode_file

    sample = decode_file("Kick 01.ebl")
    print(sample.embedded_filename, sample.sample_rate, sample.channels)
"""

from __future__ import annotations

import io
import logging
import os
import struct
from typing import BinaryIO, List, Optional, Tuple, Union

from .errors import (
    InvalidChannelExtent,
    InvalidMagic,
    TruncatedAudioData,
    TruncatedRead,
)
from .model import Anomaly, AnomalyKind, DecodedSample, FrameHeaders

__all__ = [
    "MAGIC_FORM",
    "MAGIC_TOC",
    "MAGIC_CHUNK",
    "TRAILER_SIZE",
    "EXTRA_HEADER_SIZE",
    "channel_extents",
    "decode",
    "decode_file",
]

logger = logging.getLogger(__name__)


# ===================== Layout constants =====================

MAGIC_FORM = b"FORM"
MAGIC_TOC = b"E5B0TOC2"
MAGIC_CHUNK = b"E5S1"

FORM_HEADER = struct.Struct(">4sI")            # 8 bytes
TOC_HEADER = struct.Struct(">8sI")             # 12 bytes
FRAME_HEADER = struct.Struct(">4sII2s64s")     # 78 bytes
CHUNK_HEADER = struct.Struct(">4sI6s")         # 14 bytes
METADATA_BLOCK = struct.Struct("<64s12I64s")   # 176 bytes

# The FORM size field counts everything after its own 8-byte frame.
FORM_FRAME_SIZE = FORM_HEADER.size

# Constant subtracted from v5 when computing the gap before the audio payload.
PRE_AUDIO_BIAS = 178

# Known remainders after the audio payload.
TRAILER_SIZE = 4
EXTRA_HEADER_SIZE = 40

_SKIP_BLOCK = 64 * 1024

SourceLike = Union[BinaryIO, bytes, bytearray, memoryview]


# ===================== Stream reader =====================

class _Reader:
    """
    Sequential reader that keeps ``offset`` equal to the number of bytes
    actually pulled from the underlying stream.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self.offset = 0

    def read_upto(self, n: int) -> bytes:
        """Read up to n bytes, stopping early only at end of stream."""
        if n <= 0:
            return b""
        parts: List[bytes] = []
        remaining = n
        while remaining > 0:
            block = self._stream.read(remaining)
            if not block:
                break
            parts.append(block)
            remaining -= len(block)
        data = b"".join(parts)
        self.offset += len(data)
        return data

    def read(self, n: int, what: str) -> bytes:
        start = self.offset
        data = self.read_upto(n)
        if len(data) != n:
            raise TruncatedRead(what, start, expected=n, actual=len(data))
        return data

    def unpack(self, layout: struct.Struct, what: str) -> tuple:
        return layout.unpack(self.read(layout.size, what))

    def skip(self, n: int, what: str) -> None:
        start = self.offset
        remaining = n
        while remaining > 0:
            got = len(self.read_upto(min(remaining, _SKIP_BLOCK)))
            if got == 0:
                raise TruncatedRead(what, start, expected=n, actual=n - remaining)
            remaining -= got


def _expect_magic(actual: bytes, expected: bytes, offset: int) -> None:
    if actual != expected:
        logger.debug("Bad magic at %d: expected %r, got %r", offset, expected, actual)
        raise InvalidMagic(expected, actual, offset)


def _decode_utf16(raw: bytes) -> str:
    """Decode a fixed-width UTF-16LE text field, dropping the trailing NUL padding."""
    if len(raw) % 2:
        raw = raw[:-1]
    return raw.decode("utf-16-le", errors="replace").rstrip("\x00")


# ===================== Header stages =====================

def _read_second_chunk_header(reader: _Reader, padding: int) -> Tuple[int, bytes, bool]:
    """
    Consume the alignment gap and the second E5S1 header.

    Some files start the second E5S1 header inside the padding run. The gap
    is always consumed whole, then its first bytes are inspected once: if
    they carry the E5S1 marker, the marker (and the size field, when the gap
    holds at least 8 bytes) is taken from the gap and only the rest of the
    header is read after it. The 6 opaque bytes always follow the gap.

    Returns (size, opaque, found_in_padding).
    """
    gap = reader.read(padding, "alignment padding") if padding > 0 else b""
    magic_len = len(MAGIC_CHUNK)

    if gap[:magic_len] == MAGIC_CHUNK:
        logger.debug("Second E5S1 header found inside %d bytes of padding", padding)
        if len(gap) >= magic_len + 4:
            (size,) = struct.unpack(">I", gap[magic_len:magic_len + 4])
        else:
            (size,) = struct.unpack(">I", reader.read(4, "second frame header size"))
        opaque = reader.read(6, "second frame header data")
        return size, opaque, True

    if gap:
        logger.debug("Discarded %d bytes of padding", padding)
    header_start = reader.offset
    prefix, size, opaque = reader.unpack(CHUNK_HEADER, "second frame header")
    _expect_magic(prefix, MAGIC_CHUNK, header_start)
    return size, opaque, False


def channel_extents(v2: int, v3: int, v4: int, v5: int) -> Tuple[int, int, bool]:
    """
    Derive the byte length of channel A and channel B from metadata words v2..v5.

    A zero-length channel A range marks a mono sample, whose single channel
    spans ``v4 - v3 + 2`` bytes.

    Returns (size_a, size_b, mono).
    """
    size_a = v3 - v2
    size_b = v5 - v4
    if size_a == 0:
        return v4 - v3 + 2, 0, True
    return size_a, size_b, False


# ===================== Public API =====================

def decode(source: SourceLike, *, source_name: Optional[str] = None) -> DecodedSample:
    """
    Decode one .ebl stream.

    Parameters
    ----------
    source : binary file object or bytes-like
        Stream positioned at the FORM marker. Buffers are wrapped in BytesIO.
    source_name : str, optional
        Basename of the source file, kept for output naming.

    Returns
    -------
    DecodedSample

    Raises
    ------
    InvalidMagic, InvalidChannelExtent
        The stream is not a supported .ebl layout.
    TruncatedRead, TruncatedAudioData
        The stream ends before a header field or the declared audio payload.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        source = io.BytesIO(bytes(source))

    reader = _Reader(source)
    anomalies: List[Anomaly] = []

    def advise(kind: AnomalyKind, message: str) -> None:
        logger.warning("%s: %s", source_name or "<stream>", message)
        anomalies.append(Anomaly(kind, message))

    # FORM
    prefix, form_size = reader.unpack(FORM_HEADER, "FORM header")
    _expect_magic(prefix, MAGIC_FORM, 0)
    declared_total = form_size + FORM_FRAME_SIZE
    logger.debug("FORM size %d (declared total %d)", form_size, declared_total)

    # Table of contents
    offset = reader.offset
    prefix, toc_next = reader.unpack(TOC_HEADER, "TOC header")
    _expect_magic(prefix, MAGIC_TOC, offset)
    logger.debug("TOC next header size %d", toc_next)

    # Metadata-frame header
    offset = reader.offset
    prefix, data_size, data_offset, _zeros, raw_name = reader.unpack(FRAME_HEADER, "metadata frame header")
    _expect_magic(prefix, MAGIC_CHUNK, offset)
    header_filename = _decode_utf16(raw_name)
    logger.debug("Frame header: data_size=%d data_offset=%d name=%r", data_size, data_offset, header_filename)

    # Alignment gap and second frame header
    padding = max(0, data_offset - reader.offset)
    chunk_size, chunk_opaque, in_padding = _read_second_chunk_header(reader, padding)
    logger.debug("Second frame header: size=%d opaque=%s", chunk_size, chunk_opaque.hex())

    # Fixed metadata block
    fields = reader.unpack(METADATA_BLOCK, "metadata block")
    embedded_filename = _decode_utf16(fields[0])
    words = tuple(int(v) for v in fields[1:13])
    embedded_comment = _decode_utf16(fields[13])

    if embedded_filename != header_filename:
        advise(
            AnomalyKind.FILENAME_MISMATCH,
            f"Filename mismatch: frame header {header_filename!r}, metadata block {embedded_filename!r}",
        )

    v2, v3, v4, v5 = words[1:5]
    logger.debug("Metadata words: %s", ", ".join(f"v{i + 1}={v}" for i, v in enumerate(words)))

    # Channel extents
    size_a, size_b, mono = channel_extents(v2, v3, v4, v5)
    if size_a < 0:
        raise InvalidChannelExtent("A", size_a)
    if size_b < 0:
        raise InvalidChannelExtent("B", size_b)
    if mono:
        logger.debug("Mono sample, channel A spans %d bytes", size_a)
    elif size_a != size_b and size_b:
        advise(
            AnomalyKind.CHANNEL_LENGTH_MISMATCH,
            f"Channels have different lengths: A={size_a}, B={size_b}",
        )

    pre_audio = v5 - (size_a + size_b) - PRE_AUDIO_BIAS
    if pre_audio > 0:
        logger.debug("Discarding %d bytes before audio data", pre_audio)
        reader.skip(pre_audio, "pre-audio padding")

    # Audio payload
    channel_a = reader.read_upto(size_a)
    if len(channel_a) != size_a:
        raise TruncatedAudioData("A", size_a, len(channel_a))
    channel_b = reader.read_upto(size_b)
    if len(channel_b) != size_b:
        raise TruncatedAudioData("B", size_b, len(channel_b))

    # Trailer
    remaining = declared_total - reader.offset
    if remaining == TRAILER_SIZE:
        trailer = reader.read_upto(TRAILER_SIZE)
        if len(trailer) == TRAILER_SIZE:
            logger.debug("Read %d-byte trailer: %s", TRAILER_SIZE, trailer.hex())
        else:
            advise(
                AnomalyKind.SHORT_TRAILER,
                f"Expected a {TRAILER_SIZE}-byte trailer, stream ended after {len(trailer)} bytes",
            )
    elif remaining == EXTRA_HEADER_SIZE:
        advise(AnomalyKind.EXTRA_HEADER, f"Found {EXTRA_HEADER_SIZE} trailing bytes (additional data header)")
    elif remaining != 0:
        advise(
            AnomalyKind.SIZE_MISMATCH,
            f"Inconsistent file size: read {reader.offset}, declared {declared_total}, difference {remaining}",
        )

    headers = FrameHeaders(
        form_size=form_size,
        toc_next_header_size=toc_next,
        data_size=data_size,
        data_offset=data_offset,
        padding=padding,
        chunk_size=chunk_size,
        chunk_opaque=chunk_opaque,
        chunk_in_padding=in_padding,
        pre_audio_padding=max(0, pre_audio),
    )

    return DecodedSample(
        declared_total_size=declared_total,
        bytes_consumed=reader.offset,
        header_filename=header_filename,
        embedded_filename=embedded_filename,
        embedded_comment=embedded_comment,
        words=words,
        channel_a_bytes=channel_a,
        channel_b_bytes=channel_b,
        headers=headers,
        source_name=source_name,
        anomalies=tuple(anomalies),
    )


def decode_file(path: str) -> DecodedSample:
    """Open ``path`` and decode it, keeping its basename for output naming."""
    with open(path, "rb") as f:
        return decode(f, source_name=os.path.basename(path))
