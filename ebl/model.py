"""
ebl.model

In-memory records shared by the decoder and the WAV encoder.

A DecodedSample is produced by exactly one decode() call and consumed by
exactly one encode() call. It is frozen and owns its channel buffers as
immutable bytes, so nothing can alias or mutate them after decoding.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional, Tuple

__all__ = [
    "METADATA_WORD_COUNT",
    "SAMPLE_RATE_WORD",
    "AnomalyKind",
    "Anomaly",
    "FrameHeaders",
    "DecodedSample",
]

# The fixed metadata block carries twelve little-endian u32 words.
# Only v2..v5 (channel extents) and v10 (sample rate) are understood.
METADATA_WORD_COUNT = 12
SAMPLE_RATE_WORD = 9  # zero-based index of v10


class AnomalyKind(enum.Enum):
    FILENAME_MISMATCH = "filename_mismatch"
    CHANNEL_LENGTH_MISMATCH = "channel_length_mismatch"
    EXTRA_HEADER = "extra_header"
    SIZE_MISMATCH = "size_mismatch"
    SHORT_TRAILER = "short_trailer"


@dataclass(frozen=True)
class Anomaly:
    """An irregularity that did not prevent decoding."""

    kind: AnomalyKind
    message: str


@dataclass(frozen=True)
class FrameHeaders:
    """Bookkeeping values read from the chunk headers in front of the metadata block."""

    form_size: int
    toc_next_header_size: int
    data_size: int
    data_offset: int
    padding: int
    chunk_size: int
    chunk_opaque: bytes
    chunk_in_padding: bool
    pre_audio_padding: int = 0


@dataclass(frozen=True)
class DecodedSample:
    declared_total_size: int
    bytes_consumed: int
    header_filename: str
    embedded_filename: str
    embedded_comment: str
    words: Tuple[int, ...]
    channel_a_bytes: bytes
    channel_b_bytes: bytes
    headers: Optional[FrameHeaders] = None
    source_name: Optional[str] = None
    anomalies: Tuple[Anomaly, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if len(self.words) != METADATA_WORD_COUNT:
            raise ValueError(
                f"Expected {METADATA_WORD_COUNT} metadata words, got {len(self.words)}"
            )

    # ---- load-bearing metadata words ----

    @property
    def data_range_start_a(self) -> int:
        return self.words[1]

    @property
    def data_range_end_a(self) -> int:
        return self.words[2]

    @property
    def data_range_start_b(self) -> int:
        return self.words[3]

    @property
    def data_range_end_b(self) -> int:
        return self.words[4]

    @property
    def sample_rate(self) -> int:
        return self.words[SAMPLE_RATE_WORD]

    # ---- channel layout ----

    @property
    def is_stereo(self) -> bool:
        return len(self.channel_b_bytes) > 0

    @property
    def channels(self) -> int:
        return 2 if self.is_stereo else 1

    @property
    def frame_count(self) -> int:
        return len(self.channel_a_bytes) // 2

    @property
    def trailing_bytes(self) -> int:
        """Declared bytes left unread after decoding (0 for a fully consumed stream)."""
        return self.declared_total_size - self.bytes_consumed

    def has_anomaly(self, kind: AnomalyKind) -> bool:
        return any(a.kind is kind for a in self.anomalies)
