"""
ebl.errors

Exception types raised by the decoder and the WAV encoder.

Structural and truncation errors end the decode of one file only. The
caller decides whether to move on to the next file.
"""

from __future__ import annotations

__all__ = [
    "DecodeError",
    "StructuralError",
    "InvalidMagic",
    "InvalidChannelExtent",
    "TruncationError",
    "TruncatedRead",
    "TruncatedAudioData",
    "EncodeError",
]


class DecodeError(ValueError):
    """Base class for every failure raised while decoding an .ebl stream."""


class StructuralError(DecodeError):
    """The stream is malformed or uses an unsupported layout."""


class InvalidMagic(StructuralError):
    """A chunk marker at a fixed position does not match the expected literal."""

    def __init__(self, expected: bytes, actual: bytes, offset: int) -> None:
        self.expected = bytes(expected)
        self.actual = bytes(actual)
        self.offset = int(offset)
        super().__init__(
            f"Bad magic at offset {self.offset}: expected {self.expected!r}, "
            f"got {self.actual!r} (hex: {self.actual.hex()})"
        )


class InvalidChannelExtent(StructuralError):
    """The metadata words describe a channel with a negative byte length."""

    def __init__(self, channel: str, size: int) -> None:
        self.channel = channel
        self.size = int(size)
        super().__init__(f"Channel {channel} has a negative extent ({self.size} bytes)")


class TruncationError(DecodeError):
    """The stream ended before a fixed-size or declared-size field was read."""


class TruncatedRead(TruncationError):
    def __init__(self, field: str, offset: int, expected: int = 0, actual: int = 0) -> None:
        self.field = field
        self.offset = int(offset)
        self.expected = int(expected)
        self.actual = int(actual)
        super().__init__(
            f"Stream ended while reading {field} at offset {self.offset} "
            f"(read {self.actual} of {self.expected} bytes)"
        )


class TruncatedAudioData(TruncationError):
    def __init__(self, channel: str, expected: int, actual: int) -> None:
        self.channel = channel
        self.expected = int(expected)
        self.actual = int(actual)
        super().__init__(
            f"Channel {channel} audio data truncated: read {self.actual} of {self.expected} bytes"
        )


class EncodeError(ValueError):
    """Raised when a decoded sample cannot be represented as a PCM WAV file."""
