"""
ebl

Public API for the E-MU .ebl to WAV codec.

The package keeps a hard separation between:
- the binary .ebl decoder (ebl.decoder)
- the PCM WAV encoder and output naming (ebl.wav)
- file-level conversion policy (ebl.convert)

decode() and encode() are pure and stateless; only ebl.convert touches
the file system.
"""

from __future__ import annotations

__all__ = [
    "__version__",
    "decode",
    "decode_file",
    "encode",
    "encode_wav",
    "output_filename",
    "sanitize_filename",
    "NamingPolicy",
    "EncodedWav",
    "DecodedSample",
    "FrameHeaders",
    "Anomaly",
    "AnomalyKind",
    "ConvertOptions",
    "ConversionResult",
    "convert_file",
    "convert_files",
    "describe",
    "DecodeError",
    "StructuralError",
    "InvalidMagic",
    "InvalidChannelExtent",
    "TruncationError",
    "TruncatedRead",
    "TruncatedAudioData",
    "EncodeError",
]

__version__ = "1.0.0"


from .errors import (  # noqa: E402
    DecodeError,
    EncodeError,
    InvalidChannelExtent,
    InvalidMagic,
    StructuralError,
    TruncatedAudioData,
    TruncatedRead,
    TruncationError,
)
from .model import Anomaly, AnomalyKind, DecodedSample, FrameHeaders  # noqa: E402
from .decoder import decode, decode_file  # noqa: E402
from .wav import (  # noqa: E402
    EncodedWav,
    NamingPolicy,
    encode,
    encode_wav,
    output_filename,
    sanitize_filename,
)
from .convert import (  # noqa: E402
    ConversionResult,
    ConvertOptions,
    convert_file,
    convert_files,
    describe,
)
