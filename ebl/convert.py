"""
ebl.convert

File-level conversion: read one .ebl file, write one .wav file.

This is the only module that touches the file system on behalf of the
codec. It never walks directories; callers pass explicit file paths.
A failing file is reported in its ConversionResult and never stops the
remaining files.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .decoder import decode_file
from .errors import DecodeError, EncodeError
from .model import DecodedSample
from .wav import NamingPolicy, encode

__all__ = ["ConvertOptions", "ConversionResult", "describe", "convert_file", "convert_files"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConvertOptions:
    naming: NamingPolicy = field(default_factory=NamingPolicy)
    dry_run: bool = False
    save_errors: bool = False
    error_dir_name: str = "errors"


@dataclass
class ConversionResult:
    source: str
    output: Optional[str] = None
    info: Optional[Dict[str, object]] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def describe(sample: DecodedSample) -> Dict[str, object]:
    """JSON-friendly summary of a decoded sample (header values, layout, anomalies)."""
    info: Dict[str, object] = {
        "source": sample.source_name,
        "filename": sample.embedded_filename,
        "header_filename": sample.header_filename,
        "comment": sample.embedded_comment,
        "sample_rate": int(sample.sample_rate),
        "channels": sample.channels,
        "frames": sample.frame_count,
        "channel_a_bytes": len(sample.channel_a_bytes),
        "channel_b_bytes": len(sample.channel_b_bytes),
        "declared_total_size": sample.declared_total_size,
        "bytes_consumed": sample.bytes_consumed,
        "words": [int(w) for w in sample.words],
        "anomalies": [{"kind": a.kind.value, "message": a.message} for a in sample.anomalies],
    }
    if sample.headers is not None:
        h = sample.headers
        info["headers"] = {
            "form_size": h.form_size,
            "toc_next_header_size": h.toc_next_header_size,
            "data_size": h.data_size,
            "data_offset": h.data_offset,
            "padding": h.padding,
            "chunk_size": h.chunk_size,
            "chunk_opaque": h.chunk_opaque.hex(),
            "chunk_in_padding": h.chunk_in_padding,
            "pre_audio_padding": h.pre_audio_padding,
        }
    return info


def _save_error_file(path: str, error_dir: str) -> None:
    try:
        os.makedirs(error_dir, exist_ok=True)
        shutil.copyfile(path, os.path.join(error_dir, os.path.basename(path)))
    except OSError as exc:
        logger.error("Could not copy %s to %s: %s", path, error_dir, exc)


def convert_file(path: str, out_dir: str, options: Optional[ConvertOptions] = None) -> ConversionResult:
    """
    Convert one .ebl file into ``out_dir``.

    Decode and encode failures are logged and returned in the result. With
    ``save_errors`` the failing source is copied to ``out_dir/errors``.
    With ``dry_run`` nothing is written; the result still names the output.
    """
    options = options or ConvertOptions()
    result = ConversionResult(source=path)

    try:
        sample = decode_file(path)
        result.info = describe(sample)
        wav = encode(sample, options.naming)
    except (DecodeError, EncodeError, OSError) as exc:
        logger.error("Failed to convert %s: %s", os.path.basename(path), exc)
        result.error = exc
        if options.save_errors and not options.dry_run and not isinstance(exc, OSError):
            _save_error_file(path, os.path.join(out_dir, options.error_dir_name))
        return result

    out_path = os.path.join(out_dir, wav.filename)
    result.output = out_path
    if options.dry_run:
        logger.info("%s -> %s (dry run)", os.path.basename(path), out_path)
        return result

    try:
        os.makedirs(out_dir, exist_ok=True)
        with open(out_path, "wb") as f:
            f.write(wav.data)
    except OSError as exc:
        logger.error("Failed to write %s: %s", out_path, exc)
        result.output = None
        result.error = exc
        return result

    logger.info("%s -> %s", os.path.basename(path), out_path)
    return result


def convert_files(
    paths: Sequence[str],
    out_dir: str,
    options: Optional[ConvertOptions] = None,
) -> List[ConversionResult]:
    """Convert several files independently; one failure does not stop the rest."""
    results = [convert_file(p, out_dir, options) for p in paths]
    failed = sum(1 for r in results if not r.ok)
    logger.info("Converted %d/%d files", len(results) - failed, len(results))
    return results
