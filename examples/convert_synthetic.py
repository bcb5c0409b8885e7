#!/usr/bin/env python3
"""
Build a small stereo .ebl file in memory, decode it, and write the WAV.

Useful as a smoke test of the whole chain without real sampler content.
"""

from __future__ import annotations

import math
import struct
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import numpy as np

import ebl


def _utf16(text: str, size: int = 64) -> bytes:
    raw = text.encode("utf-16-le")[:size]
    return raw + b"\x00" * (size - len(raw))


def _make_ebl(left: np.ndarray, right: np.ndarray, name: str, sample_rate: int) -> bytes:
    a = left.astype("<i2").tobytes()
    b = right.astype("<i2").tobytes()
    v2 = 178
    v3 = v2 + len(a)
    v4 = v3
    v5 = v4 + len(b)
    words = (301, v2, v3, v4, v5, 0, 0, 0, 0, sample_rate, 0, 0)
    metadata = _utf16(name) + struct.pack("<12I", *words) + _utf16("synthetic")

    body = b"E5B0TOC2" + struct.pack(">I", 78)
    body += b"E5S1" + struct.pack(">II", len(metadata) + len(a) + len(b), 98) + b"\x00\x00" + _utf16(name)
    body += b"E5S1" + struct.pack(">I", len(metadata)) + b"\x00" * 6
    body += metadata + a + b
    return b"FORM" + struct.pack(">I", len(body)) + body


def main() -> None:
    out_dir = Path(__file__).parent / "out"
    out_dir.mkdir(parents=True, exist_ok=True)

    sr = 44100
    t = np.arange(sr // 2, dtype=np.float64) / sr
    left = np.sin(2.0 * math.pi * 220.0 * t) * 12000
    right = np.sin(2.0 * math.pi * 330.0 * t) * 12000

    sample = ebl.decode(_make_ebl(left, right, "Fifth/Stack", sr), source_name="000001.ebl")
    wav = ebl.encode(sample, ebl.NamingPolicy(prefix="Demo"))
    out_path = out_dir / wav.filename
    out_path.write_bytes(wav.data)

    print("=== convert_synthetic ===")
    print(f"channels   : {sample.channels}")
    print(f"frames     : {sample.frame_count}")
    print(f"anomalies  : {len(sample.anomalies)}")
    print(f"wav output : {out_path}")


if __name__ == "__main__":
    main()
