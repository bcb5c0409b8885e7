"""
ebl.__main__

CLI entry point.

This file is intentionally small:
- parse args
- configure logging
- dispatch to the public API in ebl.__init__
It must not contain format parsing or WAV serialization.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from typing import Optional

import ebl

DEFAULT_OUTPUT_DIR = "E-MU Sounds"


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="python -m ebl",
        description="Convert E-MU .ebl sample files to 16-bit PCM WAV.",
    )
    p.add_argument("--version", action="version", version=f"ebl2wav {ebl.__version__}")
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug).",
    )

    sub = p.add_subparsers(dest="command", required=True)

    conv = sub.add_parser("convert", help="Convert .ebl files to .wav.")
    conv.add_argument("paths", nargs="+", help="Input .ebl files.")
    conv.add_argument(
        "-o",
        "--output",
        default=DEFAULT_OUTPUT_DIR,
        help=f"Output directory (default: {DEFAULT_OUTPUT_DIR!r}).",
    )
    conv.add_argument("--prefix", default=None, help="Prefix output names as '<prefix> - <name>.wav'.")
    conv.add_argument(
        "--preserve-filename",
        action="store_true",
        help="Name outputs after the source file instead of the embedded sample name.",
    )
    conv.add_argument("--dry-run", action="store_true", help="Resolve output names without writing files.")
    conv.add_argument(
        "-e",
        "--save-errors",
        action="store_true",
        help="Copy files that fail to convert into <output>/errors/.",
    )

    info = sub.add_parser("info", help="Print decoded header values as JSON.")
    info.add_argument("paths", nargs="+", help="Input .ebl files.")

    return p.parse_args(argv)


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _check_inputs(paths: list[str]) -> None:
    for path in paths:
        if not os.path.isfile(path):
            raise FileNotFoundError(path)


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    # convert reports unreadable paths per file through ConversionResult
    if args.command == "info":
        _check_inputs(args.paths)
        status = 0
        for path in args.paths:
            try:
                sample = ebl.decode_file(path)
            except ebl.DecodeError as exc:
                print(json.dumps({"source": os.path.basename(path), "error": str(exc)}, indent=2))
                status = 1
                continue
            print(json.dumps(ebl.describe(sample), indent=2))
        return status

    options = ebl.ConvertOptions(
        naming=ebl.NamingPolicy(preserve_filename=args.preserve_filename, prefix=args.prefix),
        dry_run=args.dry_run,
        save_errors=args.save_errors,
    )
    results = ebl.convert_files(args.paths, args.output, options)
    for res in results:
        if res.ok:
            print(res.output)
        else:
            print(f"ERROR {res.source}: {res.error}")

    return 0 if all(r.ok for r in results) else 1


if __name__ == "__main__":
    raise SystemExit(main())
