"""Command-line interface for inspecting ABIF trace files."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from . import __version__, qc, quality
from .abif import ABIFFile, ABIFFormatError
from .decode import TEMPLATES, DecodeError
from .trace import ABIFTrace

logger = logging.getLogger(__name__)


def _entry_row(entry) -> dict:
    return {
        "name": entry.tag_name,
        "number": entry.tag_number,
        "type": entry.element_type.label,
        "type_code": entry.type_code,
        "element_size": entry.element_size,
        "num_elements": entry.num_elements,
        "data_size": entry.data_size,
        "data_offset": entry.data_offset,
    }


def _cmd_info(args: argparse.Namespace) -> int:
    with ABIFTrace.open(args.file, debug=args.verbose) as trace:
        header = trace.abif.header
        print(f"File: {args.file}")
        print(f"ABIF version: {header.version:.2f}")
        print(f"Directory: {header.num_entries} entries at offset {header.dir_offset}")
        print(f"Sample: {trace.sample_name() or '(unnamed)'}")
        print(f"Well: {trace.well_id()}  Capillary: {trace.capillary_number()}")
        print(f"Instrument: {trace.instrument_name_and_serial_number()}")
        print(f"Basecaller: {trace.basecaller_version()}")
        print(f"Base order: {''.join(trace.base_order())}")
        print(f"Sequence length: {trace.sequence_length()}")
        print(f"Quality values: {len(trace.quality_values())}")
    return 0


def _cmd_tags(args: argparse.Namespace) -> int:
    with ABIFFile.open(args.file, debug=args.verbose) as abif:
        rows = [_entry_row(entry) for entry in abif.directory(with_payload=False)]
    if args.json:
        print(json.dumps(rows, indent=2))
        return 0
    for row in rows:
        print(
            f"{row['name']:<4} {row['number']:>5}  {row['type']:<9} "
            f"{row['num_elements']:>7} x {row['element_size']:<3} "
            f"= {row['data_size']:>8} @ {row['data_offset']}"
        )
    return 0


def _cmd_dump_tag(args: argparse.Namespace) -> int:
    template = TEMPLATES[args.template]
    with ABIFFile.open(args.file, debug=args.verbose) as abif:
        values = abif.get_data_item(args.name, args.number, template)
    if values is None:
        print(f"tag {args.name}{args.number} not found", file=sys.stderr)
        return 1
    print(json.dumps(values))
    return 0


def _cmd_qc(args: argparse.Namespace) -> int:
    report = qc.qc_from_abif(
        args.file,
        window=args.window,
        bad_bases=args.bad_bases,
        threshold=args.threshold,
        min_lor=args.min_lor,
        min_crl=args.min_crl,
        debug=args.verbose,
    )
    out_path = args.out or qc.default_output_path(args.file)
    out_path.write_text(json.dumps(report, indent=2))
    print(qc.format_detail_summary(report, detail=args.detail))
    print(f"Report written to {out_path}")
    return 2 if report["overall"]["status"] == "FAIL" else 0


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="abif_tool")
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    info = subparsers.add_parser("info", help="Summarize an ABIF trace file")
    info.add_argument("file", type=Path, help="Input ABIF (.ab1/.fsa) file")
    info.set_defaults(func=_cmd_info)

    tags = subparsers.add_parser("tags", help="List directory entries")
    tags.add_argument("file", type=Path, help="Input ABIF file")
    tags.add_argument("--json", action="store_true", help="Emit JSON")
    tags.set_defaults(func=_cmd_tags)

    dump = subparsers.add_parser("dump-tag", help="Decode one data item")
    dump.add_argument("file", type=Path, help="Input ABIF file")
    dump.add_argument("name", help="Four-character tag name, e.g. PBAS")
    dump.add_argument("number", type=int, help="Tag number, e.g. 2")
    dump.add_argument(
        "--template",
        choices=sorted(TEMPLATES),
        default="chars",
        help="Decode template",
    )
    dump.set_defaults(func=_cmd_dump_tag)

    qc_parser = subparsers.add_parser("qc", help="Compute read-quality metrics")
    qc_parser.add_argument("file", type=Path, help="Input ABIF file")
    qc_parser.add_argument("--out", type=Path, help="JSON report path")
    qc_parser.add_argument(
        "--window", type=int, default=quality.DEFAULT_WINDOW, help="Window width"
    )
    qc_parser.add_argument(
        "--bad-bases",
        type=int,
        default=quality.DEFAULT_BAD_BASES,
        help="Low-quality bases allowed per clear-range window",
    )
    qc_parser.add_argument(
        "--threshold",
        type=int,
        default=quality.DEFAULT_THRESHOLD,
        help="Quality value threshold",
    )
    qc_parser.add_argument(
        "--min-lor",
        type=int,
        default=qc.DEFAULT_MIN_LOR,
        help="Warn when LOR falls below this value",
    )
    qc_parser.add_argument(
        "--min-crl",
        type=int,
        default=qc.DEFAULT_MIN_CRL,
        help="Warn when CRL length falls below this value",
    )
    qc_parser.add_argument(
        "--detail", action="store_true", help="Print the detailed summary"
    )
    qc_parser.set_defaults(func=_cmd_qc)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.func(args)
    except (ABIFFormatError, DecodeError, OSError) as exc:
        logger.debug("command %s failed", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1


__all__ = ["build_arg_parser", "main"]
