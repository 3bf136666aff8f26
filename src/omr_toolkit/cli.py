"""
Module: cli

Purpose:
    Command-line entry point (``omr-toolkit``).

Commands:
    - generate: questions JSON -> PDF + coordinate map + variant map + metadata
    - scan: scan image + coordinate map -> recovery result JSON
    - read-qr: print the QR payload of a scan

Dependencies:
    - argparse (std)
    - builder, scanner, core.utils

This is the only module that reads or writes files.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from omr_toolkit import __version__
from omr_toolkit.builder import (
    DEFAULT_INSTRUCTIONS,
    ExamConfig,
    ExamHeader,
    generate_variant,
    render_exam,
)
from omr_toolkit.builder.output import render_page_preview
from omr_toolkit.common.identifiers import build_identifier, parse_identifier
from omr_toolkit.common.logging_utils import configure_logging, detach_handler
from omr_toolkit.core.errors import OmrToolkitError
from omr_toolkit.core.utils import (
    dump_json,
    load_coordinate_map,
    load_questions,
    load_variant_map,
    save_coordinate_map,
    save_variant_map,
)
from omr_toolkit.scanner import read_qr, recover_answers

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_ERROR = 2


def _read_optional(path: Optional[Path]) -> Optional[bytes]:
    return path.read_bytes() if path else None


def _cmd_generate(args: argparse.Namespace) -> int:
    questions = load_questions(args.questions)
    if args.variant:
        variant_map = load_variant_map(args.variant)
    else:
        variant_map = generate_variant(questions)

    header = ExamHeader(
        institution=args.institution,
        title=args.title,
        motto=args.motto,
        subject=args.subject,
        teacher=args.teacher,
        show_instructions=not args.no_instructions,
        instructions=args.instructions or DEFAULT_INSTRUCTIONS,
        student_name=args.student,
        group=args.group,
        logo_left=_read_optional(args.logo_left),
        logo_right=_read_optional(args.logo_right),
    )
    config = ExamConfig(
        folio=args.folio,
        header=header,
        min_pages=args.min_pages,
        margin_mm=args.margin_mm,
    )

    result = render_exam(config, questions, variant_map)

    out_dir: Path = args.out_dir
    out_dir.mkdir(parents=True, exist_ok=True)
    stem = config.folio
    pdf_path = out_dir / f"{stem}.pdf"
    pdf_path.write_bytes(result.document_bytes)
    save_coordinate_map(result.coordinate_map, out_dir / f"{stem}.map.json")
    save_variant_map(variant_map, out_dir / f"{stem}.variant.json")
    dump_json(result.metadata(config), out_dir / f"{stem}.meta.json")

    if args.preview_dpi:
        for page in result.pages:
            png = render_page_preview(result.document_bytes, page.number, dpi=args.preview_dpi)
            (out_dir / f"{stem}_p{page.number}.png").write_bytes(png)

    for warning in result.warnings:
        logger.warning(warning)
    print(f"{pdf_path} ({result.page_count} pages, {len(result.warnings)} warnings)")
    return EXIT_OK


def _cmd_scan(args: argparse.Namespace) -> int:
    coordinate_map = load_coordinate_map(args.map)
    image = args.image.read_bytes()

    page_number = args.page
    if page_number is None:
        parsed = parse_identifier(read_qr(image))
        if parsed is not None:
            page_number = parsed[1]
        elif len(coordinate_map.pages) == 1:
            page_number = coordinate_map.pages[0].page_number
        else:
            logger.error("Page could not be read from the QR; pass --page")
            return EXIT_ERROR

    expected: List[str] = list(args.expected or [])
    if args.folio:
        expected.append(build_identifier(args.folio, page_number))

    result = recover_answers(
        image,
        coordinate_map.page(page_number),
        expected_identifier=expected or None,
        margin_mm=coordinate_map.margin_mm,
    )
    payload = {"page_number": page_number, **result.to_dict()}
    if args.output:
        dump_json(payload, args.output)
    else:
        json.dump(payload, sys.stdout, indent=2)
        sys.stdout.write("\n")
    return EXIT_OK


def _cmd_read_qr(args: argparse.Namespace) -> int:
    text = read_qr(args.image.read_bytes())
    if text is None:
        logger.warning("No QR detected")
        return EXIT_NOT_FOUND
    print(text)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="omr-toolkit",
        description="Generate bubble-sheet exams and recover marked answers from scans",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v info, -vv debug")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Render an exam PDF and its coordinate map")
    gen.add_argument("questions", type=Path, help="Questions JSON")
    gen.add_argument("--folio", required=True, help="Exam folio encoded in every page QR")
    gen.add_argument("--out-dir", type=Path, default=Path("."), help="Output directory")
    gen.add_argument("--variant", type=Path, help="Reuse a saved variant map instead of shuffling")
    gen.add_argument("--title", default="Exam")
    gen.add_argument("--institution", default="")
    gen.add_argument("--motto", default="")
    gen.add_argument("--subject", default="")
    gen.add_argument("--teacher", default="")
    gen.add_argument("--instructions", help="Instructions text (default: built-in)")
    gen.add_argument("--no-instructions", action="store_true", help="Omit the instructions box")
    gen.add_argument("--student", help="Pre-filled student name")
    gen.add_argument("--group", help="Pre-filled group")
    gen.add_argument("--logo-left", type=Path, help="PNG/JPEG logo (left)")
    gen.add_argument("--logo-right", type=Path, help="PNG/JPEG logo (right)")
    gen.add_argument("--min-pages", type=int, default=1, help="Pad with empty pages up to this count")
    gen.add_argument("--margin-mm", type=float, default=10.0)
    gen.add_argument("--preview-dpi", type=int, default=0, help="Also write PNG previews at this DPI")
    gen.set_defaults(func=_cmd_generate)

    scan = sub.add_parser("scan", help="Recover answers from a scanned page")
    scan.add_argument("image", type=Path, help="Photo or scan of one page")
    scan.add_argument("--map", type=Path, required=True, help="Coordinate map JSON")
    scan.add_argument("--page", type=int, help="Page number (default: read from the QR)")
    scan.add_argument("--folio", help="Expected folio; checked against the QR")
    scan.add_argument(
        "--expected", action="append",
        help="Accepted QR payload (repeatable)",
    )
    scan.add_argument("--output", type=Path, help="Write result JSON here instead of stdout")
    scan.set_defaults(func=_cmd_scan)

    qr = sub.add_parser("read-qr", help="Print the QR payload of a scan")
    qr.add_argument("image", type=Path)
    qr.set_defaults(func=_cmd_read_qr)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    handler = configure_logging(args.verbose)
    try:
        return args.func(args)
    except (OmrToolkitError, ValueError, OSError) as e:
        logger.error(str(e))
        return EXIT_ERROR
    finally:
        detach_handler(handler)


if __name__ == "__main__":
    sys.exit(main())
