#!/usr/bin/env python3
"""Structure a labeled medical report into TEI XML.

Reads one JSON document (labeled tokens plus optional figure/table
catalogs, running notes, persons and emails; see ``medstruct.io_utils``)
and writes the structured document.

Usage:
    # TEI to stdout
    python3 scripts/structure_report.py --input report.json

    # Sentence segmentation, ids and sentence/heading coordinates
    python3 scripts/structure_report.py --input report.json \
      --output out/report.tei.xml --segment-sentences --generate-ids \
      --coordinates head,s

    # JSON tree instead of TEI
    python3 scripts/structure_report.py --input report.json --json
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

import orjson

from medstruct.config import COORDINATE_ELEMENTS, StructuringConfig, StructuringContext
from medstruct.errors import StructuringError
from medstruct.io_utils import load_document_input, save_json, save_text
from medstruct.pipeline import structure_document
from medstruct.serializer import serialize_tei

log = logging.getLogger("structure_report")


def parse_coordinates(raw: str | None) -> frozenset[str]:
    """Parse a comma-separated element list, e.g. ``"head,s"``."""
    if not raw:
        return frozenset()
    elements = frozenset(part.strip() for part in raw.split(",") if part.strip())
    unknown = elements - COORDINATE_ELEMENTS
    if unknown:
        raise argparse.ArgumentTypeError(
            f"unknown coordinate element(s): {', '.join(sorted(unknown))}"
        )
    return elements


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Structure a labeled medical report into TEI XML."
    )
    parser.add_argument("--input", required=True, type=Path, help="Input JSON document")
    parser.add_argument(
        "--output", type=Path, default=None,
        help="Output path (default: stdout)",
    )
    parser.add_argument(
        "--segment-sentences", action="store_true",
        help="Split paragraphs into <s> elements.",
    )
    parser.add_argument(
        "--generate-ids", action="store_true",
        help="Add random xml:id attributes.",
    )
    parser.add_argument(
        "--coordinates", type=parse_coordinates, default=frozenset(),
        help=f"Comma-separated elements to annotate with coords ({','.join(sorted(COORDINATE_ELEMENTS))}).",
    )
    parser.add_argument("--language", default="fr", help="Document language (default: fr)")
    parser.add_argument("--json", action="store_true", help="Write the JSON tree instead of TEI.")
    parser.add_argument("--verbose", action="store_true", help="Debug logging.")
    return parser


def run(args: argparse.Namespace) -> str | dict[str, Any]:
    """Run the pipeline for parsed arguments; return the rendered output."""
    doc_input = load_document_input(args.input)
    config = StructuringConfig(
        segment_sentences=args.segment_sentences,
        generate_ids=args.generate_ids,
        coordinate_elements=args.coordinates,
        language=args.language,
    )
    context = StructuringContext.create(
        config, figures=doc_input.figures, tables=doc_input.tables,
    )
    doc = structure_document(
        doc_input.tokens,
        context,
        note_blocks=doc_input.note_blocks,
        persons=doc_input.persons,
        emails=doc_input.emails,
    )
    if args.json:
        return doc.to_dict()
    return serialize_tei(
        doc.body,
        notes=doc.notes,
        persons=doc.persons,
        figures=context.figures,
        tables=context.tables,
        config=config,
        id_factory=context.id_factory,
    )


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    try:
        output = run(args)
    except StructuringError as exc:
        log.error("%s", exc)
        sys.exit(1)

    if args.output is None:
        if isinstance(output, dict):
            sys.stdout.buffer.write(orjson.dumps(output, option=orjson.OPT_INDENT_2))
            sys.stdout.buffer.write(b"\n")
        else:
            sys.stdout.write(output)
        return
    if isinstance(output, dict):
        save_json(output, args.output)
    else:
        save_text(output, args.output)
    log.info("Wrote %s", args.output)


if __name__ == "__main__":
    main()
