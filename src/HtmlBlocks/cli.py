from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import html_parser, serializer, tree_codec
from .config import load_config
from .utils import configure_logging, read_html, resolve_output_path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="htmlblocks",
        description="Normalize stored HTML through the block tree, or dump the tree.",
    )
    parser.add_argument("input", type=str, help="Path to an HTML file, or - for stdin")
    parser.add_argument("-o", "--output", type=str, help="Output file or directory (default: stdout)")
    parser.add_argument(
        "--to",
        choices=("html", "yaml", "text"),
        default="html",
        help="html: serialized HTML, yaml: the block tree, text: plain text",
    )
    parser.add_argument("--config", type=str, help="YAML file with parse/serialize options")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)
    config = load_config(args.config)

    if args.input == "-":
        input_path = Path("stdin.html")
        html = sys.stdin.read()
    else:
        input_path = Path(args.input).expanduser()
        if not input_path.exists():
            raise FileNotFoundError(f"Input file not found: {input_path}")
        logging.info("Reading %s", input_path)
        html = read_html(input_path)

    document = html_parser.parse_html(html, config.parse)
    logging.info("Parsed %d blocks", len(document.blocks))

    if args.to == "yaml":
        result = tree_codec.document_to_yaml(document)
    elif args.to == "text":
        result = serializer.document_to_text(document) + "\n"
    else:
        result = serializer.serialize_document(document, config.serialize) + "\n"

    output_path = resolve_output_path(input_path, args.output, args.to)
    if output_path is None:
        sys.stdout.write(result)
        return
    output_path.write_text(result, encoding="utf-8")
    logging.info("Done. Saved to %s", output_path)


if __name__ == "__main__":
    main()
