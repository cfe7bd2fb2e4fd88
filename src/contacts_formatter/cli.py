from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence, Tuple

from .config_loader import load_pipeline_config
from .exceptions import ConfigError, ValidationError
from .export import write_export
from .logging_utils import configure_logging
from .session import ContactSession

logger = logging.getLogger(__name__)


def _split_assignment(raw: str, option: str) -> Tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        raise ValidationError(f"{option} expects ID=VALUE, got {raw!r}")
    return key.strip(), value


def _apply_column_edits(session: ContactSession, args: argparse.Namespace) -> None:
    for column_id in args.hide or []:
        session.set_visible(column_id, False)
    for raw in args.label or []:
        column_id, label = _split_assignment(raw, "--label")
        session.set_label(column_id, label)
    for raw in args.move or []:
        column_id, index = _split_assignment(raw, "--move")
        try:
            position = int(index)
        except ValueError:
            raise ValidationError(f"--move index must be an integer, got {index!r}") from None
        session.move_column(column_id, position)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Normalize contact data and export it as CSV, vCard and text reports."
    )
    parser.add_argument("input", nargs="?", default=None, help="CSV, VCF, text or image file.")
    parser.add_argument("--text", type=str, default=None, help="Free text sent to extraction.")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config.")
    parser.add_argument(
        "--format",
        dest="formats",
        action="append",
        default=None,
        help="Export format (csv, vcf, txt); repeatable.",
    )
    parser.add_argument(
        "--prefix", type=str, default=None, help="Name prefix: a preset (MNA, MPA, Adv) or any text."
    )
    parser.add_argument(
        "--suffix", type=str, default=None, help="Name suffix: a preset (Sindh, Punjab) or any text."
    )
    parser.add_argument("--hide", action="append", default=None, metavar="ID")
    parser.add_argument("--label", action="append", default=None, metavar="ID=LABEL")
    parser.add_argument("--move", action="append", default=None, metavar="ID=INDEX")
    parser.add_argument(
        "--preview", type=str, default=None, help="Print one format instead of writing files."
    )
    parser.add_argument("--out-dir", type=str, default=None)
    parser.add_argument("--log-level", type=str, default=None, help="Override logging level")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.input and args.text is None:
        parser.error("provide an input file or --text")

    try:
        config = load_pipeline_config(args)
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    configure_logging(config, level_override=args.log_level)

    session = ContactSession(config)
    if args.input:
        ingestion = session.ingest_file(args.input)
    else:
        ingestion = session.ingest_text(args.text)
    for warning in ingestion.warnings:
        logger.info("%s", warning)
    if not session.records:
        for message in session.messages:
            print(message, file=sys.stderr)
        print("No records found in input.", file=sys.stderr)
        return 1

    try:
        _apply_column_edits(session, args)
        if args.preview:
            sys.stdout.write(session.preview(args.preview))
            sys.stdout.write("\n")
            return 0
        result = session.export()
    except ValidationError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    written: List[str] = [str(path) for path in write_export(result, config.outputs.dir)]
    for message in session.messages:
        print(message, file=sys.stderr)
    for path in written:
        print(path)
    return 2 if result.errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
