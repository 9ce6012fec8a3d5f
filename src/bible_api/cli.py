#!/usr/bin/env python3
"""
CLI for the Bible API generator - turns USFM/USX translations into API JSON files.

Usage:
    bible-api generate translations/bsb api/                   # One translation
    bible-api generate-translations translations/ api/         # Every translation
    bible-api generate translations/bsb api/ --use-book-id     # Use book ids in paths
    bible-api parse translations/bsb/01GENBSB.usfm             # Print a parse tree
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional

from .audio import HttpAudioIndex
from .errors import BibleApiError
from .generator import GeneratorOptions
from .loader import DEFAULT_WORKERS, FORMAT_BY_SUFFIX, load_translation_dir, load_translations, run_generation
from .models import InputFile, TranslationMetadata
from .parser import parse_book
from .sink import DEFAULT_BATCH_SIZE, FileSink, emit_files


# =============================================================================
# Configuration
# =============================================================================

MAX_WARNINGS_SHOWN = 10
PREVIEW_METADATA = TranslationMetadata(
    id="preview", name="Preview", website="", license_url="", language="und"
)


# =============================================================================
# Commands
# =============================================================================

def _print_warnings(warnings) -> None:
    if not warnings:
        return
    print(f"\n⚠ Warnings: {len(warnings):,}")
    for warning in warnings[:MAX_WARNINGS_SHOWN]:
        print(f"  {warning}")
    if len(warnings) > MAX_WARNINGS_SHOWN:
        print(f"  ... and {len(warnings) - MAX_WARNINGS_SHOWN:,} more")


def generate_files(inputs: list[InputFile], args: argparse.Namespace, load_warnings: Optional[list] = None) -> int:
    """Generate and write API files for the given inputs."""
    print("📖 Bible API Generator")
    print("=" * 60)

    if not inputs:
        print("❌ No book files found")
        return 1

    translation_ids = sorted({i.metadata.id for i in inputs})
    print(f"Translations: {', '.join(translation_ids)}")
    print(f"Book files: {len(inputs):,}")
    print(f"Workers: {args.workers}")
    print(f"Output: {args.output}/")
    print("=" * 60)

    options = GeneratorOptions(
        use_common_name=not args.use_book_id,
        file_pattern=args.file_pattern,
        link_across_books=not args.no_cross_book_links,
    )
    audio_index = HttpAudioIndex(args.audio_index) if args.audio_index else None

    start_time = time.time()
    try:
        result = run_generation(inputs, options, audio_index=audio_index, workers=args.workers)
    except BibleApiError as e:
        print(f"❌ {e}")
        return 1

    print(f"Generated {len(result.files):,} documents. Writing...\n")

    sink = FileSink(
        args.output,
        overwrite=args.overwrite,
        overwrite_common_files=args.overwrite_common_files,
        pretty=args.pretty,
    )
    stats = emit_files(
        result.files,
        sink,
        batch_size=args.batch_size,
        max_workers=args.workers,
        show_progress=True,
    )

    elapsed = time.time() - start_time
    print("\n")
    print("=" * 60)
    print("✅ Generation complete!")
    print(f"   Written: {stats.written:,}")
    print(f"   Skipped: {stats.skipped:,}")
    print(f"   Time: {time.strftime('%H:%M:%S', time.gmtime(elapsed))}")
    print(f"   Output: {args.output}/")
    print("=" * 60)
    _print_warnings((load_warnings or []) + result.warnings)
    return 0


def cmd_generate(args: argparse.Namespace) -> int:
    load_warnings = []
    try:
        inputs = load_translation_dir(Path(args.input), load_warnings)
    except (BibleApiError, OSError) as e:
        print(f"❌ {e}")
        return 1
    return generate_files(inputs, args, load_warnings)


def cmd_generate_translations(args: argparse.Namespace) -> int:
    load_warnings = []
    try:
        inputs = load_translations(Path(args.input), args.translations, load_warnings)
    except (BibleApiError, OSError) as e:
        print(f"❌ {e}")
        return 1
    return generate_files(inputs, args, load_warnings)


def cmd_parse(args: argparse.Namespace) -> int:
    path = Path(args.file)
    file_format = FORMAT_BY_SUFFIX.get(path.suffix.lower(), "usfm")
    input_file = InputFile(
        content=path.read_text(encoding="utf-8-sig"),
        metadata=PREVIEW_METADATA,
        format=file_format,
        name=path.name,
    )
    try:
        book = parse_book(input_file)
    except BibleApiError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    print(book.to_json())
    return 0


# =============================================================================
# CLI Entry Point
# =============================================================================

def _add_generation_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("output", help="Directory that API files are written to")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help=f"Number of files handed to the writer per batch (default: {DEFAULT_BATCH_SIZE})"
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=DEFAULT_WORKERS,
        help=f"Number of parallel workers (default: {DEFAULT_WORKERS})"
    )
    parser.add_argument("--overwrite", action="store_true", help="Overwrite existing files")
    parser.add_argument(
        "--overwrite-common-files",
        action="store_true",
        help="Overwrite only files shared between translations"
    )
    parser.add_argument(
        "--file-pattern",
        type=str,
        help="Only write files whose path matches this regex"
    )
    parser.add_argument(
        "--use-book-id",
        action="store_true",
        help="Use book ids (GEN) instead of common names (Genesis) in chapter paths"
    )
    parser.add_argument(
        "--no-cross-book-links",
        action="store_true",
        help="Do not link the last chapter of a book to the next book"
    )
    parser.add_argument(
        "--audio-index",
        type=str,
        help="Base URL of the audio manifests ({url}/{translation}/audio.json)"
    )
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON files")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bible-api",
        description="Generate a static Bible API from USFM/USX translations."
    )
    parser.add_argument("--verbose", "-v", action="count", default=0, help="More logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate API files for one translation directory")
    generate.add_argument("input", help="Translation directory containing metadata.json")
    _add_generation_options(generate)
    generate.set_defaults(func=cmd_generate)

    generate_all = subparsers.add_parser(
        "generate-translations",
        help="Generate API files for every translation directory under the input directory"
    )
    generate_all.add_argument("input", help="Directory of translation directories")
    generate_all.add_argument(
        "--translations", "-t",
        nargs="+",
        help="Only generate these translation ids"
    )
    _add_generation_options(generate_all)
    generate_all.set_defaults(func=cmd_generate_translations)

    parse = subparsers.add_parser("parse", help="Print the parse tree of a single book file as JSON")
    parse.add_argument("file", help="USFM or USX file")
    parse.set_defaults(func=cmd_parse)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(format="%(levelname)s: %(message)s")
    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.getLogger("bible_api").setLevel(level)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
