"""Loads translation directories and parses their books concurrently."""

import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from .audio import AudioIndex
from .books import is_peripheral
from .errors import BibleApiError, GenerationError, MetadataError
from .generator import GeneratorOptions, generate
from .models import InputFile, OutputFile, ParsedBook, ParseWarning, TranslationMetadata
from .parser import parse_book
from .tokenizer import TokenKind, tokenize

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

METADATA_FILE = "metadata.json"
FORMAT_BY_SUFFIX = {
    ".usfm": "usfm",
    ".sfm": "usfm",
    ".usx": "usx",
}
DEFAULT_WORKERS = 10


# =============================================================================
# Loading
# =============================================================================

def load_metadata(path: Path) -> TranslationMetadata:
    """Read and validate a metadata.json file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise MetadataError(f"{path}: invalid JSON ({e})") from e
    return TranslationMetadata.from_dict(data)


def peek_book_id(content: str, format: str) -> Optional[str]:
    """Return the value of the first book id marker, if any."""
    for token in tokenize(content, format):
        if token.kind is TokenKind.BOOK_ID:
            return token.value
        if token.kind in (TokenKind.CHAPTER, TokenKind.VERSE):
            return None
    return None


def load_translation_dir(directory: Path, warnings: Optional[list[ParseWarning]] = None) -> list[InputFile]:
    """
    Load every book file of a translation directory.

    The directory holds a metadata.json and one .usfm/.sfm/.usx file per book.
    Peripheral files (front matter, glossaries) are skipped and, when a list
    is given, reported to warnings.
    """
    directory = Path(directory)
    metadata = load_metadata(directory / METADATA_FILE)

    inputs = []
    for path in sorted(directory.iterdir()):
        file_format = FORMAT_BY_SUFFIX.get(path.suffix.lower())
        if file_format is None or not path.is_file():
            continue
        content = path.read_text(encoding="utf-8-sig")
        book_id = peek_book_id(content, file_format)
        if book_id and is_peripheral(book_id):
            warning = ParseWarning(metadata.id, book_id, None, f"Peripheral file {path.name} skipped")
            logger.info(str(warning))
            if warnings is not None:
                warnings.append(warning)
            continue
        inputs.append(InputFile(content=content, metadata=metadata, format=file_format, name=path.name))

    logger.info("Loaded %d book file(s) for %s from %s", len(inputs), metadata.id, directory)
    return inputs


def load_translations(
    root: Path,
    translations: Optional[Sequence[str]] = None,
    warnings: Optional[list[ParseWarning]] = None,
) -> list[InputFile]:
    """Load every translation directory under root that has a metadata.json."""
    inputs = []
    wanted = {t.lower() for t in translations} if translations else None
    for directory in sorted(Path(root).iterdir()):
        if not (directory / METADATA_FILE).is_file():
            continue
        if wanted is not None and load_metadata(directory / METADATA_FILE).id.lower() not in wanted:
            continue
        inputs.extend(load_translation_dir(directory, warnings))
    return inputs


# =============================================================================
# Parsing
# =============================================================================

def _parse_task(input_file: InputFile) -> ParsedBook:
    try:
        return parse_book(input_file)
    except BibleApiError as e:
        raise GenerationError(input_file.metadata.id, input_file.name or "<input>", e) from e


def parse_books(inputs: Sequence[InputFile], workers: int = DEFAULT_WORKERS) -> list[ParsedBook]:
    """
    Parse books in parallel. Each book gets its own builder.

    Raises:
        GenerationError: naming the translation and file of the first fatal error
    """
    if workers <= 1 or len(inputs) <= 1:
        return [_parse_task(input_file) for input_file in inputs]

    results: list[Optional[ParsedBook]] = [None] * len(inputs)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(_parse_task, input_file): index
            for index, input_file in enumerate(inputs)
        }
        try:
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        except GenerationError:
            for future in futures:
                future.cancel()
            raise

    return [book for book in results if book is not None]


@dataclass
class GenerationResult:
    """Output of a full run: the document tree and every recoverable warning."""

    files: list[OutputFile] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)
    books: list[ParsedBook] = field(default_factory=list)


def run_generation(
    inputs: Sequence[InputFile],
    options: Optional[GeneratorOptions] = None,
    audio_index: Optional[AudioIndex] = None,
    workers: int = DEFAULT_WORKERS,
) -> GenerationResult:
    """Parse all inputs, then generate. Fatal errors leave no partial output."""
    books = parse_books(inputs, workers=workers)
    warnings = [warning for book in books for warning in book.warnings]
    files = generate(books, options, audio_index, warnings=warnings)
    return GenerationResult(files=files, warnings=warnings, books=books)
