"""
Generates the API document tree from parsed books.

Every function here is pure: given the same parsed books and options it
returns the same list of OutputFile records, and never touches storage.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Sequence

from .audio import AudioIndex
from .models import Chapter, InputFile, OutputFile, ParsedBook, ParseWarning, TranslationMetadata
from .parser import parse_book

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

API_ROOT = "/bible"
AVAILABLE_TRANSLATIONS_PATH = f"{API_ROOT}/available_translations"
DEFAULT_FORMATS = ("json",)


@dataclass
class GeneratorOptions:
    """
    Options for a generation run.

    With link_across_books=False the last chapter of a book has no next link
    and the first chapter has no previous link, which is the output of the
    original generator (Genesis 1 has nextChapterLink null even when Exodus
    is generated alongside it).
    """

    use_common_name: bool = True  # book segment of chapter paths: "Genesis" vs "GEN"
    file_pattern: Optional[str] = None  # only emit paths matching this regex
    link_across_books: bool = True  # last chapter of a book links to the next book
    available_formats: tuple[str, ...] = DEFAULT_FORMATS


# =============================================================================
# Paths
# =============================================================================

def translation_books_path(translation_id: str) -> str:
    return f"{API_ROOT}/{translation_id}/books"


def chapter_path(translation_id: str, book: ParsedBook, number: int, use_common_name: bool = True) -> str:
    segment = book.book.common_name if use_common_name else book.book.id
    return f"{API_ROOT}/{translation_id}/{segment}/{number}.json"


# =============================================================================
# Documents
# =============================================================================

def translation_entry(metadata: TranslationMetadata, options: GeneratorOptions) -> dict:
    """A translation as listed in the translation index and embedded in other documents."""
    entry = metadata.to_dict()
    entry["availableFormats"] = list(options.available_formats)
    entry["listOfBooksApiLink"] = translation_books_path(metadata.id)
    return entry


def book_entry(book: ParsedBook, options: GeneratorOptions) -> dict:
    first_chapter = book.chapters[0].number
    return {
        "id": book.book.id,
        "name": book.book.name,
        "commonName": book.book.common_name,
        "title": book.book.title,
        "order": book.book.order,
        "numberOfChapters": len(book.chapters),
        "firstChapterApiLink": chapter_path(
            book.translation.id, book, first_chapter, options.use_common_name
        ),
    }


def _audio_links(
    audio_index: AudioIndex, translation_id: str, book_id: str, chapter: int
) -> dict[str, str]:
    links = {}
    for reader in audio_index.readers(translation_id):
        url = audio_index.resolve(translation_id, book_id, chapter, reader)
        if url:
            links[reader] = url
    return links


@dataclass
class _ChapterSlot:
    book: ParsedBook
    chapter: Chapter
    path: str


def _chapter_slots(books: Sequence[ParsedBook], options: GeneratorOptions) -> list[_ChapterSlot]:
    return [
        _ChapterSlot(book, chapter, chapter_path(book.translation.id, book, chapter.number, options.use_common_name))
        for book in books
        for chapter in book.chapters
    ]


def _adjacent(slots: list[_ChapterSlot], index: int, step: int, options: GeneratorOptions) -> Optional[str]:
    neighbour = index + step
    if neighbour < 0 or neighbour >= len(slots):
        return None
    if not options.link_across_books and slots[neighbour].book is not slots[index].book:
        return None
    return slots[neighbour].path


def group_by_translation(
    books: Iterable[ParsedBook],
    warnings: Optional[list[ParseWarning]] = None,
) -> dict[str, list[ParsedBook]]:
    """
    Group books by translation id, in canonical order.

    Duplicate books keep the first occurrence; books without chapters are dropped.
    Each skipped book is logged and, when a list is given, appended to warnings.
    """
    groups: dict[str, list[ParsedBook]] = {}
    seen: set[tuple[str, str]] = set()

    def skip(book: ParsedBook, message: str) -> None:
        warning = ParseWarning(book.translation.id, book.book.id, None, message)
        logger.warning(str(warning))
        if warnings is not None:
            warnings.append(warning)

    for book in books:
        key = (book.translation.id, book.book.id)
        if key in seen:
            skip(book, "Duplicate book ignored")
            continue
        seen.add(key)
        if not book.chapters:
            skip(book, "Book has no chapters; skipped")
            continue
        groups.setdefault(book.translation.id, []).append(book)

    for translation_books in groups.values():
        translation_books.sort(key=lambda b: b.book.order)
    return groups


def generate_translation(
    books: Sequence[ParsedBook],
    options: GeneratorOptions,
    audio_index: Optional[AudioIndex] = None,
) -> list[OutputFile]:
    """Book index and chapter documents for the books of a single translation."""
    metadata = books[0].translation
    translation = translation_entry(metadata, options)
    files = [
        OutputFile(
            path=translation_books_path(metadata.id),
            content={
                "translation": translation,
                "books": [book_entry(book, options) for book in books],
            },
        )
    ]

    book_entries = {book.book.id: book_entry(book, options) for book in books}
    slots = _chapter_slots(books, options)
    for index, slot in enumerate(slots):
        document = {
            "translation": translation,
            "book": book_entries[slot.book.book.id],
            "thisChapterLink": slot.path,
            "previousChapterLink": _adjacent(slots, index, -1, options),
            "nextChapterLink": _adjacent(slots, index, 1, options),
        }
        if audio_index is not None:
            document["thisChapterAudioLinks"] = _audio_links(
                audio_index, metadata.id, slot.book.book.id, slot.chapter.number
            )
        document["chapter"] = slot.chapter.to_dict()
        files.append(OutputFile(path=slot.path, content=document))

    return files


def generate(
    books: Iterable[ParsedBook],
    options: Optional[GeneratorOptions] = None,
    audio_index: Optional[AudioIndex] = None,
    warnings: Optional[list[ParseWarning]] = None,
) -> list[OutputFile]:
    """
    Generate the document tree for one or more translations.

    Args:
        books: parsed books, possibly from several translations
        options: generation options (defaults to GeneratorOptions())
        audio_index: when given, chapter documents carry audio links
        warnings: when given, books skipped during grouping are reported here

    Returns:
        Output files, the mergeable translation index first
    """
    options = options or GeneratorOptions()
    groups = group_by_translation(books, warnings)

    files = [
        OutputFile(
            path=AVAILABLE_TRANSLATIONS_PATH,
            content={
                "translations": sorted(
                    (translation_entry(group[0].translation, options) for group in groups.values()),
                    key=lambda entry: entry["id"],
                )
            },
            mergeable=True,
        )
    ]
    for translation_books in groups.values():
        files.extend(generate_translation(translation_books, options, audio_index))

    # Filtering happens last so links are computed from the full book set.
    if options.file_pattern:
        pattern = re.compile(options.file_pattern)
        files = [file for file in files if pattern.search(file.path)]

    logger.info("Generated %d documents for %d translation(s)", len(files), len(groups))
    return files


def generate_from_inputs(
    inputs: Iterable[InputFile],
    options: Optional[GeneratorOptions] = None,
    audio_index: Optional[AudioIndex] = None,
) -> list[OutputFile]:
    """Parse raw input files and generate their documents."""
    return generate([parse_book(input_file) for input_file in inputs], options, audio_index)


# =============================================================================
# Merging
# =============================================================================

def merge_available_translations(existing: dict, incoming: dict) -> dict:
    """Merge two translation indexes by translation id. Incoming entries win."""
    merged = {entry["id"]: entry for entry in existing.get("translations", [])}
    for entry in incoming.get("translations", []):
        merged[entry["id"]] = entry
    return {"translations": [merged[key] for key in sorted(merged)]}


MERGE_FUNCTIONS = {
    AVAILABLE_TRANSLATIONS_PATH: merge_available_translations,
}


def merge_document(path: str, existing, incoming):
    """Merge two bodies of a mergeable document."""
    merge = MERGE_FUNCTIONS.get(path)
    if merge is None:
        raise ValueError(f"No merge function for {path}")
    return merge(existing, incoming)


def merge_output_files(*runs: Iterable[OutputFile]) -> dict[str, OutputFile]:
    """
    Combine the output of several runs into one tree keyed by path.

    Mergeable documents are merged; any other path is overwritten by later runs.
    """
    tree: dict[str, OutputFile] = {}
    for run in runs:
        for file in run:
            current = tree.get(file.path)
            if current is not None and file.mergeable and current.mergeable:
                content = merge_document(file.path, current.resolve_content(), file.resolve_content())
                tree[file.path] = OutputFile(path=file.path, content=content, mergeable=True)
            else:
                tree[file.path] = file
    return tree


# =============================================================================
# Batching
# =============================================================================

def batched(files: Sequence[OutputFile], size: int) -> Iterator[list[OutputFile]]:
    """Split documents into fixed-size batches for a concurrent sink."""
    if size < 1:
        raise ValueError("Batch size must be at least 1")
    for start in range(0, len(files), size):
        yield list(files[start:start + size])
