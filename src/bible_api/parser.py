"""
Parse-tree builder.

Consumes the token stream for a single book and assembles chapters, verses,
headings, footnotes and inline formatting. One builder owns all of its state,
so books can be parsed on separate threads.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .books import CatalogBook, resolve_book
from .errors import UnknownBookError
from .models import (
    BookInfo,
    Chapter,
    Footnote,
    FootnoteReference,
    FootnoteSource,
    FormattedText,
    Heading,
    HebrewSubtitle,
    InlineHeading,
    InlineLineBreak,
    InputFile,
    LineBreak,
    ParsedBook,
    ParseWarning,
    TranslationMetadata,
    Verse,
)
from .tokenizer import Token, TokenKind, tokenize

logger = logging.getLogger(__name__)

VERSE_NUMBER_RE = re.compile(r"^(\d+)[a-z]?(?:[-–,](\d+)[a-z]?)?$")
SUBTITLE_MARKER = "d"
NO_BREAK_MARKER = "nb"
FOOTNOTE_REFERENCE_PART = "fr"
NO_CALLER = "-"
AUTO_CALLER = "+"


def _normalize(text: str) -> str:
    return " ".join(text.split())


def _clean_items(items: list) -> list:
    """Collapse whitespace in text runs and drop the ones left empty."""
    cleaned = []
    for item in items:
        if isinstance(item, str):
            text = _normalize(item)
            if text:
                cleaned.append(text)
        elif isinstance(item, FormattedText):
            text = _normalize(item.text)
            if text:
                cleaned.append(FormattedText(text, poem=item.poem, words_of_jesus=item.words_of_jesus))
        else:
            cleaned.append(item)
    return cleaned


def _has_text(items: list) -> bool:
    for item in items:
        if isinstance(item, str) and item.strip():
            return True
        if isinstance(item, FormattedText) and item.text.strip():
            return True
    return False


def parse_verse_number(value: Optional[str]) -> Optional[tuple[int, Optional[int]]]:
    """Parse "3", "3a" or "3-4" into (first, last). Returns None when malformed."""
    match = VERSE_NUMBER_RE.match(value or "")
    if not match:
        return None
    first = int(match.group(1))
    last = int(match.group(2)) if match.group(2) else None
    if last is not None and last <= first:
        last = None
    return first, last


@dataclass
class _OpenFootnote:
    note_id: int
    caller: Optional[str]
    reference: Optional[FootnoteSource]
    discard: bool = False
    skipping: bool = False  # inside \fr, whose text is recomputed
    segments: list[str] = field(default_factory=list)


class ParseTreeBuilder:
    """Single-pass builder for one book."""

    def __init__(self, metadata: TranslationMetadata, source_name: Optional[str] = None):
        self.metadata = metadata
        self.source_name = source_name
        self.catalog_book: Optional[CatalogBook] = None
        self.headers: dict[str, list[str]] = {}
        self.chapters: list[Chapter] = []
        self.warnings: list[ParseWarning] = []
        self._warned_markers: set[str] = set()

        # Per-chapter state
        self.chapter: Optional[Chapter] = None
        self.next_note_id = 0
        self.verse: Optional[Verse] = None
        self.subtitle: Optional[HebrewSubtitle] = None
        self.heading: Optional[list[str]] = None
        self.heading_inline = False
        self.held_headings: list[Heading] = []
        self.header_tag: Optional[str] = None
        self.ignoring = False
        self.footnote: Optional[_OpenFootnote] = None

        # Formatting context
        self.poem: Optional[int] = None
        self.poem_fresh = False  # poetry marker seen and no text since
        self.words_of_jesus = False
        self.pending_break = False
        self.new_run = True

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def feed(self, tokens: Iterable[Token]) -> None:
        for token in tokens:
            self.handle(token)

    def handle(self, token: Token) -> None:
        handler = self._handlers[token.kind]
        handler(self, token)

    def finish(self) -> ParsedBook:
        """Flush the last chapter and return the parsed book."""
        self._finish_chapter()
        if self.catalog_book is None:
            raise UnknownBookError(self.source_name or "<missing \\id>")

        book = self.catalog_book
        name = self._header_text("h", "h1", "toc2") or book.common_name
        title = self._header_text("toc1") or self._title_from_main_titles()
        return ParsedBook(
            translation=self.metadata,
            book=BookInfo(id=book.id, name=name, common_name=book.common_name, order=book.order, title=title),
            chapters=self.chapters,
            warnings=self.warnings,
        )

    # -------------------------------------------------------------------------
    # Warnings and headers
    # -------------------------------------------------------------------------

    def warn(self, message: str) -> None:
        warning = ParseWarning(
            translation_id=self.metadata.id,
            book_id=self.catalog_book.id if self.catalog_book else None,
            chapter=self.chapter.number if self.chapter else None,
            message=message,
        )
        self.warnings.append(warning)
        logger.warning(str(warning))

    def _header_text(self, *tags: str) -> Optional[str]:
        for tag in tags:
            text = _normalize(" ".join(self.headers.get(tag, [])))
            if text:
                return text
        return None

    def _title_from_main_titles(self) -> Optional[str]:
        parts = [
            _normalize(" ".join(texts))
            for tag, texts in self.headers.items()
            if tag.startswith("mt")
        ]
        title = " ".join(part for part in parts if part)
        return title or None

    # -------------------------------------------------------------------------
    # Block management
    # -------------------------------------------------------------------------

    def _close_blocks(self, close_subtitle: bool = True) -> None:
        """Close the header, heading and ignored paragraph (and subtitle) that are open."""
        self.header_tag = None
        self.ignoring = False
        self._close_heading()
        if close_subtitle:
            self._close_subtitle()

    def _close_heading(self) -> None:
        if self.heading is None:
            return
        segments = [text for text in (_normalize(s) for s in self.heading) if text]
        inline = self.heading_inline
        self.heading = None
        self.heading_inline = False
        if not segments:
            return
        if inline:
            self.held_headings.append(Heading(segments))
        elif self.chapter is not None:
            self.chapter.content.append(Heading(segments))

    def _close_subtitle(self) -> None:
        if self.subtitle is None:
            return
        subtitle = self.subtitle
        self.subtitle = None
        subtitle.content = _clean_items(subtitle.content)
        if subtitle.content and self.chapter is not None:
            self.chapter.content.append(subtitle)

    def _close_verse(self) -> None:
        if self.verse is not None:
            self.verse.content = _clean_items(self.verse.content)
            self.chapter.content.append(self.verse)
            self.verse = None
        if self.held_headings and self.chapter is not None:
            self.chapter.content.extend(self.held_headings)
        self.held_headings = []
        self.pending_break = False

    def _close_footnote(self, implicit: bool = False) -> None:
        note = self.footnote
        if note is None:
            return
        self.footnote = None
        self.new_run = True
        if implicit:
            self.warn(f"Footnote {note.note_id} was not closed; closing it implicitly")
        if note.discard or self.chapter is None:
            return
        self.chapter.footnotes.append(Footnote(
            note_id=note.note_id,
            text=_normalize("".join(note.segments)),
            caller=note.caller,
            reference=note.reference,
        ))

    def _finish_chapter(self) -> None:
        if self.footnote is not None:
            self._close_footnote(implicit=True)
        self._close_blocks()
        if self.chapter is not None:
            self._close_verse()
            self.chapters.append(self.chapter)
        self.chapter = None
        self.verse = None
        self.held_headings = []
        self.next_note_id = 0
        self.poem = None
        self.poem_fresh = False
        self.words_of_jesus = False
        self.pending_break = False
        self.new_run = True

    def _start_chapter(self, number: int) -> None:
        self._finish_chapter()
        self.chapter = Chapter(number=number)

    def _close_footnote_before_structure(self, token: Token) -> None:
        if self.footnote is not None:
            self.warn(f"Marker \\{token.marker or token.kind.value} inside an open footnote")
            self._close_footnote(implicit=True)

    # -------------------------------------------------------------------------
    # Text accumulation
    # -------------------------------------------------------------------------

    def _append_run(self, items: list, text: str) -> None:
        if self.poem is None and not self.words_of_jesus:
            if not self.new_run and items and isinstance(items[-1], str):
                items[-1] += text
            else:
                items.append(text)
        else:
            last = items[-1] if items else None
            if (
                not self.new_run
                and isinstance(last, FormattedText)
                and last.poem == self.poem
                and last.words_of_jesus == self.words_of_jesus
            ):
                last.text += text
            else:
                items.append(FormattedText(text, poem=self.poem, words_of_jesus=self.words_of_jesus))
        self.new_run = False

    def _inline_held_headings(self) -> None:
        for heading in self.held_headings:
            self.verse.content.append(InlineHeading(" ".join(heading.content)))
        self.held_headings = []

    def _append_verse_text(self, text: str) -> None:
        if text.strip():
            self._inline_held_headings()
            if self.pending_break:
                self.verse.content.append(InlineLineBreak())
                self.pending_break = False
            self.poem_fresh = False
        self._append_run(self.verse.content, text)

    # -------------------------------------------------------------------------
    # Token handlers
    # -------------------------------------------------------------------------

    def _on_book_id(self, token: Token) -> None:
        if self.catalog_book is not None:
            self.warn(f"Duplicate \\id marker {token.value!r} ignored")
            return
        self.catalog_book = resolve_book(token.value or "")

    def _on_book_header(self, token: Token) -> None:
        self._close_footnote_before_structure(token)
        self._close_blocks()
        if self.chapter is not None:
            # Titles repeated inside the text are not part of any chapter.
            self.ignoring = True
            return
        self.header_tag = token.value
        self.headers.setdefault(token.value, [])

    def _on_chapter(self, token: Token) -> None:
        self._close_footnote_before_structure(token)
        try:
            number = int(token.value)
        except (TypeError, ValueError):
            previous = self.chapter or (self.chapters[-1] if self.chapters else None)
            number = previous.number + 1 if previous else 1
            self.warn(f"Malformed chapter number {token.value!r}; using {number}")
        self._start_chapter(number)

    def _on_verse(self, token: Token) -> None:
        self._close_footnote_before_structure(token)
        if self.chapter is None:
            self.warn(f"Verse {token.value} appears before any chapter marker; assuming chapter 1")
            self._start_chapter(1)

        self._close_blocks()
        parsed = parse_verse_number(token.value)
        if parsed is None:
            self.warn(f"Malformed verse number {token.value!r} ignored")
            return

        self._close_verse()
        if not self.poem_fresh:
            self.poem = None
        self.words_of_jesus = False
        self.new_run = True
        number, end_number = parsed
        self.verse = Verse(number=number, end_number=end_number)

    def _on_heading(self, token: Token) -> None:
        self._close_footnote_before_structure(token)
        self._close_blocks()
        if self.chapter is None:
            self.ignoring = True
            return

        if token.value == SUBTITLE_MARKER:
            self._close_verse()
            self.subtitle = HebrewSubtitle()
            self.new_run = True
            return

        self.heading = []
        self.heading_inline = self.verse is not None
        self.new_run = True

    def _on_paragraph(self, token: Token) -> None:
        self._close_footnote_before_structure(token)
        self._close_blocks()
        if (
            token.value != NO_BREAK_MARKER
            and self.verse is not None
            and self.poem is None
            and not self.held_headings
            and _has_text(self.verse.content)
        ):
            self.pending_break = True
        self.poem = None
        self.poem_fresh = False
        self.new_run = True

    def _on_poetry(self, token: Token) -> None:
        self._close_footnote_before_structure(token)
        self._close_blocks()
        self.poem = int(token.value or 1)
        self.poem_fresh = True
        self.pending_break = False
        self.new_run = True

    def _on_line_break(self, token: Token) -> None:
        self._close_footnote_before_structure(token)
        self._close_blocks()
        if self.chapter is None:
            return
        self._close_verse()
        self.chapter.content.append(LineBreak())
        self.poem = None
        self.poem_fresh = False

    def _on_ignored(self, token: Token) -> None:
        self._close_footnote_before_structure(token)
        self._close_blocks(close_subtitle=False)
        self.ignoring = True

    def _on_footnote_start(self, token: Token) -> None:
        if self.footnote is not None:
            self.warn("Footnote opened inside another footnote")
            self._close_footnote(implicit=True)

        caller = token.value if token.value is not None else AUTO_CALLER
        if caller == NO_CALLER:
            caller = None

        discard = self.chapter is None or self.ignoring or self.header_tag is not None
        reference = None
        if self.verse is not None:
            reference = FootnoteSource(chapter=self.chapter.number, verse=self.verse.number)

        note = _OpenFootnote(note_id=self.next_note_id, caller=caller, reference=reference, discard=discard)
        self.footnote = note
        self.new_run = True
        if discard:
            return

        self.next_note_id += 1
        if self.heading is not None:
            return
        if self.subtitle is not None:
            self.subtitle.content.append(FootnoteReference(note.note_id))
        elif self.verse is not None:
            self._inline_held_headings()
            self.verse.content.append(FootnoteReference(note.note_id))

    def _on_footnote_end(self, token: Token) -> None:
        if self.footnote is None:
            self.warn("Footnote close marker without a matching open marker ignored")
            return
        self._close_footnote()

    def _on_inline_start(self, token: Token) -> None:
        if self.footnote is not None:
            if token.value == FOOTNOTE_REFERENCE_PART:
                self.footnote.skipping = True
            elif token.value and token.value[0] in ("f", "x"):
                self.footnote.skipping = False
            return
        if token.value == "wj":
            self.words_of_jesus = True
            self.new_run = True

    def _on_inline_end(self, token: Token) -> None:
        if self.footnote is not None:
            if token.value == FOOTNOTE_REFERENCE_PART:
                self.footnote.skipping = False
            return
        if token.value == "wj":
            self.words_of_jesus = False
            self.new_run = True

    def _on_text(self, token: Token) -> None:
        text = token.value or ""
        if token.marker and token.marker not in self._warned_markers:
            self._warned_markers.add(token.marker)
            self.warn(f"Unrecognized marker \\{token.marker} kept as text")

        if self.footnote is not None:
            if not self.footnote.skipping:
                self.footnote.segments.append(text)
            return
        if self.header_tag is not None:
            self.headers[self.header_tag].append(text)
            return
        if self.ignoring:
            return
        if self.heading is not None:
            if self.heading and not self.new_run:
                self.heading[-1] += text
            else:
                self.heading.append(text)
            self.new_run = False
            return
        if self.subtitle is not None:
            if text.strip():
                self.poem_fresh = False
            self._append_run(self.subtitle.content, text)
            return
        if self.verse is not None:
            self._append_verse_text(text)
            return
        if text.strip() and self.chapter is not None:
            self.warn(f"Text outside of any verse dropped: {_normalize(text)[:40]!r}")

    _handlers = {
        TokenKind.BOOK_ID: _on_book_id,
        TokenKind.BOOK_HEADER: _on_book_header,
        TokenKind.CHAPTER: _on_chapter,
        TokenKind.VERSE: _on_verse,
        TokenKind.HEADING: _on_heading,
        TokenKind.PARAGRAPH: _on_paragraph,
        TokenKind.POETRY: _on_poetry,
        TokenKind.LINE_BREAK: _on_line_break,
        TokenKind.IGNORED: _on_ignored,
        TokenKind.FOOTNOTE_START: _on_footnote_start,
        TokenKind.FOOTNOTE_END: _on_footnote_end,
        TokenKind.INLINE_START: _on_inline_start,
        TokenKind.INLINE_END: _on_inline_end,
        TokenKind.TEXT: _on_text,
    }


# =============================================================================
# Public API
# =============================================================================

def parse_text(
    content: str,
    metadata: TranslationMetadata,
    format: str = "usfm",
    source_name: Optional[str] = None,
) -> ParsedBook:
    """
    Parse one book of raw USFM or USX.

    Raises:
        UnknownBookError: if the book identifier is missing or unknown
    """
    builder = ParseTreeBuilder(metadata, source_name=source_name)
    builder.feed(tokenize(content, format))
    return builder.finish()


def parse_book(input_file: InputFile) -> ParsedBook:
    """Parse an input file into a ParsedBook."""
    return parse_text(
        input_file.content,
        input_file.metadata,
        format=input_file.format,
        source_name=input_file.name,
    )
