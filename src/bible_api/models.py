"""Data models for parsed books and generated API documents."""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from .errors import MetadataError


# =============================================================================
# Translation Metadata
# =============================================================================

REQUIRED_METADATA_FIELDS = ("id", "name", "website", "licenseUrl", "language")
TEXT_DIRECTIONS = ("ltr", "rtl")


@dataclass(frozen=True)
class TranslationMetadata:
    """Describes the translation that owns a set of books."""

    id: str  # e.g., "bsb"
    name: str  # e.g., "Berean Standard Bible"
    website: str
    license_url: str
    language: str  # RFC 5646 tag, e.g., "en"
    english_name: Optional[str] = None
    short_name: Optional[str] = None  # e.g., "BSB"
    direction: str = "ltr"  # "ltr" or "rtl"

    @classmethod
    def from_dict(cls, data: dict) -> "TranslationMetadata":
        """Build metadata from a camelCase dictionary such as a metadata.json file."""
        if not isinstance(data, dict):
            raise MetadataError(f"Translation metadata must be an object, got {type(data).__name__}")

        missing = [key for key in REQUIRED_METADATA_FIELDS if not data.get(key)]
        if missing:
            raise MetadataError(f"Translation metadata is missing required field(s): {', '.join(missing)}")

        direction = data.get("direction") or data.get("textDirection") or "ltr"
        if direction not in TEXT_DIRECTIONS:
            raise MetadataError(f"Invalid text direction {direction!r} for translation {data['id']!r}")

        return cls(
            id=data["id"],
            name=data["name"],
            website=data["website"],
            license_url=data["licenseUrl"],
            language=data["language"],
            english_name=data.get("englishName"),
            short_name=data.get("shortName"),
            direction=direction,
        )

    def to_dict(self) -> dict:
        """Convert to the API representation of a translation."""
        result = {
            "id": self.id,
            "name": self.name,
            "englishName": self.english_name or self.name,
            "website": self.website,
            "licenseUrl": self.license_url,
            "language": self.language,
            "textDirection": self.direction,
        }
        if self.short_name:
            result["shortName"] = self.short_name
        return result


# =============================================================================
# Chapter Content
# =============================================================================

@dataclass
class FormattedText:
    """Text with poetry indentation and/or the words-of-Jesus attribute."""

    text: str
    poem: Optional[int] = None  # indent level, common in Psalms
    words_of_jesus: bool = False

    def to_dict(self) -> dict:
        result: dict[str, Any] = {"text": self.text}
        if self.poem is not None:
            result["poem"] = self.poem
        if self.words_of_jesus:
            result["wordsOfJesus"] = True
        return result


@dataclass
class InlineHeading:
    """A heading that interrupts a verse."""

    heading: str

    def to_dict(self) -> dict:
        return {"heading": self.heading}


@dataclass
class InlineLineBreak:
    """A line break inside a verse."""

    def to_dict(self) -> dict:
        return {"lineBreak": True}


@dataclass
class FootnoteReference:
    """Points at a footnote in the same chapter."""

    note_id: int

    def to_dict(self) -> dict:
        return {"noteId": self.note_id}


SubtitleItem = Union[str, FormattedText, FootnoteReference]
VerseItem = Union[str, FormattedText, InlineHeading, InlineLineBreak, FootnoteReference]


def item_to_dict(item) -> Any:
    """Convert a verse or subtitle item to JSON. Strings stay strings."""
    if isinstance(item, str):
        return item
    if isinstance(item, (FormattedText, InlineHeading, InlineLineBreak, FootnoteReference)):
        return item.to_dict()
    raise TypeError(f"Unsupported content item: {item!r}")


@dataclass
class Heading:
    """A section heading. Segments are joined with a space when rendered."""

    content: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"type": "heading", "content": list(self.content)}


@dataclass
class LineBreak:
    """A blank line between paragraphs."""

    def to_dict(self) -> dict:
        return {"type": "line_break"}


@dataclass
class HebrewSubtitle:
    """A Psalm title, e.g. "To the choirmaster. A Psalm of the Sons of Korah."."""

    content: list[SubtitleItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"type": "hebrew_subtitle", "content": [item_to_dict(item) for item in self.content]}


@dataclass
class Verse:
    """A verse. Combined verses ("3-4") are keyed by their first number."""

    number: int
    content: list[VerseItem] = field(default_factory=list)
    end_number: Optional[int] = None  # last number of a combined verse

    def to_dict(self) -> dict:
        result: dict[str, Any] = {
            "type": "verse",
            "number": self.number,
            "content": [item_to_dict(item) for item in self.content],
        }
        if self.end_number is not None:
            result["endNumber"] = self.end_number
        return result


ChapterContent = Union[Heading, LineBreak, HebrewSubtitle, Verse]


@dataclass
class FootnoteSource:
    """Where a footnote was opened."""

    chapter: int
    verse: int


@dataclass
class Footnote:
    """
    A footnote body.

    The caller is '+' when one should be generated, None when no caller is
    shown, or the literal text to print.
    """

    note_id: int
    text: str
    caller: Optional[str] = "+"
    reference: Optional[FootnoteSource] = None

    def to_dict(self) -> dict:
        result: dict[str, Any] = {"noteId": self.note_id, "text": self.text}
        if self.reference is not None:
            result["reference"] = {"chapter": self.reference.chapter, "verse": self.reference.verse}
        result["caller"] = self.caller
        return result


@dataclass
class Chapter:
    """A chapter and the footnotes referenced from its content."""

    number: int
    content: list[ChapterContent] = field(default_factory=list)
    footnotes: list[Footnote] = field(default_factory=list)

    def footnote_references(self) -> list[FootnoteReference]:
        """All footnote references in content order."""
        refs = []
        for node in self.content:
            if isinstance(node, (Verse, HebrewSubtitle)):
                refs.extend(item for item in node.content if isinstance(item, FootnoteReference))
        return refs

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "content": [node.to_dict() for node in self.content],
            "footnotes": [note.to_dict() for note in self.footnotes],
        }


# =============================================================================
# Books
# =============================================================================

@dataclass
class BookInfo:
    """A book as provided by a translation."""

    id: str  # canonical USFM id, e.g., "GEN"
    name: str  # name supplied by the translation
    common_name: str  # e.g., "Genesis"
    order: int  # canonical position
    title: Optional[str] = None


@dataclass
class ParseWarning:
    """A recoverable problem found while parsing."""

    translation_id: str
    book_id: Optional[str]
    chapter: Optional[int]
    message: str

    def __str__(self) -> str:
        location = self.book_id or "?"
        if self.chapter is not None:
            location = f"{location} {self.chapter}"
        return f"[{self.translation_id}] {location}: {self.message}"


@dataclass
class ParsedBook:
    """The parse tree for one book of one translation."""

    translation: TranslationMetadata
    book: BookInfo
    chapters: list[Chapter] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "translation": self.translation.to_dict(),
            "book": {
                "id": self.book.id,
                "name": self.book.name,
                "commonName": self.book.common_name,
                "title": self.book.title,
                "order": self.book.order,
            },
            "chapters": [chapter.to_dict() for chapter in self.chapters],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


# =============================================================================
# Pipeline Input / Output
# =============================================================================

INPUT_FORMATS = ("usfm", "usx")


@dataclass
class InputFile:
    """Raw content for one book of a translation."""

    content: str
    metadata: TranslationMetadata
    format: str = "usfm"  # "usfm" or "usx"
    name: Optional[str] = None  # file name, used in error messages


OutputContent = Union[dict, list, Callable[[], Any]]


@dataclass
class OutputFile:
    """A generated document and the path it should be stored at."""

    path: str
    content: OutputContent
    mergeable: bool = False  # may be merged with the same path from other runs

    def resolve_content(self) -> Any:
        """Evaluate lazily produced content."""
        if callable(self.content):
            return self.content()
        return self.content

    def to_json(self, pretty: bool = False) -> str:
        indent = 2 if pretty else None
        return json.dumps(self.resolve_content(), indent=indent, ensure_ascii=False)
