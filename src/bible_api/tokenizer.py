"""Turns USFM text or USX documents into a flat stream of marker tokens."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString


class TokenKind(Enum):
    BOOK_ID = "bookId"
    BOOK_HEADER = "bookHeader"
    CHAPTER = "chapterMarker"
    VERSE = "verseMarker"
    HEADING = "headingMarker"
    PARAGRAPH = "paragraphMarker"
    POETRY = "poetryMarker"
    LINE_BREAK = "lineBreak"
    IGNORED = "ignoredMarker"  # starts a paragraph whose text is dropped
    FOOTNOTE_START = "footnoteStart"
    FOOTNOTE_END = "footnoteEnd"
    INLINE_START = "inlineFormatStart"
    INLINE_END = "inlineFormatEnd"
    TEXT = "plainText"


@dataclass(frozen=True)
class Token:
    """A marker or a run of text."""

    kind: TokenKind
    value: Optional[str] = None  # number, caller, text, or marker tag
    marker: Optional[str] = None  # marker tag that produced the token, if any


# =============================================================================
# Marker Vocabulary
# =============================================================================

BOOK_HEADER_MARKERS = {"h", "h1", "h2", "h3", "toc1", "toc2", "toc3", "toca1", "toca2", "toca3"}
TITLE_MARKER_RE = re.compile(r"^mt[1-4]?$|^mte[1-4]?$")
HEADING_MARKER_RE = re.compile(r"^(s[1-5]?|ms[1-3]?|sp|qa|d)$")
POETRY_MARKER_RE = re.compile(r"^(q|qm)([1-4]?)$")
POETRY_MARKERS_LEVEL_ONE = {"qr", "qc", "qd"}
PARAGRAPH_MARKER_RE = re.compile(
    r"^(p|m|po|pr|cls|pmo|pm|pmc|pmr|pi[1-3]?|mi|nb|pc|ph[1-3]?|li[1-4]?|lh|lf|lim[1-4]?|tr)$"
)
IGNORED_MARKERS = {"r", "mr", "sr", "rem", "ide", "sts", "usfm", "cl", "cp", "restore", "lit", "sd", "sd1", "sd2"}
FOOTNOTE_MARKERS = {"f", "fe", "ef"}
# Spans whose content never reaches the output.
DISCARDED_SPANS = {"x", "ex", "fig", "va", "ca", "vp", "rq", "cat"}
CHARACTER_MARKERS = {
    "add", "bk", "dc", "k", "nd", "ord", "pn", "png", "addpn", "qt", "sig", "sls", "tl", "wj",
    "em", "bd", "it", "bdit", "no", "sc", "sup", "w", "wg", "wh", "wa", "rb", "pro", "jmp",
    "qs", "qac", "ndx", "litl", "lik", "liv", "liv1", "liv2", "liv3",
    "fr", "fq", "fqa", "fk", "fl", "fw", "fp", "fv", "ft", "fdc", "fm",
    "xt", "xo", "xk", "xq", "xta", "xop", "xot", "xnt", "xdc",
    "th1", "th2", "th3", "th4", "thr1", "thr2", "thr3", "thr4",
    "tc1", "tc2", "tc3", "tc4", "tcr1", "tcr2", "tcr3", "tcr4",
}


def _is_intro_marker(tag: str) -> bool:
    return tag.startswith("i") and tag != "it"


def classify_marker(tag: str) -> Optional[tuple[TokenKind, Optional[str]]]:
    """
    Map an opening marker tag (no backslash, no '*') to a token kind and value.

    Returns None for tags outside the supported vocabulary.
    """
    if tag == "c":
        return TokenKind.CHAPTER, None
    if tag == "v":
        return TokenKind.VERSE, None
    if tag == "id":
        return TokenKind.BOOK_ID, None
    if tag in BOOK_HEADER_MARKERS or TITLE_MARKER_RE.match(tag):
        return TokenKind.BOOK_HEADER, tag
    if HEADING_MARKER_RE.match(tag):
        return TokenKind.HEADING, tag
    if tag == "b":
        return TokenKind.LINE_BREAK, None
    poetry = POETRY_MARKER_RE.match(tag)
    if poetry:
        return TokenKind.POETRY, poetry.group(2) or "1"
    if tag in POETRY_MARKERS_LEVEL_ONE:
        return TokenKind.POETRY, "1"
    if PARAGRAPH_MARKER_RE.match(tag):
        return TokenKind.PARAGRAPH, tag
    if tag in IGNORED_MARKERS or _is_intro_marker(tag):
        return TokenKind.IGNORED, tag
    if tag in FOOTNOTE_MARKERS:
        return TokenKind.FOOTNOTE_START, None
    if tag in CHARACTER_MARKERS:
        return TokenKind.INLINE_START, tag
    return None


# =============================================================================
# USFM
# =============================================================================

MARKER_RE = re.compile(r"\\(\+?)([A-Za-z][A-Za-z0-9]*(?:-[se])?)(\*?)")
ARGUMENT_RE = re.compile(r"[ \t]*(\S+)[ \t]?")
MILESTONE_END = "\\*"
STRUCTURAL_KINDS = {
    TokenKind.CHAPTER, TokenKind.VERSE, TokenKind.HEADING, TokenKind.PARAGRAPH,
    TokenKind.POETRY, TokenKind.LINE_BREAK, TokenKind.IGNORED, TokenKind.BOOK_HEADER,
}


def _strip_attributes(text: str) -> str:
    """Drop word-level attributes such as '|strong="H7225"'."""
    return text.split("|", 1)[0]


def tokenize_usfm(text: str) -> Iterator[Token]:
    """
    Scan USFM text left to right and yield tokens.

    Cross references, figures and alternate numbering are dropped.
    Unknown markers are passed through as text.
    """
    pos = 0
    length = len(text)
    open_chars: list[str] = []
    discarding: Optional[str] = None

    while pos < length:
        match = MARKER_RE.search(text, pos)
        end = match.start() if match else length

        if end > pos and discarding is None:
            run = text[pos:end]
            if open_chars and "|" in run:
                run = _strip_attributes(run)
            if run:
                yield Token(TokenKind.TEXT, run)

        if not match:
            break

        tag = match.group(2)
        closing = bool(match.group(3))
        pos = match.end()

        if tag.endswith("-s") or tag.endswith("-e"):
            # Milestones carry only attributes; skip through their "\*".
            close = text.find(MILESTONE_END, pos)
            if close != -1 and "\\" not in text[pos:close]:
                pos = close + len(MILESTONE_END)
            continue

        if not closing and text.startswith(MILESTONE_END, pos) and classify_marker(tag) is None:
            # Standalone milestone such as \ts\*.
            pos += len(MILESTONE_END)
            continue

        if discarding is not None:
            if closing and tag == discarding:
                discarding = None
                continue
            classified = classify_marker(tag) if not closing else None
            if classified is None or classified[0] not in STRUCTURAL_KINDS:
                continue
            discarding = None

        if closing:
            if tag in FOOTNOTE_MARKERS:
                open_chars.clear()
                yield Token(TokenKind.FOOTNOTE_END, None, tag)
            elif tag in CHARACTER_MARKERS:
                if tag in open_chars:
                    open_chars.remove(tag)
                yield Token(TokenKind.INLINE_END, tag, tag)
            elif tag not in DISCARDED_SPANS and classify_marker(tag) is None:
                yield Token(TokenKind.TEXT, match.group(0), tag)
            continue

        if tag in DISCARDED_SPANS:
            discarding = tag
            continue

        classified = classify_marker(tag)
        if classified is None:
            yield Token(TokenKind.TEXT, match.group(0) + " ", tag)
            if pos < length and text[pos].isspace():
                pos += 1
            continue

        kind, value = classified

        if kind in (TokenKind.CHAPTER, TokenKind.VERSE, TokenKind.FOOTNOTE_START):
            argument = ARGUMENT_RE.match(text, pos)
            if argument and not argument.group(1).startswith("\\"):
                value = argument.group(1)
                pos = argument.end()
            yield Token(kind, value, tag)
            continue

        if kind is TokenKind.BOOK_ID:
            line_end = text.find("\n", pos)
            line_end = length if line_end == -1 else line_end
            words = text[pos:line_end].split()
            yield Token(kind, words[0] if words else None, tag)
            pos = line_end
            continue

        if kind in STRUCTURAL_KINDS:
            open_chars.clear()
        elif kind is TokenKind.INLINE_START:
            open_chars.append(tag)

        yield Token(kind, value, tag)
        if pos < length and text[pos].isspace():
            pos += 1


# =============================================================================
# USX
# =============================================================================

SKIPPED_USX_ELEMENTS = {"figure", "ms", "optbreak", "sidebar", "periph", "category"}


def _walk_usx(node: Tag) -> Iterator[Token]:
    for child in node.children:
        if isinstance(child, PreformattedString):
            continue
        if isinstance(child, NavigableString):
            yield Token(TokenKind.TEXT, str(child))
            continue
        if not isinstance(child, Tag):
            continue
        yield from _usx_element(child)


def _usx_element(element: Tag) -> Iterator[Token]:
    name = element.name
    style = element.get("style", "")

    if name in SKIPPED_USX_ELEMENTS:
        return

    if name == "book":
        yield Token(TokenKind.BOOK_ID, element.get("code"), "id")
        return

    if name in ("chapter", "verse"):
        if element.get("eid") is not None or not element.get("number"):
            return
        kind = TokenKind.CHAPTER if name == "chapter" else TokenKind.VERSE
        yield Token(kind, element["number"], name[0])
        return

    if name == "note":
        if style not in FOOTNOTE_MARKERS:
            return
        yield Token(TokenKind.FOOTNOTE_START, element.get("caller", "+"), style)
        yield from _walk_usx(element)
        yield Token(TokenKind.FOOTNOTE_END, None, style)
        return

    if name == "char":
        if style in DISCARDED_SPANS:
            return
        yield Token(TokenKind.INLINE_START, style, style)
        yield from _walk_usx(element)
        yield Token(TokenKind.INLINE_END, style, style)
        return

    if name in ("para", "row"):
        classified = classify_marker(style or "tr")
        if classified is None:
            yield Token(TokenKind.TEXT, f"\\{style} ", style)
        else:
            kind, value = classified
            yield Token(kind, value, style)
        yield from _walk_usx(element)
        return

    # ref, table, cell, usx and anything else: only their text matters.
    yield from _walk_usx(element)


def tokenize_usx(text: str) -> Iterator[Token]:
    """Walk a USX document depth-first, yielding the same tokens USFM produces."""
    soup = BeautifulSoup(text, "html.parser")
    root = soup.find("usx") or soup
    yield from _walk_usx(root)


def tokenize(text: str, format: str = "usfm") -> Iterator[Token]:
    """Tokenize a document in the given format ("usfm" or "usx")."""
    if format == "usx":
        return tokenize_usx(text)
    if format == "usfm":
        return tokenize_usfm(text)
    raise ValueError(f"Unsupported input format: {format!r}")
