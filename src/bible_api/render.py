"""Renders parse trees back to USFM and resolves footnote callers."""

import string
from typing import Optional

from .models import (
    Chapter,
    Footnote,
    FootnoteReference,
    FormattedText,
    Heading,
    HebrewSubtitle,
    InlineHeading,
    InlineLineBreak,
    LineBreak,
    ParsedBook,
    Verse,
)


# =============================================================================
# Callers
# =============================================================================

def generate_caller(index: int) -> str:
    """Caller glyph for the index-th auto caller: a..z, aa..az, ba.."""
    letters = string.ascii_lowercase
    caller = ""
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, len(letters))
        caller = letters[remainder] + caller
    return caller


def assign_callers(footnotes: list[Footnote]) -> dict[int, str]:
    """
    Resolve the caller shown for each footnote of a chapter.

    '+' callers are numbered in note order, None becomes an empty caller, and
    literal callers are kept.
    """
    callers = {}
    auto_index = 0
    for note in sorted(footnotes, key=lambda n: n.note_id):
        if note.caller == "+":
            callers[note.note_id] = generate_caller(auto_index)
            auto_index += 1
        elif note.caller is None:
            callers[note.note_id] = ""
        else:
            callers[note.note_id] = note.caller
    return callers


# =============================================================================
# USFM
# =============================================================================

def _render_footnote(note: Optional[Footnote], note_id: int) -> str:
    if note is None:
        return ""
    caller = "-" if note.caller is None else note.caller
    parts = [f"\\f {caller} "]
    if note.reference is not None:
        parts.append(f"\\fr {note.reference.chapter}:{note.reference.verse} ")
    parts.append(f"\\ft {note.text}\\f*")
    return "".join(parts)


class _ItemRenderer:
    """Renders the items of a verse or subtitle, tracking the poetry level."""

    def __init__(self, footnotes: dict[int, Footnote]):
        self.footnotes = footnotes
        self.poem: Optional[int] = None
        self.after_heading = False
        self.parts: list[str] = []

    def _set_poem(self, poem: Optional[int]) -> None:
        # Every poetic line gets its own marker so runs are not merged on re-parse.
        if poem is not None or poem != self.poem or self.after_heading:
            self.parts.append(f"\\q{poem} " if poem is not None else "\\m ")
        self.poem = poem
        self.after_heading = False

    def render(self, items: list) -> str:
        for item in items:
            if isinstance(item, str):
                self._set_poem(None)
                self.parts.append(item + " ")
            elif isinstance(item, FormattedText):
                self._set_poem(item.poem)
                if item.words_of_jesus:
                    self.parts.append(f"\\wj {item.text}\\wj* ")
                else:
                    self.parts.append(item.text + " ")
            elif isinstance(item, InlineLineBreak):
                if self.poem is not None:
                    self.parts.append("\\m ")
                    self.poem = None
                self.parts.append("\\p ")
                self.after_heading = False
            elif isinstance(item, InlineHeading):
                self.parts.append(f"\\s1 {item.heading}")
                self.after_heading = True
            elif isinstance(item, FootnoteReference):
                if self.after_heading:
                    self.parts.append("\\p ")
                    self.after_heading = False
                self.parts.append(_render_footnote(self.footnotes.get(item.note_id), item.note_id) + " ")
            else:
                raise TypeError(f"Unsupported content item: {item!r}")
        return "".join(self.parts).rstrip()


def render_chapter_usfm(chapter: Chapter) -> str:
    """Render one chapter as USFM lines."""
    footnotes = {note.note_id: note for note in chapter.footnotes}
    lines = [f"\\c {chapter.number}"]
    for node in chapter.content:
        if isinstance(node, Heading):
            lines.append("\\s1 " + " ".join(node.content))
        elif isinstance(node, LineBreak):
            lines.append("\\b")
        elif isinstance(node, HebrewSubtitle):
            lines.append("\\d " + _ItemRenderer(footnotes).render(node.content))
        elif isinstance(node, Verse):
            number = str(node.number)
            if node.end_number is not None:
                number = f"{node.number}-{node.end_number}"
            body = _ItemRenderer(footnotes).render(node.content)
            lines.append(f"\\v {number} {body}".rstrip())
        else:
            raise TypeError(f"Unsupported chapter content: {node!r}")
    return "\n".join(lines)


def render_usfm(book: ParsedBook) -> str:
    """Render a parsed book as a USFM document."""
    lines = [f"\\id {book.book.id}", f"\\h {book.book.name}"]
    if book.book.title:
        lines.append(f"\\toc1 {book.book.title}")
    for chapter in book.chapters:
        lines.append(render_chapter_usfm(chapter))
    return "\n".join(lines) + "\n"
