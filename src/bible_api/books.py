"""Book catalog: canonical USFM ids, common names, ordering and aliases."""

import re
from dataclasses import dataclass

from .errors import UnknownBookError


@dataclass(frozen=True)
class CatalogBook:
    """A canonical book."""

    id: str  # USFM id, e.g., "1SA"
    common_name: str  # e.g., "1 Samuel"
    order: int  # position in canonical ordering, 1-based
    aliases: tuple[str, ...] = ()  # other id spellings seen in source files


# =============================================================================
# Canon
# =============================================================================

# (id, common name, aliases) in USFM book number order.
_CANON = [
    # Old Testament
    ("GEN", "Genesis", ("GN", "GE")),
    ("EXO", "Exodus", ("EX", "EXOD")),
    ("LEV", "Leviticus", ("LV", "LE")),
    ("NUM", "Numbers", ("NU", "NB")),
    ("DEU", "Deuteronomy", ("DT", "DEUT")),
    ("JOS", "Joshua", ("JSH", "JOSH")),
    ("JDG", "Judges", ("JG", "JUDG")),
    ("RUT", "Ruth", ("RU", "RTH")),
    ("1SA", "1 Samuel", ("1SM", "1SAM")),
    ("2SA", "2 Samuel", ("2SM", "2SAM")),
    ("1KI", "1 Kings", ("1KG", "1KGS")),
    ("2KI", "2 Kings", ("2KG", "2KGS")),
    ("1CH", "1 Chronicles", ("1CHR",)),
    ("2CH", "2 Chronicles", ("2CHR",)),
    ("EZR", "Ezra", ("EZRA",)),
    ("NEH", "Nehemiah", ("NE",)),
    ("EST", "Esther", ("ES", "ESTH")),
    ("JOB", "Job", ("JB",)),
    ("PSA", "Psalms", ("PS", "PSALM")),
    ("PRO", "Proverbs", ("PR", "PRV", "PROV")),
    ("ECC", "Ecclesiastes", ("EC", "ECCL", "QOH")),
    ("SNG", "Song of Solomon", ("SOS", "SON", "SOL", "SONG", "CANT")),
    ("ISA", "Isaiah", ("IS",)),
    ("JER", "Jeremiah", ("JE", "JR")),
    ("LAM", "Lamentations", ("LA", "LM")),
    ("EZK", "Ezekiel", ("EZE", "EZEK")),
    ("DAN", "Daniel", ("DA", "DN")),
    ("HOS", "Hosea", ("HO",)),
    ("JOL", "Joel", ("JOE", "JL")),
    ("AMO", "Amos", ("AM", "AMOS")),
    ("OBA", "Obadiah", ("OB", "OBAD")),
    ("JON", "Jonah", ("JNH",)),
    ("MIC", "Micah", ("MI",)),
    ("NAM", "Nahum", ("NAH", "NA")),
    ("HAB", "Habakkuk", ("HB",)),
    ("ZEP", "Zephaniah", ("ZEPH", "ZP")),
    ("HAG", "Haggai", ("HG",)),
    ("ZEC", "Zechariah", ("ZECH", "ZC")),
    ("MAL", "Malachi", ("ML",)),
    # New Testament
    ("MAT", "Matthew", ("MT", "MATT")),
    ("MRK", "Mark", ("MAR", "MK")),
    ("LUK", "Luke", ("LK", "LU")),
    ("JHN", "John", ("JOH", "JN", "JOHN")),
    ("ACT", "Acts", ("AC", "ACTS")),
    ("ROM", "Romans", ("RO", "RM")),
    ("1CO", "1 Corinthians", ("1COR",)),
    ("2CO", "2 Corinthians", ("2COR",)),
    ("GAL", "Galatians", ("GA",)),
    ("EPH", "Ephesians", ("EPHES",)),
    ("PHP", "Philippians", ("PHIL", "PHI", "PP")),
    ("COL", "Colossians", ("CL",)),
    ("1TH", "1 Thessalonians", ("1THESS", "1THS")),
    ("2TH", "2 Thessalonians", ("2THESS", "2THS")),
    ("1TI", "1 Timothy", ("1TIM", "1TM")),
    ("2TI", "2 Timothy", ("2TIM", "2TM")),
    ("TIT", "Titus", ("TT",)),
    ("PHM", "Philemon", ("PHLM", "PM")),
    ("HEB", "Hebrews", ("HEBR",)),
    ("JAS", "James", ("JAM", "JM", "JMS")),
    ("1PE", "1 Peter", ("1PET", "1PT")),
    ("2PE", "2 Peter", ("2PET", "2PT")),
    ("1JN", "1 John", ("1JO", "1JHN")),
    ("2JN", "2 John", ("2JO", "2JHN")),
    ("3JN", "3 John", ("3JO", "3JHN")),
    ("JUD", "Jude", ("JDE", "JUDE")),
    ("REV", "Revelation", ("RE", "RV", "APOC")),
    # Deuterocanon / Apocrypha
    ("TOB", "Tobit", ("TB", "TOBIT")),
    ("JDT", "Judith", ("JTH", "JDTH")),
    ("ESG", "Esther (Greek)", ("ADE", "GES", "ESTG")),
    ("WIS", "Wisdom of Solomon", ("WS", "WISD")),
    ("SIR", "Sirach", ("ECCLUS", "SIRACH")),
    ("BAR", "Baruch", ("BA",)),
    ("LJE", "Letter of Jeremiah", ("EPJER", "EJE")),
    ("S3Y", "Song of the Three Young Men", ("AZA", "SGTHREE")),
    ("SUS", "Susanna", ("SUSANNA",)),
    ("BEL", "Bel and the Dragon", ("BELDR",)),
    ("1MA", "1 Maccabees", ("1MAC", "1MACC")),
    ("2MA", "2 Maccabees", ("2MAC", "2MACC")),
    ("3MA", "3 Maccabees", ("3MAC", "3MACC")),
    ("4MA", "4 Maccabees", ("4MAC", "4MACC")),
    ("1ES", "1 Esdras", ("1ESD",)),
    ("2ES", "2 Esdras", ("2ESD",)),
    ("MAN", "Prayer of Manasseh", ("PRMAN", "PMA")),
    ("PS2", "Psalm 151", ("PS151",)),
]

BIBLE_BOOKS: list[CatalogBook] = [
    CatalogBook(id=book_id, common_name=name, order=index + 1, aliases=aliases)
    for index, (book_id, name, aliases) in enumerate(_CANON)
]


def _normalize(token: str) -> str:
    return re.sub(r"[\s._-]+", "", token).upper()


def _build_lookup() -> dict[str, CatalogBook]:
    lookup: dict[str, CatalogBook] = {}
    # Canonical ids and names take precedence over aliases.
    for book in BIBLE_BOOKS:
        lookup[_normalize(book.id)] = book
        lookup.setdefault(_normalize(book.common_name), book)
    for book in BIBLE_BOOKS:
        for alias in book.aliases:
            lookup.setdefault(_normalize(alias), book)
    return lookup


BOOKS_BY_KEY = _build_lookup()
BOOKS_BY_ID = {book.id: book for book in BIBLE_BOOKS}


# =============================================================================
# Lookup
# =============================================================================

def resolve_book(token: str) -> CatalogBook:
    """
    Resolve a book identifier as it appears in source markup.

    Accepts canonical ids ("GEN"), alias ids ("EZE"), and common names
    ("1 Samuel"), case-insensitively.

    Raises:
        UnknownBookError: if the token matches nothing in the catalog
    """
    key = _normalize(token or "")
    book = BOOKS_BY_KEY.get(key)
    if book is None:
        raise UnknownBookError(token)
    return book


def is_known_book(token: str) -> bool:
    return _normalize(token or "") in BOOKS_BY_KEY


def book_order(book_id: str) -> int:
    """Canonical position of a book id (1-based)."""
    return resolve_book(book_id).order


# Peripheral USFM ids (front matter, glossary, ...). These are not books of
# any canon and carry no chapters.
PERIPHERAL_IDS = {
    "FRT", "BAK", "OTH", "INT", "CNC", "GLO", "TDX", "NDX", "TOP",
    "XXA", "XXB", "XXC", "XXD", "XXE", "XXF", "XXG",
}


def is_peripheral(token: str) -> bool:
    return _normalize(token or "") in PERIPHERAL_IDS
