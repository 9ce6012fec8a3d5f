"""
Bible API - Parses USFM/USX translations and generates a linked set of JSON API documents.
"""

from .books import BIBLE_BOOKS, resolve_book
from .errors import BibleApiError, GenerationError, MetadataError, UnknownBookError
from .generator import GeneratorOptions, generate, generate_from_inputs, merge_output_files
from .models import InputFile, OutputFile, ParsedBook, TranslationMetadata
from .parser import parse_book, parse_text
from .render import render_usfm

__all__ = [
    "BIBLE_BOOKS",
    "resolve_book",
    "BibleApiError",
    "GenerationError",
    "MetadataError",
    "UnknownBookError",
    "GeneratorOptions",
    "generate",
    "generate_from_inputs",
    "merge_output_files",
    "InputFile",
    "OutputFile",
    "ParsedBook",
    "TranslationMetadata",
    "parse_book",
    "parse_text",
    "render_usfm",
]

__version__ = "0.1.0"
