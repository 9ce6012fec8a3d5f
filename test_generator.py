"""Tests for document generation and merging."""

import pytest

from bible_api.audio import DictAudioIndex
from bible_api.generator import (
    AVAILABLE_TRANSLATIONS_PATH,
    GeneratorOptions,
    batched,
    generate,
    generate_from_inputs,
    merge_available_translations,
    merge_output_files,
)
from bible_api.models import InputFile, OutputFile
from bible_api.parser import parse_text


def as_tree(files):
    return {file.path: file.resolve_content() for file in files}


BSB_TRANSLATION = {
    "id": "bsb",
    "name": "Berean Standard Bible",
    "englishName": "Berean Standard Bible",
    "website": "https://berean.bible",
    "licenseUrl": "https://berean.bible/terms.htm",
    "language": "en",
    "textDirection": "ltr",
    "shortName": "BSB",
    "availableFormats": ["json"],
    "listOfBooksApiLink": "/bible/bsb/books",
}

GENESIS_ENTRY = {
    "id": "GEN",
    "name": "Genesis",
    "commonName": "Genesis",
    "title": "Genesis",
    "order": 1,
    "numberOfChapters": 1,
    "firstChapterApiLink": "/bible/bsb/Genesis/1.json",
}

EXODUS_ENTRY = {
    "id": "EXO",
    "name": "Exodus",
    "commonName": "Exodus",
    "title": "Exodus",
    "order": 2,
    "numberOfChapters": 1,
    "firstChapterApiLink": "/bible/bsb/Exodus/1.json",
}


def test_generates_bsb_sample_tree(bsb_inputs):
    files = generate_from_inputs(bsb_inputs, GeneratorOptions(link_across_books=False))
    tree = as_tree(files)

    assert list(tree) == [
        "/bible/available_translations",
        "/bible/bsb/books",
        "/bible/bsb/Genesis/1.json",
        "/bible/bsb/Exodus/1.json",
    ]
    assert files[0].mergeable
    assert tree["/bible/available_translations"] == {"translations": [BSB_TRANSLATION]}
    assert tree["/bible/bsb/books"] == {
        "translation": BSB_TRANSLATION,
        "books": [GENESIS_ENTRY, EXODUS_ENTRY],
    }

    genesis = tree["/bible/bsb/Genesis/1.json"]
    assert genesis["translation"] == BSB_TRANSLATION
    assert genesis["book"] == GENESIS_ENTRY
    assert genesis["thisChapterLink"] == "/bible/bsb/Genesis/1.json"
    assert genesis["previousChapterLink"] is None
    assert genesis["nextChapterLink"] is None
    assert "thisChapterAudioLinks" not in genesis
    assert genesis["chapter"] == {
        "number": 1,
        "content": [
            {"type": "heading", "content": ["The Creation"]},
            {"type": "line_break"},
            {
                "type": "verse",
                "number": 1,
                "content": ["In the beginning God created the heavens and the earth."],
            },
            {"type": "line_break"},
            {
                "type": "verse",
                "number": 2,
                "content": [
                    "Now the earth was formless and void, and darkness was over the surface of the deep. "
                    "And the Spirit of God was hovering over the surface of the waters."
                ],
            },
        ],
        "footnotes": [],
    }

    exodus = tree["/bible/bsb/Exodus/1.json"]
    assert exodus["book"] == EXODUS_ENTRY
    assert exodus["previousChapterLink"] is None
    assert exodus["nextChapterLink"] is None
    assert exodus["chapter"]["content"][0] == {"type": "heading", "content": ["The Israelites Multiply in Egypt"]}
    assert exodus["chapter"]["content"][4]["content"] == ["Reuben, Simeon, Levi, and Judah;"]


def test_links_cross_book_boundaries_by_default(bsb_inputs):
    tree = as_tree(generate_from_inputs(bsb_inputs))

    genesis = tree["/bible/bsb/Genesis/1.json"]
    exodus = tree["/bible/bsb/Exodus/1.json"]
    assert genesis["previousChapterLink"] is None
    assert genesis["nextChapterLink"] == "/bible/bsb/Exodus/1.json"
    assert exodus["previousChapterLink"] == "/bible/bsb/Genesis/1.json"
    assert exodus["nextChapterLink"] is None


def test_books_are_ordered_canonically(bsb_inputs):
    tree = as_tree(generate_from_inputs(list(reversed(bsb_inputs))))
    assert [book["id"] for book in tree["/bible/bsb/books"]["books"]] == ["GEN", "EXO"]


def test_chapter_links_within_a_book(bsb_metadata):
    book = parse_text("\\id RUT\n\\c 1\n\\v 1 A\n\\c 2\n\\v 1 B\n\\c 3\n\\v 1 C\n", bsb_metadata)
    tree = as_tree(generate([book]))

    assert tree["/bible/bsb/Ruth/1.json"]["previousChapterLink"] is None
    assert tree["/bible/bsb/Ruth/2.json"]["previousChapterLink"] == "/bible/bsb/Ruth/1.json"
    assert tree["/bible/bsb/Ruth/2.json"]["nextChapterLink"] == "/bible/bsb/Ruth/3.json"
    assert tree["/bible/bsb/Ruth/3.json"]["nextChapterLink"] is None
    assert tree["/bible/bsb/books"]["books"][0]["numberOfChapters"] == 3


def test_book_ids_in_paths(bsb_inputs):
    tree = as_tree(generate_from_inputs(bsb_inputs, GeneratorOptions(use_common_name=False)))
    assert "/bible/bsb/GEN/1.json" in tree
    assert tree["/bible/bsb/GEN/1.json"]["nextChapterLink"] == "/bible/bsb/EXO/1.json"
    assert tree["/bible/bsb/books"]["books"][0]["firstChapterApiLink"] == "/bible/bsb/GEN/1.json"


def test_file_pattern_keeps_full_links(bsb_inputs):
    files = generate_from_inputs(bsb_inputs, GeneratorOptions(file_pattern=r"/Exodus/"))
    assert [file.path for file in files] == ["/bible/bsb/Exodus/1.json"]
    assert files[0].resolve_content()["previousChapterLink"] == "/bible/bsb/Genesis/1.json"


def test_duplicate_books_keep_first(bsb_inputs):
    books = [parse_text(i.content, i.metadata) for i in bsb_inputs]
    tree = as_tree(generate(books + books[:1]))
    assert len(tree["/bible/bsb/books"]["books"]) == 2


def test_books_without_chapters_are_skipped(bsb_metadata, genesis_usfm):
    empty = parse_text("\\id RUT\n\\h Ruth\n", bsb_metadata)
    genesis = parse_text(genesis_usfm, bsb_metadata)
    tree = as_tree(generate([empty, genesis]))
    assert [book["id"] for book in tree["/bible/bsb/books"]["books"]] == ["GEN"]


def test_audio_links(bsb_inputs):
    audio = DictAudioIndex({
        "bsb": {"GEN": {1: {"gilbert": "https://audio.example/gen1.mp3"}}},
    })
    tree = as_tree(generate_from_inputs(bsb_inputs, audio_index=audio))

    assert tree["/bible/bsb/Genesis/1.json"]["thisChapterAudioLinks"] == {
        "gilbert": "https://audio.example/gen1.mp3",
    }
    assert tree["/bible/bsb/Exodus/1.json"]["thisChapterAudioLinks"] == {}


# =============================================================================
# Multiple Translations
# =============================================================================

@pytest.fixture
def kjv_inputs(kjv_metadata, genesis_usfm):
    return [InputFile(content=genesis_usfm, metadata=kjv_metadata, name="GEN.usfm")]


def test_translations_are_listed_by_id(bsb_inputs, kjv_inputs):
    tree = as_tree(generate_from_inputs(kjv_inputs + bsb_inputs))
    ids = [entry["id"] for entry in tree[AVAILABLE_TRANSLATIONS_PATH]["translations"]]
    assert ids == ["bsb", "kjv"]
    assert "/bible/kjv/Genesis/1.json" in tree
    assert tree["/bible/kjv/Genesis/1.json"]["nextChapterLink"] is None


@pytest.mark.parametrize("reverse", [False, True])
def test_separate_runs_merge_to_combined_run(bsb_inputs, kjv_inputs, reverse):
    runs = [generate_from_inputs(bsb_inputs), generate_from_inputs(kjv_inputs)]
    if reverse:
        runs.reverse()

    merged = {path: file.resolve_content() for path, file in merge_output_files(*runs).items()}
    combined = as_tree(generate_from_inputs(bsb_inputs + kjv_inputs))

    assert merged == combined


def test_merge_available_translations_incoming_wins():
    existing = {"translations": [{"id": "kjv", "name": "Old"}, {"id": "bsb", "name": "BSB"}]}
    incoming = {"translations": [{"id": "kjv", "name": "New"}]}
    assert merge_available_translations(existing, incoming) == {
        "translations": [{"id": "bsb", "name": "BSB"}, {"id": "kjv", "name": "New"}],
    }


def test_non_mergeable_paths_are_overwritten():
    first = [OutputFile(path="/bible/x/books", content={"v": 1})]
    second = [OutputFile(path="/bible/x/books", content={"v": 2})]
    assert merge_output_files(first, second)["/bible/x/books"].content == {"v": 2}


def test_batched():
    files = [OutputFile(path=f"/p/{i}", content={}) for i in range(5)]
    batches = list(batched(files, 2))
    assert [len(batch) for batch in batches] == [2, 2, 1]
    with pytest.raises(ValueError):
        list(batched(files, 0))


def test_duplicate_books_are_reported(bsb_inputs):
    books = [parse_text(i.content, i.metadata) for i in bsb_inputs]
    warnings = []
    generate(books + books[:1], warnings=warnings)

    assert len(warnings) == 1
    assert warnings[0].translation_id == "bsb"
    assert warnings[0].book_id == "GEN"
    assert "Duplicate" in warnings[0].message
