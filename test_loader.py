"""Tests for loading translation directories and running a generation."""

import json

import pytest

from bible_api.errors import GenerationError, MetadataError
from bible_api.loader import load_metadata, load_translation_dir, load_translations, parse_books, run_generation
from bible_api.models import InputFile

BSB_METADATA = {
    "id": "bsb",
    "name": "Berean Standard Bible",
    "shortName": "BSB",
    "website": "https://berean.bible",
    "licenseUrl": "https://berean.bible/terms.htm",
    "language": "en",
}


@pytest.fixture
def translation_root(tmp_path, genesis_usfm, exodus_usfm):
    bsb = tmp_path / "bsb"
    bsb.mkdir()
    (bsb / "metadata.json").write_text(json.dumps(BSB_METADATA), encoding="utf-8")
    (bsb / "00FRTBSB.usfm").write_text("\\id FRT\n\\h Preface\n", encoding="utf-8")
    (bsb / "01GENBSB.usfm").write_text("\ufeff" + genesis_usfm, encoding="utf-8")
    (bsb / "02EXOBSB.usfm").write_text(exodus_usfm, encoding="utf-8")
    (bsb / "readme.txt").write_text("not a book", encoding="utf-8")
    (tmp_path / "scratch").mkdir()
    return tmp_path


def test_load_translation_dir(translation_root):
    inputs = load_translation_dir(translation_root / "bsb")

    assert [i.name for i in inputs] == ["01GENBSB.usfm", "02EXOBSB.usfm"]
    assert inputs[0].metadata.id == "bsb"
    assert inputs[0].metadata.short_name == "BSB"
    assert inputs[0].content.startswith("\\id GEN")


def test_load_translations_filters_by_id(translation_root):
    assert len(load_translations(translation_root)) == 2
    assert len(load_translations(translation_root, ["BSB"])) == 2
    assert load_translations(translation_root, ["kjv"]) == []


def test_invalid_metadata(tmp_path):
    path = tmp_path / "metadata.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(MetadataError):
        load_metadata(path)

    path.write_text(json.dumps({"id": "x", "name": "X"}), encoding="utf-8")
    with pytest.raises(MetadataError) as info:
        load_metadata(path)
    assert "licenseUrl" in str(info.value)

    path.write_text(json.dumps(dict(BSB_METADATA, direction="up")), encoding="utf-8")
    with pytest.raises(MetadataError):
        load_metadata(path)


def test_run_generation(translation_root):
    inputs = load_translation_dir(translation_root / "bsb")
    result = run_generation(inputs, workers=4)

    assert [book.book.id for book in result.books] == ["GEN", "EXO"]
    assert len(result.files) == 4
    assert result.warnings == []


def test_parse_books_keeps_input_order(bsb_inputs):
    books = parse_books(list(reversed(bsb_inputs)), workers=4)
    assert [book.book.id for book in books] == ["EXO", "GEN"]


def test_fatal_errors_name_the_source(bsb_inputs, bsb_metadata):
    bad = InputFile(content="\\id XYZ\n\\c 1\n\\v 1 Text\n", metadata=bsb_metadata, name="99XYZ.usfm")
    with pytest.raises(GenerationError) as info:
        run_generation(bsb_inputs + [bad], workers=2)

    assert info.value.translation_id == "bsb"
    assert info.value.source == "99XYZ.usfm"
    assert "XYZ" in str(info.value)


def test_warnings_are_collected(bsb_metadata):
    noisy = InputFile(content="\\id RUT\n\\v 1 Text\n", metadata=bsb_metadata, name="RUT.usfm")
    result = run_generation([noisy], workers=1)
    assert len(result.warnings) == 1
    assert result.warnings[0].book_id == "RUT"


def test_skipped_books_are_reported(bsb_inputs, bsb_metadata):
    empty = InputFile(content="\\id RUT\n\\h Ruth\n", metadata=bsb_metadata, name="08RUTBSB.usfm")
    result = run_generation(bsb_inputs + bsb_inputs[:1] + [empty], workers=1)

    assert len(result.files) == 4
    skipped = [(w.book_id, w.message) for w in result.warnings]
    assert skipped == [
        ("GEN", "Duplicate book ignored"),
        ("RUT", "Book has no chapters; skipped"),
    ]


def test_peripheral_files_are_reported(translation_root):
    warnings = []
    load_translation_dir(translation_root / "bsb", warnings)
    assert [(w.translation_id, w.book_id) for w in warnings] == [("bsb", "FRT")]
    assert "00FRTBSB.usfm" in warnings[0].message

    filtered = []
    load_translations(translation_root, ["kjv"], filtered)
    assert filtered == []
