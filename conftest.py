"""Shared fixtures: BSB sample text and translation metadata."""

import pytest

from bible_api.models import InputFile, TranslationMetadata


GENESIS_BSB = """\\id GEN - Berean Study Bible
\\h Genesis
\\toc1 Genesis
\\mt1 Genesis
\\c 1
\\s1 The Creation
\\r (John 1:1–5; Hebrews 11:1–3)
\\b
\\m
\\v 1 In the beginning God created the heavens and the earth.
\\b
\\m
\\v 2 Now the earth was formless and void, and darkness was over the surface of the deep. And the Spirit of God was hovering over the surface of the waters.
"""

EXODUS_BSB = """\\id EXO - Berean Study Bible
\\h Exodus
\\toc1 Exodus
\\toc2 Exodus
\\mt1 Exodus
\\c 1
\\s1 The Israelites Multiply in Egypt
\\r (Genesis 46:1–27)
\\b
\\m
\\v 1 These are the names of the sons of Israel who went to Egypt with Jacob, each with his family:
\\b
\\m
\\v 2 Reuben, Simeon, Levi, and Judah;
"""


@pytest.fixture
def bsb_metadata():
    return TranslationMetadata(
        id="bsb",
        name="Berean Standard Bible",
        short_name="BSB",
        language="en",
        license_url="https://berean.bible/terms.htm",
        website="https://berean.bible",
    )


@pytest.fixture
def kjv_metadata():
    return TranslationMetadata(
        id="kjv",
        name="King James Version",
        language="en",
        license_url="https://example.org/public-domain",
        website="https://example.org/kjv",
    )


@pytest.fixture
def bsb_inputs(bsb_metadata):
    return [
        InputFile(content=GENESIS_BSB, metadata=bsb_metadata, format="usfm", name="01GENBSB.usfm"),
        InputFile(content=EXODUS_BSB, metadata=bsb_metadata, format="usfm", name="02EXOBSB.usfm"),
    ]


@pytest.fixture
def genesis_usfm():
    return GENESIS_BSB


@pytest.fixture
def exodus_usfm():
    return EXODUS_BSB
