"""Tests for the audio indexes."""

import json

import pytest
import requests

from bible_api.audio import DictAudioIndex, HttpAudioIndex


def make_response(status_code, body=None, url="https://audio.example/"):
    response = requests.Response()
    response.status_code = status_code
    response.url = url
    response._content = json.dumps(body).encode("utf-8") if body is not None else b""
    return response


class FakeSession:
    def __init__(self, responses):
        self.responses = responses
        self.requested = []

    def get(self, url, timeout=None):
        self.requested.append(url)
        return self.responses[url]


MANIFEST = {
    "readers": ["gilbert", "hays"],
    "chapters": {
        "GEN": {"1": {"gilbert": "https://audio.example/gilbert/gen1.mp3", "hays": "https://audio.example/hays/gen1.mp3"}},
    },
}


def test_http_index_reads_manifest_once():
    session = FakeSession({
        "https://audio.example/bsb/audio.json": make_response(200, MANIFEST),
    })
    index = HttpAudioIndex("https://audio.example/", session=session)

    assert index.readers("bsb") == ["gilbert", "hays"]
    assert index.resolve("bsb", "GEN", 1, "hays") == "https://audio.example/hays/gen1.mp3"
    assert index.resolve("bsb", "GEN", 2, "hays") is None
    assert index.resolve("bsb", "EXO", 1, "gilbert") is None
    assert session.requested == ["https://audio.example/bsb/audio.json"]


def test_missing_manifest_means_no_audio():
    session = FakeSession({
        "https://audio.example/kjv/audio.json": make_response(404),
    })
    index = HttpAudioIndex("https://audio.example", session=session)
    assert index.readers("kjv") == []
    assert index.resolve("kjv", "GEN", 1, "gilbert") is None


def test_server_errors_propagate():
    session = FakeSession({
        "https://audio.example/kjv/audio.json": make_response(500),
    })
    index = HttpAudioIndex("https://audio.example", session=session)
    with pytest.raises(requests.HTTPError):
        index.readers("kjv")


def test_dict_index_accepts_string_chapter_keys():
    index = DictAudioIndex({"bsb": {"GEN": {"1": {"gilbert": "https://a/1.mp3"}}}})
    assert index.readers("bsb") == ["gilbert"]
    assert index.resolve("bsb", "GEN", 1, "gilbert") == "https://a/1.mp3"
    assert index.readers("kjv") == []
