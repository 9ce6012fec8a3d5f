"""Audio index collaborators: map (translation, book, chapter, reader) to an audio URL."""

import logging
import threading
from typing import Optional, Protocol

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

MANIFEST_NAME = "audio.json"
DEFAULT_TIMEOUT = 8
RETRY_STATUSES = [429, 500, 502, 503, 504]


class AudioIndex(Protocol):
    """Anything the generator can ask for audio links."""

    def readers(self, translation_id: str) -> list[str]:
        ...

    def resolve(self, translation_id: str, book_id: str, chapter: int, reader: str) -> Optional[str]:
        ...


def _lookup(chapters: dict, book_id: str, chapter: int, reader: str) -> Optional[str]:
    book = chapters.get(book_id) or {}
    # JSON object keys are strings, in-memory mappings may use ints.
    readers = book.get(str(chapter)) or book.get(chapter) or {}
    return readers.get(reader)


class DictAudioIndex:
    """
    Audio index backed by a nested mapping.

    Layout: {translation_id: {book_id: {chapter: {reader: url}}}}
    """

    def __init__(self, mapping: dict):
        self.mapping = mapping

    def readers(self, translation_id: str) -> list[str]:
        found: set[str] = set()
        for chapters in self.mapping.get(translation_id, {}).values():
            for readers in chapters.values():
                found.update(readers)
        return sorted(found)

    def resolve(self, translation_id: str, book_id: str, chapter: int, reader: str) -> Optional[str]:
        return _lookup(self.mapping.get(translation_id, {}), book_id, chapter, reader)


def create_session() -> requests.Session:
    """Session with keep-alive and retries for manifest downloads."""
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=10, pool_maxsize=10,
        max_retries=Retry(total=2, backoff_factor=0.1, status_forcelist=RETRY_STATUSES),
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class HttpAudioIndex:
    """
    Audio index that downloads one manifest per translation.

    The manifest lives at {base_url}/{translation_id}/audio.json and looks like:
        {"readers": ["gilbert"], "chapters": {"GEN": {"1": {"gilbert": "https://..."}}}}

    A missing manifest (404) means the translation has no audio.
    """

    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.session = session or create_session()
        self.timeout = timeout
        self._manifests: dict[str, dict] = {}
        self._lock = threading.Lock()

    def manifest_url(self, translation_id: str) -> str:
        return f"{self.base_url}/{translation_id}/{MANIFEST_NAME}"

    def _fetch(self, translation_id: str) -> dict:
        url = self.manifest_url(translation_id)
        response = self.session.get(url, timeout=self.timeout)
        if response.status_code == 404:
            logger.info("No audio manifest for %s at %s", translation_id, url)
            return {}
        response.raise_for_status()
        return response.json()

    def manifest(self, translation_id: str) -> dict:
        with self._lock:
            if translation_id not in self._manifests:
                self._manifests[translation_id] = self._fetch(translation_id)
            return self._manifests[translation_id]

    def readers(self, translation_id: str) -> list[str]:
        return list(self.manifest(translation_id).get("readers", []))

    def resolve(self, translation_id: str, book_id: str, chapter: int, reader: str) -> Optional[str]:
        return _lookup(self.manifest(translation_id).get("chapters", {}), book_id, chapter, reader)
