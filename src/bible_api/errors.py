"""Exceptions raised by the Bible API generator."""


class BibleApiError(Exception):
    """Base class for all fatal generator errors."""


class UnknownBookError(BibleApiError):
    """Raised when a book identifier cannot be resolved against the catalog."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Unknown book identifier: {identifier!r}")


class MetadataError(BibleApiError):
    """Raised when translation metadata is missing a field or has a bad value."""


class GenerationError(BibleApiError):
    """Raised when a run has to be aborted. Names the translation and book that failed."""

    def __init__(self, translation_id: str, source: str, cause: Exception):
        self.translation_id = translation_id
        self.source = source
        self.cause = cause
        super().__init__(f"{translation_id}/{source}: {cause}")
