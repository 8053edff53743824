"""
Error taxonomy for the HGNC vocabulary engine.

Per-line problems (``MalformedRecord``) are recovered locally by the parser;
everything else is surfaced to the caller so that "nothing found" can always
be told apart from "could not determine".
"""


class VocabularyError(RuntimeError):
    """Base class for all vocabulary engine failures."""


class SourceUnreadable(VocabularyError):
    """The nomenclature source could not be opened or streamed."""


class SourceFormatError(VocabularyError):
    """The nomenclature source does not match the declared format version."""


class MalformedRecord(VocabularyError):
    """A single source line could not be turned into a term record."""

    def __init__(self, line_number: int, message: str):
        super().__init__(f"line {line_number}: {message}")
        self.line_number = line_number


class IndexUnavailable(VocabularyError):
    """Communication with the search index failed."""


class MalformedDocument(VocabularyError):
    """The search index rejected (or returned) a document it could not handle."""


class InvalidQuery(VocabularyError):
    """The search index rejected a query."""


class CacheUnavailable(VocabularyError):
    """The cache service could not be reached."""


class ReindexInProgress(VocabularyError):
    """Another reindex is already running on this pipeline."""


class IllegalStateTransition(VocabularyError):
    """The reindex state machine was asked to make a transition it does not allow."""
