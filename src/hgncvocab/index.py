"""
Search index interface and an in-process implementation.

The reindex pipeline and the lookup service only ever talk to ``SearchIndex``;
Solr (see ``solr.py``) and ``InMemorySearchIndex`` are interchangeable behind it.
"""

from __future__ import annotations

import abc
import re
import threading
import typing

from .errors import InvalidQuery, MalformedDocument
from .escape import ESCAPE_MARKER, unescape_query_chars
from .term import IndexDocument

SEARCHABLE_FIELDS = frozenset({"id", "symbol", "name", "prev_symbol", "alias_symbol"})

# Clause separator: an unescaped run of whitespace, "OR", whitespace
_OR_SEPARATOR = re.compile(r"\s+OR\s+")


class SearchIndex(metaclass=abc.ABCMeta):
    """The operations the engine needs from an external search index."""

    @abc.abstractmethod
    def delete_all(self) -> None:
        """Remove every document. Raises IndexUnavailable."""
        raise NotImplementedError

    @abc.abstractmethod
    def add_batch(self, documents: typing.Sequence[IndexDocument]) -> None:
        """Bulk-insert documents. Raises IndexUnavailable or MalformedDocument."""
        raise NotImplementedError

    @abc.abstractmethod
    def commit(self) -> None:
        """Make earlier deletes and adds visible to queries. Raises IndexUnavailable."""
        raise NotImplementedError

    @abc.abstractmethod
    def query(self, query_string: str) -> list[IndexDocument]:
        """Return matching documents in order. Raises IndexUnavailable or InvalidQuery."""
        raise NotImplementedError


def split_clauses(query_string: str) -> list[tuple[str, str]]:
    """
    Split ``field:value OR field:value ...`` into (field, unescaped value) pairs.

    Escaped characters never split anything, so ``symbol:A\\ OR\\ B`` is a
    single clause for the value ``A OR B``.
    """
    if not query_string or not query_string.strip():
        raise InvalidQuery("Empty query")

    # Walk the string once, masking escaped characters so the separator regex
    # and the field colon only ever see live syntax.
    masked = []
    escaped = False
    for ch in query_string:
        if escaped:
            masked.append("x")
            escaped = False
        elif ch == ESCAPE_MARKER:
            masked.append("x")
            escaped = True
        else:
            masked.append(ch)
    masked_str = "".join(masked)

    clauses: list[tuple[str, str]] = []
    start = 0
    bounds = [(m.start(), m.end()) for m in _OR_SEPARATOR.finditer(masked_str)]
    for end, next_start in bounds + [(len(query_string), len(query_string))]:
        raw = query_string[start:end]
        raw_masked = masked_str[start:end]
        colon = raw_masked.find(":")
        if colon <= 0:
            raise InvalidQuery(f"Clause {raw!r} in {query_string!r} has no field")
        field = raw[:colon].strip()
        if field not in SEARCHABLE_FIELDS:
            raise InvalidQuery(f"Unknown field {field!r} in {query_string!r}")
        clauses.append((field, unescape_query_chars(raw[colon + 1:])))
        start = next_start
    return clauses


def _check_document(document: IndexDocument) -> None:
    if not isinstance(document, dict):
        raise MalformedDocument(f"Document must be a mapping, got {type(document).__name__}")
    for key in ("id", "symbol"):
        if not isinstance(document.get(key), str) or not document[key]:
            raise MalformedDocument(f"Document is missing a string {key!r}: {document!r}")


def _matches(document: IndexDocument, field: str, value: str) -> bool:
    stored = document.get(field)
    if isinstance(stored, (list, tuple)):
        return value in stored
    return stored == value


class InMemorySearchIndex(SearchIndex):
    """
    A process-local index with Solr's visibility rules: deletes and adds are
    staged and only show up in queries after ``commit()``. Queries return
    matches in insertion order.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._committed: list[IndexDocument] = []
        self._staged: list[IndexDocument] = []
        self._clear_staged = False

    def delete_all(self) -> None:
        with self._lock:
            self._clear_staged = True
            self._staged = []

    def add_batch(self, documents: typing.Sequence[IndexDocument]) -> None:
        docs = list(documents)
        for document in docs:
            _check_document(document)
        with self._lock:
            self._staged.extend(dict(d) for d in docs)

    def commit(self) -> None:
        with self._lock:
            base = [] if self._clear_staged else self._committed
            # a later document with the same id replaces the earlier one in place
            by_id: dict[str, IndexDocument] = {d["id"]: d for d in base}
            for document in self._staged:
                by_id[document["id"]] = document
            self._committed = list(by_id.values())
            self._staged = []
            self._clear_staged = False

    def query(self, query_string: str) -> list[IndexDocument]:
        clauses = split_clauses(query_string)
        with self._lock:
            snapshot = list(self._committed)
        return [
            dict(document)
            for document in snapshot
            if any(_matches(document, field, value) for field, value in clauses)
        ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._committed)
