"""
Symbol lookup against the search index, with the term cache in front.
"""

from __future__ import annotations

import logging
import typing

from .cache import NOT_FOUND, TermCache, NotFound
from .escape import build_symbol_query
from .index import SearchIndex
from .term import IndexDocument, TermRecord, document_ordinal, term_from_document

logger = logging.getLogger(__name__)


def pick_first_match(documents: typing.Sequence[IndexDocument]) -> typing.Optional[IndexDocument]:
    """
    Pick the earliest indexed document among several matches.

    Documents carrying an ordinal win by lowest ordinal; those without one
    come after, in the order the index returned them.
    """
    if not documents:
        return None
    ranked = sorted(
        enumerate(documents),
        key=lambda pair: (
            document_ordinal(pair[1]) is None,
            document_ordinal(pair[1]) or 0,
            pair[0],
        ),
    )
    return ranked[0][1]


class LookupService:
    def __init__(self, index: SearchIndex, cache: TermCache):
        self._index = index
        self._cache = cache

    def get_term(self, symbol: typing.Optional[str]) -> typing.Optional[TermRecord]:
        """
        Resolve a current, previous or alias symbol to its term.

        Returns None for unknown symbols (and remembers that). Backend
        failures (IndexUnavailable, InvalidQuery, MalformedDocument) propagate
        and leave the cache untouched.
        """
        if symbol is None or not str(symbol).strip():
            return None

        cached = self._cache.get(symbol)
        if isinstance(cached, NotFound):
            return None
        if cached is not None:
            return cached

        generation = self._cache.generation
        query = build_symbol_query(symbol)
        logger.debug(f"Querying index for {symbol!r}: {query}")
        documents = self._index.query(query)

        match = pick_first_match(documents)
        term = term_from_document(match) if match is not None else None
        if len(documents) > 1:
            logger.debug(f"{len(documents)} documents match {symbol!r}; using {term.id if term else None}")

        self._cache.put(symbol, term if term is not None else NOT_FOUND, generation=generation)
        return term
