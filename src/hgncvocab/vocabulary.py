"""
HGNC gene nomenclature vocabulary.

Wires the reindex pipeline, the lookup service and the similarity strategy
around one search index and one cache. Collaborators are passed in, so tests
can hand over an ``InMemorySearchIndex`` (or a mock) and production code a
``SolrSearchIndex``.
"""

from __future__ import annotations

import typing

from .cache import CacheService, TermCache
from .config import DEFAULT_SOURCE_URL
from .distance import Comparable, PlaceholderDistance, SimilarityStrategy
from .index import SearchIndex
from .lookup import LookupService
from .reindex import ReindexPipeline, ReindexResult, SourceReader
from .source import read_source
from .term import TermRecord


class GeneNomenclature:
    identifier = "HGNC"
    name = "HGNC official gene list"
    aliases = frozenset({"HGNC", "hgnc", "gene"})

    def __init__(
        self,
        index: SearchIndex,
        cache_service: typing.Optional[CacheService] = None,
        *,
        similarity: typing.Optional[SimilarityStrategy] = None,
        source_reader: SourceReader = read_source,
        default_source_location: str = DEFAULT_SOURCE_URL,
    ):
        self.cache = TermCache(cache_service)
        self.lookup = LookupService(index, self.cache)
        self.pipeline = ReindexPipeline(index, self.cache, source_reader=source_reader)
        self.similarity = similarity if similarity is not None else PlaceholderDistance()
        self.default_source_location = default_source_location

    def get_term(self, symbol: typing.Optional[str]) -> typing.Optional[TermRecord]:
        return self.lookup.get_term(symbol)

    def get_terms(self, symbols: typing.Iterable[typing.Optional[str]]) -> list[TermRecord]:
        """Resolve several symbols; unknown ones are dropped, duplicates (by id) kept once, input order kept."""
        found: dict[str, TermRecord] = {}
        for symbol in symbols:
            term = self.lookup.get_term(symbol)
            if term is not None and term.id not in found:
                found[term.id] = term
        return list(found.values())

    def reindex(self, location: typing.Optional[str] = None) -> ReindexResult:
        return self.pipeline.reindex(location or self.default_source_location)

    def get_distance(self, a: Comparable, b: Comparable) -> float:
        return self.similarity.distance(a, b)
