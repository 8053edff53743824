"""
Tests for LookupService.get_term.

We check:
- the exact three-clause query sent to the index,
- None input never reaches the cache or the index,
- positive and negative results are cached (call-count checks),
- backend failures propagate and are not cached,
- the earliest indexed document wins when several match.
"""

from unittest.mock import Mock

import pytest
from stairval.notepad import create_notepad

from hgncvocab.cache import NOT_FOUND, CacheService, TermCache
from hgncvocab.errors import IndexUnavailable, InvalidQuery
from hgncvocab.index import InMemorySearchIndex, SearchIndex
from hgncvocab.lookup import LookupService, pick_first_match
from hgncvocab.parser import parse_terms
from hgncvocab.term import to_index_document


def taar1_document(ordinal=0):
    return {
        "id": "HGNC:17734",
        "symbol": "TAAR1",
        "name": "trace amine associated receptor 1",
        "prev_symbol": ["TRAR1"],
        "alias_symbol": ["TA1", "taR-1"],
        "ordinal": ordinal,
    }


@pytest.fixture
def mock_index() -> Mock:
    index = Mock(spec=SearchIndex)
    index.query.return_value = []
    return index


@pytest.fixture
def populated_index(hgnc_sample_text) -> InMemorySearchIndex:
    index = InMemorySearchIndex()
    batch = parse_terms(hgnc_sample_text, create_notepad("hgnc"))
    index.add_batch([to_index_document(t, i) for i, t in enumerate(batch.terms)])
    index.commit()
    return index


def test_query_construction(mock_index, term_cache):
    LookupService(mock_index, term_cache).get_term("A1BG")
    mock_index.query.assert_called_once_with("symbol:A1BG OR prev_symbol:A1BG OR alias_symbol:A1BG")


def test_query_construction_with_escape_chars(mock_index, term_cache):
    LookupService(mock_index, term_cache).get_term('+-&&||!(){}[]^"~*?:\\')
    escaped = r'\+\-\&\&\|\|\!\(\)\{\}\[\]\^\"\~\*\?\:\\'
    mock_index.query.assert_called_once_with(
        f"symbol:{escaped} OR prev_symbol:{escaped} OR alias_symbol:{escaped}"
    )


@pytest.mark.parametrize("symbol", [None, "", "   "])
def test_absent_symbol_touches_nothing(mock_index, symbol):
    cache_service = Mock(spec=CacheService)
    service = LookupService(mock_index, TermCache(cache_service))

    assert service.get_term(symbol) is None
    mock_index.query.assert_not_called()
    assert cache_service.method_calls == []


def test_not_found_is_cached(mock_index, term_cache):
    service = LookupService(mock_index, term_cache)

    assert service.get_term("NOPE") is None
    assert service.get_term("NOPE") is None

    assert mock_index.query.call_count == 1
    assert term_cache.get("NOPE") is NOT_FOUND


def test_found_term_is_cached(mock_index, term_cache):
    mock_index.query.return_value = [taar1_document()]
    service = LookupService(mock_index, term_cache)

    first = service.get_term("TRAR1")
    second = service.get_term("TRAR1")

    assert first.id == "HGNC:17734"
    assert second == first
    assert mock_index.query.call_count == 1
    # keyed by the caller's symbol, not the canonical one
    assert term_cache.get("TRAR1") == first
    assert term_cache.get("TAAR1") is None


@pytest.mark.parametrize("error", [IndexUnavailable("solr down"), InvalidQuery("bad query")])
def test_backend_failure_propagates_and_is_not_cached(mock_index, term_cache, error):
    mock_index.query.side_effect = error
    service = LookupService(mock_index, term_cache)

    with pytest.raises(type(error)):
        service.get_term("A1BG")
    assert term_cache.get("A1BG") is None

    mock_index.query.side_effect = None
    mock_index.query.return_value = []
    assert service.get_term("A1BG") is None
    assert mock_index.query.call_count == 2


def test_result_from_before_a_cache_clear_is_not_cached(mock_index, term_cache):
    def query_then_clear(query):
        # a reindex commits and clears the cache while this lookup is in flight
        term_cache.clear_all()
        return [taar1_document()]

    mock_index.query.side_effect = query_then_clear
    term = LookupService(mock_index, term_cache).get_term("TAAR1")

    assert term.symbol == "TAAR1"
    assert term_cache.get("TAAR1") is None


def test_get_term_resolves_every_kind_of_symbol(populated_index, term_cache):
    service = LookupService(populated_index, term_cache)

    term = service.get_term("TAAR1")
    assert term.name == "trace amine associated receptor 1"
    assert term.id == "HGNC:17734"

    term = service.get_term("T")
    assert term.name == "T, brachyury homolog (mouse)"
    assert term.id == "HGNC:11515"

    assert service.get_term("TRAR1").symbol == "TAAR1"
    assert service.get_term("PNAT").symbol == "NAT2"
    assert service.get_term("NAT-2").symbol == "NAT2"
    assert service.get_term("BROKEN1") is None


def test_earliest_indexed_match_wins(mock_index, term_cache):
    late = dict(taar1_document(ordinal=9), id="HGNC:99999", symbol="LATE")
    early = taar1_document(ordinal=2)
    mock_index.query.return_value = [late, early]

    assert LookupService(mock_index, term_cache).get_term("TA1").id == "HGNC:17734"


def test_pick_first_match_orders_documents_without_ordinal_last():
    no_ordinal = {"id": "HGNC:1", "symbol": "X"}
    with_ordinal = {"id": "HGNC:2", "symbol": "Y", "ordinal": 50}
    also_no_ordinal = {"id": "HGNC:3", "symbol": "Z"}

    assert pick_first_match([]) is None
    assert pick_first_match([no_ordinal, with_ordinal]) is with_ordinal
    assert pick_first_match([no_ordinal, also_no_ordinal]) is no_ordinal
