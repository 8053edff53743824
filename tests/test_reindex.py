"""
Tests for ReindexPipeline.

We check:
- a successful run calls delete_all, add_batch, commit, then clears the cache,
- failures in add_batch/commit never clear the cache,
- unreadable or mis-formatted sources never touch the index,
- a second reindex is rejected while one is running.
"""

import threading
from unittest.mock import Mock

import pytest

from hgncvocab.cache import NOT_FOUND, CacheService, TermCache
from hgncvocab.errors import (
    IllegalStateTransition,
    IndexUnavailable,
    MalformedDocument,
    ReindexInProgress,
    SourceFormatError,
    SourceUnreadable,
)
from hgncvocab.index import SearchIndex
from hgncvocab.reindex import ReindexPipeline, ReindexState
from hgncvocab.term import TermRecord

A1BG = TermRecord(id="HGNC:5", symbol="A1BG", name="alpha-1-B glycoprotein")


@pytest.fixture
def mock_index() -> Mock:
    return Mock(spec=SearchIndex)


@pytest.fixture
def mock_cache_service() -> Mock:
    return Mock(spec=CacheService)


def make_pipeline(index, cache_service, text):
    return ReindexPipeline(index, TermCache(cache_service), source_reader=lambda location: text)


def test_reindex_clears_index_and_commits_new_terms(mock_index, mock_cache_service, hgnc_sample_text):
    manager = Mock()
    manager.attach_mock(mock_index, "index")
    manager.attach_mock(mock_cache_service, "cache")

    result = make_pipeline(mock_index, mock_cache_service, hgnc_sample_text).reindex("sample")

    assert result.ok
    assert result.error is None
    assert result.indexed == 6
    assert result.skipped == 2
    assert [c[0] for c in manager.mock_calls] == [
        "index.delete_all",
        "index.add_batch",
        "index.commit",
        "cache.remove_all",
    ]

    (documents,), _ = mock_index.add_batch.call_args
    assert [d["symbol"] for d in documents] == ["A1BG", "A1CF", "ABCC6", "NAT2", "T", "TAAR1"]
    assert [d["ordinal"] for d in documents] == list(range(6))


def test_skipped_lines_are_reported_on_the_notepad(mock_index, mock_cache_service, hgnc_sample_text):
    result = make_pipeline(mock_index, mock_cache_service, hgnc_sample_text).reindex("sample")
    assert result.notepad.has_errors(include_subsections=True)
    assert len(list(result.notepad.errors())) == result.skipped


@pytest.mark.parametrize(
    "failing, error",
    [
        ("add_batch", IndexUnavailable("solr down")),
        ("add_batch", MalformedDocument("bad doc")),
        ("commit", IndexUnavailable("solr down")),
    ],
)
def test_failed_add_or_commit_keeps_cache(mock_index, hgnc_sample_text, failing, error):
    getattr(mock_index, failing).side_effect = error
    cache = TermCache()
    cache.put("A1BG", A1BG)
    cache.put("NOPE", NOT_FOUND)
    pipeline = ReindexPipeline(mock_index, cache, source_reader=lambda location: hgnc_sample_text)

    result = pipeline.reindex("sample")

    assert not result.ok
    assert result.error is error
    assert result.failed_state is ReindexState.COMMITTING
    assert result.indexed == 0
    mock_index.delete_all.assert_called_once()
    assert cache.get("A1BG") == A1BG
    assert cache.get("NOPE") is NOT_FOUND
    assert pipeline.state is ReindexState.IDLE


def test_failed_clear_aborts_before_adding(mock_index, mock_cache_service, hgnc_sample_text):
    mock_index.delete_all.side_effect = IndexUnavailable("solr down")

    result = make_pipeline(mock_index, mock_cache_service, hgnc_sample_text).reindex("sample")

    assert not result.ok
    assert isinstance(result.error, IndexUnavailable)
    assert result.failed_state is ReindexState.CLEARING
    mock_index.add_batch.assert_not_called()
    mock_index.commit.assert_not_called()
    mock_cache_service.remove_all.assert_not_called()


def test_unreadable_source_touches_nothing(mock_index, mock_cache_service, tmp_path):
    pipeline = ReindexPipeline(mock_index, TermCache(mock_cache_service))

    result = pipeline.reindex(str(tmp_path / "missing.txt"))

    assert not result.ok
    assert isinstance(result.error, SourceUnreadable)
    assert result.failed_state is None
    assert mock_index.method_calls == []
    assert mock_cache_service.method_calls == []


def test_format_mismatch_touches_nothing(mock_index, mock_cache_service):
    text = "Approved symbol\tApproved name\nA1BG\talpha-1-B glycoprotein\n"

    result = make_pipeline(mock_index, mock_cache_service, text).reindex("sample")

    assert not result.ok
    assert isinstance(result.error, SourceFormatError)
    assert mock_index.method_calls == []
    assert mock_cache_service.method_calls == []


def test_pipeline_can_run_again_after_failure(mock_index, mock_cache_service, hgnc_sample_text):
    mock_index.commit.side_effect = [IndexUnavailable("solr down"), None]
    pipeline = make_pipeline(mock_index, mock_cache_service, hgnc_sample_text)

    assert not pipeline.reindex("sample").ok
    assert pipeline.reindex("sample").ok
    mock_cache_service.remove_all.assert_called_once()


def test_concurrent_reindex_is_rejected(mock_index, mock_cache_service, hgnc_sample_text):
    entered = threading.Event()
    release = threading.Event()

    def slow_reader(location):
        entered.set()
        assert release.wait(timeout=5)
        return hgnc_sample_text

    pipeline = ReindexPipeline(mock_index, TermCache(mock_cache_service), source_reader=slow_reader)
    results = []
    worker = threading.Thread(target=lambda: results.append(pipeline.reindex("first")))
    worker.start()
    try:
        assert entered.wait(timeout=5)
        rejected = pipeline.reindex("second")
    finally:
        release.set()
        worker.join(timeout=5)

    assert not rejected.ok
    assert isinstance(rejected.error, ReindexInProgress)
    assert rejected.failed_state is None
    assert results[0].ok
    mock_index.delete_all.assert_called_once()


def test_state_machine_refuses_skipping_steps(mock_index, mock_cache_service):
    pipeline = ReindexPipeline(mock_index, TermCache(mock_cache_service))
    assert pipeline.state is ReindexState.IDLE
    with pytest.raises(IllegalStateTransition):
        pipeline._advance(ReindexState.COMMITTING)
    assert pipeline.state is ReindexState.IDLE


def test_unexpected_error_resets_state_and_propagates(mock_index, mock_cache_service, hgnc_sample_text):
    mock_index.add_batch.side_effect = KeyError("bug")
    pipeline = make_pipeline(mock_index, mock_cache_service, hgnc_sample_text)

    with pytest.raises(KeyError):
        pipeline.reindex("sample")
    assert pipeline.state is ReindexState.IDLE
    mock_cache_service.remove_all.assert_not_called()


def test_over_long_line_does_not_abort_the_batch(mock_index, mock_cache_service, hgnc_sample_text):
    text = hgnc_sample_text + "ZZZ3\t\t\tzinc finger ZZ-type containing 3\tHGNC:24523\tprotein-coding gene\n"

    result = make_pipeline(mock_index, mock_cache_service, text).reindex("sample")

    assert result.ok
    assert (result.indexed, result.skipped) == (7, 2)
    (documents,), _ = mock_index.add_batch.call_args
    assert documents[-1]["id"] == "HGNC:24523"
    assert documents[-1]["name"] == "zinc finger ZZ-type containing 3"


def test_source_failures_report_no_failed_step(mock_index, mock_cache_service):
    result = make_pipeline(mock_index, mock_cache_service, "").reindex("sample")

    assert not result.ok
    assert isinstance(result.error, SourceFormatError)
    assert result.failed_state is None
