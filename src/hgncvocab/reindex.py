"""
Reindex pipeline.

Full-replacement rebuild of the gene index from the nomenclature source.

Order of work
-------------
0) read the source and check its header (nothing is touched if this fails)
1) CLEARING      index.delete_all()
2) PARSING       source rows → IndexDocuments, malformed rows skipped and counted
3) COMMITTING    index.add_batch(documents), index.commit()
4) INVALIDATING  cache.clear_all(), only after a successful commit

A failure in step 3 leaves the index cleared but not repopulated. The cache
is kept in that case so the last known-good answers keep being served.

Only one reindex may run per pipeline at a time; a second caller gets a
failed result carrying ``ReindexInProgress`` instead of waiting.
"""

from __future__ import annotations

import enum
import logging
import threading
import typing
from dataclasses import dataclass, field

from stairval.notepad import Notepad, create_notepad

from .cache import TermCache
from .errors import IllegalStateTransition, ReindexInProgress, VocabularyError
from .index import SearchIndex
from .parser import ParsedBatch, parse_term_table, read_term_table
from .source import read_source
from .term import IndexDocument, to_index_document

logger = logging.getLogger(__name__)

SourceReader = typing.Callable[[str], str]


class ReindexState(enum.Enum):
    IDLE = "idle"
    CLEARING = "clearing"
    PARSING = "parsing"
    COMMITTING = "committing"
    INVALIDATING = "invalidating"
    FAILED = "failed"


_ALLOWED_TRANSITIONS: dict[ReindexState, frozenset[ReindexState]] = {
    ReindexState.IDLE: frozenset({ReindexState.CLEARING, ReindexState.FAILED}),
    ReindexState.CLEARING: frozenset({ReindexState.PARSING, ReindexState.FAILED}),
    ReindexState.PARSING: frozenset({ReindexState.COMMITTING, ReindexState.FAILED}),
    ReindexState.COMMITTING: frozenset({ReindexState.INVALIDATING, ReindexState.FAILED}),
    ReindexState.INVALIDATING: frozenset({ReindexState.IDLE, ReindexState.FAILED}),
    ReindexState.FAILED: frozenset({ReindexState.IDLE}),
}


@dataclass
class ReindexResult:
    """
    Outcome of one reindex.

    Attributes:
        ok: True once the new index is committed and the cache cleared.
        indexed: Number of term records submitted and committed.
        skipped: Number of malformed source lines left out (never part of `indexed`).
        error: The exception that aborted the run, if any.
        failed_state: The step that was running when the run aborted; None when
            the source could not be read or the run was rejected.
        notepad: Per-line issues collected while parsing.
    """

    ok: bool = False
    indexed: int = 0
    skipped: int = 0
    error: typing.Optional[Exception] = None
    failed_state: typing.Optional[ReindexState] = None
    notepad: Notepad = field(default_factory=lambda: create_notepad("reindex"))


class ReindexPipeline:
    def __init__(
        self,
        index: SearchIndex,
        cache: TermCache,
        *,
        source_reader: SourceReader = read_source,
    ):
        self._index = index
        self._cache = cache
        self._read_source = source_reader
        self._run_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._state = ReindexState.IDLE

    @property
    def state(self) -> ReindexState:
        with self._state_lock:
            return self._state

    def _advance(self, target: ReindexState) -> None:
        with self._state_lock:
            if target not in _ALLOWED_TRANSITIONS[self._state]:
                raise IllegalStateTransition(f"Cannot go from {self._state.name} to {target.name}")
            logger.debug(f"Reindex state {self._state.name} -> {target.name}")
            self._state = target

    def reindex(self, location: str) -> ReindexResult:
        """
        Rebuild the index from the source at ``location``.

        Never raises for source, index or cache failures; check ``ok`` and
        ``error`` on the returned result instead.
        """
        result = ReindexResult()
        if not self._run_lock.acquire(blocking=False):
            logger.warning("Rejecting reindex request: another reindex is in progress")
            result.error = ReindexInProgress("A reindex is already running")
            return result
        try:
            self._run(location, result)
        except Exception:
            # unexpected error: put the machine back to IDLE before re-raising
            if self.state is not ReindexState.IDLE:
                if self.state is not ReindexState.FAILED:
                    self._advance(ReindexState.FAILED)
                self._advance(ReindexState.IDLE)
            raise
        finally:
            self._run_lock.release()
        return result

    def _fail(self, result: ReindexResult, error: Exception) -> None:
        result.ok = False
        result.error = error
        # failures before CLEARING never touched the index: no step to report
        result.failed_state = None if self.state is ReindexState.IDLE else self.state
        self._advance(ReindexState.FAILED)
        self._advance(ReindexState.IDLE)

    def _run(self, location: str, result: ReindexResult) -> None:
        logger.info(f"Reindexing from {location}")

        # Precondition: a readable source with the right header
        try:
            text = self._read_source(location)
            table = read_term_table(text)
        except VocabularyError as e:
            logger.error(f"Reindex aborted before touching the index: {e}")
            self._fail(result, e)
            return

        # 1) Clear
        self._advance(ReindexState.CLEARING)
        try:
            self._index.delete_all()
        except VocabularyError as e:
            logger.error(f"Reindex aborted: could not clear the index: {e}")
            self._fail(result, e)
            return

        # 2) Parse & batch
        self._advance(ReindexState.PARSING)
        batch: ParsedBatch = parse_term_table(table, result.notepad)
        documents: list[IndexDocument] = [
            to_index_document(term, ordinal) for ordinal, term in enumerate(batch.terms)
        ]
        result.skipped = batch.skipped
        if batch.skipped:
            logger.warning(f"Skipped {batch.skipped} malformed source lines")

        # 3) Add & commit
        self._advance(ReindexState.COMMITTING)
        try:
            self._index.add_batch(documents)
            self._index.commit()
        except VocabularyError as e:
            # the index is now cleared but not repopulated; keep the cache
            logger.error(f"Reindex failed after clearing the index, cache left intact: {e}")
            self._fail(result, e)
            return

        # 4) Invalidate cache
        self._advance(ReindexState.INVALIDATING)
        try:
            self._cache.clear_all()
        except VocabularyError as e:
            logger.error(f"Index committed but the term cache could not be cleared: {e}")
            self._fail(result, e)
            return

        self._advance(ReindexState.IDLE)
        result.ok = True
        result.indexed = len(documents)
        logger.info(f"Indexed {result.indexed} terms ({result.skipped} skipped)")
