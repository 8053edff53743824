"""
Term cache.

A read-through cache of symbol → TermRecord lookups sitting on an external
``CacheService``. Negative lookups are remembered with the ``NOT_FOUND``
marker. The only invalidation is ``clear_all()``, which the reindex pipeline
calls after a successful commit.

Each ``clear_all()`` also bumps a generation counter. A lookup reads the
generation before it queries the index and hands it back to ``put()``; if a
reindex cleared the cache in between, the put is dropped instead of bringing
back a pre-reindex answer.
"""

from __future__ import annotations

import abc
import logging
import threading
import typing

from .errors import CacheUnavailable
from .term import TermRecord

logger = logging.getLogger(__name__)


class NotFound:
    """Marker for a symbol that was looked up and resolved to nothing."""

    _instance: typing.Optional["NotFound"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_FOUND"

    def __bool__(self) -> bool:
        return False


NOT_FOUND = NotFound()

CachedValue = typing.Union[TermRecord, NotFound]


class CacheService(metaclass=abc.ABCMeta):
    """External key/value cache. Implementations raise CacheUnavailable on failure."""

    @abc.abstractmethod
    def get(self, key: str) -> typing.Any:
        """Return the stored value, or None if the key is absent."""
        raise NotImplementedError

    @abc.abstractmethod
    def put(self, key: str, value: typing.Any) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def remove_all(self) -> None:
        raise NotImplementedError


class InMemoryCacheService(CacheService):
    """Unbounded dict-backed cache, safe to share between threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._store: dict[str, typing.Any] = {}

    def get(self, key: str) -> typing.Any:
        with self._lock:
            return self._store.get(key)

    def put(self, key: str, value: typing.Any) -> None:
        with self._lock:
            self._store[key] = value

    def remove_all(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


class TermCache:
    def __init__(self, service: typing.Optional[CacheService] = None):
        self._service = service if service is not None else InMemoryCacheService()
        self._lock = threading.RLock()
        self._generation = 0

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def get(self, key: str) -> typing.Optional[CachedValue]:
        """
        Return the cached TermRecord, NOT_FOUND for a remembered miss, or None
        if the key was never looked up (or the cache service is down).
        """
        try:
            value = self._service.get(key)
        except CacheUnavailable as e:
            logger.warning(f"Term cache unavailable on get({key!r}), querying the index directly: {e}")
            return None
        if value is None or isinstance(value, (TermRecord, NotFound)):
            return value
        logger.warning(f"Ignoring unexpected cache value for {key!r}: {type(value).__name__}")
        return None

    def put(self, key: str, value: CachedValue, generation: typing.Optional[int] = None) -> bool:
        """
        Store a lookup outcome. Returns False when it was not stored, either
        because a clear happened after ``generation`` was read or because the
        cache service is down.
        """
        if not isinstance(value, (TermRecord, NotFound)):
            raise TypeError(f"Only TermRecord or NOT_FOUND can be cached, got {type(value).__name__}")
        with self._lock:
            if generation is not None and generation != self._generation:
                logger.debug(f"Dropping stale cache entry for {key!r} (generation {generation} < {self._generation})")
                return False
            try:
                self._service.put(key, value)
            except CacheUnavailable as e:
                logger.warning(f"Term cache unavailable on put({key!r}): {e}")
                return False
        return True

    def clear_all(self) -> None:
        """Drop every entry. Cache service failures propagate."""
        with self._lock:
            self._service.remove_all()
            self._generation += 1
        logger.info("Term cache cleared")
