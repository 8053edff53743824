"""
Solr-backed search index.

High level
----------
Talks to one Solr core through its JSON API:

- ``POST {core}/update`` with ``{"delete": {"query": "*:*"}}`` to clear,
- ``POST {core}/update`` with a list of documents to bulk-add,
- ``POST {core}/update`` with ``{"commit": {}}`` to commit,
- ``GET {core}/select?q=...`` to query, sorted by the ``ordinal`` field so the
  first match is always the earliest indexed record.

Connection problems and timeouts are retried with a small backoff. Anything
that still fails becomes ``IndexUnavailable``; HTTP 400 means the index
refused our input (``MalformedDocument`` on update, ``InvalidQuery`` on
select).
"""

from __future__ import annotations

import logging
import typing

import requests

from .config import DEFAULT_HTTP_TIMEOUT
from .errors import IndexUnavailable, InvalidQuery, MalformedDocument
from .index import SearchIndex
from .source import sleep_backoff
from .term import IndexDocument

logger = logging.getLogger(__name__)

DEFAULT_ROWS = 10


class SolrSearchIndex(SearchIndex):
    """SearchIndex implementation over a Solr core URL (e.g. http://localhost:8983/solr/hgnc)."""

    def __init__(
        self,
        core_url: str,
        *,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        rows: int = DEFAULT_ROWS,
        attempts: int = 3,
        session: typing.Optional[requests.Session] = None,
    ):
        if not core_url:
            raise ValueError("core_url must be a non-empty string")
        self.core_url = core_url.rstrip("/")
        self.timeout = timeout
        self.rows = rows
        self.attempts = max(1, attempts)
        self._session = session or requests.Session()

    # --------------------------------------------------------------------------
    # Transport
    # --------------------------------------------------------------------------

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        """
        Send one request, retrying connection errors and timeouts.
        Raises IndexUnavailable once the attempts are used up.
        """
        url = f"{self.core_url}/{path}"
        last_exc: Exception | None = None
        for i in range(self.attempts):
            try:
                return self._session.request(method, url, timeout=self.timeout, **kwargs)
            except (requests.ConnectionError, requests.Timeout) as e:
                last_exc = e
                logger.debug(f"Solr {method} {url} attempt {i + 1} failed: {e}")
                if i < self.attempts - 1:
                    sleep_backoff(i)
            except requests.RequestException as e:
                raise IndexUnavailable(f"Solr {method} {url} failed: {e}") from e
        raise IndexUnavailable(f"Solr {method} {url} failed: {last_exc}") from last_exc

    @staticmethod
    def _error_detail(resp: requests.Response) -> str:
        try:
            return resp.json()["error"]["msg"]
        except (ValueError, KeyError, TypeError):
            return resp.text[:200]

    def _update(self, payload: typing.Any, *, rejected: type[Exception] = IndexUnavailable) -> None:
        resp = self._send("POST", "update", json=payload, params={"wt": "json"})
        if resp.status_code == 400:
            raise rejected(f"Solr rejected update: {self._error_detail(resp)}")
        if resp.status_code >= 300:
            raise IndexUnavailable(f"Solr update returned HTTP {resp.status_code}: {self._error_detail(resp)}")

    # --------------------------------------------------------------------------
    # SearchIndex API
    # --------------------------------------------------------------------------

    def delete_all(self) -> None:
        logger.debug(f"Clearing Solr core {self.core_url}")
        self._update({"delete": {"query": "*:*"}})

    def add_batch(self, documents: typing.Sequence[IndexDocument]) -> None:
        docs = list(documents)
        logger.debug(f"Adding {len(docs)} documents to {self.core_url}")
        if not docs:
            return
        self._update(docs, rejected=MalformedDocument)

    def commit(self) -> None:
        self._update({"commit": {}})

    def query(self, query_string: str) -> list[IndexDocument]:
        params = {
            "q": query_string,
            "wt": "json",
            "rows": self.rows,
            "sort": "ordinal asc",
        }
        resp = self._send("GET", "select", params=params)
        if resp.status_code == 400:
            raise InvalidQuery(f"Solr rejected query {query_string!r}: {self._error_detail(resp)}")
        if resp.status_code >= 300:
            raise IndexUnavailable(f"Solr select returned HTTP {resp.status_code}: {self._error_detail(resp)}")
        try:
            docs = resp.json()["response"]["docs"]
        except (ValueError, KeyError, TypeError) as e:
            raise IndexUnavailable(f"Unreadable Solr response for {query_string!r}: {e}") from e
        return [dict(d) for d in docs]
