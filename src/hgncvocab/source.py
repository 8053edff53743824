"""
Nomenclature source reader.

Fetches the whole HGNC dump as text from a local path, a ``file://`` URL or an
``http(s)://`` URL. Network reads use a small retry/backoff; anything that
prevents reading the source raises ``SourceUnreadable`` so the reindex can
abort before it touches the index.
"""

from __future__ import annotations

import gzip
import logging
import pathlib
import time
from urllib.parse import unquote, urlparse

import requests

from .config import DEFAULT_HTTP_TIMEOUT
from .errors import SourceUnreadable

logger = logging.getLogger(__name__)


def sleep_backoff(i: int) -> None:
    """
    Sleep using a small exponential backoff between HTTP retries.
    Sequence ~ 0.25s, 0.5s, 1s.
    """
    time.sleep(0.25 * (2**i))


def _request_text(url: str, *, timeout: float, attempts: int = 3) -> str:
    """
    GET text with simple retry/backoff.

    Retries on network and HTTP errors and raises SourceUnreadable once all
    attempts fail.
    """
    last_exc: Exception | None = None
    for i in range(attempts):
        try:
            resp = requests.get(url, timeout=timeout)
            resp.raise_for_status()
            return resp.text
        except requests.RequestException as e:
            last_exc = e
            logger.debug(f"Attempt {i + 1} to fetch {url} failed: {e}")
            if i < attempts - 1:
                sleep_backoff(i)
    raise SourceUnreadable(f"Failed GET {url}: {last_exc}") from last_exc


def _read_local(path: pathlib.Path) -> str:
    try:
        if path.suffix == ".gz":
            with gzip.open(path, "rt", encoding="utf-8") as fh:
                return fh.read()
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError, EOFError) as e:
        raise SourceUnreadable(f"Cannot read {path}: {e}") from e


def read_source(location: str, *, timeout: float = DEFAULT_HTTP_TIMEOUT) -> str:
    """
    Read the full nomenclature source behind ``location``.

    Parameters
    ----------
    location : str
        Local path (optionally ``.gz``), ``file://`` URL or ``http(s)://`` URL.
    timeout : float, optional
        Per-request timeout for network sources.

    Raises
    ------
    SourceUnreadable
        If the location is empty, unsupported, missing or cannot be fetched.
    """
    if not location or not str(location).strip():
        raise SourceUnreadable("No nomenclature source location given")
    location = str(location).strip()

    parsed = urlparse(location)
    if parsed.scheme in ("http", "https"):
        logger.info(f"Downloading nomenclature source from {location}")
        return _request_text(location, timeout=timeout)
    if parsed.scheme == "file":
        return _read_local(pathlib.Path(unquote(parsed.path)))
    # single letters are Windows drive letters, not schemes
    if parsed.scheme and len(parsed.scheme) > 1:
        raise SourceUnreadable(f"Unsupported source scheme {parsed.scheme!r} in {location!r}")
    return _read_local(pathlib.Path(location))
