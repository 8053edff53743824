import os

import pytest

from hgncvocab.cache import InMemoryCacheService, TermCache
from hgncvocab.index import InMemorySearchIndex


@pytest.fixture(scope="session")
def fpath_test_dir() -> str:
    """
    Path to `tests/data/` folder.
    """
    return os.path.join(os.path.dirname(__file__), "data")


@pytest.fixture(scope="session")
def fpath_hgnc_sample(fpath_test_dir: str) -> str:
    """
    A small HGNC custom download: six valid genes and two malformed lines.
    """
    return os.path.join(fpath_test_dir, "hgnc_sample.txt")


@pytest.fixture(scope="session")
def hgnc_sample_text(fpath_hgnc_sample: str) -> str:
    with open(fpath_hgnc_sample, encoding="utf-8") as fh:
        return fh.read()


@pytest.fixture
def index() -> InMemorySearchIndex:
    return InMemorySearchIndex()


@pytest.fixture
def cache_service() -> InMemoryCacheService:
    return InMemoryCacheService()


@pytest.fixture
def term_cache(cache_service: InMemoryCacheService) -> TermCache:
    return TermCache(cache_service)
