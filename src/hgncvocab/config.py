"""
Runtime configuration.

Environment
-----------
HGNC_SOURCE_URL   : Nomenclature source (local path, file:// or http(s):// URL).
                    Defaults to the genenames.org custom download with the five
                    columns the parser expects.
HGNC_SOLR_URL     : Solr core holding the gene index (default "http://localhost:8983/solr/hgnc").
HGNC_HTTP_TIMEOUT : Timeout in seconds for source downloads and Solr requests (default 10).
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_SOURCE_URL = (
    "https://www.genenames.org/cgi-bin/download/custom"
    "?col=gd_app_sym&col=gd_prev_sym&col=gd_aliases&col=gd_app_name&col=gd_hgnc_id"
    "&status=Approved&hgnc_dbtag=on&order_by=gd_app_sym_sort&format=text&submit=submit"
)
DEFAULT_SOLR_URL = "http://localhost:8983/solr/hgnc"
DEFAULT_HTTP_TIMEOUT = 10.0


@dataclass(frozen=True)
class Settings:
    source_url: str = DEFAULT_SOURCE_URL
    solr_url: str = DEFAULT_SOLR_URL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the HGNC_* environment variables, falling back to defaults."""
        raw_timeout = os.getenv("HGNC_HTTP_TIMEOUT", "")
        try:
            timeout = float(raw_timeout) if raw_timeout.strip() else DEFAULT_HTTP_TIMEOUT
        except ValueError:
            raise ValueError(f"HGNC_HTTP_TIMEOUT must be a number, got {raw_timeout!r}")
        return cls(
            source_url=os.getenv("HGNC_SOURCE_URL", DEFAULT_SOURCE_URL),
            solr_url=os.getenv("HGNC_SOLR_URL", DEFAULT_SOLR_URL).rstrip("/"),
            http_timeout=timeout,
        )
