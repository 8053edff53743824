"""
Term record domain model.

Defines TermRecord, the parsed form of one HGNC nomenclature entry, and its
projection to and from the documents stored in the search index.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from .errors import MalformedDocument

IndexDocument = Dict[str, Any]

_HGNC_ID_PATTERN = re.compile(r"^HGNC:\d+$")


def ordered_unique(values: Iterable[str]) -> Tuple[str, ...]:
    """Strip, drop blanks and de-duplicate while keeping first-seen order."""
    return tuple(dict.fromkeys(v.strip() for v in values if v and v.strip()))


@dataclass(frozen=True)
class TermRecord:
    """
    One approved gene from the HGNC nomenclature.

    Attributes:
        id: Permanent HGNC identifier (e.g. "HGNC:17734").
        symbol: Approved (canonical) symbol (e.g. "TAAR1").
        name: Approved full name.
        previous_symbols: Symbols the gene was formerly approved under.
        alias_symbols: Other symbols the gene is known by.
    """

    id: str
    symbol: str
    name: str
    previous_symbols: Tuple[str, ...] = field(default_factory=tuple)
    alias_symbols: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.id, str) or not _HGNC_ID_PATTERN.match(self.id):
            raise ValueError(f"Invalid HGNC ID: {self.id!r}")
        if not isinstance(self.symbol, str) or not self.symbol.strip():
            raise ValueError(f"Invalid approved symbol: {self.symbol!r}")
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError(f"Invalid approved name: {self.name!r}")
        # frozen: normalise through object.__setattr__
        object.__setattr__(self, "previous_symbols", ordered_unique(self.previous_symbols))
        object.__setattr__(self, "alias_symbols", ordered_unique(self.alias_symbols))

    def symbols(self) -> Iterator[str]:
        """Approved symbol first, then previous symbols, then aliases."""
        yield self.symbol
        yield from self.previous_symbols
        yield from self.alias_symbols


def to_index_document(term: TermRecord, ordinal: int) -> IndexDocument:
    """Project a term to the flat document shape the index stores."""
    return {
        "id": term.id,
        "symbol": term.symbol,
        "name": term.name,
        "prev_symbol": list(term.previous_symbols),
        "alias_symbol": list(term.alias_symbols),
        "ordinal": ordinal,
    }


def _single(document: IndexDocument, key: str) -> Optional[str]:
    # Solr hands back single-valued fields either bare or wrapped in a list
    value = document.get(key)
    if isinstance(value, list):
        value = value[0] if value else None
    return None if value is None else str(value)


def _multi(document: IndexDocument, key: str) -> List[str]:
    value = document.get(key)
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def term_from_document(document: IndexDocument) -> TermRecord:
    """
    Rebuild a TermRecord from an index document.

    Raises MalformedDocument when the document is missing a required field or
    carries values a TermRecord refuses.
    """
    try:
        return TermRecord(
            id=_single(document, "id"),
            symbol=_single(document, "symbol"),
            name=_single(document, "name"),
            previous_symbols=tuple(_multi(document, "prev_symbol")),
            alias_symbols=tuple(_multi(document, "alias_symbol")),
        )
    except (ValueError, TypeError, AttributeError) as e:
        raise MalformedDocument(f"Cannot read term from document {document!r}: {e}") from e


def document_ordinal(document: IndexDocument) -> Optional[int]:
    """The insertion position stored on the document, if any."""
    raw = _single(document, "ordinal")
    try:
        return int(raw) if raw is not None else None
    except ValueError:
        return None
