"""
Query escaping for the Lucene/Solr query grammar.

Every reserved character gets a backslash in front of it; everything else
passes through untouched. The symbol query searches the same escaped value in
the current, previous and alias symbol fields, always in that order.
"""

from __future__ import annotations

from typing import Optional

ESCAPE_MARKER = "\\"

# Characters with a meaning in the query parser (whitespace is handled separately)
RESERVED_CHARS = frozenset('\\+-!():^[]"{}~*?|&;/')

SYMBOL_QUERY_FIELDS = ("symbol", "prev_symbol", "alias_symbol")


def escape_query_chars(value: Optional[str]) -> str:
    """
    Escape every reserved character (and whitespace) in ``value``.

    Total and deterministic: ``None`` and ``""`` both give ``""``.
    """
    if not value:
        return ""
    out = []
    for ch in value:
        if ch in RESERVED_CHARS or ch.isspace():
            out.append(ESCAPE_MARKER)
        out.append(ch)
    return "".join(out)


def unescape_query_chars(value: Optional[str]) -> str:
    """Drop escape markers, keeping whatever character each one protects."""
    if not value:
        return ""
    out = []
    chars = iter(value)
    for ch in chars:
        if ch == ESCAPE_MARKER:
            # a trailing lone marker is kept as-is
            ch = next(chars, ESCAPE_MARKER)
        out.append(ch)
    return "".join(out)


def build_symbol_query(symbol: Optional[str]) -> str:
    """
    Build ``symbol:E(S) OR prev_symbol:E(S) OR alias_symbol:E(S)``.

    >>> build_symbol_query("A1BG")
    'symbol:A1BG OR prev_symbol:A1BG OR alias_symbol:A1BG'
    """
    escaped = escape_query_chars(symbol)
    return " OR ".join(f"{field}:{escaped}" for field in SYMBOL_QUERY_FIELDS)
