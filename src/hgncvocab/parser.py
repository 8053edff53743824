"""
Term record parser for the HGNC custom download.

Format version ``hgnc-custom-v1``: tab-separated text, one header line, then
one approved gene per line with the columns

    Approved symbol | Previous symbols | Alias symbols | Approved name | HGNC ID

Multi-valued columns are comma-separated. A header that does not match this
layout fails the whole batch; individual malformed lines are reported on the
notepad and skipped.
"""

from __future__ import annotations

import logging
import typing
from dataclasses import dataclass, field

import pandas as pd
from stairval.notepad import Notepad

from .errors import MalformedRecord, SourceFormatError
from .term import TermRecord

logger = logging.getLogger(__name__)

FORMAT_VERSION = "hgnc-custom-v1"

# Normalized header → index field, in the order the source must declare them
RENAME_MAP = {
    "approved_symbol": "symbol",
    "previous_symbols": "prev_symbol",
    "alias_symbols": "alias_symbol",
    "approved_name": "name",
    "hgnc_id": "id",
}
EXPECTED_COLUMNS = tuple(RENAME_MAP)
REQUIRED_FIELDS = ("symbol", "name", "id")
FIELD_SEPARATOR = "\t"
MULTI_VALUE_SEPARATOR = ","


@dataclass
class ParsedBatch:
    """Terms parsed from one source, plus how many lines were skipped."""

    terms: list[TermRecord] = field(default_factory=list)
    skipped: int = 0


def normalize_headers(columns: typing.Iterable[str]) -> list[str]:
    """
    Same clean-up as the sheet loader: strip, drop any "(…)" notes,
    whitespace → underscore, drop colons, lowercase.
    """
    return list(
        pd.Index([str(c) for c in columns])
        .str.strip()
        .str.replace(r"\s*\(.*?\)", "", regex=True)
        .str.replace(r"\s+", "_", regex=True)
        .str.replace(":", "", regex=False)
        .str.lower()
    )


def read_term_table(text: str) -> pd.DataFrame:
    """
    Load the source text into a string-typed DataFrame with index field names
    as columns and source line numbers as the index. Blank lines are dropped.
    Fields past the declared columns are ignored; short rows are padded with
    "" and left for the row parser to reject. Quote characters are literal.

    Raises SourceFormatError when the header does not match FORMAT_VERSION.
    """
    lines = [
        (n, line.rstrip("\r")) for n, line in enumerate(text.split("\n"), start=1) if line.strip()
    ]
    if not lines:
        raise SourceFormatError(f"Source is empty; expected a {FORMAT_VERSION} header")

    _, header = lines[0]
    found = tuple(normalize_headers(header.split(FIELD_SEPARATOR)))
    if found != EXPECTED_COLUMNS:
        raise SourceFormatError(
            f"Source header {found!r} does not match {FORMAT_VERSION} columns {EXPECTED_COLUMNS!r}"
        )

    width = len(EXPECTED_COLUMNS)
    rows = []
    for _, line in lines[1:]:
        fields = line.split(FIELD_SEPARATOR)[:width]
        rows.append(fields + [""] * (width - len(fields)))

    df = pd.DataFrame(
        rows,
        columns=list(found),
        index=pd.Index([n for n, _ in lines[1:]], name="line"),
        dtype=str,
    )
    return df.rename(columns=RENAME_MAP)


def _cell(row: pd.Series, key: str) -> str:
    value = row.get(key)
    if value is None or pd.isna(value):
        return ""
    return str(value).strip()


def _split_multi(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(MULTI_VALUE_SEPARATOR) if part.strip())


def parse_term_row(row: pd.Series, line_number: int, notepad: Notepad) -> TermRecord | None:
    """
    Parse a single source row into a TermRecord.
    Returns None (after noting the reason) if the row is malformed.
    """
    try:
        missing = [key for key in REQUIRED_FIELDS if not _cell(row, key)]
        if missing:
            raise MalformedRecord(line_number, f"missing required column(s) {', '.join(missing)}")
        try:
            return TermRecord(
                id=_cell(row, "id"),
                symbol=_cell(row, "symbol"),
                name=_cell(row, "name"),
                previous_symbols=_split_multi(_cell(row, "prev_symbol")),
                alias_symbols=_split_multi(_cell(row, "alias_symbol")),
            )
        except (ValueError, TypeError) as e:
            raise MalformedRecord(line_number, str(e)) from e
    except MalformedRecord as e:
        logger.debug(f"Skipping source {e}")
        notepad.add_error(f"Skipped {e}")
        return None


def parse_term_table(df: pd.DataFrame, notepad: Notepad) -> ParsedBatch:
    """
    Turn every row of a loaded table into a TermRecord; bad rows are skipped
    and counted without stopping the batch.
    """
    batch = ParsedBatch()

    for line_number, row in df.iterrows():
        term = parse_term_row(row, int(line_number), notepad)
        if term is None:
            batch.skipped += 1
        else:
            batch.terms.append(term)

    logger.debug(f"Parsed {len(batch.terms)} terms, skipped {batch.skipped} lines")
    return batch


def parse_terms(text: str, notepad: Notepad) -> ParsedBatch:
    """
    Parse the whole source text.

    The header is checked first (SourceFormatError aborts everything); after
    that, every bad line is skipped and counted.
    """
    return parse_term_table(read_term_table(text), notepad)
