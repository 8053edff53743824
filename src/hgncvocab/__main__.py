"""
Command-line interface for hgncvocab.
Administrative entry points: rebuild the Solr gene index from the HGNC dump,
look a symbol up, or dry-run the parser over a source.
"""

import logging
import sys
import typing

import click
from stairval.notepad import Notepad, create_notepad

from .config import Settings
from .errors import VocabularyError
from .parser import parse_terms
from .solr import SolrSearchIndex
from .source import read_source
from .vocabulary import GeneNomenclature

SETTINGS = Settings.from_env()


def _configure_logging(verbose_logging: bool, log_file_path: typing.Optional[str]) -> None:
    handlers: list[logging.Handler] = []
    if log_file_path:
        handlers.append(logging.FileHandler(log_file_path, mode="a", encoding="utf-8"))
    if verbose_logging:
        handlers.append(logging.StreamHandler(sys.stderr))
    if handlers:
        logging.basicConfig(
            level=logging.DEBUG if verbose_logging else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            handlers=handlers,
        )


def _build_vocabulary(solr_url: str, timeout: float) -> GeneNomenclature:
    index = SolrSearchIndex(solr_url, timeout=timeout)
    return GeneNomenclature(
        index,
        source_reader=lambda location: read_source(location, timeout=timeout),
        default_source_location=SETTINGS.source_url,
    )


def _report_issues(notepad: Notepad) -> None:
    # skipped lines are errors on the notepad, but never fatal
    if notepad.has_errors(include_subsections=True):
        click.echo("Skipped source lines:")
        for err in notepad.errors():
            click.echo(f"- {err}")
    if notepad.has_warnings(include_subsections=True):
        click.echo("Warnings:")
        for w in notepad.warnings():
            click.echo(f"- {w}")


@click.group()
@click.option("--verbose-logging", is_flag=True, help="Also emit debug logs to stderr")
@click.option(
    "--log-file-path",
    type=click.Path(dir_okay=False, writable=True),
    help="Append timestamped logs to this file",
)
def main(verbose_logging: bool, log_file_path: typing.Optional[str]):
    """hgncvocab: HGNC gene nomenclature index and lookup."""
    _configure_logging(verbose_logging, log_file_path)


@main.command(name="reindex")
@click.option(
    "-s",
    "--source",
    "source",
    default=None,
    type=str,
    help="nomenclature source: path, file:// or http(s):// URL (default: $HGNC_SOURCE_URL or genenames.org)",
)
@click.option("--solr-url", default=SETTINGS.solr_url, show_default=True, help="Solr core URL")
@click.option("--verbose", is_flag=True, help="List every skipped source line")
def reindex(source: typing.Optional[str], solr_url: str, verbose: bool):
    """
    Clear the gene index, load every term from the source, commit, and drop the term cache.
    """
    vocabulary = _build_vocabulary(solr_url, SETTINGS.http_timeout)
    result = vocabulary.reindex(source)

    if verbose:
        _report_issues(result.notepad)

    if not result.ok:
        if result.failed_state is None:
            step = "before clearing the index"
        else:
            step = result.failed_state.value
        click.echo(f"Error: reindex failed ({step}): {result.error}", err=True)
        sys.exit(1)

    click.echo(f"Indexed {result.indexed} terms")
    click.echo(f"Skipped {result.skipped} malformed lines")


@main.command(name="lookup")
@click.argument("symbol")
@click.option("--solr-url", default=SETTINGS.solr_url, show_default=True, help="Solr core URL")
def lookup(symbol: str, solr_url: str):
    """
    Resolve an approved, previous or alias SYMBOL to its HGNC term.
    """
    vocabulary = _build_vocabulary(solr_url, SETTINGS.http_timeout)
    try:
        term = vocabulary.get_term(symbol)
    except VocabularyError as e:
        click.echo(f"Error: lookup of {symbol!r} failed: {e}", err=True)
        sys.exit(1)

    if term is None:
        click.echo(f"{symbol}: not found")
        return
    click.echo(f"{term.id}\t{term.symbol}\t{term.name}")
    click.echo(f"Previous symbols: {', '.join(term.previous_symbols) or '-'}")
    click.echo(f"Alias symbols: {', '.join(term.alias_symbols) or '-'}")


@main.command(name="check-source")
@click.option(
    "-s",
    "--source",
    "source",
    default=None,
    type=str,
    help="nomenclature source: path, file:// or http(s):// URL (default: $HGNC_SOURCE_URL or genenames.org)",
)
def check_source(source: typing.Optional[str]):
    """
    Parse a nomenclature source without touching any index and report what would be indexed.
    """
    location = source or SETTINGS.source_url
    notepad = create_notepad("check-source")
    try:
        batch = parse_terms(read_source(location, timeout=SETTINGS.http_timeout), notepad)
    except VocabularyError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    _report_issues(notepad)
    click.echo(f"Parsed {len(batch.terms)} terms")
    click.echo(f"Skipped {batch.skipped} malformed lines")


if __name__ == "__main__":
    main()
