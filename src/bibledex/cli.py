"""Command-line entry points: ``bibledex import`` and ``bibledex search``.

Every flag can also be set through the environment (``BIBLEDEX_STORE__HOST``,
``BIBLEDEX_SEARCH__TEXT``, ...); environment values win over flags.
"""

import asyncio
from typing import Annotated, Any, Dict, Optional

import typer
from rich.console import Console
from rich.markup import escape

from bibledex.config import Settings, load_settings
from bibledex.exceptions import BibledexError, ConfigError, CorpusError, StoreError
from bibledex.ingest.pipeline import run_import
from bibledex.log import configure_logging
from bibledex.search.highlight import render_hit
from bibledex.search.models import SearchResult
from bibledex.search.query import search_verses
from bibledex.store.client import StoreClient

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Bulk import a verse corpus into Elasticsearch/OpenSearch and search it.",
)
console = Console()

HostOpt = Annotated[Optional[str], typer.Option("--host", help="Store URL, e.g. https://localhost:9200.")]
UsernameOpt = Annotated[Optional[str], typer.Option("--username", help="Store username.")]
PasswordOpt = Annotated[Optional[str], typer.Option("--password", help="Store password.")]
IndexOpt = Annotated[Optional[str], typer.Option("--index", help="Index name.")]
InsecureOpt = Annotated[bool, typer.Option("--insecure", help="Skip TLS certificate verification.")]
LogLevelOpt = Annotated[Optional[str], typer.Option("--log-level", help="Logging level.")]


def _print_error(label: str, message: str, *, hint: Optional[str] = None) -> None:
    console.print(f"[red]{label}:[/red] {escape(message)}", highlight=False)
    if hint:
        console.print(f"  [dim italic]Hint: {hint}[/dim italic]")


def _store_overrides(
    host: Optional[str],
    username: Optional[str],
    password: Optional[str],
    index: Optional[str],
    insecure: bool,
) -> Dict[str, Any]:
    return {
        "host": host,
        "username": username,
        "password": password,
        "index": index,
        # Only an explicit --insecure overrides the configured value
        "verify_ssl": False if insecure else None,
    }


def _make_client(settings: Settings) -> StoreClient:
    store = settings.store
    return StoreClient(
        host=store.host,
        username=store.username,
        password=store.password,
        verify_ssl=store.verify_ssl,
        timeout=store.timeout,
    )


@app.command("import")
def import_command(
    file: Annotated[Optional[str], typer.Option("--file", help="Path to the JSON corpus.")] = None,
    host: HostOpt = None,
    username: UsernameOpt = None,
    password: PasswordOpt = None,
    index: IndexOpt = None,
    workers: Annotated[Optional[int], typer.Option("--workers", help="Concurrent bulk senders.")] = None,
    flush_bytes: Annotated[
        Optional[int], typer.Option("--flush-bytes", help="Batch size in bytes that triggers a flush.")
    ] = None,
    flush_interval: Annotated[
        Optional[float], typer.Option("--flush-interval", help="Seconds before a partial batch is flushed.")
    ] = None,
    insecure: InsecureOpt = False,
    log_level: LogLevelOpt = None,
) -> None:
    """Index every verse of a corpus file."""
    overrides = {
        "app": {"log_level": log_level},
        "store": _store_overrides(host, username, password, index, insecure),
        "ingest": {
            "file": file,
            "workers": workers,
            "flush_bytes": flush_bytes,
            "flush_interval": flush_interval,
        },
    }
    try:
        settings = load_settings(overrides)
        configure_logging(settings.app.log_level)
        client = _make_client(settings)
        report = asyncio.run(run_import(settings, client=client))
    except (ConfigError, CorpusError) as exc:
        _print_error("Setup failed", str(exc))
        raise typer.Exit(code=1) from exc
    except BibledexError as exc:
        _print_error("Import failed", str(exc))
        raise typer.Exit(code=1) from exc

    if report.skipped:
        console.print(f"Skipped {report.skipped} verses that could not be encoded")
    if report.failed > 0:
        console.print(
            f"Indexed {report.succeeded} documents with {report.failed} failures "
            f"({report.submitted} submitted)"
        )
    else:
        console.print(f"Successfully indexed {report.succeeded} documents")


async def _run_search(settings: Settings, term: str) -> SearchResult:
    async with _make_client(settings) as client:
        return await search_verses(
            client,
            term,
            index=settings.store.index,
            size=settings.search.max_results,
        )


@app.command("search")
def search_command(
    text: Annotated[Optional[str], typer.Option("--text", help="Text to search for.")] = None,
    max_results: Annotated[
        Optional[int], typer.Option("--max", help="Maximum number of results to return.")
    ] = None,
    host: HostOpt = None,
    username: UsernameOpt = None,
    password: PasswordOpt = None,
    index: IndexOpt = None,
    insecure: InsecureOpt = False,
    log_level: LogLevelOpt = None,
) -> None:
    """Search verses with fuzzy and exact phrase matching."""
    overrides = {
        "app": {"log_level": log_level},
        "store": _store_overrides(host, username, password, index, insecure),
        "search": {"text": text, "max_results": max_results},
    }
    try:
        settings = load_settings(overrides)
        configure_logging(settings.app.log_level)
    except ConfigError as exc:
        _print_error("Setup failed", str(exc))
        raise typer.Exit(code=1) from exc

    term = (settings.search.text or "").strip()
    missing = [
        name
        for name, value in (("host", settings.store.host), ("index", settings.store.index), ("text", term))
        if not value
    ]
    if missing:
        _print_error(
            "Missing required configuration",
            ", ".join(missing),
            hint="Set them via command-line flags or BIBLEDEX_* environment variables.",
        )
        raise typer.Exit(code=1)

    try:
        result = asyncio.run(_run_search(settings, term))
    except StoreError as exc:
        _print_error("Search failed", str(exc))
        raise typer.Exit(code=1) from exc

    if not result.total:
        console.print("No results found.")
        return
    for hit in result.hits:
        console.print(render_hit(hit, term))


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
