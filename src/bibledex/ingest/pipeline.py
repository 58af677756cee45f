"""Ingestion pipeline: walk source books and bulk index every verse.

Per-verse build or encode failures are logged and skipped. Store failures are
reported per document through the indexer's completion handles and show up in
the final counts; they never stop the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from bibledex.config import Settings
from bibledex.corpus.loader import load_books
from bibledex.corpus.models import SourceBook, make_document
from bibledex.exceptions import ConfigError, DocumentError
from bibledex.indexer.batch import Completion
from bibledex.indexer.bulk import BulkIndexer
from bibledex.store.client import BulkItemResult, StoreClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class IngestReport:
    """Final counts for one ingestion run."""

    submitted: int
    succeeded: int
    failed: int
    skipped: int = 0


class FailureLogger:
    """Completion handle that logs every document the store rejected."""

    def on_success(self, document: Any, result: BulkItemResult) -> None:
        return None

    def on_failure(self, document: Any, error: Exception) -> None:
        logger.error("Failed to index document %s: %s", document.id, error)


class IngestionPipeline:
    """Feeds every verse of a corpus to a `BulkIndexer`."""

    def __init__(self, indexer: BulkIndexer, *, completion: Optional[Completion] = None) -> None:
        self._indexer = indexer
        self._completion = completion or FailureLogger()
        self.skipped = 0

    async def run(self, books: Iterable[SourceBook]) -> IngestReport:
        """Index all verses, close the indexer and return the final counts."""
        await self._indexer.start()
        try:
            for book in books:
                await self._ingest_book(book)
        finally:
            stats = await self._indexer.close()
        return IngestReport(
            submitted=stats.submitted,
            succeeded=stats.succeeded,
            failed=stats.failed,
            skipped=self.skipped,
        )

    async def _ingest_book(self, book: SourceBook) -> None:
        for chapter_no, verses in enumerate(book.chapters, start=1):
            for verse_no, text in enumerate(verses, start=1):
                try:
                    doc = make_document(book.abbrev, chapter_no, verse_no, text)
                    await self._indexer.add(doc, self._completion)
                except DocumentError as exc:
                    logger.warning("Skipping verse: %s", exc)
                    self.skipped += 1


async def run_import(settings: Settings, *, client: Optional[StoreClient] = None) -> IngestReport:
    """Load the configured corpus and index it into the configured store.

    Raises `ConfigError` or `CorpusError` before any document is sent when
    the setup is unusable.
    """
    if not settings.ingest.file:
        raise ConfigError("Corpus file path is empty. Usage: bibledex import --file path/to/bible.json")
    books = load_books(settings.ingest.file)
    logger.info("Loaded %d books from %s", len(books), settings.ingest.file)

    store = settings.store
    client = client or StoreClient(
        host=store.host,
        username=store.username,
        password=store.password,
        verify_ssl=store.verify_ssl,
        timeout=store.timeout,
    )
    indexer = BulkIndexer(
        client,
        index=store.index,
        num_workers=settings.ingest.workers,
        flush_bytes=settings.ingest.flush_bytes,
        flush_interval=settings.ingest.flush_interval,
        max_pending_jobs=settings.ingest.max_pending_jobs,
    )
    async with client:
        return await IngestionPipeline(indexer).run(books)
