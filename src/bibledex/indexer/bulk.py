"""Batching bulk indexer with a fixed worker pool.

Documents added to a `BulkIndexer` are encoded once, appended to the current
batch and shipped to the store as one bulk request per batch. A batch is
flushed when its encoded size reaches ``flush_bytes`` or its oldest document
has waited ``flush_interval`` seconds. Both are checked on every add, and a
ticker repeats the age check while no documents arrive. Exactly
``num_workers`` tasks send flushed jobs concurrently.

Backpressure is blocking: when ``max_pending_jobs`` jobs are queued or in
flight, an add that fills a batch waits for a worker to finish before
returning. Nothing is dropped. Time-based flushes never wait.

Every accepted document gets exactly one completion call, success or failure,
and is counted in the statistics returned by `BulkIndexer.close`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import timedelta
from typing import List, Optional, Protocol, Sequence

from bibledex.exceptions import (
    ConfigError,
    IndexerClosedError,
    IndexerNotStartedError,
    StoreError,
    TransportError,
)
from bibledex.indexer.batch import (
    Batch,
    BulkDocument,
    BulkItem,
    Completion,
    FlushJob,
    NullCompletion,
)
from bibledex.indexer.stats import IndexerStats, StatsRecorder
from bibledex.indexer.ticker import FlushTicker
from bibledex.store.client import BulkItemResult, encode_bulk_entry

logger = logging.getLogger(__name__)

_NO_COMPLETION = NullCompletion()


class BulkClient(Protocol):
    async def bulk(self, entries: Sequence[bytes]) -> Sequence[BulkItemResult]: ...


class BulkIndexer:
    """Accumulates documents and writes them to the store in bulk.

    Parameters
    ----------
    client:
        Store client exposing ``bulk(entries)``; shared by all workers.
    index:
        Target index name written into every bulk entry.
    num_workers:
        Number of concurrent senders (>= 1).
    flush_bytes:
        Encoded batch size that triggers a flush (> 0).
    flush_interval:
        Seconds after which a non-empty batch is flushed (> 0).
    max_pending_jobs:
        Jobs queued or in flight before adds block; defaults to
        ``2 * num_workers``.
    """

    def __init__(
        self,
        client: BulkClient,
        *,
        index: str,
        num_workers: int = 4,
        flush_bytes: int = 5_000_000,
        flush_interval: float = 30.0,
        max_pending_jobs: Optional[int] = None,
    ) -> None:
        if num_workers < 1:
            raise ConfigError(f"num_workers must be at least 1, got {num_workers}")
        if flush_bytes <= 0:
            raise ConfigError(f"flush_bytes must be positive, got {flush_bytes}")
        if flush_interval <= 0:
            raise ConfigError(f"flush_interval must be positive, got {flush_interval}")
        if max_pending_jobs is None:
            max_pending_jobs = 2 * num_workers
        if max_pending_jobs < 1:
            raise ConfigError(f"max_pending_jobs must be at least 1, got {max_pending_jobs}")
        if not index:
            raise ConfigError("index name is required")

        self._client = client
        self.index = index
        self.num_workers = num_workers
        self.flush_bytes = flush_bytes
        self.flush_interval = flush_interval
        self.max_pending_jobs = max_pending_jobs

        self._batch = Batch()
        self._lock = asyncio.Lock()
        self._jobs: asyncio.Queue[Optional[FlushJob]] = asyncio.Queue()
        self._capacity = asyncio.Condition()
        self._pending = 0
        self._waiting = 0
        self._stats = StatsRecorder()
        self._workers: List[asyncio.Task[None]] = []
        self._ticker = FlushTicker(
            self._flush_stale,
            interval=timedelta(seconds=min(flush_interval / 2, 1.0)),
        )
        self._started = False
        self._closed = False
        self._drained = asyncio.Event()

    @property
    def stats(self) -> IndexerStats:
        return self._stats.snapshot()

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """Launch the workers and the flush ticker."""
        if self._closed:
            raise IndexerClosedError("Cannot start a closed indexer")
        if self._started:
            return
        self._workers = [
            asyncio.create_task(self._worker(), name=f"bulk-worker-{n}")
            for n in range(self.num_workers)
        ]
        self._ticker.start()
        self._started = True
        logger.debug(
            "Bulk indexer started: index=%s workers=%d flush_bytes=%d flush_interval=%.1fs",
            self.index,
            self.num_workers,
            self.flush_bytes,
            self.flush_interval,
        )

    async def __aenter__(self) -> "BulkIndexer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def add(self, document: BulkDocument, completion: Optional[Completion] = None) -> None:
        """Queue a document for indexing.

        Raises `EncodeError` when this document cannot be serialized (nothing
        is queued in that case), `IndexerNotStartedError` before `start`, and
        `IndexerClosedError` after `close`.
        """
        if self._closed:
            raise IndexerClosedError(f"Cannot add document {document.id}: indexer is closed")
        if not self._started:
            raise IndexerNotStartedError(f"Cannot add document {document.id}: indexer not started")

        doc_id = document.id
        item = BulkItem(
            document_id=doc_id,
            document=document,
            payload=encode_bulk_entry(self.index, doc_id, document.source()),
            completion=completion or _NO_COMPLETION,
        )
        now = time.monotonic()
        async with self._lock:
            self._batch.append(item, now=now)
            self._stats.record_submitted()
            job = self._batch.drain() if self._is_due(now) else None
        if job is None:
            return

        self._waiting += 1
        try:
            async with self._capacity:
                await self._capacity.wait_for(self._has_capacity)
        finally:
            self._waiting -= 1
            # Enqueued even when the wait is cancelled so no document is lost
            self._enqueue(job)
        # Let the workers and the ticker run between flushes
        await asyncio.sleep(0)

    async def flush(self) -> None:
        """Hand the current batch to the workers without waiting for capacity."""
        async with self._lock:
            job = self._batch.drain() if len(self._batch) else None
        if job is not None:
            self._enqueue(job)

    async def close(self) -> IndexerStats:
        """Flush the remaining documents, wait for every job and stop.

        Returns the final statistics. Calling it again returns the same
        statistics once the first call has finished.
        """
        if self._closed:
            await self._drained.wait()
            return self.stats
        self._closed = True
        if not self._started:
            self._drained.set()
            return self.stats

        await self._ticker.shutdown()
        await self.flush()
        async with self._capacity:
            await self._capacity.wait_for(lambda: self._pending == 0 and self._waiting == 0)
        for _ in self._workers:
            self._jobs.put_nowait(None)
        await asyncio.gather(*self._workers)
        self._drained.set()

        stats = self.stats
        logger.debug(
            "Bulk indexer closed: submitted=%d succeeded=%d failed=%d requests=%d",
            stats.submitted,
            stats.succeeded,
            stats.failed,
            stats.requests,
        )
        return stats

    # ----- internals -----

    def _is_due(self, now: float) -> bool:
        return self._batch.size >= self.flush_bytes or self._batch.age(now) >= self.flush_interval

    def _has_capacity(self) -> bool:
        return self._pending < self.max_pending_jobs

    def _enqueue(self, job: FlushJob) -> None:
        self._pending += 1
        self._jobs.put_nowait(job)
        logger.debug("Flushing %d documents (%d bytes)", len(job), job.size)

    async def _flush_stale(self) -> None:
        async with self._lock:
            if not len(self._batch) or self._batch.age(time.monotonic()) < self.flush_interval:
                return
            job = self._batch.drain()
        self._enqueue(job)

    async def _worker(self) -> None:
        while True:
            job = await self._jobs.get()
            if job is None:
                return
            try:
                await self._send(job)
            finally:
                async with self._capacity:
                    self._pending -= 1
                    self._capacity.notify_all()

    async def _send(self, job: FlushJob) -> None:
        self._stats.record_request()
        try:
            results = await self._client.bulk(job.payloads)
        except StoreError as exc:
            error: Exception = exc
        except Exception as exc:
            error = TransportError(f"Bulk request failed: {exc}")
            error.__cause__ = exc
        else:
            if len(results) == len(job):
                for item, result in zip(job.items, results):
                    if result.ok:
                        self._succeed(item, result)
                    else:
                        self._fail(item, result.to_error(item.document_id))
                return
            error = TransportError(
                f"Bulk response has {len(results)} items for {len(job)} documents"
            )

        logger.warning("Bulk request with %d documents failed: %s", len(job), error)
        for item in job.items:
            self._fail(item, error)

    def _succeed(self, item: BulkItem, result: BulkItemResult) -> None:
        self._stats.record_success()
        try:
            item.completion.on_success(item.document, result)
        except Exception:
            logger.exception("Success handler raised for document %s", item.document_id)

    def _fail(self, item: BulkItem, error: Exception) -> None:
        self._stats.record_failure()
        try:
            item.completion.on_failure(item.document, error)
        except Exception:
            logger.exception("Failure handler raised for document %s", item.document_id)
