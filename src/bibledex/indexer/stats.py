from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class IndexerStats:
    """Snapshot of bulk indexer counters."""

    submitted: int = 0
    succeeded: int = 0
    failed: int = 0
    requests: int = 0

    @property
    def acknowledged(self) -> int:
        return self.succeeded + self.failed


class StatsRecorder:
    """Counters owned by one indexer and shared with its workers.

    All updates happen on the indexer's event loop and never span an await,
    so each increment is atomic with respect to other workers.
    """

    def __init__(self) -> None:
        self._submitted = 0
        self._succeeded = 0
        self._failed = 0
        self._requests = 0

    def record_submitted(self) -> None:
        self._submitted += 1

    def record_success(self) -> None:
        self._succeeded += 1

    def record_failure(self) -> None:
        self._failed += 1

    def record_request(self) -> None:
        self._requests += 1

    def snapshot(self) -> IndexerStats:
        return IndexerStats(
            submitted=self._submitted,
            succeeded=self._succeeded,
            failed=self._failed,
            requests=self._requests,
        )
