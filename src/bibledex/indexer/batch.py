"""Batch buffer and flush job types used by the bulk indexer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple

from bibledex.store.client import BulkItemResult


class BulkDocument(Protocol):
    """Anything with a stable id and a JSON-serializable body."""

    @property
    def id(self) -> str: ...

    def source(self) -> Dict[str, Any]: ...


class Completion(Protocol):
    """Per-document completion handle.

    Exactly one of the two methods is called for every accepted document,
    from the worker that sent it. Implementations must not block.
    """

    def on_success(self, document: Any, result: BulkItemResult) -> None: ...

    def on_failure(self, document: Any, error: Exception) -> None: ...


class NullCompletion:
    """Completion handle that ignores both outcomes."""

    def on_success(self, document: Any, result: BulkItemResult) -> None:
        return None

    def on_failure(self, document: Any, error: Exception) -> None:
        return None


@dataclass(frozen=True, slots=True)
class BulkItem:
    """A document, its encoded bulk entry and its completion handle."""

    document_id: str
    document: Any
    payload: bytes
    completion: Completion


@dataclass(frozen=True, slots=True)
class FlushJob:
    """Immutable snapshot of a drained batch, owned by one worker."""

    items: Tuple[BulkItem, ...]
    size: int

    def __len__(self) -> int:
        return len(self.items)

    @property
    def payloads(self) -> List[bytes]:
        return [item.payload for item in self.items]


class Batch:
    """Documents waiting to be flushed, in append order."""

    def __init__(self) -> None:
        self._items: List[BulkItem] = []
        self.size = 0
        self.started_at: Optional[float] = None

    def __len__(self) -> int:
        return len(self._items)

    def append(self, item: BulkItem, *, now: float) -> None:
        if not self._items:
            self.started_at = now
        self._items.append(item)
        self.size += len(item.payload)

    def age(self, now: float) -> float:
        """Seconds since the first unflushed item was appended (0 when empty)."""
        if self.started_at is None:
            return 0.0
        return now - self.started_at

    def drain(self) -> FlushJob:
        """Return the current contents as a job and reset to empty."""
        job = FlushJob(items=tuple(self._items), size=self.size)
        self._items = []
        self.size = 0
        self.started_at = None
        return job
