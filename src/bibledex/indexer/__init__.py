"""Bulk indexing: batching, worker pool and completion accounting."""

from .batch import Batch, BulkItem, Completion, FlushJob, NullCompletion
from .bulk import BulkIndexer
from .stats import IndexerStats

__all__ = [
    "Batch",
    "BulkIndexer",
    "BulkItem",
    "Completion",
    "FlushJob",
    "IndexerStats",
    "NullCompletion",
]
