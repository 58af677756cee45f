"""Custom exception hierarchy for bibledex.

Setup failures (config, corpus) abort a run. Per-document failures are
recovered and reported through completion handles and statistics. Store
failures on the read path abort the single query that hit them.
"""

from __future__ import annotations

from typing import Optional


class BibledexError(Exception):
    """Base class for all bibledex exceptions."""


class ConfigError(BibledexError):
    """Raised when configuration loading or validation fails."""


class CorpusError(BibledexError):
    """Raised when the source corpus cannot be read or is malformed."""


class DocumentError(BibledexError):
    """Raised when a single verse cannot be turned into a document."""


class EncodeError(DocumentError):
    """Raised when a document cannot be serialized for the bulk endpoint."""


class StoreError(BibledexError):
    """Raised for document store (search engine) failures."""


class TransportError(StoreError):
    """Raised when a bulk request could not be sent or its response parsed."""


class QueryError(StoreError):
    """Raised when a search request fails at the transport level."""


class DecodeError(StoreError):
    """Raised when a search response cannot be decoded into a result."""


class BulkItemError(StoreError):
    """A single document was rejected by the store inside a bulk response."""

    def __init__(
        self,
        document_id: str,
        *,
        status: Optional[int] = None,
        error_type: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        self.document_id = document_id
        self.status = status
        self.error_type = error_type
        self.reason = reason
        detail = ": ".join(p for p in (error_type, reason) if p) or "unknown error"
        super().__init__(f"{document_id} (status {status}): {detail}")


class IndexerError(BibledexError):
    """Raised when the bulk indexer is used incorrectly."""


class IndexerNotStartedError(IndexerError):
    """Raised when documents are added before the indexer was started."""


class IndexerClosedError(IndexerError):
    """Raised when documents are added after the indexer was closed."""
