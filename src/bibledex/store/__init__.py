"""Document store client."""

from .client import BulkItemResult, StoreClient, encode_bulk_entry

__all__ = ["BulkItemResult", "StoreClient", "encode_bulk_entry"]
