"""HTTP client for an Elasticsearch/OpenSearch compatible document store.

Only two endpoints are used: ``POST /_bulk`` for writes and
``POST /{index}/_search`` for queries. One `httpx.AsyncClient` is opened per
`StoreClient` and shared by every caller (the bulk workers included).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import httpx

from bibledex.exceptions import (
    BulkItemError,
    DecodeError,
    EncodeError,
    QueryError,
    TransportError,
)


def encode_bulk_entry(index: str, doc_id: str, source: Dict[str, Any]) -> bytes:
    """Serialize one ``index`` action as the two NDJSON lines of a bulk body."""
    try:
        meta = json.dumps({"index": {"_index": index, "_id": doc_id}}, ensure_ascii=False)
        body = json.dumps(source, ensure_ascii=False)
        return (meta + "\n" + body + "\n").encode("utf-8")
    except (TypeError, ValueError) as exc:
        # UnicodeEncodeError (lone surrogates) is a ValueError
        raise EncodeError(f"Could not encode document {doc_id}: {exc}") from exc


@dataclass(slots=True)
class BulkItemResult:
    """Outcome of one entry in a bulk response."""

    document_id: str
    status: Optional[int] = None
    error: Optional[Dict[str, Any]] = field(default=None)

    @property
    def ok(self) -> bool:
        return self.error is None and self.status is not None and 200 <= self.status < 300

    def to_error(self, document_id: Optional[str] = None) -> BulkItemError:
        err = self.error or {}
        return BulkItemError(
            self.document_id or document_id or "",
            status=self.status,
            error_type=err.get("type"),
            reason=err.get("reason"),
        )


def _parse_bulk_item(item: Any) -> BulkItemResult:
    # Each item is {"<action>": {"_id": ..., "status": ..., "error": {...}}}
    if not isinstance(item, dict) or len(item) != 1:
        return BulkItemResult(document_id="", error={"type": "malformed_item", "reason": repr(item)})
    (outcome,) = item.values()
    if not isinstance(outcome, dict):
        return BulkItemResult(document_id="", error={"type": "malformed_item", "reason": repr(item)})
    status = outcome.get("status")
    error = outcome.get("error")
    if error is not None and not isinstance(error, dict):
        error = {"type": "error", "reason": str(error)}
    return BulkItemResult(
        document_id=str(outcome.get("_id") or ""),
        status=int(status) if isinstance(status, int) else None,
        error=error,
    )


class StoreClient:
    """Async client for the bulk and search endpoints.

    Parameters
    ----------
    host:
        Base URL of the store, e.g. ``https://localhost:9200``.
    username, password:
        Basic auth credentials; auth is only sent when a username is given.
    verify_ssl:
        Whether to verify TLS certificates.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional httpx transport, mainly for tests (``httpx.MockTransport``).
    """

    def __init__(
        self,
        *,
        host: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        verify_ssl: bool = True,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.host = host.rstrip("/")
        self.username = username
        self.password = password
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    def _client(self) -> httpx.AsyncClient:
        auth = (self.username, self.password or "") if self.username else None
        return httpx.AsyncClient(
            base_url=self.host,
            auth=auth,
            timeout=self.timeout,
            verify=self.verify_ssl,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    def _session(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = self._client()
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "StoreClient":
        self._session()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def bulk(self, entries: Sequence[bytes]) -> List[BulkItemResult]:
        """Send encoded entries as one bulk request.

        Returns one result per entry in request order. Raises `TransportError`
        when the request fails as a whole.
        """
        body = b"".join(entries)
        try:
            resp = await self._session().post(
                "/_bulk",
                content=body,
                headers={"Content-Type": "application/x-ndjson"},
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"Bulk request failed ({exc.response.status_code}): {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Bulk request failed: {exc}") from exc
        except ValueError as exc:
            raise TransportError(f"Bulk response is not valid JSON: {exc}") from exc

        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise TransportError("Bulk response has no items")
        results = [_parse_bulk_item(it) for it in items]
        if len(results) != len(entries):
            raise TransportError(
                f"Bulk response has {len(results)} items for {len(entries)} documents"
            )
        return results

    async def search(self, index: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Run a search request and return the decoded JSON body."""
        try:
            resp = await self._session().post(f"/{index}/_search", json=body)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise QueryError(
                f"Search failed ({exc.response.status_code}): {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise QueryError(f"Search failed: {exc}") from exc
        try:
            data = resp.json()
        except ValueError as exc:
            raise DecodeError(f"Search response is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise DecodeError("Search response is not a JSON object")
        return data
