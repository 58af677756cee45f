"""Fuzzy-or-phrase verse search against the document store."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from bibledex.exceptions import DecodeError
from bibledex.search.highlight import find_spans
from bibledex.search.models import SearchHit, SearchResult
from bibledex.store.client import StoreClient

logger = logging.getLogger(__name__)

TEXT_FIELD = "text"


def build_query(term: str, *, size: int = 25, field: str = TEXT_FIELD) -> Dict[str, Any]:
    """Build a bool query matching `term` fuzzily or as an exact phrase.

    Fuzziness is ``AUTO`` so the allowed edit distance grows with term length.
    """
    return {
        "query": {
            "bool": {
                "should": [
                    {"match": {field: {"query": term, "fuzziness": "AUTO"}}},
                    {"match_phrase": {field: term}},
                ],
                "minimum_should_match": 1,
            }
        },
        "highlight": {"fields": {field: {}}},
        "size": int(size),
    }


def _total(hits: Dict[str, Any]) -> int:
    # Elasticsearch 7+ reports {"value": n, "relation": ...}; older versions a bare int
    raw = hits.get("total", 0)
    if isinstance(raw, dict):
        raw = raw.get("value", 0)
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise DecodeError(f"Unexpected hits.total: {raw!r}")
    return raw


def _decode_hit(raw: Any, term: str, field: str) -> SearchHit:
    if not isinstance(raw, dict):
        raise DecodeError(f"Unexpected hit: {raw!r}")
    source = raw.get("_source")
    if not isinstance(source, dict):
        raise DecodeError(f"Hit {raw.get('_id')!r} has no _source")
    try:
        text = str(source[field])
        chapter = int(source["chapter"])
        verse = int(source["verse"])
        abbrev = str(source["abbrev"])
        score = float(raw.get("_score") or 0.0)
    except (KeyError, TypeError, ValueError) as exc:
        raise DecodeError(f"Hit {raw.get('_id')!r} is missing or has invalid fields: {exc}") from exc
    fragments = raw.get("highlight") or {}
    store_highlights: List[str] = []
    if isinstance(fragments, dict):
        store_highlights = [str(f) for f in fragments.get(field) or []]
    return SearchHit(
        abbrev=abbrev,
        chapter=chapter,
        verse=verse,
        text=text,
        score=score,
        highlighted_spans=find_spans(text, term),
        store_highlights=store_highlights,
    )


def decode_result(data: Dict[str, Any], term: str, *, field: str = TEXT_FIELD) -> SearchResult:
    """Decode a raw search response body into a `SearchResult`."""
    hits = data.get("hits")
    if not isinstance(hits, dict):
        raise DecodeError("Search response has no hits object")
    total = _total(hits)
    raw_hits = hits.get("hits") or []
    if not isinstance(raw_hits, list):
        raise DecodeError("Search response hits.hits is not a list")
    return SearchResult(total=total, hits=[_decode_hit(h, term, field) for h in raw_hits])


async def search_verses(
    client: StoreClient,
    term: str,
    *,
    index: str,
    size: int = 25,
    field: Optional[str] = None,
) -> SearchResult:
    """Search `index` for `term` and return the decoded result.

    Raises `QueryError` on transport failure and `DecodeError` when the
    response cannot be decoded. Zero matches is an empty result.
    """
    field = field or TEXT_FIELD
    body = build_query(term, size=size, field=field)
    data = await client.search(index, body)
    result = decode_result(data, term, field=field)
    logger.debug("Search %r in %s: %d total, %d returned", term, index, result.total, len(result.hits))
    return result
