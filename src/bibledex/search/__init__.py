"""Verse search and highlighting."""

from .highlight import find_spans, highlight, render_hit
from .models import SearchHit, SearchResult
from .query import build_query, decode_result, search_verses

__all__ = [
    "SearchHit",
    "SearchResult",
    "build_query",
    "decode_result",
    "find_spans",
    "highlight",
    "render_hit",
    "search_verses",
]
