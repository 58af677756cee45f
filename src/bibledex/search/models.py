"""Result types for verse search."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

Span = Tuple[int, int]


@dataclass(frozen=True, slots=True)
class SearchHit:
    """A single ranked verse."""

    abbrev: str
    chapter: int
    verse: int
    text: str
    score: float
    # [start, end) offsets of the search term in `text`
    highlighted_spans: List[Span] = field(default_factory=list)
    # Fragments returned by the store's own highlighter, if any
    store_highlights: List[str] = field(default_factory=list)

    @property
    def reference(self) -> str:
        return f"{self.abbrev} {self.chapter}:{self.verse}"


@dataclass(frozen=True, slots=True)
class SearchResult:
    """Total match count reported by the store and the returned hits."""

    total: int
    hits: List[SearchHit] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.total > 0
