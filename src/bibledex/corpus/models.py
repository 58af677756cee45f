"""Source corpus and document types.

A corpus is a list of books; each book holds its chapters in order and each
chapter holds its verses in order. Walking that hierarchy yields one
`VerseDocument` per verse, identified by ``"{abbrev}-{chapter}-{verse}"``
with 1-based numbering.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict

from bibledex.exceptions import DocumentError


class SourceBook(BaseModel):
    """One book of the source corpus as read from JSON."""

    model_config = ConfigDict(frozen=True)

    abbrev: str
    # Verse values are checked per document, see `make_document`
    chapters: List[List[Any]]


def verse_id(abbrev: str, chapter: int, verse: int) -> str:
    """Return the deterministic document id for a verse."""
    return f"{abbrev}-{chapter}-{verse}"


@dataclass(frozen=True, slots=True)
class VerseDocument:
    """A single verse ready to be written to the store."""

    abbrev: str
    chapter: int
    verse: int
    text: str

    @property
    def id(self) -> str:
        return verse_id(self.abbrev, self.chapter, self.verse)

    def source(self) -> Dict[str, Any]:
        """Return the document body stored under the id."""
        return {
            "abbrev": self.abbrev,
            "chapter": self.chapter,
            "verse": self.verse,
            "text": self.text,
        }


def make_document(abbrev: str, chapter: int, verse: int, text: Any) -> VerseDocument:
    """Build a document from 1-based chapter and verse numbers.

    Raises `DocumentError` when the verse cannot be represented, e.g. the
    source holds a non-string value where verse text is expected.
    """
    doc_id = verse_id(abbrev, chapter, verse)
    if not abbrev:
        raise DocumentError(f"{doc_id}: empty book abbreviation")
    if chapter < 1 or verse < 1:
        raise DocumentError(f"{doc_id}: chapter and verse numbers start at 1")
    if not isinstance(text, str):
        raise DocumentError(f"{doc_id}: verse text must be a string, got {type(text).__name__}")
    return VerseDocument(abbrev=abbrev, chapter=chapter, verse=verse, text=text)
