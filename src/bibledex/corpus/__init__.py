"""Source corpus model and loader."""

from .loader import load_books, parse_books
from .models import SourceBook, VerseDocument, make_document, verse_id

__all__ = ["SourceBook", "VerseDocument", "make_document", "verse_id", "load_books", "parse_books"]
