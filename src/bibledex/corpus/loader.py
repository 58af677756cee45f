"""Load the source corpus from a JSON file.

The file holds a JSON array of ``{"abbrev": str, "chapters": [[str, ...], ...]}``
objects. Some published corpora carry a UTF-8 byte order mark, which is
stripped before parsing.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Union

from pydantic import TypeAdapter, ValidationError

from bibledex.corpus.models import SourceBook
from bibledex.exceptions import CorpusError

_BOM = b"\xef\xbb\xbf"
_BOOKS = TypeAdapter(List[SourceBook])


def parse_books(data: bytes) -> List[SourceBook]:
    """Parse raw corpus bytes into source books."""
    if data.startswith(_BOM):
        data = data[len(_BOM) :]
    try:
        return _BOOKS.validate_json(data)
    except ValidationError as exc:
        raise CorpusError(f"Malformed corpus: {exc}") from exc


def load_books(path: Union[str, Path]) -> List[SourceBook]:
    """Read and parse the corpus file at `path`."""
    p = Path(path)
    try:
        data = p.read_bytes()
    except OSError as exc:
        raise CorpusError(f"Failed to read corpus file {p}: {exc}") from exc
    try:
        return parse_books(data)
    except CorpusError as exc:
        raise CorpusError(f"{p}: {exc}") from exc
