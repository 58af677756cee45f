"""Mark literal, case-insensitive occurrences of a search term in verse text.

Matching scans left to right and never overlaps: searching ``"aa"`` in
``"aaaa"`` yields two spans. It is independent of the store's highlighter so
the output is the same whether or not the store returned highlight fragments.

Case is folded with ``str.lower`` and every match spans exactly ``len(term)``
characters of the text. ``ẞ`` matches ``ß``, but ``ß`` does not match ``ss``
and ``İ`` does not match ``i``.
"""

from __future__ import annotations

from typing import List

from rich.text import Text

from bibledex.search.models import SearchHit, Span

MATCH_STYLE = "green"
REFERENCE_STYLE = "blue"
SCORE_STYLE = "magenta"


def find_spans(text: str, term: str) -> List[Span]:
    """Return ``(start, end)`` offsets of every non-overlapping match of `term`."""
    if not term or not text:
        return []
    needle = term.lower()
    width = len(term)
    spans: List[Span] = []
    i = 0
    while i + width <= len(text):
        if text[i : i + width].lower() == needle:
            spans.append((i, i + width))
            i += width
        else:
            i += 1
    return spans


def highlight(text: str, term: str, *, open_marker: str = "**", close_marker: str = "**") -> str:
    """Wrap every match of `term` in `text` with the given markers."""
    out: List[str] = []
    last = 0
    for start, end in find_spans(text, term):
        out.append(text[last:start])
        out.append(open_marker + text[start:end] + close_marker)
        last = end
    out.append(text[last:])
    return "".join(out)


def render_hit(hit: SearchHit, term: str) -> Text:
    """Render one hit as ``REF text [score]`` with the matches coloured."""
    body = Text(hit.text)
    for start, end in hit.highlighted_spans or find_spans(hit.text, term):
        body.stylize(MATCH_STYLE, start, end)
    line = Text()
    line.append(hit.reference, style=REFERENCE_STYLE)
    line.append(" ")
    line.append_text(body)
    line.append(" ")
    line.append(f"[{hit.score:.4f}]", style=SCORE_STYLE)
    return line
