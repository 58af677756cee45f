import json
from typing import Any, Dict, List

import httpx
import pytest

from bibledex.exceptions import DecodeError, QueryError
from bibledex.search.highlight import find_spans, highlight, render_hit
from bibledex.search.models import SearchHit
from bibledex.search.query import build_query, decode_result, search_verses
from bibledex.store.client import StoreClient

# ---------- Helpers ----------


def es_hit(abbrev: str, chapter: int, verse: int, text: str, score: float = 1.0) -> Dict[str, Any]:
    return {
        "_index": "bible",
        "_id": f"{abbrev}-{chapter}-{verse}",
        "_score": score,
        "_source": {"abbrev": abbrev, "chapter": chapter, "verse": verse, "text": text},
        "highlight": {"text": [text.replace("Faith", "<em>Faith</em>")]},
    }


def es_response(hits: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "took": 2,
        "timed_out": False,
        "hits": {"total": {"value": len(hits), "relation": "eq"}, "max_score": 1.0, "hits": hits},
    }


def make_client(payload: Any, seen: Dict[str, Any]) -> StoreClient:
    def responder(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=payload)

    return StoreClient(host="https://localhost:9200", transport=httpx.MockTransport(responder))


# ---------- Query building ----------


def test_build_query_combines_fuzzy_and_phrase_clauses() -> None:
    q = build_query("living water", size=7)
    should = q["query"]["bool"]["should"]
    assert {"match": {"text": {"query": "living water", "fuzziness": "AUTO"}}} in should
    assert {"match_phrase": {"text": "living water"}} in should
    assert q["query"]["bool"]["minimum_should_match"] == 1
    assert q["highlight"] == {"fields": {"text": {}}}
    assert q["size"] == 7


# ---------- Query execution ----------


@pytest.mark.asyncio
async def test_single_match_is_returned_with_marked_term() -> None:
    seen: Dict[str, Any] = {}
    payload = es_response([es_hit("hb", 11, 1, "Now Faith is the substance", score=2.71828)])

    async with make_client(payload, seen) as client:
        result = await search_verses(client, "faith", index="bible", size=5)

    assert seen["path"] == "/bible/_search"
    assert seen["body"]["size"] == 5
    assert result.total == 1
    hit = result.hits[0]
    assert (hit.abbrev, hit.chapter, hit.verse) == ("hb", 11, 1)
    assert hit.reference == "hb 11:1"
    assert hit.score == pytest.approx(2.71828)
    assert hit.highlighted_spans == [(4, 9)]
    assert hit.store_highlights == ["Now <em>Faith</em> is the substance"]
    assert highlight(hit.text, "faith") == "Now **Faith** is the substance"


@pytest.mark.asyncio
async def test_absent_term_returns_empty_result() -> None:
    seen: Dict[str, Any] = {}
    async with make_client(es_response([]), seen) as client:
        result = await search_verses(client, "zzyzx", index="bible")

    assert result.total == 0
    assert result.hits == []
    assert not result


@pytest.mark.asyncio
async def test_transport_failure_is_query_error() -> None:
    def responder(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    client = StoreClient(host="https://localhost:9200", transport=httpx.MockTransport(responder))
    async with client:
        with pytest.raises(QueryError):
            await search_verses(client, "faith", index="bible")


def test_decode_accepts_integer_total() -> None:
    data = {"hits": {"total": 1, "hits": [es_hit("jo", 3, 16, "For God so loved")]}}
    result = decode_result(data, "god")
    assert result.total == 1
    assert result.hits[0].highlighted_spans == [(4, 7)]


def test_decode_tolerates_missing_score_and_highlight() -> None:
    raw = es_hit("gn", 1, 1, "In the beginning")
    raw["_score"] = None
    del raw["highlight"]
    result = decode_result({"hits": {"total": {"value": 1}, "hits": [raw]}}, "beginning")
    assert result.hits[0].score == 0.0
    assert result.hits[0].store_highlights == []


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"hits": []},
        {"hits": {"total": "many", "hits": []}},
        {"hits": {"total": 1, "hits": [{"_id": "x"}]}},
        {"hits": {"total": 1, "hits": [{"_source": {"abbrev": "gn", "chapter": "one", "verse": 1, "text": "t"}}]}},
        {"hits": {"total": 1, "hits": [{"_source": {"abbrev": "gn", "chapter": 1, "text": "t"}}]}},
    ],
)
def test_decode_rejects_malformed_responses(data: Dict[str, Any]) -> None:
    with pytest.raises(DecodeError):
        decode_result(data, "t")


# ---------- Highlighting ----------


def test_find_spans_is_case_insensitive() -> None:
    assert find_spans("Faith, faith and FAITH", "faith") == [(0, 5), (7, 12), (17, 22)]


def test_find_spans_matches_non_ascii_case_pairs() -> None:
    assert find_spans("GROẞ und groß", "groß") == [(0, 4), (9, 13)]
    assert find_spans("İsa and isa", "İSA") == [(0, 3)]
    assert find_spans("Die Strasse", "straße") == []


def test_find_spans_does_not_overlap() -> None:
    assert find_spans("aaaa", "aa") == [(0, 2), (2, 4)]
    assert find_spans("aaa", "aa") == [(0, 2)]


def test_find_spans_treats_term_literally() -> None:
    assert find_spans("what? why.", "?") == [(4, 5)]
    assert find_spans("a.c abc", "a.c") == [(0, 3)]


def test_highlight_without_matches_returns_text_unchanged() -> None:
    assert highlight("Jesus wept.", "moses") == "Jesus wept."
    assert highlight("Jesus wept.", "") == "Jesus wept."


def test_highlight_custom_markers() -> None:
    assert highlight("Love is patient", "LOVE", open_marker="<", close_marker=">") == "<Love> is patient"


def test_render_hit_styles_reference_matches_and_score() -> None:
    hit = SearchHit(
        abbrev="hb",
        chapter=11,
        verse=1,
        text="Now Faith is the substance",
        score=1.23456,
        highlighted_spans=[(4, 9)],
    )
    line = render_hit(hit, "faith")
    assert line.plain == "hb 11:1 Now Faith is the substance [1.2346]"
    styled = {line.plain[s.start : s.end]: str(s.style) for s in line.spans}
    assert styled["Faith"] == "green"
    assert styled["hb 11:1"] == "blue"
    assert styled["[1.2346]"] == "magenta"


def test_render_hit_falls_back_to_scanning_raw_text() -> None:
    hit = SearchHit(abbrev="ps", chapter=23, verse=1, text="The LORD is my shepherd", score=1.0)
    line = render_hit(hit, "lord")
    styled = [line.plain[s.start : s.end] for s in line.spans if str(s.style) == "green"]
    assert styled == ["LORD"]
