from __future__ import annotations

from unittest.mock import MagicMock, patch

import requests

from models import EvidenceItem, Topper
from research import build_queries, collect_research, dedupe_evidence, serper_search

_TOPPER = Topper(doc_id="t1", firstname="Aditi", lastname="Sharma", rank=4, year=2023)


def _mock_resp(payload: dict) -> MagicMock:
    mock = MagicMock()
    mock.json.return_value = payload
    return mock


def _item(url: str, title: str = "t", snippet: str = "s") -> EvidenceItem:
    return EvidenceItem(source="serper", title=title, snippet=snippet, url=url)


def test_build_queries_uses_name_rank_and_year() -> None:
    queries = build_queries(_TOPPER)

    assert queries == [
        "Aditi Sharma UPSC topper interview 2023",
        "Aditi Sharma UPSC preparation strategy",
        "Aditi Sharma AIR 4 UPSC",
        "Aditi Sharma UPSC journey 2023",
        "Aditi Sharma topper talk 2023",
    ]


def test_build_queries_missing_fields_substitute_empty() -> None:
    queries = build_queries(Topper(doc_id="t2", firstname="Ravi"))

    assert len(queries) == 5
    assert queries[0] == "Ravi UPSC topper interview"
    assert queries[2] == "Ravi AIR UPSC"
    assert all("None" not in q for q in queries)


def test_serper_search_maps_organic_results(settings) -> None:
    payload = {
        "organic": [
            {"title": "Interview", "snippet": "Aditi  talks\n about  prep", "link": "https://a.example"},
            {"title": "No link", "snippet": "text"},
        ]
    }
    with patch("research.requests.post", return_value=_mock_resp(payload)) as mock_post:
        items = serper_search("Aditi Sharma UPSC", settings)

    assert items == [
        EvidenceItem(source="serper", title="Interview", snippet="Aditi talks about prep", url="https://a.example"),
        EvidenceItem(source="serper", title="No link", snippet="text", url=""),
    ]
    kwargs = mock_post.call_args.kwargs
    assert kwargs["json"] == {"q": "Aditi Sharma UPSC", "num": 8, "autocorrect": True}
    assert kwargs["headers"]["X-API-KEY"] == "serper-key"
    assert kwargs["timeout"] == 20


def test_serper_search_swallows_provider_errors(settings) -> None:
    with patch("research.requests.post", side_effect=requests.ConnectionError("boom")):
        assert serper_search("q", settings) == []


def test_serper_search_swallows_http_errors(settings) -> None:
    response = MagicMock()
    response.raise_for_status.side_effect = requests.HTTPError("403 Forbidden", response=None)
    with patch("research.requests.post", return_value=response):
        assert serper_search("q", settings) == []


def test_dedupe_keeps_first_seen_order_and_falls_back_to_title() -> None:
    items = [
        _item("https://a"),
        _item("https://b"),
        _item("https://a", title="dup"),
        _item("", title="Only title"),
        _item("", title="Only title", snippet="other"),
        _item("", title="", snippet="just snippet"),
    ]

    deduped = dedupe_evidence(items)

    assert [i.url or i.title or i.snippet for i in deduped] == [
        "https://a",
        "https://b",
        "Only title",
        "just snippet",
    ]


def test_dedupe_key_is_truncated_to_200_chars() -> None:
    prefix = "https://example.com/" + "x" * 200
    deduped = dedupe_evidence([_item(prefix + "/one"), _item(prefix + "/two")])
    assert len(deduped) == 1


def test_dedupe_caps_at_twenty_items() -> None:
    items = [_item(f"https://site/{i}") for i in range(30)]
    assert len(dedupe_evidence(items)) == 20


def test_dedupe_is_idempotent_for_repeated_input() -> None:
    items = [_item(f"https://site/{i % 7}") for i in range(12)]

    once = dedupe_evidence(items)

    assert dedupe_evidence(items + items) == once
    assert dedupe_evidence(once) == once


def test_collect_research_sleeps_before_each_query_and_survives_failures(settings) -> None:
    sleeps: list[float] = []
    responses = [
        _mock_resp({"organic": [{"title": "A", "snippet": "a", "link": "https://a"}]}),
        requests.Timeout("slow"),
        _mock_resp({"organic": [{"title": "A again", "snippet": "a", "link": "https://a"}]}),
        _mock_resp({}),
        _mock_resp({"organic": [{"title": "B", "snippet": "b", "link": "https://b"}]}),
    ]

    with patch("research.requests.post", side_effect=responses) as mock_post:
        evidence = collect_research(_TOPPER, settings, sleep=sleeps.append)

    assert mock_post.call_count == 5
    assert len(sleeps) == 5
    assert all(0.25 <= s <= 0.5 for s in sleeps)
    assert [e.url for e in evidence] == ["https://a", "https://b"]
