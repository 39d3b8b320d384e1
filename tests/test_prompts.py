from __future__ import annotations

import json

from models import EvidenceItem, Topper
from prompts import build_prompt, build_research_text

_TOPPER = Topper(
    doc_id="t1",
    firstname="Aditi",
    lastname="Sharma",
    rank=4,
    year=2023,
    optional="Sociology",
    slug="aditi-sharma",
)

_EVIDENCE = [
    EvidenceItem(source="serper", title="Interview", snippet="She studied daily.", url="https://a.example"),
    EvidenceItem(source="serper", title="Profile", snippet="Rank 4 in 2023.", url="https://b.example"),
]


def test_research_text_has_single_line_structured_header() -> None:
    text = build_research_text(_TOPPER, _EVIDENCE)
    header_line = text.splitlines()[0]

    assert header_line.startswith("STRUCTURED DATA: ")
    data = json.loads(header_line[len("STRUCTURED DATA: "):])
    assert data == {
        "firstname": "Aditi",
        "lastname": "Sharma",
        "fullname": "Aditi Sharma",
        "rank": 4,
        "year": 2023,
        "optional": "Sociology",
        "slug": "aditi-sharma",
    }


def test_research_text_numbers_evidence_in_order() -> None:
    text = build_research_text(_TOPPER, _EVIDENCE)

    assert "1. SERPER | Interview\nShe studied daily.\nhttps://a.example" in text
    assert "2. SERPER | Profile\nRank 4 in 2023.\nhttps://b.example" in text
    assert text.index("1. SERPER") < text.index("2. SERPER")


def test_research_text_caps_evidence_at_24() -> None:
    evidence = [EvidenceItem("serper", f"T{i}", "s", f"https://x/{i}") for i in range(30)]
    text = build_research_text(_TOPPER, evidence)

    assert "24. SERPER | T23" in text
    assert "25. SERPER" not in text


def test_research_text_handles_missing_fields() -> None:
    text = build_research_text(Topper(doc_id="t2"), [])
    data = json.loads(text.splitlines()[0][len("STRUCTURED DATA: "):])

    assert data["fullname"] == ""
    assert data["rank"] is None
    assert data["optional"] is None


def test_prompt_is_deterministic_and_embeds_contract() -> None:
    research = build_research_text(_TOPPER, _EVIDENCE)

    first = build_prompt(research)
    second = build_prompt(research)

    assert first == second
    assert research in first
    assert '"bio"' in first and '"strategy"' in first and '"insights"' in first
    assert "Return ONLY the raw JSON object. Nothing else." in first
    assert "backslash-n (\\n)" in first
