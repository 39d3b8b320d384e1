"""Prompt construction for topper enrichment."""

from __future__ import annotations

import json

from models import EvidenceItem, Topper

MAX_PROMPT_EVIDENCE = 24

SYSTEM_PROMPT = "You are a UPSC content generator."

_PROMPT_TEMPLATE = """
You MUST return ONLY valid, properly formatted JSON. NO markdown formatting outside the JSON.
All newline characters INSIDE the JSON strings must be written as the literal characters backslash-n (\\n), NOT actual line breaks.
All quotes inside text must be escaped as \\".
All backslashes must be escaped as \\\\.

Use ONLY the research + structured data provided.

{research}

Write 3 fields:

1) "bio"
   - 50-70 words
   - simple, factual, research-based
   - single paragraph

2) "strategy"
   - 1200-1800 words (VERY LONG - 2-3x normal length)
   - Written in HUMAN CONVERSATIONAL TONE - like a friend telling their story
   - Use STORYTELLING format with narrative flow
   - Divide into clear sections with ### headers
   - Include personal anecdotes and experiences
   - Use **bold** for key concepts and turning points
   - Use \\n\\n for paragraph breaks (literal backslash-n backslash-n, not real newlines)
   - Use - for key points with \\n between them
   - Make it engaging, personal, and detailed
   - Include: Background -> Study Plan -> Challenges -> Strategies -> Interview Experience -> Success
   - Sound natural and conversational, not robotic

3) "insights"
   - 6-10 short bullet-style sentences
   - each 8-15 words
   - actionable and practical

Return EXACTLY this JSON structure, ensuring all newlines inside strings are represented as \\n:

{{
  "bio": "text...",
  "strategy": "long story-format text with markdown...",
  "insights": ["point1", "point2", "point3"]
}}

DO NOT add any extra fields.
DO NOT add any text outside the JSON.
DO NOT add commentary.
Return ONLY the raw JSON object. Nothing else.
"""


def build_research_text(topper: Topper, evidence: list[EvidenceItem]) -> str:
    """Serialize the record identity and numbered evidence into one block."""
    structured = {
        "firstname": topper.firstname or "",
        "lastname": topper.lastname or "",
        "fullname": topper.full_name,
        "rank": topper.rank or None,
        "year": topper.year or None,
        "optional": topper.optional or None,
        "slug": topper.slug or None,
    }
    header = f"STRUCTURED DATA: {json.dumps(structured, ensure_ascii=False, separators=(',', ':'), default=str)}\n\n"

    body = "\n\n".join(
        f"{index}. {item.source.upper()} | {item.title}\n{item.snippet}\n{item.url}"
        for index, item in enumerate(evidence[:MAX_PROMPT_EVIDENCE], start=1)
    )
    return header + body


def build_prompt(research_text: str) -> str:
    """Embed the research block into the fixed output-contract instructions."""
    return _PROMPT_TEMPLATE.format(research=research_text)
