"""Recover a JSON object from free-form model output.

Three pure stages run in order and the first one that yields an object wins:

1. ``parse_strict``        - the whole text is one JSON object.
2. ``parse_brace_extract`` - the text between the first ``{`` and last ``}``.
3. ``parse_repaired``      - the extracted text after escaping raw control
   characters, stray backslashes and bare quotes inside known string values.
"""

from __future__ import annotations

import json
import logging
import re
from json import JSONDecodeError
from typing import Any

from models import Parsed, ParseOutcome, Unrecoverable

EXCERPT_LENGTH = 200
REPAIRABLE_KEYS = ("bio", "about", "strategy", "insights")

LOGGER = logging.getLogger(__name__)

_BRACE_BLOCK_RE = re.compile(r"\{.*\}", re.DOTALL)

# A value ends at the first quote that is followed by another known key or
# the closing brace, so bare quotes inside the value stay part of it.
_KEY_ALTERNATION = "|".join(REPAIRABLE_KEYS)
_STRING_VALUE_RE = re.compile(
    r'"(?P<key>' + _KEY_ALTERNATION + r')"\s*:\s*"(?P<value>.*?)"'
    r'(?=\s*(?:,\s*"(?:' + _KEY_ALTERNATION + r')"\s*:|\}))',
    re.DOTALL,
)
# Valid escapes are consumed as pairs so "\\" is never split.
_VALUE_TOKEN_RE = re.compile(r'\\(["\\/bfnrtu])?|["\n\r\t]')
_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t", '"': '\\"'}


def parse_strict(text: str) -> dict[str, Any] | None:
    return _loads_object(text)


def parse_brace_extract(text: str) -> dict[str, Any] | None:
    block = extract_brace_block(text)
    if block is None:
        return None
    return _loads_object(block)


def parse_repaired(text: str) -> dict[str, Any] | None:
    block = extract_brace_block(text)
    if block is None:
        return None
    return _loads_object(repair_string_values(block))


def extract_brace_block(text: str) -> str | None:
    """Return the greedy ``{...}`` span of the text, if any."""
    match = _BRACE_BLOCK_RE.search(text)
    return match.group(0) if match else None


def repair_string_values(block: str) -> str:
    """Escape characters that break JSON inside the known string values."""

    def _escape_token(token: re.Match[str]) -> str:
        text = token.group(0)
        if text.startswith("\\"):
            return text if token.group(1) else "\\\\"
        return _CONTROL_ESCAPES[text]

    def _fix(match: re.Match[str]) -> str:
        value = _VALUE_TOKEN_RE.sub(_escape_token, match.group("value"))
        return f'"{match.group("key")}":"{value}"'

    return _STRING_VALUE_RE.sub(_fix, block)


_STAGES = (
    ("strict", parse_strict),
    ("brace_extract", parse_brace_extract),
    ("repaired", parse_repaired),
)


def interpret_response(raw: str | None) -> ParseOutcome:
    """Run the recovery stages over raw model output. Never raises."""
    if not raw or not raw.strip():
        return Unrecoverable(reason="empty response")

    for stage, parse in _STAGES:
        value = parse(raw)
        if value is not None:
            if stage != "strict":
                LOGGER.info("Recovered model output with the %s stage", stage)
            return Parsed(value=value, stage=stage)

    block = extract_brace_block(raw)
    excerpt = (block if block is not None else raw)[:EXCERPT_LENGTH]
    reason = "no JSON object found" if block is None else _decode_error(repair_string_values(block))
    LOGGER.warning("JSON parse error: %s", reason)
    LOGGER.warning("First %s chars: %s", EXCERPT_LENGTH, excerpt)
    return Unrecoverable(reason=reason, excerpt=excerpt)


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        value = json.loads(text)
    except (JSONDecodeError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


def _decode_error(text: str) -> str:
    try:
        json.loads(text)
    except JSONDecodeError as exc:
        return str(exc)
    return "decoded value is not a JSON object"
