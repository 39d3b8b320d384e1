"""Web research for a topper via the Serper search API."""

from __future__ import annotations

import logging
import random
import re
import time
from typing import Any, Callable

import requests

from config import Settings
from models import EvidenceItem, Topper

REQUEST_TIMEOUT_SECONDS = 20
RESULTS_PER_QUERY = 8
MAX_EVIDENCE_ITEMS = 20
DEDUPE_KEY_LENGTH = 200
JITTER_RANGE_SECONDS = (0.25, 0.5)

LOGGER = logging.getLogger(__name__)

_QUERY_TEMPLATES = (
    "{name} UPSC topper interview {year}",
    "{name} UPSC preparation strategy",
    "{name} AIR {rank} UPSC",
    "{name} UPSC journey {year}",
    "{name} topper talk {year}",
)

_WHITESPACE_RE = re.compile(r"\s+")


def build_queries(topper: Topper) -> list[str]:
    """Return the fixed list of search queries for one topper."""
    values = {
        "name": topper.full_name,
        "year": "" if topper.year is None else topper.year,
        "rank": "" if topper.rank is None else topper.rank,
    }
    return [_collapse(template.format(**values)) for template in _QUERY_TEMPLATES]


def serper_search(query: str, settings: Settings, max_results: int = RESULTS_PER_QUERY) -> list[EvidenceItem]:
    """Run one search query. Provider failures are logged and yield no items."""
    headers = {
        "X-API-KEY": settings.search_api_key,
        "Content-Type": "application/json",
    }
    payload = {"q": query, "num": max_results, "autocorrect": True}

    try:
        response = requests.post(
            settings.search_api_url,
            headers=headers,
            json=payload,
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        body = response.json()
    except requests.RequestException as exc:
        LOGGER.warning("Serper error for query=%r: %s", query, _error_detail(exc))
        return []
    except ValueError as exc:
        LOGGER.warning("Serper returned a non-JSON body for query=%r: %s", query, exc)
        return []

    organic = body.get("organic") if isinstance(body, dict) else None
    if not isinstance(organic, list):
        return []

    items: list[EvidenceItem] = []
    for result in organic:
        if not isinstance(result, dict):
            continue
        items.append(
            EvidenceItem(
                source="serper",
                title=_as_text(result.get("title")),
                snippet=_collapse(_as_text(result.get("snippet"))),
                url=_as_text(result.get("link")),
            )
        )
    return items


def dedupe_evidence(items: list[EvidenceItem], limit: int = MAX_EVIDENCE_ITEMS) -> list[EvidenceItem]:
    """Drop repeated results, keyed by url (then title, then snippet)."""
    seen: set[str] = set()
    deduped: list[EvidenceItem] = []
    for item in items:
        key = (item.url or item.title or item.snippet)[:DEDUPE_KEY_LENGTH]
        if key in seen:
            continue
        seen.add(key)
        deduped.append(item)
        if len(deduped) >= limit:
            break
    return deduped


def collect_research(
    topper: Topper,
    settings: Settings,
    sleep: Callable[[float], None] = time.sleep,
) -> list[EvidenceItem]:
    """Search every query for the topper and return a bounded evidence set.

    A short random pause precedes each call so bursts of workers do not hit
    the provider at the same instant.
    """
    combined: list[EvidenceItem] = []
    for query in build_queries(topper):
        sleep(random.uniform(*JITTER_RANGE_SECONDS))
        combined.extend(serper_search(query, settings))

    evidence = dedupe_evidence(combined)
    LOGGER.info(
        "Research for %s: raw_results=%s deduped=%s",
        topper.full_name or topper.doc_id,
        len(combined),
        len(evidence),
    )
    return evidence


def _error_detail(exc: requests.RequestException) -> str:
    response = getattr(exc, "response", None)
    if response is not None:
        try:
            body: Any = response.json()
        except ValueError:
            return response.text or str(exc)
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return str(body)
    return str(exc)


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""
