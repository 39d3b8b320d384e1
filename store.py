"""MongoDB reads and per-record state transitions for the toppers collection."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Callable

from pymongo.collection import Collection

from models import EnrichmentError, InterpretedResult

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def backlog_filter() -> dict[str, Any]:
    """Match records that were never enriched or whose last attempt failed."""
    return {"$or": [{"enriched": False}, {"enriched": {"$exists": False}}]}


def find_backlog(collection: Collection, limit: int) -> list[dict[str, Any]]:
    docs = list(collection.find(backlog_filter()).limit(limit))
    LOGGER.info("Found %s toppers to process (limit=%s)", len(docs), limit)
    return docs


def mark_generation_error(collection: Collection, doc_id: Any, message: str, now: Clock = utc_now) -> None:
    """Record a terminal generation failure; no raw text exists for it."""
    collection.update_one(
        {"_id": doc_id},
        {
            "$set": {
                "enriched": False,
                "enrichedError": message or "generation_error",
                "lastTriedAt": now(),
            }
        },
    )


def mark_invalid_json(collection: Collection, doc_id: Any, raw: str, now: Clock = utc_now) -> None:
    mark_validation_error(collection, doc_id, raw, EnrichmentError.INVALID_JSON, now=now)


def mark_validation_error(
    collection: Collection,
    doc_id: Any,
    raw: str,
    code: EnrichmentError,
    now: Clock = utc_now,
) -> None:
    collection.update_one(
        {"_id": doc_id},
        {
            "$set": {
                "enriched": False,
                "enrichedRaw": raw,
                "enrichedError": code.value,
                "lastTriedAt": now(),
            }
        },
    )


def mark_success(
    collection: Collection,
    doc_id: Any,
    result: InterpretedResult,
    raw: str,
    now: Clock = utc_now,
) -> None:
    """Commit validated fields and clear any previous error."""
    timestamp = now()
    collection.update_one(
        {"_id": doc_id},
        {
            "$set": {
                "bio": result.bio,
                "strategy": result.strategy,
                "insights": list(result.insights),
                "enriched": True,
                "enrichedAt": timestamp,
                "enrichedRaw": raw,
                "lastTriedAt": timestamp,
            },
            "$unset": {"enrichedError": ""},
        },
    )
