"""Per-record enrichment: research, prompt, generate, interpret, validate, store."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from pymongo.collection import Collection

import store
from config import Settings
from generation_client import GenerationError, generate
from interpreter import interpret_response
from models import EnrichmentError, Topper, Unrecoverable
from prompts import build_prompt, build_research_text
from research import collect_research
from validation import normalize_result, validate_result

RAW_PREVIEW_LENGTH = 500
OUTCOME_ENRICHED = "enriched"
OUTCOME_GENERATION_ERROR = "generation_error"

LOGGER = logging.getLogger(__name__)


def enrich_topper(
    doc: dict[str, Any],
    collection: Collection,
    settings: Settings,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Run the full pipeline for one document and persist exactly one outcome.

    Returns the outcome label: ``enriched``, ``generation_error`` or one of
    the EnrichmentError codes.
    """
    topper = Topper.from_document(doc)
    name = topper.full_name or str(topper.doc_id)
    LOGGER.info("Processing: %s (AIR %s)", name, topper.rank if topper.rank is not None else "?")

    evidence = collect_research(topper, settings, sleep=sleep)
    prompt = build_prompt(build_research_text(topper, evidence))

    try:
        raw = generate(prompt, settings, sleep=sleep)
    except GenerationError as exc:
        LOGGER.error("Generation failed for %s: %s", name, exc)
        store.mark_generation_error(collection, topper.doc_id, str(exc))
        return OUTCOME_GENERATION_ERROR

    LOGGER.info("Raw LLM response for %s (first %s chars): %s", name, RAW_PREVIEW_LENGTH, raw[:RAW_PREVIEW_LENGTH])

    outcome = interpret_response(raw)
    if isinstance(outcome, Unrecoverable):
        LOGGER.warning("LLM returned invalid JSON for %s (%s). Raw output saved to enrichedRaw", name, outcome.reason)
        LOGGER.debug("Full raw output for %s: %s", name, raw)
        store.mark_invalid_json(collection, topper.doc_id, raw)
        return EnrichmentError.INVALID_JSON.value

    result = normalize_result(outcome.value)
    error = validate_result(result)
    if error is not None:
        LOGGER.warning(
            "Validation failed for %s: %s (bio=%s chars, strategy=%s chars, insights=%s)",
            name,
            error.value,
            len(result.bio),
            len(result.strategy),
            len(result.insights),
        )
        store.mark_validation_error(collection, topper.doc_id, raw, error)
        return error.value

    store.mark_success(collection, topper.doc_id, result, raw)
    LOGGER.info(
        "Updated: %s (bio=%s chars, strategy=%s chars, insights=%s points)",
        name,
        len(result.bio),
        len(result.strategy),
        len(result.insights),
    )
    return OUTCOME_ENRICHED
