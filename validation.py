"""Content-quality checks for interpreted model output."""

from __future__ import annotations

from typing import Any

from models import EnrichmentError, InterpretedResult

MIN_BIO_LENGTH = 20
MIN_STRATEGY_LENGTH = 150
MIN_INSIGHTS = 3
MAX_INSIGHTS = 10


def normalize_result(data: dict[str, Any]) -> InterpretedResult:
    """Coerce a loosely shaped object into trimmed result fields."""
    raw_insights = InterpretedResult.get_field(data, "insights")
    insights: list[str] = []
    if isinstance(raw_insights, list):
        for item in raw_insights:
            if item is None or isinstance(item, (dict, list)):
                continue
            text = str(item).strip()
            if text:
                insights.append(text)

    return InterpretedResult(
        bio=_as_text(InterpretedResult.get_field(data, "bio")),
        strategy=_as_text(InterpretedResult.get_field(data, "strategy")),
        insights=insights[:MAX_INSIGHTS],
    )


def validate_result(result: InterpretedResult) -> EnrichmentError | None:
    """Return the first failed threshold, or None when the result is usable."""
    if len(result.bio) < MIN_BIO_LENGTH:
        return EnrichmentError.BIO_TOO_SHORT
    if len(result.strategy) < MIN_STRATEGY_LENGTH:
        return EnrichmentError.STRATEGY_TOO_SHORT
    if len(result.insights) < MIN_INSIGHTS:
        return EnrichmentError.INSUFFICIENT_INSIGHTS
    return None


def _as_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""
