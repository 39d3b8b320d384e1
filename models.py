"""Shared typed models for the enrichment pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EnrichmentError(str, Enum):
    """Error codes persisted to ``enrichedError`` on a failed attempt."""

    INVALID_JSON = "invalid_json"
    BIO_TOO_SHORT = "bio_too_short"
    STRATEGY_TOO_SHORT = "strategy_too_short"
    INSUFFICIENT_INSIGHTS = "insufficient_insights"


@dataclass(frozen=True, slots=True)
class Topper:
    """One biographical record read from the toppers collection."""

    doc_id: Any
    firstname: str | None = None
    lastname: str | None = None
    rank: int | str | None = None
    year: int | str | None = None
    optional: str | None = None
    slug: str | None = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> Topper:
        return cls(
            doc_id=doc.get("_id"),
            firstname=doc.get("firstname"),
            lastname=doc.get("lastname"),
            rank=doc.get("rank"),
            year=doc.get("year"),
            optional=doc.get("optionalSub") or doc.get("optional"),
            slug=doc.get("slug"),
        )

    @property
    def full_name(self) -> str:
        return f"{self.firstname or ''} {self.lastname or ''}".strip()


@dataclass(frozen=True, slots=True)
class EvidenceItem:
    """Normalized search result folded into the prompt."""

    source: str
    title: str
    snippet: str
    url: str


# Earlier prompt revisions asked for "about" instead of "bio".
LEGACY_FIELD_NAMES: dict[str, tuple[str, ...]] = {
    "bio": ("about",),
    "strategy": (),
    "insights": (),
}


@dataclass(frozen=True, slots=True)
class InterpretedResult:
    """Fields recovered from the model output."""

    bio: str = ""
    strategy: str = ""
    insights: list[str] = field(default_factory=list)

    @staticmethod
    def get_field(data: dict[str, Any], name: str) -> Any:
        """Return ``data[name]``, falling back to the field's legacy names.

        Only names listed in LEGACY_FIELD_NAMES are consulted, so an
        unknown key never gets mapped onto a canonical field.
        """
        if name not in LEGACY_FIELD_NAMES:
            raise KeyError(f"Unknown result field: {name}")
        if name in data:
            return data[name]
        for legacy in LEGACY_FIELD_NAMES[name]:
            if legacy in data:
                return data[legacy]
        return None


@dataclass(frozen=True, slots=True)
class Parsed:
    """Interpreter success: the decoded object and the stage that produced it."""

    value: dict[str, Any]
    stage: str


@dataclass(frozen=True, slots=True)
class Unrecoverable:
    """Interpreter failure sentinel."""

    reason: str
    excerpt: str = ""


ParseOutcome = Parsed | Unrecoverable
