"""Run configuration, read once from the environment at process entry."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

DEFAULT_DB_NAME = "toppersjournal"
DEFAULT_COLLECTION = "toppers"
DEFAULT_SEARCH_API_URL = "https://google.serper.dev/search"
DEFAULT_MODEL_NAME = "llama-3.1-8b-instant"
DEFAULT_CONCURRENCY = 1
DEFAULT_BATCH_LIMIT = 10

LOGGER = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    """Raised when required connection settings or credentials are missing."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = problems


@dataclass(frozen=True, slots=True)
class Settings:
    """Explicit configuration passed into every pipeline component."""

    mongo_url: str
    generation_api_key: str
    generation_api_url: str
    search_api_key: str
    db_name: str = DEFAULT_DB_NAME
    collection: str = DEFAULT_COLLECTION
    search_api_url: str = DEFAULT_SEARCH_API_URL
    model_name: str = DEFAULT_MODEL_NAME
    concurrency: int = DEFAULT_CONCURRENCY
    batch_limit: int = DEFAULT_BATCH_LIMIT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables.

        Every missing required variable produces its own diagnostic; all of
        them are collected into a single ConfigError.
        """
        env = os.environ if environ is None else environ

        required = {
            "MONGO_URL": env.get("MONGO_URL", "").strip(),
            "GROQ_API_KEY": env.get("GROQ_API_KEY", "").strip(),
            "GROQ_API_URL": env.get("GROQ_API_URL", "").strip(),
            "SERPER_API_KEY": env.get("SERPER_API_KEY", "").strip(),
        }
        problems = [f"{name} environment variable is required" for name, value in required.items() if not value]
        if problems:
            raise ConfigError(problems)

        return cls(
            mongo_url=required["MONGO_URL"],
            generation_api_key=required["GROQ_API_KEY"],
            generation_api_url=required["GROQ_API_URL"],
            search_api_key=required["SERPER_API_KEY"],
            db_name=env.get("DB_NAME") or DEFAULT_DB_NAME,
            collection=env.get("COLLECTION") or DEFAULT_COLLECTION,
            search_api_url=env.get("SERPER_API_URL") or DEFAULT_SEARCH_API_URL,
            model_name=env.get("MODEL_NAME") or DEFAULT_MODEL_NAME,
            concurrency=_positive_int(env, "CONCURRENCY", DEFAULT_CONCURRENCY),
            batch_limit=_positive_int(env, "TEST_LIMIT", DEFAULT_BATCH_LIMIT),
        )


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        LOGGER.warning("Ignoring non-integer %s=%r, using %s", name, raw, default)
        return default
    if value < 1:
        LOGGER.warning("Ignoring non-positive %s=%r, using %s", name, raw, default)
        return default
    return value
