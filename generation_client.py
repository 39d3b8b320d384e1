"""Chat-completions client for the text-generation provider (Groq-compatible)."""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Callable

import requests

from config import Settings
from prompts import SYSTEM_PROMPT

REQUEST_TIMEOUT_SECONDS = 120
MAX_ATTEMPTS = 3
MAX_OUTPUT_TOKENS = 900
TEMPERATURE = 0.4
DEFAULT_RATE_LIMIT_WAIT_SECONDS = 6.0
RATE_LIMIT_MARKER = "Rate limit reached"

LOGGER = logging.getLogger(__name__)

_RETRY_AFTER_RE = re.compile(r"try again in ([0-9.]+)s", re.IGNORECASE)


class GenerationError(RuntimeError):
    """Terminal failure of one generation attempt chain."""


class RateLimitExceeded(GenerationError):
    """The provider kept rate limiting after every allowed attempt."""


class _RateLimited(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def generate(
    prompt: str,
    settings: Settings,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Send the prompt and return the raw generated text.

    Only rate-limit replies are retried, sleeping for the wait the provider
    suggests; every other failure raises GenerationError straight away.
    """
    waited = 0.0
    for attempt in range(1, MAX_ATTEMPTS + 1):
        try:
            return _call_provider(prompt, settings)
        except _RateLimited as exc:
            wait_seconds = parse_rate_limit_wait(exc.message)
            LOGGER.info(
                "Generation rate limit hit. Waiting %ss (attempt %s/%s)",
                wait_seconds,
                attempt,
                MAX_ATTEMPTS,
            )
            sleep(wait_seconds)
            waited += wait_seconds

            if attempt >= MAX_ATTEMPTS:
                LOGGER.warning(
                    "Generation rate limited on final attempt %s/%s after waiting %.1fs in total",
                    attempt,
                    MAX_ATTEMPTS,
                    waited,
                )
                raise RateLimitExceeded("Generation rate limit exceeded even after retrying.") from None

    # Unreachable: the loop either returns or raises.
    raise RateLimitExceeded("Generation rate limit exceeded even after retrying.")


def _call_provider(prompt: str, settings: Settings) -> str:
    payload = {
        "model": settings.model_name,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        "max_tokens": MAX_OUTPUT_TOKENS,
        "temperature": TEMPERATURE,
    }
    headers = {
        "Authorization": f"Bearer {settings.generation_api_key}",
        "Content-Type": "application/json",
    }

    try:
        response = requests.post(
            settings.generation_api_url,
            headers=headers,
            json=payload,
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
    except requests.RequestException as exc:
        raise GenerationError(f"Generation request failed: {exc}") from exc

    if not response.ok:
        body = _json_or_none(response)
        message = _error_message(body)
        if RATE_LIMIT_MARKER in message:
            raise _RateLimited(message)
        detail = json.dumps(body) if body is not None else (response.text or f"HTTP {response.status_code}")
        raise GenerationError(f"Generation request failed: {detail}")

    body = _json_or_none(response)
    if body is None:
        return response.text
    return extract_text(body)


def extract_text(body: Any) -> str:
    """Pull the generated text out of any recognized response shape.

    Falls back to serializing the whole body rather than failing.
    """
    if isinstance(body, str):
        return body
    if not isinstance(body, dict):
        return json.dumps(body)

    choices = body.get("choices")
    if not choices and isinstance(body.get("response"), dict):
        choices = body["response"].get("choices")

    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        first = choices[0]
        message = first.get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]
        if isinstance(first.get("text"), str):
            return first["text"]

    for key in ("text", "output_text"):
        if isinstance(body.get(key), str):
            return body[key]

    return json.dumps(body)


def parse_rate_limit_wait(message: str) -> float:
    """Return the wait in seconds suggested by a rate-limit message."""
    match = _RETRY_AFTER_RE.search(message or "")
    if not match:
        return DEFAULT_RATE_LIMIT_WAIT_SECONDS
    try:
        return float(match.group(1))
    except ValueError:
        return DEFAULT_RATE_LIMIT_WAIT_SECONDS


def _error_message(body: Any) -> str:
    if not isinstance(body, dict):
        return ""
    error = body.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    return ""


def _json_or_none(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
