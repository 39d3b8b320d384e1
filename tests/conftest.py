from __future__ import annotations

import pytest

from config import Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(
        mongo_url="mongodb://localhost:27017",
        generation_api_key="groq-key",
        generation_api_url="https://api.groq.com/openai/v1/chat/completions",
        search_api_key="serper-key",
    )
