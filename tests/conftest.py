from __future__ import annotations

import pytest

from jobtrack.db import Database
from jobtrack.llm.base import LLMProvider
from jobtrack.models import LLMResponse


class ScriptedProvider(LLMProvider):
    """Returns a fixed reply or raises a fixed error per model name."""

    def __init__(self, outcomes: dict[str, str | Exception]) -> None:
        self.outcomes = outcomes
        self.calls: list[str] = []
        self.prompts: list[str] = []

    async def generate(self, model: str, prompt: str) -> LLMResponse:
        self.calls.append(model)
        self.prompts.append(prompt)
        outcome = self.outcomes[model]
        if isinstance(outcome, Exception):
            raise outcome
        return LLMResponse(content=outcome, model=model)


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "jobtrack.db")
    database.initialize()
    return database


@pytest.fixture
def scripted_provider():
    return ScriptedProvider
