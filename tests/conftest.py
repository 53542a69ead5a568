"""Shared pytest fixtures for receiptflow tests."""

from __future__ import annotations

from collections.abc import Iterator, Sequence

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from receiptflow.receipt.structuring import PromptTurn, SamplingParams
from receiptflow.runtime.category_rules import load_category_keyword_table, load_known_merchants
from receiptflow.runtime.paths import reset_paths
from receiptflow.runtime.settings import reset_settings
from receiptflow.runtime.transaction_store import TransactionStore

_ENV_VARS = (
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "GEMINI_API_URL",
    "RECEIPTFLOW_AI_TIMEOUT",
    "RECEIPTFLOW_AI_TEMPERATURE",
    "OCR_PROVIDER",
    "GOOGLE_VISION_API_KEY",
    "OCRSPACE_API_KEY",
    "RECEIPTFLOW_OCR_TIMEOUT",
    "DATABASE_URL",
)


@pytest.fixture(autouse=True)
def isolated_runtime(tmp_path, monkeypatch) -> Iterator[None]:
    """Point the project root at tmp_path and run with AI disabled unless a test opts in."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("RECEIPTFLOW_HOME", str(tmp_path))
    monkeypatch.setenv("RECEIPTFLOW_DISABLE_AI", "1")
    reset_paths()
    reset_settings()
    load_category_keyword_table.cache_clear()
    load_known_merchants.cache_clear()
    yield
    reset_paths()
    reset_settings()
    load_category_keyword_table.cache_clear()
    load_known_merchants.cache_clear()


@pytest.fixture
def store() -> TransactionStore:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    store = TransactionStore(engine)
    store.create_schema()
    return store


class StubBackend:
    """GenerationBackend returning canned responses and recording each call."""

    def __init__(self, *responses: str | Exception) -> None:
        self.responses = list(responses)
        self.calls: list[tuple[list[PromptTurn], SamplingParams, float]] = []

    def generate(self, turns: Sequence[PromptTurn], params: SamplingParams, *, timeout: float) -> str:
        self.calls.append((list(turns), params, timeout))
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def stub_backend_factory():
    return StubBackend
