"""Tests for the Gemini client's retry decorator and constructor."""

import pytest
from google.generativeai.types.generation_types import BlockedPromptException

from verification_system.llm import gemini_client
from verification_system.llm.gemini_client import GeminiClient, _exponential_backoff


class FlakyCall:
    """Minimal object carrying max_retries, failing a fixed number of times."""

    def __init__(self, max_retries: int, failures: int, error: Exception = None) -> None:
        self.max_retries = max_retries
        self.failures = failures
        self.error = error or RuntimeError("503 service unavailable")
        self.calls = 0

    @_exponential_backoff
    def generate_content(self, prompt: str) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return '{"score": 80}'


@pytest.fixture
def sleeps(monkeypatch) -> list[float]:
    recorded: list[float] = []
    monkeypatch.setattr(gemini_client.time, "sleep", recorded.append)
    return recorded


class TestExponentialBackoff:
    def test_recovers_after_transient_failure(self, sleeps) -> None:
        call = FlakyCall(max_retries=3, failures=2)

        assert call.generate_content("prompt") == '{"score": 80}'
        assert call.calls == 3
        assert len(sleeps) == 2
        assert 1.0 <= sleeps[0] <= 1.1
        assert 2.0 <= sleeps[1] <= 2.2

    def test_gives_up_after_max_retries(self, sleeps) -> None:
        call = FlakyCall(max_retries=2, failures=5)

        with pytest.raises(RuntimeError, match="503"):
            call.generate_content("prompt")
        assert call.calls == 2
        assert len(sleeps) == 1

    def test_blocked_prompt_not_retried(self, sleeps) -> None:
        call = FlakyCall(max_retries=3, failures=1, error=BlockedPromptException("blocked"))

        with pytest.raises(BlockedPromptException):
            call.generate_content("prompt")
        assert call.calls == 1
        assert sleeps == []


class TestGeminiClient:
    def test_empty_api_key_rejected(self) -> None:
        with pytest.raises(ValueError):
            GeminiClient(api_key="", model_name="gemini-2.0-flash")
