"""Shared fakes for the Gemini client."""

import asyncio
import json
from types import SimpleNamespace
from typing import Any

import pytest

from market_signals.clients import GeminiGateway
from market_signals.config import Settings


class _FakeModels:
    """Async models API that replays queued responses in order."""

    def __init__(self, responses: list[Any], calls: list[dict[str, Any]]) -> None:
        self._responses = responses
        self._calls = calls

    async def generate_content(self, model: str, contents: Any, config: Any) -> Any:
        self._calls.append({"model": model, "contents": contents, "config": config})
        if not self._responses:
            raise AssertionError("Unexpected backend call")
        response = self._responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, float):
            await asyncio.sleep(response)
            return SimpleNamespace(text="late")
        return SimpleNamespace(text=response)


class FakeGeminiClient:
    """Stands in for genai.Client; only client.aio.models is used."""

    def __init__(self, responses: list[Any] | None = None) -> None:
        self.responses: list[Any] = list(responses or [])
        self.calls: list[dict[str, Any]] = []
        self.aio = SimpleNamespace(models=_FakeModels(self.responses, self.calls))

    def prompt_of(self, index: int) -> str:
        return self.calls[index]["contents"][0].parts[0].text


class FakeFactory:
    """Client factory that records every client creation."""

    def __init__(self, client: FakeGeminiClient) -> None:
        self.client = client
        self.keys: list[str] = []

    def __call__(self, api_key: str, settings: Settings) -> FakeGeminiClient:
        self.keys.append(api_key)
        return self.client


@pytest.fixture
def api_key(monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    return "test-key"


@pytest.fixture
def fake_client() -> FakeGeminiClient:
    return FakeGeminiClient()


@pytest.fixture
def factory(fake_client: FakeGeminiClient) -> FakeFactory:
    return FakeFactory(fake_client)


@pytest.fixture
def gateway(factory: FakeFactory) -> GeminiGateway:
    return GeminiGateway(Settings(request_timeout_s=5), client_factory=factory)


@pytest.fixture
def plan_payload() -> dict[str, Any]:
    return {
        "subreddits": [{"name": "r/gymowners", "queries": ["software frustrations"]}],
        "softwareCategories": [],
        "competitorApps": [],
        "searchStrings": [],
        "nicheForums": [],
    }


@pytest.fixture
def report_payload() -> dict[str, Any]:
    return {
        "executiveSummary": "Scheduling software is the dominant pain point.",
        "patterns": [
            {
                "id": "p1",
                "title": "Lost bookings",
                "description": "Scheduling tools drop class bookings.",
                "scores": {
                    "frequency": 4,
                    "desperation": 4,
                    "willingnessToPay": 3,
                    "trend": 3,
                },
                "classification": "Strong Signal",
                "quotes": [
                    {
                        "text": "I'd pay for anything that stops losing bookings.",
                        "source": "r/gymowners",
                        "date": "2025-03-02",
                        "url": "https://reddit.com/r/gymowners/abc",
                    }
                ],
            }
        ],
        "nextSteps": ["Interview five gym owners about booking tools."],
    }


@pytest.fixture
def plan_json(plan_payload: dict[str, Any]) -> str:
    return json.dumps(plan_payload)


@pytest.fixture
def report_json(report_payload: dict[str, Any]) -> str:
    return json.dumps(report_payload)
