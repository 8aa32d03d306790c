"""
Shared pytest fixtures for the ProjectHub AI test suite.

Every test gets settings with zero backoff delays and a scripted fake
provider, so no test touches the network or sleeps for real.
"""

import asyncio
from typing import Any, Dict, List, Optional, Union

import pytest

from projecthub_ai.config import Settings
from projecthub_ai.core.service import ModelService
from projecthub_ai.providers.base import LLMProvider, ProviderResponse

Step = Union[str, ProviderResponse, BaseException]


class FakeProvider(LLMProvider):
    """
    Provider that replays a script of responses and errors.

    Each call consumes one step. A string becomes a response with 42 tokens,
    an exception is raised. When the script runs out ``default`` is returned.
    Per-model scripts take priority over the shared script.
    """

    def __init__(
        self,
        script: Optional[List[Step]] = None,
        by_model: Optional[Dict[str, List[Step]]] = None,
        default: str = "OK",
        delay: float = 0.0
    ):
        self.script = list(script or [])
        self.by_model = {model: list(steps) for model, steps in (by_model or {}).items()}
        self.default = default
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def models_called(self) -> List[str]:
        return [call["model"] for call in self.calls]

    async def complete(self, messages, model, temperature, max_tokens, json_format=False):
        self.calls.append({
            "messages": messages,
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "json_format": json_format,
        })
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            else:
                await asyncio.sleep(0)

            steps = self.by_model.get(model)
            if steps:
                step = steps.pop(0)
            elif self.script:
                step = self.script.pop(0)
            else:
                step = self.default

            if isinstance(step, BaseException):
                raise step
            if isinstance(step, ProviderResponse):
                return step
            return ProviderResponse(content=step, model=model, total_tokens=42)
        finally:
            self.in_flight -= 1

    def validate_configuration(self) -> None:
        return None

    @property
    def provider_name(self) -> str:
        return "fake"

    async def aclose(self) -> None:
        self.closed = True


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        await asyncio.sleep(0)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        groq_api_key="gsk_test_key_for_unit_tests",
        retry_delay_ms=0,
        rate_limit_backoff_ms=0,
        quota_backoff_ms=0,
        generic_backoff_ms=0,
        storage_backend="memory",
        database_path=str(tmp_path / "projecthub.db"),
        cache_dir=str(tmp_path / "cache"),
    )


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def service(fake_provider, test_settings, recording_sleep) -> ModelService:
    return ModelService(provider=fake_provider, settings=test_settings, sleep=recording_sleep)
