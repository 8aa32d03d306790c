"""Tests for the model service fallback chain."""

import asyncio

import pytest

from conftest import FakeProvider, RecordingSleep

from projecthub_ai.core.models import ChatMessage
from projecthub_ai.core.rate_limit import RateLimitTracker
from projecthub_ai.core.service import FailureKind, ModelService, build_service, classify_failure
from projecthub_ai.exceptions import (
    ProviderError,
    QuotaExceededError,
    RateLimitError,
    ServiceBusyError,
)
from projecthub_ai.providers.base import ProviderResponse

PRIMARY = "llama-3.3-70b-versatile"
FALLBACK = "llama-3.1-8b-instant"

MESSAGES = [ChatMessage(role="user", content="Explain closures")]


class TestClassifyFailure:
    def test_rate_limit_by_type(self):
        assert classify_failure(RateLimitError("slow down")) is FailureKind.RATE_LIMIT

    def test_rate_limit_by_status(self):
        assert classify_failure(ProviderError("nope", status_code=429)) is FailureKind.RATE_LIMIT

    def test_rate_limit_by_text(self):
        assert classify_failure(RuntimeError("Too Many Requests")) is FailureKind.RATE_LIMIT

    def test_quota_by_status(self):
        assert classify_failure(ProviderError("payment", status_code=402)) is FailureKind.QUOTA

    def test_quota_by_text(self):
        assert classify_failure(ProviderError("insufficient balance")) is FailureKind.QUOTA
        assert classify_failure(QuotaExceededError("out")) is FailureKind.QUOTA

    def test_generic(self):
        assert classify_failure(ProviderError("bad gateway", status_code=502)) is FailureKind.GENERIC


class TestModelServiceChat:
    @pytest.mark.asyncio
    async def test_primary_success(self, service, fake_provider):
        fake_provider.script = ["Closures capture variables."]

        result = await service.chat(MESSAGES, json_format=False)

        assert result.content == "Closures capture variables."
        assert result.model_used == PRIMARY
        assert result.is_fallback is False
        assert result.tokens_used == 42
        assert fake_provider.models_called == [PRIMARY]
        assert service.rate_tracker.window.request_count == 1

    @pytest.mark.asyncio
    async def test_defaults_from_settings(self, service, fake_provider, test_settings):
        await service.chat(MESSAGES)

        call = fake_provider.calls[0]
        assert call["temperature"] == test_settings.default_temperature
        assert call["max_tokens"] == test_settings.default_max_tokens
        assert call["json_format"] is True

    @pytest.mark.asyncio
    async def test_rate_limit_falls_back(self, test_settings):
        provider = FakeProvider(by_model={PRIMARY: [RateLimitError("rate limit reached")]}, default="from fallback")
        sleep = RecordingSleep()
        settings = test_settings.model_copy(update={"rate_limit_backoff_ms": 2000, "retry_delay_ms": 1500})
        service = ModelService(provider=provider, settings=settings, sleep=sleep)

        result = await service.chat(MESSAGES, temperature=0.3)

        assert result.is_fallback is True
        assert result.model_used == FALLBACK
        assert result.content == "from fallback"
        assert sleep.delays == [2.0, 1.5]
        assert provider.calls[1]["max_tokens"] == settings.fallback_max_tokens
        assert provider.calls[1]["temperature"] == 0.3

    @pytest.mark.asyncio
    async def test_quota_backoff(self, test_settings):
        provider = FakeProvider(by_model={PRIMARY: [QuotaExceededError("quota exceeded")]})
        sleep = RecordingSleep()
        settings = test_settings.model_copy(update={"quota_backoff_ms": 1000})
        service = ModelService(provider=provider, settings=settings, sleep=sleep)

        result = await service.chat(MESSAGES)

        assert result.is_fallback is True
        assert sleep.delays[0] == 1.0

    @pytest.mark.asyncio
    async def test_generic_failure_falls_back_once(self, service, fake_provider):
        fake_provider.by_model = {PRIMARY: [ProviderError("upstream 500", status_code=500)]}

        result = await service.chat(MESSAGES)

        assert result.is_fallback is True
        assert fake_provider.models_called == [PRIMARY, FALLBACK]

    @pytest.mark.asyncio
    async def test_fallback_failure_is_service_busy(self, service, fake_provider):
        fake_provider.by_model = {
            PRIMARY: [ProviderError("upstream 500", status_code=500)],
            FALLBACK: [ProviderError("still down", status_code=503)],
        }

        with pytest.raises(ServiceBusyError) as exc_info:
            await service.chat(MESSAGES)

        assert exc_info.value.rate_limited is False
        assert fake_provider.call_count == 2
        assert service.get_stats()["busy_errors"] == 1

    @pytest.mark.asyncio
    async def test_fallback_rate_limited_flag(self, service, fake_provider):
        fake_provider.by_model = {
            PRIMARY: [RateLimitError("rate limit")],
            FALLBACK: [RateLimitError("rate limit")],
        }

        with pytest.raises(ServiceBusyError) as exc_info:
            await service.chat(MESSAGES)

        assert exc_info.value.rate_limited is True

    @pytest.mark.asyncio
    async def test_never_a_third_tier(self, service, fake_provider):
        fake_provider.script = [ProviderError("a"), ProviderError("b"), "never used"]

        with pytest.raises(ServiceBusyError):
            await service.chat(MESSAGES)

        assert fake_provider.call_count == 2

    @pytest.mark.asyncio
    async def test_rate_gate_skips_primary(self, fake_provider, test_settings, recording_sleep):
        tracker = RateLimitTracker(requests_per_minute=1, tokens_per_minute=1000)
        tracker.record_usage(10)
        service = ModelService(
            provider=fake_provider, settings=test_settings, rate_tracker=tracker, sleep=recording_sleep
        )

        result = await service.chat(MESSAGES)

        assert result.is_fallback is True
        assert fake_provider.models_called == [FALLBACK]

    @pytest.mark.asyncio
    async def test_concurrency_ceiling(self, test_settings, recording_sleep):
        provider = FakeProvider(delay=0.01)
        settings = test_settings.model_copy(update={"max_concurrent_requests": 5, "requests_per_minute": 100})
        service = ModelService(provider=provider, settings=settings, sleep=recording_sleep)

        results = await asyncio.gather(*[service.chat(MESSAGES) for _ in range(20)])

        assert len(results) == 20
        assert provider.max_in_flight == 5

    @pytest.mark.asyncio
    async def test_accepts_plain_dict_messages(self, service, fake_provider):
        await service.chat([{"role": "user", "content": "hi there"}])
        assert fake_provider.calls[0]["messages"] == [{"role": "user", "content": "hi there"}]


class TestModelServiceExtras:
    @pytest.mark.asyncio
    async def test_connection_ok(self, service, fake_provider):
        assert await service.test_connection() is True
        assert fake_provider.calls[0]["max_tokens"] == 10

    @pytest.mark.asyncio
    async def test_connection_failure(self, service, fake_provider):
        fake_provider.script = [ProviderError("invalid api key", status_code=401)]
        assert await service.test_connection() is False

    def test_model_info(self, service):
        info = service.model_info()
        assert info["model"] == PRIMARY
        assert info["context_window"] == 32768
        assert service.model_info(FALLBACK)["max_output"] == 4096

    @pytest.mark.asyncio
    async def test_stats(self, service):
        await service.chat(MESSAGES)
        stats = service.get_stats()
        assert stats["provider"] == "fake"
        assert stats["primary_calls"] == 1
        assert stats["queue"]["total_completed"] == 1
        assert stats["rate_window"]["request_count"] == 1

    def test_chain_timeout_covers_both_tiers(self, test_settings, fake_provider):
        settings = test_settings.model_copy(update={
            "llm_timeout": 30, "rate_limit_backoff_ms": 2000, "retry_delay_ms": 1500
        })
        service = ModelService(provider=fake_provider, settings=settings)
        assert service.queue.task_timeout == pytest.approx(63.5)

    @pytest.mark.asyncio
    async def test_aclose_closes_provider(self, service, fake_provider):
        await service.aclose()
        assert fake_provider.closed is True

    def test_build_service_with_provider(self, test_settings, fake_provider):
        service = build_service(test_settings, provider=fake_provider)
        assert service.provider is fake_provider
        assert service.queue.max_concurrent == test_settings.max_concurrent_requests

    def test_build_service_creates_groq_provider(self, test_settings):
        service = build_service(test_settings)
        assert service.provider.provider_name == "Groq"


class TestProviderResponseTokens:
    @pytest.mark.asyncio
    async def test_tokens_recorded(self, test_settings, recording_sleep):
        provider = FakeProvider(script=[ProviderResponse(content="x", model=PRIMARY, total_tokens=321)])
        service = ModelService(provider=provider, settings=test_settings, sleep=recording_sleep)

        result = await service.chat(MESSAGES)

        assert result.tokens_used == 321
        assert service.rate_tracker.window.token_count == 321
