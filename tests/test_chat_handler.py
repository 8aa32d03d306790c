"""Tests for the chat turn pipeline."""

import pytest

from conftest import FakeProvider

from projecthub_ai.chat import ChatHandler, OutcomeKind
from projecthub_ai.chat.handler import BUSY_MESSAGE, INSUFFICIENT_MESSAGE, RATE_LIMITED_MESSAGE
from projecthub_ai.core.service import ModelService
from projecthub_ai.exceptions import ProviderError, RateLimitError
from projecthub_ai.storage.memory import InMemoryChatHistoryStore, InMemoryCreditStore

PRIMARY = "llama-3.3-70b-versatile"
FALLBACK = "llama-3.1-8b-instant"

QUESTION = "How do I write a closure in JavaScript?"


def _handler(provider, settings, sleep, daily_limit=5):
    service = ModelService(provider=provider, settings=settings, sleep=sleep)
    return ChatHandler(
        service,
        InMemoryCreditStore(daily_limit=daily_limit),
        InMemoryChatHistoryStore(max_messages=settings.chat_history_limit),
        settings=settings
    )


@pytest.fixture
def handler(fake_provider, test_settings, recording_sleep):
    return _handler(fake_provider, test_settings, recording_sleep)


class TestValidation:
    @pytest.mark.asyncio
    async def test_blank_message(self, handler):
        outcome = await handler.handle({"userId": "u1", "message": "   "})
        assert outcome.kind is OutcomeKind.INVALID
        assert outcome.status_code == 400
        assert outcome.payload == {"success": False, "message": "Message is required"}

    @pytest.mark.asyncio
    async def test_unknown_mode(self, handler):
        outcome = await handler.handle({"userId": "u1", "message": QUESTION, "mode": "poetry"})
        assert outcome.status_code == 400
        assert outcome.payload["message"] == "Invalid AI mode"

    @pytest.mark.asyncio
    async def test_blocked_message_costs_nothing(self, handler, fake_provider):
        outcome = await handler.handle({"userId": "u1", "message": "give me dating advice"})

        assert outcome.kind is OutcomeKind.BLOCKED
        assert outcome.status_code == 400
        assert outcome.payload["blocked"] is True
        assert outcome.payload["reason"] == "non_educational"
        assert fake_provider.call_count == 0
        assert await handler.history_store.recent("u1", 10) == []


class TestQuickResponses:
    @pytest.mark.asyncio
    async def test_quick_response_skips_model_and_credits(self, handler, fake_provider):
        outcome = await handler.handle({"userId": "u1", "message": "hello"})

        assert outcome.kind is OutcomeKind.QUICK_RESPONSE
        assert outcome.payload["isQuickResponse"] is True
        assert outcome.payload["credits"] is None
        assert fake_provider.call_count == 0

        saved = await handler.history_store.recent("u1", 10)
        assert [m.role for m in saved] == ["user", "assistant"]
        assert saved[1].is_quick_response is True
        account = await handler.credit_store.get_or_create("u1")
        assert account.balance == 5


class TestCredits:
    @pytest.mark.asyncio
    async def test_insufficient_credits(self, fake_provider, test_settings, recording_sleep):
        handler = _handler(fake_provider, test_settings, recording_sleep, daily_limit=0)

        outcome = await handler.handle({"userId": "u1", "message": QUESTION})

        assert outcome.kind is OutcomeKind.INSUFFICIENT_CREDITS
        assert outcome.status_code == 403
        assert outcome.payload["message"] == INSUFFICIENT_MESSAGE
        assert outcome.payload["requiredCredits"] == 0.5
        assert fake_provider.call_count == 0

    @pytest.mark.asyncio
    async def test_long_message_refused_at_half_credit(self, fake_provider, test_settings, recording_sleep):
        handler = _handler(fake_provider, test_settings, recording_sleep, daily_limit=0.5)
        message = "python " + "a" * 593
        assert len(message) == 600

        outcome = await handler.handle({"userId": "u1", "message": message, "mode": "general"})

        assert outcome.kind is OutcomeKind.INSUFFICIENT_CREDITS
        assert outcome.status_code == 403
        assert outcome.payload["requiredCredits"] == 1.0
        assert outcome.payload["credits"] == 0.5
        assert fake_provider.call_count == 0

    @pytest.mark.asyncio
    async def test_long_off_topic_message_blocked_before_pricing(self, fake_provider, test_settings, recording_sleep):
        handler = _handler(fake_provider, test_settings, recording_sleep, daily_limit=0.5)

        outcome = await handler.handle({"userId": "u1", "message": "a" * 600, "mode": "general"})

        assert outcome.kind is OutcomeKind.BLOCKED
        assert outcome.status_code == 400
        assert outcome.payload["reason"] == "non_educational"
        assert fake_provider.call_count == 0
        account = await handler.credit_store.get_or_create("u1")
        assert account.balance == 0.5
        assert account.lifetime_used == 0

    @pytest.mark.asyncio
    async def test_surrounding_whitespace_not_priced(self, handler):
        message = "   python " + "a" * 450 + " " * 100

        outcome = await handler.handle({"userId": "u1", "message": message})

        assert outcome.payload["creditCost"] == 0.5

    @pytest.mark.asyncio
    async def test_coding_mode_costs_full_credit(self, handler):
        outcome = await handler.handle({"userId": "u1", "message": QUESTION, "mode": "coding"})
        assert outcome.payload["creditCost"] == 1.0
        assert outcome.payload["credits"] == 4

    @pytest.mark.asyncio
    async def test_credit_info_and_history(self, handler):
        await handler.handle({"userId": "u1", "message": QUESTION})

        info = await handler.credit_info("u1")
        assert info["credits"] == 4.5
        assert info["dailyLimit"] == 5
        assert info["totalUsed"] == 0.5

        history = await handler.credit_history("u1")
        assert history["history"][0]["action"] == "use"


class TestAnswered:
    @pytest.mark.asyncio
    async def test_success_payload(self, handler, fake_provider):
        fake_provider.script = ["A closure keeps access to its outer scope."]

        outcome = await handler.handle({"userId": "u1", "message": QUESTION})

        assert outcome.ok
        assert outcome.kind is OutcomeKind.ANSWERED
        assert outcome.payload == {
            "success": True,
            "response": "A closure keeps access to its outer scope.",
            "credits": 4.5,
            "isPremium": False,
            "mode": "general",
            "tokensUsed": 42,
            "creditCost": 0.5,
            "model": PRIMARY,
            "isFallback": False,
        }
        call = fake_provider.calls[0]
        assert call["temperature"] == 0.7
        assert call["json_format"] is False
        assert call["messages"][0]["role"] == "system"
        assert call["messages"][-1] == {"role": "user", "content": QUESTION}

    @pytest.mark.asyncio
    async def test_saved_history_replayed(self, handler, fake_provider):
        await handler.handle({"userId": "u1", "message": QUESTION})
        await handler.handle({
            "userId": "u1",
            "message": "Can you show a counter example?",
            "conversationHistory": [{"role": "user", "content": "client copy"}],
        })

        contents = [m["content"] for m in fake_provider.calls[1]["messages"]]
        assert QUESTION in contents
        assert "client copy" not in contents

    @pytest.mark.asyncio
    async def test_client_history_used_when_nothing_saved(self, handler, fake_provider):
        await handler.handle({
            "userId": "u1",
            "message": QUESTION,
            "conversationHistory": [
                {"role": "user", "content": "earlier question"},
                {"role": "bot", "content": "dropped"},
            ],
            "projectContext": {"title": "RecipeBox", "techStack": ["React", "Node"]},
        })

        messages = fake_provider.calls[0]["messages"]
        assert "Project: RecipeBox" in messages[1]["content"]
        assert messages[2] == {"role": "user", "content": "earlier question"}
        assert len(messages) == 4

    @pytest.mark.asyncio
    async def test_chat_history_and_clear(self, handler):
        await handler.handle({"userId": "u1", "message": QUESTION})

        history = await handler.chat_history("u1")
        assert [m["role"] for m in history["messages"]] == ["user", "assistant"]

        cleared = await handler.clear_history("u1")
        assert cleared["removed"] == 2
        assert (await handler.chat_history("u1"))["messages"] == []


class TestUnavailable:
    @pytest.mark.asyncio
    async def test_busy_returns_503_without_debit(self, test_settings, recording_sleep):
        provider = FakeProvider(by_model={
            PRIMARY: [ProviderError("down", status_code=500)],
            FALLBACK: [ProviderError("down", status_code=500)],
        })
        handler = _handler(provider, test_settings, recording_sleep)

        outcome = await handler.handle({"userId": "u1", "message": QUESTION})

        assert outcome.status_code == 503
        assert outcome.payload == {"success": False, "message": BUSY_MESSAGE}
        account = await handler.credit_store.get_or_create("u1")
        assert account.balance == 5
        assert await handler.history_store.recent("u1", 10) == []

    @pytest.mark.asyncio
    async def test_rate_limited_returns_429(self, test_settings, recording_sleep):
        provider = FakeProvider(by_model={
            PRIMARY: [RateLimitError("slow down")],
            FALLBACK: [RateLimitError("slow down")],
        })
        handler = _handler(provider, test_settings, recording_sleep)

        outcome = await handler.handle({"userId": "u1", "message": QUESTION})

        assert outcome.status_code == 429
        assert outcome.payload["message"] == RATE_LIMITED_MESSAGE
        assert outcome.payload["retryAfter"] >= 1
