"""
Model service with queued execution and two-tier model fallback.

Every chat call is one operation on the request queue. Inside that operation
the call walks a small state machine:

    PRIMARY  --success-->  result
    PRIMARY  --failure / rate gate closed-->  FALLBACK
    FALLBACK --success-->  result (is_fallback=True)
    FALLBACK --failure-->  ServiceBusyError

There is never a third tier and never more than one fallback attempt.
"""

import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from projecthub_ai.config import Settings, settings as default_settings
from projecthub_ai.constants import MODEL_SPECS
from projecthub_ai.exceptions import QuotaExceededError, RateLimitError, ServiceBusyError
from projecthub_ai.logger import get_logger
from projecthub_ai.providers import create_provider
from projecthub_ai.providers.base import LLMProvider

from .models import ChatMessage, ModelCallResult
from .queue import RequestQueue
from .rate_limit import RateLimitTracker

logger = get_logger(__name__)

MessageLike = Union[ChatMessage, Dict[str, str]]

RATE_LIMIT_MARKERS = ("rate limit", "too many requests")
QUOTA_MARKERS = ("quota", "credit", "insufficient")


class FallbackStage(str, Enum):
    """Model tier currently being attempted."""

    PRIMARY = "primary"
    FALLBACK = "fallback"


class FailureKind(str, Enum):
    """Classification of a failed provider call."""

    RATE_LIMIT = "rate_limit"
    QUOTA = "quota"
    GENERIC = "generic"


def classify_failure(error: BaseException) -> FailureKind:
    """
    Classify a provider failure by type, status code and message text.

    Args:
        error: Exception raised by the provider adapter

    Returns:
        FailureKind: How the fallback chain should treat the failure
    """
    status = getattr(error, "status_code", None)
    text = str(error).lower()

    if isinstance(error, RateLimitError) or status == 429 or any(m in text for m in RATE_LIMIT_MARKERS):
        return FailureKind.RATE_LIMIT
    if isinstance(error, QuotaExceededError) or status == 402 or any(m in text for m in QUOTA_MARKERS):
        return FailureKind.QUOTA
    return FailureKind.GENERIC


def _to_wire(messages: Sequence[MessageLike]) -> List[Dict[str, str]]:
    wire = []
    for message in messages:
        if isinstance(message, ChatMessage):
            wire.append(message.to_provider())
        else:
            wire.append({"role": message["role"], "content": message["content"]})
    return wire


class ModelService:
    """
    Entry point for every model call in the application.

    Owns the request queue and the rate window, so one instance should be
    shared per process.
    """

    def __init__(
        self,
        provider: LLMProvider,
        settings: Optional[Settings] = None,
        queue: Optional[RequestQueue] = None,
        rate_tracker: Optional[RateLimitTracker] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        """
        Initialize the model service.

        Args:
            provider: Provider adapter used for both tiers
            settings: Application settings (defaults to the global settings)
            queue: Request queue (built from settings when omitted)
            rate_tracker: Rate window tracker (built from settings when omitted)
            sleep: Awaitable sleep used for backoff, replaceable in tests
        """
        self.provider = provider
        self.settings = settings or default_settings
        self.queue = queue or RequestQueue(
            max_concurrent=self.settings.max_concurrent_requests,
            task_timeout=self._chain_timeout()
        )
        self.rate_tracker = rate_tracker or RateLimitTracker(
            requests_per_minute=self.settings.requests_per_minute,
            tokens_per_minute=self.settings.tokens_per_minute
        )
        self._sleep = sleep
        self._primary_calls = 0
        self._fallback_calls = 0
        self._busy_errors = 0

    def _chain_timeout(self) -> float:
        """Upper bound for one queued operation: both tiers plus the waits between them."""
        backoff_ms = max(
            self.settings.rate_limit_backoff_ms,
            self.settings.quota_backoff_ms,
            self.settings.generic_backoff_ms
        )
        return self.settings.llm_timeout * 2 + (backoff_ms + self.settings.retry_delay_ms) / 1000

    @property
    def primary_model(self) -> str:
        return self.settings.primary_model

    @property
    def fallback_model(self) -> str:
        return self.settings.fallback_model

    async def chat(
        self,
        messages: Sequence[MessageLike],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_format: Optional[bool] = None
    ) -> ModelCallResult:
        """
        Run a chat completion through the queue and the fallback chain.

        Args:
            messages: Conversation to send
            temperature: Sampling temperature (defaults to settings)
            max_tokens: Output token ceiling for the primary tier (defaults to settings)
            json_format: Request JSON object output (defaults to settings)

        Returns:
            ModelCallResult: Content plus which tier produced it

        Raises:
            ServiceBusyError: If the fallback tier also failed
        """
        wire = _to_wire(messages)
        options = {
            "temperature": self.settings.default_temperature if temperature is None else temperature,
            "max_tokens": self.settings.default_max_tokens if max_tokens is None else max_tokens,
            "json_format": self.settings.json_response_format if json_format is None else json_format,
        }
        return await self.queue.submit(lambda: self._run_chain(wire, options))

    async def _run_chain(self, messages: List[Dict[str, str]], options: Dict[str, Any]) -> ModelCallResult:
        stage = FallbackStage.PRIMARY

        if not self.rate_tracker.allow_primary():
            logger.warning(
                "Primary model request budget exhausted, using fallback model",
                extra=self.rate_tracker.snapshot()
            )
            stage = FallbackStage.FALLBACK

        if stage is FallbackStage.PRIMARY:
            try:
                self._primary_calls += 1
                return await self._call(
                    model=self.primary_model,
                    messages=messages,
                    temperature=options["temperature"],
                    max_tokens=options["max_tokens"],
                    json_format=options["json_format"],
                    is_fallback=False
                )
            except Exception as e:
                kind = classify_failure(e)
                delay_ms = self._backoff_ms(kind)
                logger.warning(
                    f"Primary model failed ({kind.value}), falling back in {delay_ms}ms",
                    extra={"model": self.primary_model, "error": str(e)}
                )
                await self._sleep(delay_ms / 1000)
                stage = FallbackStage.FALLBACK

        return await self._fallback(messages, options)

    async def _fallback(self, messages: List[Dict[str, str]], options: Dict[str, Any]) -> ModelCallResult:
        await self._sleep(self.settings.retry_delay_ms / 1000)
        self._fallback_calls += 1

        try:
            return await self._call(
                model=self.fallback_model,
                messages=messages,
                temperature=options["temperature"],
                max_tokens=self.settings.fallback_max_tokens,
                json_format=options["json_format"],
                is_fallback=True
            )
        except Exception as e:
            self._busy_errors += 1
            kind = classify_failure(e)
            logger.error(
                "Fallback model failed, giving up",
                extra={"model": self.fallback_model, "error": str(e), "failure": kind.value}
            )
            raise ServiceBusyError(rate_limited=kind is FailureKind.RATE_LIMIT) from e

    def _backoff_ms(self, kind: FailureKind) -> int:
        if kind is FailureKind.RATE_LIMIT:
            return self.settings.rate_limit_backoff_ms
        if kind is FailureKind.QUOTA:
            return self.settings.quota_backoff_ms
        return self.settings.generic_backoff_ms

    async def _call(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float,
        max_tokens: int,
        json_format: bool,
        is_fallback: bool
    ) -> ModelCallResult:
        started = time.perf_counter()
        response = await self.provider.complete(
            messages=messages,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            json_format=json_format
        )
        duration = time.perf_counter() - started

        self.rate_tracker.record_usage(response.total_tokens)

        logger.info(
            f"Model call succeeded on {model}",
            extra={
                "tokens": response.total_tokens,
                "duration_seconds": round(duration, 3),
                "is_fallback": is_fallback,
            }
        )

        return ModelCallResult(
            content=response.content,
            model_used=model,
            tokens_used=response.total_tokens,
            duration_seconds=round(duration, 3),
            is_fallback=is_fallback
        )

    async def test_connection(self) -> bool:
        """
        Send a tiny prompt straight to the primary model.

        Bypasses the queue and the fallback chain so the result reflects the
        provider configuration only.
        """
        try:
            response = await self.provider.complete(
                messages=[{"role": "user", "content": "Reply with just: OK"}],
                model=self.primary_model,
                temperature=0.0,
                max_tokens=10,
                json_format=False
            )
        except Exception as e:
            logger.error(f"Provider connection test failed: {str(e)}")
            return False

        logger.info("Provider connection test succeeded", extra={"reply": response.content.strip()})
        return True

    def model_info(self, model: Optional[str] = None) -> Dict[str, Any]:
        """Describe a model from the known model table, defaulting to the primary."""
        name = model or self.primary_model
        return {"model": name, **MODEL_SPECS.get(name, MODEL_SPECS.get(self.primary_model, {}))}

    def get_stats(self) -> Dict[str, Any]:
        """Combined queue and rate window statistics."""
        return {
            "provider": self.provider.provider_name,
            "primary_model": self.primary_model,
            "fallback_model": self.fallback_model,
            "primary_calls": self._primary_calls,
            "fallback_calls": self._fallback_calls,
            "busy_errors": self._busy_errors,
            "queue": self.queue.get_stats(),
            "rate_window": self.rate_tracker.snapshot(),
        }

    async def aclose(self) -> None:
        """Close the provider and wait for queued calls to settle."""
        await self.queue.wait_idle()
        await self.provider.aclose()


def build_service(settings: Optional[Settings] = None, provider: Optional[LLMProvider] = None) -> ModelService:
    """
    Build a model service from settings.

    Args:
        settings: Application settings (defaults to the global settings)
        provider: Provider override; built from ``settings.llm_provider`` when omitted

    Returns:
        ModelService: Ready-to-use service
    """
    settings = settings or default_settings
    return ModelService(provider=provider or create_provider(settings), settings=settings)
