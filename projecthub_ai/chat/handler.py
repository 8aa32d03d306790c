"""
Chat turn handling.

One chat turn passes through a fixed pipeline and stops at the first stage
that produces an answer:

    validate -> safety classifier -> quick response -> credit check
             -> model service -> debit -> history

Each outcome carries the HTTP status the web layer should use, so the
pipeline can be driven from the CLI and tests without a web server.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from projecthub_ai.config import Settings, settings as default_settings
from projecthub_ai.constants import CHAT_MAX_TOKENS, CREDIT_HISTORY_PAGE, MODE_TEMPERATURES
from projecthub_ai.core.models import ChatMessage, ChatRequest
from projecthub_ai.core.service import ModelService
from projecthub_ai.credits.meter import CreditMeter
from projecthub_ai.exceptions import ServiceBusyError, TimeoutError
from projecthub_ai.logger import get_logger
from projecthub_ai.providers.prompts import get_system_prompt
from projecthub_ai.safety.classifier import ContentSafetyClassifier
from projecthub_ai.safety.quick_responses import QuickResponseMatcher
from projecthub_ai.storage.base import ChatHistoryStore, CreditStore

logger = get_logger(__name__)

BUSY_MESSAGE = "AI service is busy right now. Please try again in a moment."
RATE_LIMITED_MESSAGE = "Too many AI requests right now. Please wait a moment and try again."
INSUFFICIENT_MESSAGE = "Insufficient credits. Daily limit reached."


class OutcomeKind(str, Enum):
    """Which pipeline stage ended the turn."""

    INVALID = "invalid"
    BLOCKED = "blocked"
    QUICK_RESPONSE = "quick_response"
    INSUFFICIENT_CREDITS = "insufficient_credits"
    UNAVAILABLE = "unavailable"
    ANSWERED = "answered"


@dataclass
class ChatOutcome:
    """Result of one chat turn: a kind, an HTTP status and the response body."""

    kind: OutcomeKind
    status_code: int
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status_code == 200


def _validation_message(error: PydanticValidationError) -> str:
    for item in error.errors():
        location = item.get("loc") or ()
        if "mode" in location:
            return "Invalid AI mode"
        if "message" in location:
            return "Message is required"
    return "Invalid request"


class ChatHandler:
    """Runs chat turns for a user against the shared services."""

    def __init__(
        self,
        service: ModelService,
        credit_store: CreditStore,
        history_store: ChatHistoryStore,
        classifier: Optional[ContentSafetyClassifier] = None,
        quick_responses: Optional[QuickResponseMatcher] = None,
        meter: Optional[CreditMeter] = None,
        settings: Optional[Settings] = None
    ):
        self.service = service
        self.credit_store = credit_store
        self.history_store = history_store
        self.settings = settings or default_settings
        self.classifier = classifier or ContentSafetyClassifier()
        self.quick_responses = quick_responses or QuickResponseMatcher()
        self.meter = meter or CreditMeter(self.settings.long_message_threshold)

    async def handle(self, raw: Dict[str, Any]) -> ChatOutcome:
        """
        Process one inbound chat turn.

        Args:
            raw: Decoded request body including ``userId``

        Returns:
            ChatOutcome: Status and payload for the caller
        """
        try:
            request = ChatRequest.model_validate(raw)
        except PydanticValidationError as e:
            return ChatOutcome(
                OutcomeKind.INVALID, 400,
                {"success": False, "message": _validation_message(e)}
            )

        verdict = self.classifier.classify(request.message)
        if not verdict.accepted:
            return ChatOutcome(
                OutcomeKind.BLOCKED, 400,
                {
                    "success": False,
                    "blocked": True,
                    "reason": verdict.reason_code.value,
                    "message": verdict.user_facing_message,
                }
            )

        mode = request.mode.value
        quick = self.quick_responses.match(request.message)
        if quick is not None:
            await self.history_store.append(request.user_id, "user", request.message, mode, False)
            await self.history_store.append(request.user_id, "assistant", quick, mode, True)
            return ChatOutcome(
                OutcomeKind.QUICK_RESPONSE, 200,
                {
                    "success": True,
                    "response": quick,
                    "credits": None,
                    "isPremium": False,
                    "mode": mode,
                    "isQuickResponse": True,
                }
            )

        account = await self.credit_store.get_or_create(request.user_id)
        cost = self.meter.cost(request.message, request.mode)
        if not self.meter.has_sufficient(account, cost):
            logger.info(
                f"Insufficient credits for {request.user_id}",
                extra={"balance": account.balance, "required": cost}
            )
            return ChatOutcome(
                OutcomeKind.INSUFFICIENT_CREDITS, 403,
                {
                    "success": False,
                    "message": INSUFFICIENT_MESSAGE,
                    "credits": account.balance,
                    "isPremium": False,
                    "requiredCredits": cost,
                }
            )

        messages = await self.build_messages(request)

        try:
            result = await self.service.chat(
                messages,
                temperature=MODE_TEMPERATURES[request.mode],
                max_tokens=CHAT_MAX_TOKENS,
                json_format=False
            )
        except ServiceBusyError as e:
            return self._unavailable(e.rate_limited, str(e))
        except TimeoutError as e:
            return self._unavailable(False, str(e))

        applied, account = await self.credit_store.debit(request.user_id, cost)
        if not applied:
            # Another turn spent the balance while this one was with the model
            logger.warning(
                f"Debit not applied after model call for {request.user_id}",
                extra={"balance": account.balance, "required": cost}
            )

        await self.history_store.append(request.user_id, "user", request.message, mode, False)
        await self.history_store.append(request.user_id, "assistant", result.content, mode, False)

        return ChatOutcome(
            OutcomeKind.ANSWERED, 200,
            {
                "success": True,
                "response": result.content,
                "credits": self.meter.remaining(account),
                "isPremium": account.is_premium,
                "mode": mode,
                "tokensUsed": result.tokens_used,
                "creditCost": cost,
                "model": result.model_used,
                "isFallback": result.is_fallback,
            }
        )

    async def build_messages(self, request: ChatRequest) -> List[ChatMessage]:
        """
        Assemble the model conversation for a turn.

        Saved history wins over the client's copy; the client copy is only
        used when nothing has been saved for the user yet.
        """
        messages = [ChatMessage(role="system", content=get_system_prompt(request.mode))]

        if request.project_context is not None:
            messages.append(ChatMessage(role="system", content=request.project_context.render()))

        saved = await self.history_store.recent(request.user_id, self.settings.chat_context_window)
        if saved:
            messages.extend(ChatMessage(role=m.role, content=m.content) for m in saved)
        elif self.settings.client_history_window > 0:
            messages.extend(request.conversation_history[-self.settings.client_history_window:])

        messages.append(ChatMessage(role="user", content=request.message))
        return messages

    def _unavailable(self, rate_limited: bool, detail: str) -> ChatOutcome:
        logger.warning(f"Chat turn failed: {detail}", extra={"rate_limited": rate_limited})
        if rate_limited:
            wait = self.service.rate_tracker.snapshot()["seconds_until_reset"]
            return ChatOutcome(
                OutcomeKind.UNAVAILABLE, 429,
                {"success": False, "message": RATE_LIMITED_MESSAGE, "retryAfter": max(1, math.ceil(wait))}
            )
        return ChatOutcome(OutcomeKind.UNAVAILABLE, 503, {"success": False, "message": BUSY_MESSAGE})

    async def credit_info(self, user_id: str) -> Dict[str, Any]:
        """Balance summary after applying any due daily reset."""
        account = await self.credit_store.ensure_daily_reset(user_id)
        return {
            "success": True,
            "credits": self.meter.remaining(account),
            "dailyLimit": account.daily_limit,
            "isPremium": account.is_premium,
            "totalUsed": account.lifetime_used,
            "lastResetDate": account.last_reset_date.isoformat(),
        }

    async def credit_history(self, user_id: str, limit: int = CREDIT_HISTORY_PAGE) -> Dict[str, Any]:
        entries = await self.credit_store.history(user_id, limit)
        return {"success": True, "history": [entry.to_wire() for entry in entries]}

    async def chat_history(self, user_id: str, limit: Optional[int] = None) -> Dict[str, Any]:
        messages = await self.history_store.recent(user_id, limit or self.settings.chat_history_limit)
        return {"success": True, "messages": [m.to_wire() for m in messages]}

    async def clear_history(self, user_id: str) -> Dict[str, Any]:
        removed = await self.history_store.clear(user_id)
        logger.info(f"Cleared chat history for {user_id}", extra={"removed": removed})
        return {"success": True, "message": "Chat history cleared", "removed": removed}
