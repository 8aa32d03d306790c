"""
Shared data models for chat and model calls.

These models describe messages flowing between the chat surface, the model
service and the provider adapters.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from projecthub_ai.constants import ChatMode


class ChatMessage(BaseModel):
    """A single role-tagged message sent to the model."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"]
    content: str

    def to_provider(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


class ProjectContext(BaseModel):
    """Optional project the learner is working on, replayed to the model."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: Optional[str] = None
    description: Optional[str] = None
    tech_stack: Optional[Union[List[str], str]] = Field(default=None, alias="techStack")
    features: Optional[List[str]] = None

    def render(self) -> str:
        """Render the context as a single system message body."""
        stack = self.tech_stack
        if isinstance(stack, list):
            stack = ", ".join(stack)

        lines = ["Current project context:"]
        if self.title:
            lines.append(f"Project: {self.title}")
        if self.description:
            lines.append(f"Description: {self.description}")
        if stack:
            lines.append(f"Tech Stack: {stack}")
        if self.features:
            lines.append(f"Features: {', '.join(self.features)}")
        return "\n".join(lines)


class ChatRequest(BaseModel):
    """
    Inbound chat turn after transport decoding.

    ``message`` is stored trimmed; an empty message or an unknown mode fails
    validation before any other processing happens. Every later stage (safety
    classification, quick responses, pricing and history) sees the trimmed
    text, so surrounding whitespace never changes a verdict or a cost.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    user_id: str = Field(alias="userId")
    message: str
    mode: ChatMode = ChatMode.GENERAL
    conversation_history: List[ChatMessage] = Field(default_factory=list, alias="conversationHistory")
    project_context: Optional[ProjectContext] = Field(default=None, alias="projectContext")

    @field_validator("message", mode="before")
    @classmethod
    def require_message(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Message is required")
        return v.strip()

    @field_validator("mode", mode="before")
    @classmethod
    def default_mode(cls, v: Any) -> Any:
        return ChatMode.GENERAL if v is None or v == "" else v

    @field_validator("conversation_history", mode="before")
    @classmethod
    def drop_malformed_history(cls, v: Any) -> List[Any]:
        """Client history is advisory; keep only well-formed entries."""
        if not isinstance(v, list):
            return []
        kept = []
        for item in v:
            if isinstance(item, ChatMessage):
                kept.append(item)
            elif (
                isinstance(item, dict)
                and item.get("role") in ("user", "assistant")
                and isinstance(item.get("content"), str)
            ):
                kept.append(item)
        return kept


class SafetyReason(str, Enum):
    """Why the content safety classifier reached its verdict."""

    OK = "ok"
    UNSUPPORTED_LANGUAGE = "unsupported_language"
    INAPPROPRIATE_LANGUAGE = "inappropriate_language"
    NON_EDUCATIONAL = "non_educational"


class SafetyVerdict(BaseModel):
    """Result of classifying an inbound message."""

    model_config = ConfigDict(frozen=True)

    accepted: bool
    reason_code: SafetyReason = SafetyReason.OK
    user_facing_message: Optional[str] = None
    detail: Optional[str] = None

    @classmethod
    def accept(cls) -> "SafetyVerdict":
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: SafetyReason, message: str, detail: Optional[str] = None) -> "SafetyVerdict":
        return cls(accepted=False, reason_code=reason, user_facing_message=message, detail=detail)


class ModelCallResult(BaseModel):
    """Outcome of a successful model call."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    content: str
    model_used: str
    tokens_used: int = 0
    duration_seconds: float = 0.0
    is_fallback: bool = False
