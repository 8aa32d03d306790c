"""Chat turn pipeline."""

from projecthub_ai.chat.handler import ChatHandler, ChatOutcome, OutcomeKind

__all__ = ["ChatHandler", "ChatOutcome", "OutcomeKind"]
