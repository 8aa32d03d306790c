"""Core request scheduling and model access for ProjectHub AI."""

from projecthub_ai.core.models import ChatMessage, ModelCallResult, SafetyReason, SafetyVerdict
from projecthub_ai.core.queue import RequestQueue
from projecthub_ai.core.rate_limit import RateLimitTracker
from projecthub_ai.core.service import ModelService, build_service

__all__ = [
    "ChatMessage",
    "ModelCallResult",
    "ModelService",
    "RateLimitTracker",
    "RequestQueue",
    "SafetyReason",
    "SafetyVerdict",
    "build_service",
]
