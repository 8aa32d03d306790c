"""ProjectHub AI custom exceptions."""

from typing import Optional


class ProjectHubError(Exception):
    """Base exception for ProjectHub AI."""
    pass

class ConfigurationError(ProjectHubError):
    """Raised when configuration is invalid."""
    pass

class ValidationError(ProjectHubError):
    """Raised when request input is invalid."""
    pass

class LLMProviderError(ProjectHubError):
    """Raised when an LLM provider encounters an error."""
    pass

class ProviderError(LLMProviderError):
    """Raised by provider adapters with the upstream status code, if any."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

class RateLimitError(ProviderError):
    """Raised when the provider reports a rate limit."""

    def __init__(self, message: str, status_code: Optional[int] = 429):
        super().__init__(message, status_code)

class QuotaExceededError(ProviderError):
    """Raised when the provider reports exhausted quota or credit."""

    def __init__(self, message: str, status_code: Optional[int] = 402):
        super().__init__(message, status_code)

class ServiceBusyError(LLMProviderError):
    """Raised when both model tiers failed for a single request."""

    def __init__(
        self,
        message: str = (
            "AI service is temporarily busy. Please wait a moment and try again. "
            "Our system is handling multiple requests."
        ),
        rate_limited: bool = False
    ):
        super().__init__(message)
        self.rate_limited = rate_limited

class DatabaseError(ProjectHubError):
    """Raised when database operations fail."""
    pass

class TimeoutError(ProjectHubError):
    """Raised when operation times out."""
    pass
