"""
Abstract base class for LLM providers.

This module defines the interface that all LLM providers must implement
so the model service can drive them through the same fallback chain.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List


@dataclass
class ProviderResponse:
    """Raw completion returned by a provider adapter."""

    content: str
    model: str
    total_tokens: int = 0


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Adapters translate upstream failures into ``RateLimitError``,
    ``QuotaExceededError`` or ``ProviderError`` so that the model service
    can classify them without knowing the client library.
    """

    @abstractmethod
    async def complete(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float,
        max_tokens: int,
        json_format: bool = False
    ) -> ProviderResponse:
        """
        Run a single chat completion.

        Args:
            messages: Role-tagged messages in provider wire format
            model: Model identifier
            temperature: Sampling temperature
            max_tokens: Output token ceiling
            json_format: Request strict JSON object output

        Returns:
            ProviderResponse: Completion text and token usage

        Raises:
            RateLimitError: If the provider reports a rate limit
            QuotaExceededError: If the provider reports exhausted quota
            ProviderError: For any other provider failure
        """
        pass

    @abstractmethod
    def validate_configuration(self) -> None:
        """
        Validate the provider configuration.

        Raises:
            ConfigurationError: If configuration is invalid or incomplete
        """
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Get the name of this provider.

        Returns:
            str: Human-readable name of the provider
        """
        pass

    async def aclose(self) -> None:
        """Release network resources held by the adapter."""
        return None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def __str__(self) -> str:
        """String representation of the provider."""
        return f"{self.provider_name} LLM Provider"

    def __repr__(self) -> str:
        """Detailed string representation of the provider."""
        return f"{self.__class__.__name__}(provider_name='{self.provider_name}')"
