"""
LLM Provider Package.

This package contains the abstract base class and concrete implementations
for the LLM providers behind the model service.
"""

from typing import Dict, Optional, Type

from projecthub_ai.config import Settings, settings as default_settings
from projecthub_ai.exceptions import ConfigurationError
from projecthub_ai.providers.base import LLMProvider, ProviderResponse
from projecthub_ai.providers.custom import CustomProvider
from projecthub_ai.providers.groq import GroqProvider

PROVIDERS: Dict[str, Type[LLMProvider]] = {
    "groq": GroqProvider,
    "custom": CustomProvider,
}


def create_provider(settings: Optional[Settings] = None) -> LLMProvider:
    """
    Instantiate the provider named by ``settings.llm_provider``.

    Raises:
        ConfigurationError: If the provider name is unknown
    """
    settings = settings or default_settings
    provider_class = PROVIDERS.get(settings.llm_provider)
    if provider_class is None:
        raise ConfigurationError(f"Unknown LLM provider: {settings.llm_provider}")
    return provider_class(settings=settings)


__all__ = [
    "LLMProvider",
    "ProviderResponse",
    "GroqProvider",
    "CustomProvider",
    "PROVIDERS",
    "create_provider",
]
