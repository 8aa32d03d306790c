"""
Groq provider implementation.

Groq exposes an OpenAI-compatible chat completions API, so this adapter drives
it through the official ``openai`` async client pointed at the Groq base URL.
"""

from typing import Dict, List, Optional

import openai

from projecthub_ai.config import Settings, settings as default_settings
from projecthub_ai.exceptions import (
    ConfigurationError,
    ProviderError,
    QuotaExceededError,
    RateLimitError
)
from projecthub_ai.logger import get_logger
from projecthub_ai.providers.base import LLMProvider, ProviderResponse

logger = get_logger(__name__)


class GroqProvider(LLMProvider):
    """
    Groq chat completions through the OpenAI SDK.

    The client is created on first use so the application can start, and
    serve quick responses, without an API key configured.
    """

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize the Groq provider."""
        self.settings = settings or default_settings
        self.client: Optional[openai.AsyncOpenAI] = None

    def _get_client(self) -> openai.AsyncOpenAI:
        """Create the async client lazily."""
        if self.client is None:
            self.validate_configuration()
            try:
                self.client = openai.AsyncOpenAI(
                    api_key=self.settings.groq_api_key,
                    base_url=self.settings.groq_base_url,
                    timeout=self.settings.llm_timeout,
                    # Retries and fallback are owned by the model service
                    max_retries=0
                )
            except Exception as e:
                raise ConfigurationError(f"Failed to initialize Groq client: {str(e)}")
        return self.client

    @property
    def provider_name(self) -> str:
        """Get the provider name."""
        return "Groq"

    def validate_configuration(self) -> None:
        """Validate Groq configuration."""
        if not self.settings.groq_api_key:
            raise ConfigurationError("GROQ_API_KEY is not set")

    async def complete(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float,
        max_tokens: int,
        json_format: bool = False
    ) -> ProviderResponse:
        """Run one completion against Groq."""
        client = self._get_client()

        request_args = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_format:
            request_args["response_format"] = {"type": "json_object"}

        try:
            response = await client.chat.completions.create(**request_args)
        except openai.RateLimitError as e:
            raise RateLimitError(f"Groq rate limit exceeded: {str(e)}")
        except openai.APIStatusError as e:
            if e.status_code == 402:
                raise QuotaExceededError(f"Groq quota exceeded: {str(e)}")
            raise ProviderError(f"Groq API error: {str(e)}", status_code=e.status_code)
        except openai.APIError as e:
            raise ProviderError(f"Groq request failed: {str(e)}")

        if not response.choices:
            raise ProviderError("No choices in Groq response")

        content = response.choices[0].message.content
        if not content:
            raise ProviderError("Empty response from Groq")

        tokens = response.usage.total_tokens if response.usage else 0
        return ProviderResponse(content=content, model=response.model or model, total_tokens=tokens)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self.client is not None:
            await self.client.close()
            self.client = None
