"""
Custom LLM provider implementation.

This module implements the LLMProvider interface against any OpenAI-compatible
chat completions endpoint using a plain ``httpx`` client.
"""

from typing import Any, Dict, List, Optional

import httpx

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


class CustomProvider(LLMProvider):
    """
    Custom OpenAI-compatible provider.

    Useful for self-hosted gateways or other vendors that speak the
    ``/chat/completions`` protocol.
    """

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the custom provider.

        Args:
            settings: Settings to read endpoint and key from
            transport: Optional httpx transport, mainly for tests
        """
        self.settings = settings or default_settings
        self._transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Create the HTTP client lazily."""
        if self.client is None:
            self.validate_configuration()
            try:
                self.client = httpx.AsyncClient(
                    base_url=self.settings.custom_base_url,
                    timeout=httpx.Timeout(self.settings.llm_timeout),
                    headers={
                        "Content-Type": "application/json",
                        "Authorization": f"Bearer {self.settings.custom_api_key}"
                    },
                    transport=self._transport
                )
            except Exception as e:
                raise ConfigurationError(f"Failed to initialize custom client: {str(e)}")
        return self.client

    @property
    def provider_name(self) -> str:
        """Get the provider name."""
        return "Custom LLM API"

    def validate_configuration(self) -> None:
        """Validate custom API configuration."""
        if not self.settings.custom_api_key:
            raise ConfigurationError("Custom API key is required")

        if not self.settings.custom_base_url:
            raise ConfigurationError("Custom base URL is required")

    async def complete(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float,
        max_tokens: int,
        json_format: bool = False
    ) -> ProviderResponse:
        """Run one completion against the custom endpoint."""
        client = self._get_client()

        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "stream": False,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_format:
            payload["response_format"] = {"type": "json_object"}

        try:
            response = await client.post("/chat/completions", json=payload)
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 429:
                raise RateLimitError(f"Custom API rate limit exceeded: {str(e)}")
            if status == 402:
                raise QuotaExceededError(f"Custom API quota exceeded: {str(e)}")
            raise ProviderError(f"Custom API HTTP error {status}: {str(e)}", status_code=status)
        except httpx.RequestError as e:
            raise ProviderError(f"Custom API request error: {str(e)}")
        except ValueError as e:
            raise ProviderError(f"Custom API returned invalid JSON: {str(e)}")

        if "choices" not in result or not result["choices"]:
            raise ProviderError("No choices in API response")

        content = result["choices"][0].get("message", {}).get("content")
        if not content:
            raise ProviderError("Empty response from custom API")

        usage = result.get("usage") or {}
        return ProviderResponse(
            content=content,
            model=result.get("model") or model,
            total_tokens=int(usage.get("total_tokens") or 0)
        )

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self.client is not None:
            await self.client.aclose()
            self.client = None
