"""
Configuration management module using Pydantic Settings.

This module provides type-safe configuration management with environment variable
support and validation for the ProjectHub AI services.
"""

import os
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    All settings can be overridden via environment variables with the same name.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # LLM Provider Settings
    llm_provider: Literal["groq", "custom"] = Field(
        default="groq",
        description="LLM provider to use"
    )
    groq_api_key: str = Field(
        default="",
        description="Groq API key for LLM access"
    )
    groq_base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        description="OpenAI-compatible Groq endpoint"
    )
    custom_api_key: Optional[str] = Field(
        default=None,
        description="Custom OpenAI-compatible API key"
    )
    custom_base_url: Optional[str] = Field(
        default=None,
        description="Custom OpenAI-compatible API base URL"
    )
    llm_timeout: int = Field(
        default=30,
        ge=5,
        le=300,
        description="Timeout for a single provider call in seconds"
    )

    # Model Selection
    primary_model: str = Field(
        default="llama-3.3-70b-versatile",
        description="Higher-quality model tried first"
    )
    fallback_model: str = Field(
        default="llama-3.1-8b-instant",
        description="Faster model used when the primary fails or is rate limited"
    )
    default_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Default sampling temperature"
    )
    default_max_tokens: int = Field(
        default=3000,
        ge=16,
        le=8192,
        description="Default max tokens for the primary model"
    )
    fallback_max_tokens: int = Field(
        default=2000,
        ge=16,
        le=8192,
        description="Reduced max tokens for the fallback model"
    )
    json_response_format: bool = Field(
        default=True,
        description="Request strict JSON output unless the caller disables it"
    )

    # Rate Limits (per process)
    requests_per_minute: int = Field(
        default=25,
        ge=1,
        le=10000,
        description="Primary model request budget per rolling minute"
    )
    tokens_per_minute: int = Field(
        default=15000,
        ge=1,
        description="Token budget per rolling minute"
    )

    # Retry / Backoff
    retry_delay_ms: int = Field(
        default=1500,
        ge=0,
        le=60000,
        description="Delay before the fallback model call in milliseconds"
    )
    rate_limit_backoff_ms: int = Field(
        default=2000,
        ge=0,
        le=60000,
        description="Wait after a rate-limit failure before falling back"
    )
    quota_backoff_ms: int = Field(
        default=1000,
        ge=0,
        le=60000,
        description="Wait after a quota failure before falling back"
    )
    generic_backoff_ms: int = Field(
        default=1000,
        ge=0,
        le=60000,
        description="Wait after a generic primary failure before falling back"
    )

    # Concurrency
    max_concurrent_requests: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum concurrent provider calls"
    )

    # Credits
    daily_credit_limit: float = Field(
        default=50,
        ge=0,
        description="Credits granted on each daily reset"
    )
    long_message_threshold: int = Field(
        default=500,
        ge=1,
        description="Message length at which a non-coding turn costs a full credit"
    )

    # Chat History
    chat_history_limit: int = Field(
        default=100,
        ge=2,
        le=1000,
        description="Maximum stored messages per user"
    )
    chat_context_window: int = Field(
        default=20,
        ge=0,
        le=200,
        description="Saved messages replayed to the model"
    )
    client_history_window: int = Field(
        default=10,
        ge=0,
        le=200,
        description="Client-supplied messages used when nothing is saved"
    )

    # Storage
    storage_backend: Literal["memory", "sqlite"] = Field(
        default="memory",
        description="Persistence backend for credits and chat history"
    )
    database_path: str = Field(
        default=".projecthub/projecthub.db",
        description="SQLite database path"
    )
    cache_dir: str = Field(
        default=".projecthub/cache",
        description="Directory for the task help cache"
    )
    help_cache_size_limit: int = Field(
        default=64 * 1024 * 1024,
        ge=1024,
        description="Size limit in bytes for the task help cache"
    )

    # Content Safety
    safety_rules_path: Optional[str] = Field(
        default=None,
        description="YAML file overriding the bundled classifier rules"
    )

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: Literal["structured", "simple"] = Field(
        default="structured",
        description="Log format type"
    )
    sanitize_logs: bool = Field(
        default=True,
        description="Sanitize sensitive information from logs"
    )

    @field_validator("cache_dir", "database_path")
    @classmethod
    def normalize_path(cls, v: str) -> str:
        """Ensure storage paths are normalized."""
        return os.path.normpath(v)

    @field_validator("fallback_model")
    @classmethod
    def validate_fallback_model(cls, v: str, info) -> str:
        """Ensure the fallback model is a distinct tier."""
        if "primary_model" in info.data and v == info.data["primary_model"]:
            raise ValueError("Fallback model must differ from the primary model")
        return v


# Global settings instance
settings = Settings()
