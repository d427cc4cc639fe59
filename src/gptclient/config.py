"""Configuration management for the API client."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://api.openai.com/v1"


class ClientSettings(BaseSettings):
    """Pydantic-powered settings, read from ``OPENAI_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="OPENAI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_key: Optional[str] = Field(None, description="Secret key sent as a bearer token.")
    organization: Optional[str] = Field(
        None, description="Organization id sent in the OpenAI-Organization header."
    )
    engine: str = Field("davinci", description="Engine used when a call names none.")
    base_url: str = Field(DEFAULT_BASE_URL, description="API root every path is joined to.")
    timeout: float = Field(60.0, description="Socket timeout per request, in seconds.")
    max_prompt_tokens: Optional[int] = Field(
        None,
        description="Reject completion prompts longer than this many tokens before sending.",
    )
    log_level: str = Field(
        "WARNING", description="Logging level used by the CLI when --log-level is not given."
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("timeout")
    @classmethod
    def positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be positive.")
        return value

    @field_validator("max_prompt_tokens")
    @classmethod
    def positive_prompt_limit(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError("max_prompt_tokens must be a positive integer.")
        return value

    @field_validator("log_level")
    @classmethod
    def uppercase_log_level(cls, value: str) -> str:
        return value.upper()


def configure_logging(level: str = "WARNING") -> None:
    """Configure root logging; only entry points call this, never the library."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
