"""LLM route configuration resolved from application settings."""
from __future__ import annotations

from typing import Dict, Literal

from pydantic import BaseModel, Field

from .settings import Settings

Provider = Literal["anthropic", "openai"]

ANTHROPIC_VERSION = "2023-06-01"


class ConfigurationError(RuntimeError):
    """Raised when the service is missing configuration it needs to run a request."""


class MissingApiKeyError(ConfigurationError):
    pass


class LlmRoute(BaseModel):
    """LLM endpoint configuration."""

    name: str
    provider: Provider
    base_url: str
    endpoint: str
    model: str
    api_key: str = Field(repr=False)
    timeout_s: float = Field(ge=0.1)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4096, ge=1)
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    sequential: bool = False


def resolve_route(cfg: Settings, *, name: str = "fit") -> LlmRoute:
    """Build the completion route from settings, preferring Anthropic over OpenAI.

    Raises:
        MissingApiKeyError: If neither provider has an API key configured.
    """

    common = {
        "name": name,
        "timeout_s": cfg.LLM_TIMEOUT_S,
        "temperature": cfg.LLM_TEMPERATURE,
        "max_tokens": cfg.LLM_MAX_TOKENS,
    }
    if cfg.ANTHROPIC_API_KEY:
        return LlmRoute(
            provider="anthropic",
            base_url=cfg.ANTHROPIC_BASE_URL.rstrip("/"),
            endpoint="/v1/messages",
            model=cfg.ANTHROPIC_MODEL,
            api_key=cfg.ANTHROPIC_API_KEY,
            extra_headers={"anthropic-version": ANTHROPIC_VERSION},
            **common,
        )
    if cfg.OPENAI_API_KEY:
        return LlmRoute(
            provider="openai",
            base_url=cfg.OPENAI_BASE_URL.rstrip("/"),
            endpoint="/v1/chat/completions",
            model=cfg.OPENAI_MODEL,
            api_key=cfg.OPENAI_API_KEY,
            **common,
        )
    raise MissingApiKeyError("Missing API key. Set ANTHROPIC_API_KEY or OPENAI_API_KEY.")
