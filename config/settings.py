"""Application settings and configuration management."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    ANTHROPIC_API_KEY: str | None = None
    ANTHROPIC_MODEL: str = "claude-sonnet-4-20250514"
    ANTHROPIC_BASE_URL: str = "https://api.anthropic.com"
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_BASE_URL: str = "https://api.openai.com"

    LLM_TIMEOUT_S: float = Field(default=40.0, ge=0.1)
    LLM_TEMPERATURE: float = Field(default=0.3, ge=0.0, le=2.0)
    LLM_MAX_TOKENS: int = Field(default=4096, ge=1)

    SESSION_TTL_MINUTES: int = Field(default=30, ge=1)
    SESSION_SWEEP_SECONDS: int = Field(default=300, ge=1)

    MIN_TURNS_BEFORE_REPORT: int = Field(default=3, ge=1)
    MAX_TURNS: int = Field(default=6, ge=1)
    NARROWING_TURNS: int = Field(default=2, ge=0)

    OPENING_CONTEXT_CHARS: int = Field(default=10_000, ge=0)
    TURN_CONTEXT_CHARS: int = Field(default=6_000, ge=0)
    REPORT_CONTEXT_CHARS: int = Field(default=8_000, ge=0)
    ASSESSMENT_INPUT_CHARS: int = Field(default=10_000, ge=1)

    MAX_START_TEXT_CHARS: int = 50_000
    UPLOAD_MAX_BYTES: int = 5 * 1024 * 1024

    ASSESSMENT_RATE_LIMIT: int = Field(default=5, ge=1)
    ASSESSMENT_RATE_WINDOW_S: int = Field(default=60, ge=1)

    CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["*"])

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
