"""Application configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MODEL_CHAIN = (
    "gemini-3-pro-preview,"
    "gemini-3-flash-preview,"
    "gemini-2.5-pro,"
    "gemini-2.5-flash,"
    "gemini-2.5-flash-lite,"
    "gemini-2.0-flash"
)


class Settings(BaseSettings):
    """Environment-driven settings validated at startup."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    llm_backend: Literal["gemini", "openrouter"] = Field(default="gemini", alias="LLM_BACKEND")
    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_BASE_URL",
    )
    openrouter_api_key: str = Field(default="", alias="OPENROUTER_API_KEY")
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        alias="OPENROUTER_BASE_URL",
    )
    # Comma-separated, most preferred first.
    fallback_models: str = Field(default=DEFAULT_MODEL_CHAIN, alias="MODEL_CHAIN")
    database_path: Path = Field(default=Path("jobtrack.db"), alias="DATABASE_PATH")
    user_id: str = Field(default="local", alias="JOBTRACK_USER_ID")
    request_timeout_seconds: float = Field(default=60.0, alias="REQUEST_TIMEOUT_SECONDS")
    insights_refresh_days: int = Field(default=7, alias="INSIGHTS_REFRESH_DAYS")
    insights_max_applications: int = Field(default=50, alias="INSIGHTS_MAX_APPLICATIONS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


def load_settings() -> Settings:
    """Load and validate settings."""

    return Settings()


def model_chain(settings: Settings) -> tuple[str, ...]:
    """Return the ordered model fallback chain.

    Blank entries are dropped and duplicates keep their first position.
    """
    seen: dict[str, None] = {}
    for name in settings.fallback_models.split(","):
        name = name.strip()
        if name:
            seen.setdefault(name, None)
    return tuple(seen)
