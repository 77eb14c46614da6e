"""Configuration for the backend using pydantic-settings."""

from functools import lru_cache
from pathlib import Path

from loguru import logger
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _PACKAGE_DIR.parent.parent  # src/ashteams_chat/ → project root

OBSERVABILITY_MODES = ("off", "otel")


class Settings(BaseSettings):
    """All backend settings, loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ------------------------------------------------------------------
    # Completion provider (OpenRouter, OpenAI-compatible)
    # ------------------------------------------------------------------
    openrouter_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("openrouter_api_key", "openrouter_key"),
    )
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    completion_model: str = "microsoft/phi-4"
    completion_temperature: float = 0.7
    completion_max_tokens: int = 2048
    completion_timeout_seconds: float = 60.0

    # Sent as outbound request metadata only
    site_url: str = "http://localhost:5000"
    site_title: str = "Ashteams AI"

    # ------------------------------------------------------------------
    # Persona presented to users instead of the underlying model
    # ------------------------------------------------------------------
    persona_name: str = "Ashteams AI"
    persona_owner: str = "Ashteams"
    underlying_model_label: str = "Microsoft Phi-4"

    # ------------------------------------------------------------------
    # Auth (JWT in an HTTP-only cookie, or Authorization: Bearer)
    # ------------------------------------------------------------------
    jwt_secret: str = "dev-secret-change-in-production!!"
    jwt_expiry_hours: int = 24
    auth_cookie_name: str = "ashteams_session"
    auth_cookie_secure: bool = False

    # ------------------------------------------------------------------
    # HTTP / logging
    # ------------------------------------------------------------------
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"
    log_json: bool = False

    # ------------------------------------------------------------------
    # Observability — set OBSERVABILITY=otel to emit traces
    # ------------------------------------------------------------------
    observability: str = "off"
    otel_service_name: str = "ashteams-chat-backend"
    otel_exporter_otlp_endpoint: str = "http://localhost:4318"
    otel_console_exporter: bool = False

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------
    def validate_runtime(self) -> None:
        """Check settings that only matter once the server is actually starting.

        Call this at application startup (not at import time) so that
        tests can override settings before validation runs.
        """
        if not self.jwt_secret:
            raise ValueError("JWT_SECRET must not be empty.")
        if self.observability.lower() not in OBSERVABILITY_MODES:
            raise ValueError(
                f"Unknown OBSERVABILITY mode '{self.observability}'. "
                f"Expected one of: {', '.join(OBSERVABILITY_MODES)}."
            )
        if not self.openrouter_api_key:
            logger.warning(
                "OpenRouter API key not found. Set OPENROUTER_API_KEY; "
                "AI replies will fall back to the apology message."
            )


@lru_cache
def get_settings() -> Settings:
    """Return the cached Settings singleton."""
    return Settings()
