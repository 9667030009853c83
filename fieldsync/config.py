"""
Application configuration via environment variables.

Uses Pydantic BaseSettings to load and validate all config from env vars
or a .env.local file. Every setting has a sensible default for local
development so the app can start with minimal configuration.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment selector."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """
    Central configuration for the field sync service.

    Values are loaded from environment variables first, falling back
    to a `.env.local` file in the project root. Secrets should NEVER
    be committed; use `.env.example` as the template.
    """

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Environment ──────────────────────────────────────────────
    environment: Environment = Environment.DEVELOPMENT

    # ── Record Store (CRM) ───────────────────────────────────────
    crm_base_url: str = Field(
        default="https://services.leadconnectorhq.com",
        description="Base URL of the record store API",
    )
    crm_api_version: str = Field(default="2021-07-28", description="Value sent in the Version header")
    crm_location_id: str = Field(default="", description="Account/location whose custom fields are synced")
    crm_api_token: str = Field(default="", description="Bearer token for the record store (refreshed externally)")
    http_timeout_seconds: float = Field(default=15.0, ge=1.0, le=120.0, description="Per-request timeout")

    # ── Retries ──────────────────────────────────────────────────
    max_retry_attempts: int = Field(default=3, ge=0, le=10, description="Retries per record store call")
    retry_backoff_seconds: float = Field(default=0.5, ge=0.0, le=30.0, description="Base delay for exponential backoff")

    # ── Extraction ───────────────────────────────────────────────
    min_meaningful_fields: int = Field(
        default=3, ge=1, le=20,
        description="Coverage at which later extraction tiers are skipped",
    )
    text_max_length: int = Field(default=5000, ge=100, le=50000, description="Cap for text field values")

    # ── Field Names ──────────────────────────────────────────────
    memory_field_name: str = Field(default="Voice Memory", description="Append-style memory log field")
    booking_field_name: str = Field(default="Appointment Booked", description="Booking flag field")
    counter_field_name: str = Field(default="Call Attempt Counter", description="Call attempt counter field")
    field_aliases: dict[str, str] = Field(
        default_factory=dict,
        description="Extra semantic key -> schema display name aliases (JSON)",
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Root log level")

    # ── Derived helpers ──────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return cached Settings instance.

    Using lru_cache ensures we read env vars exactly once, and every
    module that calls ``get_settings()`` gets the same object.
    """
    return Settings()
