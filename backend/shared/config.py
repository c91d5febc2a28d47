"""
Central configuration for the event verifier.
Uses pydantic-settings for env-based config with validation.
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Root settings shared across the verifier and its callers."""

    model_config = SettingsConfigDict(
        env_prefix="EV_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── General ──────────────────────────────────────────────
    environment: Environment = Environment.DEV
    log_level: str = "INFO"
    instance_id: str = Field(default="", description="Unique pod/container ID for log context")

    # ── Provider HTTP ────────────────────────────────────────
    provider_request_timeout_s: float = 10.0
    provider_max_retries: int = 2

    # ── Provider credentials ─────────────────────────────────
    # Bare names are accepted so existing deployments keep working.
    eventbrite_token: str = Field(
        default="",
        validation_alias=AliasChoices("ev_eventbrite_token", "eventbrite_token"),
    )
    ticketmaster_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("ev_ticketmaster_api_key", "ticketmaster_api_key"),
    )
    meetup_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("ev_meetup_api_key", "meetup_api_key"),
    )
    google_places_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("ev_google_places_api_key", "google_places_api_key"),
    )

    # ── Observability ────────────────────────────────────────
    metrics_enabled: bool = True
    metrics_port: int = 9090

    @property
    def configured_sources(self) -> list[str]:
        """Names of providers with a non-empty credential, for logging only."""
        keys = {
            "eventbrite": self.eventbrite_token,
            "ticketmaster": self.ticketmaster_api_key,
            "meetup": self.meetup_api_key,
            "google": self.google_places_api_key,
        }
        return [name for name, key in keys.items() if key.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton access to validated settings."""
    return Settings()
