"""
Verifier service configuration.
Uses EV_VERIFIER_ prefix; provider credentials live on the root Settings.
"""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class VerifierSettings(BaseSettings):
    """Verifier-specific settings; use get_settings() for provider credentials."""

    model_config = SettingsConfigDict(
        env_prefix="EV_VERIFIER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Source fan-out
    source_timeout_s: float = Field(default=10.0, description="Upper bound for one source fetch, retries included")
    default_radius_km: int = Field(default=50, description="Search radius when the caller gives none")

    # Fallback search for low-scoring candidates
    fallback_search_enabled: bool = Field(default=True, description="Run a targeted search for unverified candidates")
    fallback_window_hours: int = Field(default=24, description="Half-width of the fallback search window")


def get_verifier_settings() -> VerifierSettings:
    """Load verifier settings."""
    return VerifierSettings()
