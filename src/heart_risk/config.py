"""
Runtime configuration for the Heart Risk API.

Settings are read from environment variables prefixed with ``HEART_RISK_``
(and from an optional ``.env`` file) using Pydantic Settings.

Notes
-----
- ``cad_noise_seed`` pins the CAD noise generator so that every response is
  repeatable; leave it unset in production to keep the perturbation random.
- ``usage_log_file`` enables the per-call usage log on disk.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="HEART_RISK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Heart Health Predictor & Arrhythmia Classifier"
    app_version: str = "0.1.0"

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    usage_log_file: Optional[str] = Field(default=None, description="Append usage lines to this file")

    # CAD noise
    cad_noise_seed: Optional[int] = Field(default=None, description="Seed for the CAD noise generator")
    cad_noise_amplitude: float = Field(default=5.0, ge=0.0, description="Half-width of the CAD noise band")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
