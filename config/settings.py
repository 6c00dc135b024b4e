"""Pydantic Settings: typed configuration with .env auto-loading."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    service_name: str = "study-stream"
    service_version: str = "0.1.0"
    service_port: int = 5000
    cors_origins: list[str] = ["*"]
    debug: bool = False

    # ── Generation service (upstream streams) ────────────────
    generation_base_url: str = "http://localhost:3000"
    generation_access_token: str = ""
    generation_connect_timeout: float = 15.0  # seconds
    generation_read_timeout: float = 300.0  # upstream allows 5 min per request


@lru_cache
def get_settings() -> Settings:
    """Singleton accessor for application settings."""
    return Settings()
