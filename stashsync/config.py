"""Configuration management for the stashsync engine."""

from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="STASHSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Remote shared store
    remote_url: str = Field("http://localhost:8080", description="Base URL of the shared record store")
    remote_api_key: Optional[SecretStr] = Field(None, description="Bearer token for the shared record store")
    remote_timeout_seconds: float = Field(10.0, description="Upper bound for any single remote call")
    request_retries: int = Field(2, description="Retries for failed HTTP requests")
    retry_delay_ms: int = Field(500, description="Delay between HTTP retries")
    poll_interval_seconds: float = Field(5.0, description="Polling interval for live updates over HTTP")

    # Propagation
    debounce_ms: int = Field(500, description="Quiet period before local edits are pushed")
    auto_push: bool = Field(True, description="Push local edits automatically after the quiet period")

    # Sessions
    access_code_length: int = Field(6, description="Length of generated access codes")

    # Local durable cache
    cache_path: str = Field("~/.stashsync/replica.json", description="Path of the local replica cache")

    # Logging
    log_level: str = Field("INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    log_json: bool = Field(False, description="Render logs as JSON")


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
