"""
Configuration settings for Signed Proxy.
Uses pydantic-settings for environment variable management.
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Signed Proxy"
    app_version: str = "1.0.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 9090

    # Upstream
    upstream_base_url: str = Field(
        default="https://ji.luupi.net",
        description="Base URL of the remote clock/audit service"
    )
    access_path: str = "/652/access"
    clock_path: str = "/652/clock"
    audit_path: str = "/652/audit"
    request_timeout_seconds: float = Field(default=3.0, gt=0)

    # Signing
    shared_secret: str = Field(
        default="galumphing",
        description="Secret shared out-of-band with the upstream, never transmitted"
    )
    nonce_length: int = Field(default=18, ge=1)

    # Time sync
    time_sync_timeout: int = Field(default=250000, ge=0)
    poll_interval_seconds: float = Field(
        default=0.000005,
        ge=0,
        description="Tick between observe calls while begin is in flight"
    )

    # Audit log
    reset_on_fetch_failure: bool = Field(
        default=True,
        description="Advance the remote cursor even when the base or log fetch failed"
    )

    # CORS
    cors_origins: List[str] = ["*"]

    # Monitoring
    enable_metrics: bool = True
    metrics_path: str = "/metrics"

    # Logging
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
