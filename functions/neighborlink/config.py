"""
Configuration and settings for the NeighborLink API service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    site_origin: str = Field(default="http://localhost:5173")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Database (Postgres expected)
    database_url: Optional[str] = Field(default=None)

    # Backend-as-a-Service auth endpoint
    baas_url: Optional[str] = Field(default=None)
    baas_anon_key: Optional[str] = Field(default=None)
    baas_service_role_key: Optional[str] = Field(default=None)

    # Payments
    stripe_secret_key: Optional[str] = Field(default=None)
    stripe_webhook_secret: Optional[str] = Field(default=None)
    stripe_api_version: str = Field(default="2023-10-16")
    default_currency: str = Field(default="ngn")

    # Delivery providers
    twilio_account_sid: Optional[str] = Field(default=None)
    twilio_auth_token: Optional[str] = Field(default=None)
    twilio_from_number: Optional[str] = Field(default=None)
    resend_api_key: Optional[str] = Field(default=None)
    email_from: str = Field(default="NeighborLink <notifications@neighborlink.ng>")
    api_team_email: str = Field(default="api-team@neighborlink.com")
    fcm_server_key: Optional[str] = Field(default=None)
    provider_timeout_seconds: float = Field(default=10.0)

    # S3-compatible storage for media and exports
    storage_bucket: Optional[str] = Field(default=None)
    storage_region: Optional[str] = Field(default=None)
    storage_endpoint: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Queue, realtime and presence (Redis)
    redis_url: Optional[str] = Field(default=None)
    redis_queue_key: str = Field(default="neighborlink:jobs")
    presence_window_seconds: int = Field(default=120)

    # Offline snapshot cache
    offline_cache_capacity_bytes: int = Field(default=5 * 1024 * 1024)

    # Escalation processing
    escalation_batch_size: int = Field(default=50)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
