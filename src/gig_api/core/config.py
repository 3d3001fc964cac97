"""Runtime settings for the API, the CLI and the fraud interceptor.

Values come from the process environment (or a local ``.env``); field names
map case-insensitively onto variable names, e.g. ``FRAUD_BEHAVIOR_SAMPLE_RATE``.
"""

import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_SCHEMA_NAME = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")


def _split_csv(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings(BaseSettings):
    """Environment-backed configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    database_url: str = Field(description="Async SQLAlchemy URL, e.g. postgresql+asyncpg://user:pw@host/gig")
    database_schema: str | None = Field(
        default=None,
        description="Postgres schema placed first on the search_path (per-branch preview databases)",
    )

    # Tokens
    jwt_secret_key: str = Field(min_length=32, description="HMAC key for access and refresh tokens")
    jwt_algorithm: str = Field(default="HS256", description="Token signing algorithm")
    jwt_access_token_expire_minutes: int = Field(default=30, gt=0, description="Access token lifetime")
    jwt_refresh_token_expire_days: int = Field(default=7, gt=0, description="Refresh token lifetime")

    # Fraud detection
    fraud_detection_enabled: bool = Field(
        default=True,
        description="Run the fraud interceptor on guarded routes",
    )
    fraud_behavior_sample_rate: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Chance that a handled request is written to the audit log as behaviour telemetry",
    )
    fraud_high_value_amount: float = Field(
        default=50000.0,
        gt=0,
        description="Payments above this amount score as high value regardless of history",
    )
    fraud_escalation_enabled: bool = Field(
        default=True,
        description="Add to high-risk payment scores when the payer had a high-risk alert within the hour",
    )
    fraud_verified_dampening_enabled: bool = Field(
        default=False,
        description="Cap profile-update scores for identity-verified users below the challenge band",
    )

    # Observability
    log_level: str = Field(default="INFO", description="Minimum loguru level")
    log_dir: str | None = Field(default=None, description="Write a daily-rotated log file here when set")
    debug: bool = Field(default=False, description="Attach exception text to fail-open log records")
    environment: str = Field(default="production", description="Name reported by /health")

    # HTTP surface
    api_v1_prefix: str = Field(default="/api/v1", description="Mount point of the JSON API")
    cors_origins: str = Field(default="", description="Comma-separated origins allowed by CORS")
    trusted_proxy_headers: str = Field(
        default="CF-Connecting-IP,X-Forwarded-For,X-Real-IP",
        description="Comma-separated headers consulted, in order, for the real client address",
    )

    @field_validator("database_schema")
    @classmethod
    def check_schema_name(cls, v: str | None) -> str | None:
        if v is not None and not _SCHEMA_NAME.match(v):
            msg = f"database_schema {v!r} is not a plain lowercase identifier"
            raise ValueError(msg)
        return v

    @property
    def cors_origin_list(self) -> list[str]:
        return _split_csv(self.cors_origins)

    @property
    def trusted_proxy_header_list(self) -> list[str]:
        return _split_csv(self.trusted_proxy_headers)


def get_settings() -> Settings:
    """Load settings from the environment (used as a FastAPI dependency)."""
    return Settings()  # type: ignore[call-arg]
