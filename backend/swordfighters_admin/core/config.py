"""
Centralized configuration management using Pydantic Settings.

Settings are loaded from environment variables and an optional .env file.
Relying-party identity and the allowed origin differ between development
and production; both can be overridden explicitly.
"""

import json
from typing import Annotated, List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEVELOPMENT_RP_ID = "localhost"
DEVELOPMENT_ORIGIN = "http://localhost:3002"
PRODUCTION_RP_ID = "swordfighters.com"
PRODUCTION_ORIGIN = "https://admin.swordfighters.com"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Secrets should never be committed to code - use .env file (gitignored).
    """

    environment: Literal["development", "test", "production"] = Field(
        default="development",
        description="Deployment environment; controls error detail exposure and WebAuthn defaults"
    )

    # API Configuration
    api_prefix: str = Field(
        default="/api/admin",
        description="Prefix for all admin API endpoints"
    )
    project_name: str = Field(
        default="Swordfighters Admin API",
        description="Project name displayed in API docs"
    )
    host: str = Field(
        default="127.0.0.1",
        description="Interface the bundled uvicorn server binds to"
    )
    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port the bundled uvicorn server listens on"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/admin.db",
        description="Database connection URL (SQLite for development, PostgreSQL in production)"
    )
    db_create_all: bool = Field(
        default=False,
        description="Create tables on startup instead of relying on migrations"
    )

    # WebAuthn relying party
    rp_name: str = Field(
        default="Swordfighters Admin",
        description="Relying party name shown by authenticators"
    )
    rp_id: Optional[str] = Field(
        default=None,
        description="Relying party ID (domain); defaults depend on environment"
    )
    origin: Optional[str] = Field(
        default=None,
        description="Expected origin of WebAuthn responses; defaults depend on environment"
    )
    challenge_ttl_seconds: int = Field(
        default=300,
        gt=0,
        description="Lifetime of an issued ceremony challenge (5 minutes)"
    )
    webauthn_timeout_ms: int = Field(
        default=60000,
        gt=0,
        description="Ceremony timeout hint sent to the browser"
    )

    # Sessions
    secret_key: str = Field(
        ...,
        description="Secret key for session token signing (generate with: openssl rand -hex 32)"
    )
    session_cookie_name: str = Field(
        default="admin_session",
        description="Name of the session cookie"
    )
    session_expire_minutes: int = Field(
        default=60 * 24 * 7,
        gt=0,
        description="Session lifetime in minutes (default: 7 days)"
    )

    # CORS Configuration
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default=[DEVELOPMENT_ORIGIN],
        description="Allowed CORS origins (admin frontend URLs)"
    )

    # Challenge janitor
    janitor_enabled: bool = Field(
        default=True,
        description="Run the periodic expired-challenge sweep"
    )
    janitor_interval_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Seconds between janitor sweeps"
    )

    # Rate limiting
    rate_limit_enabled: bool = Field(
        default=True,
        description="Enable per-IP rate limiting"
    )
    ceremony_rate_limit: int = Field(
        default=10,
        gt=0,
        description="Requests per minute for WebAuthn ceremony endpoints"
    )
    default_rate_limit: int = Field(
        default=60,
        gt=0,
        description="Requests per minute for other endpoints"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=True, description="Emit JSON log lines")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def session_cookie_secure(self) -> bool:
        return self.is_production

    @model_validator(mode="after")
    def apply_relying_party_defaults(self) -> "Settings":
        """
        Fill RP ID and origin from the environment when not set explicitly.
        """
        if not self.rp_id:
            self.rp_id = PRODUCTION_RP_ID if self.is_production else DEVELOPMENT_RP_ID
        if not self.origin:
            self.origin = PRODUCTION_ORIGIN if self.is_production else DEVELOPMENT_ORIGIN
        return self

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | List[str]) -> List[str]:
        """
        Parse cors_origins from JSON string or list.

        Supports comma-separated origins for easier .env configuration.
        """
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("origin")
    @classmethod
    def validate_origin(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"ORIGIN must be an http(s) URL. Got: {v[:40]}")
        return v

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """
        Validate that secret_key is properly configured.

        Raises ValueError if still using placeholder value or too short.
        Session tokens must be signed with at least 32 characters of key material.
        """
        if not v or v.strip() == "":
            raise ValueError(
                "SECRET_KEY is required and cannot be empty. "
                "Generate one with: openssl rand -hex 32"
            )
        if v in ["generate-with-openssl-rand-hex-32", "CHANGE_ME_32_CHARS_MIN", "your-secret-key-here"]:
            raise ValueError(
                "SECRET_KEY must be set to a secure random value (not placeholder). "
                "Generate one with: openssl rand -hex 32"
            )
        if len(v) < 32:
            raise ValueError(
                f"SECRET_KEY must be at least 32 characters long for security. "
                f"Current length: {len(v)}. Generate with: openssl rand -hex 32"
            )
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """
        Validate database URL format.

        Supports SQLite (development, tests) and PostgreSQL (production).
        """
        if not v or v.strip() == "":
            raise ValueError("DATABASE_URL is required and cannot be empty")

        valid_schemes = ["sqlite+aiosqlite", "postgresql+asyncpg"]
        if not any(v.startswith(scheme + "://") for scheme in valid_schemes):
            raise ValueError(
                f"DATABASE_URL must start with one of: {', '.join(valid_schemes)}. "
                f"Got: {v[:20]}..."
            )
        return v


# Global settings instance
# Import this instance throughout the application
settings = Settings()
