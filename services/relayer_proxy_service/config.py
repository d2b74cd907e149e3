"""
Configuration for Relayer Proxy Service.

Uses Pydantic settings for environment-based configuration. The relayer
upstream is resolved once per process and handed to the forwarder through
the DI container, so forwarding logic never reads the environment itself.
"""

from __future__ import annotations

from enum import Enum

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RELAYER_URL = "https://amused-kameko-veridex-demo-37453117.koyeb.app"


class Environment(str, Enum):
    """Defines application environments."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """Configuration settings for Relayer Proxy Service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="RELAYER_PROXY_",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )

    # Service identity
    SERVICE_NAME: str = "relayer-proxy-service"

    ENVIRONMENT: Environment = Field(
        default=Environment.PRODUCTION,
        validation_alias=AliasChoices("ENVIRONMENT", "RELAYER_PROXY_ENVIRONMENT"),
        description="Runtime environment for the service",
    )

    # HTTP server configuration
    HTTP_HOST: str = Field(default="0.0.0.0", description="HTTP server host")
    HTTP_PORT: int = Field(default=3000, description="HTTP server port")

    # Logging configuration
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    # CORS configuration for the browser front end
    CORS_ORIGINS: list[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins for the web front end",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(
        default=True, description="Allow credentials in CORS requests"
    )
    CORS_ALLOW_METHODS: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        description="Allowed HTTP methods for CORS",
    )
    CORS_ALLOW_HEADERS: list[str] = Field(
        default=["*"], description="Allowed headers for CORS requests"
    )

    # Relayer upstream
    RELAYER_URL: str = Field(
        default=DEFAULT_RELAYER_URL,
        description="Relayer backend base URL (server-side only, never sent to the browser)",
        validation_alias=AliasChoices("RELAYER_BACKEND_URL", "NEXT_PUBLIC_RELAYER_URL"),
    )
    RELAYER_API_PREFIX: str = Field(
        default="api/v1", description="Versioned API prefix of the relayer REST API"
    )

    # HTTP Client Timeouts
    RELAYER_TIMEOUT_SECONDS: float = Field(
        default=30.0, description="Deadline for one relayer call, including the response read"
    )
    HTTP_CLIENT_CONNECT_TIMEOUT_SECONDS: float = 10.0

    @field_validator("RELAYER_URL")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("RELAYER_API_PREFIX")
    @classmethod
    def _strip_prefix_slashes(cls, value: str) -> str:
        return value.strip("/")

    def is_development(self) -> bool:
        return self.ENVIRONMENT == Environment.DEVELOPMENT

    def is_production(self) -> bool:
        return self.ENVIRONMENT == Environment.PRODUCTION


# Global settings instance
settings = Settings()
