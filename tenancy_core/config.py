"""
Tenancy Configuration Management

Centralizes configuration for tenant resolution, token verification,
admission limits, and the tenant store backend.
Values come from environment variables or a local .env file.
"""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Supported deployment environments."""

    LOCAL = "local"
    DEV = "dev"
    PROD = "prod"


class StoreBackend(str, Enum):
    """Backends for the tenant store."""

    MEMORY = "memory"
    MONGO = "mongo"


class TenancyConfig(BaseSettings):
    """
    Tenancy-layer configuration settings.

    Field names map to upper-case environment variables (JWT_SECRET_KEY,
    TENANT_BASE_DOMAIN, ...). The signing key has no usable default outside local.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Deployment
    environment: Environment = Field(default=Environment.LOCAL)

    # Tenant store
    store_backend: StoreBackend = Field(default=StoreBackend.MEMORY)
    platform_mongo_db_url: str = Field(default="mongodb://localhost:27017")
    platform_mongo_db_name: str = Field(default="tenancy_platform")
    audit_collection_name: str = Field(default="tenant_audit_log")

    # Redis (optional, shared rate windows across processes)
    redis_url: Optional[str] = Field(default=None)

    # Security
    jwt_secret_key: str = Field(default="change-me-in-production")
    jwt_algorithm: str = Field(default="HS256")
    jwt_leeway_seconds: int = Field(default=30, ge=0)

    # Tenant resolution
    tenant_header_name: str = Field(default="X-Tenant-Id")
    tenant_path_prefix: str = Field(default="/t/")
    tenant_base_domain: Optional[str] = Field(default=None)
    reserved_subdomains: str = Field(default="www,api,admin")
    tenant_strict_subdomain: bool = Field(default=False)

    # Admission
    rate_limit_window_seconds: int = Field(default=60)
    rate_limit_per_window: int = Field(default=100)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")  # console, json

    # CORS
    allowed_origins: str = Field(default="http://localhost:3000")

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_secret_key(cls, v: str, info) -> str:
        """Refuse the placeholder signing key outside local runs."""
        env = info.data.get("environment", Environment.LOCAL)
        if env != Environment.LOCAL and v == "change-me-in-production":
            raise ValueError("jwt_secret_key must be overridden outside the local environment")
        return v

    @field_validator("rate_limit_window_seconds", "rate_limit_per_window")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Admission window and ceiling must be positive."""
        if v <= 0:
            raise ValueError("rate limit window and ceiling must be positive")
        return v

    @field_validator("tenant_path_prefix")
    @classmethod
    def validate_path_prefix(cls, v: str) -> str:
        """Normalize the prefix to the form '/t/'."""
        v = "/" + v.strip("/") + "/"
        if v == "//":
            raise ValueError("tenant_path_prefix must not be empty")
        return v

    def get_allowed_origins_list(self) -> list[str]:
        """Comma-separated CORS origins as a list; anything goes locally."""
        if self.environment == Environment.LOCAL:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    def get_reserved_subdomains(self) -> frozenset[str]:
        """Parse reserved subdomain labels into a set."""
        return frozenset(
            label.strip().lower() for label in self.reserved_subdomains.split(",") if label.strip()
        )

    @property
    def is_production(self) -> bool:
        """True in the prod environment."""
        return self.environment == Environment.PROD

    @property
    def is_local(self) -> bool:
        """True for local runs."""
        return self.environment == Environment.LOCAL


@lru_cache()
def get_config() -> TenancyConfig:
    """
    Get cached tenancy configuration.

    Environment is read once per process; tests build TenancyConfig directly.
    """
    return TenancyConfig()
