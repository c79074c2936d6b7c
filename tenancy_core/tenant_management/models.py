"""
Tenant Data Models

Defines the canonical tenant record, its theme, and the closed set of
per-tenant settings. Records are immutable; every write replaces the whole
record so readers never see a half-applied patch.
"""

import re
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

TENANT_ID_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_hex_code(v: str) -> str:
    """Ensure colors are valid hex codes."""
    if not v.startswith("#") or len(v) not in [4, 7]:
        raise ValueError("Color must be a valid hex code (#RGB or #RRGGBB)")
    try:
        int(v[1:], 16)
    except ValueError:
        raise ValueError("Color must be a valid hex code (#RGB or #RRGGBB)")
    return v.upper()


class ThemeColors(BaseModel):
    """Brand colors."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    primary: str = Field(default="#4F46E5", description="Primary brand color (hex)")
    accent: str = Field(default="#10B981", description="Accent color (hex)")

    @field_validator("primary", "accent")
    @classmethod
    def validate_hex_color(cls, v: str) -> str:
        return validate_hex_code(v)


class Typography(BaseModel):
    """Font settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    font_family: str = Field(default="Inter", min_length=1, max_length=100)
    base_size_px: int = Field(default=16, ge=8, le=32)


class Theme(BaseModel):
    """
    Versioned tenant theme.

    A new version replaces the prior one as a whole.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: int = Field(default=1, ge=1)
    colors: ThemeColors = Field(default_factory=ThemeColors)
    logo_url: Optional[str] = Field(default=None, description="URL to tenant logo")
    typography: Typography = Field(default_factory=Typography)


DEFAULT_THEME = Theme()


class TenantSettings(BaseModel):
    """
    Recognized per-tenant feature flags.

    custom_branding: when False the theme cache serves the default theme.
    rate_limit_per_window: overrides the configured admission ceiling.
    audit_logging: when True admin updates are written to the audit trail.
    theme_editing: when False patches touching the theme are refused.

    Unknown keys are rejected.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    custom_branding: bool = True
    rate_limit_per_window: Optional[int] = Field(default=None, gt=0)
    audit_logging: bool = True
    theme_editing: bool = True


class Tenant(BaseModel):
    """
    Tenant model representing an isolated customer organization.

    Stored in the platform store; `revision` is the store-level
    optimistic concurrency counter.
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "tenant_id": "acme",
                "display_name": "Acme Corp",
                "theme": {"version": 1, "colors": {"primary": "#112233", "accent": "#445566"}},
                "settings": {"custom_branding": True},
            }
        },
    )

    tenant_id: str = Field(..., description="Unique tenant identifier")
    display_name: str = Field(..., min_length=1, max_length=100, description="Tenant display name")
    theme: Optional[Theme] = Field(default=None)
    settings: TenantSettings = Field(default_factory=TenantSettings)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    revision: int = Field(default=0, ge=0)
