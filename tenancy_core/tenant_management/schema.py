"""
Tenant Management API Schemas

Request and response models for tenant endpoints, plus the patch shapes the
registry applies.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import TENANT_ID_PATTERN, Tenant, TenantSettings, Theme, validate_hex_code


class ThemeColorsPatch(BaseModel):
    """Partial color update."""

    model_config = ConfigDict(extra="forbid")

    primary: Optional[str] = None
    accent: Optional[str] = None

    @field_validator("primary", "accent")
    @classmethod
    def validate_hex_color(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_hex_code(v)


class TypographyPatch(BaseModel):
    """Partial typography update."""

    model_config = ConfigDict(extra="forbid")

    font_family: Optional[str] = Field(default=None, min_length=1, max_length=100)
    base_size_px: Optional[int] = Field(default=None, ge=8, le=32)


class ThemePatch(BaseModel):
    """Partial theme update; unset fields keep their current value."""

    model_config = ConfigDict(extra="forbid")

    colors: Optional[ThemeColorsPatch] = None
    logo_url: Optional[str] = None
    typography: Optional[TypographyPatch] = None


class TenantUpdateRequest(BaseModel):
    """Request model for updating the caller's tenant."""

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "theme": {"colors": {"primary": "#0F172A"}},
                "settings": {"custom_branding": True},
            }
        },
    )

    display_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    theme: Optional[ThemePatch] = Field(default=None)
    # Validated against TenantSettings by the registry so unknown keys
    # surface as invalid_tenant_settings
    settings: Optional[dict[str, Any]] = Field(default=None)

    @property
    def touches_theme(self) -> bool:
        return "theme" in self.model_fields_set and self.theme is not None


class TenantCreateRequest(BaseModel):
    """Request model for provisioning a new tenant."""

    model_config = ConfigDict(extra="forbid")

    tenant_id: str = Field(..., min_length=1, max_length=63, description="Unique tenant identifier")
    display_name: str = Field(..., min_length=1, max_length=100, description="Tenant display name")
    theme: Optional[ThemePatch] = Field(default=None)
    settings: Optional[dict[str, Any]] = Field(default=None)

    @field_validator("tenant_id")
    @classmethod
    def validate_tenant_id(cls, v: str) -> str:
        """Tenant ids must be usable as a DNS label and a path segment."""
        v = v.strip().lower()
        if not TENANT_ID_PATTERN.match(v):
            raise ValueError("tenant_id must be lowercase letters, digits and hyphens (max 63)")
        return v


class ThemeResponse(BaseModel):
    """Response model for the effective theme of a tenant."""

    tenant_id: str
    theme: Theme


class TenantResponse(BaseModel):
    """Response model for tenant data."""

    tenant_id: str
    display_name: str
    theme: Optional[Theme]
    settings: TenantSettings
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_tenant(cls, tenant: Tenant) -> "TenantResponse":
        return cls(
            tenant_id=tenant.tenant_id,
            display_name=tenant.display_name,
            theme=tenant.theme,
            settings=tenant.settings,
            created_at=tenant.created_at,
            updated_at=tenant.updated_at,
        )
