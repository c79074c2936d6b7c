"""
Tenant Management Module

Tenant records, their persistence, provisioning and administration.
"""

from .models import Tenant, TenantSettings, Theme
from .schema import TenantCreateRequest, TenantResponse, TenantUpdateRequest, ThemePatch

__all__ = [
    "Tenant",
    "TenantSettings",
    "Theme",
    "TenantCreateRequest",
    "TenantUpdateRequest",
    "TenantResponse",
    "ThemePatch",
]
