"""
Tenant Provisioning Service

Creates tenant records at seed or onboarding time:
1. Validate settings against the recognized flags
2. Build the initial theme (version 1)
3. Insert the record into the tenant store
"""

from typing import Optional

from structlog import get_logger

from .db_service import TenantStore
from .models import Tenant, TenantSettings
from .registry import apply_theme_patch, merge_settings
from .schema import TenantCreateRequest, ThemePatch

logger = get_logger()


class TenantProvisioningService:
    """Service for provisioning new tenants."""

    def __init__(self, store: TenantStore):
        """
        Initialize provisioning service.

        Args:
            store: Tenant store new records are written to
        """
        self.store = store

    async def provision_tenant(
        self,
        request: TenantCreateRequest,
        created_by: Optional[str] = None,
    ) -> Tenant:
        """
        Provision a new tenant.

        Args:
            request: Tenant creation request
            created_by: User ID creating the tenant

        Returns:
            Provisioned tenant

        Raises:
            TenantAlreadyExists: If the tenant id is taken
            InvalidTenantSettings: If settings carry unknown keys
        """
        logger.info("starting_tenant_provisioning", tenant_id=request.tenant_id, created_by=created_by)

        settings = merge_settings(TenantSettings(), request.settings or {})
        theme = apply_theme_patch(None, request.theme or ThemePatch())

        tenant = Tenant(
            tenant_id=request.tenant_id,
            display_name=request.display_name,
            theme=theme,
            settings=settings,
        )

        tenant = await self.store.insert(tenant)
        logger.info("tenant_provisioned", tenant_id=tenant.tenant_id)
        return tenant
