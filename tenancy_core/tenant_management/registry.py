"""
Tenant Registry

Canonical tenant lookups and updates. The registry re-asserts isolation on
every write instead of trusting callers: the requesting context must belong
to the tenant being updated.
"""

import asyncio
from collections import defaultdict
from typing import Any, Optional

from pydantic import ValidationError
from structlog import get_logger

from ..errors import FeatureDisabled, InvalidTenantSettings, TenantMismatch, TenantNotFound
from ..shared_services.tenant_context import TenantContext
from .db_service import TenantStore
from .models import DEFAULT_THEME, Tenant, TenantSettings, Theme, utcnow
from .schema import ThemePatch, TenantUpdateRequest

logger = get_logger()


def merge_settings(current: TenantSettings, patch: dict[str, Any]) -> TenantSettings:
    """
    Apply a settings patch, rejecting unrecognized keys.

    Raises:
        InvalidTenantSettings: On unknown keys or invalid values
    """
    try:
        return TenantSettings(**{**current.model_dump(), **patch})
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise InvalidTenantSettings(f"Invalid tenant settings: {problems}")


def apply_theme_patch(current: Optional[Theme], patch: ThemePatch) -> Theme:
    """Build the next theme version from the current one and a partial update."""
    base = current or DEFAULT_THEME
    merged = base.model_dump()

    changes = patch.model_dump(exclude_unset=True)
    for key, value in changes.items():
        # null colors/typography leave the current values alone
        if value is None and isinstance(merged[key], dict):
            continue
        if isinstance(value, dict):
            merged[key] = {**merged[key], **{k: v for k, v in value.items() if v is not None}}
        else:
            merged[key] = value

    merged["version"] = base.version + 1 if current is not None else 1
    return Theme(**merged)


class TenantRegistry:
    """Reads and writes canonical tenant records."""

    def __init__(self, store: TenantStore):
        """
        Initialize tenant registry.

        Args:
            store: Backing tenant store
        """
        self.store = store
        # Updates are serialized per tenant; different tenants never wait on each other
        self._update_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get(self, tenant_id: str) -> Tenant:
        """
        Get tenant by ID.

        Raises:
            TenantNotFound: If no record exists
            DependencyUnavailable: If the store cannot be reached
        """
        tenant = await self.store.find_by_id(tenant_id)
        if tenant is None:
            raise TenantNotFound(f"Tenant '{tenant_id}' not found")
        return tenant

    async def get_for(self, context: TenantContext) -> Tenant:
        """Get the record of the tenant the request is acting as."""
        return await self.get(context.tenant_id)

    async def update(
        self,
        tenant_id: str,
        patch: TenantUpdateRequest,
        requesting_context: TenantContext,
    ) -> Tenant:
        """
        Apply a patch to a tenant record atomically.

        Args:
            tenant_id: Tenant to update
            patch: Partial update
            requesting_context: Context of the request performing the update

        Returns:
            The new tenant record

        Raises:
            TenantMismatch: If the context belongs to another tenant
            TenantNotFound: If no record exists
            InvalidTenantSettings: If the settings patch is not recognized
            FeatureDisabled: If the patch edits the theme while theme editing is off
        """
        if requesting_context.tenant_id != tenant_id:
            logger.warning(
                "registry_update_tenant_mismatch",
                context_tenant=requesting_context.tenant_id,
                target_tenant=tenant_id,
                user_id=requesting_context.user_id,
            )
            raise TenantMismatch("Cannot update another tenant's record")

        async with self._update_locks[tenant_id]:
            current = await self.get(tenant_id)
            updated = self._apply(current, patch)
            stored = await self.store.update_by_id_with_version_check(updated, current.revision)

        logger.info(
            "tenant_updated",
            tenant_id=tenant_id,
            user_id=requesting_context.user_id,
            revision=stored.revision,
            theme_version=stored.theme.version if stored.theme else None,
        )
        return stored

    def _apply(self, current: Tenant, patch: TenantUpdateRequest) -> Tenant:
        changes: dict[str, Any] = {}

        settings = current.settings
        if patch.settings is not None:
            settings = merge_settings(current.settings, patch.settings)
            changes["settings"] = settings

        if patch.touches_theme:
            # Checked against the settings in force after this patch
            if not settings.theme_editing:
                raise FeatureDisabled("Theme editing is disabled for this tenant")
            changes["theme"] = apply_theme_patch(current.theme, patch.theme)

        if patch.display_name is not None:
            changes["display_name"] = patch.display_name

        changes["updated_at"] = utcnow()
        changes["revision"] = current.revision + 1
        return current.model_copy(update=changes)
