"""
Tenant Administration Service

The write path used by tenant admin endpoints. A registry update and the
matching theme cache invalidation happen in one operation, in that order, so
no response ever reflects a write the cache has not seen. The audit entry
is written after the update has committed and is best-effort: an audit
store outage is logged and does not fail the request.
"""

from typing import Optional

from structlog import get_logger

from ..audit import TenantAuditService
from ..errors import DependencyUnavailable
from ..shared_services.tenant_context import TenantContext
from ..shared_services.theme_cache import ThemeCache
from .models import Tenant
from .registry import TenantRegistry
from .schema import TenantUpdateRequest

logger = get_logger()


class TenantAdminService:
    """Coordinates registry writes with cache invalidation and auditing."""

    def __init__(
        self,
        registry: TenantRegistry,
        theme_cache: ThemeCache,
        audit_service: Optional[TenantAuditService] = None,
    ):
        self.registry = registry
        self.theme_cache = theme_cache
        self.audit_service = audit_service

    async def update_tenant(self, context: TenantContext, patch: TenantUpdateRequest) -> Tenant:
        """
        Update the caller's tenant.

        Args:
            context: Request tenant context
            patch: Partial update

        Returns:
            The updated tenant
        """
        tenant = await self.registry.update(context.tenant_id, patch, context)
        self.theme_cache.invalidate(context.tenant_id)

        if self.audit_service is not None:
            try:
                await self.audit_service.record_update(context, tenant, sorted(patch.model_fields_set))
            except DependencyUnavailable as e:
                logger.error(
                    "tenant_audit_write_failed",
                    tenant_id=context.tenant_id,
                    user_id=context.user_id,
                    revision=tenant.revision,
                    error=e.message,
                )

        return tenant
