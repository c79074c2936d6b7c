"""
Isolation Guard

Reconciles the tenant a request asks for with the tenant its token was issued
for, and builds the request's TenantContext. Every failure here is
fail-closed: no handler runs unless the guard returns a context.
"""

from dataclasses import dataclass

from structlog import get_logger

from ..auth.security import TokenClaims
from ..errors import ConflictingTenantSignal, TenantMismatch, TenantNotFound, UnknownTenant
from ..tenant_management.models import Tenant
from ..tenant_management.registry import TenantRegistry
from .tenant_context import TenantContext
from .tenant_resolver import Conflict, Resolution

logger = get_logger()


@dataclass(frozen=True)
class IsolationResult:
    """Context for the request plus the tenant record it was checked against."""

    context: TenantContext
    tenant: Tenant


class IsolationGuard:
    """Gate between authentication and every tenant-scoped handler."""

    def __init__(self, registry: TenantRegistry):
        self.registry = registry

    async def establish(self, claims: TokenClaims, resolution: Resolution) -> IsolationResult:
        """
        Build the tenant context for a request.

        Args:
            claims: Verified token claims
            resolution: Tenant resolver output

        Returns:
            IsolationResult with the immutable context

        Raises:
            ConflictingTenantSignal: If transport signals disagree
            TenantMismatch: If the token belongs to another tenant
            UnknownTenant: If the tenant has no registry record
            DependencyUnavailable: If the registry cannot be reached
        """
        if isinstance(resolution, Conflict):
            raise ConflictingTenantSignal(
                "Request identifies different tenants via "
                + ", ".join(source.value for source in resolution.sources)
            )

        if claims.tenant_id != resolution.tenant_id:
            logger.warning(
                "tenant_mismatch",
                token_tenant=claims.tenant_id,
                request_tenant=resolution.tenant_id,
                source=resolution.source.value,
                user_id=claims.user_id,
            )
            raise TenantMismatch()

        try:
            tenant = await self.registry.get(resolution.tenant_id)
        except TenantNotFound:
            logger.warning("unknown_tenant", tenant_id=resolution.tenant_id, user_id=claims.user_id)
            raise UnknownTenant()

        context = TenantContext(
            tenant_id=tenant.tenant_id,
            resolution_source=resolution.source,
            user_id=claims.user_id,
            roles=claims.roles,
        )
        return IsolationResult(context=context, tenant=tenant)
