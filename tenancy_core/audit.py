"""
Tenant Audit Logging

Audit trail for administrative changes to tenant records. Entries are written
through a tenant-scoped collection so an entry can only ever land under the
tenant that made the change.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import BaseModel, Field
from structlog import get_logger

from .shared_services.scoped_collection import TenantScopedCollection
from .shared_services.tenant_context import TenantContext
from .tenant_management.models import Tenant, utcnow

logger = get_logger()


class TenantAuditEntry(BaseModel):
    """Audit log entry for a tenant record change."""

    entry_id: str = Field(default_factory=lambda: str(uuid4()))
    tenant_id: str
    user_id: str
    action: str
    changed_fields: list[str] = Field(default_factory=list)
    revision: int
    theme_version: Optional[int] = None
    resolution_source: str
    recorded_at: datetime = Field(default_factory=utcnow)


class TenantAuditService:
    """Service for recording tenant audit entries."""

    def __init__(self, collection: Optional[AsyncIOMotorCollection] = None):
        """
        Initialize audit service.

        Args:
            collection: Optional audit collection; without one entries only go to the log
        """
        self.collection = collection

    async def record_update(
        self,
        context: TenantContext,
        tenant: Tenant,
        changed_fields: list[str],
    ) -> Optional[TenantAuditEntry]:
        """
        Record an update to the caller's tenant.

        Skipped when the tenant has audit logging switched off.
        """
        if not tenant.settings.audit_logging:
            return None

        entry = TenantAuditEntry(
            tenant_id=context.tenant_id,
            user_id=context.user_id,
            action="tenant.update",
            changed_fields=sorted(changed_fields),
            revision=tenant.revision,
            theme_version=tenant.theme.version if tenant.theme else None,
            resolution_source=context.resolution_source.value,
        )

        logger.info("tenant_audit", **entry.model_dump(mode="json"))

        if self.collection is not None:
            scoped = TenantScopedCollection(self.collection, context)
            await scoped.insert_one(entry.model_dump())

        return entry
