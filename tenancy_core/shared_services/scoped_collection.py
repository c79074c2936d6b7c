"""
Tenant-Scoped Collection

Data-access wrapper that binds a motor collection to one TenantContext. Every
filter is constrained by the context's tenant_id and every written document
is stamped with it; anything naming another tenant is refused.
"""

from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError
from structlog import get_logger

from ..errors import DependencyUnavailable, TenantMismatch
from .tenant_context import TenantContext

logger = get_logger()

TENANT_KEY = "tenant_id"


class TenantScopedCollection:
    """Collection view that can only see one tenant's documents."""

    def __init__(self, collection: AsyncIOMotorCollection, context: TenantContext):
        self.collection = collection
        self.context = context

    @property
    def tenant_id(self) -> str:
        return self.context.tenant_id

    def scope_filter(self, filter: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Return the filter constrained to the context's tenant."""
        scoped = dict(filter or {})
        requested = scoped.get(TENANT_KEY, self.tenant_id)
        if requested != self.tenant_id:
            self._refuse("filter", requested)
        scoped[TENANT_KEY] = self.tenant_id
        return scoped

    def scope_document(self, document: dict[str, Any]) -> dict[str, Any]:
        """Return the document stamped with the context's tenant."""
        stamped = dict(document)
        owner = stamped.get(TENANT_KEY, self.tenant_id)
        if owner != self.tenant_id:
            self._refuse("document", owner)
        stamped[TENANT_KEY] = self.tenant_id
        return stamped

    def _scope_update(self, update: Any) -> dict[str, Any]:
        """
        Refuse any update that could change a document's tenant.

        Only `$set` of the context's own tenant may name the tenant key;
        aggregation-pipeline updates are refused outright.
        """
        if not isinstance(update, dict):
            self._refuse("update", "<pipeline>")

        for operator, fields in update.items():
            if not operator.startswith("$") or not isinstance(fields, dict):
                self._refuse("update", operator)
            if TENANT_KEY in fields:
                if operator != "$set" or fields[TENANT_KEY] != self.tenant_id:
                    self._refuse("update", fields[TENANT_KEY])
            if operator == "$rename" and TENANT_KEY in fields.values():
                self._refuse("update", f"$rename -> {TENANT_KEY}")
        return update

    def _refuse(self, kind: str, other: Any) -> None:
        logger.warning(
            "cross_tenant_access_refused",
            kind=kind,
            context_tenant=self.tenant_id,
            requested_tenant=str(other),
            collection=getattr(self.collection, "name", None),
        )
        raise TenantMismatch("Data access outside the request's tenant")

    async def find_one(self, filter: Optional[dict[str, Any]] = None, **kwargs: Any) -> Optional[dict[str, Any]]:
        try:
            return await self.collection.find_one(self.scope_filter(filter), **kwargs)
        except PyMongoError as e:
            raise self._unavailable(e)

    def find(self, filter: Optional[dict[str, Any]] = None, **kwargs: Any):
        """Return a cursor over the tenant's matching documents."""
        return self.collection.find(self.scope_filter(filter), **kwargs)

    async def count_documents(self, filter: Optional[dict[str, Any]] = None, **kwargs: Any) -> int:
        try:
            return await self.collection.count_documents(self.scope_filter(filter), **kwargs)
        except PyMongoError as e:
            raise self._unavailable(e)

    async def insert_one(self, document: dict[str, Any], **kwargs: Any):
        try:
            return await self.collection.insert_one(self.scope_document(document), **kwargs)
        except PyMongoError as e:
            raise self._unavailable(e)

    async def update_one(self, filter: dict[str, Any], update: Any, **kwargs: Any):
        try:
            return await self.collection.update_one(
                self.scope_filter(filter), self._scope_update(update), **kwargs
            )
        except PyMongoError as e:
            raise self._unavailable(e)

    def _unavailable(self, error: PyMongoError) -> DependencyUnavailable:
        logger.error(
            "scoped_collection_error",
            tenant_id=self.tenant_id,
            collection=getattr(self.collection, "name", None),
            error=str(error),
        )
        return DependencyUnavailable("Tenant data store unavailable")
