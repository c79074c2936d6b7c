"""
Tenant Store

Narrow persistence contract for tenant records: find by id, insert, and
update by id with an optimistic revision check. Backed by MongoDB in
deployments and by an in-process dict for local runs and tests.
"""

from abc import ABC, abstractmethod
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, IndexModel
from pymongo.errors import DuplicateKeyError, PyMongoError
from structlog import get_logger

from ..errors import DependencyUnavailable, TenantAlreadyExists, VersionConflict
from .models import Tenant

logger = get_logger()


class TenantStore(ABC):
    """Persistence contract used by the tenant registry."""

    @abstractmethod
    async def find_by_id(self, tenant_id: str) -> Optional[Tenant]:
        """Return the stored tenant or None."""

    @abstractmethod
    async def insert(self, tenant: Tenant) -> Tenant:
        """Insert a new tenant; raises TenantAlreadyExists on duplicate id."""

    @abstractmethod
    async def update_by_id_with_version_check(self, tenant: Tenant, expected_revision: int) -> Tenant:
        """
        Replace the stored record if its revision still equals expected_revision.

        Raises:
            VersionConflict: If another writer got there first
        """


class InMemoryTenantStore(TenantStore):
    """
    In-process tenant store.

    Records are immutable and swapped whole; no method suspends between
    reading and writing the dict, so each call is atomic on the event loop.
    """

    def __init__(self, tenants: Optional[list[Tenant]] = None):
        self._tenants: dict[str, Tenant] = {}
        for tenant in tenants or []:
            self._tenants[tenant.tenant_id] = tenant

    async def find_by_id(self, tenant_id: str) -> Optional[Tenant]:
        return self._tenants.get(tenant_id)

    async def insert(self, tenant: Tenant) -> Tenant:
        if tenant.tenant_id in self._tenants:
            raise TenantAlreadyExists(f"Tenant with ID '{tenant.tenant_id}' already exists")
        self._tenants[tenant.tenant_id] = tenant
        return tenant

    async def update_by_id_with_version_check(self, tenant: Tenant, expected_revision: int) -> Tenant:
        current = self._tenants.get(tenant.tenant_id)
        if current is None or current.revision != expected_revision:
            raise VersionConflict()
        self._tenants[tenant.tenant_id] = tenant
        return tenant


class MongoTenantStore(TenantStore):
    """
    MongoDB tenant store.

    Operates on the platform database, not tenant-specific databases.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "tenants"):
        """
        Initialize tenant store.

        Args:
            db: Platform database handle
            collection_name: Collection holding tenant records
        """
        self.db = db
        self.collection = self.db[collection_name]

    async def ensure_indexes(self) -> None:
        """Create necessary indexes for tenant collection."""
        indexes = [
            IndexModel([("tenant_id", ASCENDING)], unique=True),
            IndexModel([("created_at", ASCENDING)]),
        ]
        try:
            await self.collection.create_indexes(indexes)
        except PyMongoError as e:
            logger.error("tenant_index_creation_failed", error=str(e))
            raise DependencyUnavailable("Tenant store unavailable")

    async def find_by_id(self, tenant_id: str) -> Optional[Tenant]:
        try:
            tenant_dict = await self.collection.find_one({"tenant_id": tenant_id})
        except PyMongoError as e:
            logger.error("tenant_store_read_failed", tenant_id=tenant_id, error=str(e))
            raise DependencyUnavailable("Tenant store unavailable")

        if tenant_dict:
            tenant_dict.pop("_id", None)
            return Tenant(**tenant_dict)
        return None

    async def insert(self, tenant: Tenant) -> Tenant:
        try:
            await self.collection.insert_one(tenant.model_dump())
        except DuplicateKeyError:
            raise TenantAlreadyExists(f"Tenant with ID '{tenant.tenant_id}' already exists")
        except PyMongoError as e:
            logger.error("tenant_store_write_failed", tenant_id=tenant.tenant_id, error=str(e))
            raise DependencyUnavailable("Tenant store unavailable")
        return tenant

    async def update_by_id_with_version_check(self, tenant: Tenant, expected_revision: int) -> Tenant:
        try:
            result = await self.collection.replace_one(
                {"tenant_id": tenant.tenant_id, "revision": expected_revision},
                tenant.model_dump(),
            )
        except PyMongoError as e:
            logger.error("tenant_store_write_failed", tenant_id=tenant.tenant_id, error=str(e))
            raise DependencyUnavailable("Tenant store unavailable")

        if result.matched_count == 0:
            raise VersionConflict()
        return tenant
