"""
Tests for the tenant registry and its store.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from tenancy_core.errors import (
    DependencyUnavailable,
    FeatureDisabled,
    InvalidTenantSettings,
    TenantAlreadyExists,
    TenantMismatch,
    TenantNotFound,
    VersionConflict,
)
from tenancy_core.tenant_management.db_service import InMemoryTenantStore, MongoTenantStore
from tenancy_core.tenant_management.models import Tenant
from tenancy_core.tenant_management.schema import TenantUpdateRequest


def _theme_patch(primary: str) -> TenantUpdateRequest:
    return TenantUpdateRequest(theme={"colors": {"primary": primary}})


@pytest.mark.asyncio
async def test_get_existing(registry):
    tenant = await registry.get("acme")

    assert tenant.display_name == "Acme Corp"


@pytest.mark.asyncio
async def test_get_missing(registry):
    with pytest.raises(TenantNotFound):
        await registry.get("hooli")


@pytest.mark.asyncio
async def test_get_for_reads_context_tenant(registry, make_context):
    tenant = await registry.get_for(make_context("globex"))

    assert tenant.tenant_id == "globex"


@pytest.mark.asyncio
async def test_theme_update_bumps_version_by_one(registry, make_context):
    updated = await registry.update("acme", _theme_patch("#0F172A"), make_context("acme"))

    assert updated.theme.version == 2
    assert updated.theme.colors.primary == "#0F172A"
    # Untouched theme fields are kept
    assert updated.theme.colors.accent == "#445566"
    assert updated.revision == 1
    assert (await registry.get("acme")) == updated


@pytest.mark.asyncio
async def test_first_theme_starts_at_version_one(registry, make_context):
    updated = await registry.update("initech", _theme_patch("#123"), make_context("initech"))

    assert updated.theme.version == 1
    assert updated.theme.colors.primary == "#123"


@pytest.mark.asyncio
async def test_non_theme_update_keeps_theme_version(registry, make_context):
    updated = await registry.update(
        "acme", TenantUpdateRequest(display_name="Acme Inc"), make_context("acme")
    )

    assert updated.display_name == "Acme Inc"
    assert updated.theme.version == 1


@pytest.mark.asyncio
async def test_update_for_other_tenant_is_refused(registry, make_context):
    with pytest.raises(TenantMismatch):
        await registry.update("globex", _theme_patch("#000000"), make_context("acme"))

    globex = await registry.get("globex")
    assert globex.theme.colors.primary == "#AA0000"
    assert globex.revision == 0


@pytest.mark.asyncio
async def test_unknown_setting_is_rejected(registry, make_context):
    patch = TenantUpdateRequest(settings={"dark_mode": True})

    with pytest.raises(InvalidTenantSettings) as exc_info:
        await registry.update("acme", patch, make_context("acme"))

    assert "dark_mode" in exc_info.value.message
    assert (await registry.get("acme")).revision == 0


@pytest.mark.asyncio
async def test_invalid_setting_value_is_rejected(registry, make_context):
    patch = TenantUpdateRequest(settings={"rate_limit_per_window": 0})

    with pytest.raises(InvalidTenantSettings):
        await registry.update("acme", patch, make_context("acme"))


@pytest.mark.asyncio
async def test_recognized_setting_is_applied(registry, make_context):
    patch = TenantUpdateRequest(settings={"custom_branding": False})

    updated = await registry.update("acme", patch, make_context("acme"))

    assert updated.settings.custom_branding is False
    assert updated.settings.audit_logging is True


@pytest.mark.asyncio
async def test_theme_editing_disabled(registry, make_context):
    await registry.update(
        "acme", TenantUpdateRequest(settings={"theme_editing": False}), make_context("acme")
    )

    with pytest.raises(FeatureDisabled):
        await registry.update("acme", _theme_patch("#000000"), make_context("acme"))


@pytest.mark.asyncio
async def test_concurrent_updates_are_serialized(registry, make_context):
    context = make_context("acme")

    results = await asyncio.gather(
        *(registry.update("acme", _theme_patch(f"#00000{i}"), context) for i in range(5))
    )

    assert sorted(t.theme.version for t in results) == [2, 3, 4, 5, 6]
    final = await registry.get("acme")
    assert final.theme.version == 6
    assert final.revision == 5


@pytest.mark.asyncio
async def test_concurrent_updates_across_tenants(registry, make_context):
    acme, globex = await asyncio.gather(
        registry.update("acme", _theme_patch("#111111"), make_context("acme")),
        registry.update("globex", _theme_patch("#222222"), make_context("globex")),
    )

    assert acme.theme.colors.primary == "#111111"
    assert globex.theme.colors.primary == "#222222"
    assert acme.theme.version == globex.theme.version == 2


class TestInMemoryTenantStore:
    @pytest.mark.asyncio
    async def test_insert_duplicate(self, store, tenants):
        with pytest.raises(TenantAlreadyExists):
            await store.insert(tenants[0])

    @pytest.mark.asyncio
    async def test_stale_revision_is_conflict(self, store):
        current = await store.find_by_id("acme")
        first = current.model_copy(update={"display_name": "First", "revision": 1})
        second = current.model_copy(update={"display_name": "Second", "revision": 1})

        await store.update_by_id_with_version_check(first, expected_revision=0)
        with pytest.raises(VersionConflict):
            await store.update_by_id_with_version_check(second, expected_revision=0)

        assert (await store.find_by_id("acme")).display_name == "First"

    @pytest.mark.asyncio
    async def test_update_missing_is_conflict(self):
        store = InMemoryTenantStore()

        with pytest.raises(VersionConflict):
            await store.update_by_id_with_version_check(
                Tenant(tenant_id="ghost", display_name="Ghost", revision=1), expected_revision=0
            )


class TestMongoTenantStore:
    @pytest.fixture
    def collection(self):
        return AsyncMock()

    @pytest.fixture
    def mongo_store(self, collection):
        db = MagicMock()
        db.__getitem__.return_value = collection
        return MongoTenantStore(db)

    @pytest.mark.asyncio
    async def test_find_strips_object_id(self, mongo_store, collection, tenants):
        collection.find_one.return_value = {"_id": "65f0", **tenants[0].model_dump()}

        tenant = await mongo_store.find_by_id("acme")

        assert tenant == tenants[0]
        collection.find_one.assert_awaited_once_with({"tenant_id": "acme"})

    @pytest.mark.asyncio
    async def test_duplicate_key_is_already_exists(self, mongo_store, collection, tenants):
        collection.insert_one.side_effect = DuplicateKeyError("E11000")

        with pytest.raises(TenantAlreadyExists):
            await mongo_store.insert(tenants[0])

    @pytest.mark.asyncio
    async def test_replace_is_filtered_on_revision(self, mongo_store, collection, tenants):
        collection.replace_one.return_value = MagicMock(matched_count=0)
        updated = tenants[0].model_copy(update={"revision": 1})

        with pytest.raises(VersionConflict):
            await mongo_store.update_by_id_with_version_check(updated, expected_revision=0)

        filter_arg = collection.replace_one.await_args.args[0]
        assert filter_arg == {"tenant_id": "acme", "revision": 0}

    @pytest.mark.asyncio
    async def test_unreachable_store(self, mongo_store, collection):
        collection.find_one.side_effect = ServerSelectionTimeoutError("no servers")

        with pytest.raises(DependencyUnavailable):
            await mongo_store.find_by_id("acme")


@pytest.mark.asyncio
async def test_null_theme_sections_keep_current_values(registry, make_context):
    patch = TenantUpdateRequest(theme={"colors": None, "typography": None, "logo_url": "https://cdn/acme.png"})

    updated = await registry.update("acme", patch, make_context("acme"))

    assert updated.theme.version == 2
    assert updated.theme.colors.primary == "#112233"
    assert updated.theme.typography.font_family == "Inter"
    assert updated.theme.logo_url == "https://cdn/acme.png"
