"""
Tests for the isolation guard: claim vs. resolution reconciliation.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from tenancy_core.auth.security import TokenClaims
from tenancy_core.errors import (
    ConflictingTenantSignal,
    DependencyUnavailable,
    TenantMismatch,
    UnknownTenant,
)
from tenancy_core.shared_services.isolation_guard import IsolationGuard
from tenancy_core.shared_services.tenant_context import ResolutionSource
from tenancy_core.shared_services.tenant_resolver import Conflict, Resolved
from tenancy_core.tenant_management.registry import TenantRegistry


def _claims(tenant_id: str, roles=("member",)) -> TokenClaims:
    return TokenClaims(
        user_id="user-1",
        tenant_id=tenant_id,
        roles=frozenset(roles),
        expiry=datetime.now(timezone.utc) + timedelta(hours=1),
    )


def _resolved(tenant_id: str, source=ResolutionSource.HEADER) -> Resolved:
    return Resolved(tenant_id=tenant_id, source=source, routed_path="/")


@pytest.mark.asyncio
async def test_matching_claim_builds_context(registry):
    guard = IsolationGuard(registry)

    result = await guard.establish(_claims("acme", roles=("tenant_admin",)), _resolved("acme", ResolutionSource.SUBDOMAIN))

    assert result.context.tenant_id == "acme"
    assert result.context.resolution_source == ResolutionSource.SUBDOMAIN
    assert result.context.user_id == "user-1"
    assert result.context.roles == frozenset({"tenant_admin"})
    assert result.tenant.tenant_id == "acme"


@pytest.mark.asyncio
async def test_context_is_immutable(registry):
    guard = IsolationGuard(registry)
    result = await guard.establish(_claims("acme"), _resolved("acme"))

    with pytest.raises(ValidationError):
        result.context.tenant_id = "globex"


@pytest.mark.asyncio
async def test_token_for_other_tenant_is_mismatch(registry):
    guard = IsolationGuard(registry)

    with pytest.raises(TenantMismatch):
        await guard.establish(_claims("acme"), _resolved("globex"))


@pytest.mark.asyncio
async def test_conflict_is_rejected_before_claim_check(registry):
    guard = IsolationGuard(registry)
    conflict = Conflict(
        signals=((ResolutionSource.HEADER, "acme"), (ResolutionSource.PATH_PREFIX, "globex")),
        routed_path="/",
    )

    with pytest.raises(ConflictingTenantSignal):
        await guard.establish(_claims("acme"), conflict)


@pytest.mark.asyncio
async def test_valid_token_for_unregistered_tenant_is_unknown(registry):
    guard = IsolationGuard(registry)

    with pytest.raises(UnknownTenant):
        await guard.establish(_claims("hooli"), _resolved("hooli"))


@pytest.mark.asyncio
async def test_store_outage_is_not_masked_as_unknown_tenant():
    store = AsyncMock()
    store.find_by_id.side_effect = DependencyUnavailable("Tenant store unavailable")
    guard = IsolationGuard(TenantRegistry(store))

    with pytest.raises(DependencyUnavailable):
        await guard.establish(_claims("acme"), _resolved("acme"))
