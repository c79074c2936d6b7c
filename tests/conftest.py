"""
Fixtures for tenancy tests.
"""

from datetime import timedelta
from typing import Callable, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tenancy_core.api_gateway.main import create_app
from tenancy_core.auth.security import TokenVerifier, create_access_token
from tenancy_core.config import TenancyConfig
from tenancy_core.shared_services.tenant_context import ResolutionSource, TenantContext
from tenancy_core.shared_services.theme_cache import ThemeCache
from tenancy_core.tenant_management.db_service import InMemoryTenantStore
from tenancy_core.tenant_management.models import Tenant, TenantSettings, Theme, ThemeColors
from tenancy_core.tenant_management.registry import TenantRegistry

SECRET = "test-secret-key"


@pytest.fixture
def config() -> TenancyConfig:
    return TenancyConfig(
        _env_file=None,
        jwt_secret_key=SECRET,
        jwt_leeway_seconds=30,
        tenant_base_domain="example.com",
        rate_limit_window_seconds=60,
        rate_limit_per_window=100,
    )


@pytest.fixture
def tenants() -> list[Tenant]:
    return [
        Tenant(
            tenant_id="acme",
            display_name="Acme Corp",
            theme=Theme(version=1, colors=ThemeColors(primary="#112233", accent="#445566")),
        ),
        Tenant(
            tenant_id="globex",
            display_name="Globex",
            theme=Theme(version=1, colors=ThemeColors(primary="#AA0000", accent="#00AA00")),
        ),
        Tenant(
            tenant_id="initech",
            display_name="Initech",
            theme=None,
            settings=TenantSettings(rate_limit_per_window=2),
        ),
    ]


@pytest.fixture
def store(tenants: list[Tenant]) -> InMemoryTenantStore:
    return InMemoryTenantStore(tenants)


@pytest.fixture
def registry(store: InMemoryTenantStore) -> TenantRegistry:
    return TenantRegistry(store)


@pytest.fixture
def theme_cache(registry: TenantRegistry) -> ThemeCache:
    return ThemeCache(registry)


@pytest.fixture
def verifier() -> TokenVerifier:
    return TokenVerifier(secret_key=SECRET, algorithm="HS256", leeway_seconds=30)


@pytest.fixture
def make_token() -> Callable[..., str]:
    def _make_token(
        tenant_id: str,
        user_id: str = "user-1",
        roles: Optional[list[str]] = None,
        expires_delta: Optional[timedelta] = None,
        secret_key: str = SECRET,
    ) -> str:
        return create_access_token(
            user_id=user_id,
            tenant_id=tenant_id,
            roles=roles if roles is not None else ["member"],
            secret_key=secret_key,
            expires_delta=expires_delta,
        )

    return _make_token


@pytest.fixture
def make_context() -> Callable[..., TenantContext]:
    def _make_context(
        tenant_id: str,
        roles: frozenset[str] = frozenset({"tenant_admin"}),
        user_id: str = "user-1",
    ) -> TenantContext:
        return TenantContext(
            tenant_id=tenant_id,
            resolution_source=ResolutionSource.HEADER,
            user_id=user_id,
            roles=roles,
        )

    return _make_context


@pytest.fixture
def app(config: TenancyConfig, store: InMemoryTenantStore):
    return create_app(config=config, store=store)


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
