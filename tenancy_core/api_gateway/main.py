"""
Main FastAPI Application

Tenancy API Gateway with:
- Tenant isolation middleware (token, resolution, guard, admission)
- Tenant theme and administration endpoints
- Platform onboarding endpoints
- CORS configuration
- Health checks
"""

from contextlib import asynccontextmanager
from typing import Optional

import redis.asyncio as redis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from structlog import get_logger

from ..audit import TenantAuditService
from ..auth.security import TokenVerifier
from ..config import StoreBackend, TenancyConfig, get_config
from ..errors import TenancyError
from ..logging import configure_logging
from ..shared_services.isolation_guard import IsolationGuard
from ..shared_services.rate_admission import RateAdmissionController
from ..shared_services.tenant_middleware import TenantIsolationMiddleware, tenancy_error_response
from ..shared_services.tenant_resolver import TenantResolver
from ..shared_services.theme_cache import ThemeCache
from ..tenant_management.api_router import platform_router, router as tenant_router
from ..tenant_management.db_service import InMemoryTenantStore, MongoTenantStore, TenantStore
from ..tenant_management.provisioning import TenantProvisioningService
from ..tenant_management.registry import TenantRegistry
from ..tenant_management.service import TenantAdminService

logger = get_logger()

VERSION = "0.1.0"


def create_app(
    config: Optional[TenancyConfig] = None,
    store: Optional[TenantStore] = None,
    redis_client: Optional[redis.Redis] = None,
    audit_collection: Optional[AsyncIOMotorCollection] = None,
) -> FastAPI:
    """
    Build the application and wire the tenancy components.

    Args:
        config: Configuration (defaults to environment-loaded config)
        store: Tenant store (defaults to the configured backend)
        redis_client: Redis client for shared rate windows
        audit_collection: Collection for audit entries

    Returns:
        FastAPI application
    """
    config = config or get_config()
    mongo_client: Optional[AsyncIOMotorClient] = None

    if store is None:
        if config.store_backend == StoreBackend.MONGO:
            mongo_client = AsyncIOMotorClient(config.platform_mongo_db_url)
            platform_db = mongo_client[config.platform_mongo_db_name]
            store = MongoTenantStore(platform_db)
            if audit_collection is None:
                audit_collection = platform_db[config.audit_collection_name]
        else:
            store = InMemoryTenantStore()

    if redis_client is None and config.redis_url:
        redis_client = redis.from_url(config.redis_url)

    token_verifier = TokenVerifier(
        secret_key=config.jwt_secret_key,
        algorithm=config.jwt_algorithm,
        leeway_seconds=config.jwt_leeway_seconds,
    )
    resolver = TenantResolver(
        header_name=config.tenant_header_name,
        path_prefix=config.tenant_path_prefix,
        base_domain=config.tenant_base_domain,
        reserved_subdomains=config.get_reserved_subdomains(),
        strict_subdomain=config.tenant_strict_subdomain,
    )
    registry = TenantRegistry(store)
    theme_cache = ThemeCache(registry)
    guard = IsolationGuard(registry)
    rate_controller = RateAdmissionController(
        window_seconds=config.rate_limit_window_seconds,
        limit_per_window=config.rate_limit_per_window,
        redis_client=redis_client,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Handles startup and shutdown events.
        """
        configure_logging(config)
        logger.info(
            "starting_tenancy_gateway",
            environment=config.environment.value,
            store_backend=config.store_backend.value,
        )

        if isinstance(store, MongoTenantStore):
            await store.ensure_indexes()

        yield

        logger.info("shutting_down_tenancy_gateway")
        if mongo_client is not None:
            mongo_client.close()
        if redis_client is not None:
            await redis_client.aclose()

    app = FastAPI(
        title="Tenancy Gateway",
        description="Tenant context resolution and isolation enforcement",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs" if not config.is_production else None,
        redoc_url="/redoc" if not config.is_production else None,
        openapi_url="/openapi.json" if not config.is_production else None,
    )

    app.state.config = config
    app.state.token_verifier = token_verifier
    app.state.registry = registry
    app.state.theme_cache = theme_cache
    app.state.rate_controller = rate_controller
    app.state.admin_service = TenantAdminService(
        registry, theme_cache, TenantAuditService(audit_collection)
    )
    app.state.provisioning_service = TenantProvisioningService(store)

    # Tenant isolation runs inside CORS so preflight requests are answered first
    app.add_middleware(
        TenantIsolationMiddleware,
        token_verifier=token_verifier,
        resolver=resolver,
        guard=guard,
        rate_controller=rate_controller,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get_allowed_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TenancyError)
    async def tenancy_error_handler(request: Request, exc: TenancyError):
        """Render tenancy errors raised inside route handlers."""
        logger.warning("tenancy_error", code=exc.code, reason=exc.message, path=request.url.path)
        return tenancy_error_response(exc)

    @app.get("/health", tags=["Platform"], summary="Health check")
    async def health_check():
        """Basic health check endpoint."""
        return {
            "status": "healthy",
            "environment": config.environment.value,
            "version": VERSION,
        }

    @app.get("/ping", tags=["Platform"], summary="Ping endpoint")
    async def ping():
        """Simple ping endpoint."""
        return {"message": "pong"}

    app.include_router(tenant_router)
    app.include_router(platform_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    config = get_config()
    uvicorn.run(
        "tenancy_core.api_gateway.main:app",
        host="0.0.0.0",
        port=8000,
        reload=config.is_local,
        log_level=config.log_level.lower(),
    )
