"""
Tenant API Routers

Tenant-scoped endpoints for reading and administering the caller's own tenant,
and platform endpoints for onboarding new tenants. Every tenant-scoped route
takes the tenant key from the request's TenantContext.
"""

from fastapi import APIRouter, Depends, Request, status
from structlog import get_logger

from ..auth.dependencies import TENANT_ADMIN_ROLE, require_platform_admin, require_role
from ..auth.security import TokenClaims
from ..shared_services.tenant_context import TenantContext, get_tenant_context
from ..shared_services.theme_cache import ThemeCache
from .provisioning import TenantProvisioningService
from .registry import TenantRegistry
from .schema import TenantCreateRequest, TenantResponse, TenantUpdateRequest, ThemeResponse
from .service import TenantAdminService

logger = get_logger()

router = APIRouter(prefix="/api/tenant", tags=["Tenant"])
platform_router = APIRouter(prefix="/platform/tenants", tags=["Tenant Management"])


def get_registry(request: Request) -> TenantRegistry:
    """Dependency to get the tenant registry."""
    return request.app.state.registry


def get_theme_cache(request: Request) -> ThemeCache:
    """Dependency to get the theme cache."""
    return request.app.state.theme_cache


def get_admin_service(request: Request) -> TenantAdminService:
    """Dependency to get the tenant admin service."""
    return request.app.state.admin_service


def get_provisioning_service(request: Request) -> TenantProvisioningService:
    """Dependency to get provisioning service."""
    return request.app.state.provisioning_service


@router.get(
    "",
    response_model=TenantResponse,
    summary="Get current tenant",
    description="Retrieve the record of the tenant the request acts as",
)
async def get_current_tenant(
    context: TenantContext = Depends(get_tenant_context),
    registry: TenantRegistry = Depends(get_registry),
) -> TenantResponse:
    """Get the caller's tenant."""
    tenant = await registry.get_for(context)
    return TenantResponse.from_tenant(tenant)


@router.get(
    "/theme",
    response_model=ThemeResponse,
    summary="Get tenant theme",
    description="Effective theme for the caller's tenant, default theme as fallback",
)
async def get_theme(
    context: TenantContext = Depends(get_tenant_context),
    theme_cache: ThemeCache = Depends(get_theme_cache),
) -> ThemeResponse:
    """Get the caller's theme through the cache."""
    theme = await theme_cache.get_theme(context.tenant_id)
    return ThemeResponse(tenant_id=context.tenant_id, theme=theme)


@router.patch(
    "",
    response_model=TenantResponse,
    summary="Update current tenant",
    description="Patch display name, theme and settings of the caller's tenant",
)
async def update_current_tenant(
    patch: TenantUpdateRequest,
    context: TenantContext = Depends(require_role(TENANT_ADMIN_ROLE)),
    admin_service: TenantAdminService = Depends(get_admin_service),
) -> TenantResponse:
    """Update the caller's tenant, then invalidate its cached theme."""
    logger.info(
        "updating_tenant",
        tenant_id=context.tenant_id,
        user_id=context.user_id,
        fields=sorted(patch.model_fields_set),
    )
    tenant = await admin_service.update_tenant(context, patch)
    return TenantResponse.from_tenant(tenant)


@platform_router.post(
    "",
    response_model=TenantResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new tenant",
    description="Provision a new tenant record with a default theme",
)
async def create_tenant(
    request: TenantCreateRequest,
    claims: TokenClaims = Depends(require_platform_admin),
    provisioning_service: TenantProvisioningService = Depends(get_provisioning_service),
) -> TenantResponse:
    """Create and provision a new tenant."""
    logger.info("creating_tenant", tenant_id=request.tenant_id, created_by=claims.user_id)
    tenant = await provisioning_service.provision_tenant(request, created_by=claims.user_id)
    return TenantResponse.from_tenant(tenant)
