"""
Authentication Dependencies

FastAPI dependencies for reading the request's tenant context and enforcing
roles.
"""

from typing import Optional

from fastapi import Depends, Header, Request
from structlog import get_logger

from ..errors import InsufficientRole
from ..shared_services.tenant_context import TenantContext, get_tenant_context
from .security import TokenClaims, TokenVerifier, extract_bearer_token

logger = get_logger()

TENANT_ADMIN_ROLE = "tenant_admin"
PLATFORM_ADMIN_ROLE = "platform_admin"


def require_role(required_role: str):
    """
    Dependency factory for requiring a role in the tenant context.

    Example:
        @router.patch("/api/tenant", dependencies=[Depends(require_role("tenant_admin"))])

    Args:
        required_role: Role the caller must hold

    Returns:
        Dependency function
    """
    async def role_checker(context: TenantContext = Depends(get_tenant_context)) -> TenantContext:
        """Check if the caller holds the required role."""
        if not context.has_role(required_role):
            logger.warning(
                "insufficient_permissions",
                tenant_id=context.tenant_id,
                user_id=context.user_id,
                required_role=required_role,
            )
            raise InsufficientRole(f"Insufficient permissions. Required role: {required_role}")

        return context

    return role_checker


def get_token_verifier(request: Request) -> TokenVerifier:
    """Dependency returning the application's token verifier."""
    return request.app.state.token_verifier


async def require_platform_admin(
    authorization: Optional[str] = Header(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> TokenClaims:
    """
    Verify the bearer token of a platform-level request.

    Platform endpoints bypass tenant resolution, so the token is checked here
    and must carry the platform admin role.
    """
    claims = verifier.verify(extract_bearer_token(authorization))

    if PLATFORM_ADMIN_ROLE not in claims.roles:
        logger.warning("platform_admin_required", user_id=claims.user_id)
        raise InsufficientRole(f"Insufficient permissions. Required role: {PLATFORM_ADMIN_ROLE}")

    return claims
