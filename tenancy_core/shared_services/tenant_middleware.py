"""
Tenant Isolation Middleware

FastAPI middleware that, for every tenant-scoped request:
1. Verifies the bearer token
2. Resolves the requested tenant (header, path prefix, subdomain)
3. Reconciles both through the isolation guard into a TenantContext
4. Admits the request against the tenant's rate window
5. Strips the tenant path prefix and attaches the context to the request

Any failure ends the request here with a stable error code.
"""

from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from structlog import get_logger

from ..auth.security import TokenVerifier, extract_bearer_token
from ..errors import RateLimitExceeded, TenancyError
from .isolation_guard import IsolationGuard
from .rate_admission import RateAdmissionController
from .tenant_context import REQUEST_STATE_KEY
from .tenant_resolver import TenantResolver

logger = get_logger()

PLATFORM_PATHS = frozenset({"/health", "/ping", "/docs", "/docs/oauth2-redirect", "/redoc", "/openapi.json"})
PLATFORM_PREFIXES = ("/platform/",)


def tenancy_error_response(exc: TenancyError) -> JSONResponse:
    """Render a tenancy error as its JSON error body."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers(),
    )


class TenantIsolationMiddleware(BaseHTTPMiddleware):
    """
    Middleware enforcing tenant isolation.

    Establishes the request's TenantContext before any route handler runs.
    """

    def __init__(
        self,
        app,
        token_verifier: TokenVerifier,
        resolver: TenantResolver,
        guard: IsolationGuard,
        rate_controller: RateAdmissionController,
    ):
        """
        Initialize tenant isolation middleware.

        Args:
            app: ASGI application
            token_verifier: Bearer token verifier
            resolver: Tenant resolver
            guard: Isolation guard
            rate_controller: Per-tenant admission controller
        """
        super().__init__(app)
        self.token_verifier = token_verifier
        self.resolver = resolver
        self.guard = guard
        self.rate_controller = rate_controller

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request and set tenant context.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware/route handler

        Returns:
            HTTP response
        """
        path = request.url.path

        # Skip tenant resolution for health checks and platform endpoints
        if self._is_platform_endpoint(path):
            return await call_next(request)

        host = request.headers.get("host")

        try:
            claims = self.token_verifier.verify(
                extract_bearer_token(request.headers.get("authorization"))
            )
            resolution = self.resolver.resolve(request.headers, path, host)
            result = await self.guard.establish(claims, resolution)

            admission = await self.rate_controller.admit(
                result.context.tenant_id,
                limit=result.tenant.settings.rate_limit_per_window,
            )
            if not admission.allowed:
                raise RateLimitExceeded(admission.retry_after_seconds)

        except TenancyError as e:
            logger.warning(
                "tenant_request_rejected",
                code=e.code,
                reason=e.message,
                host=host,
                path=path,
            )
            return tenancy_error_response(e)
        except Exception as e:
            logger.error("tenant_middleware_error", error=str(e), host=host, path=path)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": {"code": "internal_error", "message": "Error processing request"}},
            )

        context = result.context
        setattr(request.state, REQUEST_STATE_KEY, context)

        # Downstream routing never sees the tenant prefix
        if resolution.routed_path != path:
            request.scope["path"] = resolution.routed_path
            request.scope["raw_path"] = resolution.routed_path.encode()

        logger.debug(
            "tenant_context_set",
            tenant_id=context.tenant_id,
            source=context.resolution_source.value,
            user_id=context.user_id,
            path=resolution.routed_path,
        )

        response = await call_next(request)

        response.headers["X-Tenant-Id"] = context.tenant_id
        response.headers["X-RateLimit-Remaining"] = str(admission.remaining)
        return response

    @staticmethod
    def _is_platform_endpoint(path: str) -> bool:
        """Check if path is a platform-level endpoint (no tenant context needed)."""
        return path in PLATFORM_PATHS or path.startswith(PLATFORM_PREFIXES)
