"""
Tenant Context

The per-request, immutable record of which tenant a request is authorized to
act as. Built once by the isolation guard, attached to the request, and handed
to handlers explicitly. Downstream data access reads the tenant key from here
and nowhere else.
"""

from enum import Enum

from fastapi import Request
from pydantic import BaseModel, ConfigDict, Field

REQUEST_STATE_KEY = "tenant_context"


class ResolutionSource(str, Enum):
    """Transport signal a requested tenant was derived from."""

    HEADER = "header"
    PATH_PREFIX = "path_prefix"
    SUBDOMAIN = "subdomain"


class TenantContext(BaseModel):
    """Tenant context for a request."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str = Field(..., min_length=1)
    resolution_source: ResolutionSource
    user_id: str
    roles: frozenset[str] = Field(default_factory=frozenset)

    def has_role(self, role: str) -> bool:
        """Check whether the authenticated user holds a role."""
        return role in self.roles


def get_tenant_context(request: Request) -> TenantContext:
    """
    FastAPI dependency returning the context the middleware attached.

    Raises:
        RuntimeError: If the route was reached without passing the tenant pipeline
    """
    context = getattr(request.state, REQUEST_STATE_KEY, None)
    if not isinstance(context, TenantContext):
        raise RuntimeError("No tenant context on request; route is not behind the tenant middleware")
    return context
