"""
Shared Services Module

Request-scoped tenant context and the services that produce and consume it.
"""

from .tenant_context import ResolutionSource, TenantContext, get_tenant_context

__all__ = ["ResolutionSource", "TenantContext", "get_tenant_context"]
