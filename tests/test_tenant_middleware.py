"""
Tests for platform-path bypass in the tenant isolation middleware.
"""

import pytest

from tenancy_core.shared_services.tenant_middleware import TenantIsolationMiddleware


@pytest.mark.parametrize(
    "path, bypassed",
    [
        ("/health", True),
        ("/openapi.json", True),
        ("/platform/tenants", True),
        ("/healthz", False),
        ("/docs-internal", False),
        ("/pingback", False),
        ("/api/tenant", False),
    ],
)
def test_platform_endpoint_matching(path, bypassed):
    assert TenantIsolationMiddleware._is_platform_endpoint(path) is bypassed
