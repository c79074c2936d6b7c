"""
Tenancy Error Taxonomy

Every failure the tenant pipeline can produce, each with a stable error code
and HTTP status so clients can tell resolution failures from authorization
failures from throttling.
"""

from typing import Any, Optional

from fastapi import status


class TenancyError(Exception):
    """Base class for request-terminal tenancy failures."""

    code: str = "tenancy_error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Tenancy error"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Render the error body returned to callers."""
        return {"error": {"code": self.code, "message": self.message}}

    def headers(self) -> dict[str, str]:
        """Extra response headers for this error."""
        return {}


# Auth layer


class MissingToken(TenancyError):
    code = "missing_token"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Bearer credential is required"

    def headers(self) -> dict[str, str]:
        return {"WWW-Authenticate": "Bearer"}


class InvalidToken(TenancyError):
    code = "invalid_token"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"

    def headers(self) -> dict[str, str]:
        return {"WWW-Authenticate": "Bearer"}


class ExpiredToken(TenancyError):
    code = "expired_token"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Credential has expired"

    def headers(self) -> dict[str, str]:
        return {"WWW-Authenticate": "Bearer"}


# Resolution layer


class UnresolvedTenant(TenancyError):
    code = "unresolved_tenant"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "No tenant could be determined for this request"


class ConflictingTenantSignal(TenancyError):
    code = "conflicting_tenant_signal"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request identifies more than one tenant"


# Isolation layer


class TenantMismatch(TenancyError):
    code = "tenant_mismatch"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Token tenant does not match request tenant"


class UnknownTenant(TenancyError):
    code = "unknown_tenant"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Tenant is not registered"


class InsufficientRole(TenancyError):
    code = "insufficient_role"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"


class FeatureDisabled(TenancyError):
    code = "feature_disabled"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Feature is disabled for this tenant"


# Admission layer


class RateLimitExceeded(TenancyError):
    code = "rate_limit_exceeded"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Request rate limit exceeded"

    def __init__(self, retry_after_seconds: int, message: Optional[str] = None):
        super().__init__(message, retry_after_seconds=retry_after_seconds)
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["error"]["retry_after_seconds"] = self.retry_after_seconds
        return body

    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after_seconds)}


# Registry layer


class TenantNotFound(TenancyError):
    code = "tenant_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Tenant not found"


class TenantAlreadyExists(TenancyError):
    code = "tenant_already_exists"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Tenant already exists"


class InvalidTenantSettings(TenancyError):
    code = "invalid_tenant_settings"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Tenant settings are invalid"


class VersionConflict(TenancyError):
    code = "version_conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Tenant record was modified concurrently"


# Internal faults


class DependencyUnavailable(TenancyError):
    code = "dependency_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "A required dependency is unavailable, retry later"
