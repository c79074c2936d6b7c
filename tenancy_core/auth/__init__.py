"""
Authentication Module

Bearer token verification and role checks for tenant-scoped requests.
"""

from .security import TokenClaims, TokenVerifier, create_access_token, extract_bearer_token
from .dependencies import require_platform_admin, require_role

__all__ = [
    "TokenClaims",
    "TokenVerifier",
    "create_access_token",
    "extract_bearer_token",
    "require_platform_admin",
    "require_role",
]
