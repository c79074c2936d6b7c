"""
Token Verification

Signed JWT issuing and verification. Verification is pure: it either returns
the decoded claim set or raises one of MissingToken, InvalidToken or
ExpiredToken.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, ConfigDict, Field
from structlog import get_logger

from ..errors import ExpiredToken, InvalidToken, MissingToken

logger = get_logger()


class TokenClaims(BaseModel):
    """Identity claimed by a verified bearer credential."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    tenant_id: str = Field(..., min_length=1)
    roles: frozenset[str] = Field(default_factory=frozenset)
    expiry: datetime


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the credential out of an Authorization header value.

    Args:
        authorization: Raw header value, e.g. "Bearer eyJ..."

    Returns:
        The bare token

    Raises:
        MissingToken: If no credential was sent
        InvalidToken: If the header does not use the Bearer scheme
    """
    if authorization is None or not authorization.strip():
        raise MissingToken()

    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        raise InvalidToken("Authorization scheme must be Bearer")

    token = token.strip()
    if not token:
        raise MissingToken()

    return token


class TokenVerifier:
    """Validates signed credentials and extracts the claimed identity."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", leeway_seconds: int = 0):
        """
        Initialize the verifier.

        Args:
            secret_key: Signing key shared with the token issuer
            algorithm: JWT signing algorithm
            leeway_seconds: Tolerated clock skew when checking expiry
        """
        if leeway_seconds < 0:
            raise ValueError("leeway_seconds must not be negative")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.leeway_seconds = leeway_seconds

    def verify(self, token: Optional[str]) -> TokenClaims:
        """
        Decode and validate a bearer credential.

        Args:
            token: Encoded JWT

        Returns:
            Verified claim set
        """
        if not token:
            raise MissingToken()

        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require_exp": True, "leeway": self.leeway_seconds},
            )
        except ExpiredSignatureError:
            logger.info("token_expired")
            raise ExpiredToken()
        except JWTError as e:
            logger.warning("jwt_decode_error", error=str(e))
            raise InvalidToken()

        return self._claims_from_payload(payload)

    def _claims_from_payload(self, payload: dict[str, Any]) -> TokenClaims:
        user_id = payload.get("user_id")
        tenant_id = payload.get("tenant_id")
        roles = payload.get("roles", [])

        if not isinstance(user_id, str) or not isinstance(tenant_id, str):
            logger.warning("invalid_token_payload", has_user=bool(user_id), has_tenant=bool(tenant_id))
            raise InvalidToken("Token is missing identity claims")
        if not isinstance(roles, list) or not all(isinstance(r, str) for r in roles):
            raise InvalidToken("Token roles claim is malformed")

        try:
            expiry = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            raise InvalidToken("Token expiry claim is malformed")

        return TokenClaims(
            user_id=user_id,
            tenant_id=tenant_id.lower(),
            roles=frozenset(roles),
            expiry=expiry,
        )


def create_access_token(
    user_id: str,
    tenant_id: str,
    roles: Optional[list[str]],
    secret_key: str,
    algorithm: str = "HS256",
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        user_id: User identifier
        tenant_id: Tenant the token is issued for
        roles: Role names granted to the user
        secret_key: Signing key
        algorithm: JWT signing algorithm
        expires_delta: Token lifetime (defaults to 24 hours)

    Returns:
        Encoded JWT token
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=24))

    to_encode = {
        "user_id": user_id,
        "tenant_id": tenant_id,
        "roles": list(roles or []),
        "exp": expire,
    }

    return jwt.encode(to_encode, secret_key, algorithm=algorithm)
