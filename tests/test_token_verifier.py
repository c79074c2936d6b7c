"""
Tests for bearer token verification.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from tenancy_core.auth.security import TokenVerifier, extract_bearer_token
from tenancy_core.errors import ExpiredToken, InvalidToken, MissingToken

from .conftest import SECRET


def test_valid_token_yields_claims(verifier, make_token):
    token = make_token("acme", user_id="u-42", roles=["tenant_admin", "member"])

    claims = verifier.verify(token)

    assert claims.user_id == "u-42"
    assert claims.tenant_id == "acme"
    assert claims.roles == frozenset({"tenant_admin", "member"})
    assert claims.expiry > datetime.now(timezone.utc)


@pytest.mark.parametrize("token", [None, ""])
def test_absent_token_is_missing(verifier, token):
    with pytest.raises(MissingToken):
        verifier.verify(token)


def test_forged_signature_is_invalid(verifier, make_token):
    token = make_token("acme", secret_key="someone-elses-key")

    with pytest.raises(InvalidToken):
        verifier.verify(token)


def test_garbage_is_invalid(verifier):
    with pytest.raises(InvalidToken):
        verifier.verify("not.a.jwt")


def test_expired_beyond_leeway(verifier, make_token):
    token = make_token("acme", expires_delta=timedelta(minutes=-5))

    with pytest.raises(ExpiredToken):
        verifier.verify(token)


def test_expired_within_leeway_is_accepted(verifier, make_token):
    token = make_token("acme", expires_delta=timedelta(seconds=-5))

    assert verifier.verify(token).tenant_id == "acme"


def test_zero_leeway_rejects_just_expired(make_token):
    strict = TokenVerifier(secret_key=SECRET, leeway_seconds=0)
    token = make_token("acme", expires_delta=timedelta(seconds=-5))

    with pytest.raises(ExpiredToken):
        strict.verify(token)


def test_missing_tenant_claim_is_invalid(verifier):
    exp = datetime.now(timezone.utc) + timedelta(hours=1)
    token = jwt.encode({"user_id": "u-1", "exp": exp}, SECRET, algorithm="HS256")

    with pytest.raises(InvalidToken):
        verifier.verify(token)


def test_missing_expiry_is_invalid(verifier):
    token = jwt.encode({"user_id": "u-1", "tenant_id": "acme"}, SECRET, algorithm="HS256")

    with pytest.raises(InvalidToken):
        verifier.verify(token)


def test_malformed_roles_claim_is_invalid(verifier):
    exp = datetime.now(timezone.utc) + timedelta(hours=1)
    token = jwt.encode(
        {"user_id": "u-1", "tenant_id": "acme", "roles": "admin", "exp": exp},
        SECRET,
        algorithm="HS256",
    )

    with pytest.raises(InvalidToken):
        verifier.verify(token)


def test_negative_leeway_rejected():
    with pytest.raises(ValueError):
        TokenVerifier(secret_key=SECRET, leeway_seconds=-1)


class TestExtractBearerToken:
    def test_bearer_header(self):
        assert extract_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self):
        assert extract_bearer_token("bearer abc") == "abc"

    @pytest.mark.parametrize("value", [None, "", "   ", "Bearer", "Bearer   "])
    def test_absent_credential(self, value):
        with pytest.raises(MissingToken):
            extract_bearer_token(value)

    def test_wrong_scheme(self):
        with pytest.raises(InvalidToken):
            extract_bearer_token("Basic dXNlcjpwYXNz")
