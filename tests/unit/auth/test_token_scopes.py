from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi import HTTPException

from quote_engine.api.v1._authz import require_principal
from quote_engine.auth.jwt import create_access_token, decode_jwt, encode_jwt
from quote_engine.auth.ownership import Principal, enforce_owner, from_claims
from quote_engine.auth.rbac import has_scopes, require_scopes
from quote_engine.core.config import get_config
from quote_engine.core.exceptions import AuthenticationError, AuthorizationError, NotFoundError


def test_jwt_roundtrip_contains_required_claims():
    token = create_access_token(user_id=10, role="contractor", secret="test-secret")
    claims = decode_jwt(token, secret="test-secret")
    assert claims["sub"] == "10"
    assert claims["role"] == "contractor"
    assert "exp" in claims
    assert "iat" in claims
    assert "jti" in claims


def test_jwt_rejects_tampered_signature():
    token = create_access_token(user_id=10, role="user", secret="test-secret")
    with pytest.raises(AuthenticationError):
        decode_jwt(token, secret="other-secret")


def test_jwt_rejects_expired_token():
    token = encode_jwt({"sub": "1", "role": "admin"}, secret="s", ttl=timedelta(minutes=-5))
    with pytest.raises(AuthenticationError):
        decode_jwt(token, secret="s")
    assert decode_jwt(token, secret="s", verify_exp=False)["sub"] == "1"


def test_principal_from_claims_rejects_unknown_role():
    assert from_claims({"sub": "7", "role": "Admin"}) == Principal(user_id=7, role="admin")
    with pytest.raises(AuthenticationError):
        from_claims({"sub": "7", "role": "viewer"})
    with pytest.raises(AuthenticationError):
        from_claims({"role": "user"})


def test_rbac_blocks_missing_scope():
    require_scopes("contractor", ["quotations.submit"])
    with pytest.raises(AuthorizationError):
        require_scopes("contractor", ["quotations.review"])
    with pytest.raises(AuthorizationError):
        require_scopes("user", ["penalties.apply"])


def test_admin_wildcard_grants_everything():
    assert has_scopes("admin", ["pricing.manage", "invoices.settle", "wallets.audit"])


def test_foreign_resource_reads_as_not_found():
    enforce_owner(5, Principal(user_id=5, role="user"), "Quote request", 1)
    enforce_owner(5, Principal(user_id=1, role="admin"), "Quote request", 1)
    with pytest.raises(NotFoundError):
        enforce_owner(5, Principal(user_id=6, role="user"), "Quote request", 1)


def test_require_principal_maps_auth_errors_to_http():
    with pytest.raises(HTTPException) as missing:
        require_principal(None, ["quote_requests.read"])
    assert missing.value.status_code == 401

    token = create_access_token(user_id=3, role="user", secret=get_config().JWT_SECRET)
    with pytest.raises(HTTPException) as forbidden:
        require_principal(f"Bearer {token}", ["quotations.review"])
    assert forbidden.value.status_code == 403

    principal = require_principal(f"Bearer {token}", ["quote_requests.read"])
    assert principal == Principal(user_id=3, role="user")
