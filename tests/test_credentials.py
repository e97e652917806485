"""Unit tests for password hashing, session tokens and session context."""

from datetime import datetime, timedelta, timezone

import jwt

from wsm.auth.context import SessionContext
from wsm.auth.credentials import decode_token, hash_password, issue_token, verify_password
from wsm.config import settings
from wsm.models.enums import Role

ACTOR = "aaaaaaaa-0000-0000-0000-000000000001"
TENANT = "11111111-1111-1111-1111-111111111111"


def test_password_hash_verifies():
    stored = hash_password("correct horse")
    assert verify_password("correct horse", stored)
    assert not verify_password("wrong horse", stored)


def test_password_hash_is_salted():
    assert hash_password("same") != hash_password("same")


def test_malformed_hash_never_verifies():
    assert not verify_password("anything", "not-a-hash")


def test_token_carries_claims():
    claims = decode_token(issue_token(ACTOR, TENANT, "tenant_admin"))
    assert claims == {"actor_id": ACTOR, "tenant_id": TENANT, "role": "tenant_admin"}


def test_tampered_token_rejected():
    token = issue_token(ACTOR, TENANT, "user")
    assert decode_token(token[:-2] + ("AA" if token[-2:] != "AA" else "BB")) is None


def test_expired_token_rejected():
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    token = jwt.encode(
        {"sub": ACTOR, "tenant_id": TENANT, "role": "user", "iat": past, "exp": past},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    assert decode_token(token) is None


def test_token_signed_with_other_secret_rejected():
    token = jwt.encode(
        {"sub": ACTOR, "role": "super_admin", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        "someone-else-entirely-0123456789abcdef",
        algorithm="HS256",
    )
    assert decode_token(token) is None


def test_context_from_claims():
    ctx = SessionContext.from_claims({"actor_id": ACTOR, "tenant_id": TENANT, "role": "user"})
    assert ctx == SessionContext(actor_id=ACTOR, tenant_id=TENANT, role=Role.USER)
    assert not ctx.is_super_admin


def test_context_rejects_inconsistent_claims():
    """super_admin is the only tenant-less role."""
    assert SessionContext.from_claims({"actor_id": ACTOR, "tenant_id": TENANT, "role": "super_admin"}) is None
    assert SessionContext.from_claims({"actor_id": ACTOR, "tenant_id": None, "role": "user"}) is None
    assert SessionContext.from_claims({"actor_id": ACTOR, "tenant_id": TENANT, "role": "owner"}) is None
    assert SessionContext.from_claims({"actor_id": None, "tenant_id": TENANT, "role": "user"}) is None
