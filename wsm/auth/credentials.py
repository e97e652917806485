"""Credential verification - password hashes and session tokens."""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from wsm.config import settings

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 100_000


def hash_password(password: str) -> str:
    """
    Hash a password using PBKDF2-SHA256.

    Returns: salt:hash format string
    """
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS
    )
    return f"{salt}:{digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its stored hash."""
    try:
        salt, stored = password_hash.split(":")
    except (ValueError, AttributeError):
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS
    )
    return secrets.compare_digest(digest.hex(), stored)


def issue_token(actor_id: str, tenant_id: str | None, role: str) -> str:
    """Sign a session token carrying the actor, their tenant and role."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": actor_id,
        "tenant_id": tenant_id,
        "role": role,
        "iat": now,
        "exp": now + timedelta(seconds=settings.jwt_expires_in),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any] | None:
    """Return ``{actor_id, tenant_id, role}`` for a valid token, else None."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Rejected expired token")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug("Rejected invalid token: %s", e)
        return None
    return {
        "actor_id": payload["sub"],
        "tenant_id": payload.get("tenant_id"),
        "role": payload.get("role"),
    }
