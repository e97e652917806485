"""Bearer token authentication middleware."""

import logging
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader

from wsm.auth.context import SessionContext
from wsm.auth.credentials import decode_token
from wsm.errors import Unauthenticated

logger = logging.getLogger(__name__)

AUTH_HEADER = APIKeyHeader(name="Authorization", auto_error=False)


async def get_session_context(
    request: Request,
    auth_header: str | None = Depends(AUTH_HEADER),
) -> SessionContext:
    """Build the request's SessionContext from its Bearer token."""
    if not auth_header or not auth_header.startswith("Bearer "):
        raise Unauthenticated("Missing or invalid Authorization header")
    token = auth_header[7:].strip()
    if not token:
        raise Unauthenticated("Missing token")
    claims = decode_token(token)
    if claims is None:
        raise Unauthenticated("Invalid or expired token")
    ctx = SessionContext.from_claims(claims)
    if ctx is None:
        logger.warning("Token with inconsistent claims rejected (path=%s)", request.url.path)
        raise Unauthenticated("Invalid or expired token")
    return ctx


# Type alias for dependency injection
SessionDep = Annotated[SessionContext, Depends(get_session_context)]
