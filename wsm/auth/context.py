"""Session context - the trusted "who is asking" for one request."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from wsm.models.enums import Role


@dataclass(frozen=True)
class SessionContext:
    """
    Decoded claims attached to a request.

    Frozen: nothing downstream can change the actor, tenant or role once the
    token has been verified.
    """

    actor_id: str
    tenant_id: str | None
    role: Role

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> SessionContext | None:
        """Build a context from decoded token claims; None if they don't hang together."""
        actor_id = claims.get("actor_id")
        tenant_id = claims.get("tenant_id")
        try:
            role = Role(claims.get("role"))
        except ValueError:
            return None
        if not actor_id:
            return None
        # super_admin is the only tenant-less role
        if (role == Role.SUPER_ADMIN) != (tenant_id is None):
            return None
        return cls(actor_id=str(actor_id), tenant_id=tenant_id, role=role)
