"""Audit recorder - best-effort trail of committed mutations."""

import logging
from enum import Enum
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wsm.database import async_session_maker
from wsm.models import AuditLog

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    TENANT_REGISTRATION = "TENANT_REGISTRATION"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    UPDATE_TENANT = "UPDATE_TENANT"
    CREATE_USER = "CREATE_USER"
    UPDATE_USER = "UPDATE_USER"
    DELETE_USER = "DELETE_USER"
    CREATE_PROJECT = "CREATE_PROJECT"
    UPDATE_PROJECT = "UPDATE_PROJECT"
    DELETE_PROJECT = "DELETE_PROJECT"
    CREATE_TASK = "CREATE_TASK"
    UPDATE_TASK = "UPDATE_TASK"
    UPDATE_TASK_STATUS = "UPDATE_TASK_STATUS"
    DELETE_TASK = "DELETE_TASK"


class AuditRecorder:
    """
    Writes audit entries through its own short-lived session.

    Call ``record`` only after the primary transaction has committed. It
    never raises: a failed write is logged and dropped so the operation
    that triggered it still succeeds.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def record(
        self,
        tenant_id: str | None,
        actor_id: str,
        action: AuditAction,
        entity_type: str,
        entity_id: str | None,
        ip_address: str | None = None,
    ) -> None:
        try:
            async with self._session_maker() as session:
                session.add(
                    AuditLog(
                        tenant_id=tenant_id,
                        user_id=actor_id,
                        action=action.value,
                        entity_type=entity_type,
                        entity_id=entity_id,
                        ip_address=ip_address,
                    )
                )
                await session.commit()
        except Exception:
            logger.exception(
                "Audit logging failed: action=%s entity=%s:%s actor=%s tenant=%s",
                action.value,
                entity_type,
                entity_id,
                actor_id,
                tenant_id,
            )


default_recorder = AuditRecorder(async_session_maker)


def get_audit_recorder() -> AuditRecorder:
    """Dependency returning the process-wide recorder."""
    return default_recorder


AuditDep = Annotated[AuditRecorder, Depends(get_audit_recorder)]
