"""Quota guard - per-tenant ceilings on users and projects."""

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wsm.errors import NotFound
from wsm.models import Project, Tenant, User

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    USER = "user"
    PROJECT = "project"


# kind -> (counted model, Tenant column holding the ceiling)
_QUOTAS = {
    ResourceKind.USER: (User, "max_users"),
    ResourceKind.PROJECT: (Project, "max_projects"),
}


@dataclass(frozen=True)
class Reservation:
    """Outcome of a reserve() call; ``granted`` False means the limit is reached."""

    kind: ResourceKind
    tenant_id: str
    used: int
    limit: int

    @property
    def granted(self) -> bool:
        return self.used < self.limit


async def reserve(db: AsyncSession, tenant_id: str, kind: ResourceKind) -> Reservation:
    """
    Check the tenant's ceiling for ``kind`` inside the caller's transaction.

    The tenant row is locked first, so a second reservation for the same
    tenant waits until this transaction commits its insert (or rolls back)
    before counting. The caller must insert and commit in the same
    transaction for the reservation to mean anything. On SQLite the lock
    clause is dropped and BEGIN IMMEDIATE gives the same serialization.
    """
    model, limit_column = _QUOTAS[kind]
    result = await db.execute(
        select(Tenant)
        .where(Tenant.id == tenant_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    tenant = result.scalar_one_or_none()
    if tenant is None:
        raise NotFound("Tenant not found")

    result = await db.execute(
        select(func.count()).select_from(model).where(model.tenant_id == tenant_id)
    )
    used = result.scalar_one()
    reservation = Reservation(
        kind=kind, tenant_id=str(tenant_id), used=used, limit=getattr(tenant, limit_column)
    )
    if not reservation.granted:
        logger.info(
            "Quota reached for tenant=%s kind=%s (%d/%d)",
            tenant_id,
            kind.value,
            reservation.used,
            reservation.limit,
        )
    return reservation
