"""Tenant services."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from wsm.auth.context import SessionContext
from wsm.engine.audit import AuditAction, AuditRecorder
from wsm.engine.authorization import Action, ensure_allowed
from wsm.errors import NotFound, ValidationError
from wsm.models import Project, Task, User
from wsm.schemas.common import build_pagination, clamp_page
from wsm.schemas.tenant import (
    ADMIN_FIELDS,
    TenantDetail,
    TenantListItem,
    TenantPage,
    TenantStats,
    TenantSummary,
    UpdateTenantRequest,
)
from wsm.storage import repositories as repo

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


async def get_tenant_details(
    db: AsyncSession, ctx: SessionContext, tenant_id: str
) -> TenantDetail:
    ensure_allowed(ctx, Action.TENANT_READ, tenant_id)
    tenant = await repo.get_tenant(db, tenant_id)
    if tenant is None:
        raise NotFound("Tenant not found")
    stats = TenantStats(
        total_users=await repo.count_for_tenant(db, User, tenant.id),
        total_projects=await repo.count_for_tenant(db, Project, tenant.id),
        total_tasks=await repo.count_for_tenant(db, Task, tenant.id),
    )
    return TenantDetail(
        **TenantSummary.model_validate(tenant).model_dump(),
        created_at=tenant.created_at,
        stats=stats,
    )


async def update_tenant(
    db: AsyncSession,
    ctx: SessionContext,
    audit: AuditRecorder,
    tenant_id: str,
    body: UpdateTenantRequest,
) -> TenantSummary:
    """
    Update a tenant.

    name is tenant self-service (tenant_admin); status, plan and limits are
    platform administration (super_admin). A request mixing both needs both.
    Lowering a limit never touches resources that already exist.
    """
    fields = body.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise ValidationError("No fields to update")
    if "name" in fields:
        ensure_allowed(ctx, Action.TENANT_UPDATE, tenant_id)
    if ADMIN_FIELDS & fields.keys():
        ensure_allowed(ctx, Action.TENANT_ADMINISTER, tenant_id)

    tenant = await repo.get_tenant(db, tenant_id)
    if tenant is None:
        raise NotFound("Tenant not found")
    for field, value in fields.items():
        setattr(tenant, field, getattr(value, "value", value))
    await db.commit()

    await audit.record(tenant.id, ctx.actor_id, AuditAction.UPDATE_TENANT, "tenant", tenant.id)
    return TenantSummary.model_validate(tenant)


async def list_tenants(
    db: AsyncSession,
    ctx: SessionContext,
    status: str | None = None,
    subscription_plan: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> TenantPage:
    """Tenant directory - global, so only super_admin passes."""
    ensure_allowed(ctx, Action.TENANT_LIST, None)
    page, limit, offset = clamp_page(page, limit, DEFAULT_PAGE_SIZE)
    rows, total = await repo.list_tenants(db, status, subscription_plan, limit, offset)
    return TenantPage(
        tenants=[
            TenantListItem(
                **TenantSummary.model_validate(tenant).model_dump(),
                created_at=tenant.created_at,
                total_users=users,
                total_projects=projects,
            )
            for tenant, users, projects in rows
        ],
        total=total,
        pagination=build_pagination(total, page, limit),
    )
