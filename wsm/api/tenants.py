"""Tenant endpoints, including a tenant's user directory."""

from uuid import UUID

from fastapi import APIRouter, Query

from wsm.auth.middleware import SessionDep
from wsm.database import DbDep
from wsm.engine.audit import AuditDep
from wsm.models.enums import Role, SubscriptionPlan, TenantStatus
from wsm.schemas.tenant import TenantDetail, TenantPage, TenantSummary, UpdateTenantRequest
from wsm.schemas.user import CreateUserRequest, UserOut, UserPage
from wsm.services import tenants as tenant_service
from wsm.services import users as user_service

router = APIRouter()


@router.get("", response_model=TenantPage)
async def list_tenants(
    ctx: SessionDep,
    db: DbDep,
    status: TenantStatus | None = None,
    subscription_plan: SubscriptionPlan | None = None,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
):
    """All tenants with user/project counts (super_admin only)."""
    return await tenant_service.list_tenants(
        db,
        ctx,
        status=status.value if status else None,
        subscription_plan=subscription_plan.value if subscription_plan else None,
        page=page,
        limit=limit,
    )


@router.get("/{tenant_id}", response_model=TenantDetail)
async def get_tenant(tenant_id: UUID, ctx: SessionDep, db: DbDep):
    return await tenant_service.get_tenant_details(db, ctx, str(tenant_id))


@router.put("/{tenant_id}", response_model=TenantSummary)
async def update_tenant(
    tenant_id: UUID, body: UpdateTenantRequest, ctx: SessionDep, db: DbDep, audit: AuditDep
):
    """
    Update a tenant. A tenant_admin may rename their own tenant;
    status, plan and limits are reserved to super_admin.
    """
    return await tenant_service.update_tenant(db, ctx, audit, str(tenant_id), body)


@router.post(
    "/{tenant_id}/users", response_model=UserOut, status_code=201
)
async def create_user(
    tenant_id: UUID, body: CreateUserRequest, ctx: SessionDep, db: DbDep, audit: AuditDep
):
    """Add a user to the tenant, subject to its max_users limit."""
    return await user_service.create_user(db, ctx, audit, str(tenant_id), body)


@router.get("/{tenant_id}/users", response_model=UserPage)
async def list_tenant_users(
    tenant_id: UUID,
    ctx: SessionDep,
    db: DbDep,
    search: str | None = None,
    role: Role | None = None,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
):
    return await user_service.list_tenant_users(
        db,
        ctx,
        str(tenant_id),
        search=search,
        role=role.value if role else None,
        page=page,
        limit=limit,
    )
