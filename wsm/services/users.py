"""User services."""

import logging
from uuid import uuid4

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wsm.auth.context import SessionContext
from wsm.auth.credentials import hash_password
from wsm.engine.audit import AuditAction, AuditRecorder
from wsm.engine.authorization import Action, ensure_allowed
from wsm.engine.quota import ResourceKind, reserve
from wsm.errors import Conflict, LimitReached, NotFound, ValidationError
from wsm.models import Project, Task, User
from wsm.schemas.common import build_pagination, clamp_page
from wsm.schemas.user import (
    CreateUserRequest,
    UpdateUserRequest,
    UserListItem,
    UserOut,
    UserPage,
)
from wsm.storage import repositories as repo

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


async def create_user(
    db: AsyncSession,
    ctx: SessionContext,
    audit: AuditRecorder,
    tenant_id: str,
    body: CreateUserRequest,
) -> UserOut:
    """Add a user to a tenant, within the tenant's max_users."""
    ensure_allowed(ctx, Action.USER_CREATE, tenant_id)
    password_hash = hash_password(body.password)

    reservation = await reserve(db, tenant_id, ResourceKind.USER)
    if not reservation.granted:
        raise LimitReached("Subscription limit reached")
    if await repo.get_user_by_email(db, tenant_id, body.email):
        raise Conflict("Email already exists in this tenant")

    user = User(
        id=str(uuid4()),
        tenant_id=tenant_id,
        email=body.email,
        password_hash=password_hash,
        full_name=body.full_name,
        role=body.role.value,
        is_active=True,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Email already exists in this tenant") from None

    await audit.record(tenant_id, ctx.actor_id, AuditAction.CREATE_USER, "user", user.id)
    return UserOut.model_validate(user)


async def update_user(
    db: AsyncSession,
    ctx: SessionContext,
    audit: AuditRecorder,
    user_id: str,
    body: UpdateUserRequest,
) -> UserOut:
    """
    Update a user.

    A member may change only their own full_name; role and is_active are
    for a tenant_admin of the same tenant.
    """
    fields = body.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise ValidationError("No fields to update")
    user = await repo.get_user(db, user_id)
    if user is None:
        raise NotFound("User not found")

    action = Action.USER_UPDATE_PROFILE if fields.keys() == {"full_name"} else Action.USER_UPDATE
    ensure_allowed(ctx, action, user.tenant_id, user.id)

    for field, value in fields.items():
        setattr(user, field, getattr(value, "value", value))
    await db.commit()

    await audit.record(user.tenant_id, ctx.actor_id, AuditAction.UPDATE_USER, "user", user.id)
    return UserOut.model_validate(user)


async def delete_user(
    db: AsyncSession, ctx: SessionContext, audit: AuditRecorder, user_id: str
) -> None:
    """Delete a user; their projects pass to the deleting admin, their tasks go unassigned."""
    user = await repo.get_user(db, user_id)
    if user is None:
        raise NotFound("User not found")
    ensure_allowed(ctx, Action.USER_DELETE, user.tenant_id, user.id)

    tenant_id = user.tenant_id
    await db.execute(
        update(Project)
        .where(Project.tenant_id == tenant_id, Project.created_by == user.id)
        .values(created_by=ctx.actor_id)
    )
    await db.execute(
        update(Task)
        .where(Task.tenant_id == tenant_id, Task.assigned_to == user.id)
        .values(assigned_to=None)
    )
    await db.delete(user)
    await db.commit()

    await audit.record(tenant_id, ctx.actor_id, AuditAction.DELETE_USER, "user", user_id)


async def list_tenant_users(
    db: AsyncSession,
    ctx: SessionContext,
    tenant_id: str,
    search: str | None = None,
    role: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> UserPage:
    ensure_allowed(ctx, Action.USER_LIST, tenant_id)
    return await _user_page(db, tenant_id, search, role, page, limit)


async def list_all_users(
    db: AsyncSession,
    ctx: SessionContext,
    search: str | None = None,
    role: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> UserPage:
    """Every tenant's users - global, so only super_admin passes."""
    ensure_allowed(ctx, Action.USER_LIST, None)
    return await _user_page(db, None, search, role, page, limit)


async def _user_page(
    db: AsyncSession,
    tenant_id: str | None,
    search: str | None,
    role: str | None,
    page: int | None,
    limit: int | None,
) -> UserPage:
    page, limit, offset = clamp_page(page, limit, DEFAULT_PAGE_SIZE)
    rows, total = await repo.list_users(db, tenant_id, search, role, limit, offset)
    return UserPage(
        users=[
            UserListItem(**UserOut.model_validate(user).model_dump(), tenant_name=tenant_name)
            for user, tenant_name in rows
        ],
        total=total,
        pagination=build_pagination(total, page, limit),
    )
