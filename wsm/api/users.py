"""User endpoints outside a single tenant's path."""

from uuid import UUID

from fastapi import APIRouter, Query

from wsm.auth.middleware import SessionDep
from wsm.database import DbDep
from wsm.engine.audit import AuditDep
from wsm.models.enums import Role
from wsm.schemas.user import UpdateUserRequest, UserOut, UserPage
from wsm.services import users as user_service

router = APIRouter()


@router.get("", response_model=UserPage)
async def list_all_users(
    ctx: SessionDep,
    db: DbDep,
    search: str | None = None,
    role: Role | None = None,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
):
    """Users of every tenant (super_admin only)."""
    return await user_service.list_all_users(
        db, ctx, search=search, role=role.value if role else None, page=page, limit=limit
    )


@router.put("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: UUID, body: UpdateUserRequest, ctx: SessionDep, db: DbDep, audit: AuditDep
):
    return await user_service.update_user(db, ctx, audit, str(user_id), body)


@router.delete("/{user_id}")
async def delete_user(user_id: UUID, ctx: SessionDep, db: DbDep, audit: AuditDep):
    await user_service.delete_user(db, ctx, audit, str(user_id))
    return {"message": "User deleted successfully"}
