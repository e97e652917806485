"""Project services."""

import logging
from uuid import uuid4

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from wsm.auth.context import SessionContext
from wsm.engine.audit import AuditAction, AuditRecorder
from wsm.engine.authorization import Action, ensure_allowed
from wsm.engine.quota import ResourceKind, reserve
from wsm.errors import LimitReached, NotFound, ValidationError
from wsm.models import Project, Task
from wsm.schemas.common import build_pagination, clamp_page
from wsm.schemas.project import (
    CreateProjectRequest,
    ProjectListItem,
    ProjectOut,
    ProjectPage,
    UpdateProjectRequest,
)
from wsm.storage import repositories as repo

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


async def create_project(
    db: AsyncSession,
    ctx: SessionContext,
    audit: AuditRecorder,
    body: CreateProjectRequest,
) -> ProjectOut:
    """Create a project in the actor's tenant, within the tenant's max_projects."""
    ensure_allowed(ctx, Action.PROJECT_CREATE, ctx.tenant_id)

    reservation = await reserve(db, ctx.tenant_id, ResourceKind.PROJECT)
    if not reservation.granted:
        raise LimitReached("Project limit reached for your subscription plan")

    project = Project(
        id=str(uuid4()),
        tenant_id=ctx.tenant_id,
        name=body.name,
        description=body.description,
        status=body.status.value,
        created_by=ctx.actor_id,
    )
    db.add(project)
    await db.commit()

    await audit.record(
        project.tenant_id, ctx.actor_id, AuditAction.CREATE_PROJECT, "project", project.id
    )
    return ProjectOut.model_validate(project)


async def list_projects(
    db: AsyncSession,
    ctx: SessionContext,
    status: str | None = None,
    search: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> ProjectPage:
    """Projects visible to the actor: their tenant's, or every tenant's for super_admin."""
    ensure_allowed(ctx, Action.PROJECT_LIST, ctx.tenant_id)
    scope = None if ctx.is_super_admin else ctx.tenant_id
    page, limit, offset = clamp_page(page, limit, DEFAULT_PAGE_SIZE)
    rows, total = await repo.list_projects(db, scope, status, search, limit, offset)
    return ProjectPage(
        projects=[
            ProjectListItem(
                **ProjectOut.model_validate(project).model_dump(),
                creator_name=creator_name,
                task_count=task_count,
                completed_task_count=completed,
            )
            for project, creator_name, task_count, completed in rows
        ],
        total=total,
        pagination=build_pagination(total, page, limit),
    )


async def update_project(
    db: AsyncSession,
    ctx: SessionContext,
    audit: AuditRecorder,
    project_id: str,
    body: UpdateProjectRequest,
) -> ProjectOut:
    fields = body.model_dump(exclude_unset=True)
    if fields.get("name") is None:
        fields.pop("name", None)
    if fields.get("status") is None:
        fields.pop("status", None)
    if not fields:
        raise ValidationError("No fields to update")

    project = await repo.get_project(db, project_id)
    if project is None:
        raise NotFound("Project not found")
    ensure_allowed(ctx, Action.PROJECT_UPDATE, project.tenant_id)

    for field, value in fields.items():
        setattr(project, field, getattr(value, "value", value))
    await db.commit()

    await audit.record(
        project.tenant_id, ctx.actor_id, AuditAction.UPDATE_PROJECT, "project", project.id
    )
    return ProjectOut.model_validate(project)


async def delete_project(
    db: AsyncSession, ctx: SessionContext, audit: AuditRecorder, project_id: str
) -> None:
    """Delete a project and its tasks."""
    project = await repo.get_project(db, project_id)
    if project is None:
        raise NotFound("Project not found")
    ensure_allowed(ctx, Action.PROJECT_DELETE, project.tenant_id)

    tenant_id = project.tenant_id
    await db.execute(delete(Task).where(Task.project_id == project.id))
    await db.delete(project)
    await db.commit()

    await audit.record(tenant_id, ctx.actor_id, AuditAction.DELETE_PROJECT, "project", project_id)
