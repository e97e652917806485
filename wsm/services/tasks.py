"""Task services."""

import logging
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from wsm.auth.context import SessionContext
from wsm.engine.audit import AuditAction, AuditRecorder
from wsm.engine.authorization import Action, ensure_allowed
from wsm.errors import NotFound, ValidationError
from wsm.models import Task
from wsm.schemas.common import build_pagination, clamp_page
from wsm.schemas.project import (
    CreateTaskRequest,
    TaskListItem,
    TaskOut,
    TaskPage,
    UpdateTaskRequest,
    UpdateTaskStatusRequest,
)
from wsm.storage import repositories as repo

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50

# Columns that may not be cleared by sending null
_REQUIRED_FIELDS = ("title", "status", "priority")


async def _check_assignee(db: AsyncSession, assigned_to: str | None, tenant_id: str) -> None:
    if assigned_to and not await repo.user_in_tenant(db, assigned_to, tenant_id):
        raise ValidationError("Assigned user does not belong to this tenant")


async def _get_task(db: AsyncSession, task_id: str) -> Task:
    task = await repo.get_task(db, task_id)
    if task is None:
        raise NotFound("Task not found")
    return task


async def create_task(
    db: AsyncSession,
    ctx: SessionContext,
    audit: AuditRecorder,
    project_id: str,
    body: CreateTaskRequest,
) -> TaskOut:
    """Create a task under a project; it inherits the project's tenant."""
    project = await repo.get_project(db, project_id)
    if project is None:
        raise NotFound("Project not found")
    ensure_allowed(ctx, Action.TASK_CREATE, project.tenant_id)
    await _check_assignee(db, body.assigned_to, project.tenant_id)

    task = Task(
        id=str(uuid4()),
        project_id=project.id,
        tenant_id=project.tenant_id,
        title=body.title,
        description=body.description,
        status="todo",
        priority=body.priority.value,
        assigned_to=body.assigned_to,
        due_date=body.due_date,
    )
    db.add(task)
    await db.commit()

    await audit.record(task.tenant_id, ctx.actor_id, AuditAction.CREATE_TASK, "task", task.id)
    return TaskOut.model_validate(task)


async def list_project_tasks(
    db: AsyncSession,
    ctx: SessionContext,
    project_id: str,
    status: str | None = None,
    assigned_to: str | None = None,
    priority: str | None = None,
    search: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> TaskPage:
    project = await repo.get_project(db, project_id)
    if project is None:
        raise NotFound("Project not found")
    ensure_allowed(ctx, Action.TASK_LIST, project.tenant_id)

    page, limit, offset = clamp_page(page, limit, DEFAULT_PAGE_SIZE)
    rows, total = await repo.list_tasks(
        db, project.id, status, assigned_to, priority, search, limit, offset
    )
    return TaskPage(
        tasks=[
            TaskListItem(
                **TaskOut.model_validate(task).model_dump(),
                assignee_name=name,
                assignee_email=email,
            )
            for task, name, email in rows
        ],
        total=total,
        pagination=build_pagination(total, page, limit),
    )


async def update_task_status(
    db: AsyncSession,
    ctx: SessionContext,
    audit: AuditRecorder,
    task_id: str,
    body: UpdateTaskStatusRequest,
) -> TaskOut:
    """Move a task between statuses. Members may only move their own or unassigned tasks."""
    task = await _get_task(db, task_id)
    ensure_allowed(ctx, Action.TASK_UPDATE_STATUS, task.tenant_id, task.assigned_to)

    task.status = body.status.value
    await db.commit()

    await audit.record(
        task.tenant_id, ctx.actor_id, AuditAction.UPDATE_TASK_STATUS, "task", task.id
    )
    return TaskOut.model_validate(task)


async def update_task(
    db: AsyncSession,
    ctx: SessionContext,
    audit: AuditRecorder,
    task_id: str,
    body: UpdateTaskRequest,
) -> TaskOut:
    fields = body.model_dump(exclude_unset=True)
    for name in _REQUIRED_FIELDS:
        if name in fields and fields[name] is None:
            del fields[name]
    if not fields:
        raise ValidationError("No fields to update")

    task = await _get_task(db, task_id)
    ensure_allowed(ctx, Action.TASK_UPDATE, task.tenant_id)
    if "assigned_to" in fields:
        await _check_assignee(db, fields["assigned_to"], task.tenant_id)

    for field, value in fields.items():
        setattr(task, field, getattr(value, "value", value))
    await db.commit()

    await audit.record(task.tenant_id, ctx.actor_id, AuditAction.UPDATE_TASK, "task", task.id)
    return TaskOut.model_validate(task)


async def delete_task(
    db: AsyncSession, ctx: SessionContext, audit: AuditRecorder, task_id: str
) -> None:
    task = await _get_task(db, task_id)
    ensure_allowed(ctx, Action.TASK_DELETE, task.tenant_id)

    tenant_id = task.tenant_id
    await db.delete(task)
    await db.commit()

    await audit.record(tenant_id, ctx.actor_id, AuditAction.DELETE_TASK, "task", task_id)
