"""Project endpoints, including a project's task list."""

from uuid import UUID

from fastapi import APIRouter, Query

from wsm.auth.middleware import SessionDep
from wsm.database import DbDep
from wsm.engine.audit import AuditDep
from wsm.models.enums import ProjectStatus, TaskPriority, TaskStatus
from wsm.schemas.project import (
    CreateProjectRequest,
    CreateTaskRequest,
    ProjectOut,
    ProjectPage,
    TaskOut,
    TaskPage,
    UpdateProjectRequest,
)
from wsm.services import projects as project_service
from wsm.services import tasks as task_service

router = APIRouter()


@router.post("", response_model=ProjectOut, status_code=201)
async def create_project(
    body: CreateProjectRequest, ctx: SessionDep, db: DbDep, audit: AuditDep
):
    """Create a project in the caller's tenant, subject to its max_projects limit."""
    return await project_service.create_project(db, ctx, audit, body)


@router.get("", response_model=ProjectPage)
async def list_projects(
    ctx: SessionDep,
    db: DbDep,
    status: ProjectStatus | None = None,
    search: str | None = None,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
):
    return await project_service.list_projects(
        db,
        ctx,
        status=status.value if status else None,
        search=search,
        page=page,
        limit=limit,
    )


@router.put("/{project_id}", response_model=ProjectOut)
async def update_project(
    project_id: UUID, body: UpdateProjectRequest, ctx: SessionDep, db: DbDep, audit: AuditDep
):
    return await project_service.update_project(db, ctx, audit, str(project_id), body)


@router.delete("/{project_id}")
async def delete_project(project_id: UUID, ctx: SessionDep, db: DbDep, audit: AuditDep):
    """Delete a project and all of its tasks."""
    await project_service.delete_project(db, ctx, audit, str(project_id))
    return {"message": "Project deleted successfully"}


@router.post(
    "/{project_id}/tasks", response_model=TaskOut, status_code=201
)
async def create_task(
    project_id: UUID, body: CreateTaskRequest, ctx: SessionDep, db: DbDep, audit: AuditDep
):
    return await task_service.create_task(db, ctx, audit, str(project_id), body)


@router.get("/{project_id}/tasks", response_model=TaskPage)
async def list_project_tasks(
    project_id: UUID,
    ctx: SessionDep,
    db: DbDep,
    status: TaskStatus | None = None,
    assigned_to: UUID | None = None,
    priority: TaskPriority | None = None,
    search: str | None = None,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
):
    """Tasks of a project, highest priority first, then by due date."""
    return await task_service.list_project_tasks(
        db,
        ctx,
        str(project_id),
        status=status.value if status else None,
        assigned_to=str(assigned_to) if assigned_to else None,
        priority=priority.value if priority else None,
        search=search,
        page=page,
        limit=limit,
    )
