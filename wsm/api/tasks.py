"""Task endpoints."""

from uuid import UUID

from fastapi import APIRouter

from wsm.auth.middleware import SessionDep
from wsm.database import DbDep
from wsm.engine.audit import AuditDep
from wsm.schemas.project import TaskOut, UpdateTaskRequest, UpdateTaskStatusRequest
from wsm.services import tasks as task_service

router = APIRouter()


@router.patch("/{task_id}/status", response_model=TaskOut)
async def update_task_status(
    task_id: UUID, body: UpdateTaskStatusRequest, ctx: SessionDep, db: DbDep, audit: AuditDep
):
    """Change only the status. Members may move tasks assigned to them or unassigned ones."""
    return await task_service.update_task_status(db, ctx, audit, str(task_id), body)


@router.put("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: UUID, body: UpdateTaskRequest, ctx: SessionDep, db: DbDep, audit: AuditDep
):
    return await task_service.update_task(db, ctx, audit, str(task_id), body)


@router.delete("/{task_id}")
async def delete_task(task_id: UUID, ctx: SessionDep, db: DbDep, audit: AuditDep):
    await task_service.delete_task(db, ctx, audit, str(task_id))
    return {"message": "Task deleted successfully"}
