"""Project and task schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wsm.models.enums import ProjectStatus, TaskPriority, TaskStatus
from wsm.schemas.common import Pagination


def _normalize_user_id(v: str | None) -> str | None:
    if v is None or v == "":
        return None
    try:
        return str(UUID(v))
    except ValueError:
        raise ValueError("assigned_to must be a user id") from None


class CreateProjectRequest(BaseModel):
    """POST /api/projects request."""

    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    status: ProjectStatus = ProjectStatus.ACTIVE


class UpdateProjectRequest(BaseModel):
    """PUT /api/projects/{project_id} request."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    status: ProjectStatus | None = None


class ProjectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    name: str
    description: str | None
    status: str
    created_by: str
    created_at: datetime


class ProjectListItem(ProjectOut):
    creator_name: str | None = None
    task_count: int = 0
    completed_task_count: int = 0


class ProjectPage(BaseModel):
    projects: list[ProjectListItem]
    total: int
    pagination: Pagination


class CreateTaskRequest(BaseModel):
    """POST /api/projects/{project_id}/tasks request."""

    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    assigned_to: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: date | None = None

    @field_validator("assigned_to", mode="after")
    @classmethod
    def check_assignee(cls, v: str | None) -> str | None:
        return _normalize_user_id(v)


class UpdateTaskRequest(BaseModel):
    """PUT /api/tasks/{task_id} request. Sending assigned_to: null unassigns."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    assigned_to: str | None = None
    due_date: date | None = None

    @field_validator("assigned_to", mode="after")
    @classmethod
    def check_assignee(cls, v: str | None) -> str | None:
        return _normalize_user_id(v)


class UpdateTaskStatusRequest(BaseModel):
    """PATCH /api/tasks/{task_id}/status request."""

    status: TaskStatus


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    tenant_id: str
    title: str
    description: str | None
    status: str
    priority: str
    assigned_to: str | None
    due_date: date | None
    created_at: datetime


class TaskListItem(TaskOut):
    assignee_name: str | None = None
    assignee_email: str | None = None


class TaskPage(BaseModel):
    tasks: list[TaskListItem]
    total: int
    pagination: Pagination
