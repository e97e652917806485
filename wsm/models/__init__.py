"""Database models."""

from wsm.models.audit import AuditLog
from wsm.models.enums import (
    ProjectStatus,
    Role,
    SubscriptionPlan,
    TaskPriority,
    TaskStatus,
    TenantStatus,
)
from wsm.models.project import Project, Task
from wsm.models.tenant import Tenant
from wsm.models.user import User

__all__ = [
    "Tenant",
    "User",
    "Project",
    "Task",
    "AuditLog",
    "Role",
    "TenantStatus",
    "SubscriptionPlan",
    "ProjectStatus",
    "TaskStatus",
    "TaskPriority",
]
