"""Service error taxonomy.

Services raise these; the API layer turns them into HTTP responses (see
``wsm.main``). Nothing here knows about HTTP status codes.
"""

from enum import Enum


class DenyReason(str, Enum):
    """Why the authorization engine refused an action."""

    READ_ONLY_ROLE = "ReadOnlyRole"
    CROSS_TENANT_ACCESS = "CrossTenantAccess"
    INSUFFICIENT_ROLE = "InsufficientRole"
    NOT_ASSIGNEE = "NotAssignee"
    CANNOT_DELETE_SELF = "CannotDeleteSelf"
    FIELD_REQUIRES_SUPER_ADMIN = "FieldRequiresSuperAdmin"


DENY_MESSAGES: dict[DenyReason, str] = {
    DenyReason.READ_ONLY_ROLE: "Super admin is read-only",
    DenyReason.CROSS_TENANT_ACCESS: "Access denied",
    DenyReason.INSUFFICIENT_ROLE: "Insufficient permissions",
    DenyReason.NOT_ASSIGNEE: "Access denied - not assigned to this task",
    DenyReason.CANNOT_DELETE_SELF: "Cannot delete yourself",
    DenyReason.FIELD_REQUIRES_SUPER_ADMIN: "Insufficient permissions to update those fields",
}


class ServiceError(Exception):
    """Base for every error a service surfaces to its caller."""

    kind = "InternalError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    kind = "ValidationError"


class NotFound(ServiceError):
    kind = "NotFound"


class Conflict(ServiceError):
    kind = "Conflict"


class LimitReached(ServiceError):
    kind = "LimitReached"


class Unauthenticated(ServiceError):
    kind = "Unauthenticated"


class Denied(ServiceError):
    kind = "Denied"

    def __init__(self, reason: DenyReason, message: str | None = None):
        super().__init__(message or DENY_MESSAGES[reason])
        self.reason = reason
