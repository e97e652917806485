"""Authorization engine - decides whether a session may perform an action.

One policy per role, looked up from ``ROLE_POLICIES``. Every resource
service calls ``authorize`` exactly once with the target's tenant (and,
where it matters, the owning user) and acts on the returned Decision.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from wsm.auth.context import SessionContext
from wsm.errors import Denied, DenyReason
from wsm.models.enums import Role

logger = logging.getLogger(__name__)


class Action(str, Enum):
    """Operations the engine knows about."""

    TENANT_READ = "tenant.read"
    TENANT_LIST = "tenant.list"
    USER_LIST = "user.list"
    PROJECT_LIST = "project.list"
    TASK_LIST = "task.list"

    TENANT_UPDATE = "tenant.update"  # name only
    TENANT_ADMINISTER = "tenant.administer"  # status, plan, limits
    USER_CREATE = "user.create"
    USER_UPDATE = "user.update"
    USER_UPDATE_PROFILE = "user.update_profile"  # own full name
    USER_DELETE = "user.delete"
    PROJECT_CREATE = "project.create"
    PROJECT_UPDATE = "project.update"
    PROJECT_DELETE = "project.delete"
    TASK_CREATE = "task.create"
    TASK_UPDATE = "task.update"
    TASK_UPDATE_STATUS = "task.update_status"
    TASK_DELETE = "task.delete"

    @property
    def is_read(self) -> bool:
        return self in READ_ACTIONS


READ_ACTIONS = frozenset(
    {
        Action.TENANT_READ,
        Action.TENANT_LIST,
        Action.USER_LIST,
        Action.PROJECT_LIST,
        Action.TASK_LIST,
    }
)

# Platform administration is the one mutation super_admin keeps.
SUPER_ADMIN_MUTATIONS = frozenset({Action.TENANT_ADMINISTER})


@dataclass(frozen=True)
class Decision:
    """Allow, or Deny with a reason."""

    allowed: bool
    reason: DenyReason | None = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def deny(reason: DenyReason) -> Decision:
    return Decision(False, reason)


def _same_tenant(ctx: SessionContext, resource_tenant_id: str | None) -> bool:
    if ctx.tenant_id is None or resource_tenant_id is None:
        return False
    return str(ctx.tenant_id) == str(resource_tenant_id)


def _super_admin_policy(
    ctx: SessionContext, action: Action, resource_tenant_id: str | None, owner_id: str | None
) -> Decision:
    if action.is_read or action in SUPER_ADMIN_MUTATIONS:
        return ALLOW
    return deny(DenyReason.READ_ONLY_ROLE)


def _tenant_admin_policy(
    ctx: SessionContext, action: Action, resource_tenant_id: str | None, owner_id: str | None
) -> Decision:
    if not _same_tenant(ctx, resource_tenant_id):
        return deny(DenyReason.CROSS_TENANT_ACCESS)
    if action == Action.TENANT_ADMINISTER:
        return deny(DenyReason.FIELD_REQUIRES_SUPER_ADMIN)
    if action == Action.USER_DELETE and owner_id is not None and str(owner_id) == ctx.actor_id:
        return deny(DenyReason.CANNOT_DELETE_SELF)
    return ALLOW


def _assignee_gate(ctx: SessionContext, owner_id: str | None) -> DenyReason | None:
    if owner_id is None or str(owner_id) == ctx.actor_id:
        return None
    return DenyReason.NOT_ASSIGNEE


def _own_profile_gate(ctx: SessionContext, owner_id: str | None) -> DenyReason | None:
    if owner_id is not None and str(owner_id) == ctx.actor_id:
        return None
    return DenyReason.INSUFFICIENT_ROLE


# The only mutations open to a regular member, each with its own gate.
MEMBER_MUTATIONS: dict[Action, Callable[[SessionContext, str | None], DenyReason | None]] = {
    Action.TASK_UPDATE_STATUS: _assignee_gate,
    Action.USER_UPDATE_PROFILE: _own_profile_gate,
}


def _member_policy(
    ctx: SessionContext, action: Action, resource_tenant_id: str | None, owner_id: str | None
) -> Decision:
    if not _same_tenant(ctx, resource_tenant_id):
        return deny(DenyReason.CROSS_TENANT_ACCESS)
    if action.is_read:
        return ALLOW
    gate = MEMBER_MUTATIONS.get(action)
    if gate is None:
        return deny(DenyReason.INSUFFICIENT_ROLE)
    reason = gate(ctx, owner_id)
    return ALLOW if reason is None else deny(reason)


ROLE_POLICIES: dict[
    Role, Callable[[SessionContext, Action, str | None, str | None], Decision]
] = {
    Role.SUPER_ADMIN: _super_admin_policy,
    Role.TENANT_ADMIN: _tenant_admin_policy,
    Role.USER: _member_policy,
}


def authorize(
    ctx: SessionContext,
    action: Action,
    resource_tenant_id: str | None,
    resource_owner_id: str | None = None,
) -> Decision:
    """
    Decide whether ``ctx`` may perform ``action`` on a resource.

    resource_tenant_id is the tenant owning the target (None for global
    resources such as the tenant directory). resource_owner_id is the user
    the rule cares about: a task's assignee, or the target user record.
    Never raises.
    """
    policy = ROLE_POLICIES.get(ctx.role)
    if policy is None:
        return deny(DenyReason.INSUFFICIENT_ROLE)
    return policy(ctx, action, resource_tenant_id, resource_owner_id)


def ensure_allowed(
    ctx: SessionContext,
    action: Action,
    resource_tenant_id: str | None,
    resource_owner_id: str | None = None,
) -> None:
    """authorize() for callers that turn a Deny into a Denied error."""
    decision = authorize(ctx, action, resource_tenant_id, resource_owner_id)
    if not decision:
        logger.info(
            "Denied %s for actor=%s role=%s tenant=%s target_tenant=%s: %s",
            action.value,
            ctx.actor_id,
            ctx.role.value,
            ctx.tenant_id,
            resource_tenant_id,
            decision.reason.value,
        )
        raise Denied(decision.reason)
