"""Repository functions for tenants, users, projects, tasks."""

from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from wsm.models import Project, Task, Tenant, User
from wsm.models.enums import Role, TaskStatus


def _contains(column, term: str):
    # % and _ in a search term match themselves
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return func.lower(column).like(f"%{escaped}%", escape="\\")


async def get_tenant(db: AsyncSession, tenant_id: str) -> Tenant | None:
    return await db.get(Tenant, tenant_id)


async def get_tenant_by_subdomain(db: AsyncSession, subdomain: str) -> Tenant | None:
    result = await db.execute(select(Tenant).where(Tenant.subdomain == subdomain))
    return result.scalar_one_or_none()


async def get_user(db: AsyncSession, user_id: str) -> User | None:
    return await db.get(User, user_id)


async def get_user_by_email(
    db: AsyncSession, tenant_id: str | None, email: str
) -> User | None:
    """Find a user by email within a tenant; tenant_id None searches super admins."""
    stmt = select(User).where(User.email == email)
    if tenant_id is None:
        stmt = stmt.where(User.tenant_id.is_(None), User.role == Role.SUPER_ADMIN.value)
    else:
        stmt = stmt.where(User.tenant_id == tenant_id)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def user_in_tenant(db: AsyncSession, user_id: str, tenant_id: str) -> bool:
    result = await db.execute(
        select(User.id).where(User.id == user_id, User.tenant_id == tenant_id)
    )
    return result.scalar_one_or_none() is not None


async def get_project(db: AsyncSession, project_id: str) -> Project | None:
    return await db.get(Project, project_id)


async def get_task(db: AsyncSession, task_id: str) -> Task | None:
    return await db.get(Task, task_id)


async def count_for_tenant(db: AsyncSession, model, tenant_id: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(model).where(model.tenant_id == tenant_id)
    )
    return result.scalar_one()


async def list_tenants(
    db: AsyncSession,
    status: str | None,
    subscription_plan: str | None,
    limit: int,
    offset: int,
) -> tuple[list[tuple[Tenant, int, int]], int]:
    """Page of tenants with (tenant, user_count, project_count), newest first."""
    filters = []
    if status:
        filters.append(Tenant.status == status)
    if subscription_plan:
        filters.append(Tenant.subscription_plan == subscription_plan)

    total = (
        await db.execute(select(func.count()).select_from(Tenant).where(*filters))
    ).scalar_one()

    user_counts = (
        select(User.tenant_id, func.count().label("n"))
        .group_by(User.tenant_id)
        .subquery()
    )
    project_counts = (
        select(Project.tenant_id, func.count().label("n"))
        .group_by(Project.tenant_id)
        .subquery()
    )
    result = await db.execute(
        select(
            Tenant,
            func.coalesce(user_counts.c.n, 0),
            func.coalesce(project_counts.c.n, 0),
        )
        .outerjoin(user_counts, user_counts.c.tenant_id == Tenant.id)
        .outerjoin(project_counts, project_counts.c.tenant_id == Tenant.id)
        .where(*filters)
        .order_by(Tenant.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return [tuple(row) for row in result.all()], total


async def list_users(
    db: AsyncSession,
    tenant_id: str | None,
    search: str | None,
    role: str | None,
    limit: int,
    offset: int,
) -> tuple[list[tuple[User, str | None]], int]:
    """Page of (user, tenant_name). tenant_id None lists every tenant's users."""
    filters = []
    if tenant_id is not None:
        filters.append(User.tenant_id == tenant_id)
    if search:
        filters.append(or_(_contains(User.full_name, search), _contains(User.email, search)))
    if role:
        filters.append(User.role == role)

    total = (
        await db.execute(select(func.count()).select_from(User).where(*filters))
    ).scalar_one()
    result = await db.execute(
        select(User, Tenant.name)
        .outerjoin(Tenant, User.tenant_id == Tenant.id)
        .where(*filters)
        .order_by(User.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return [tuple(row) for row in result.all()], total


async def list_projects(
    db: AsyncSession,
    tenant_id: str | None,
    status: str | None,
    search: str | None,
    limit: int,
    offset: int,
) -> tuple[list[tuple[Project, str | None, int, int]], int]:
    """Page of (project, creator_name, task_count, completed_task_count)."""
    filters = []
    if tenant_id is not None:
        filters.append(Project.tenant_id == tenant_id)
    if status:
        filters.append(Project.status == status)
    if search:
        filters.append(_contains(Project.name, search))

    total = (
        await db.execute(select(func.count()).select_from(Project).where(*filters))
    ).scalar_one()

    task_counts = (
        select(
            Task.project_id,
            func.count().label("total"),
            func.sum(case((Task.status == TaskStatus.COMPLETED.value, 1), else_=0)).label(
                "completed"
            ),
        )
        .group_by(Task.project_id)
        .subquery()
    )
    result = await db.execute(
        select(
            Project,
            User.full_name,
            func.coalesce(task_counts.c.total, 0),
            func.coalesce(task_counts.c.completed, 0),
        )
        .outerjoin(User, Project.created_by == User.id)
        .outerjoin(task_counts, task_counts.c.project_id == Project.id)
        .where(*filters)
        .order_by(Project.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return [tuple(row) for row in result.all()], total


# high first
_PRIORITY_RANK = case(
    (Task.priority == "high", 1),
    (Task.priority == "medium", 2),
    (Task.priority == "low", 3),
    else_=4,
)


async def list_tasks(
    db: AsyncSession,
    project_id: str,
    status: str | None,
    assigned_to: str | None,
    priority: str | None,
    search: str | None,
    limit: int,
    offset: int,
) -> tuple[list[tuple[Task, str | None, str | None]], int]:
    """Page of (task, assignee_name, assignee_email) by priority, then due date."""
    filters = [Task.project_id == project_id]
    if status:
        filters.append(Task.status == status)
    if assigned_to:
        filters.append(Task.assigned_to == assigned_to)
    if priority:
        filters.append(Task.priority == priority)
    if search:
        filters.append(_contains(Task.title, search))

    total = (
        await db.execute(select(func.count()).select_from(Task).where(*filters))
    ).scalar_one()
    result = await db.execute(
        select(Task, User.full_name, User.email)
        .outerjoin(User, Task.assigned_to == User.id)
        .where(*filters)
        .order_by(_PRIORITY_RANK, Task.due_date.is_(None), Task.due_date, Task.created_at)
        .limit(limit)
        .offset(offset)
    )
    return [tuple(row) for row in result.all()], total
