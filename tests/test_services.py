"""Resource service tests - isolation, role rules and cascades."""

from datetime import date

import pytest
from sqlalchemy import select

from conftest import (
    ADMIN_PASSWORD,
    SUPER_ADMIN_EMAIL,
    SUPER_ADMIN_PASSWORD,
    admin_context,
    fetch_all,
    member_context,
    register,
)
from wsm.auth.credentials import decode_token
from wsm.errors import (
    Conflict,
    Denied,
    DenyReason,
    LimitReached,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from wsm.models import Project, Task, Tenant
from wsm.models.enums import Role, TaskStatus
from wsm.schemas.auth import LoginRequest
from wsm.schemas.project import (
    CreateProjectRequest,
    CreateTaskRequest,
    UpdateProjectRequest,
    UpdateTaskRequest,
    UpdateTaskStatusRequest,
)
from wsm.schemas.tenant import UpdateTenantRequest
from wsm.schemas.user import CreateUserRequest, UpdateUserRequest
from wsm.services import auth, projects, tasks, tenants, users


async def add_member(call, audit, registration, name: str, role: Role = Role.USER):
    body = CreateUserRequest(
        email=f"{name}@{registration.subdomain}.com",
        password="member-pass",
        full_name=name.title(),
        role=role,
    )
    return await call(users.create_user, admin_context(registration), audit, registration.tenant_id, body)


@pytest.fixture
async def acme_project(call, audit, acme):
    return await call(
        projects.create_project, admin_context(acme), audit, CreateProjectRequest(name="Launch")
    )


# --- registration and login ---


async def test_acme_registration_login_and_quota(call, audit, session_maker, acme):
    """Register, log in, fill the user quota, and get refused on the next one."""
    tenant = (await fetch_all(session_maker, select(Tenant).where(Tenant.id == acme.tenant_id)))[0]
    assert (tenant.status, tenant.subscription_plan) == ("active", "free")
    assert (tenant.max_users, tenant.max_projects) == (5, 3)
    assert acme.admin_user.role == "tenant_admin"

    login = await call(
        auth.login,
        audit,
        LoginRequest(email="admin@acme.com", password=ADMIN_PASSWORD, tenant_subdomain="acme"),
    )
    assert decode_token(login.token) == {
        "actor_id": acme.admin_user.id,
        "tenant_id": acme.tenant_id,
        "role": "tenant_admin",
    }
    assert login.user.id == acme.admin_user.id
    assert login.tenant.subdomain == "acme"

    for name in ("ann", "bob", "cid", "dee"):
        await add_member(call, audit, acme, name)
    with pytest.raises(LimitReached):
        await add_member(call, audit, acme, "eve")


async def test_duplicate_subdomain_conflicts(call, audit, acme):
    with pytest.raises(Conflict):
        await register(call, audit, "acme")


async def test_login_rejects_wrong_password(call, audit, acme):
    with pytest.raises(Unauthenticated):
        await call(
            auth.login,
            audit,
            LoginRequest(email="admin@acme.com", password="nope", tenant_subdomain="acme"),
        )


async def test_login_unknown_subdomain(call, audit):
    with pytest.raises(NotFound):
        await call(
            auth.login, audit, LoginRequest(email="a@b.com", password="x", tenant_subdomain="nowhere")
        )


async def test_login_is_scoped_to_subdomain(call, audit, acme, globex):
    """acme's admin cannot log in through globex."""
    with pytest.raises(Unauthenticated):
        await call(
            auth.login,
            audit,
            LoginRequest(email="admin@acme.com", password=ADMIN_PASSWORD, tenant_subdomain="globex"),
        )


async def test_suspended_tenant_cannot_log_in(call, audit, acme, super_admin):
    await call(
        tenants.update_tenant, super_admin, audit, acme.tenant_id, UpdateTenantRequest(status="suspended")
    )
    with pytest.raises(Unauthenticated):
        await call(
            auth.login,
            audit,
            LoginRequest(email="admin@acme.com", password=ADMIN_PASSWORD, tenant_subdomain="acme"),
        )


async def test_trial_tenant_cannot_log_in(call, audit, acme, super_admin):
    await call(
        tenants.update_tenant, super_admin, audit, acme.tenant_id, UpdateTenantRequest(status="trial")
    )
    with pytest.raises(Unauthenticated) as exc_info:
        await call(
            auth.login,
            audit,
            LoginRequest(email="admin@acme.com", password=ADMIN_PASSWORD, tenant_subdomain="acme"),
        )
    assert exc_info.value.message == "Tenant account is not active"


async def test_inactive_user_cannot_log_in(call, audit, acme):
    member = await add_member(call, audit, acme, "ann")
    await call(
        users.update_user, admin_context(acme), audit, member.id, UpdateUserRequest(is_active=False)
    )
    with pytest.raises(Unauthenticated):
        await call(
            auth.login,
            audit,
            LoginRequest(email="ann@acme.com", password="member-pass", tenant_subdomain="acme"),
        )


async def test_super_admin_logs_in_without_subdomain(call, audit, super_admin):
    login = await call(
        auth.login, audit, LoginRequest(email=SUPER_ADMIN_EMAIL, password=SUPER_ADMIN_PASSWORD)
    )
    assert login.user.role == "super_admin"
    assert login.tenant is None


async def test_tenant_user_cannot_log_in_without_subdomain(call, audit, acme):
    with pytest.raises(Unauthenticated):
        await call(auth.login, audit, LoginRequest(email="admin@acme.com", password=ADMIN_PASSWORD))


async def test_current_user_includes_tenant(call, acme):
    me = await call(auth.get_current_user, admin_context(acme))
    assert me.email == "admin@acme.com"
    assert me.tenant.id == acme.tenant_id


# --- isolation ---


async def test_cross_tenant_access_denied(call, audit, acme, globex, acme_project):
    """globex's admin can neither read nor touch acme's data."""
    outsider = admin_context(globex)

    with pytest.raises(Denied) as exc_info:
        await call(tenants.get_tenant_details, outsider, acme.tenant_id)
    assert exc_info.value.reason == DenyReason.CROSS_TENANT_ACCESS

    with pytest.raises(Denied):
        await call(users.list_tenant_users, outsider, acme.tenant_id)
    with pytest.raises(Denied):
        await call(
            projects.update_project, outsider, audit, acme_project.id, UpdateProjectRequest(name="x")
        )
    with pytest.raises(Denied):
        await call(tasks.create_task, outsider, audit, acme_project.id, CreateTaskRequest(title="x"))
    with pytest.raises(Denied):
        await call(projects.delete_project, outsider, audit, acme_project.id)


async def test_project_listing_is_tenant_scoped(call, audit, acme, globex, acme_project, super_admin):
    await call(
        projects.create_project, admin_context(globex), audit, CreateProjectRequest(name="Other")
    )

    acme_page = await call(projects.list_projects, admin_context(acme))
    assert [p.name for p in acme_page.projects] == ["Launch"]
    assert acme_page.total == 1

    everything = await call(projects.list_projects, super_admin)
    assert everything.total == 2


async def test_cannot_assign_task_to_other_tenant_user(call, audit, acme, globex, acme_project):
    with pytest.raises(ValidationError):
        await call(
            tasks.create_task,
            admin_context(acme),
            audit,
            acme_project.id,
            CreateTaskRequest(title="T", assigned_to=globex.admin_user.id),
        )


async def test_task_inherits_project_tenant(call, audit, acme, acme_project):
    task = await call(
        tasks.create_task, admin_context(acme), audit, acme_project.id, CreateTaskRequest(title="T")
    )
    assert task.tenant_id == acme_project.tenant_id == acme.tenant_id
    assert task.status == "todo"


# --- super admin ---


async def test_super_admin_is_read_only(call, audit, acme, acme_project, super_admin):
    details = await call(tenants.get_tenant_details, super_admin, acme.tenant_id)
    assert details.stats.total_projects == 1

    for attempt in (
        call(projects.create_project, super_admin, audit, CreateProjectRequest(name="x")),
        call(projects.delete_project, super_admin, audit, acme_project.id),
        call(users.create_user, super_admin, audit, acme.tenant_id,
             CreateUserRequest(email="x@acme.com", password="password1", full_name="X")),
        call(tenants.update_tenant, super_admin, audit, acme.tenant_id, UpdateTenantRequest(name="Renamed")),
    ):
        with pytest.raises(Denied) as exc_info:
            await attempt
        assert exc_info.value.reason == DenyReason.READ_ONLY_ROLE


async def test_super_admin_lists_tenants_and_users(call, audit, acme, globex, super_admin):
    page = await call(tenants.list_tenants, super_admin)
    assert page.total == 2
    assert {t.subdomain for t in page.tenants} == {"acme", "globex"}
    assert all(t.total_users == 1 for t in page.tenants)

    every_user = await call(users.list_all_users, super_admin)
    assert every_user.total == 3  # two tenant admins and the super admin


async def test_tenant_admin_cannot_list_all_tenants(call, acme):
    with pytest.raises(Denied):
        await call(tenants.list_tenants, admin_context(acme))
    with pytest.raises(Denied):
        await call(users.list_all_users, admin_context(acme))


# --- tenant updates ---


async def test_tenant_admin_renames_own_tenant(call, audit, acme):
    updated = await call(
        tenants.update_tenant, admin_context(acme), audit, acme.tenant_id, UpdateTenantRequest(name="Acme Corp")
    )
    assert updated.name == "Acme Corp"


async def test_tenant_admin_cannot_change_limits(call, audit, acme):
    with pytest.raises(Denied) as exc_info:
        await call(
            tenants.update_tenant,
            admin_context(acme),
            audit,
            acme.tenant_id,
            UpdateTenantRequest(name="Acme", max_users=50),
        )
    assert exc_info.value.reason == DenyReason.FIELD_REQUIRES_SUPER_ADMIN


async def test_super_admin_changes_plan(call, audit, acme, super_admin):
    updated = await call(
        tenants.update_tenant,
        super_admin,
        audit,
        acme.tenant_id,
        UpdateTenantRequest(subscription_plan="pro", max_users=20),
    )
    assert updated.subscription_plan == "pro"
    assert updated.max_users == 20


async def test_empty_tenant_update_rejected(call, audit, acme):
    with pytest.raises(ValidationError):
        await call(tenants.update_tenant, admin_context(acme), audit, acme.tenant_id, UpdateTenantRequest())


# --- members ---


async def test_member_cannot_create_projects(call, audit, acme):
    member = member_context(await add_member(call, audit, acme, "ann"))
    with pytest.raises(Denied) as exc_info:
        await call(projects.create_project, member, audit, CreateProjectRequest(name="Mine"))
    assert exc_info.value.reason == DenyReason.INSUFFICIENT_ROLE


async def test_member_status_update_requires_assignment(call, audit, session_maker, acme, acme_project):
    admin = admin_context(acme)
    ann = await add_member(call, audit, acme, "ann")
    bob = await add_member(call, audit, acme, "bob")
    bobs_task = await call(
        tasks.create_task, admin, audit, acme_project.id, CreateTaskRequest(title="B", assigned_to=bob.id)
    )
    open_task = await call(tasks.create_task, admin, audit, acme_project.id, CreateTaskRequest(title="O"))

    with pytest.raises(Denied) as exc_info:
        await call(
            tasks.update_task_status,
            member_context(ann),
            audit,
            bobs_task.id,
            UpdateTaskStatusRequest(status=TaskStatus.COMPLETED),
        )
    assert exc_info.value.reason == DenyReason.NOT_ASSIGNEE
    stored = (await fetch_all(session_maker, select(Task).where(Task.id == bobs_task.id)))[0]
    assert stored.status == "todo"

    moved = await call(
        tasks.update_task_status,
        member_context(bob),
        audit,
        bobs_task.id,
        UpdateTaskStatusRequest(status=TaskStatus.IN_PROGRESS),
    )
    assert moved.status == "in_progress"
    unassigned = await call(
        tasks.update_task_status,
        member_context(ann),
        audit,
        open_task.id,
        UpdateTaskStatusRequest(status=TaskStatus.COMPLETED),
    )
    assert unassigned.status == "completed"


async def test_member_cannot_edit_task_details(call, audit, acme, acme_project):
    ann = await add_member(call, audit, acme, "ann")
    task = await call(
        tasks.create_task, admin_context(acme), audit, acme_project.id,
        CreateTaskRequest(title="T", assigned_to=ann.id),
    )
    with pytest.raises(Denied):
        await call(tasks.update_task, member_context(ann), audit, task.id, UpdateTaskRequest(title="Mine now"))


async def test_member_edits_own_name_only(call, audit, acme):
    ann = await add_member(call, audit, acme, "ann")
    bob = await add_member(call, audit, acme, "bob")

    renamed = await call(
        users.update_user, member_context(ann), audit, ann.id, UpdateUserRequest(full_name="Ann B")
    )
    assert renamed.full_name == "Ann B"

    with pytest.raises(Denied):
        await call(users.update_user, member_context(ann), audit, bob.id, UpdateUserRequest(full_name="Bobby"))
    with pytest.raises(Denied):
        await call(
            users.update_user, member_context(ann), audit, ann.id, UpdateUserRequest(role=Role.TENANT_ADMIN)
        )


# --- users ---


async def test_duplicate_email_in_tenant_conflicts(call, audit, acme):
    await add_member(call, audit, acme, "ann")
    with pytest.raises(Conflict):
        await add_member(call, audit, acme, "ann")


async def test_same_email_in_two_tenants(call, audit, acme, globex):
    body = CreateUserRequest(email="shared@mail.com", password="password1", full_name="Shared")
    first = await call(users.create_user, admin_context(acme), audit, acme.tenant_id, body)
    second = await call(users.create_user, admin_context(globex), audit, globex.tenant_id, body)
    assert first.id != second.id


async def test_tenant_admin_cannot_delete_self(call, audit, acme):
    with pytest.raises(Denied) as exc_info:
        await call(users.delete_user, admin_context(acme), audit, acme.admin_user.id)
    assert exc_info.value.reason == DenyReason.CANNOT_DELETE_SELF

    remaining = await call(users.list_tenant_users, admin_context(acme), acme.tenant_id)
    assert remaining.total == 1


async def test_delete_user_reassigns_work(call, audit, session_maker, acme, acme_project):
    admin = admin_context(acme)
    second_admin = await add_member(call, audit, acme, "ann", Role.TENANT_ADMIN)
    project = await call(
        projects.create_project, member_context(second_admin), audit, CreateProjectRequest(name="Ann's")
    )
    task = await call(
        tasks.create_task, admin, audit, acme_project.id,
        CreateTaskRequest(title="T", assigned_to=second_admin.id),
    )

    await call(users.delete_user, admin, audit, second_admin.id)

    stored_project = (await fetch_all(session_maker, select(Project).where(Project.id == project.id)))[0]
    assert stored_project.created_by == acme.admin_user.id
    stored_task = (await fetch_all(session_maker, select(Task).where(Task.id == task.id)))[0]
    assert stored_task.assigned_to is None


async def test_delete_missing_user(call, audit, acme):
    with pytest.raises(NotFound):
        await call(users.delete_user, admin_context(acme), audit, "00000000-0000-0000-0000-000000000000")


async def test_user_search(call, audit, acme):
    await add_member(call, audit, acme, "ann")
    await add_member(call, audit, acme, "bob")
    page = await call(users.list_tenant_users, admin_context(acme), acme.tenant_id, search="ANN")
    assert [u.email for u in page.users] == ["ann@acme.com"]
    assert page.users[0].tenant_name == "Acme"


async def test_user_search_wildcards_are_literal(call, audit, acme):
    await add_member(call, audit, acme, "ann")
    await add_member(call, audit, acme, "a_n")
    admin = admin_context(acme)

    page = await call(users.list_tenant_users, admin, acme.tenant_id, search="a_n")
    assert [u.email for u in page.users] == ["a_n@acme.com"]
    page = await call(users.list_tenant_users, admin, acme.tenant_id, search="%")
    assert page.total == 0
    assert page.users == []


# --- projects and tasks ---


async def test_delete_project_removes_tasks(call, audit, session_maker, acme, acme_project):
    admin = admin_context(acme)
    await call(tasks.create_task, admin, audit, acme_project.id, CreateTaskRequest(title="A"))
    await call(tasks.create_task, admin, audit, acme_project.id, CreateTaskRequest(title="B"))

    await call(projects.delete_project, admin, audit, acme_project.id)

    assert await fetch_all(session_maker, select(Task).where(Task.project_id == acme_project.id)) == []
    with pytest.raises(NotFound):
        await call(tasks.list_project_tasks, admin, acme_project.id)


async def test_project_listing_counts_tasks(call, audit, acme, acme_project):
    admin = admin_context(acme)
    done = await call(tasks.create_task, admin, audit, acme_project.id, CreateTaskRequest(title="A"))
    await call(tasks.create_task, admin, audit, acme_project.id, CreateTaskRequest(title="B"))
    await call(
        tasks.update_task_status, admin, audit, done.id, UpdateTaskStatusRequest(status=TaskStatus.COMPLETED)
    )

    page = await call(projects.list_projects, admin)
    item = page.projects[0]
    assert (item.task_count, item.completed_task_count) == (2, 1)
    assert item.creator_name == "Acme Admin"


async def test_update_project(call, audit, acme, acme_project):
    updated = await call(
        projects.update_project,
        admin_context(acme),
        audit,
        acme_project.id,
        UpdateProjectRequest(status="archived", description="Done with it"),
    )
    assert updated.status == "archived"
    assert updated.description == "Done with it"
    assert updated.name == "Launch"


async def test_empty_project_update_rejected(call, audit, acme, acme_project):
    with pytest.raises(ValidationError):
        await call(projects.update_project, admin_context(acme), audit, acme_project.id, UpdateProjectRequest())


async def test_tasks_ordered_by_priority_then_due_date(call, audit, acme, acme_project):
    admin = admin_context(acme)
    for title, priority, due in [
        ("low", "low", None),
        ("high-late", "high", date(2026, 12, 1)),
        ("high-undated", "high", None),
        ("high-soon", "high", date(2026, 11, 1)),
        ("medium", "medium", date(2026, 10, 1)),
    ]:
        await call(
            tasks.create_task, admin, audit, acme_project.id,
            CreateTaskRequest(title=title, priority=priority, due_date=due),
        )

    page = await call(tasks.list_project_tasks, admin, acme_project.id)
    assert [t.title for t in page.tasks] == [
        "high-soon",
        "high-late",
        "high-undated",
        "medium",
        "low",
    ]

    high_only = await call(tasks.list_project_tasks, admin, acme_project.id, priority="high", limit=2)
    assert high_only.total == 3
    assert len(high_only.tasks) == 2
    assert high_only.pagination.total_pages == 2


async def test_update_task_can_unassign(call, audit, acme, acme_project):
    admin = admin_context(acme)
    ann = await add_member(call, audit, acme, "ann")
    task = await call(
        tasks.create_task, admin, audit, acme_project.id, CreateTaskRequest(title="T", assigned_to=ann.id)
    )

    updated = await call(
        tasks.update_task, admin, audit, task.id, UpdateTaskRequest(assigned_to=None, title=None)
    )
    assert updated.assigned_to is None
    assert updated.title == "T"


async def test_task_listing_shows_assignee(call, audit, acme, acme_project):
    admin = admin_context(acme)
    ann = await add_member(call, audit, acme, "ann")
    await call(tasks.create_task, admin, audit, acme_project.id, CreateTaskRequest(title="T", assigned_to=ann.id))

    page = await call(tasks.list_project_tasks, admin, acme_project.id, assigned_to=ann.id)
    assert page.tasks[0].assignee_email == "ann@acme.com"
    assert page.tasks[0].assignee_name == "Ann"


async def test_delete_task(call, audit, session_maker, acme, acme_project):
    admin = admin_context(acme)
    task = await call(tasks.create_task, admin, audit, acme_project.id, CreateTaskRequest(title="T"))
    await call(tasks.delete_task, admin, audit, task.id)
    assert await fetch_all(session_maker, select(Task).where(Task.id == task.id)) == []
    with pytest.raises(NotFound):
        await call(tasks.delete_task, admin, audit, task.id)
