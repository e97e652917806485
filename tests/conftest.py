"""Pytest configuration and shared fixtures for testing."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "wsm-test-secret-0123456789abcdef0123")

from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from wsm.auth.context import SessionContext
from wsm.auth.credentials import hash_password
from wsm.database import Base, create_engine_for, create_session_maker, get_db
from wsm.engine.audit import AuditRecorder, get_audit_recorder
from wsm.models import AuditLog, User
from wsm.models.enums import Role
from wsm.schemas.auth import RegisterTenantRequest
from wsm.services import auth as auth_service

ADMIN_PASSWORD = "admin-pass-123"
SUPER_ADMIN_EMAIL = "root@platform.com"
SUPER_ADMIN_PASSWORD = "platform-pass"


# --- Database Fixtures ---


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite engine, so concurrent sessions really contend."""
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'wsm.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return create_session_maker(engine)


@pytest.fixture
def audit(session_maker) -> AuditRecorder:
    return AuditRecorder(session_maker)


@pytest.fixture
def call(session_maker):
    """Run a service function in its own session, like one request does."""

    async def _call(fn, *args, **kwargs):
        async with session_maker() as db:
            return await fn(db, *args, **kwargs)

    return _call


async def fetch_all(session_maker, stmt):
    async with session_maker() as db:
        result = await db.execute(stmt)
        return list(result.scalars().all())


async def audit_entries(session_maker, action: str | None = None) -> list[AuditLog]:
    stmt = select(AuditLog).order_by(AuditLog.id)
    if action is not None:
        stmt = stmt.where(AuditLog.action == action)
    return await fetch_all(session_maker, stmt)


# --- Tenant / actor fixtures ---


async def register(call, audit, subdomain: str, name: str | None = None):
    body = RegisterTenantRequest(
        tenant_name=name or subdomain.title(),
        subdomain=subdomain,
        admin_email=f"admin@{subdomain}.com",
        admin_password=ADMIN_PASSWORD,
        admin_full_name=f"{subdomain.title()} Admin",
    )
    return await call(auth_service.register_tenant, audit, body)


def admin_context(registration) -> SessionContext:
    return SessionContext(
        actor_id=registration.admin_user.id,
        tenant_id=registration.tenant_id,
        role=Role.TENANT_ADMIN,
    )


def member_context(user) -> SessionContext:
    return SessionContext(actor_id=user.id, tenant_id=user.tenant_id, role=Role(user.role))


@pytest.fixture
async def acme(call, audit):
    return await register(call, audit, "acme", "Acme")


@pytest.fixture
async def globex(call, audit):
    return await register(call, audit, "globex", "Globex")


@pytest.fixture
async def super_admin(session_maker) -> SessionContext:
    """Platform super admin; only a provisioning script creates these."""
    user = User(
        id=str(uuid4()),
        tenant_id=None,
        email=SUPER_ADMIN_EMAIL,
        password_hash=hash_password(SUPER_ADMIN_PASSWORD),
        full_name="Platform Root",
        role=Role.SUPER_ADMIN.value,
        is_active=True,
    )
    async with session_maker() as db:
        db.add(user)
        await db.commit()
    return SessionContext(actor_id=user.id, tenant_id=None, role=Role.SUPER_ADMIN)


# --- HTTP client ---


@pytest.fixture
async def client(session_maker, audit):
    """API client wired to the test database and audit recorder."""
    from wsm.main import app

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_audit_recorder] = lambda: audit
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides = {}
