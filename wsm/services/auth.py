"""Registration, login and session services."""

import logging
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wsm.auth.context import SessionContext
from wsm.auth.credentials import hash_password, issue_token, verify_password
from wsm.config import settings
from wsm.engine.audit import AuditAction, AuditRecorder
from wsm.errors import Conflict, NotFound, Unauthenticated
from wsm.models import Tenant, User
from wsm.models.enums import Role, TenantStatus
from wsm.schemas.auth import (
    CurrentUserResponse,
    LoginRequest,
    LoginResponse,
    RegisterTenantRequest,
    RegisterTenantResponse,
)
from wsm.schemas.tenant import TenantSummary
from wsm.schemas.user import UserOut
from wsm.storage.repositories import (
    get_tenant,
    get_tenant_by_subdomain,
    get_user,
    get_user_by_email,
)

logger = logging.getLogger(__name__)


async def register_tenant(
    db: AsyncSession,
    audit: AuditRecorder,
    body: RegisterTenantRequest,
    ip_address: str | None = None,
) -> RegisterTenantResponse:
    """Create a tenant and its first tenant_admin in one transaction."""
    if await get_tenant_by_subdomain(db, body.subdomain):
        raise Conflict("Subdomain already exists")

    tenant = Tenant(
        id=str(uuid4()),
        name=body.tenant_name,
        subdomain=body.subdomain,
        status=TenantStatus.ACTIVE.value,
        subscription_plan=settings.default_subscription_plan,
        max_users=settings.default_max_users,
        max_projects=settings.default_max_projects,
    )
    admin = User(
        id=str(uuid4()),
        tenant_id=tenant.id,
        email=body.admin_email,
        password_hash=hash_password(body.admin_password),
        full_name=body.admin_full_name,
        role=Role.TENANT_ADMIN.value,
        is_active=True,
    )
    db.add(tenant)
    db.add(admin)
    try:
        await db.commit()
    except IntegrityError:
        # lost a race for the subdomain
        await db.rollback()
        raise Conflict("Subdomain already exists") from None

    logger.info("Registered tenant %s (%s)", tenant.subdomain, tenant.id)
    await audit.record(
        tenant.id, admin.id, AuditAction.TENANT_REGISTRATION, "tenant", tenant.id, ip_address
    )
    return RegisterTenantResponse(
        tenant_id=tenant.id,
        subdomain=tenant.subdomain,
        admin_user=UserOut.model_validate(admin),
    )


async def login(
    db: AsyncSession,
    audit: AuditRecorder,
    body: LoginRequest,
    ip_address: str | None = None,
) -> LoginResponse:
    """
    Verify credentials and issue a session token.

    Without a subdomain only super admin accounts are considered. Only an
    active tenant can log in; suspended and trial tenants are refused.
    """
    tenant = None
    if body.tenant_subdomain is None:
        user = await get_user_by_email(db, None, body.email)
    else:
        tenant = await get_tenant_by_subdomain(db, body.tenant_subdomain)
        if tenant is None:
            raise NotFound("Tenant not found")
        if tenant.status != TenantStatus.ACTIVE.value:
            raise Unauthenticated("Tenant account is not active")
        user = await get_user_by_email(db, tenant.id, body.email)

    if user is None or not verify_password(body.password, user.password_hash):
        raise Unauthenticated("Invalid credentials")
    if not user.is_active:
        raise Unauthenticated("User account is not active")

    token = issue_token(user.id, user.tenant_id, user.role)
    # release the read transaction before the audit write
    await db.commit()
    await audit.record(user.tenant_id, user.id, AuditAction.LOGIN, "user", user.id, ip_address)
    return LoginResponse(
        token=token,
        expires_in=settings.jwt_expires_in,
        user=UserOut.model_validate(user),
        tenant=TenantSummary.model_validate(tenant) if tenant else None,
    )


async def logout(
    ctx: SessionContext, audit: AuditRecorder, ip_address: str | None = None
) -> None:
    """Tokens are stateless; logging out only leaves an audit entry."""
    await audit.record(
        ctx.tenant_id, ctx.actor_id, AuditAction.LOGOUT, "user", ctx.actor_id, ip_address
    )


async def get_current_user(db: AsyncSession, ctx: SessionContext) -> CurrentUserResponse:
    user = await get_user(db, ctx.actor_id)
    if user is None:
        raise NotFound("User not found")
    tenant = await get_tenant(db, user.tenant_id) if user.tenant_id else None
    return CurrentUserResponse(
        **UserOut.model_validate(user).model_dump(),
        tenant=TenantSummary.model_validate(tenant) if tenant else None,
    )
