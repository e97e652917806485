"""Registration, login and session endpoints."""

from fastapi import APIRouter, Request

from wsm.auth.middleware import SessionDep
from wsm.database import DbDep
from wsm.engine.audit import AuditDep
from wsm.schemas.auth import (
    CurrentUserResponse,
    LoginRequest,
    LoginResponse,
    RegisterTenantRequest,
    RegisterTenantResponse,
)
from wsm.services import auth as auth_service

router = APIRouter()


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


@router.post(
    "/register-tenant",
    response_model=RegisterTenantResponse,
    status_code=201,
)
async def register_tenant(
    body: RegisterTenantRequest, request: Request, db: DbDep, audit: AuditDep
):
    """Create a tenant together with its first tenant_admin."""
    return await auth_service.register_tenant(db, audit, body, client_ip(request))


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, request: Request, db: DbDep, audit: AuditDep):
    """
    Exchange credentials for a bearer token.
    Omit tenant_subdomain to log in as a super admin.
    """
    return await auth_service.login(db, audit, body, client_ip(request))


@router.get("/me", response_model=CurrentUserResponse)
async def me(ctx: SessionDep, db: DbDep):
    return await auth_service.get_current_user(db, ctx)


@router.post("/logout")
async def logout(ctx: SessionDep, request: Request, audit: AuditDep):
    await auth_service.logout(ctx, audit, client_ip(request))
    return {"message": "Logged out successfully"}
