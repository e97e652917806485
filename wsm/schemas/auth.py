"""Registration and login schemas."""

import re

from pydantic import BaseModel, EmailStr, Field, field_validator

from wsm.schemas.tenant import TenantSummary
from wsm.schemas.user import UserOut

SUBDOMAIN_RE = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")


class RegisterTenantRequest(BaseModel):
    """POST /api/auth/register-tenant request."""

    tenant_name: str = Field(min_length=1, max_length=255)
    subdomain: str = Field(min_length=3, max_length=63)
    admin_email: EmailStr
    admin_password: str = Field(min_length=8)
    admin_full_name: str = Field(min_length=1, max_length=255)

    @field_validator("tenant_name", "admin_full_name", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("subdomain", mode="after")
    @classmethod
    def check_subdomain(cls, v: str) -> str:
        """Lowercase letters, digits and inner hyphens only."""
        if not SUBDOMAIN_RE.match(v):
            raise ValueError("Invalid subdomain format")
        return v

    @field_validator("admin_email", mode="after")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class RegisterTenantResponse(BaseModel):
    tenant_id: str
    subdomain: str
    admin_user: UserOut


class LoginRequest(BaseModel):
    """POST /api/auth/login request. No subdomain means a super admin login."""

    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1)
    tenant_subdomain: str | None = None

    @field_validator("email", mode="after")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("tenant_subdomain", mode="after")
    @classmethod
    def blank_is_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip().lower()


class LoginResponse(BaseModel):
    token: str
    expires_in: int
    user: UserOut
    tenant: TenantSummary | None = None


class CurrentUserResponse(UserOut):
    tenant: TenantSummary | None = None
