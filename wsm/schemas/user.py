"""User schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from wsm.models.enums import Role
from wsm.schemas.common import Pagination

TENANT_ROLES = (Role.TENANT_ADMIN, Role.USER)


class CreateUserRequest(BaseModel):
    """POST /api/tenants/{tenant_id}/users request."""

    email: EmailStr
    password: str = Field(min_length=8)
    full_name: str = Field(min_length=1, max_length=255)
    role: Role = Role.USER

    @field_validator("email", mode="after")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("role", mode="after")
    @classmethod
    def tenant_role_only(cls, v: Role) -> Role:
        if v not in TENANT_ROLES:
            raise ValueError("role must be tenant_admin or user")
        return v


class UpdateUserRequest(BaseModel):
    """PUT /api/users/{user_id} request."""

    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    role: Role | None = None
    is_active: bool | None = None

    @field_validator("role", mode="after")
    @classmethod
    def tenant_role_only(cls, v: Role | None) -> Role | None:
        if v is not None and v not in TENANT_ROLES:
            raise ValueError("role must be tenant_admin or user")
        return v


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str | None
    email: str
    full_name: str
    role: str
    is_active: bool
    created_at: datetime


class UserListItem(UserOut):
    tenant_name: str | None = None


class UserPage(BaseModel):
    users: list[UserListItem]
    total: int
    pagination: Pagination
