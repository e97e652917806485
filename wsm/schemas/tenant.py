"""Tenant schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from wsm.models.enums import SubscriptionPlan, TenantStatus
from wsm.schemas.common import Pagination

# Fields only platform administration may change
ADMIN_FIELDS = frozenset({"status", "subscription_plan", "max_users", "max_projects"})


class UpdateTenantRequest(BaseModel):
    """PUT /api/tenants/{tenant_id} request."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    status: TenantStatus | None = None
    subscription_plan: SubscriptionPlan | None = None
    max_users: int | None = Field(default=None, ge=0)
    max_projects: int | None = Field(default=None, ge=0)


class TenantSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    subdomain: str
    status: str
    subscription_plan: str
    max_users: int
    max_projects: int


class TenantStats(BaseModel):
    total_users: int
    total_projects: int
    total_tasks: int = 0


class TenantDetail(TenantSummary):
    created_at: datetime
    stats: TenantStats


class TenantListItem(TenantSummary):
    created_at: datetime
    total_users: int
    total_projects: int


class TenantPage(BaseModel):
    tenants: list[TenantListItem]
    total: int
    pagination: Pagination
