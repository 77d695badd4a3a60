from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional
from app.models.subscription import SubscriptionPlan, SubscriptionStatus


class SubscriptionResponse(BaseModel):
    id: int
    tenant_id: int
    plan: SubscriptionPlan
    status: SubscriptionStatus
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    billing_customer_ref: Optional[str] = None
    billing_subscription_ref: Optional[str] = None
    cancel_at_period_end: bool

    class Config:
        from_attributes = True


class SubscriptionUpdate(BaseModel):
    """Administrative patch. Only plan and status may change; anything else is rejected."""
    plan: Optional[SubscriptionPlan] = None
    status: Optional[SubscriptionStatus] = None

    class Config:
        extra = "forbid"


class SubscriptionRenew(BaseModel):
    months: int = Field(1, ge=1, le=36, description="Length of the new period in calendar months")
    plan: Optional[SubscriptionPlan] = None

    class Config:
        extra = "forbid"


class TenantSummary(BaseModel):
    id: int
    name: str
    slug: str
    owner_id: int
    is_active: bool

    class Config:
        from_attributes = True


class SubscriptionWithTenant(SubscriptionResponse):
    tenant: TenantSummary
