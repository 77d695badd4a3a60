from pydantic import BaseModel, Field
from typing import List, Optional
from app.models.subscription import SubscriptionPlan
from app.schemas.subscription import SubscriptionResponse


class TenantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    currency: str = "EGP"
    timezone: str = "UTC"
    languages: List[str] = ["en"]
    default_language: str = "en"
    # Platform admins only: create on behalf of another owner
    owner_phone: Optional[str] = None
    owner_first_name: Optional[str] = None
    owner_last_name: Optional[str] = None
    plan: Optional[SubscriptionPlan] = None
    subscription_months: int = Field(1, ge=1, le=36)

    class Config:
        extra = "forbid"


class TenantSettingsResponse(BaseModel):
    languages: List[str]
    default_language: str
    custom_logo: Optional[str] = None
    primary_color: Optional[str] = None

    class Config:
        from_attributes = True


class TenantResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    owner_id: int
    is_active: bool
    currency: str
    timezone: str

    class Config:
        from_attributes = True


class TenantDetailResponse(TenantResponse):
    subscription: Optional[SubscriptionResponse] = None
    settings: Optional[TenantSettingsResponse] = None
