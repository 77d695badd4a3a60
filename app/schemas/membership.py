from pydantic import BaseModel, field_validator
from typing import Any, Dict, Optional
from app.models.user import UserRole
from app.schemas.user import UserResponse


class MembershipCreate(BaseModel):
    phone: str
    role: UserRole = UserRole.STAFF
    permissions: Optional[Dict[str, Any]] = None

    @field_validator("role")
    @classmethod
    def role_is_tenant_level(cls, v: UserRole) -> UserRole:
        if v == UserRole.PLATFORM_ADMIN:
            raise ValueError("platform_admin cannot be granted through a membership")
        return v


class MembershipUpdate(BaseModel):
    role: Optional[UserRole] = None
    permissions: Optional[Dict[str, Any]] = None

    @field_validator("role")
    @classmethod
    def role_is_tenant_level(cls, v: Optional[UserRole]) -> Optional[UserRole]:
        if v == UserRole.PLATFORM_ADMIN:
            raise ValueError("platform_admin cannot be granted through a membership")
        return v


class MembershipResponse(BaseModel):
    id: int
    tenant_id: int
    user_id: int
    role: UserRole
    permissions: Optional[Dict[str, Any]] = None
    user: Optional[UserResponse] = None

    class Config:
        from_attributes = True
