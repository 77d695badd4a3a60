from pydantic import BaseModel, Field
from typing import Optional
from app.models.user import UserRole


class UserResponse(BaseModel):
    id: int
    phone: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole
    is_active: bool

    class Config:
        from_attributes = True


class RegisterRequest(BaseModel):
    phone: str = Field(..., min_length=6, max_length=20)
    password: str = Field(..., min_length=8)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole = UserRole.OWNER


class LoginRequest(BaseModel):
    phone: str
    password: Optional[str] = None


class SetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=8)
    confirm_password: str = Field(..., min_length=8)


class TokenResponse(BaseModel):
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
    requires_password_setup: bool = False
