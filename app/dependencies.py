from typing import Optional
from fastapi import Depends, HTTPException, status, Request
from jose import JWTError
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.user import User, UserRole
from app.crud.user import user as user_crud
from app.core.exceptions import Unauthenticated
from app.core.policies import (
    OwnerPolicy,
    SubscriptionPolicy,
    TenantAccessChain,
    TenantContext,
    TenantMembershipPolicy,
)
from app.core.security import SCOPE_ACCESS, SCOPE_PASSWORD_SETUP, verify_token
from app.core.tenant_context import tenant_resolver


def _bearer_token(request: Request) -> str:
    authorization = request.headers.get("Authorization")
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthenticated()
    return authorization.replace("Bearer ", "", 1)


def _load_user(db: Session, request: Request, required_scope: str) -> User:
    try:
        payload = verify_token(_bearer_token(request))
    except JWTError:
        raise Unauthenticated()

    user_id: Optional[str] = payload.get("id")
    if user_id is None or payload.get("scope") != required_scope:
        raise Unauthenticated()

    user = user_crud.get(db, int(user_id))
    if user is None:
        raise Unauthenticated()

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )

    return user


def get_current_user(
    request: Request,
    db: Session = Depends(get_db)
) -> User:
    """
    Extract and validate the JWT from the Authorization Bearer header.

    Password-setup tokens are rejected here; they are only accepted by
    get_password_setup_user.

    Raises:
        Unauthenticated: If the token is missing, invalid, of the wrong scope
            or names an unknown user
        HTTPException 403: If the user is inactive
    """
    return _load_user(db, request, SCOPE_ACCESS)


def get_password_setup_user(
    request: Request,
    db: Session = Depends(get_db)
) -> User:
    """Principal of a password-setup token whose account still needs a password."""
    user = _load_user(db, request, SCOPE_PASSWORD_SETUP)
    if not user.requires_password_change:
        raise Unauthenticated("Password has already been set")
    return user


def require_platform_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.PLATFORM_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Platform admin role required"
        )
    return current_user


def require_tenant_access(chain: TenantAccessChain):
    """
    Build a dependency that authenticates, resolves the tenant and runs the chain.

    The resolved tenant and subscription are attached to request.state and
    returned as a TenantContext.
    """
    async def dependency(
        request: Request,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
    ) -> TenantContext:
        tenant = await tenant_resolver.resolve(db, request)
        context = chain.authorize(db, current_user, tenant)
        request.state.subscription = context.subscription
        return context

    return dependency


# Standard chains, declared per router
member_access = require_tenant_access(TenantAccessChain(TenantMembershipPolicy()))
subscribed_member_access = require_tenant_access(
    TenantAccessChain(TenantMembershipPolicy(), SubscriptionPolicy())
)
owner_access = require_tenant_access(TenantAccessChain(OwnerPolicy()))
