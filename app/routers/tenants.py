from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from app.database import get_db
from app.dependencies import get_current_user, member_access, owner_access
from app.core.policies import TenantContext
from app.models.user import User
from app.schemas.tenant import TenantCreate, TenantDetailResponse, TenantResponse
from app.services.tenant import tenant_service
from app.core.logging_config import logger

router = APIRouter()


@router.post("", response_model=TenantDetailResponse, status_code=status.HTTP_201_CREATED)
def create_tenant(
    tenant_data: TenantCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Create a tenant with its subscription and settings.

    The caller becomes the owner. Platform admins may instead name an owner
    by phone number; an unknown phone gets a new owner account that must
    set its password on first login.

    Args:
        tenant_data: Tenant details, initial plan and period length
        db: Database session
        current_user: Authenticated user

    Returns:
        Created tenant with subscription and settings

    Raises:
        HTTPException 403: If a non-admin names another owner
        HTTPException 409: If the owner phone is already registered
    """
    logger.info(f"Creating tenant: name={tenant_data.name}, user_id={current_user.id}")
    tenant = tenant_service.create_tenant(db, principal=current_user, data=tenant_data)
    return tenant_service.get_tenant_details(db, tenant.id)


@router.get("", response_model=List[TenantResponse])
def get_tenants(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Tenants the caller owns or is a member of. Platform admins see all tenants."""
    return tenant_service.get_tenants_for(db, principal=current_user)


@router.get("/{tenant_id}", response_model=TenantDetailResponse)
def get_tenant(
    tenant_id: int,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(member_access)
):
    return tenant_service.get_tenant_details(db, context.tenant.id)


@router.delete("/{tenant_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tenant(
    tenant_id: int,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(owner_access)
):
    """
    Delete a tenant and everything it owns.

    Subscription, settings, memberships, QR codes with their scan logs,
    menu and analytics are removed with it.
    """
    logger.info(f"Deleting tenant: id={context.tenant.id}, user_id={context.principal.id}")
    tenant_service.delete_tenant(db, context.tenant)
    return None
