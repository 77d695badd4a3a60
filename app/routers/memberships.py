from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from app.database import get_db
from app.dependencies import owner_access
from app.core.policies import TenantContext
from app.schemas.membership import MembershipCreate, MembershipResponse, MembershipUpdate
from app.services.membership import membership_service
from app.core.logging_config import logger

router = APIRouter()


@router.post("", response_model=MembershipResponse, status_code=status.HTTP_201_CREATED)
def add_membership(
    tenant_id: int,
    membership_data: MembershipCreate,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(owner_access)
):
    """
    Give an existing user access to the tenant.

    Args:
        tenant_id: Tenant to grant access to
        membership_data: Phone number of the user and the role to grant
        db: Database session
        context: Resolved tenant (owner or platform admin only)

    Raises:
        HTTPException 404: If no user has the phone number
        HTTPException 409: If the user already has access
    """
    logger.info(f"Adding member: tenant_id={context.tenant.id}, phone={membership_data.phone}")
    return membership_service.add_member(db, tenant=context.tenant, data=membership_data)


@router.get("", response_model=List[MembershipResponse])
def get_memberships(
    tenant_id: int,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(owner_access)
):
    return membership_service.get_members(db, tenant_id=context.tenant.id)


@router.patch("/{membership_id}", response_model=MembershipResponse)
def update_membership(
    tenant_id: int,
    membership_id: int,
    membership_data: MembershipUpdate,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(owner_access)
):
    """Change a member's role or permissions."""
    return membership_service.update_member(
        db, membership_id=membership_id, tenant_id=context.tenant.id, data=membership_data
    )


@router.delete("/{membership_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_membership(
    tenant_id: int,
    membership_id: int,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(owner_access)
):
    membership_service.remove_member(db, membership_id=membership_id, tenant_id=context.tenant.id)
    return None
