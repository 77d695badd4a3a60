from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from app.database import get_db
from app.dependencies import require_platform_admin
from app.crud.subscription import subscription as subscription_crud
from app.models.user import User
from app.schemas.subscription import (
    SubscriptionRenew,
    SubscriptionResponse,
    SubscriptionUpdate,
    SubscriptionWithTenant,
)
from app.schemas.tenant import TenantDetailResponse
from app.services.admin import admin_service
from app.services.subscription import subscription_service
from app.services.tenant import tenant_service
from app.core.logging_config import logger

router = APIRouter()


@router.get("/stats")
def get_platform_stats(
    db: Session = Depends(get_db),
    _admin: User = Depends(require_platform_admin)
):
    """Platform totals, 24h/7d/30d growth and subscription breakdowns."""
    return admin_service.get_platform_stats(db)


@router.get("/subscriptions", response_model=List[SubscriptionWithTenant])
def get_subscriptions(
    db: Session = Depends(get_db),
    _admin: User = Depends(require_platform_admin)
):
    return subscription_crud.get_multi_with_tenants(db)


@router.patch("/subscriptions/{tenant_id}", response_model=SubscriptionResponse)
def update_subscription(
    tenant_id: int,
    update: SubscriptionUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_platform_admin)
):
    """
    Change a tenant's plan and/or status.

    Raises:
        HTTPException 404: If the tenant does not exist
        HTTPException 409: If the status change is not allowed from the
            current status (reactivating a cancelled subscription needs /renew)
        HTTPException 422: If fields other than plan and status are sent
    """
    tenant_service.get_tenant_details(db, tenant_id)
    logger.info(f"Admin updating subscription: tenant_id={tenant_id}, admin_id={admin.id}")
    return subscription_service.update(db, tenant_id, update)


@router.post("/subscriptions/{tenant_id}/cancel", response_model=SubscriptionResponse)
def cancel_subscription(
    tenant_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_platform_admin)
):
    """Cancel immediately: status CANCELLED and the period ends now."""
    tenant_service.get_tenant_details(db, tenant_id)
    logger.info(f"Admin cancelling subscription: tenant_id={tenant_id}, admin_id={admin.id}")
    return subscription_service.cancel_immediately(db, tenant_id)


@router.post("/subscriptions/{tenant_id}/renew", response_model=SubscriptionResponse)
def renew_subscription(
    tenant_id: int,
    renewal: SubscriptionRenew = SubscriptionRenew(),
    db: Session = Depends(get_db),
    admin: User = Depends(require_platform_admin)
):
    """
    Start a new ACTIVE period of ``months`` calendar months from now.

    Works from any status, including CANCELLED.
    """
    tenant_service.get_tenant_details(db, tenant_id)
    logger.info(f"Admin renewing subscription: tenant_id={tenant_id}, months={renewal.months}, admin_id={admin.id}")
    return subscription_service.renew(db, tenant_id, months=renewal.months, plan=renewal.plan)


@router.get("/tenants/{tenant_id}", response_model=TenantDetailResponse)
def get_tenant(
    tenant_id: int,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_platform_admin)
):
    return tenant_service.get_tenant_details(db, tenant_id)
