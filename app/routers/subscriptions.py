from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.database import get_db
from app.dependencies import member_access, owner_access
from app.core.policies import TenantContext
from app.schemas.subscription import SubscriptionResponse
from app.services.subscription import subscription_service
from app.core.logging_config import logger

router = APIRouter()


@router.get("", response_model=SubscriptionResponse)
def get_subscription(
    tenant_id: int,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(member_access)
):
    """
    The tenant's subscription.

    Readable without an active subscription so that a lapsed tenant can see
    why access is denied.
    """
    return subscription_service.get_subscription(db, context.tenant.id)


@router.post("/cancel", response_model=SubscriptionResponse)
def cancel_subscription(
    tenant_id: int,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(owner_access)
):
    """
    Cancel at the end of the current period.

    Access continues until current_period_end; renewal is done by the
    billing provider or a platform admin.
    """
    logger.info(f"Owner cancelling subscription: tenant_id={context.tenant.id}, user_id={context.principal.id}")
    return subscription_service.cancel_at_period_end(db, context.tenant.id)
