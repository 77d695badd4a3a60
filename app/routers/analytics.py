from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.dependencies import subscribed_member_access
from app.core.policies import TenantContext
from app.schemas.analytics import AnalyticsSummary
from app.services.analytics import analytics_service

router = APIRouter()


@router.get("", response_model=AnalyticsSummary)
def get_analytics(
    tenant_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(subscribed_member_access)
):
    """
    Analytics summary for the tenant.

    Args:
        tenant_id: Tenant to summarize
        start_date: First day to include (inclusive)
        end_date: Last day to include (inclusive)
        db: Database session
        context: Resolved tenant, principal and subscription

    Returns:
        Totals, the most recent daily rows, popular items and QR scan counts
    """
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must not be after end_date"
        )
    return analytics_service.summarize(db, context.tenant.id, start_date=start_date, end_date=end_date)
