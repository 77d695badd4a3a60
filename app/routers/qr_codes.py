from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional
from app.database import get_db
from app.dependencies import subscribed_member_access
from app.core.policies import TenantContext
from app.schemas.qr_code import QrCodeResponse
from app.services.qr_code import qr_code_service
from app.core.logging_config import logger

router = APIRouter()


@router.post("", response_model=QrCodeResponse, status_code=status.HTTP_201_CREATED)
def create_qr_code(
    tenant_id: int,
    table_id: Optional[str] = None,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(subscribed_member_access)
):
    """
    Issue a QR code for the tenant.

    With a table_id the call is idempotent: the table's existing code is
    returned instead of a new one.

    Args:
        tenant_id: Tenant the code belongs to
        table_id: Optional table the code is printed for
        db: Database session
        context: Resolved tenant, principal and subscription

    Returns:
        The table's code, or a new untabled code

    Raises:
        HTTPException 409: If the table_id is already used by another tenant
    """
    logger.info(f"Issuing QR code: tenant_id={context.tenant.id}, table_id={table_id}")
    return qr_code_service.issue(db, tenant_id=context.tenant.id, table_id=table_id)


@router.get("", response_model=List[QrCodeResponse])
def get_qr_codes(
    tenant_id: int,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(subscribed_member_access)
):
    """Retrieve the tenant's QR codes, newest first."""
    return qr_code_service.get_qr_codes(db, tenant_id=context.tenant.id)


@router.get("/{qr_code_id}", response_model=QrCodeResponse)
def get_qr_code(
    tenant_id: int,
    qr_code_id: int,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(subscribed_member_access)
):
    return qr_code_service.get_qr_code(db, qr_code_id=qr_code_id, tenant_id=context.tenant.id)


@router.delete("/{qr_code_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_qr_code(
    tenant_id: int,
    qr_code_id: int,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(subscribed_member_access)
):
    """
    Delete a QR code together with its scan log and stored image.

    Raises:
        HTTPException 404: If the code does not exist for this tenant
    """
    logger.info(f"Deleting QR code: id={qr_code_id}, tenant_id={context.tenant.id}")
    qr_code_service.remove(db, qr_code_id=qr_code_id, tenant_id=context.tenant.id)
    return None
