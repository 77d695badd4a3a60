from typing import Optional
from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from app.database import get_db
from app.services.billing_webhook import billing_webhook_service

router = APIRouter()


@router.post("/billing")
async def billing_webhook(
    request: Request,
    billing_signature: Optional[str] = Header(None, alias="Billing-Signature"),
    db: Session = Depends(get_db)
):
    """
    Billing provider events.

    The signature is computed over the raw body, so the body is read as
    bytes rather than parsed by the framework.

    Raises:
        HTTPException 400: If the signature is missing, invalid or stale,
            or the payload is not an event
    """
    payload = await request.body()
    return await run_in_threadpool(billing_webhook_service.handle, db, payload, billing_signature)
