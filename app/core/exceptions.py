"""
Typed errors for the tenant access gate, QR codes and billing.

HTTP-facing errors subclass FastAPI's HTTPException so they can be raised
from any layer and are rendered by the framework with their fixed status.
"""
from datetime import datetime
from typing import Optional
from fastapi import HTTPException, status


class Unauthenticated(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class MissingTenantError(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Tenant ID is required",
        )


class TenantNotFoundError(HTTPException):
    def __init__(self, tenant_id=None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found",
        )
        self.tenant_id = tenant_id


class AccessDeniedError(HTTPException):
    def __init__(self, detail: str = "Access denied to this tenant"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class SubscriptionNotFoundError(HTTPException):
    def __init__(self, tenant_id: int):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Subscription not found",
        )
        self.tenant_id = tenant_id


class SubscriptionInactiveError(HTTPException):
    def __init__(self, subscription_status: str):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "message": "Subscription is not active. Please renew your subscription to access this feature.",
                "code": "SUBSCRIPTION_INACTIVE",
                "status": subscription_status,
            },
        )
        self.subscription_status = subscription_status


class SubscriptionExpiredError(HTTPException):
    """Active subscription whose paid period has lapsed."""

    code = "SUBSCRIPTION_EXPIRED"

    def __init__(self, expired_at: datetime):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "message": "Subscription period has ended. Please renew your subscription.",
                "code": self.code,
                "expiredAt": expired_at.isoformat(),
            },
        )
        self.expired_at = expired_at


class InvalidSubscriptionTransitionError(HTTPException):
    def __init__(self, current: str, requested: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot change subscription status from {current} to {requested}",
        )


class UnknownBillingStatusError(ValueError):
    def __init__(self, billing_status: Optional[str]):
        super().__init__(f"Unknown billing status: {billing_status!r}")
        self.billing_status = billing_status


class QrCodeNotFoundError(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="QR code not found",
        )


class TableCodeConflictError(HTTPException):
    def __init__(self, table_id: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Table {table_id} already has a QR code in another tenant",
        )


class DuplicateTableCodeError(Exception):
    """Conditional insert lost the race for a table; the row already exists."""

    def __init__(self, table_id: str):
        super().__init__(f"QR code for table {table_id} already exists")
        self.table_id = table_id


class WebhookSignatureError(HTTPException):
    def __init__(self, reason: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Webhook signature verification failed: {reason}",
        )
        self.reason = reason
