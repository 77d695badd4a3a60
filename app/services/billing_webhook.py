import hashlib
import hmac
import json
import time
from typing import Any, Dict, Optional
from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.exceptions import UnknownBillingStatusError, WebhookSignatureError
from app.core.logging_config import logger
from app.crud.subscription import subscription as subscription_crud
from app.crud.tenant import tenant as tenant_crud
from app.models.subscription import SubscriptionPlan
from app.services.subscription import subscription_service
from app.utils.time import from_unix

SIGNATURE_HEADER = "Billing-Signature"

SUBSCRIPTION_EVENTS = {
    "customer.subscription.created",
    "customer.subscription.updated",
    "customer.subscription.deleted",
}


def build_billing_signature(secret: str, timestamp: int, payload: bytes) -> str:
    """HMAC-SHA256 over "<timestamp>.<raw body>"."""
    signed = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def verify_billing_signature(
    payload: bytes,
    header: Optional[str],
    secret: Optional[str],
    tolerance_seconds: int,
    now: Optional[float] = None
) -> None:
    """
    Check a ``t=<unix>,v1=<hex>`` signature header against the raw body.

    Raises:
        WebhookSignatureError: On a missing secret or header, a malformed
            header, a stale timestamp or a mismatching signature
    """
    if not secret:
        raise WebhookSignatureError("webhook secret is not configured")
    if not header:
        raise WebhookSignatureError("missing signature header")

    parts: Dict[str, list] = {}
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if sep:
            parts.setdefault(key, []).append(value)

    try:
        timestamp = int(parts["t"][0])
    except (KeyError, IndexError, ValueError):
        raise WebhookSignatureError("malformed signature header")

    candidates = parts.get("v1", [])
    if not candidates:
        raise WebhookSignatureError("no v1 signature in header")

    current = time.time() if now is None else now
    if abs(current - timestamp) > tolerance_seconds:
        raise WebhookSignatureError("timestamp outside tolerance")

    expected = build_billing_signature(secret, timestamp, payload)
    if not any(hmac.compare_digest(expected, candidate) for candidate in candidates):
        raise WebhookSignatureError("signature mismatch")


def _plan_from(metadata: Dict[str, Any]) -> Optional[SubscriptionPlan]:
    raw = (metadata or {}).get("plan")
    if not raw:
        return None
    try:
        return SubscriptionPlan(str(raw).lower())
    except ValueError:
        logger.warning(f"Ignoring unknown plan in billing metadata: {raw}")
        return None


class BillingWebhookService:
    """
    Verifies provider events and turns them into subscription transitions.

    Events are applied through the idempotent lifecycle upserts, so a
    redelivered event leaves the subscription as the first delivery did.
    """

    def __init__(self, lifecycle=subscription_service, subscriptions=subscription_crud, tenants=tenant_crud):
        self.lifecycle = lifecycle
        self.subscriptions = subscriptions
        self.tenants = tenants

    def handle(self, db: Session, payload: bytes, signature_header: Optional[str]) -> Dict[str, bool]:
        verify_billing_signature(
            payload,
            signature_header,
            settings.BILLING_WEBHOOK_SECRET,
            settings.BILLING_WEBHOOK_TOLERANCE_SECONDS,
        )

        try:
            event = json.loads(payload)
            event_type = event["type"]
            obj = event["data"]["object"]
        except (ValueError, KeyError, TypeError):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Payload is not a billing event"
            )

        logger.info(f"Billing event received: id={event.get('id')}, type={event_type}")

        if event_type == "checkout.session.completed":
            self._on_checkout_completed(db, obj)
        elif event_type in SUBSCRIPTION_EVENTS:
            self._on_subscription_change(db, obj, event_type)
        else:
            logger.info(f"Ignoring billing event type {event_type}")

        return {"received": True}

    def _tenant_id_from(self, db: Session, obj: Dict[str, Any], subscription_ref: Optional[str]) -> Optional[int]:
        raw = (obj.get("metadata") or {}).get("tenant_id")
        if raw is not None:
            try:
                tenant = self.tenants.get(db, int(raw))
            except (TypeError, ValueError):
                tenant = None
            if tenant is not None:
                return tenant.id
        if subscription_ref:
            existing = self.subscriptions.get_by_billing_ref(db, subscription_ref)
            if existing is not None:
                return existing.tenant_id
        return None

    def _on_checkout_completed(self, db: Session, session_obj: Dict[str, Any]) -> None:
        subscription_ref = session_obj.get("subscription")
        tenant_id = self._tenant_id_from(db, session_obj, subscription_ref)
        if tenant_id is None:
            logger.warning("Checkout completed for an unknown tenant; ignoring")
            return

        self.lifecycle.link_billing_refs(
            db,
            tenant_id,
            customer_ref=session_obj.get("customer"),
            subscription_ref=subscription_ref,
            plan=_plan_from(session_obj.get("metadata")),
        )

    def _on_subscription_change(self, db: Session, sub_obj: Dict[str, Any], event_type: str) -> None:
        subscription_ref = sub_obj.get("id")
        tenant_id = self._tenant_id_from(db, sub_obj, subscription_ref)
        if tenant_id is None:
            logger.warning(f"Billing subscription {subscription_ref} matches no tenant; ignoring")
            return

        try:
            self.lifecycle.apply_billing_status(
                db,
                tenant_id,
                billing_status=sub_obj.get("status"),
                period_start=from_unix(sub_obj.get("current_period_start")),
                period_end=from_unix(sub_obj.get("current_period_end")),
                customer_ref=sub_obj.get("customer"),
                subscription_ref=subscription_ref,
                cancel_at_period_end=sub_obj.get("cancel_at_period_end"),
                plan=_plan_from(sub_obj.get("metadata")),
                event_type=event_type,
            )
        except UnknownBillingStatusError as e:
            logger.warning(f"{e}; tenant_id={tenant_id} left unchanged")


# Create a singleton instance
billing_webhook_service = BillingWebhookService()
