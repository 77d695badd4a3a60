from datetime import datetime
from typing import Callable, Dict, Optional
from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from app.crud.subscription import subscription as subscription_crud
from app.core.exceptions import InvalidSubscriptionTransitionError, UnknownBillingStatusError
from app.core.logging_config import logger
from app.models.subscription import Subscription, SubscriptionPlan, SubscriptionStatus
from app.schemas.subscription import SubscriptionUpdate
from app.utils.time import add_months, utcnow


# Provider status -> internal status
BILLING_STATUS_MAP: Dict[str, SubscriptionStatus] = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.TRIALING,
    "past_due": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELLED,
    "unpaid": SubscriptionStatus.CANCELLED,
}

# Status changes an administrative patch may make. Self-transitions are
# always allowed so that replays are harmless. Leaving CANCELLED requires
# renew() or a new checkout.
ALLOWED_TRANSITIONS: Dict[SubscriptionStatus, set] = {
    SubscriptionStatus.TRIALING: {SubscriptionStatus.ACTIVE, SubscriptionStatus.PAST_DUE, SubscriptionStatus.CANCELLED},
    SubscriptionStatus.ACTIVE: {SubscriptionStatus.PAST_DUE, SubscriptionStatus.CANCELLED},
    SubscriptionStatus.PAST_DUE: {SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED},
    SubscriptionStatus.CANCELLED: set(),
}


# The only event that may start a fresh period on a cancelled record
FRESH_SUBSCRIPTION_EVENT = "customer.subscription.created"


def map_billing_status(billing_status: Optional[str]) -> SubscriptionStatus:
    """
    Raises:
        UnknownBillingStatusError: For provider statuses with no internal meaning
    """
    try:
        return BILLING_STATUS_MAP[billing_status]
    except KeyError:
        raise UnknownBillingStatusError(billing_status)


def can_transition(current: SubscriptionStatus, requested: SubscriptionStatus) -> bool:
    return current == requested or requested in ALLOWED_TRANSITIONS[current]


class SubscriptionService:
    """
    Subscription state machine.

    TRIALING -> ACTIVE -> {PAST_DUE, CANCELLED}; PAST_DUE -> {ACTIVE, CANCELLED}.
    Every transition is an upsert keyed by tenant_id that overwrites fields,
    so applying the same transition twice is observably the same as once.
    """

    def __init__(self, store=subscription_crud, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def get_subscription(self, db: Session, tenant_id: int) -> Subscription:
        subscription = self.store.get_by_tenant(db, tenant_id)
        if subscription is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Subscription not found"
            )
        return subscription

    def renew(
        self,
        db: Session,
        tenant_id: int,
        months: int = 1,
        plan: Optional[SubscriptionPlan] = None,
        now: Optional[datetime] = None
    ) -> Subscription:
        """Start a fresh ACTIVE period of ``months`` calendar months from now."""
        if months < 1:
            raise ValueError("Renewal must cover at least one month")

        now = now or self.clock()
        values = {
            "status": SubscriptionStatus.ACTIVE,
            "current_period_start": now,
            "current_period_end": add_months(now, months),
            "cancel_at_period_end": False,
        }
        if plan is not None:
            values["plan"] = plan

        logger.info(f"Renewing subscription: tenant_id={tenant_id}, months={months}, plan={plan}")
        return self.store.upsert(db, tenant_id=tenant_id, values=values)

    def cancel_immediately(self, db: Session, tenant_id: int, now: Optional[datetime] = None) -> Subscription:
        """Cancel and end the period now, regardless of paid time left."""
        now = now or self.clock()
        logger.info(f"Cancelling subscription immediately: tenant_id={tenant_id}")
        return self.store.upsert(db, tenant_id=tenant_id, values={
            "status": SubscriptionStatus.CANCELLED,
            "current_period_end": now,
        })

    def cancel_at_period_end(self, db: Session, tenant_id: int) -> Subscription:
        """
        Self-service cancellation. Status stays ACTIVE; the gate denies access
        once the current period has elapsed.
        """
        self.get_subscription(db, tenant_id)
        logger.info(f"Subscription set to cancel at period end: tenant_id={tenant_id}")
        return self.store.upsert(db, tenant_id=tenant_id, values={"cancel_at_period_end": True})

    def update(self, db: Session, tenant_id: int, data: SubscriptionUpdate) -> Subscription:
        """
        Administrative patch of plan and/or status.

        Raises:
            InvalidSubscriptionTransitionError: For status changes the state
                machine does not allow
        """
        current = self.get_subscription(db, tenant_id)
        values = data.model_dump(exclude_unset=True, exclude_none=True)

        requested = values.get("status")
        if requested is not None and not can_transition(current.status, requested):
            raise InvalidSubscriptionTransitionError(current.status.value, requested.value)

        if not values:
            return current
        return self.store.upsert(db, tenant_id=tenant_id, values=values)

    def apply_billing_status(
        self,
        db: Session,
        tenant_id: int,
        *,
        billing_status: str,
        period_start: Optional[datetime] = None,
        period_end: Optional[datetime] = None,
        customer_ref: Optional[str] = None,
        subscription_ref: Optional[str] = None,
        cancel_at_period_end: Optional[bool] = None,
        plan: Optional[SubscriptionPlan] = None,
        event_type: Optional[str] = None
    ) -> Subscription:
        """
        Mirror the billing provider's view of the subscription.

        Period bounds are copied verbatim from the provider; fields the event
        does not carry are left as they are. A CANCELLED record only leaves
        CANCELLED for a ``customer.subscription.created`` event or a provider
        subscription it has not seen before; any other event is acknowledged
        and dropped.

        Raises:
            UnknownBillingStatusError: If the provider status is not mapped
        """
        new_status = map_billing_status(billing_status)
        current = self.store.get_by_tenant(db, tenant_id)
        if current is not None and not self._may_apply(current, new_status, subscription_ref, event_type):
            logger.warning(
                f"Ignoring billing event {event_type} for cancelled subscription: "
                f"tenant_id={tenant_id}, status={billing_status}"
            )
            return current

        values = {"status": new_status}
        if period_start is not None:
            values["current_period_start"] = period_start
        if period_end is not None:
            values["current_period_end"] = period_end
        if customer_ref is not None:
            values["billing_customer_ref"] = customer_ref
        if subscription_ref is not None:
            values["billing_subscription_ref"] = subscription_ref
        if cancel_at_period_end is not None:
            values["cancel_at_period_end"] = cancel_at_period_end
        if plan is not None:
            values["plan"] = plan

        logger.info(f"Applying billing status: tenant_id={tenant_id}, status={billing_status}")
        return self.store.upsert(db, tenant_id=tenant_id, values=values)

    @staticmethod
    def _may_apply(
        current: Subscription,
        new_status: SubscriptionStatus,
        subscription_ref: Optional[str],
        event_type: Optional[str]
    ) -> bool:
        if current.status != SubscriptionStatus.CANCELLED or new_status == SubscriptionStatus.CANCELLED:
            return True
        if event_type == FRESH_SUBSCRIPTION_EVENT:
            return True
        return subscription_ref is not None and subscription_ref != current.billing_subscription_ref

    def link_billing_refs(
        self,
        db: Session,
        tenant_id: int,
        *,
        customer_ref: Optional[str],
        subscription_ref: Optional[str],
        plan: Optional[SubscriptionPlan] = None
    ) -> Subscription:
        """Record provider references after checkout without touching status."""
        values = {}
        if customer_ref is not None:
            values["billing_customer_ref"] = customer_ref
        if subscription_ref is not None:
            values["billing_subscription_ref"] = subscription_ref
        if plan is not None:
            values["plan"] = plan
        return self.store.upsert(db, tenant_id=tenant_id, values=values)


# Create a singleton instance
subscription_service = SubscriptionService()
