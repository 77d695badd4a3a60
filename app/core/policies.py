"""
Access policies for tenant-scoped requests.

Each policy takes (principal, tenant) and returns a PolicyDecision instead
of raising, so routes can compose them explicitly with TenantAccessChain.
Every decision is derived from storage on the request it serves; nothing
here is cached between requests.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
from fastapi import HTTPException
from sqlalchemy.orm import Session
from app.core.exceptions import (
    AccessDeniedError,
    SubscriptionExpiredError,
    SubscriptionInactiveError,
    SubscriptionNotFoundError,
)
from app.core.logging_config import logger
from app.crud.membership import membership as membership_crud
from app.crud.subscription import subscription as subscription_crud
from app.models.subscription import Subscription, SubscriptionStatus
from app.models.tenant import Tenant
from app.models.user import User, UserRole
from app.utils.time import as_utc, utcnow


@dataclass(frozen=True)
class PolicyDecision:
    allowed: bool
    error: Optional[HTTPException] = None
    subscription: Optional[Subscription] = None

    @classmethod
    def allow(cls, subscription: Optional[Subscription] = None) -> "PolicyDecision":
        return cls(allowed=True, subscription=subscription)

    @classmethod
    def deny(cls, error: HTTPException) -> "PolicyDecision":
        return cls(allowed=False, error=error)

    def raise_if_denied(self) -> None:
        if not self.allowed:
            raise self.error


class TenantMembershipPolicy:
    """
    Who may act on a tenant:

    1. platform admins, for any tenant
    2. the tenant's owner
    3. users holding a membership row for the tenant
    """

    def __init__(self, membership_store=membership_crud):
        self.membership_store = membership_store

    def evaluate(self, db: Session, principal: User, tenant: Tenant) -> PolicyDecision:
        if principal.role == UserRole.PLATFORM_ADMIN:
            return PolicyDecision.allow()
        if tenant.owner_id == principal.id:
            return PolicyDecision.allow()
        membership = self.membership_store.get_for_user(db, tenant_id=tenant.id, user_id=principal.id)
        if membership is not None:
            return PolicyDecision.allow()
        return PolicyDecision.deny(AccessDeniedError())


class OwnerPolicy:
    """Owner or platform admin only (membership management, tenant deletion)."""

    def evaluate(self, db: Session, principal: User, tenant: Tenant) -> PolicyDecision:
        if principal.role == UserRole.PLATFORM_ADMIN or tenant.owner_id == principal.id:
            return PolicyDecision.allow()
        return PolicyDecision.deny(AccessDeniedError("Only the tenant owner can perform this action"))


def evaluate_subscription(subscription: Optional[Subscription], now: datetime) -> PolicyDecision:
    """
    The subscription rule shared by the dashboard and the public menu.

    Denies when the subscription is missing, not ACTIVE, or ACTIVE with a
    period that ended before ``now``; allows otherwise.
    """
    if subscription is None:
        return PolicyDecision.deny(SubscriptionNotFoundError(tenant_id=None))

    if subscription.status != SubscriptionStatus.ACTIVE:
        return PolicyDecision.deny(SubscriptionInactiveError(subscription.status.value))

    period_end = as_utc(subscription.current_period_end)
    if period_end is not None and period_end < as_utc(now):
        return PolicyDecision.deny(SubscriptionExpiredError(period_end))

    return PolicyDecision.allow(subscription=subscription)


class SubscriptionGate:
    """Loads a tenant's subscription and applies evaluate_subscription."""

    def __init__(self, subscription_store=subscription_crud, clock: Callable[[], datetime] = utcnow):
        self.subscription_store = subscription_store
        self.clock = clock

    def evaluate(self, db: Session, tenant_id: int, now: Optional[datetime] = None) -> PolicyDecision:
        subscription = self.subscription_store.get_by_tenant(db, tenant_id)
        if subscription is None:
            # Every tenant is created with a subscription; this is a data fault
            logger.error(f"Data integrity fault: tenant {tenant_id} has no subscription")
            return PolicyDecision.deny(SubscriptionNotFoundError(tenant_id))
        return evaluate_subscription(subscription, now or self.clock())

    def check(self, db: Session, tenant_id: int, now: Optional[datetime] = None) -> Subscription:
        """
        Raises:
            SubscriptionNotFoundError, SubscriptionInactiveError,
            SubscriptionExpiredError: When the tenant may not be served
        """
        decision = self.evaluate(db, tenant_id, now=now)
        decision.raise_if_denied()
        return decision.subscription


class SubscriptionPolicy:
    """Adapter putting the subscription gate into a TenantAccessChain."""

    def __init__(self, gate: Optional[SubscriptionGate] = None):
        self.gate = gate or subscription_gate

    def evaluate(self, db: Session, principal: User, tenant: Tenant) -> PolicyDecision:
        return self.gate.evaluate(db, tenant.id)


@dataclass
class TenantContext:
    tenant: Tenant
    principal: User
    subscription: Optional[Subscription] = None


class TenantAccessChain:
    """Runs policies in the given order; the first denial aborts the request."""

    def __init__(self, *policies):
        self.policies = policies

    def authorize(self, db: Session, principal: User, tenant: Tenant) -> TenantContext:
        context = TenantContext(tenant=tenant, principal=principal)
        for policy in self.policies:
            decision = policy.evaluate(db, principal, tenant)
            if not decision.allowed:
                logger.warning(
                    f"Access denied: policy={type(policy).__name__}, user_id={principal.id}, "
                    f"tenant_id={tenant.id}, status={decision.error.status_code}"
                )
                raise decision.error
            if decision.subscription is not None:
                context.subscription = decision.subscription
        return context


subscription_gate = SubscriptionGate()
