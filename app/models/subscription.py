import enum
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Enum
from sqlalchemy.orm import relationship
from app.database import Base, TimestampMixin


class SubscriptionPlan(str, enum.Enum):
    BASIC = "basic"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    TRIALING = "TRIALING"
    PAST_DUE = "PAST_DUE"
    CANCELLED = "CANCELLED"


class Subscription(Base, TimestampMixin):
    """
    Billing subscription of a tenant.

    Exactly one row per tenant, created in the same transaction as the tenant
    and removed with it.
    """
    __tablename__ = "subscription"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenant.id", ondelete="CASCADE"), unique=True, nullable=False)
    plan = Column(Enum(SubscriptionPlan), nullable=False, default=SubscriptionPlan.PRO)
    status = Column(Enum(SubscriptionStatus), nullable=False, default=SubscriptionStatus.ACTIVE)
    current_period_start = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    billing_customer_ref = Column(String, nullable=True)
    billing_subscription_ref = Column(String, nullable=True, index=True)
    cancel_at_period_end = Column(Boolean, default=False, nullable=False)

    tenant = relationship("Tenant", back_populates="subscription")
