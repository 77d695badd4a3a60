from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base, TimestampMixin, JSONType

class Tenant(Base, TimestampMixin):
    """A restaurant account; the unit of data isolation."""
    __tablename__ = "tenant"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    description = Column(String, nullable=True)
    logo = Column(String, nullable=True)
    owner_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    currency = Column(String, default="EGP", nullable=False)
    # IANA timezone used to decide which calendar day a view belongs to
    timezone = Column(String, default="UTC", nullable=False)

    owner = relationship("User", back_populates="owned_tenants")
    subscription = relationship(
        "Subscription", back_populates="tenant", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True,
    )
    settings = relationship(
        "TenantSettings", back_populates="tenant", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True,
    )
    memberships = relationship("Membership", back_populates="tenant", cascade="all, delete-orphan", passive_deletes=True)
    qr_codes = relationship("QrCode", back_populates="tenant", cascade="all, delete-orphan", passive_deletes=True)
    categories = relationship("Category", back_populates="tenant", cascade="all, delete-orphan", passive_deletes=True)
    daily_analytics = relationship("DailyAnalytics", cascade="all, delete-orphan", passive_deletes=True)


class TenantSettings(Base, TimestampMixin):
    """
    Display settings for a tenant's public menu.
    Uses tenant_id as primary key (1:1 relationship with tenant).
    """
    __tablename__ = "tenant_settings"

    tenant_id = Column(Integer, ForeignKey("tenant.id", ondelete="CASCADE"), primary_key=True)
    languages = Column(JSONType, nullable=False, default=lambda: ["en"])
    default_language = Column(String, nullable=False, default="en")
    custom_logo = Column(String, nullable=True)
    primary_color = Column(String, nullable=True)

    tenant = relationship("Tenant", back_populates="settings")
