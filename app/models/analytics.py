from sqlalchemy import Column, Integer, ForeignKey, Date, UniqueConstraint
from app.database import Base, TimestampMixin, JSONType


class DailyAnalytics(Base, TimestampMixin):
    """Per-tenant, per-day rollup of menu views and QR scans."""
    __tablename__ = "daily_analytics"
    __table_args__ = (
        UniqueConstraint("tenant_id", "date", name="uq_daily_analytics_tenant_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenant.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    views = Column(Integer, nullable=False, default=0, server_default="0")
    unique_views = Column(Integer, nullable=False, default=0, server_default="0")
    qr_scans = Column(Integer, nullable=False, default=0, server_default="0")
    item_views = Column(JSONType, nullable=True)       # {item_id: count}
    category_views = Column(JSONType, nullable=True)   # {category_id: count}
