from datetime import datetime, timedelta
from typing import Callable, Dict
from sqlalchemy import select, func
from sqlalchemy.orm import Session
from app.crud.subscription import subscription as subscription_crud
from app.models.qr_code import QrCode, ScanEvent
from app.models.tenant import Tenant
from app.models.user import User
from app.utils.time import utcnow

GROWTH_WINDOWS = {"last_24h": timedelta(hours=24), "last_7d": timedelta(days=7), "last_30d": timedelta(days=30)}


class AdminService:
    """Platform-wide statistics for platform admins."""

    def __init__(self, subscriptions=subscription_crud, clock: Callable[[], datetime] = utcnow):
        self.subscriptions = subscriptions
        self.clock = clock

    def _count(self, db: Session, model, *criteria) -> int:
        stmt = select(func.count()).select_from(model)
        if criteria:
            stmt = stmt.where(*criteria)
        return db.execute(stmt).scalar_one()

    def _growth(self, db: Session, model, column, now: datetime) -> Dict[str, int]:
        return {
            label: self._count(db, model, column >= now - window)
            for label, window in GROWTH_WINDOWS.items()
        }

    def get_platform_stats(self, db: Session) -> dict:
        now = self.clock()
        by_status = self.subscriptions.count_by_status(db)

        return {
            "stats": {
                "total_tenants": self._count(db, Tenant),
                "total_users": self._count(db, User),
                "total_subscriptions": sum(by_status.values()),
                "active_subscriptions": by_status.get("ACTIVE", 0),
                "cancelled_subscriptions": by_status.get("CANCELLED", 0),
                "past_due_subscriptions": by_status.get("PAST_DUE", 0),
                "total_qr_codes": self._count(db, QrCode),
                "total_scans": self._count(db, ScanEvent),
            },
            "growth": {
                "tenants": self._growth(db, Tenant, Tenant.created_at, now),
                "users": self._growth(db, User, User.created_at, now),
                "scans": self._growth(db, ScanEvent, ScanEvent.scanned_at, now),
            },
            "subscription_plans": self.subscriptions.count_by_plan(db),
            "subscription_statuses": by_status,
        }


# Create a singleton instance
admin_service = AdminService()
