from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple, Union
from sqlalchemy.orm import Session, sessionmaker
from app.core.config import settings
from app.core.logging_config import logger
from app.crud.analytics import daily_analytics as analytics_crud
from app.crud.qr_code import qr_code as qr_code_crud
from app.crud.tenant import tenant as tenant_crud
from app.models.analytics import DailyAnalytics
from app.schemas.analytics import (
    AnalyticsSummary,
    AnalyticsTotals,
    CodeScanCount,
    DailyAnalyticsResponse,
    PopularItem,
)
from app.utils.time import local_date, local_day_bounds, utcnow

SUMMARY_ROW_LIMIT = 30
POPULAR_ITEMS_LIMIT = 10


def rank_items(rows: List[DailyAnalytics], limit: int = POPULAR_ITEMS_LIMIT) -> List[Tuple[str, int]]:
    """
    Sum item views across rows and rank them.

    Highest total first; equal totals are ordered by item id so the ranking
    is stable between calls.
    """
    totals: Dict[str, int] = {}
    for row in rows:
        for item_id, views in (row.item_views or {}).items():
            totals[item_id] = totals.get(item_id, 0) + int(views)
    ranked = sorted(totals.items(), key=lambda entry: (-entry[1], entry[0]))
    return ranked[:limit]


class AnalyticsService:
    """Daily rollups of menu views and QR scans, and their summaries."""

    def __init__(self, store=analytics_crud, tenants=tenant_crud, qr_codes=qr_code_crud,
                 clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.tenants = tenants
        self.qr_codes = qr_codes
        self.clock = clock

    def _timezone(self, db: Session, tenant_id: int) -> Optional[str]:
        tenant = self.tenants.get(db, tenant_id)
        return tenant.timezone if tenant is not None else None

    def _today(self, db: Session, tenant_id: int, now: Optional[datetime]) -> date:
        return local_date(now or self.clock(), self._timezone(db, tenant_id))

    def record_view(
        self,
        db: Session,
        tenant_id: int,
        item_id: Optional[Union[int, str]] = None,
        category_id: Optional[Union[int, str]] = None,
        now: Optional[datetime] = None
    ) -> DailyAnalytics:
        """
        Count one menu view for the tenant's current day.

        The day row is created or incremented by one upsert; item/category
        counts are merged in the same transaction while the row is locked.
        """
        day = self._today(db, tenant_id, now)
        try:
            self.store.upsert_view(db, tenant_id=tenant_id, day=day)
            row = self.store.get_for_update(db, tenant_id=tenant_id, day=day)
            if item_id is not None or category_id is not None:
                self.store.increment_map_entries(
                    db,
                    row=row,
                    item_id=str(item_id) if item_id is not None else None,
                    category_id=str(category_id) if category_id is not None else None,
                )
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(row)
        return row

    def record_scan(self, db: Session, tenant_id: int, now: Optional[datetime] = None) -> None:
        """Count one QR scan in the day's rollup. Does NOT commit."""
        day = self._today(db, tenant_id, now)
        self.store.upsert_scan(db, tenant_id=tenant_id, day=day)

    def record_view_detached(
        self,
        session_factory: sessionmaker,
        tenant_id: int,
        item_id: Optional[Union[int, str]] = None,
        category_id: Optional[Union[int, str]] = None
    ) -> None:
        """
        Background-task entry point. Views are telemetry: failures are logged
        and never reach the visitor.
        """
        db = session_factory()
        try:
            self.record_view(db, tenant_id, item_id=item_id, category_id=category_id)
        except Exception:
            logger.exception(f"Failed to record menu view: tenant_id={tenant_id}")
        finally:
            db.close()

    def summarize(
        self,
        db: Session,
        tenant_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> AnalyticsSummary:
        rows = self.store.get_range(
            db,
            tenant_id=tenant_id,
            start_date=start_date,
            end_date=end_date,
            limit=SUMMARY_ROW_LIMIT,
        )

        totals = AnalyticsTotals(
            total_views=sum(r.views for r in rows),
            total_unique_views=sum(r.unique_views for r in rows),
            total_qr_scans=sum(r.qr_scans for r in rows),
        )

        # Scan log window: the same local days as the daily rows, or the last
        # ANALYTICS_WINDOW_DAYS when no dates are given
        now = self.clock()
        tz_name = self._timezone(db, tenant_id)
        window_start = (
            local_day_bounds(start_date, start_date, tz_name)[0]
            if start_date else now - timedelta(days=settings.ANALYTICS_WINDOW_DAYS)
        )
        window_end = local_day_bounds(end_date, end_date, tz_name)[1] if end_date else now
        by_code = self.qr_codes.scans_by_code(db, tenant_id=tenant_id, start=window_start, end=window_end)

        return AnalyticsSummary(
            totals=totals,
            daily_analytics=[DailyAnalyticsResponse.model_validate(r) for r in rows],
            popular_items=[PopularItem(item_id=i, views=v) for i, v in rank_items(rows)],
            qr_scans=sum(count for _, count in by_code),
            qr_scans_by_code=[CodeScanCount(code=c, count=n) for c, n in by_code],
        )


# Create a singleton instance
analytics_service = AnalyticsService()
