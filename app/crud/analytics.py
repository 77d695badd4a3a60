from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import select, func, case
from app.crud.base import upsert_insert
from app.models.analytics import DailyAnalytics


class CRUDDailyAnalytics:
    """
    Storage primitives for the daily analytics rollup.

    Each write is a single INSERT ... ON CONFLICT (tenant_id, date) DO UPDATE
    so concurrent first events of a day create exactly one row. None of the
    write methods commit; callers own the transaction.
    """

    def __init__(self):
        self.model = DailyAnalytics

    def upsert_view(self, db: Session, *, tenant_id: int, day: date) -> None:
        """Count one menu view; the first view of the day is also a unique view."""
        stmt = upsert_insert(db, DailyAnalytics).values(
            tenant_id=tenant_id,
            date=day,
            views=1,
            unique_views=1,
            qr_scans=0,
        ).on_conflict_do_update(
            index_elements=["tenant_id", "date"],
            set_={
                "views": DailyAnalytics.views + 1,
                "unique_views": case(
                    (DailyAnalytics.views == 0, DailyAnalytics.unique_views + 1),
                    else_=DailyAnalytics.unique_views,
                ),
                "updated_at": func.now(),
            },
        )
        db.execute(stmt)

    def upsert_scan(self, db: Session, *, tenant_id: int, day: date) -> None:
        stmt = upsert_insert(db, DailyAnalytics).values(
            tenant_id=tenant_id,
            date=day,
            views=0,
            unique_views=0,
            qr_scans=1,
        ).on_conflict_do_update(
            index_elements=["tenant_id", "date"],
            set_={
                "qr_scans": DailyAnalytics.qr_scans + 1,
                "updated_at": func.now(),
            },
        )
        db.execute(stmt)

    def get_for_update(self, db: Session, *, tenant_id: int, day: date) -> Optional[DailyAnalytics]:
        """
        Load the day's row, locking it until the transaction ends.

        On PostgreSQL the preceding upsert already holds the row lock; the
        explicit FOR UPDATE keeps that true if the order of calls changes.
        """
        stmt = select(DailyAnalytics).where(
            DailyAnalytics.tenant_id == tenant_id,
            DailyAnalytics.date == day,
        ).with_for_update().execution_options(populate_existing=True)
        result = db.execute(stmt)
        return result.scalar_one_or_none()

    def increment_map_entries(
        self,
        db: Session,
        *,
        row: DailyAnalytics,
        item_id: Optional[str] = None,
        category_id: Optional[str] = None
    ) -> None:
        """Merge +1 for the item and/or category into the row's view maps."""
        if item_id is not None:
            item_views = dict(row.item_views or {})
            item_views[item_id] = item_views.get(item_id, 0) + 1
            row.item_views = item_views
        if category_id is not None:
            category_views = dict(row.category_views or {})
            category_views[category_id] = category_views.get(category_id, 0) + 1
            row.category_views = category_views
        db.flush()

    def get_range(
        self,
        db: Session,
        *,
        tenant_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 30
    ) -> List[DailyAnalytics]:
        """Most recent rows in [start_date, end_date], newest first."""
        stmt = select(DailyAnalytics).where(DailyAnalytics.tenant_id == tenant_id)
        if start_date is not None:
            stmt = stmt.where(DailyAnalytics.date >= start_date)
        if end_date is not None:
            stmt = stmt.where(DailyAnalytics.date <= end_date)
        stmt = stmt.order_by(DailyAnalytics.date.desc()).limit(limit)
        return list(db.execute(stmt).scalars().all())

    def count_rows(self, db: Session, *, tenant_id: int, day: date) -> int:
        stmt = select(func.count()).select_from(DailyAnalytics).where(
            DailyAnalytics.tenant_id == tenant_id,
            DailyAnalytics.date == day,
        )
        return db.execute(stmt).scalar_one()


# Create singleton instance
daily_analytics = CRUDDailyAnalytics()
