from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone
from types import SimpleNamespace

from app.crud.analytics import daily_analytics as analytics_crud
from app.crud.tenant import tenant as tenant_crud
from app.services.analytics import analytics_service, rank_items
from app.services.qr_code import QrCodeService
from app.services.scan_recorder import scan_recorder
from app.services.storage import LocalFileStorage
from app.utils.time import local_day_bounds

NOON = datetime(2026, 5, 10, 12, 0, tzinfo=timezone.utc)


def row(item_views):
    return SimpleNamespace(item_views=item_views)


class TestRanking:

    def test_sums_across_days(self):
        ranked = rank_items([row({"a": 2, "b": 1}), row({"b": 3})])
        assert ranked == [("b", 4), ("a", 2)]

    def test_ties_are_ordered_by_item_id(self):
        ranked = rank_items([row({"z": 5, "m": 5}), row({"a": 5})])
        assert ranked == [("a", 5), ("m", 5), ("z", 5)]

    def test_limit(self):
        views = {f"item-{i:02d}": i for i in range(20)}
        ranked = rank_items([row(views)])
        assert len(ranked) == 10
        assert ranked[0] == ("item-19", 19)

    def test_rows_without_item_views(self):
        assert rank_items([row(None), row({})]) == []


def test_first_view_of_the_day_creates_the_row(db, tenant_id):
    result = analytics_service.record_view(db, tenant_id, item_id="7", category_id="2", now=NOON)

    assert result.date == date(2026, 5, 10)
    assert result.views == 1
    assert result.unique_views == 1
    assert result.item_views == {"7": 1}
    assert result.category_views == {"2": 1}


def test_later_views_increment_counts_not_unique_views(db, tenant_id):
    analytics_service.record_view(db, tenant_id, item_id="7", now=NOON)
    analytics_service.record_view(db, tenant_id, item_id="7", now=NOON)
    result = analytics_service.record_view(db, tenant_id, item_id="8", now=NOON)

    assert result.views == 3
    assert result.unique_views == 1
    assert result.item_views == {"7": 2, "8": 1}


def test_first_view_after_scans_counts_as_unique(db, tenant_id):
    analytics_service.record_scan(db, tenant_id, now=NOON)
    db.commit()

    result = analytics_service.record_view(db, tenant_id, now=NOON)

    assert result.qr_scans == 1
    assert result.views == 1
    assert result.unique_views == 1


def test_days_are_separate_rows(db, tenant_id):
    analytics_service.record_view(db, tenant_id, now=NOON)
    analytics_service.record_view(db, tenant_id, now=datetime(2026, 5, 11, 0, 5, tzinfo=timezone.utc))

    rows = analytics_crud.get_range(db, tenant_id=tenant_id)
    assert [r.date for r in rows] == [date(2026, 5, 11), date(2026, 5, 10)]


def test_concurrent_views_share_one_row(session_factory, tenant_id):
    def view(i):
        with session_factory() as session:
            analytics_service.record_view(session, tenant_id, item_id=str(i % 3), now=NOON)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(view, range(30)))

    with session_factory() as session:
        assert analytics_crud.count_rows(session, tenant_id=tenant_id, day=NOON.date()) == 1
        result = analytics_crud.get_range(session, tenant_id=tenant_id)[0]
        assert result.views == 30
        assert result.unique_views == 1
        assert result.item_views == {"0": 10, "1": 10, "2": 10}


def test_summary(db, tenant_id, tmp_path):
    analytics_service.record_view(db, tenant_id, item_id="1", now=NOON)
    analytics_service.record_view(db, tenant_id, item_id="2", now=NOON)
    analytics_service.record_view(db, tenant_id, item_id="2", now=NOON)

    qr_codes = QrCodeService(storage=LocalFileStorage(str(tmp_path)))
    table = qr_codes.issue(db, tenant_id, table_id="T-1")
    bar = qr_codes.issue(db, tenant_id, table_id="BAR")
    for _ in range(3):
        scan_recorder.record(db, table.id, tenant_id, now=NOON)
    scan_recorder.record(db, bar.id, tenant_id, now=NOON)

    summary = analytics_service.summarize(db, tenant_id, start_date=date(2026, 5, 1), end_date=date(2026, 5, 31))

    assert summary.totals.total_views == 3
    assert summary.totals.total_unique_views == 1
    assert summary.totals.total_qr_scans == 4
    assert [(p.item_id, p.views) for p in summary.popular_items] == [("2", 2), ("1", 1)]
    assert summary.qr_scans == 4
    assert [(c.code, c.count) for c in summary.qr_scans_by_code] == [(table.code, 3), (bar.code, 1)]
    assert len(summary.daily_analytics) == 1


def test_summary_outside_the_range_is_empty(db, tenant_id):
    analytics_service.record_view(db, tenant_id, now=NOON)

    summary = analytics_service.summarize(db, tenant_id, start_date=date(2026, 6, 1), end_date=date(2026, 6, 30))

    assert summary.totals.total_views == 0
    assert summary.daily_analytics == []
    assert summary.qr_scans == 0


def test_summary_scan_window_follows_the_tenant_timezone(db, tenant_id, tmp_path):
    tenant = tenant_crud.get(db, tenant_id)
    tenant.timezone = "Asia/Tokyo"
    db.commit()
    qr_code = QrCodeService(storage=LocalFileStorage(str(tmp_path))).issue(db, tenant_id, table_id="T-1")

    # 23:00 on May 10 and 05:00 on May 11, Tokyo time
    scan_recorder.record(db, qr_code.id, tenant_id, now=datetime(2026, 5, 10, 14, 0, tzinfo=timezone.utc))
    scan_recorder.record(db, qr_code.id, tenant_id, now=datetime(2026, 5, 10, 20, 0, tzinfo=timezone.utc))

    summary = analytics_service.summarize(db, tenant_id, start_date=date(2026, 5, 11), end_date=date(2026, 5, 11))

    assert [r.date for r in summary.daily_analytics] == [date(2026, 5, 11)]
    assert summary.totals.total_qr_scans == 1
    assert summary.qr_scans == 1
    assert [(c.code, c.count) for c in summary.qr_scans_by_code] == [(qr_code.code, 1)]


def test_local_day_bounds():
    start, end = local_day_bounds(date(2026, 5, 11), date(2026, 5, 12), "Asia/Tokyo")

    assert start == datetime(2026, 5, 10, 15, 0, tzinfo=timezone.utc)
    assert end == datetime(2026, 5, 12, 14, 59, 59, 999999, tzinfo=timezone.utc)
