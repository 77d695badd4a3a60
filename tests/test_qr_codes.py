from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import func, select

from app.core.exceptions import DuplicateTableCodeError, QrCodeNotFoundError, TableCodeConflictError
from app.crud.qr_code import qr_code as qr_code_crud
from app.models.analytics import DailyAnalytics
from app.models.qr_code import QrCode, ScanEvent
from app.services.qr_code import QrCodeService
from app.services.scan_recorder import scan_recorder
from app.services.storage import LocalFileStorage, render_qr_png
from tests.conftest import make_tenant, make_user


@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(str(tmp_path / "uploads"))


@pytest.fixture
def service(storage):
    return QrCodeService(storage=storage, base_url="https://menu.example.com/m/")


def test_render_produces_png():
    assert render_qr_png("https://menu.example.com/m/abc").startswith(b"\x89PNG")


def test_storage_rejects_keys_outside_root(storage):
    with pytest.raises(ValueError):
        storage.save("../escape.png", b"x")


def test_issue_untabled_codes_are_distinct(db, service, tenant_id):
    first = service.issue(db, tenant_id)
    second = service.issue(db, tenant_id)

    assert first.id != second.id
    assert first.code != second.code
    assert first.public_url == f"https://menu.example.com/m/{first.code}"
    assert first.scan_count == 0


def test_issue_stores_the_image(db, service, storage, tenant_id):
    qr_code = service.issue(db, tenant_id)

    assert qr_code.image_key == f"qr-codes/{tenant_id}/{qr_code.code}.png"
    assert storage.exists(qr_code.image_key)


def test_issue_for_table_is_idempotent(db, service, tenant_id):
    first = service.issue(db, tenant_id, table_id="T-5")
    second = service.issue(db, tenant_id, table_id="T-5")

    assert first.id == second.id
    assert first.code == second.code


def test_table_of_another_tenant_conflicts(db, service, session_factory, tenant_id):
    other_owner = make_user(session_factory, "+201000000222")
    other_tenant = make_tenant(session_factory, other_owner, name="Other Place")
    service.issue(db, tenant_id, table_id="T-1")

    with pytest.raises(TableCodeConflictError):
        service.issue(db, other_tenant, table_id="T-1")


def test_concurrent_first_requests_for_a_table_create_one_row(session_factory, service, tenant_id):
    def issue(_):
        with session_factory() as session:
            return service.issue(session, tenant_id, table_id="5").code

    with ThreadPoolExecutor(max_workers=8) as pool:
        codes = list(pool.map(issue, range(16)))

    assert len(set(codes)) == 1
    with session_factory() as session:
        count = session.execute(select(func.count()).select_from(QrCode).where(QrCode.table_id == "5")).scalar_one()
    assert count == 1


class VanishingWinnerStore(type(qr_code_crud)):
    """Reports the table as taken although no row exists, ``lost`` times."""

    def __init__(self, lost):
        super().__init__(QrCode)
        self.lost = lost

    def create_for_table(self, db, **kwargs):
        if self.lost:
            self.lost -= 1
            raise DuplicateTableCodeError(kwargs["table_id"])
        return super().create_for_table(db, **kwargs)


def test_issue_retries_when_the_winning_row_is_gone(db, storage, tenant_id):
    service = QrCodeService(store=VanishingWinnerStore(lost=1), storage=storage)

    qr_code = service.issue(db, tenant_id, table_id="T-7")

    assert qr_code.table_id == "T-7"
    assert qr_code.tenant_id == tenant_id


def test_issue_gives_up_when_the_table_keeps_vanishing(db, storage, tenant_id):
    service = QrCodeService(store=VanishingWinnerStore(lost=10), storage=storage)

    with pytest.raises(QrCodeNotFoundError):
        service.issue(db, tenant_id, table_id="T-8")


def test_image_failure_does_not_fail_issue(db, tenant_id):
    class BrokenStorage:
        def save(self, key, data):
            raise OSError("disk full")

    qr_code = QrCodeService(storage=BrokenStorage()).issue(db, tenant_id, table_id="T-9")

    assert qr_code.id is not None
    assert qr_code.image_key is None


def test_resolve_unknown_code(db, service):
    with pytest.raises(QrCodeNotFoundError):
        service.resolve(db, "missing")


def test_resolve_code_of_inactive_tenant(db, service, tenant_id):
    qr_code = service.issue(db, tenant_id)
    qr_code.tenant.is_active = False
    db.commit()

    with pytest.raises(QrCodeNotFoundError):
        service.resolve(db, qr_code.code)


def test_remove_deletes_row_scans_and_image(db, service, storage, tenant_id):
    qr_code = service.issue(db, tenant_id)
    qr_code_id, image_key = qr_code.id, qr_code.image_key
    assert scan_recorder.record(db, qr_code_id, tenant_id)

    service.remove(db, qr_code_id, tenant_id)

    assert qr_code_crud.get(db, id=qr_code_id, tenant_id=tenant_id) is None
    assert qr_code_crud.count_scan_events(db, qr_code_id=qr_code_id) == 0
    assert not storage.exists(image_key)


def test_remove_is_scoped_to_the_tenant(db, service, session_factory, tenant_id):
    other_owner = make_user(session_factory, "+201000000333")
    other_tenant = make_tenant(session_factory, other_owner, name="Elsewhere")
    qr_code = service.issue(db, tenant_id)

    with pytest.raises(QrCodeNotFoundError):
        service.remove(db, qr_code.id, other_tenant)


class TestScanRecorder:

    def test_scan_updates_counter_log_and_rollup(self, db, service, tenant_id):
        qr_code = service.issue(db, tenant_id)

        assert scan_recorder.record(db, qr_code.id, tenant_id, source_address="10.0.0.1", user_agent="pytest")

        db.refresh(qr_code)
        assert qr_code.scan_count == 1
        assert qr_code.last_scanned_at is not None
        event = db.execute(select(ScanEvent).where(ScanEvent.qr_code_id == qr_code.id)).scalar_one()
        assert event.source_address == "10.0.0.1"
        assert event.user_agent == "pytest"
        rollup = db.execute(select(DailyAnalytics).where(DailyAnalytics.tenant_id == tenant_id)).scalar_one()
        assert rollup.qr_scans == 1
        assert rollup.views == 0

    def test_scan_of_deleted_code_is_dropped(self, db, tenant_id):
        assert scan_recorder.record(db, 424242, tenant_id) is False

    def test_detached_recording_swallows_failures(self):
        class Session:
            def close(self):
                pass

        calls = []

        class Recorder(type(scan_recorder)):
            def record(self, db, *args, **kwargs):
                calls.append(args)
                raise RuntimeError("boom")

        Recorder().record_detached(lambda: Session(), 1, 1)
        assert calls

    def test_concurrent_scans_are_all_counted(self, session_factory, service, tenant_id):
        with session_factory() as session:
            qr_code_id = service.issue(session, tenant_id).id

        def scan(_):
            with session_factory() as session:
                return scan_recorder.record(session, qr_code_id, tenant_id)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(scan, range(40)))

        assert all(results)
        with session_factory() as session:
            qr_code = session.get(QrCode, qr_code_id)
            assert qr_code.scan_count == 40
            assert qr_code_crud.count_scan_events(session, qr_code_id=qr_code_id) == 40
            rollups = session.execute(
                select(DailyAnalytics).where(DailyAnalytics.tenant_id == tenant_id)
            ).scalars().all()
            assert len(rollups) == 1
            assert rollups[0].qr_scans == 40
