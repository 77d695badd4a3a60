import os
import tempfile

# Settings are read at import time; configure them before the app is imported
_RUNTIME_DIR = tempfile.mkdtemp(prefix="qrmenu-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_RUNTIME_DIR, 'import.db')}")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BILLING_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("UPLOADS_DIR", os.path.join(_RUNTIME_DIR, "uploads"))
os.environ.setdefault("QR_BASE_URL", "https://menu.example.com/m")

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from app.core.security import create_access_token
from app.crud.membership import membership as membership_crud
from app.crud.tenant import tenant as tenant_crud
from app.crud.user import user as user_crud
from app.database import Base, get_db, get_session_factory
from app.models.subscription import SubscriptionPlan
from app.models.user import UserRole
from app.utils.time import add_months, utcnow
from main import app


def _sqlite_engine(url: str, begin_statement: str):
    """
    File-backed SQLite engine that owns its transactions.

    pysqlite's own BEGIN handling is disabled so that SQLAlchemy's begin
    event decides how each transaction starts.
    """
    engine = create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql(begin_statement)

    return engine


@pytest.fixture
def engines(tmp_path):
    """
    Two engines on one database file.

    Request sessions start deferred transactions, so a request that only
    read never blocks a writer. Writer sessions (background tasks, worker
    threads) take the write lock up front and queue behind each other.
    """
    url = f"sqlite:///{tmp_path / 'qrmenu.db'}"
    reader = _sqlite_engine(url, "BEGIN")
    writer = _sqlite_engine(url, "BEGIN IMMEDIATE")
    Base.metadata.create_all(bind=writer)
    yield reader, writer
    reader.dispose()
    writer.dispose()


@pytest.fixture
def session_factory(engines):
    _, writer = engines
    return sessionmaker(autocommit=False, autoflush=False, bind=writer)


@pytest.fixture
def request_session_factory(engines):
    reader, _ = engines
    return sessionmaker(autocommit=False, autoflush=False, bind=reader)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(request_session_factory, session_factory):
    def override_get_db():
        session = request_session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def make_user(session_factory, phone, role=UserRole.OWNER, password="password123", **kwargs):
    with session_factory() as session:
        user = user_crud.create(session, phone=phone, password=password, role=role, **kwargs)
        return user.id


def make_tenant(session_factory, owner_id, name="Cafe Nile", period_end=None, plan=SubscriptionPlan.PRO):
    """Tenant with an ACTIVE subscription ending ``period_end`` (default: a month from now)."""
    now = utcnow()
    with session_factory() as session:
        tenant = tenant_crud.create_with_subscription(
            session,
            name=name,
            slug=f"{name.lower().replace(' ', '-')}-{owner_id}",
            owner_id=owner_id,
            plan=plan,
            period_start=now - timedelta(days=1),
            period_end=period_end or add_months(now, 1),
        )
        return tenant.id


def add_member(session_factory, tenant_id, user_id, role=UserRole.STAFF):
    with session_factory() as session:
        return membership_crud.create_for_user(session, tenant_id=tenant_id, user_id=user_id, role=role).id


def auth_headers(user_id):
    token = create_access_token(data={"id": str(user_id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def owner_id(session_factory):
    return make_user(session_factory, "+201000000001", first_name="Owner")


@pytest.fixture
def admin_id(session_factory):
    return make_user(session_factory, "+201000000099", role=UserRole.PLATFORM_ADMIN)


@pytest.fixture
def tenant_id(session_factory, owner_id):
    return make_tenant(session_factory, owner_id)
