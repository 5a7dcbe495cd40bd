"""Pytest fixtures: file-backed SQLite database, recreated for every test."""
import os

SQLITE_URL = "sqlite:///./test.db"
os.environ.setdefault("DATABASE_URL", SQLITE_URL)

import pytest  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from ecm.database import Base, get_db  # noqa: E402
from ecm.main import app  # noqa: E402
from ecm.models.organization import Organization  # noqa: E402
from ecm.services import workflow_service  # noqa: E402


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False, "timeout": 30})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: service-level setup
# ---------------------------------------------------------------------------
def make_org(db, subdomain: str = "acme", settings: dict = None) -> Organization:
    org = Organization(name=subdomain.title(), subdomain=subdomain, settings=settings or {})
    db.add(org)
    db.commit()
    db.refresh(org)
    return org


def make_ecr(db, org_id: str, requestor_id: str = "req-1", **data):
    data.setdefault("title", "Replace gasket material")
    return workflow_service.create_ecr(db, org_id, requestor_id, data)


def make_eco(db, org_id: str, actor_id: str = "eng-1", **data):
    data.setdefault("title", "Rework housing drawing")
    return workflow_service.create_eco(db, org_id, actor_id, data)


def make_ecn(db, org_id: str, eco_id: str, actor_id: str = "eng-1", **data):
    data.setdefault("title", "Notify production of new gasket")
    return workflow_service.create_ecn(db, org_id, actor_id, {"eco_id": eco_id, **data})


# ---------------------------------------------------------------------------
# Helpers: API-level setup
# ---------------------------------------------------------------------------
def headers(user_id: str, org_id: str) -> dict:
    return {"X-User-Id": user_id, "X-Org-Id": org_id}


def create_test_org(client: TestClient, subdomain: str = "acme", user_id: str = "admin-1", settings: dict = None) -> dict:
    """Helper: POST /api/organizations and return response JSON."""
    resp = client.post(
        "/api/organizations/",
        json={"name": subdomain.title(), "subdomain": subdomain, "settings": settings or {}},
        headers={"X-User-Id": user_id},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_ecr(client: TestClient, org_id: str, user_id: str = "req-1", **fields) -> dict:
    """Helper: POST /api/ecr and return response JSON."""
    payload = {"title": "Replace gasket material", **fields}
    resp = client.post("/api/ecr/", json=payload, headers=headers(user_id, org_id))
    assert resp.status_code == 201, resp.text
    return resp.json()
