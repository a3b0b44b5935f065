import os
from datetime import date

from cryptography.fernet import Fernet

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENCRYPTION_KEY"] = Fernet.generate_key().decode()
os.environ["SCHEDULER_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from rm_sync.database import Base, get_db
from rm_sync.main import app
from rm_sync.models import RMConnection, RMProjectMapping, TimesheetEntry
from rm_sync.utils.encrypt import encrypt_data


@pytest.fixture
def db() -> Session:
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db: Session) -> TestClient:
    # Override dependency so requests share the test session
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def connection(db: Session) -> RMConnection:
    conn = RMConnection(
        user_id="user-1",
        rm_user_id=42,
        rm_user_email="jane@example.com",
        rm_user_name="Jane Doe",
        api_token=encrypt_data("rm-token"),
        is_active=True,
    )
    db.add(conn)
    db.commit()
    db.refresh(conn)
    return conn


@pytest.fixture
def mapping(db: Session, connection: RMConnection) -> RMProjectMapping:
    m = RMProjectMapping(
        connection_id=connection.id,
        project_id="P1",
        rm_project_id=1001,
        rm_project_name="Project One",
    )
    db.add(m)
    db.commit()
    db.refresh(m)
    return m


@pytest.fixture
def make_entry(db: Session):
    """Factory for timesheet entries belonging to user-1."""
    def _make(project_id="P1", entry_date=date(2026, 10, 12), duration=240, is_billable=True, notes=None, **kwargs):
        entry = TimesheetEntry(
            user_id=kwargs.pop("user_id", "user-1"),
            project_id=project_id,
            date=entry_date,
            duration=duration,
            is_billable=is_billable,
            notes=notes,
            **kwargs,
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry
    return _make
