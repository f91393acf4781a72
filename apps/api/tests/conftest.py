"""Pytest configuration and fixtures."""

import os

# Settings are read at import time, so point them at SQLite before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from casevault_api.auth.api_key import issue_api_key
from casevault_api.cases.service import CaseService
from casevault_api.db.base import Base
from casevault_api.db.session import get_db
from casevault_api.evidence.service import EvidenceService
from casevault_api.ledger.hasher import hash_bytes
from casevault_api.models import Case, EvidenceRecord, User
from casevault_api.models.user import ROLE_CLIENT, ROLE_INVESTIGATOR
from casevault_api.storage import service as storage_module

# Use test database URL from environment or default to SQLite in-memory
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")

EVIDENCE_BYTES = b"raw disk image bytes\x00\x01\x02"


@pytest.fixture(scope="function")
def db():
    """
    Create a test database session.

    Set TEST_DATABASE_URL to run against a real PostgreSQL instance.
    """
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(TEST_DATABASE_URL)

    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture(autouse=True)
def storage(monkeypatch) -> MagicMock:
    """Replace the MinIO-backed storage singleton with a mock."""
    mock_storage = MagicMock()
    mock_storage.available = True
    mock_storage.put_object.side_effect = lambda key, data, content_type=None, length=None: key
    mock_storage.generate_signed_url.return_value = "http://storage.test/signed"
    monkeypatch.setattr(storage_module, "_storage_service", mock_storage)
    return mock_storage


def _make_user(db: Session, email: str, first_name: str, last_name: str, role: str) -> User:
    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        password_hash="not-a-real-hash",
        is_active=True,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def investigator(db: Session) -> User:
    """Lead investigator."""
    return _make_user(db, "lead@example.com", "Dana", "Reyes", ROLE_INVESTIGATOR)


@pytest.fixture
def teammate(db: Session) -> User:
    """Investigator added to the case team."""
    return _make_user(db, "team@example.com", "Lee", "Park", ROLE_INVESTIGATOR)


@pytest.fixture
def outsider(db: Session) -> User:
    """Investigator with no access to the case."""
    return _make_user(db, "outsider@example.com", "Alex", "Moore", ROLE_INVESTIGATOR)


@pytest.fixture
def client_user(db: Session) -> User:
    """Client the case is run for."""
    return _make_user(db, "client@example.com", "Sam", "Okafor", ROLE_CLIENT)


@pytest.fixture
def case(db: Session, investigator: User, teammate: User, client_user: User) -> Case:
    """Case led by ``investigator`` with ``teammate`` on the team."""
    return CaseService(db).create_case(
        lead=investigator,
        case_name="Laptop seizure",
        client_id=client_user.id,
        case_number="CASE-00001",
        team_member_ids=[teammate.id],
    )


@pytest.fixture
def evidence(db: Session, case: Case, investigator: User, storage: MagicMock) -> EvidenceRecord:
    """Uploaded evidence file on ``case``."""
    return EvidenceService(db, storage=storage).upload(
        case,
        investigator,
        file_name="disk.img",
        data=EVIDENCE_BYTES,
        file_hash=hash_bytes(EVIDENCE_BYTES),
        summary="Imaged system disk",
    )


@pytest.fixture
def api_keys(db: Session, investigator: User, teammate: User, outsider: User, client_user: User) -> dict:
    """Raw API keys by role name."""
    keys = {
        "lead": issue_api_key(db, investigator),
        "teammate": issue_api_key(db, teammate),
        "outsider": issue_api_key(db, outsider),
        "client": issue_api_key(db, client_user),
    }
    db.commit()
    return keys


@pytest.fixture
def client(db: Session):
    """TestClient sharing the test database session."""
    from casevault_api.main import app

    app.dependency_overrides[get_db] = lambda: db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def headers(api_keys: dict):
    """Build request headers for a named user."""

    def _headers(who: str = "lead") -> dict:
        return {"x-api-key": api_keys[who]}

    return _headers
