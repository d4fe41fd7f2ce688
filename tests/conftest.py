"""Pytest configuration and shared fixtures."""

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from thesisflow.api.deps import get_blob_store, get_db
from thesisflow.api.main import app
from thesisflow.core.config import get_settings
from thesisflow.core.rbac import Actor
from thesisflow.db.base import Base
from thesisflow.services.storage import LocalBlobStore

from tests.factories import create_user


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(str(tmp_path / "uploads"), max_bytes=64 * 1024)


@pytest.fixture
def client(db_session, blob_store):
    """TestClient bound to the test database and blob store."""

    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.fixture
def scholar(db_session):
    return create_user(db_session, role="scholar", name="Asha Scholar", scholar_number="PHD-2024-001")


@pytest.fixture
def other_scholar(db_session):
    return create_user(db_session, role="scholar", name="Ravi Scholar", scholar_number="PHD-2024-002")


@pytest.fixture
def guide(db_session):
    return create_user(db_session, role="guide", name="Dr. Guide", department="Physics")


@pytest.fixture
def other_guide(db_session):
    return create_user(db_session, role="guide", name="Dr. Other", department="Chemistry")


@pytest.fixture
def librarian(db_session):
    return create_user(db_session, role="librarian", name="Librarian")


@pytest.fixture
def registrar(db_session):
    return create_user(db_session, role="registrar", name="Registrar")


@pytest.fixture
def vc(db_session):
    return create_user(db_session, role="vc", name="Vice-Chancellor")


@pytest.fixture
def actor():
    """Build an Actor from a user."""
    return Actor.from_user


@pytest.fixture
def auth_headers():
    """Build bearer-token headers for a user."""
    settings = get_settings()

    def _headers(user):
        token = jwt.encode({"sub": str(user.id)}, settings.secret_key, algorithm=settings.algorithm)
        return {"Authorization": f"Bearer {token}"}

    return _headers
