"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema rebuilt for every test
- A frozen clock shared by the token and blob services
- TestClient against a freshly built app
- Signup/login helpers returning bearer headers
"""
import os
import tempfile
from datetime import timedelta

# Settings are read at import time, so the environment must be ready first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["APP_ENV"] = "test"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="notes-api-storage-")

import pytest
from fastapi.testclient import TestClient

import notes_api.models  # noqa: F401
from notes_api.config import settings
from notes_api.database import Base, SessionLocal, engine
from notes_api.main import create_app
from notes_api.services.storage_service import BlobService, LocalDiskStorage
from notes_api.services.token_service import TokenService
from notes_api.utils.clock import utcnow

API = settings.API_PREFIX
PASSWORD = "correct-horse-battery"


class FrozenClock:
    """Callable clock that only moves when a test tells it to."""

    def __init__(self, now=None):
        self.now = now or utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


# =============================================================================
# Database
# =============================================================================

@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


# =============================================================================
# Services / App
# =============================================================================

@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def token_service(clock):
    return TokenService.from_settings(settings, clock=clock)


@pytest.fixture
def blob_service(clock, tmp_path):
    return BlobService(
        storage=LocalDiskStorage(tmp_path / "storage"),
        secret_key=settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        upload_ttl=timedelta(minutes=settings.DIRECT_UPLOAD_EXPIRE_MINUTES),
        public_base_url=settings.PUBLIC_BASE_URL,
        api_prefix=settings.API_PREFIX,
        clock=clock,
    )


@pytest.fixture
def app(token_service, blob_service):
    application = create_app(settings)
    application.state.token_service = token_service
    application.state.blob_service = blob_service
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


# =============================================================================
# Users
# =============================================================================

def signup(client, email, password=PASSWORD):
    response = client.post(f"{API}/auth/signup", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


def login(client, email, password=PASSWORD):
    response = client.post(f"{API}/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


def bearer(access_token):
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def alice(client):
    signup(client, "alice@example.com")
    return login(client, "alice@example.com")


@pytest.fixture
def auth_headers(alice):
    return bearer(alice["access_token"])


@pytest.fixture
def other_headers(client):
    signup(client, "bob@example.com")
    return bearer(login(client, "bob@example.com")["access_token"])
