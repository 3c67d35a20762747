"""Pytest fixtures — file-backed SQLite database, rebuilt for every test."""
import json

import boto3
import httpx
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from studio.config import settings
from studio.database import Base, get_db
from studio.deps import get_http_client, get_provider_client, get_storage_client
from studio.generation.provider import ProviderClient
from studio.main import app
from studio.services import storage_service

# Import all models so they register with Base.metadata
from studio.models.user import User                            # noqa: F401
from studio.models.credit_transaction import CreditTransaction  # noqa: F401
from studio.models.creation import Creation                    # noqa: F401
from studio.models.vote import Vote                            # noqa: F401
from studio.models.favorite import Favorite                    # noqa: F401
from studio.models.order import Order                          # noqa: F401
from studio.models.referral import Referral                    # noqa: F401

SQLITE_URL = "sqlite:///./test.db"
PROVIDER_URL = "https://provider.test/v1"
TEST_BUCKET = "test-bucket"


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Known settings for every test; nothing leaks in from a local .env."""
    monkeypatch.setattr(settings, "ENVIRONMENT", "development")
    monkeypatch.setattr(settings, "REPLICATE_API_TOKEN", "test-token")
    monkeypatch.setattr(settings, "REPLICATE_BASE_URL", PROVIDER_URL)
    monkeypatch.setattr(settings, "POLL_INTERVAL_SECONDS", 0.0)
    monkeypatch.setattr(settings, "AWS_ACCESS_KEY_ID", "")
    monkeypatch.setattr(settings, "AWS_SECRET_ACCESS_KEY", "")
    monkeypatch.setattr(settings, "AWS_S3_BUCKET", "")
    monkeypatch.setattr(settings, "AWS_REGION", "us-east-1")
    monkeypatch.setattr(settings, "COINBASE_COMMERCE_API_KEY", "")
    monkeypatch.setattr(settings, "COINBASE_COMMERCE_WEBHOOK_SECRET", "")
    monkeypatch.setattr(settings, "COINBASE_COMMERCE_URL", "https://commerce.test")
    storage_service.reset_s3_client()
    yield
    storage_service.reset_s3_client()


@pytest.fixture
def storage_configured(monkeypatch):
    monkeypatch.setattr(settings, "AWS_ACCESS_KEY_ID", "AKIATEST")
    monkeypatch.setattr(settings, "AWS_SECRET_ACCESS_KEY", "secret")
    monkeypatch.setattr(settings, "AWS_S3_BUCKET", TEST_BUCKET)


@pytest.fixture
def s3_client():
    """Real boto3 client with fake credentials; wrap it in a Stubber per test."""
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="AKIATEST",
        aws_secret_access_key="secret",
    )


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

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
    """Yield a database session that is closed after the test."""
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
    app.dependency_overrides[get_storage_client] = lambda: None
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Fake external services
# ---------------------------------------------------------------------------
class FakeProvider:
    """Scripted prediction API behind an ``httpx.MockTransport``.

    ``submissions`` are (status, json) pairs returned for successive POSTs;
    ``polls`` are prediction dicts returned for successive GETs (the last
    one repeats).
    """

    def __init__(self, submissions=None, polls=None, poll_status=200):
        self.submissions = list(submissions or [(201, prediction("starting"))])
        self.polls = list(polls or [prediction("succeeded", output=["https://replicate.delivery/out.jpg"])])
        self.posted = []
        self.poll_status = poll_status
        self.poll_count = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            self.posted.append(json.loads(request.content))
            status, body = self.submissions.pop(0) if len(self.submissions) > 1 else self.submissions[0]
            return httpx.Response(status, json=body)
        self.poll_count += 1
        body = self.polls.pop(0) if len(self.polls) > 1 else self.polls[0]
        return httpx.Response(self.poll_status, json=body)

    def client(self) -> ProviderClient:
        return ProviderClient(api_token="test-token", base_url=PROVIDER_URL, transport=httpx.MockTransport(self.handler))


def prediction(status: str, output=None, error=None, prediction_id: str = "pred-1") -> dict:
    return {
        "id": prediction_id,
        "status": status,
        "output": output,
        "error": error,
        "urls": {"get": f"{PROVIDER_URL}/predictions/{prediction_id}"},
    }


def static_http_client(routes: dict) -> httpx.Client:
    """httpx client answering GETs from ``{url: (status, body, content_type)}``; unknown URLs 404."""

    def _handler(request: httpx.Request) -> httpx.Response:
        status, body, content_type = routes.get(str(request.url), (404, b"", "text/plain"))
        return httpx.Response(status, content=body, headers={"content-type": content_type})

    return httpx.Client(transport=httpx.MockTransport(_handler))


def use_provider(fake: FakeProvider, http_client: httpx.Client = None) -> None:
    """Route the app's outbound provider (and optionally asset) calls to fakes."""
    app.dependency_overrides[get_provider_client] = fake.client
    if http_client is not None:
        app.dependency_overrides[get_http_client] = lambda: http_client


# ---------------------------------------------------------------------------
# Helper: identity headers and API shortcuts
# ---------------------------------------------------------------------------
def auth_headers(user_id: str = "user-1", name: str = "Test User", email: str = None) -> dict:
    return {
        "X-User-Id": user_id,
        "X-User-Name": name,
        "X-User-Email": email or f"{user_id}@example.com",
    }


def create_test_creation(client: TestClient, user_id: str = "user-1", model: str = "Alex",
                         kind: str = "image", generated: str = None, **extra) -> dict:
    """Helper — POST /api/creations and return the saved creation JSON."""
    payload = {
        "generatedImage": generated or f"https://cdn.example.com/{model.lower()}.jpg",
        "model": model,
        "prompt": "in a spacesuit",
        "type": kind,
    }
    payload.update(extra)
    resp = client.post("/api/creations/", json=payload, headers=auth_headers(user_id))
    assert resp.status_code == 201, resp.text
    return resp.json()["creation"]
