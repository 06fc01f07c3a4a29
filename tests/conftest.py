"""Pytest fixtures for storefront tests."""

import hashlib
import hmac
import json
import os
import time

# configuration is read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "1"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.api import create_app
from storefront.api.routers.checkout import get_gateway, get_ledger
from storefront.data import models  # noqa: F401
from storefront.data.database import Base, get_db
from storefront.services.stripe_gateway import StripeGateway

WEBHOOK_SECRET = "whsec_test_secret"

JEANS = {
    "id": 1,
    "name": "Levi 'FRAGILE' RAW DENIM Straight Jeans",
    "price": 69.99,
    "image": "/thumbnail_jeanfront.png",
}
DOUBLE_WAIST = {
    "id": 2,
    "name": "Double Waist Jeans",
    "price": 79.99,
    "image": "/double_waist.png",
}


class FakeGateway(StripeGateway):
    """Real signature checks, canned checkout sessions."""

    def __init__(self):
        super().__init__(api_key="sk_test_dummy", webhook_secret=WEBHOOK_SECRET)
        self.created = []
        self.retrieved = []
        self.sessions = {}

    def create_checkout_session(self, **params):
        self.created.append(params)
        return {"id": "cs_test_123", "url": "https://checkout.stripe.com/c/pay/cs_test_123"}

    def retrieve_session(self, session_id, expand=None):
        self.retrieved.append((session_id, expand))
        return self.sessions.get(session_id, {"id": session_id})


class FakeLedger:
    def __init__(self):
        self.claimed = {}
        self.completed = []
        self.released = []

    def claim(self, event_id):
        if event_id in self.claimed:
            return None
        owner = f"owner-{len(self.claimed) + len(self.released) + 1}"
        self.claimed[event_id] = owner
        return owner

    def complete(self, event_id, owner):
        if self.claimed.get(event_id) == owner:
            self.completed.append(event_id)

    def release(self, event_id, owner):
        if self.claimed.get(event_id) == owner:
            self.released.append(event_id)
            del self.claimed[event_id]


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Stripe-Signature header for a payload."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def make_event(event_type: str, obj: dict, event_id: str = "evt_1") -> bytes:
    return json.dumps({"id": event_id, "type": event_type, "data": {"object": obj}}).encode()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(session_factory, gateway):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_ledger] = lambda: None
    return app


@pytest.fixture
def api_client(app):
    return TestClient(app)
