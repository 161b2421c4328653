import hashlib
import hmac
import json
import time
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from marketplace import config
from marketplace.database import Base, build_engine, build_session_factory
from marketplace.domain.payments.stripe_service import CheckoutSession, StripeService
from marketplace.errors import UpstreamError
from marketplace.main import create_app
from marketplace.shared.clock import utcnow
from marketplace.storage import MemStorage, SqlStorage

ADMIN_PASSWORD = "test-admin-secret"
WEBHOOK_SECRET = "whsec_test_secret"


class FakeGateway(StripeService):
    """Records checkout sessions instead of calling Stripe; webhook verification is real"""

    def __init__(self, available: bool = True):
        self.available = available
        self.created: list[dict] = []
        self.sessions: dict[str, CheckoutSession] = {}

    def is_available(self) -> bool:
        return self.available

    def create_checkout_session(
        self, name, description, amount, success_url, cancel_url, metadata=None
    ) -> CheckoutSession:
        self.require_available()
        session_id = f"cs_test_{len(self.created) + 1}"
        session = CheckoutSession(id=session_id, url=f"https://checkout.stripe.test/{session_id}")
        self.created.append(
            {
                "name": name,
                "description": description,
                "amount": amount,
                "success_url": success_url,
                "metadata": metadata or {},
                "session": session,
            }
        )
        self.sessions[session_id] = session
        return session

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        self.require_available()
        if session_id not in self.sessions:
            raise UpstreamError("Failed to retrieve checkout session")
        return self.sessions[session_id]


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a stripe-signature header the way Stripe does"""
    timestamp = timestamp or int(time.time())
    signature = hmac.new(
        secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def checkout_completed_event(session_id: str, metadata: dict) -> str:
    return json.dumps(
        {
            "id": "evt_test_1",
            "object": "event",
            "type": "checkout.session.completed",
            "data": {"object": {"id": session_id, "object": "checkout.session", "metadata": metadata}},
        }
    )


@pytest.fixture(autouse=True)
def settings(monkeypatch):
    monkeypatch.setattr(config, "ADMIN_PASSWORD", ADMIN_PASSWORD)
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_dummy")
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setattr(config, "APP_ENV", "development")
    monkeypatch.setattr(config, "BASE_URL", "http://localhost:5000")


@pytest.fixture
def storage():
    return MemStorage()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(storage, gateway):
    return create_app(storage=storage, gateway=gateway)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_client(app):
    """Extra clients with their own cookie jars"""
    clients = []

    def _make():
        test_client = TestClient(app)
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        test_client.close()


@pytest.fixture
def admin_client(make_client):
    test_client = make_client()
    response = test_client.post("/api/admin/login", json={"password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return test_client


@pytest.fixture
def register_provider(make_client):
    """Returns a logged-in client and the provider's user id"""

    def _register(username: str = "mechanic1"):
        test_client = make_client()
        response = test_client.post(
            "/api/provider/register",
            json={
                "username": username,
                "password": "wrench123",
                "firstName": "Sam",
                "lastName": "Rivera",
                "phoneNumber": "555-0100",
            },
        )
        assert response.status_code == 200
        return test_client, response.json()["user"]["id"]

    return _register


@pytest.fixture
def create_job(client):
    def _create(**overrides):
        payload = {
            "serviceType": "Oil Change",
            "preferredDate": "2025-11-01",
            "preferredTime": "10:00",
            "customerEmail": "a@b.com",
        }
        payload.update(overrides)
        response = client.post("/api/jobs", json=payload)
        assert response.status_code == 200, response.text
        return response.json()

    return _create


@pytest.fixture
def schedule_in(storage):
    """Move a job's appointment to the given number of hours from now"""

    def _schedule(job_id: str, hours: float):
        return storage.update_job(
            job_id, {"appointment_date_time": utcnow() + timedelta(hours=hours)}
        )

    return _schedule


@pytest.fixture
def sql_storage():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield SqlStorage(build_session_factory(engine))
    engine.dispose()


@pytest.fixture
def send_webhook(client):
    """POST a signed checkout.session.completed event"""

    def _send(session_id: str, metadata: dict, secret: str = WEBHOOK_SECRET):
        payload = checkout_completed_event(session_id, metadata)
        return client.post(
            "/api/webhooks/stripe",
            content=payload,
            headers={"stripe-signature": sign_payload(payload, secret), "Content-Type": "application/json"},
        )

    return _send
