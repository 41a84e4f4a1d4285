"""
Pytest fixtures for the test store, HTTP client, payment gateway and authentication.

Each test gets its own in-memory SQLite database, so tests are isolated
without a running PostgreSQL. Stripe is replaced by an in-process fake;
webhook payloads are signed with the real Stripe signature scheme.
"""

import hashlib
import hmac
import json
import os
import time
from typing import AsyncGenerator, Optional

import bcrypt

TEST_ADMIN_PASSWORD = "testpassword123"
TEST_WEBHOOK_SECRET = "whsec_test_secret"

# Settings are cached on first use, so the environment must be in place before the app is imported
os.environ.update(
    {
        "ENVIRONMENT": "test",
        "LOG_LEVEL": "WARNING",
        "STORAGE_MODE": "database",
        "DATABASE_URL": "sqlite+aiosqlite://",
        "STRIPE_SECRET_KEY": "sk_test_dummy",
        "STRIPE_WEBHOOK_SECRET": TEST_WEBHOOK_SECRET,
        "ADMIN_USERNAME": "admin",
        "ADMIN_PASSWORD_HASH": bcrypt.hashpw(TEST_ADMIN_PASSWORD.encode(), bcrypt.gensalt(rounds=4)).decode(),
        "JWT_SECRET": "test-jwt-secret",
        "FRONTEND_URL": "http://localhost:5173",
    }
)

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventreg.main import app
from eventreg.api.deps import get_gateway_factory
from eventreg.core.config import get_settings
from eventreg.core.security import create_access_token
from eventreg.db.base import Base
from eventreg.db.session import build_engine
from eventreg.services.payment_gateway import (
    PaymentIntentResult,
    normalize_currency,
    reset_payment_gateway,
    to_minor_units,
)
from eventreg.services.registration_service import RegistrationService
from eventreg.storage import SqlRegistrationStore, get_storage


class FakePaymentGateway:
    """Records calls instead of talking to Stripe."""

    def __init__(self):
        self.created: list[dict] = []
        self.linked: list[tuple[str, int]] = []

    async def create_payment_intent(self, amount, currency=None, metadata=None, registration_id=None):
        minor_units = to_minor_units(amount)
        currency_code = normalize_currency(currency)
        payment_metadata = {k: str(v) for k, v in (metadata or {}).items()}
        if registration_id:
            payment_metadata["registrationId"] = str(registration_id)
        self.created.append(
            {"amount": minor_units, "currency": currency_code, "metadata": payment_metadata}
        )
        intent_id = f"pi_test_{len(self.created)}"
        return PaymentIntentResult(client_secret=f"{intent_id}_secret_abc", payment_intent_id=intent_id)

    async def link_registration(self, payment_intent_id: str, registration_id: int) -> None:
        self.linked.append((payment_intent_id, registration_id))


@pytest.fixture(autouse=True)
def fresh_settings():
    """Drop cached settings and gateway around every test so env tweaks stay local."""
    get_settings.cache_clear()
    reset_payment_gateway()
    yield
    get_settings.cache_clear()
    reset_payment_gateway()


@pytest.fixture
def override_env(monkeypatch):
    """Set environment variables for one test and refresh cached settings."""

    def _set(**values: str) -> None:
        for key, value in values.items():
            monkeypatch.setenv(key, value)
        get_settings.cache_clear()

    return _set


@pytest_asyncio.fixture(scope="function")
async def store() -> AsyncGenerator[SqlRegistrationStore, None]:
    """Create tables in a fresh in-memory database, yield a store, then drop it."""
    engine = build_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield SqlRegistrationStore(session_factory)

    await engine.dispose()


@pytest.fixture
def registration_service(store: SqlRegistrationStore) -> RegistrationService:
    return RegistrationService(store)


@pytest.fixture
def fake_gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest_asyncio.fixture(scope="function")
async def client(
    store: SqlRegistrationStore,
    fake_gateway: FakePaymentGateway,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the store and payment gateway swapped for test doubles."""
    app.dependency_overrides[get_storage] = lambda: store
    app.dependency_overrides[get_gateway_factory] = lambda: (lambda: fake_gateway)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_token() -> str:
    """JWT for the admin identity."""
    return create_access_token(data={"username": "admin", "role": "admin"})


@pytest.fixture
def auth_headers(auth_token: str) -> dict:
    """Authorization headers with Bearer token."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def registration_payload() -> dict:
    return {
        "name": "Ali",
        "email": "ali@x.com",
        "qty": 2,
        "consent": True,
    }


def sign_payload(payload: str, secret: str = TEST_WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Build a `stripe-signature` header value the way Stripe does."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def make_event(event_type: str, metadata: Optional[dict] = None, intent_id: str = "pi_test_1") -> str:
    return json.dumps(
        {
            "id": "evt_test_1",
            "object": "event",
            "type": event_type,
            "data": {
                "object": {
                    "id": intent_id,
                    "object": "payment_intent",
                    "amount": 5000,
                    "currency": "usd",
                    "metadata": metadata or {},
                }
            },
        }
    )


@pytest.fixture
def post_webhook(client: AsyncClient):
    """Send a correctly signed webhook event."""

    async def _post(event_type: str, metadata: Optional[dict] = None, secret: str = TEST_WEBHOOK_SECRET):
        payload = make_event(event_type, metadata)
        return await client.post(
            "/api/webhooks/stripe",
            content=payload,
            headers={"stripe-signature": sign_payload(payload, secret), "Content-Type": "application/json"},
        )

    return _post


@pytest_asyncio.fixture
async def pending_registration(client: AsyncClient, registration_payload: dict) -> int:
    """Registration created through the public checkout endpoint."""
    response = await client.post("/api/checkout/start", json=registration_payload)
    assert response.status_code == 200
    return response.json()["data"]["registrationId"]
