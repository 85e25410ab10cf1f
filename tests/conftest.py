# tests/conftest.py

import json
import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from slot_booking.api.dependencies import get_db, get_otp_store, get_payment_gateway
from slot_booking.application.booking_service import BookingService
from slot_booking.application.otp_service import OtpStore
from slot_booking.config import Settings, get_settings
from slot_booking.domain.customer import CustomerDetails
from slot_booking.domain.exceptions import InvalidWebhookError, PaymentGatewayUnavailableError
from slot_booking.domain.payments import PaymentSession, PaymentStatus, WebhookEvent
from slot_booking.infrastructure.db.models import Base
from slot_booking.main import app

ADMIN_TOKEN = "admin-secret"
VALID_SIGNATURE = "valid-signature"


class FakeGateway:
    """In-memory gateway whose availability and payment outcome tests can flip."""

    provider = "fake"

    def __init__(self):
        self.available = True
        self.status = PaymentStatus.NOT_PAID
        self.sessions: dict[str, str] = {}
        self._counter = 0

    def create_session(self, order_id: str, amount: int, customer: CustomerDetails) -> PaymentSession:
        if not self.available:
            raise PaymentGatewayUnavailableError("gateway down")
        self._counter += 1
        gateway_order_id = f"order_fake_{self._counter}"
        self.sessions[order_id] = gateway_order_id
        return PaymentSession(session_id=gateway_order_id, gateway_order_id=gateway_order_id)

    def check_status(self, gateway_order_id: str) -> PaymentStatus:
        if not self.available:
            return PaymentStatus.UNAVAILABLE
        return self.status

    def validate_webhook(self, body: bytes, signature: str | None) -> WebhookEvent:
        if signature != VALID_SIGNATURE:
            raise InvalidWebhookError("Invalid webhook signature")
        data = json.loads(body)
        return WebhookEvent(
            event=data["event"],
            is_success=data["event"] in {"payment.captured", "order.paid"},
            order_id=data.get("order_id"),
            gateway_order_id=data.get("gateway_order_id"),
            payment_id=data.get("payment_id"),
        )


def webhook_body(event: str = "payment.captured", **fields) -> bytes:
    return json.dumps({"event": event, **fields}).encode()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def booking_service(db_session, gateway):
    return BookingService(db_session, gateway)


@pytest.fixture
def customer():
    return CustomerDetails(name="Asha Patel", phone="9876543210", email="asha@example.com")


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+pysqlite://",
        allow_demo_payments=True,
        admin_api_token=ADMIN_TOKEN,
    )


@pytest.fixture
def otp_store():
    return OtpStore(ttl_seconds=300, resend_cooldown_seconds=30, max_attempts=3)


@pytest.fixture
def client(session_factory, gateway, settings, otp_store):

    def override_get_db():
        db = session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_otp_store] = lambda: otp_store

    yield TestClient(app, raise_server_exceptions=False)

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"X-Admin-Token": ADMIN_TOKEN}
