"""Shared test fixtures for all test modules."""

import contextlib
import itertools
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.core import database as db_module
from storefront.core.config import settings
from storefront.core.database import Base, get_db
from storefront.core.errors import GatewayError
from storefront.main import app
from storefront.models.user import User
from storefront.services.checkout_service import calculate_discount_cents
from storefront.services.payment_gateway import (
    CheckoutSession,
    GatewayLineItem,
    GatewaySession,
    PaymentGatewayBase,
    WebhookResult,
    get_payment_gateway,
)

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)

VALID_WEBHOOK_SIGNATURE = "t=1,v1=valid"


class FakePaymentGateway(PaymentGatewayBase):
    """In-memory gateway that records calls and never touches the network."""

    def __init__(self) -> None:
        self.sessions: dict[str, dict[str, Any]] = {}
        self.discounts: dict[str, int] = {}
        self.fail_create = False
        self.fail_retrieve = False
        self.retrieve_calls = 0
        self._ids = itertools.count(1)

    def create_session(
        self,
        line_items: list[GatewayLineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        discount: str | None = None,
    ) -> CheckoutSession:
        if self.fail_create:
            raise GatewayError("gateway unavailable")
        session_id = f"cs_test_{next(self._ids)}"
        subtotal = sum(item.unit_amount_cents * item.quantity for item in line_items)
        if discount is not None:
            subtotal -= calculate_discount_cents(subtotal, self.discounts[discount])
        self.sessions[session_id] = {
            "line_items": line_items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": dict(metadata),
            "discount": discount,
            "payment_status": "unpaid",
            "amount_total_cents": subtotal,
        }
        return CheckoutSession(
            session_id=session_id,
            checkout_url=f"https://checkout.test/{session_id}",
        )

    def retrieve_session(self, session_id: str) -> GatewaySession:
        self.retrieve_calls += 1
        if self.fail_retrieve or session_id not in self.sessions:
            raise GatewayError(f"No such checkout session: {session_id}")
        session = self.sessions[session_id]
        return GatewaySession(
            session_id=session_id,
            payment_status=session["payment_status"],
            amount_total_cents=session["amount_total_cents"],
            metadata=dict(session["metadata"]),
        )

    def create_percent_discount(self, percent: int) -> str:
        token = f"coupon_{len(self.discounts) + 1}"
        self.discounts[token] = percent
        return token

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        return signature == VALID_WEBHOOK_SIGNATURE

    def parse_webhook(self, payload: dict[str, Any]) -> WebhookResult:
        event_type = payload.get("type", "")
        data_object = payload.get("data", {}).get("object", {})
        result = WebhookResult(event_type=event_type)
        if event_type == "checkout.session.completed":
            result.session_id = data_object.get("id")
            result.payment_status = data_object.get("payment_status")
        return result

    def mark_paid(self, session_id: str) -> None:
        self.sessions[session_id]["payment_status"] = "paid"


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database.
    """
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def db_session():
    """Create a database session for direct service testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


def _make_user(db_session, name: str) -> User:
    user = User(name=name, email=f"{name.lower()}_{uuid.uuid4().hex[:8]}@example.com")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def user(db_session):
    return _make_user(db_session, "Shopper")


@pytest.fixture
def other_user(db_session):
    return _make_user(db_session, "Other")


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def client(gateway):
    """Test client whose payment gateway is the in-memory fake."""
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_payment_gateway, None)


def make_access_token(user_id: Any, expires_in: timedelta = timedelta(minutes=15)) -> str:
    payload = {"userId": str(user_id), "exp": datetime.now(UTC) + expires_in}
    return jwt.encode(payload, settings.ACCESS_TOKEN_SECRET, algorithm="HS256")


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {make_access_token(user.id)}"}


@pytest.fixture
def other_auth_headers(other_user):
    return {"Authorization": f"Bearer {make_access_token(other_user.id)}"}


@pytest.fixture
def make_token():
    """Factory for access tokens, as minted by the auth service."""
    return make_access_token
