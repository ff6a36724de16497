"""Pytest fixtures for testing"""

import json
import pytest
import httpx
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from splitpay_gateway.api.main import create_app
from splitpay_gateway.api.dependencies import get_checkout_client
from splitpay_gateway.infrastructure.database.models import Base
from splitpay_gateway.infrastructure.database.session import get_db
from splitpay_gateway.infrastructure.clients.checkout import CheckoutClient
from splitpay_gateway.infrastructure.clients.session import SessionStore
from splitpay_gateway.domain.models import Participant


# Test database
TEST_DATABASE_URL = "sqlite:///./test_splitpay.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

CHECKOUT_BASE = "http://checkout.test"

USERS = {
    "user_me": {"id": "user_me", "username": "me", "logo": None},
    "user_alice": {"id": "user_alice", "username": "alice", "logo": None},
    "user_bob": {"id": "user_bob", "username": "bob", "logo": None},
}


def checkout_api_handler(request: httpx.Request) -> httpx.Response:
    """Stand-in for the external checkout API"""
    path = request.url.path

    if path == "/api/checkout/details-by-token/tok_100":
        return httpx.Response(
            200,
            json={
                "checkout": {
                    "id": "chk_1",
                    "state": "CREATED",
                    "totalAmount": {"id": "amt_1", "amount": "100.00", "currency": "USD"},
                },
                "merchantBaseId": "merchant_1",
                "discounts": [],
            },
        )
    if path.startswith("/api/checkout/details-by-token/"):
        return httpx.Response(404, json={"error": "not found"})

    if path == "/api/user/user-details" and request.method == "GET":
        return httpx.Response(200, json={"success": True, "data": {"user": USERS["user_me"]}, "error": None})

    if path == "/api/user/user-details" and request.method == "POST":
        ids = json.loads(request.content)
        data = [{"user": USERS[uid]} for uid in ids if uid in USERS]
        return httpx.Response(200, json={"success": True, "data": data, "error": None})

    if path == "/api/user/contacts":
        return httpx.Response(
            200,
            json={
                "success": True,
                "data": {
                    "content": [USERS["user_alice"], USERS["user_bob"]],
                    "pageable": {"pageNumber": 0, "totalPages": 2},
                    "last": False,
                },
                "error": None,
            },
        )

    return httpx.Response(404)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def checkout_api() -> Callable[[httpx.Request], httpx.Response]:
    """Default stub handler, for tests that wrap it"""
    return checkout_api_handler


@pytest.fixture
def checkout_client_factory() -> Callable[..., CheckoutClient]:
    """Build a CheckoutClient backed by an in-process transport"""

    def factory(handler=checkout_api_handler, token: str | None = "test-token", refresher=None) -> CheckoutClient:
        return CheckoutClient(
            SessionStore(access_token=token),
            refresher=refresher,
            base_url=CHECKOUT_BASE,
            max_retries=3,
            backoff_base=0,
            transport=httpx.MockTransport(handler),
        )

    return factory


@pytest.fixture
def client(db: Session, checkout_client_factory) -> TestClient:
    """Create FastAPI test client with test database and stubbed checkout API"""
    app = create_app(create_tables=False)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_checkout_client] = lambda: checkout_client_factory()
    return TestClient(app)


@pytest.fixture
def three_participants() -> list[Participant]:
    """Current user plus two contacts"""
    return [
        Participant(id="A", display_name="You", is_current_user=True),
        Participant(id="B", display_name="Bob"),
        Participant(id="C", display_name="Carol"),
    ]
