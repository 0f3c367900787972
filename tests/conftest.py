"""Pytest fixtures: in-memory storage, mock integrations and a wired TestClient."""

import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("INTEGRATIONS_MODE", "mock")

import pytest
from fastapi.testclient import TestClient

import jetset.api.dependencies as deps
from jetset.api.main import app
from jetset.database.postgres import PostgresDB
from jetset.database.redis import RedisCache
from jetset.flights.service import FlightService
from jetset.integrations.clients.mocks.auth import MockAuthBackend
from jetset.integrations.clients.mocks.email import MockEmailSender
from jetset.integrations.clients.mocks.flights import MockFlightDataClient
from jetset.integrations.clients.mocks.payments import MockPaymentGateway
from jetset.integrations.policy.email_service import EmailService
from jetset.integrations.policy.payment_service import PaymentService
from jetset.utils.config_loader import AppConfig

FRONTEND = "https://app.jetset.test"


@pytest.fixture(autouse=True)
def _frontend_url(monkeypatch):
    monkeypatch.setenv("FRONTEND_URL", FRONTEND)
    monkeypatch.delenv("ARC_ENABLE_AIRLINE_DATA", raising=False)
    monkeypatch.delenv("COMPANY_EMAIL", raising=False)
    monkeypatch.delenv("EMAIL_FROM", raising=False)


@pytest.fixture
def db():
    """In-memory PostgresDB stub for tests."""
    return PostgresDB()


@pytest.fixture
def cache():
    return RedisCache()


@pytest.fixture
def config():
    return AppConfig()


@pytest.fixture
def gateway():
    return MockPaymentGateway()


@pytest.fixture
def email_sender():
    return MockEmailSender()


@pytest.fixture
def auth_backend():
    return MockAuthBackend()


@pytest.fixture
def flight_provider():
    return MockFlightDataClient()


@pytest.fixture
def payment_service(gateway, db, config):
    return PaymentService(gateway, db, config)


@pytest.fixture
def email_service(email_sender, db, config):
    return EmailService(email_sender, db, config)


@pytest.fixture
def flight_service(flight_provider, cache, config):
    return FlightService(flight_provider, cache=cache, config=config)


@pytest.fixture
def client(db, cache, config, auth_backend, payment_service, email_service, flight_service):
    app.dependency_overrides[deps.get_db] = lambda: db
    app.dependency_overrides[deps.get_cache] = lambda: cache
    app.dependency_overrides[deps.get_config] = lambda: config
    app.dependency_overrides[deps.get_auth_backend] = lambda: auth_backend
    app.dependency_overrides[deps.get_payment_service] = lambda: payment_service
    app.dependency_overrides[deps.get_email_service] = lambda: email_service
    app.dependency_overrides[deps.get_flight_service] = lambda: flight_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _login(client, auth_backend, db, email, role):
    user = auth_backend.add_user(email, "secret123", first_name="Ada", last_name="Traveler", role=role)
    db.create_user({"id": user.id, "email": user.email, "first_name": "Ada", "last_name": "Traveler", "role": role})
    resp = client.post("/api/auth/login", json={"email": email, "password": "secret123"})
    assert resp.status_code == 200
    return user, {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def login(client, auth_backend, db):
    """Sign in a fresh user: login(email, role="user") -> (AuthUser, headers)."""
    return lambda email, role="user": _login(client, auth_backend, db, email, role)


@pytest.fixture
def customer(client, auth_backend, db):
    """(AuthUser, headers) for a signed-in customer."""
    return _login(client, auth_backend, db, "ada@example.com", "user")


@pytest.fixture
def admin(client, auth_backend, db):
    return _login(client, auth_backend, db, "ops@jetset.test", "admin")


@pytest.fixture
def flight_inquiry(db):
    return db.create_inquiry(
        {
            "inquiry_type": "flight",
            "customer_name": "Ada Traveler",
            "customer_email": "ada@example.com",
            "customer_phone": "+15551234567",
            "flight_origin": "JFK",
            "flight_destination": "LHR",
            "flight_departure_date": "2099-06-01",
            "status": "quoted",
        }
    )


@pytest.fixture
def sent_quote(db, flight_inquiry):
    now = datetime.now(timezone.utc)
    return db.create_quote(
        {
            "inquiry_id": flight_inquiry["id"],
            "quote_number": "Q-20990101-0001",
            "title": "London Getaway",
            "total_amount": 1250.0,
            "currency": "USD",
            "status": "sent",
            "sent_at": now,
            "expires_at": now + timedelta(days=7),
        }
    )
