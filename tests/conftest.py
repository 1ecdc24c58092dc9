import os

# Configure the app for tests BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["RESEND_API_KEY"] = ""
os.environ["TWILIO_ACCOUNT_SID"] = ""
os.environ["TWILIO_AUTH_TOKEN"] = ""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from app.auth import hash_api_key
from app.database import Base, SessionLocal, engine
from app.main import app
from app.models import Customer, Organization, User
from app.shared.validators import utc_now

API_KEY = "test-key"
OTHER_API_KEY = "other-key"
CRON_SECRET = "test-cron-secret"


@pytest.fixture
def db():
    """Fresh schema per test on the shared in-memory SQLite connection."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def organization(db):
    org = Organization(name="Acme Corp")
    db.add(org)
    db.commit()
    return org


@pytest.fixture
def user(db, organization):
    user = User(
        email="owner@acme.test",
        full_name="Acme Owner",
        organization_id=organization.id,
        api_key_hash=hash_api_key(API_KEY),
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def customer(db, organization):
    customer = Customer(
        organization_id=organization.id,
        name="Jane Customer",
        email="jane@example.com",
        phone="+15551234567",
    )
    db.add(customer)
    db.commit()
    return customer


@pytest.fixture
def other_organization(db):
    """A second tenant with its own user and customer."""
    org = Organization(name="Globex")
    db.add(org)
    db.commit()
    db.add(
        User(
            email="owner@globex.test",
            organization_id=org.id,
            api_key_hash=hash_api_key(OTHER_API_KEY),
        )
    )
    db.add(Customer(organization_id=org.id, name="Globex Customer", email="c@globex.test"))
    db.commit()
    return org


@pytest.fixture
def client(db, user):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {API_KEY}"}


@pytest.fixture
def other_auth_headers():
    return {"Authorization": f"Bearer {OTHER_API_KEY}"}


@pytest.fixture
def cron_headers():
    return {"Authorization": f"Bearer {CRON_SECRET}"}


@pytest.fixture
def subscription_payload(customer):
    """Create payload for a monthly subscription ending 60 days from now."""
    now = utc_now()
    return {
        "name": "Premium Support",
        "type": "SERVICE",
        "customerId": customer.id,
        "amount": 99.0,
        "billingCycle": "MONTHLY",
        "startDate": now.isoformat(),
        "endDate": (now + timedelta(days=60)).isoformat(),
        "alertDays": [30, 15, 7],
    }
