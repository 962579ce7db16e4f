"""Shared pytest fixtures for test suite"""
import pytest
import sys
from pathlib import Path
from typing import Generator
from unittest.mock import Mock, patch
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
import fakeredis
import stripe

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from orphancare.main import app
from orphancare.core.config import settings
from orphancare.db.session import get_db
from orphancare.models import Base
from orphancare.models.beneficiary import Beneficiary
from orphancare.models.user import User, ROLE_ADMIN
from orphancare.db import redis as redis_module


# SQLite in-memory database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"

# Create test engine with StaticPool for in-memory database
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session factory
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

# Resend test email addresses - use these in ALL tests to avoid fake addresses
# See: https://resend.com/docs/dashboard/emails/send-test-emails
RESEND_TEST_DELIVERED = "delivered@resend.dev"
RESEND_TEST_BOUNCED = "bounced@resend.dev"

TEST_WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh SQLite in-memory database session for each test"""
    Base.metadata.create_all(bind=test_engine)

    session = TestSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def mock_redis():
    """Mock Redis client using fakeredis"""
    fake_redis = fakeredis.FakeStrictRedis(decode_responses=True)

    with patch.object(redis_module, '_client', fake_redis):
        yield fake_redis


@pytest.fixture(scope="function")
def client(db_session: Session, mock_redis) -> Generator[TestClient, None, None]:
    """FastAPI test client with test database and mocked Redis"""

    # Override get_db dependency to use test database
    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close session here, handled by fixture

    app.dependency_overrides[get_db] = override_get_db

    try:
        # No background jobs, real database or OpenTelemetry exporters in tests
        with patch.object(settings, 'SCHEDULER_ENABLED', False):
            with patch('orphancare.main.init_db'):
                with patch('orphancare.main.initialize_otel', return_value=False):
                    with patch('orphancare.main.instrument_sqlalchemy'):
                        with TestClient(app) as test_client:
                            yield test_client
    finally:
        # Cleanup - always clear overrides
        app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def webhook_secret():
    """Configure a webhook signing secret for the duration of a test"""
    with patch.object(settings, 'STRIPE_WEBHOOK_SECRET', TEST_WEBHOOK_SECRET):
        yield TEST_WEBHOOK_SECRET


@pytest.fixture(scope="function")
def donor(db_session: Session) -> User:
    """Donor using the Resend delivered test address"""
    user = User(email=RESEND_TEST_DELIVERED, display_name="Test Donor")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture(scope="function")
def other_donor(db_session: Session) -> User:
    """Second donor for ownership tests"""
    user = User(email="delivered+donor2@resend.dev", display_name="Other Donor")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture(scope="function")
def admin_user(db_session: Session) -> User:
    user = User(email="delivered+admin@resend.dev", display_name="Admin", role=ROLE_ADMIN)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture(scope="function")
def beneficiary(db_session: Session) -> Beneficiary:
    orphan = Beneficiary(
        name="Abebe",
        age=9,
        gender="male",
        location="Addis Ababa",
        story="Loves football and mathematics",
        monthly_support=1500
    )
    db_session.add(orphan)
    db_session.commit()
    db_session.refresh(orphan)
    return orphan


def auth_headers_for(user: User, fake_redis) -> dict:
    """Bearer headers for a user, backed by the fake Redis session store"""
    token = redis_module.issue_session(user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def auth_headers(donor: User, mock_redis) -> dict:
    return auth_headers_for(donor, mock_redis)


@pytest.fixture(scope="function")
def admin_headers(admin_user: User, mock_redis) -> dict:
    return auth_headers_for(admin_user, mock_redis)


def make_subscription(subscription_id: str = "sub_test123", client_secret: str = "pi_test123_secret_abc"):
    """Stripe subscription as returned with latest_invoice.payment_intent expanded"""
    return Mock(
        id=subscription_id,
        status="incomplete",
        customer="cus_test123",
        latest_invoice={"id": "in_test123", "payment_intent": {"id": "pi_test123", "client_secret": client_secret}}
    )


@pytest.fixture(scope="function", autouse=True)
def auto_mock_stripe():
    """Automatically mock Stripe for all tests to prevent creating real customers"""
    with patch('orphancare.services.stripe_service.stripe') as mock_stripe_module:
        # Mock Customer operations
        mock_customer = Mock(id="cus_test123", email=RESEND_TEST_DELIVERED)
        mock_stripe_module.Customer.create = Mock(return_value=mock_customer)

        # Mock Subscription operations
        mock_stripe_module.Subscription.create = Mock(return_value=make_subscription())
        mock_stripe_module.Subscription.cancel = Mock(return_value=Mock(id="sub_test123", status="canceled"))

        # Mock Webhook operations
        mock_stripe_module.Webhook.construct_event = Mock(return_value={
            "id": "evt_test123",
            "type": "customer.created",
            "created": 1700000000,
            "data": {"object": {}}
        })

        # Error classes must stay real so `except` clauses can match them
        mock_stripe_module.StripeError = stripe.StripeError
        mock_stripe_module.SignatureVerificationError = stripe.SignatureVerificationError

        yield mock_stripe_module


@pytest.fixture(scope="function")
def mock_email_service():
    """Mock email service (Resend) to avoid sending actual emails"""
    with patch.object(settings, 'RESEND_API_KEY', 're_test_key'):
        with patch('orphancare.services.email_service.resend') as mock_resend:
            mock_resend.Emails.send = Mock(return_value={"id": "email_test123"})
            yield mock_resend
