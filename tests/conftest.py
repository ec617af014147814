"""
Pytest configuration and fixtures
"""
import threading
import uuid
from datetime import datetime, timedelta
import pytest
from sqlalchemy import create_engine, update
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from booking_cron.database import Base
from booking_cron.models import Booking, BookingStatus, Service
from booking_cron.services.settlement_client import SettlementError, SettlementResult


# Use in-memory database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"

# Fixed instant every test treats as "now"
NOW = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture(scope="session")
def test_engine():
    """Create test database engine"""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    """Session factory bound to a fresh schema"""
    Base.metadata.create_all(bind=test_engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def test_db_session(session_factory):
    """Create test database session"""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def sample_service(test_db_session):
    """Create sample service with Google Meet"""
    service = Service(
        id=str(uuid.uuid4()),
        provider_id="provider_1",
        title="Guitar Lesson",
        meeting_platform="google_meet",
    )
    test_db_session.add(service)
    test_db_session.commit()
    test_db_session.refresh(service)
    return service


@pytest.fixture
def make_booking(test_db_session, sample_service):
    """Factory for bookings relative to NOW"""
    def _make(status=BookingStatus.CONFIRMED, offset_minutes=0, duration_minutes=60, **kwargs):
        booking = Booking(
            customer_id=kwargs.pop("customer_id", "customer_1"),
            provider_id=kwargs.pop("provider_id", sample_service.provider_id),
            service_id=kwargs.pop("service_id", sample_service.id),
            customer_phone=kwargs.pop("customer_phone", "+1234567890"),
            status=status.value,
            scheduled_at=NOW + timedelta(minutes=offset_minutes),
            duration_minutes=duration_minutes,
            updated_at=NOW - timedelta(days=1),
            **kwargs,
        )
        test_db_session.add(booking)
        test_db_session.commit()
        test_db_session.refresh(booking)
        return booking

    return _make


class FakeSettlement:
    """
    Settlement backend double.

    Default behaviour is success: the booking is completed in the database
    with a transaction hash, like the real backend does.
    """

    def __init__(self, session_factory, behaviours=None):
        self.session_factory = session_factory
        self.behaviours = behaviours or {}
        self.calls = []

    def complete_booking(self, booking_id):
        self.calls.append(booking_id)
        behaviour = self.behaviours.get(booking_id, "ok")
        if behaviour == "timeout":
            raise SettlementError("Timeout calling settlement backend")
        if behaviour == "reject":
            return SettlementResult(ok=False, detail="400: Service cannot be completed")

        db = self.session_factory()
        try:
            db.execute(
                update(Booking)
                .where(Booking.id == booking_id)
                .values(status=BookingStatus.COMPLETED.value, completed_at=NOW, completion_tx_hash="0xabc")
            )
            db.commit()
        finally:
            db.close()
        return SettlementResult(ok=True, tx_ref="0xabc")


class FakeProvisioner:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []
        self._lock = threading.Lock()

    def generate_link(self, booking_id, now):
        with self._lock:
            self.calls.append((booking_id, now))
        if booking_id in self.failing:
            raise RuntimeError("calendar unavailable")
        return f"https://meet.google.com/{booking_id[:8]}"


class FakeNotifier:
    def __init__(self, failing=(), error=()):
        self.failing = set(failing)
        self.error = set(error)
        self.sent = []

    def send(self, summary):
        self.sent.append(summary)
        if summary.booking_id in self.failing:
            raise RuntimeError("sms gateway down")
        if summary.booking_id in self.error:
            return {"status": "error", "message": "invalid number"}
        return {"status": "success"}


@pytest.fixture
def settlement(session_factory):
    return FakeSettlement(session_factory)


@pytest.fixture
def provisioner():
    return FakeProvisioner()


@pytest.fixture
def notifier():
    return FakeNotifier()


def reload(session, booking_id):
    """Fresh copy of a booking from the database"""
    session.expire_all()
    return session.get(Booking, booking_id)


# Test markers
def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
