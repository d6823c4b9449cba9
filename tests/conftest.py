"""
Shared pytest fixtures for ResQ backend unit tests.

Provides mock database sessions, caller sessions for each role and sample
domain objects that mirror production ORM models without requiring a live
database connection.
"""

import os

# Point the app at SQLite and the in-process Socket.IO manager before any
# ``src`` module reads settings.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("IDENTITY_JWT_SECRET", "resq-test-identity-secret-0123456789abcdef")
os.environ.setdefault("SUMMARIZER_API_KEY", "")

import uuid  # noqa: E402
from datetime import datetime, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402

from src.models.provider import ServiceProvider  # noqa: E402
from src.models.request import RequestStatus, ServiceRequest  # noqa: E402
from src.models.user import UserRole  # noqa: E402
from src.services.authorization import AuthSession  # noqa: E402


REQUESTER_ID = "uid-requester-0001"
OTHER_REQUESTER_ID = "uid-requester-0002"
MECHANIC_STAFF_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
OTHER_STAFF_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")


# ---------------------------------------------------------------------------
# Database session mock
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_db() -> AsyncMock:
    """Async mock of ``AsyncSession``.

    Provides a mock that supports ``db.execute()``, ``db.add()``,
    ``db.flush()``, and ``db.commit()`` out of the box.  Individual tests
    can configure ``mock_db.execute.return_value`` to control query results.
    """
    session = AsyncMock()
    session.add = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


def scalar_result(value) -> MagicMock:
    """Result object whose ``scalar_one_or_none()`` returns ``value``."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


# ---------------------------------------------------------------------------
# Caller sessions
# ---------------------------------------------------------------------------


@pytest.fixture
def admin_session() -> AuthSession:
    return AuthSession(user_id="uid-admin", role=UserRole.ADMIN, email="admin@example.com")


@pytest.fixture
def mechanic_session() -> AuthSession:
    """A mechanic linked to ``MECHANIC_STAFF_ID``."""
    return AuthSession(
        user_id="uid-mechanic",
        role=UserRole.MECHANIC,
        email="mechanic1@example.com",
        staff_id=MECHANIC_STAFF_ID,
    )


@pytest.fixture
def other_mechanic_session() -> AuthSession:
    return AuthSession(
        user_id="uid-mechanic-2",
        role=UserRole.MECHANIC,
        email="mechanic2@example.com",
        staff_id=OTHER_STAFF_ID,
    )


@pytest.fixture
def cr_session() -> AuthSession:
    return AuthSession(
        user_id="uid-cr",
        role=UserRole.CUSTOMER_RELATIONS,
        email="cr1@example.com",
    )


@pytest.fixture
def user_session() -> AuthSession:
    return AuthSession(
        user_id=REQUESTER_ID,
        role=UserRole.USER,
        email="driver@example.com",
        display_name="Grace Driver",
        phone_number="+256772000111",
    )


@pytest.fixture
def other_user_session() -> AuthSession:
    return AuthSession(user_id=OTHER_REQUESTER_ID, role=UserRole.USER)


# ---------------------------------------------------------------------------
# Domain object fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_provider() -> ServiceProvider:
    """The Kampala Central garage branch."""
    provider = MagicMock(spec=ServiceProvider)
    provider.id = uuid.uuid4()
    provider.name = "Auto Xpress - Kampala Central"
    provider.phone = "(256) 772-123456"
    provider.eta_minutes = 15
    provider.current_latitude = Decimal("0.3136000")
    provider.current_longitude = Decimal("32.5811000")
    provider.general_location = "Kampala Central (City Oil Kira Rd)"
    provider.services_offered = ["Tire Services", "Battery Replacement", "Flat tire"]
    provider.snapshot.return_value = {
        "id": str(provider.id),
        "name": provider.name,
        "phone": provider.phone,
        "eta_minutes": 15,
        "current_location": {"lat": 0.3136, "lng": 32.5811},
        "general_location": provider.general_location,
        "services_offered": list(provider.services_offered),
    }
    return provider


def make_request(
    status: RequestStatus = RequestStatus.PENDING,
    *,
    requester_id: str = REQUESTER_ID,
    assigned_staff_id: uuid.UUID | None = None,
    cancellation_requested: bool = False,
) -> ServiceRequest:
    """A transient ``ServiceRequest`` with every column populated."""
    now = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)
    return ServiceRequest(
        id=uuid.uuid4(),
        request_id="RR-AB12C",
        requester_id=requester_id,
        requester_name="Grace Driver",
        requester_phone="+256772000111",
        user_latitude=Decimal("0.3136000"),
        user_longitude=Decimal("32.5811000"),
        issue_description="Front left tyre is flat on Kira Road.",
        issue_summary="Flat Tire",
        vehicle_info_json={
            "make": "Toyota",
            "model": "Premio",
            "year": "2012",
            "license_plate": "UBA 123X",
        },
        selected_provider_id=uuid.uuid4(),
        selected_provider_json={"name": "Auto Xpress - Kampala Central"},
        status=status,
        assigned_staff_id=assigned_staff_id,
        cancellation_requested=cancellation_requested,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def pending_request() -> ServiceRequest:
    return make_request(RequestStatus.PENDING)


@pytest.fixture
def accepted_request() -> ServiceRequest:
    """Accepted and assigned to ``MECHANIC_STAFF_ID``."""
    return make_request(RequestStatus.ACCEPTED, assigned_staff_id=MECHANIC_STAFF_ID)
