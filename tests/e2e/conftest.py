"""
E2E test fixtures for the ResQ backend.

Provides:
- An in-process FastAPI test app with all routes registered
- httpx AsyncClient wired via ASGI transport (no network needed)
- An async SQLite database session (in-memory) for isolation
- Pre-populated seed data: garages, staff members and role profiles
- Signed identity tokens for each role, and helpers for creating requests

Realtime publishing and the issue summarizer are mocked at the
service/integration level so the full route -> service -> DB flow is
exercised.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any, AsyncGenerator
from unittest.mock import AsyncMock, patch

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient, Response
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.core.config import settings
from src.models.base import Base

# ---------------------------------------------------------------------------
# Test IDs (stable across tests so cross-references work)
# ---------------------------------------------------------------------------

REQUESTER_USER_ID = "uid-driver-aaaa"
OTHER_REQUESTER_USER_ID = "uid-driver-bbbb"
ADMIN_USER_ID = "uid-admin-cccc"
MECHANIC_USER_ID = "uid-mechanic-dddd"
OTHER_MECHANIC_USER_ID = "uid-mechanic-eeee"
CR_USER_ID = "uid-cr-ffff"

TIRE_PROVIDER_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
TOW_PROVIDER_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")

MECHANIC_STAFF_ID = uuid.UUID("33333333-3333-3333-3333-333333333333")
OTHER_MECHANIC_STAFF_ID = uuid.UUID("44444444-4444-4444-4444-444444444444")
CR_STAFF_ID = uuid.UUID("55555555-5555-5555-5555-555555555555")

# Requester location from the Kampala Central branch
REQUESTER_LOCATION = {"lat": 0.3136, "lng": 32.5811}

VEHICLE = {
    "make": "Toyota",
    "model": "Premio",
    "year": "2012",
    "license_plate": "UBA 123X",
}


# ---------------------------------------------------------------------------
# Async engine + session factory (in-memory SQLite)
# ---------------------------------------------------------------------------

TEST_DB_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def _test_engine():
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # SQLite does not enforce foreign keys by default
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_fk(dbapi_conn, _):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(_test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session on the per-test database; uncommitted work is rolled back."""
    session_factory = async_sessionmaker(
        bind=_test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        await session.begin()
        yield session
        await session.rollback()


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

async def _seed_data(db: AsyncSession) -> None:
    """Insert minimum seed data for E2E tests."""
    from src.models import (
        ServiceProvider,
        StaffMember,
        StaffRole,
        UserProfile,
        UserRole,
    )

    # -- Garages: the tyre garage is ~2 km away, the tow garage ~1 km --
    tire_garage = ServiceProvider(
        id=TIRE_PROVIDER_ID,
        name="Tire Garage",
        phone="(256) 772-100001",
        eta_minutes=30,
        current_latitude=Decimal("0.3316000"),
        current_longitude=Decimal("32.5811000"),
        general_location="Kira Road",
        services_offered=["Tire Services", "Wheel Alignment"],
    )
    tow_garage = ServiceProvider(
        id=TOW_PROVIDER_ID,
        name="Tow Garage",
        phone="(256) 772-100002",
        eta_minutes=10,
        current_latitude=Decimal("0.3226000"),
        current_longitude=Decimal("32.5811000"),
        general_location="Wandegeya",
        services_offered=["Towing"],
    )
    db.add_all([tire_garage, tow_garage])

    # -- Staff records --
    db.add_all([
        StaffMember(
            id=MECHANIC_STAFF_ID,
            name="John Doe (Mechanic)",
            email="mechanic1@example.com",
            role=StaffRole.MECHANIC,
        ),
        StaffMember(
            id=OTHER_MECHANIC_STAFF_ID,
            name="Sam Okello (Mechanic)",
            email="mechanic2@example.com",
            role=StaffRole.MECHANIC,
        ),
        StaffMember(
            id=CR_STAFF_ID,
            name="Jane Smith (Customer Relations)",
            email="cr1@example.com",
            role=StaffRole.CUSTOMER_RELATIONS,
        ),
    ])

    # -- Profiles with elevated roles; requesters are created on first call --
    db.add_all([
        UserProfile(id=ADMIN_USER_ID, email="admin@example.com", role=UserRole.ADMIN),
        UserProfile(id=MECHANIC_USER_ID, email="mechanic1@example.com", role=UserRole.MECHANIC),
        UserProfile(
            id=OTHER_MECHANIC_USER_ID,
            email="mechanic2@example.com",
            role=UserRole.MECHANIC,
        ),
        UserProfile(id=CR_USER_ID, email="cr1@example.com", role=UserRole.CUSTOMER_RELATIONS),
    ])
    await db.flush()


@pytest_asyncio.fixture
async def seeded_db(db_session: AsyncSession) -> AsyncSession:
    """A database session with seed data already inserted."""
    await _seed_data(db_session)
    return db_session


# ---------------------------------------------------------------------------
# FastAPI test application
# ---------------------------------------------------------------------------

def _create_test_app(db_session_override: AsyncSession):
    """Build a FastAPI app with all routes registered and the DB dependency
    overridden to use the test session."""
    from fastapi import FastAPI

    from src.api.deps import get_db
    from src.api.routes.drafts import router as drafts_router
    from src.api.routes.issues import router as issues_router
    from src.api.routes.providers import router as providers_router
    from src.api.routes.requests import router as requests_router
    from src.api.routes.staff import router as staff_router
    from src.api.routes.users import router as users_router

    app = FastAPI(title="ResQ Test")

    # Override DB dependency
    async def _override_get_db():
        yield db_session_override

    app.dependency_overrides[get_db] = _override_get_db

    # Register all route modules under /api/v1
    app.include_router(requests_router, prefix="/api/v1")
    app.include_router(providers_router, prefix="/api/v1")
    app.include_router(staff_router, prefix="/api/v1")
    app.include_router(users_router, prefix="/api/v1")
    app.include_router(drafts_router, prefix="/api/v1")
    app.include_router(issues_router, prefix="/api/v1")

    return app


@pytest_asyncio.fixture
async def client(seeded_db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient connected to the test app via ASGI transport."""
    app = _create_test_app(seeded_db)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Realtime mock
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def mock_broadcast():
    """Capture realtime pushes instead of emitting over Socket.IO."""
    with patch(
        "src.realtime.socketServer.broadcast_request_change",
        new_callable=AsyncMock,
    ) as mock:
        yield mock


# ---------------------------------------------------------------------------
# Identity tokens
# ---------------------------------------------------------------------------

def make_token(user_id: str, **claims: Any) -> str:
    """Sign an identity token the way the identity provider would."""
    payload = {"sub": user_id, **claims}
    if settings.identity_jwt_audience:
        payload["aud"] = settings.identity_jwt_audience
    return jwt.encode(
        payload,
        settings.identity_jwt_secret,
        algorithm=settings.identity_jwt_algorithm,
    )


def auth_headers(user_id: str, **claims: Any) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, **claims)}"}


REQUESTER = auth_headers(
    REQUESTER_USER_ID,
    email="driver@example.com",
    name="Grace Driver",
    phone_number="+256772000111",
)
OTHER_REQUESTER = auth_headers(OTHER_REQUESTER_USER_ID, email="other@example.com")
ADMIN = auth_headers(ADMIN_USER_ID)
MECHANIC = auth_headers(MECHANIC_USER_ID)
OTHER_MECHANIC = auth_headers(OTHER_MECHANIC_USER_ID)
CUSTOMER_RELATIONS = auth_headers(CR_USER_ID)


# ---------------------------------------------------------------------------
# Helpers: drive a request through the API
# ---------------------------------------------------------------------------

async def create_request_via_api(
    client: AsyncClient,
    *,
    headers: dict[str, str] = REQUESTER,
    provider_id: uuid.UUID = TIRE_PROVIDER_ID,
    issue_summary: str | None = "Flat Tire",
) -> Response:
    """POST to /api/v1/requests and return the response."""
    payload = {
        "user_location": REQUESTER_LOCATION,
        "issue_description": "Front left tyre went flat on Kira Road.",
        "issue_summary": issue_summary,
        "vehicle_info": VEHICLE,
        "selected_provider_id": str(provider_id),
    }
    return await client.post("/api/v1/requests", json=payload, headers=headers)


async def change_status(
    client: AsyncClient,
    request_pk: str,
    new_status: str,
    *,
    headers: dict[str, str] = ADMIN,
    **extra: Any,
) -> Response:
    """PATCH /api/v1/requests/{request_pk}/status and return the response."""
    payload = {"new_status": new_status, **extra}
    return await client.patch(
        f"/api/v1/requests/{request_pk}/status", json=payload, headers=headers
    )


async def assign(
    client: AsyncClient,
    request_pk: str,
    staff_id: uuid.UUID | None,
) -> Response:
    payload = {"staff_id": str(staff_id) if staff_id else None}
    return await client.patch(
        f"/api/v1/requests/{request_pk}/assignment", json=payload, headers=ADMIN
    )
