import json
import os
import sys
import tempfile
from collections.abc import AsyncGenerator, Callable
from datetime import date, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

import httpx
import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# Load environment variables from .env file
load_dotenv()

_TEST_DIR = tempfile.mkdtemp(prefix="docqueue-tests-")

# Required settings, so the suite runs without a .env
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DIR}/app.db")
os.environ.setdefault("REDIS_HOST", "localhost")
os.environ.setdefault("REDIS_PORT", "6379")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "test-gateway-secret")

from app.config import settings  # noqa: E402
from app.core.payment_gateway import PaymentGateway, get_payment_gateway  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.database import get_db  # noqa: E402
from app.dependencies import get_cache_manager  # noqa: E402
from app.main import app  # noqa: E402
from app.models import doctors, metadata, practice_locations, users  # noqa: E402
from app.schemas.auth import Actor, UserRole  # noqa: E402
from app.services.availability_service import clinic_today  # noqa: E402

# Test database URL - MUST be different from production
# Defaults to a throwaway SQLite file; set TEST_DATABASE_URL to run against PostgreSQL
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"

# Additional safety: ensure we're not using production database
if settings.database_url == TEST_DATABASE_URL and not TEST_DATABASE_URL.startswith("sqlite"):
    print("\n❌ CRITICAL ERROR: Test database URL is same as production database!")
    print("This would DROP all production data during tests.")
    print("Please set TEST_DATABASE_URL to a separate test database in .env")
    sys.exit(1)

# Ensure we're using asyncpg driver for async operations
TEST_DATABASE_URL = TEST_DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

# Use NullPool so every session gets its own connection
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,  # Set to True for SQL debugging
    poolclass=NullPool,
)

# Create test session factory
TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

ALL_WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def weekly_slots(days: list[str] | None = None, start: str = "09:00", end: str = "17:00"):
    """Weekly slot dicts as stored in profile data."""
    return [
        {"day": day, "start_time": start, "end_time": end, "is_active": True}
        for day in (days or ALL_WEEKDAYS)
    ]


def auth_headers_for(user_id: UUID) -> dict:
    """Bearer headers for a user."""
    token = create_access_token(data={"sub": str(user_id)}, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session over freshly created tables."""
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    # Drop tables after test
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest.fixture
def session_factory() -> async_sessionmaker[AsyncSession]:
    """Factory for independent sessions, one per concurrent request."""
    return TestSessionLocal


@pytest.fixture
def gateway_orders() -> list[dict]:
    """Order requests received by the fake gateway."""
    return []


@pytest.fixture
def payment_gateway(gateway_orders: list[dict]) -> PaymentGateway:
    """Gateway client wired to an in-process fake orders API."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        gateway_orders.append(body)
        return httpx.Response(
            200,
            json={
                "id": f"order_{len(gateway_orders)}",
                "amount": body["amount"],
                "currency": body["currency"],
                "receipt": body["receipt"],
                "status": "created",
            },
        )

    return PaymentGateway(
        key_id=settings.razorpay_key_id,
        key_secret=settings.razorpay_key_secret,
        base_url="https://gateway.test/v1",
        timeout=settings.payment_gateway_timeout_seconds,
        transport=httpx.MockTransport(handler),
    )


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    payment_gateway: PaymentGateway,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_manager] = lambda: None
    app.dependency_overrides[get_payment_gateway] = lambda: payment_gateway

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Any]:
    """Insert a user row and return it as a dict."""

    async def _make_user(
        role: str = "patient",
        full_name: str = "Test Patient",
        phone: str | None = "+911234567890",
        is_active: bool = True,
    ) -> dict:
        user_id = uuid4()
        values = {
            "id": user_id,
            "email": f"{user_id.hex[:12]}@example.com",
            "full_name": full_name,
            "phone": phone,
            "role": role,
            "is_active": is_active,
        }
        await db_session.execute(insert(users).values(**values))
        await db_session.commit()
        return values

    return _make_user


@pytest.fixture
def make_doctor(db_session: AsyncSession, make_user) -> Callable[..., Any]:
    """Insert a doctor user plus profile and return the profile as a dict."""

    async def _make_doctor(
        full_name: str = "Dr. Asha Rao",
        consultation_fee: Decimal | None = Decimal("800.00"),
        available_slots: list | None = None,
        is_active: bool = True,
    ) -> dict:
        user = await make_user(role="doctor", full_name=full_name)
        values = {
            "id": uuid4(),
            "user_id": user["id"],
            "full_name": full_name,
            "email": user["email"],
            "specialization": "General Medicine",
            "consultation_fee": consultation_fee,
            "address": {"city": "Pune", "country": "India"},
            "available_slots": available_slots,
            "is_active": is_active,
        }
        await db_session.execute(insert(doctors).values(**values))
        await db_session.commit()
        return values

    return _make_doctor


@pytest.fixture
def make_location(db_session: AsyncSession) -> Callable[..., Any]:
    """Insert a practice location and return it as a dict."""

    async def _make_location(
        doctor: dict,
        name: str = "City Clinic",
        patients_per_day: int | None = 3,
        consultation_fee: Decimal | None = None,
        available_slots: list | None = None,
        is_active: bool = True,
    ) -> dict:
        values = {
            "id": uuid4(),
            "doctor_id": doctor["id"],
            "name": name,
            "address": {"street": "1 MG Road", "city": "Pune"},
            "consultation_fee": consultation_fee,
            "patients_per_day": patients_per_day,
            "available_slots": weekly_slots() if available_slots is None else available_slots,
            "is_active": is_active,
        }
        await db_session.execute(insert(practice_locations).values(**values))
        await db_session.commit()
        return values

    return _make_location


@pytest_asyncio.fixture
async def patient(make_user) -> dict:
    """A patient user."""
    return await make_user(full_name="Ravi Kumar")


@pytest_asyncio.fixture
async def doctor(make_doctor) -> dict:
    """An active doctor profile."""
    return await make_doctor()


@pytest_asyncio.fixture
async def location(make_location, doctor) -> dict:
    """Practice location open every day with room for three patients."""
    return await make_location(doctor)


@pytest.fixture
def auth_headers(patient) -> dict:
    """Authentication headers for the patient."""
    return auth_headers_for(patient["id"])


@pytest.fixture
def doctor_headers(doctor) -> dict:
    """Authentication headers for the doctor."""
    return auth_headers_for(doctor["user_id"])


@pytest.fixture
def booking_date() -> date:
    """A day inside the booking window, far enough out to cancel."""
    return clinic_today() + timedelta(days=7)


@pytest.fixture
def patient_actor(patient) -> Actor:
    """The patient as an authenticated actor."""
    return Actor(user_id=patient["id"], role=UserRole.PATIENT)


@pytest.fixture
def doctor_actor(doctor) -> Actor:
    """The doctor as an authenticated actor."""
    return Actor(user_id=doctor["user_id"], role=UserRole.DOCTOR, doctor_id=doctor["id"])


@pytest.fixture
def headers_for() -> Callable[[UUID], dict]:
    """Build bearer headers for any user id."""
    return auth_headers_for
