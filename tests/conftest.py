import os
import tempfile
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date, time, timedelta
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

# Settings are read at import time; tests default to a throwaway SQLite file
_TEST_DB_DIR = tempfile.mkdtemp(prefix="echannel-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{Path(_TEST_DB_DIR) / 'app.db'}")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("LOG_FORMAT", "console")

from echannel.core.redis_client import CacheManager, get_cache_manager  # noqa: E402
from echannel.core.security import create_access_token, get_password_hash  # noqa: E402
from echannel.database import build_engine, get_db  # noqa: E402
from echannel.main import app  # noqa: E402
from echannel.models import metadata  # noqa: E402
from echannel.models.doctors import doctors  # noqa: E402
from echannel.models.hospitals import hospitals  # noqa: E402
from echannel.models.time_slots import time_slots  # noqa: E402
from echannel.models.users import users  # noqa: E402

# Set TEST_DATABASE_URL to run the suite against PostgreSQL instead
TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL", f"sqlite:///{Path(_TEST_DB_DIR) / 'test.db'}"
)

# NullPool gives every session its own connection, which the concurrency
# tests rely on
test_engine = build_engine(TEST_DATABASE_URL, poolclass=NullPool)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

TEST_PASSWORD = "correct-horse-battery"


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session on a fresh schema."""
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest.fixture
def session_factory() -> async_sessionmaker[AsyncSession]:
    """Factory for independent sessions, one connection each."""
    return TestSessionLocal


@pytest.fixture
def mock_redis() -> MagicMock:
    """Redis stand-in that always misses."""
    redis = MagicMock()
    redis.get.return_value = None
    redis.keys.return_value = []
    return redis


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, mock_redis: MagicMock
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_manager] = lambda: CacheManager(mock_redis)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> dict:
    """Create a booking agent in the database."""
    result = await db_session.execute(
        users.insert()
        .values(
            id=uuid4(),
            email="agent@example.com",
            password_hash=get_password_hash(TEST_PASSWORD),
            name="Test Agent",
            role="agent",
            company_name="Channel Partners",
            contact_number="+94771234567",
            is_active=True,
        )
        .returning(users)
    )
    user = dict(result.mappings().one())
    await db_session.commit()
    return user


@pytest.fixture
def auth_headers(test_user: dict) -> dict:
    """Create authentication headers for testing protected endpoints."""
    token = create_access_token(
        data={"sub": str(test_user["id"])}, expires_delta=timedelta(minutes=30)
    )
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def hospital(db_session: AsyncSession) -> dict:
    """Create a hospital."""
    result = await db_session.execute(
        hospitals.insert()
        .values(
            name="Central Hospital",
            address="12 Hospital Road",
            city="Colombo",
            district="Colombo",
            contact_number="+94112345678",
            email="info@central.example.com",
            facilities=["Pharmacy", "Laboratory"],
        )
        .returning(hospitals)
    )
    row = dict(result.mappings().one())
    await db_session.commit()
    return row


@pytest_asyncio.fixture
async def doctor(db_session: AsyncSession, hospital: dict) -> dict:
    """Create a doctor at the test hospital."""
    result = await db_session.execute(
        doctors.insert()
        .values(
            hospital_id=hospital["id"],
            name="Dr. Nimal Perera",
            email="nimal.perera@example.com",
            specialization="Cardiology",
            qualification="MBBS, MD",
            experience_years=12,
            consultation_fee=Decimal("2500.00"),
            languages=["English", "Sinhala"],
        )
        .returning(doctors)
    )
    row = dict(result.mappings().one())
    await db_session.commit()
    return row


@pytest.fixture
def make_time_slot(
    db_session: AsyncSession, doctor: dict
) -> Callable[..., Awaitable[dict]]:
    """Factory inserting a time slot for the test doctor."""

    async def _make(**overrides) -> dict:
        values = {
            "doctor_id": doctor["id"],
            "date": date.today() + timedelta(days=1),
            "start_time": time(9, 0),
            "end_time": time(12, 0),
            "max_appointments": 10,
            "current_bookings": 0,
            "consultation_fee": Decimal("2500.00"),
            "is_active": True,
        }
        values.update(overrides)
        result = await db_session.execute(
            time_slots.insert().values(**values).returning(time_slots)
        )
        row = dict(result.mappings().one())
        await db_session.commit()
        return row

    return _make


@pytest_asyncio.fixture
async def time_slot(make_time_slot) -> dict:
    """A bookable slot with ten seats."""
    return await make_time_slot()


@pytest.fixture
def patient_data() -> dict:
    """Patient details as an agent would submit them."""
    return {
        "patient_name": "Kamala Silva",
        "patient_email": "kamala.silva@example.com",
        "patient_phone": "+94771112233",
        "patient_nic": "198512345678",
        "patient_date_of_birth": "1985-04-12",
        "patient_gender": "female",
        "allergies": "Penicillin",
        "is_new_patient": True,
    }
