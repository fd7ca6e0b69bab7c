import os
import sys
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Settings require these at import time; tests default to an in-memory database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("LOG_FORMAT", "console")

from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from mri_records.config import settings
from mri_records.core.redis_client import get_redis_client
from mri_records.core.security import build_token_claims, create_access_token, get_password_hash
from mri_records.core.storage import BlobStorage, get_blob_storage
from mri_records.database import enable_sqlite_foreign_keys, get_db
from mri_records.main import app
from mri_records.models import metadata
from mri_records.models.users import users

# Test database URL - MUST be different from production
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite://")

# Additional safety: ensure we're not using a persistent production database
if not TEST_DATABASE_URL.startswith("sqlite") and settings.database_url == TEST_DATABASE_URL:
    print("\n❌ CRITICAL ERROR: Test database URL is same as production database!")
    print("This would DROP all production data during tests.")
    print("Please set TEST_DATABASE_URL to a separate test database in .env")
    sys.exit(1)

if TEST_DATABASE_URL.startswith("postgresql://"):
    TEST_DATABASE_URL = TEST_DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)

TEST_PASSWORD = "correct-horse-battery"
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)

if TEST_DATABASE_URL.startswith("sqlite"):
    # One shared in-memory connection so every session sees the same tables
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
else:
    # Use NullPool to avoid event loop issues with remote databases
    test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

enable_sqlite_foreign_keys(test_engine)

# Create test session factory
TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session on fresh tables."""
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest.fixture
def mock_redis() -> MagicMock:
    """Redis stand-in: empty cache, no revoked tokens, no login attempts."""
    redis_client = MagicMock()
    redis_client.get.return_value = None
    redis_client.exists.return_value = 0
    return redis_client


@pytest.fixture
def mock_storage() -> MagicMock:
    """Blob storage stand-in that accepts every write."""
    storage = MagicMock(spec=BlobStorage)
    storage.put = AsyncMock(return_value=None)
    storage.delete = AsyncMock(return_value=None)
    storage.presigned_get_url = AsyncMock(
        side_effect=lambda key, expires_in: f"https://storage.test/{key}?expires={expires_in}"
    )
    storage.check_connection.return_value = True
    return storage


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    mock_redis: MagicMock,
    mock_storage: MagicMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis_client] = lambda: mock_redis
    app.dependency_overrides[get_blob_storage] = lambda: mock_storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


UserFactory = Callable[..., Awaitable[dict[str, Any]]]


@pytest.fixture
def make_user(db_session: AsyncSession) -> UserFactory:
    """Insert a user row; verified by default."""
    counter = {"n": 0}

    async def factory(role: str = "medical_staff", **overrides: Any) -> dict[str, Any]:
        counter["n"] += 1
        n = counter["n"]
        now = datetime.now(UTC)
        values = {
            "username": f"{role}_{n}",
            "email": f"{role}_{n}@example.com",
            "password_hash": TEST_PASSWORD_HASH,
            "full_name": f"{role.replace('_', ' ').title()} {n}",
            "phone_number": "+2348000000000",
            "role": role,
            "is_verified": True,
            "can_download": False,
            "created_at": now,
            "updated_at": now,
            **overrides,
        }
        result = await db_session.execute(insert(users).values(**values).returning(users))
        user = dict(result.mappings().one())
        await db_session.commit()
        return user

    return factory


def auth_headers_for(user: dict[str, Any]) -> dict[str, str]:
    """Bearer header carrying an access token for ``user``."""
    token = create_access_token(build_token_claims(user), expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_password() -> str:
    """Plain text password of every user built by ``make_user``."""
    return TEST_PASSWORD


@pytest.fixture
def headers_for() -> Callable[[dict[str, Any]], dict[str, str]]:
    """Build auth headers for an arbitrary user row."""
    return auth_headers_for


@pytest_asyncio.fixture
async def staff_user(make_user: UserFactory) -> dict[str, Any]:
    return await make_user("medical_staff")


@pytest_asyncio.fixture
async def admin_user(make_user: UserFactory) -> dict[str, Any]:
    return await make_user("admin")


@pytest_asyncio.fixture
async def doctor_user(make_user: UserFactory) -> dict[str, Any]:
    return await make_user("doctor")


@pytest_asyncio.fixture
async def finance_user(make_user: UserFactory) -> dict[str, Any]:
    return await make_user("financial_admin")


@pytest.fixture
def staff_headers(staff_user: dict[str, Any]) -> dict[str, str]:
    return auth_headers_for(staff_user)


@pytest.fixture
def admin_headers(admin_user: dict[str, Any]) -> dict[str, str]:
    return auth_headers_for(admin_user)


@pytest.fixture
def doctor_headers(doctor_user: dict[str, Any]) -> dict[str, str]:
    return auth_headers_for(doctor_user)


@pytest.fixture
def finance_headers(finance_user: dict[str, Any]) -> dict[str, str]:
    return auth_headers_for(finance_user)


@pytest.fixture
def sample_patient_data() -> dict:
    """Sample patient registration payload."""
    return {
        "patient_name": "Adaeze Okafor",
        "gender": "Female",
        "contact_email": "adaeze@example.com",
        "contact_phone_number": "+2348012345678",
        "age": 42,
        "weight_kg": "68.50",
        "referral_hospital": "Lagos University Teaching Hospital",
        "referring_doctor": "Dr. Bello",
        "mri_date_time": "2026-03-10T09:30:00Z",
        "payment_type": "Transfer",
        "examinations": [
            {"exam_name": "Brain MRI", "exam_amount": "50,000"},
            {"exam_name": "Contrast", "exam_amount": 10000.5},
        ],
    }


@pytest_asyncio.fixture
async def created_patient(
    client: AsyncClient,
    staff_headers: dict[str, str],
    sample_patient_data: dict,
) -> dict[str, Any]:
    """A patient registered through the API by the staff user."""
    response = await client.post("/api/v1/patients/", json=sample_patient_data, headers=staff_headers)
    assert response.status_code == 201, response.text
    return response.json()
