import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-jwt-signing-0123456789abcdef")
os.environ.setdefault("ENCRYPTION_KEY", "test-master-encryption-key-do-not-use-in-prod")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_forge_admin.db")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from typing import AsyncGenerator, Callable, Dict
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from app.database import Base, engine_options, get_db
from app.core.security import create_access_token
from app.models.user import User, UserRole
from app.services.activity_service import ActivityLogger
import app.models  # noqa: F401  registers all tables on Base.metadata

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test_forge_admin.db"

# Create test engine
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, **engine_options(TEST_DATABASE_URL))

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    # Create tables
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Create session
    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    # Drop tables
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(scope="function")
def activity_logger() -> ActivityLogger:
    """Activity logger writing to the test database."""
    return ActivityLogger(TestSessionLocal)


@pytest.fixture(scope="function")
async def async_client(db_session: AsyncSession, activity_logger: ActivityLogger) -> AsyncGenerator:
    """Create an async test client with database session and activity logger overrides."""
    from httpx import AsyncClient, ASGITransport
    from app.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    previous_logger = getattr(app.state, "activity_logger", None)
    app.state.activity_logger = activity_logger

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.state.activity_logger = previous_logger
    app.dependency_overrides.clear()


async def _create_user(db: AsyncSession, email: str, role: str) -> User:
    user = User(email=email, display_name=email.split("@")[0], role=role)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def member_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "member@example.com", UserRole.MEMBER.value)


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "other@example.com", UserRole.MEMBER.value)


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "admin@example.com", UserRole.ADMIN.value)


@pytest.fixture
def auth_headers() -> Callable[[User], Dict[str, str]]:
    """Build bearer headers for a user."""
    def _headers(user: User) -> Dict[str, str]:
        token = create_access_token({"sub": user.id})
        return {"Authorization": f"Bearer {token}"}
    return _headers
