"""
Pytest fixtures for GRC backend tests.
"""

import uuid
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from grc_backend.kernel.models.base import Base
from grc_backend.kernel.models.tenant import Tenant
from grc_backend.kernel.models.user import User
from grc_backend.kernel.identity.password import PasswordHasher


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """SQLite database in a temp file, with all tables created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
    )
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield engine
    
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def tenant(db_session: AsyncSession) -> Tenant:
    """Create a test tenant."""
    tenant = Tenant(id=uuid.uuid4(), name="Acme", domain=f"acme-{uuid.uuid4().hex[:8]}.example")
    db_session.add(tenant)
    await db_session.commit()
    return tenant


@pytest_asyncio.fixture
async def other_tenant(db_session: AsyncSession) -> Tenant:
    tenant = Tenant(id=uuid.uuid4(), name="Globex", domain=f"globex-{uuid.uuid4().hex[:8]}.example")
    db_session.add(tenant)
    await db_session.commit()
    return tenant


# Low work factor keeps fixture users fast
_fast_hasher = PasswordHasher(rounds=4)


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory for users in a tenant."""
    async def _make_user(tenant: Tenant, email: str = None, password: str = "TestPassword123") -> User:
        user = User(
            id=uuid.uuid4(),
            tenant_id=tenant.id,
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            password_hash=_fast_hasher.hash(password),
            first_name="Test",
            last_name="User",
        )
        db_session.add(user)
        await db_session.commit()
        return user
    
    return _make_user
