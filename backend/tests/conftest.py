"""
Shared fixtures.

Each test gets its own SQLite file so separate sessions use separate
connections, which is what the concurrency tests need.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_entitlements.db")
os.environ.setdefault("DEBUG", "true")

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from app.models import Base, Account, AccountConnection, utcnow


VALID_CONFIG = {
    "reward": 50,
    "max_participants": 10,
    "cooldown_period": 0,
    "requires_approval": False,
}


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'entitlements.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_account(session_maker):
    """Factory: seed an account with a level, tier and connected tags."""

    async def _make(level=2, tier="STARTER", connections=(), name="Corner Bakery"):
        async with session_maker() as session:
            account = Account(name=name, level=level, subscription_tier=tier, latitude=52.52, longitude=13.405)
            session.add(account)
            await session.flush()
            for tag in connections:
                session.add(AccountConnection(
                    account_id=account.id,
                    tag=tag,
                    connected=True,
                    connected_at=utcnow(),
                ))
            await session.commit()
            return account.id

    return _make
