import os

# Settings are read at import time; point them at test values first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-key"
os.environ["ENVIRONMENT"] = "test"
os.environ["BREVO_API_KEY"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from procurement_api.main import app
from procurement_api.database import Base, get_db
from procurement_api.models.user import User
from procurement_api.services.auth_service import create_access_token, hash_password

ADMIN_ID = "user-admin"
BUYER_ID = "user-buyer"
APPROVER_ID = "user-approver"
STAFF_PASSWORD = "Staff#Pass2024"


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def add_rows(session_factory):
    """Insert rows in their own committed transaction."""
    async def _add(*rows):
        async with session_factory() as session:
            session.add_all(rows)
            await session.commit()
        return rows

    return _add


@pytest.fixture
async def staff(add_rows):
    hashed = hash_password(STAFF_PASSWORD)
    await add_rows(
        User(id=ADMIN_ID, username="admin", email="admin@example.com",
             password_hash=hashed, type="ADMIN", is_active=True),
        User(id=BUYER_ID, username="buyer", email="buyer@example.com",
             password_hash=hashed, type="BUYER", is_active=True),
        User(id=APPROVER_ID, username="approver", email="approver@example.com",
             password_hash=hashed, type="APPROVER", is_active=True),
    )


@pytest.fixture
async def client(session_factory, staff):
    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def _headers(user_id: str, username: str, user_type: str) -> dict:
    token = create_access_token(
        user_id=user_id,
        username=username,
        user_type=user_type,
        email=f"{username}@example.com",
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return _headers(ADMIN_ID, "admin", "ADMIN")


@pytest.fixture
def buyer_headers():
    return _headers(BUYER_ID, "buyer", "BUYER")


@pytest.fixture
def approver_headers():
    return _headers(APPROVER_ID, "approver", "APPROVER")
