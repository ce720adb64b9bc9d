import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.database import get_db
from core.security import get_password_hash
from main import app
from models.base import Base
from models.user import User, UserRole


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def make_user(db):
    counter = {"n": 0}

    async def _make_user(**fields) -> User:
        counter["n"] += 1
        n = counter["n"]
        defaults = {
            "email": f"user{n}@example.com",
            "password_hash": get_password_hash("secret123"),
            "first_name": f"User{n}",
            "age": 25,
            "gender": "female",
            "role": UserRole.USER,
        }
        defaults.update(fields)
        user = User(**defaults)
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make_user
