"""Async test fixtures for service desk tests using SQLite."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from servicedesk.database import get_db
from servicedesk.models import Base
from servicedesk.models.team import Team, TeamMember
from servicedesk.models.user import User
from servicedesk.services import schema_svc


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _fresh_column_cache():
    schema_svc.default_probe.clear()
    yield
    schema_svc.default_probe.clear()


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def user(db: AsyncSession):
    u = User(name="Dana Reyes", email="dana@northwind.io")
    db.add(u)
    await db.commit()
    await db.refresh(u)
    return u


@pytest_asyncio.fixture
async def team(db: AsyncSession, user: User):
    t = Team(name="Northwind IT")
    db.add(t)
    await db.flush()
    db.add(TeamMember(team_id=t.id, user_id=user.id, role="owner"))
    await db.commit()
    await db.refresh(t)
    return t


@pytest_asyncio.fixture
async def other_user(db: AsyncSession):
    u = User(name="Sam Okafor", email="sam@contoso.io")
    db.add(u)
    await db.commit()
    await db.refresh(u)
    return u


@pytest_asyncio.fixture
async def other_team(db: AsyncSession, other_user: User):
    t = Team(name="Contoso Support")
    db.add(t)
    await db.flush()
    db.add(TeamMember(team_id=t.id, user_id=other_user.id, role="owner"))
    await db.commit()
    await db.refresh(t)
    return t


@pytest.fixture
def headers(user: User) -> dict[str, str]:
    return {"X-User-Id": str(user.id), "User-Agent": "pytest-agent"}


@pytest_asyncio.fixture
async def client(engine):
    """HTTPX async test client against the service desk app."""
    from servicedesk.app import app

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
