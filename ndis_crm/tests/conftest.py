"""Async test fixtures for back-office tests using SQLite."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ndis_crm.config import settings
from ndis_crm.database import get_db
from ndis_crm.models.base import Base
from ndis_crm.models.house import House
from ndis_crm.models.participant import Participant
from ndis_crm.models.staff import Staff
from ndis_crm.store import FileStorage, StoreClient, get_storage


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


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


@pytest.fixture
def store(db: AsyncSession) -> StoreClient:
    return StoreClient(db)


@pytest.fixture
def storage(tmp_path) -> FileStorage:
    return FileStorage(tmp_path / "storage", "http://test/storage")


@pytest_asyncio.fixture
async def participant(db: AsyncSession) -> Participant:
    p = Participant(name="Jordan Lee", status="active", email="jordan@example.com")
    db.add(p)
    await db.commit()
    await db.refresh(p)
    return p


@pytest_asyncio.fixture
async def staff_member(db: AsyncSession) -> Staff:
    s = Staff(name="Sam Carter", status="active", email="sam@example.com", department="Support")
    db.add(s)
    await db.commit()
    await db.refresh(s)
    return s


@pytest_asyncio.fixture
async def house(db: AsyncSession) -> House:
    h = House(name="Banksia House", address="1 Banksia St", capacity=4, current_occupancy=1)
    db.add(h)
    await db.commit()
    await db.refresh(h)
    return h


@pytest_asyncio.fixture
async def client(engine, storage: FileStorage, tmp_path, monkeypatch):
    """HTTPX async test client against the back-office app."""
    from ndis_crm.app import app

    monkeypatch.setattr(settings, "storage_dir", str(tmp_path / "storage"))
    storage.root_dir.mkdir(parents=True, exist_ok=True)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
