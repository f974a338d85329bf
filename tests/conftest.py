"""Shared pytest fixtures: in-memory SQLite database, record store and API client."""

import asyncio
import os
from datetime import timedelta

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from qsre.api.deps import get_execution_lock, get_record_store, get_scheduler
from qsre.database import Base, get_db
from qsre.main import app
from qsre.records.memory import InMemoryRecordStore
from tests.factories import NOW, make_record


@pytest.fixture()
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore(
        project_ids=["P1", "P2"],
        project_objective_ids=["O1", "O2"],
        records=[
            make_record("CP1"),
            make_record("CP2", project_id="P2", project_objective_id="O2"),
            make_record("CP3", status_changed_at=NOW - timedelta(days=2)),
        ],
        clock=lambda: NOW,
    )


@pytest_asyncio.fixture()
async def session_maker():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def session(session_maker) -> AsyncSession:
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture()
async def client(session: AsyncSession, record_store: InMemoryRecordStore) -> AsyncClient:
    async def _get_test_db():
        yield session

    lock = asyncio.Lock()
    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_record_store] = lambda: record_store
    app.dependency_overrides[get_execution_lock] = lambda: lock
    app.dependency_overrides[get_scheduler] = lambda: None
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as async_client:
        yield async_client
    app.dependency_overrides.clear()
