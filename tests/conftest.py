"""Shared pytest fixtures for store-backed service tests."""

from __future__ import annotations

from contextlib import asynccontextmanager

import pytest
import pytest_asyncio
import structlog
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cinescope.db.base import Base
from cinescope.db.models import core  # noqa: F401


class _AsyncSessionWrapper:
    def __init__(self, sync_session) -> None:
        self._sync = sync_session

    async def execute(self, *args, **kwargs):
        return self._sync.execute(*args, **kwargs)

    def add(self, obj) -> None:
        self._sync.add(obj)

    async def commit(self) -> None:
        self._sync.commit()

    async def rollback(self) -> None:
        self._sync.rollback()

    async def close(self) -> None:
        self._sync.close()


class _SessionDatabase:
    """Stands in for ``Database`` by handing out one shared session."""

    def __init__(self, session: _AsyncSessionWrapper) -> None:
        self._session = session
        self.session_calls = 0

    @asynccontextmanager
    async def session(self):
        self.session_calls += 1
        yield self._session


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


@pytest_asyncio.fixture
async def session():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    sync_session = SessionLocal()
    try:
        yield _AsyncSessionWrapper(sync_session)
    finally:
        sync_session.close()
        engine.dispose()


@pytest.fixture
def database(session):
    return _SessionDatabase(session)
