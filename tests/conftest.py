"""Shared test fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ratedeck.db.base import Base
# Import all models to register with Base.metadata
import ratedeck.db.models  # noqa: F401


@pytest.fixture
async def db_engine(tmp_path):
    """Create a file-backed SQLite async engine for testing.

    A file rather than ":memory:" so that the worker's sessions and the
    test's session get separate connections, as they would in production.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def supervisor(session_factory):
    """An open worker supervisor with the worker stopped."""
    from ratedeck.workers.supervisor import WorkerSupervisor

    _supervisor = WorkerSupervisor(session_factory, poll_interval=0.05)
    await _supervisor.open()
    yield _supervisor
    await _supervisor.close()


@pytest.fixture
def app(db_engine, session_factory, supervisor):
    """Create a test application instance backed by the test database."""
    from ratedeck.main import create_app

    _app = create_app()
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = session_factory
    _app.state.supervisor = supervisor
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
