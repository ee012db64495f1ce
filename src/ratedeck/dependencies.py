"""FastAPI dependency injection providers."""

from collections.abc import AsyncGenerator

from fastapi import Request

from ratedeck.errors.exceptions import WorkerControlError
from ratedeck.workers.supervisor import WorkerSupervisor


async def get_db(request: Request) -> AsyncGenerator:
    """Yield a database session from the app's session factory."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session


def get_supervisor(request: Request) -> WorkerSupervisor:
    """Return the job worker supervisor owned by the app."""
    supervisor = getattr(request.app.state, "supervisor", None)
    if supervisor is None:
        raise WorkerControlError("Job worker is not configured")
    return supervisor
