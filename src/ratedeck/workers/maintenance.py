"""Background maintenance: reclaim stuck jobs and purge old ones."""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ratedeck.config import settings
from ratedeck.repositories.job_repo import JobRepository

logger = logging.getLogger(__name__)


async def run_maintenance_once(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    stuck_timeout_minutes: int | None = None,
    retention_days: int | None = None,
    cleanup: bool | None = None,
) -> dict[str, int]:
    """Run one maintenance pass. Returns counts of affected jobs."""
    if stuck_timeout_minutes is None:
        stuck_timeout_minutes = settings.stuck_job_timeout_minutes
    if retention_days is None:
        retention_days = settings.job_retention_days
    if cleanup is None:
        cleanup = settings.job_auto_cleanup

    async with session_factory() as session:
        repo = JobRepository(session)
        reclaimed = await repo.reclaim_stuck(stuck_timeout_minutes)
        deleted = await repo.cleanup(retention_days) if cleanup else 0
        await session.commit()

    if reclaimed.total:
        logger.info("Maintenance reclaimed %d stuck jobs", reclaimed.total)
    if deleted:
        logger.info("Maintenance deleted %d jobs older than %d days", deleted, retention_days)
    return {"reclaimed": reclaimed.total, "deleted": deleted}


async def run_maintenance(app) -> None:
    """Background task that periodically runs maintenance passes."""
    interval = settings.maintenance_interval_seconds
    logger.info("Job maintenance started (interval=%ds)", interval)

    while True:
        try:
            await asyncio.sleep(interval)

            session_factory = getattr(app.state, "db_session_factory", None)
            if not session_factory:
                continue

            await run_maintenance_once(session_factory)

        except asyncio.CancelledError:
            logger.info("Job maintenance stopped")
            break
        except Exception as exc:
            logger.exception("Maintenance error: %s", exc)
