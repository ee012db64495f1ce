"""Job creation: validate the typed payload and persist a pending job."""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from ratedeck.config import settings
from ratedeck.db.base import utcnow
from ratedeck.db.models.job import JobRow
from ratedeck.models.enums import JobStatus, JobType
from ratedeck.models.job_payloads import validate_payload
from ratedeck.repositories.job_repo import JobRepository

logger = logging.getLogger(__name__)


async def enqueue_job(
    session: AsyncSession,
    job_type: JobType | str,
    payload: dict | None = None,
    *,
    priority: int = 0,
    run_at: datetime | None = None,
    max_attempts: int | None = None,
    timeout_ms: int | None = None,
    tags: list[str] | None = None,
) -> JobRow:
    """Create a pending job. The caller owns the transaction (flush only).

    Raises ValidationError if the payload does not match the job type's model.
    """
    job_type = JobType(job_type)
    model = validate_payload(job_type, payload)
    model.enqueued_at = utcnow().isoformat()

    repo = JobRepository(session)
    row = await repo.create(
        job_type=job_type.value,
        payload=model.model_dump(mode="json", by_alias=True, exclude_none=True),
        status=JobStatus.PENDING.value,
        attempts=0,
        max_attempts=max_attempts or settings.job_max_attempts,
        priority=priority,
        run_at=run_at,
        timeout_ms=timeout_ms or settings.job_timeout_ms,
        tags=tags if tags is not None else [job_type.value],
    )
    logger.info("Enqueued job %s (type=%s, priority=%d)", row.id, job_type, priority)
    return row


async def schedule_job(
    session: AsyncSession,
    job_type: JobType | str,
    payload: dict | None,
    run_at: datetime,
    *,
    priority: int = 0,
    max_attempts: int | None = None,
    tags: list[str] | None = None,
) -> JobRow:
    """Enqueue a job that becomes claimable at run_at."""
    return await enqueue_job(
        session,
        job_type,
        payload,
        priority=priority,
        run_at=run_at,
        max_attempts=max_attempts,
        tags=[*(tags or [str(JobType(job_type))]), "scheduled"],
    )
