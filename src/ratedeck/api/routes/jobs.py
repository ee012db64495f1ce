"""Job queue administration endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ratedeck.config import settings
from ratedeck.db.models.job import JobRow
from ratedeck.dependencies import get_db, get_supervisor
from ratedeck.models.common import MessageResponse
from ratedeck.models.enums import JobStatus, JobType
from ratedeck.models.job import (
    CleanupRequest,
    EnqueueJobRequest,
    EnqueueJobResponse,
    Job,
    JobList,
    ReclaimRequest,
    WorkerStatus,
)
from ratedeck.repositories.job_repo import JobRepository
from ratedeck.services.job_catalog import categories_payload, labels_payload
from ratedeck.services.job_stats import compute_job_stats
from ratedeck.workers.queue import enqueue_job
from ratedeck.workers.supervisor import WorkerSupervisor

router = APIRouter(prefix="/admin/jobs", tags=["Jobs"])


def _job_dict(row: JobRow) -> dict:
    return Job.model_validate(row, from_attributes=True).model_dump(mode="json", by_alias=True)


def _message(message: str) -> dict:
    return MessageResponse(message=message).model_dump(mode="json", by_alias=True)


@router.get("")
async def list_jobs(
    status: JobStatus | None = None,
    job_type: JobType | None = Query(None, alias="type"),
    tags: list[str] | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> dict:
    rows = await JobRepository(db).list_jobs(
        status=status, job_type=job_type, tags=tags, limit=limit, offset=offset
    )
    return JobList(
        jobs=[Job.model_validate(row, from_attributes=True) for row in rows],
        labels=labels_payload(),
        categories=categories_payload(),
    ).model_dump(mode="json", by_alias=True)


@router.get("/stats")
async def job_stats(db: AsyncSession = Depends(get_db)) -> dict:
    stats = await compute_job_stats(db)
    return stats.model_dump(mode="json", by_alias=True)


@router.get("/az-import-status")
async def az_import_status(db: AsyncSession = Depends(get_db)) -> dict:
    """Number of A-Z import jobs still pending or processing."""
    pending = await JobRepository(db).count_active(JobType.AZ_DESTINATION_IMPORT)
    return {"pending": pending}


@router.get("/worker/status")
async def worker_status(supervisor: WorkerSupervisor = Depends(get_supervisor)) -> dict:
    status = WorkerStatus(running=supervisor.running, stopping=supervisor.stopping)
    return status.model_dump(mode="json", by_alias=True)


@router.post("/worker/start")
async def start_worker(supervisor: WorkerSupervisor = Depends(get_supervisor)) -> dict:
    started = await supervisor.start()
    return _message("Worker started" if started else "Worker already running")


@router.post("/worker/stop")
async def stop_worker(supervisor: WorkerSupervisor = Depends(get_supervisor)) -> dict:
    stopped = await supervisor.stop()
    return _message("Worker stopping" if stopped else "Worker was not running")


@router.post("/retry-all-failed")
async def retry_all_failed(db: AsyncSession = Depends(get_db)) -> dict:
    count = await JobRepository(db).retry_all_failed()
    await db.commit()
    return _message(f"Retried {count} jobs")


@router.post("/cleanup")
async def cleanup_jobs(
    body: CleanupRequest | None = None,
    db: AsyncSession = Depends(get_db),
) -> dict:
    older_than_days = (body or CleanupRequest()).older_than_days
    deleted = await JobRepository(db).cleanup(older_than_days)
    await db.commit()
    return _message(f"Cleaned up {deleted} jobs older than {older_than_days} days")


@router.post("/reclaim-stuck")
async def reclaim_stuck_jobs(
    body: ReclaimRequest | None = None,
    db: AsyncSession = Depends(get_db),
) -> dict:
    minutes = settings.stuck_job_timeout_minutes
    if body and body.max_processing_minutes is not None:
        minutes = body.max_processing_minutes
    result = await JobRepository(db).reclaim_stuck(minutes)
    await db.commit()
    message = f"Reclaimed {result.total} stuck jobs"
    if result.failed:
        message += f" ({result.failed} failed with no attempts left)"
    return _message(message)


@router.post("/test", status_code=201)
async def enqueue_test_job(
    body: EnqueueJobRequest,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Enqueue an arbitrary job, tagged "test", for exercising the worker."""
    row = await enqueue_job(
        db,
        body.job_type,
        body.payload,
        priority=body.priority,
        max_attempts=body.max_attempts,
        tags=[body.job_type.value, "test"],
    )
    await db.commit()
    return EnqueueJobResponse(
        job_id=row.id,
        message=f"Test job {row.id} queued ({body.job_type})",
    ).model_dump(mode="json", by_alias=True)


@router.get("/{job_id}")
async def get_job(job_id: int, db: AsyncSession = Depends(get_db)) -> dict:
    row = await JobRepository(db).get_or_404(job_id)
    return _job_dict(row)


@router.post("/{job_id}/retry")
async def retry_job(job_id: int, db: AsyncSession = Depends(get_db)) -> dict:
    await JobRepository(db).retry(job_id)
    await db.commit()
    return _message(f"Job {job_id} queued for retry")


@router.post("/{job_id}/cancel")
async def cancel_job(job_id: int, db: AsyncSession = Depends(get_db)) -> dict:
    await JobRepository(db).cancel(job_id)
    await db.commit()
    return _message(f"Job {job_id} cancelled")
