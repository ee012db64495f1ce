"""Tests for the worker supervisor lifecycle."""

import asyncio
import time
from datetime import timedelta

import pytest

from ratedeck.db.base import utcnow
from ratedeck.errors.exceptions import WorkerControlError
from ratedeck.models.enums import JobStatus, JobType
from ratedeck.models.job_payloads import ReportGeneratePayload
from ratedeck.repositories.job_repo import JobRepository
from ratedeck.workers.base import BaseWorker
from ratedeck.workers.maintenance import run_maintenance_once
from ratedeck.workers.queue import enqueue_job
from ratedeck.workers.registry import register_worker, unregister_worker
from ratedeck.workers.supervisor import WorkerSupervisor


async def _wait_for_status(db_session, job_id, status, attempts: int = 200):
    repo = JobRepository(db_session)
    for _ in range(attempts):
        job = await repo.get(job_id)
        if job.status == status:
            return job
        await asyncio.sleep(0.01)
    raise AssertionError(f"job {job_id} never reached {status}")


async def _wait_until_idle(supervisor, attempts: int = 200):
    for _ in range(attempts):
        if not supervisor.running and not supervisor.stopping:
            return
        await asyncio.sleep(0.01)
    raise AssertionError("worker loop never exited")


class SlowReportWorker(BaseWorker):
    payload_model = ReportGeneratePayload

    async def process(self, job_id, payload, session, context):
        await asyncio.sleep(1)
        return {"rows": 0}


@pytest.fixture
def slow_reports():
    register_worker(JobType.REPORT_GENERATE, SlowReportWorker)
    yield
    unregister_worker(JobType.REPORT_GENERATE)


@pytest.mark.asyncio
async def test_start_and_stop(supervisor):
    assert supervisor.running is False
    assert await supervisor.start() is True
    assert supervisor.running is True
    assert await supervisor.start() is False

    assert await supervisor.stop() is True
    assert supervisor.running is False
    assert await supervisor.stop() is False


@pytest.mark.asyncio
async def test_started_worker_processes_jobs(supervisor, db_session):
    row = await enqueue_job(db_session, JobType.AZ_DESTINATION_DELETE_ALL, {})
    await db_session.commit()

    await supervisor.start()
    job = await _wait_for_status(db_session, row.id, JobStatus.COMPLETED.value)
    assert job.completed_at is not None


@pytest.mark.asyncio
async def test_stopped_worker_leaves_jobs_pending(supervisor, db_session):
    await supervisor.start()
    await supervisor.stop()
    await _wait_until_idle(supervisor)

    row = await enqueue_job(db_session, JobType.AZ_DESTINATION_DELETE_ALL, {})
    await db_session.commit()
    await asyncio.sleep(0.1)

    job = await JobRepository(db_session).get(row.id)
    assert job.status == JobStatus.PENDING.value


@pytest.mark.asyncio
async def test_stop_returns_while_job_finishes(supervisor, db_session, slow_reports):
    row = await enqueue_job(db_session, JobType.REPORT_GENERATE, {"reportType": "daily"})
    await db_session.commit()
    await supervisor.start()
    await _wait_for_status(db_session, row.id, JobStatus.PROCESSING.value)

    started = time.monotonic()
    assert await supervisor.stop() is True
    assert time.monotonic() - started < 0.5
    assert supervisor.running is False
    assert supervisor.stopping is True

    job = await _wait_for_status(db_session, row.id, JobStatus.COMPLETED.value, attempts=400)
    assert job.completed_at is not None
    await _wait_until_idle(supervisor)


@pytest.mark.asyncio
async def test_start_while_stopping_resumes_loop(supervisor, db_session, slow_reports):
    first = await enqueue_job(db_session, JobType.REPORT_GENERATE, {"reportType": "daily"})
    await db_session.commit()
    await supervisor.start()
    await _wait_for_status(db_session, first.id, JobStatus.PROCESSING.value)

    await supervisor.stop()
    assert await supervisor.start() is True
    assert supervisor.running is True

    second = await enqueue_job(db_session, JobType.AZ_DESTINATION_DELETE_ALL, {})
    await db_session.commit()
    await _wait_for_status(db_session, first.id, JobStatus.COMPLETED.value, attempts=400)
    await _wait_for_status(db_session, second.id, JobStatus.COMPLETED.value, attempts=400)


@pytest.mark.asyncio
async def test_close_waits_for_job_in_flight(session_factory, db_session, slow_reports):
    row = await enqueue_job(db_session, JobType.REPORT_GENERATE, {"reportType": "daily"})
    await db_session.commit()
    supervisor = WorkerSupervisor(session_factory, poll_interval=0.01)
    await supervisor.open()
    await supervisor.start()
    await _wait_for_status(db_session, row.id, JobStatus.PROCESSING.value)

    await supervisor.close()

    assert supervisor.stopping is False
    job = await JobRepository(db_session).get(row.id)
    assert job.status == JobStatus.COMPLETED.value


@pytest.mark.asyncio
async def test_start_reclaims_stuck_jobs(session_factory, db_session):
    row = await enqueue_job(db_session, JobType.AZ_DESTINATION_DELETE_ALL, {})
    await db_session.commit()
    repo = JobRepository(db_session)
    await repo.claim(row.id, utcnow() - timedelta(hours=1))
    await db_session.commit()

    supervisor = WorkerSupervisor(session_factory, poll_interval=0.01, stuck_timeout_minutes=10)
    await supervisor.open()
    try:
        await supervisor.start()
        job = await _wait_for_status(db_session, row.id, JobStatus.COMPLETED.value)
        assert job.attempts == 2
    finally:
        await supervisor.close()
    assert supervisor.running is False


@pytest.mark.asyncio
async def test_commands_require_open_supervisor(session_factory):
    supervisor = WorkerSupervisor(session_factory)
    with pytest.raises(WorkerControlError):
        await supervisor.start()


@pytest.mark.asyncio
async def test_maintenance_pass(db_session, session_factory):
    repo = JobRepository(db_session)
    stuck = await enqueue_job(db_session, JobType.AZ_DESTINATION_DELETE_ALL, {})
    old = await enqueue_job(db_session, JobType.AZ_DESTINATION_DELETE_ALL, {})
    await db_session.commit()
    long_ago = utcnow() - timedelta(days=60)
    await repo.claim(stuck.id, utcnow() - timedelta(hours=1))
    await repo.cancel(old.id, long_ago)
    await db_session.commit()

    counts = await run_maintenance_once(
        session_factory, stuck_timeout_minutes=10, retention_days=30, cleanup=True
    )

    assert counts == {"reclaimed": 1, "deleted": 1}
    assert (await repo.get(stuck.id)).status == JobStatus.PENDING.value
    assert await repo.get(old.id) is None


@pytest.mark.asyncio
async def test_maintenance_honours_zero_thresholds(db_session, session_factory):
    repo = JobRepository(db_session)
    stuck = await enqueue_job(db_session, JobType.AZ_DESTINATION_DELETE_ALL, {})
    done = await enqueue_job(db_session, JobType.AZ_DESTINATION_DELETE_ALL, {})
    await db_session.commit()
    moments_ago = utcnow() - timedelta(seconds=5)
    await repo.claim(stuck.id, moments_ago)
    await repo.cancel(done.id, moments_ago)
    await db_session.commit()

    counts = await run_maintenance_once(
        session_factory, stuck_timeout_minutes=0, retention_days=0, cleanup=True
    )

    assert counts == {"reclaimed": 1, "deleted": 1}
    assert await repo.get(done.id) is None
