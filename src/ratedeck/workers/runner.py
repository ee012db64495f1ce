"""Claim-and-execute loop for the background job worker."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ratedeck.config import settings
from ratedeck.db.models.job import JobRow
from ratedeck.logging_config import bind_job_context, clear_request_context
from ratedeck.models.enums import JobStatus
from ratedeck.repositories.job_repo import JobRepository
from ratedeck.workers.base import BaseWorker, JobCancelledError, JobContext
from ratedeck.workers.registry import get_worker

logger = logging.getLogger(__name__)

R = TypeVar("R")


class JobRunner:
    """Executes jobs one at a time from the shared job store.

    Each job runs in its own session. A handler exception is recorded on the
    job and never propagates out of run_once(), so one bad job cannot stop
    the loop.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        poll_interval: float | None = None,
    ):
        self._session_factory = session_factory
        self.poll_interval = (
            settings.worker_poll_interval_seconds if poll_interval is None else poll_interval
        )

    async def _with_repo(self, fn: Callable[[JobRepository], Awaitable[R]]) -> R:
        async with self._session_factory() as session:
            result = await fn(JobRepository(session))
            await session.commit()
            return result

    async def _is_cancelled(self, job_id: int) -> bool:
        async with self._session_factory() as session:
            return await JobRepository(session).is_cancelled(job_id)

    async def run_once(self) -> bool:
        """Claim and execute one job. Returns False when nothing was due."""
        job = await self._with_repo(lambda repo: repo.claim_next())
        if job is None:
            return False

        bind_job_context(job.id, job.job_type, job.attempts)
        try:
            await self._execute(job)
        finally:
            clear_request_context()
        return True

    async def _execute(self, job: JobRow) -> None:
        worker = get_worker(job.job_type)
        if worker is None:
            message = f"No handler for job type: {job.job_type}"
            logger.error(message)
            await self._with_repo(lambda repo: repo.fail_permanently(job.id, message))
            return

        try:
            result = await self._process(worker, job)
        except JobCancelledError:
            logger.info("Job %s stopped after cancellation", job.id)
            return
        except Exception as exc:
            logger.exception(
                "Job %s failed (type=%s, attempt=%d/%d)",
                job.id, job.job_type, job.attempts, job.max_attempts,
            )
            error = str(exc) or exc.__class__.__name__
            outcome = await self._with_repo(lambda repo: repo.mark_failed_attempt(job.id, error))
            if outcome == JobStatus.FAILED:
                logger.warning("Job %s failed permanently after %d attempts", job.id, job.attempts)
            elif outcome == JobStatus.PENDING:
                logger.info("Job %s requeued for retry", job.id)
            return

        completed = await self._with_repo(lambda repo: repo.mark_completed(job.id))
        if completed:
            logger.info("Job %s succeeded (type=%s) %s", job.id, job.job_type, result or {})
        else:
            logger.info("Job %s finished after it was cancelled; outcome discarded", job.id)

    async def _process(self, worker: BaseWorker, job: JobRow) -> dict | None:
        try:
            payload = worker.payload_model.model_validate(job.payload or {})
        except PydanticValidationError as exc:
            raise ValueError(f"Invalid payload: {exc.error_count()} validation error(s)") from exc

        context = JobContext(job.id, job.attempts, lambda: self._is_cancelled(job.id))
        timeout = job.timeout_ms / 1000 if job.timeout_ms else None

        async with self._session_factory() as session:
            deadline = asyncio.timeout(timeout)
            try:
                async with deadline:
                    result = await worker.process(job.id, payload, session, context)
            except TimeoutError as exc:
                if not deadline.expired():
                    raise
                raise TimeoutError(f"Job timed out after {job.timeout_ms} ms") from exc
            await session.commit()
        return result

    async def run(self, stop_event: asyncio.Event) -> None:
        """Process jobs until stop_event is set. The job in flight is finished first."""
        logger.info("Job worker loop started (poll_interval=%.2fs)", self.poll_interval)
        while not stop_event.is_set():
            try:
                worked = await self.run_once()
            except Exception:
                # Store unavailable or similar; the claimed job (if any) is reclaimed later
                logger.exception("Job worker iteration failed")
                worked = False

            if not worked:
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=self.poll_interval)
                except TimeoutError:
                    pass
        logger.info("Job worker loop stopped")
