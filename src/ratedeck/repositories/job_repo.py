"""Job queue repository.

Every status transition is a conditional UPDATE that names the status it
expects to leave. Two workers racing for the same job therefore cannot both
win, and a job cancelled while it was processing is not overwritten when its
handler finishes.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ratedeck.db.base import utcnow
from ratedeck.db.models.job import JobRow
from ratedeck.errors.exceptions import ConflictError, NotFoundError
from ratedeck.models.enums import TERMINAL_STATUSES, JobStatus
from ratedeck.repositories.base import BaseRepository

# Pending jobs examined per claim_next call before giving up
_CLAIM_CANDIDATES = 5
_TAG_SCAN_BATCH = 200


@dataclass
class ReclaimResult:
    requeued: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.requeued + self.failed


class JobRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, JobRow)

    async def get(self, job_id: int) -> JobRow | None:
        # Bulk UPDATEs bypass the identity map, so always re-read the row
        return await self.session.get(JobRow, job_id, populate_existing=True)

    async def get_or_404(self, job_id: int) -> JobRow:
        row = await self.get(job_id)
        if not row:
            raise NotFoundError("Job", job_id)
        return row

    async def _transition(self, job_id: int, from_statuses, **values) -> bool:
        stmt = (
            update(JobRow)
            .where(JobRow.id == job_id, JobRow.status.in_([str(s) for s in from_statuses]))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    # --- Queries ---

    async def list_jobs(
        self,
        status: JobStatus | None = None,
        job_type: str | None = None,
        tags: list[str] | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[JobRow]:
        """List jobs newest first. Tag filtering matches any of the given tags."""
        stmt = (
            select(JobRow)
            .order_by(JobRow.created_at.desc(), JobRow.id.desc())
            .execution_options(populate_existing=True)
        )
        if status:
            stmt = stmt.where(JobRow.status == str(status))
        if job_type:
            stmt = stmt.where(JobRow.job_type == str(job_type))

        if tags:
            # JSON containment is not portable across backends; filter in Python,
            # reading only as many batches as the requested page needs
            wanted = set(tags)
            matches: list[JobRow] = []
            position = 0
            while len(matches) < offset + limit:
                result = await self.session.execute(
                    stmt.limit(_TAG_SCAN_BATCH).offset(position)
                )
                batch = list(result.scalars().all())
                matches.extend(r for r in batch if wanted.intersection(r.tags or []))
                if len(batch) < _TAG_SCAN_BATCH:
                    break
                position += _TAG_SCAN_BATCH
            return matches[offset:offset + limit]

        result = await self.session.execute(stmt.limit(limit).offset(offset))
        return list(result.scalars().all())

    async def count_by_status(self) -> dict[JobStatus, int]:
        stmt = select(JobRow.status, func.count()).group_by(JobRow.status)
        result = await self.session.execute(stmt)
        counts = {status: 0 for status in JobStatus}
        for status, count in result.all():
            counts[JobStatus(status)] = count
        return counts

    async def count_active(self, job_type: str) -> int:
        """Count pending and processing jobs of one type."""
        stmt = select(func.count()).select_from(JobRow).where(
            JobRow.job_type == str(job_type),
            JobRow.status.in_([JobStatus.PENDING.value, JobStatus.PROCESSING.value]),
        )
        return (await self.session.execute(stmt)).scalar_one()

    # --- Claiming ---

    async def claim(self, job_id: int, now: datetime | None = None) -> JobRow | None:
        """Atomically move one pending job to processing. Returns None if lost."""
        now = now or utcnow()
        claimed = await self._transition(
            job_id,
            [JobStatus.PENDING],
            status=JobStatus.PROCESSING.value,
            locked_at=now,
            attempts=JobRow.attempts + 1,
            updated_at=now,
        )
        if not claimed:
            return None
        return await self.get(job_id)

    async def claim_next(self, now: datetime | None = None) -> JobRow | None:
        """Claim the highest-priority, oldest due pending job."""
        now = now or utcnow()
        stmt = (
            select(JobRow.id)
            .where(
                JobRow.status == JobStatus.PENDING.value,
                or_(JobRow.run_at.is_(None), JobRow.run_at <= now),
            )
            .order_by(JobRow.priority.desc(), JobRow.created_at.asc(), JobRow.id.asc())
            .limit(_CLAIM_CANDIDATES)
        )
        candidates = (await self.session.execute(stmt)).scalars().all()
        for job_id in candidates:
            row = await self.claim(job_id, now)
            if row is not None:
                return row
        return None

    # --- Outcomes ---

    async def mark_completed(self, job_id: int, now: datetime | None = None) -> bool:
        now = now or utcnow()
        return await self._transition(
            job_id,
            [JobStatus.PROCESSING],
            status=JobStatus.COMPLETED.value,
            completed_at=now,
            locked_at=None,
            error=None,
            updated_at=now,
        )

    async def mark_failed_attempt(
        self, job_id: int, error: str, now: datetime | None = None
    ) -> JobStatus | None:
        """Record a failed execution.

        Returns FAILED when the job has used all its attempts, PENDING when it
        was put back for an automatic retry, or None if the job was no longer
        processing (e.g. cancelled meanwhile).
        """
        now = now or utcnow()
        exhausted = (
            update(JobRow)
            .where(
                JobRow.id == job_id,
                JobRow.status == JobStatus.PROCESSING.value,
                JobRow.attempts >= JobRow.max_attempts,
            )
            .values(
                status=JobStatus.FAILED.value,
                failed_at=now,
                locked_at=None,
                error=error,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if (await self.session.execute(exhausted)).rowcount == 1:
            return JobStatus.FAILED

        requeued = await self._transition(
            job_id,
            [JobStatus.PROCESSING],
            status=JobStatus.PENDING.value,
            locked_at=None,
            error=error,
            updated_at=now,
        )
        return JobStatus.PENDING if requeued else None

    async def fail_permanently(self, job_id: int, error: str, now: datetime | None = None) -> bool:
        """Fail a processing job without further retries."""
        now = now or utcnow()
        return await self._transition(
            job_id,
            [JobStatus.PROCESSING],
            status=JobStatus.FAILED.value,
            failed_at=now,
            locked_at=None,
            error=error,
            updated_at=now,
        )

    # --- Operator commands ---

    async def retry(self, job_id: int) -> JobRow:
        """Put a failed job back to pending with a fresh attempt budget."""
        row = await self.get_or_404(job_id)
        retried = await self._transition(
            job_id,
            [JobStatus.FAILED],
            status=JobStatus.PENDING.value,
            attempts=0,
            error=None,
            failed_at=None,
            completed_at=None,
            locked_at=None,
            updated_at=utcnow(),
        )
        if not retried:
            raise ConflictError(
                f"Job {job_id} is {row.status}; only failed jobs can be retried",
                details={"status": row.status},
            )
        return await self.get(job_id)

    async def retry_all_failed(self) -> int:
        stmt = (
            update(JobRow)
            .where(JobRow.status == JobStatus.FAILED.value)
            .values(
                status=JobStatus.PENDING.value,
                attempts=0,
                error=None,
                failed_at=None,
                locked_at=None,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return (await self.session.execute(stmt)).rowcount

    async def cancel(self, job_id: int, now: datetime | None = None) -> JobRow:
        """Cancel a pending or processing job.

        A processing job is not interrupted; its handler's outcome is discarded.
        """
        now = now or utcnow()
        row = await self.get_or_404(job_id)
        cancelled = await self._transition(
            job_id,
            [JobStatus.PENDING, JobStatus.PROCESSING],
            status=JobStatus.CANCELLED.value,
            failed_at=now,
            locked_at=None,
            updated_at=now,
        )
        if not cancelled:
            raise ConflictError(
                f"Job {job_id} is {row.status}; only pending or processing jobs can be cancelled",
                details={"status": row.status},
            )
        return await self.get(job_id)

    async def is_cancelled(self, job_id: int) -> bool:
        stmt = select(JobRow.status).where(JobRow.id == job_id)
        status = (await self.session.execute(stmt)).scalar_one_or_none()
        return status == JobStatus.CANCELLED.value

    async def reclaim_stuck(
        self, older_than_minutes: int, now: datetime | None = None
    ) -> ReclaimResult:
        """Return processing jobs with an expired lock to pending.

        Jobs that already used every attempt are failed instead, so the
        attempts budget is never exceeded by a reclaimed job.
        """
        now = now or utcnow()
        cutoff = now - timedelta(minutes=older_than_minutes)
        stuck = and_(
            JobRow.status == JobStatus.PROCESSING.value,
            JobRow.locked_at.is_not(None),
            JobRow.locked_at < cutoff,
        )

        failed_stmt = (
            update(JobRow)
            .where(stuck, JobRow.attempts >= JobRow.max_attempts)
            .values(
                status=JobStatus.FAILED.value,
                failed_at=now,
                locked_at=None,
                error=f"Processing lock expired after {older_than_minutes} minutes with no attempts left",
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        failed = (await self.session.execute(failed_stmt)).rowcount

        requeue_stmt = (
            update(JobRow)
            .where(stuck)
            .values(status=JobStatus.PENDING.value, locked_at=None, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        requeued = (await self.session.execute(requeue_stmt)).rowcount
        return ReclaimResult(requeued=requeued, failed=failed)

    async def cleanup(self, older_than_days: int, now: datetime | None = None) -> int:
        """Delete terminal jobs whose completion or failure is older than the cutoff."""
        now = now or utcnow()
        cutoff = now - timedelta(days=older_than_days)
        stmt = (
            delete(JobRow)
            .where(
                JobRow.status.in_([s.value for s in TERMINAL_STATUSES]),
                or_(
                    and_(JobRow.completed_at.is_not(None), JobRow.completed_at < cutoff),
                    and_(JobRow.completed_at.is_(None), JobRow.failed_at.is_not(None), JobRow.failed_at < cutoff),
                ),
            )
            .execution_options(synchronize_session=False)
        )
        return (await self.session.execute(stmt)).rowcount
