"""Job queue statistics computed from the store on demand."""

from sqlalchemy.ext.asyncio import AsyncSession

from ratedeck.models.enums import JobStatus
from ratedeck.models.job import JobStats
from ratedeck.repositories.job_repo import JobRepository


def success_rate(completed: int, failed: int) -> float:
    """Percentage of finished jobs that completed; 100.0 when none finished."""
    finished = completed + failed
    if finished == 0:
        return 100.0
    return round(completed / finished * 100, 2)


async def compute_job_stats(session: AsyncSession) -> JobStats:
    counts = await JobRepository(session).count_by_status()
    return JobStats(
        pending=counts[JobStatus.PENDING],
        processing=counts[JobStatus.PROCESSING],
        completed=counts[JobStatus.COMPLETED],
        failed=counts[JobStatus.FAILED],
        cancelled=counts[JobStatus.CANCELLED],
        success_rate=success_rate(counts[JobStatus.COMPLETED], counts[JobStatus.FAILED]),
    )
