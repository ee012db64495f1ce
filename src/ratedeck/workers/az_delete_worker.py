"""Worker for az_destination_delete_all jobs."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ratedeck.models.job_payloads import AzDestinationDeleteAllPayload
from ratedeck.repositories.az_destination_repo import AzDestinationRepository
from ratedeck.workers.base import BaseWorker, JobContext

logger = logging.getLogger(__name__)


class AzDestinationDeleteAllWorker(BaseWorker):
    payload_model = AzDestinationDeleteAllPayload

    async def process(
        self,
        job_id: int,
        payload: AzDestinationDeleteAllPayload,
        session: AsyncSession,
        context: JobContext,
    ) -> dict:
        logger.info("Starting delete all (%s records)", payload.total_records or "unknown")
        count = await AzDestinationRepository(session).delete_all()
        logger.info("Deleted %d destinations", count)
        return {"deleted": count}
