"""Worker for az_destination_import jobs."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ratedeck.config import settings
from ratedeck.models.enums import ImportMode
from ratedeck.models.job_payloads import AzDestinationImportPayload
from ratedeck.repositories.az_destination_repo import AzDestinationRepository, UpsertResult
from ratedeck.services.billing_increment import DEFAULT_BILLING_INCREMENT
from ratedeck.workers.base import BaseWorker, JobContext

logger = logging.getLogger(__name__)


class AzDestinationImportWorker(BaseWorker):
    """Upsert a chunk of destinations into the A-Z table."""

    payload_model = AzDestinationImportPayload

    async def process(
        self,
        job_id: int,
        payload: AzDestinationImportPayload,
        session: AsyncSession,
        context: JobContext,
    ) -> dict:
        repo = AzDestinationRepository(session)
        logger.info(
            "Starting import of %d destinations (mode=%s)", payload.total_records, payload.mode
        )

        deleted = 0
        if payload.mode == ImportMode.REPLACE:
            deleted = await repo.delete_all()
            logger.info("Deleted %d existing destinations before import", deleted)

        batch_size = settings.destination_upsert_batch_size
        batches = max(1, -(-len(payload.destinations) // batch_size))
        totals = UpsertResult()
        for number, start in enumerate(range(0, len(payload.destinations), batch_size), start=1):
            await context.raise_if_cancelled()
            batch = payload.destinations[start:start + batch_size]
            logger.debug("Processing batch %d/%d", number, batches)
            totals += await repo.upsert_bulk(
                [
                    {
                        "code": d.code.strip(),
                        "destination": d.destination.strip(),
                        "region": d.region,
                        "billing_increment": d.billing_increment or DEFAULT_BILLING_INCREMENT,
                    }
                    for d in batch
                ]
            )

        logger.info(
            "Import complete: %d inserted, %d updated, %d skipped",
            totals.inserted, totals.updated, totals.skipped,
        )
        return {
            "inserted": totals.inserted,
            "updated": totals.updated,
            "skipped": totals.skipped,
            "deleted": deleted,
        }
