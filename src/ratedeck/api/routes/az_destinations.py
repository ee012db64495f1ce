"""A-Z destination endpoints: CRUD, bulk upsert, CSV import and export."""

import csv
import io

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from ratedeck.db.models.az_destination import AzDestinationRow
from ratedeck.dependencies import get_db
from ratedeck.errors.exceptions import ConflictError, ImportValidationError, NotFoundError, ValidationError
from ratedeck.models.az_destination import (
    AzDestination,
    AzDestinationCreate,
    AzDestinationList,
    AzDestinationUpdate,
    BulkUpsertRequest,
    ImportJobRequest,
    ImportPreviewRequest,
    ImportRequest,
)
from ratedeck.models.enums import JobType
from ratedeck.models.job import EnqueueJobResponse
from ratedeck.repositories.az_destination_repo import AzDestinationRepository
from ratedeck.services.billing_increment import (
    normalize_billing_increment,
    validate_and_normalize_destinations,
)
from ratedeck.services.csv_import import import_destinations, preview_csv
from ratedeck.workers.queue import enqueue_job

router = APIRouter(prefix="/az-destinations", tags=["AzDestinations"])

EXPORT_COLUMNS = ("code", "destination", "region", "billingIncrement", "gracePeriod")


def _dest_dict(row: AzDestinationRow) -> dict:
    return AzDestination.model_validate(row, from_attributes=True).model_dump(mode="json", by_alias=True)


def _validated_increment(value: str | None) -> str:
    result = normalize_billing_increment(value)
    if result.error:
        raise ValidationError(result.error, details={"billingIncrement": value})
    return result.value


def _validated_batch(destinations) -> list[dict]:
    """Validate request rows and return them keyed for the repository."""
    validation = validate_and_normalize_destinations(
        [d.model_dump(by_alias=True) for d in destinations],
        row_numbers=list(range(1, len(destinations) + 1)),
    )
    if not validation.is_valid:
        raise ImportValidationError([e.to_dict() for e in validation.errors])
    return validation.destinations


@router.get("")
async def list_destinations(
    search: str | None = None,
    region: str | None = None,
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> dict:
    rows, total = await AzDestinationRepository(db).list_destinations(
        search=search, region=region, limit=limit, offset=offset
    )
    return AzDestinationList(
        destinations=[AzDestination.model_validate(r, from_attributes=True) for r in rows],
        total=total,
    ).model_dump(mode="json", by_alias=True)


@router.get("/regions")
async def list_regions(db: AsyncSession = Depends(get_db)) -> list[str]:
    return await AzDestinationRepository(db).regions()


@router.get("/normalize/{code}")
async def normalize_code(code: str, db: AsyncSession = Depends(get_db)) -> dict:
    """Resolve a dialled number to the destination with the longest matching prefix."""
    row = await AzDestinationRepository(db).normalize_code(code)
    if not row:
        raise NotFoundError("AzDestination for code", code)
    return _dest_dict(row)


@router.get("/export/csv")
async def export_csv(db: AsyncSession = Depends(get_db)) -> Response:
    rows = await AzDestinationRepository(db).list_all()
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for row in rows:
        writer.writerow([row.code, row.destination, row.region or "", row.billing_increment, row.grace_period])
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="az-destinations.csv"'},
    )


@router.post("", status_code=201)
async def create_destination(
    body: AzDestinationCreate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    repo = AzDestinationRepository(db)
    code = body.code.strip()
    if await repo.get_by_code(code):
        raise ConflictError(f"Destination code '{code}' already exists")

    row = await repo.create_destination(
        code=code,
        destination=body.destination.strip(),
        region=body.region,
        billing_increment=_validated_increment(body.billing_increment),
        grace_period=body.grace_period,
        is_active=body.is_active,
    )
    await db.commit()
    return _dest_dict(row)


@router.post("/bulk")
async def bulk_upsert(
    body: BulkUpsertRequest,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Upsert destinations synchronously; the whole batch is rejected on any invalid row."""
    destinations = _validated_batch(body.destinations)
    result = await AzDestinationRepository(db).upsert_bulk(
        [
            {
                "code": d["code"],
                "destination": d["destination"],
                "region": d["region"],
                "billing_increment": d["billingIncrement"],
            }
            for d in destinations
        ]
    )
    await db.commit()
    return {
        "success": True,
        "inserted": result.inserted,
        "updated": result.updated,
        "skipped": result.skipped,
    }


@router.post("/import-job", status_code=201)
async def enqueue_import_job(
    body: ImportJobRequest,
    db: AsyncSession = Depends(get_db),
) -> dict:
    destinations = _validated_batch(body.destinations)
    row = await enqueue_job(
        db,
        JobType.AZ_DESTINATION_IMPORT,
        {
            "mode": body.mode.value,
            "destinations": destinations,
            "totalRecords": len(destinations),
        },
    )
    await db.commit()
    return EnqueueJobResponse(
        job_id=row.id,
        message=f"Import job {row.id} queued for {len(destinations)} destinations",
    ).model_dump(mode="json", by_alias=True)


@router.post("/delete-all-job", status_code=201)
async def enqueue_delete_all_job(db: AsyncSession = Depends(get_db)) -> dict:
    """Delete every destination in the background."""
    total = await AzDestinationRepository(db).count()
    row = await enqueue_job(db, JobType.AZ_DESTINATION_DELETE_ALL, {"totalRecords": total})
    await db.commit()
    return EnqueueJobResponse(
        job_id=row.id,
        message=f"Delete job {row.id} queued for {total} destinations",
    ).model_dump(mode="json", by_alias=True)


@router.post("/import/preview")
async def import_preview(body: ImportPreviewRequest) -> dict:
    preview = preview_csv(body.content, body.max_rows)
    return preview.model_dump(mode="json", by_alias=True)


@router.post("/import")
async def import_csv(
    body: ImportRequest,
    db: AsyncSession = Depends(get_db),
) -> dict:
    result = await import_destinations(
        db,
        body.content,
        body.mapping,
        mode=body.mode,
        confirm_replace=body.confirm_replace,
    )
    return result.model_dump(mode="json", by_alias=True)


@router.delete("")
async def delete_all_destinations(db: AsyncSession = Depends(get_db)) -> dict:
    count = await AzDestinationRepository(db).delete_all()
    await db.commit()
    return {"success": True, "count": count}


@router.get("/{destination_id}")
async def get_destination(destination_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    row = await AzDestinationRepository(db).get(destination_id)
    if not row:
        raise NotFoundError("AzDestination", destination_id)
    return _dest_dict(row)


@router.patch("/{destination_id}")
async def update_destination(
    destination_id: str,
    body: AzDestinationUpdate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    repo = AzDestinationRepository(db)
    row = await repo.get(destination_id)
    if not row:
        raise NotFoundError("AzDestination", destination_id)

    changes = body.model_dump(exclude_unset=True)
    for required in ("code", "destination", "grace_period", "is_active"):
        if required in changes and changes[required] is None:
            raise ValidationError(f"{required} cannot be null")
    if "code" in changes:
        changes["code"] = changes["code"].strip()
        existing = await repo.get_by_code(changes["code"])
        if existing and existing.id != row.id:
            raise ConflictError(f"Destination code '{changes['code']}' already exists")
    if "billing_increment" in changes:
        changes["billing_increment"] = _validated_increment(changes["billing_increment"])

    row = await repo.update(row, **changes)
    await db.commit()
    return _dest_dict(row)


@router.delete("/{destination_id}")
async def delete_destination(destination_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    repo = AzDestinationRepository(db)
    row = await repo.get(destination_id)
    if not row:
        raise NotFoundError("AzDestination", destination_id)
    await repo.delete(row)
    await db.commit()
    return {"success": True, "message": f"Destination {row.code} deleted"}
