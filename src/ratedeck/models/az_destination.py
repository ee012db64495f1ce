"""Pydantic models for A-Z destinations and the CSV import workflow."""

from datetime import datetime

from pydantic import Field

from ratedeck.models.common import CamelModel
from ratedeck.models.enums import ImportMode


class AzDestinationInput(CamelModel):
    """A destination row as submitted for import or bulk upsert."""

    code: str = Field(..., min_length=1, max_length=32)
    destination: str = Field(..., min_length=1, max_length=255)
    region: str | None = Field(None, max_length=128)
    billing_increment: str | None = Field(None, max_length=16)


class AzDestination(CamelModel):
    id: str
    code: str
    destination: str
    region: str | None = None
    billing_increment: str = "60/60"
    grace_period: int = 0
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AzDestinationCreate(CamelModel):
    code: str = Field(..., min_length=1, max_length=32)
    destination: str = Field(..., min_length=1, max_length=255)
    region: str | None = Field(None, max_length=128)
    billing_increment: str | None = None
    grace_period: int = Field(0, ge=0)
    is_active: bool = True


class AzDestinationUpdate(CamelModel):
    """Partial update of a destination."""

    code: str | None = Field(None, min_length=1, max_length=32)
    destination: str | None = Field(None, min_length=1, max_length=255)
    region: str | None = Field(None, max_length=128)
    billing_increment: str | None = None
    grace_period: int | None = Field(None, ge=0)
    is_active: bool | None = None


class AzDestinationList(CamelModel):
    destinations: list[AzDestination]
    total: int


class BulkUpsertRequest(CamelModel):
    destinations: list[AzDestinationInput]


class ImportJobRequest(CamelModel):
    """Enqueue one chunk of already-validated destinations."""

    destinations: list[AzDestinationInput]
    mode: ImportMode


class ColumnMapping(CamelModel):
    """Zero-based CSV column index for each destination field."""

    code: int = Field(..., ge=0)
    destination: int = Field(..., ge=0)
    region: int | None = Field(None, ge=0)
    billing_increment: int | None = Field(None, ge=0)

    def columns(self) -> dict[str, int]:
        """Return the mapped fields only, keyed by field name."""
        return {
            field: index
            for field, index in (
                ("code", self.code),
                ("destination", self.destination),
                ("region", self.region),
                ("billingIncrement", self.billing_increment),
            )
            if index is not None
        }


class SuggestedMapping(CamelModel):
    """Best-guess mapping from header names; unmatched fields are None."""

    code: int | None = None
    destination: int | None = None
    region: int | None = None
    billing_increment: int | None = None


class ImportPreviewRequest(CamelModel):
    content: str
    max_rows: int | None = Field(None, ge=1, le=500)


class ImportPreview(CamelModel):
    headers: list[str]
    rows: list[list[str]]
    total_rows: int
    delimiter: str
    suggested_mapping: SuggestedMapping


class ImportRequest(CamelModel):
    content: str
    mapping: ColumnMapping
    mode: ImportMode = ImportMode.UPDATE
    confirm_replace: bool = False


class ImportResult(CamelModel):
    success: bool = True
    jobs_queued: int
    total_destinations: int
    job_ids: list[int]
    deleted_count: int = 0
    mode: ImportMode
    message: str
