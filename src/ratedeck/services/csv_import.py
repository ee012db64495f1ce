"""CSV import pipeline for A-Z destinations.

The pipeline is all-or-nothing up to the point where jobs are queued: the file
is parsed, projected through the column mapping and validated as one batch.
Only a fully valid batch can delete existing rows (replace mode) and enqueue
import jobs, and both happen in the same transaction.
"""

import csv
import io
import logging
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from ratedeck.config import settings
from ratedeck.errors.exceptions import ImportValidationError, ValidationError
from ratedeck.models.az_destination import (
    ColumnMapping,
    ImportPreview,
    ImportResult,
    SuggestedMapping,
)
from ratedeck.models.enums import ImportMode, JobType
from ratedeck.repositories.az_destination_repo import AzDestinationRepository
from ratedeck.services.billing_increment import (
    DEFAULT_BILLING_INCREMENT,
    format_validation_errors,
    validate_and_normalize_destinations,
)
from ratedeck.workers.queue import enqueue_job

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CANDIDATE_DELIMITERS = ",;\t|"

# Normalized header names (lowercase, alphanumerics only) per field, best first
FIELD_SYNONYMS: dict[str, tuple[str, ...]] = {
    "code": ("code", "prefix", "dialcode", "dialingcode", "dialprefix", "codes", "areacode"),
    "destination": ("destination", "destinationname", "dest", "name", "zone", "zonename", "description"),
    "region": ("region", "country", "countryname", "area", "continent", "group"),
    "billingIncrement": (
        "billingincrement",
        "increment",
        "billinginterval",
        "interval",
        "billing",
        "pulse",
        "rounding",
    ),
}


@dataclass
class CsvRow:
    number: int
    values: list[str]

    def get(self, index: int | None) -> str:
        if index is None or index >= len(self.values):
            return ""
        return self.values[index].strip()


@dataclass
class ParsedCsv:
    headers: list[str]
    rows: list[CsvRow] = field(default_factory=list)
    delimiter: str = ","


def _normalize_header(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower())


def _sniff_delimiter(first_line: str) -> str:
    try:
        return csv.Sniffer().sniff(first_line, delimiters=_CANDIDATE_DELIMITERS).delimiter
    except csv.Error:
        return ","


def parse_csv(content: str) -> ParsedCsv:
    """Parse delimited text with a header row.

    Blank lines are skipped. Row numbers count records as a spreadsheet
    would: the header is row 1 and the first data row is row 2.
    """
    content = content.lstrip("\ufeff")
    if not content.strip():
        raise ValidationError("CSV file is empty")

    first_line = next(line for line in content.splitlines() if line.strip())
    delimiter = _sniff_delimiter(first_line)

    reader = csv.reader(io.StringIO(content), delimiter=delimiter)
    headers: list[str] | None = None
    rows: list[CsvRow] = []
    number = 0
    for record in reader:
        if not any(cell.strip() for cell in record):
            continue
        number += 1
        if headers is None:
            headers = [cell.strip() for cell in record]
        else:
            rows.append(CsvRow(number=number, values=record))

    if not rows:
        raise ValidationError("CSV file has a header but no data rows")
    return ParsedCsv(headers=headers or [], rows=rows, delimiter=delimiter)


def suggest_column_mapping(headers: Sequence[str]) -> SuggestedMapping:
    """Guess which column holds each field from the header names."""
    normalized = [_normalize_header(h) for h in headers]
    assigned: dict[str, int] = {}
    used: set[int] = set()

    def match(predicate) -> None:
        for field_name, synonyms in FIELD_SYNONYMS.items():
            if field_name in assigned:
                continue
            for synonym in synonyms:
                index = next(
                    (i for i, name in enumerate(normalized) if i not in used and name and predicate(name, synonym)),
                    None,
                )
                if index is not None:
                    assigned[field_name] = index
                    used.add(index)
                    break

    match(lambda name, synonym: name == synonym)
    match(lambda name, synonym: len(synonym) > 3 and synonym in name)

    return SuggestedMapping(
        code=assigned.get("code"),
        destination=assigned.get("destination"),
        region=assigned.get("region"),
        billing_increment=assigned.get("billingIncrement"),
    )


def preview_csv(content: str, max_rows: int | None = None) -> ImportPreview:
    parsed = parse_csv(content)
    limit = max_rows or settings.import_preview_rows
    return ImportPreview(
        headers=parsed.headers,
        rows=[row.values for row in parsed.rows[:limit]],
        total_rows=len(parsed.rows),
        delimiter=parsed.delimiter,
        suggested_mapping=suggest_column_mapping(parsed.headers),
    )


def project_rows(parsed: ParsedCsv, mapping: ColumnMapping) -> tuple[list[dict], list[int]]:
    """Map CSV rows onto destination fields.

    Returns the candidate rows and their CSV row numbers. Rows with neither a
    code nor a destination are dropped without being reported.
    """
    width = len(parsed.headers)
    out_of_range = {name: index for name, index in mapping.columns().items() if index >= width}
    if out_of_range:
        raise ValidationError(
            f"Column mapping refers to columns missing from the header ({width} columns)",
            details=out_of_range,
        )

    candidates: list[dict] = []
    numbers: list[int] = []
    for row in parsed.rows:
        code = row.get(mapping.code)
        destination = row.get(mapping.destination)
        if not code and not destination:
            continue
        candidates.append(
            {
                "code": code,
                "destination": destination,
                "region": row.get(mapping.region) or None,
                "billingIncrement": row.get(mapping.billing_increment) or DEFAULT_BILLING_INCREMENT,
            }
        )
        numbers.append(row.number)
    return candidates, numbers


def chunk(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    if size < 1:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(items), size):
        yield items[start:start + size]


async def import_destinations(
    session: AsyncSession,
    content: str,
    mapping: ColumnMapping,
    mode: ImportMode = ImportMode.UPDATE,
    confirm_replace: bool = False,
    chunk_size: int | None = None,
    user_id: str | None = None,
) -> ImportResult:
    """Validate a CSV file and queue one import job per chunk.

    Raises ImportValidationError (nothing deleted, nothing queued) if any row
    is invalid. In replace mode every existing destination is deleted before
    the chunks are queued; the chunk jobs themselves always upsert.
    """
    mode = ImportMode(mode)
    if mode == ImportMode.REPLACE and not confirm_replace:
        raise ValidationError(
            "Replace mode deletes every existing destination; set confirmReplace to proceed"
        )

    parsed = parse_csv(content)
    candidates, row_numbers = project_rows(parsed, mapping)
    if not candidates:
        raise ValidationError("CSV file contains no destination rows")

    validation = validate_and_normalize_destinations(candidates, row_numbers)
    if not validation.is_valid:
        logger.info(
            "A-Z import rejected with %d validation errors:\n%s",
            len(validation.errors),
            format_validation_errors(validation.errors),
        )
        raise ImportValidationError([e.to_dict() for e in validation.errors])

    deleted = 0
    if mode == ImportMode.REPLACE:
        deleted = await AzDestinationRepository(session).delete_all()
        logger.info("Replace import: deleted %d existing destinations", deleted)

    size = chunk_size or settings.import_chunk_size
    job_ids: list[int] = []
    for part in chunk(validation.destinations, size):
        job = await enqueue_job(
            session,
            JobType.AZ_DESTINATION_IMPORT,
            {
                "mode": ImportMode.UPDATE.value,
                "destinations": list(part),
                "totalRecords": len(part),
                "userId": user_id,
            },
        )
        job_ids.append(job.id)
    await session.commit()

    total = len(validation.destinations)
    logger.info("Queued %d A-Z import jobs for %d destinations (mode=%s)", len(job_ids), total, mode)
    return ImportResult(
        jobs_queued=len(job_ids),
        total_destinations=total,
        job_ids=job_ids,
        deleted_count=deleted,
        mode=mode,
        message=f"Queued {len(job_ids)} import job(s) for {total} destinations",
    )
