"""Tests for the A-Z CSV import pipeline.

Covers:
- parsing (delimiter sniffing, BOM, blank lines, row numbering)
- column mapping suggestion from header names
- projection through a column mapping
- import_destinations: chunking, all-or-nothing validation, replace mode
"""

import pytest
from sqlalchemy import select

from ratedeck.db.models.job import JobRow
from ratedeck.errors.exceptions import ImportValidationError, ValidationError
from ratedeck.models.az_destination import ColumnMapping
from ratedeck.models.enums import ImportMode, JobStatus, JobType
from ratedeck.repositories.az_destination_repo import AzDestinationRepository
from ratedeck.services.csv_import import (
    chunk,
    import_destinations,
    parse_csv,
    preview_csv,
    project_rows,
    suggest_column_mapping,
)

MAPPING = ColumnMapping(code=0, destination=1, region=2, billing_increment=3)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _csv(rows: list[str], header: str = "Code,Destination,Region,Billing Increment") -> str:
    return "\n".join([header, *rows]) + "\n"


async def _jobs(db_session) -> list[JobRow]:
    result = await db_session.execute(select(JobRow).order_by(JobRow.id))
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def test_parse_csv_numbers_rows_like_a_spreadsheet():
    parsed = parse_csv("\ufeffcode,destination\n44,UK\n\n33,France\n")
    assert parsed.headers == ["code", "destination"]
    assert parsed.delimiter == ","
    assert [(r.number, r.values) for r in parsed.rows] == [(2, ["44", "UK"]), (3, ["33", "France"])]


def test_parse_csv_sniffs_semicolon():
    parsed = parse_csv("code;destination;region\n44;United Kingdom;Europe\n")
    assert parsed.delimiter == ";"
    assert parsed.rows[0].values == ["44", "United Kingdom", "Europe"]


def test_parse_csv_handles_quoted_fields():
    parsed = parse_csv('code,destination\n1242,"Bahamas, Mobile"\n')
    assert parsed.rows[0].values == ["1242", "Bahamas, Mobile"]


@pytest.mark.parametrize("content", ["", "   \n\n"])
def test_parse_csv_rejects_empty_file(content):
    with pytest.raises(ValidationError, match="CSV file is empty"):
        parse_csv(content)


def test_parse_csv_rejects_header_only():
    with pytest.raises(ValidationError, match="no data rows"):
        parse_csv("code,destination\n")


def test_suggest_column_mapping_from_headers():
    mapping = suggest_column_mapping(["Dial Prefix", "Country", "Destination Name", "Increment"])
    assert mapping.code == 0
    assert mapping.region == 1
    assert mapping.destination == 2
    assert mapping.billing_increment == 3


def test_suggest_column_mapping_leaves_unknown_fields_empty():
    mapping = suggest_column_mapping(["code", "name", "notes"])
    assert mapping.code == 0
    assert mapping.destination == 1
    assert mapping.region is None
    assert mapping.billing_increment is None


def test_preview_csv_limits_rows():
    content = _csv([f"{i},Dest {i},,60/60" for i in range(1, 26)])
    preview = preview_csv(content, max_rows=5)
    assert len(preview.rows) == 5
    assert preview.total_rows == 25
    assert preview.suggested_mapping.code == 0
    dumped = preview.model_dump(by_alias=True)
    assert dumped["totalRows"] == 25
    assert dumped["suggestedMapping"]["billingIncrement"] == 3


# ---------------------------------------------------------------------------
# Projection and chunking
# ---------------------------------------------------------------------------

def test_project_rows_skips_rows_without_code_and_destination():
    parsed = parse_csv(_csv(["44,UK,Europe,60/1", ",,Europe,", "33,France,,"]))
    candidates, numbers = project_rows(parsed, MAPPING)
    assert numbers == [2, 4]
    assert candidates[0] == {"code": "44", "destination": "UK", "region": "Europe", "billingIncrement": "60/1"}
    assert candidates[1]["billingIncrement"] == "60/60"
    assert candidates[1]["region"] is None


def test_project_rows_rejects_mapping_outside_header():
    parsed = parse_csv("code,destination\n44,UK\n")
    with pytest.raises(ValidationError, match="missing from the header"):
        project_rows(parsed, ColumnMapping(code=0, destination=1, region=5))


def test_chunk_sizes():
    assert [len(part) for part in chunk(list(range(2500)), 1000)] == [1000, 1000, 500]
    assert list(chunk([], 10)) == []


# ---------------------------------------------------------------------------
# import_destinations
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_import_small_file_queues_one_job(db_session):
    content = _csv(["44,United Kingdom,Europe,60/60", "1,USA,North America,6/6"])

    result = await import_destinations(db_session, content, MAPPING)

    assert result.jobs_queued == 1
    assert result.total_destinations == 2
    jobs = await _jobs(db_session)
    assert len(jobs) == 1
    job = jobs[0]
    assert job.job_type == JobType.AZ_DESTINATION_IMPORT.value
    assert job.status == JobStatus.PENDING.value
    assert job.payload["mode"] == "update"
    assert job.payload["totalRecords"] == 2
    assert job.payload["destinations"][1] == {
        "code": "1",
        "destination": "USA",
        "region": "North America",
        "billingIncrement": "6/6",
    }


@pytest.mark.asyncio
async def test_import_large_file_is_chunked(db_session):
    content = _csv([f"{1000 + i},Destination {i},,60/1" for i in range(2500)])

    result = await import_destinations(db_session, content, MAPPING, chunk_size=1000)

    assert result.jobs_queued == 3
    assert result.total_destinations == 2500
    jobs = await _jobs(db_session)
    assert [j.payload["totalRecords"] for j in jobs] == [1000, 1000, 500]
    assert result.job_ids == [j.id for j in jobs]


@pytest.mark.asyncio
async def test_import_empty_file_fails_before_anything_happens(db_session):
    with pytest.raises(ValidationError, match="CSV file is empty"):
        await import_destinations(db_session, "", MAPPING)
    assert await _jobs(db_session) == []


@pytest.mark.asyncio
async def test_import_with_no_destination_rows_fails(db_session):
    with pytest.raises(ValidationError, match="no destination rows"):
        await import_destinations(db_session, _csv([",,Europe,"]), MAPPING)


@pytest.mark.asyncio
async def test_validation_failure_queues_nothing_and_deletes_nothing(db_session):
    repo = AzDestinationRepository(db_session)
    await repo.create_destination(code="49", destination="Germany")
    await db_session.commit()

    content = _csv(["44,UK,Europe,60/60", "33,,Europe,45/45", "44,UK Mobile,Europe,60/1"])
    with pytest.raises(ImportValidationError) as exc_info:
        await import_destinations(
            db_session, content, MAPPING, mode=ImportMode.REPLACE, confirm_replace=True
        )

    errors = exc_info.value.errors
    assert {(e["row"], e["column"]) for e in errors} == {
        (3, "billingIncrement"),
        (3, "destination"),
        (4, "code"),
    }
    assert await _jobs(db_session) == []
    assert await repo.count() == 1


@pytest.mark.asyncio
async def test_overlong_code_is_reported_and_nothing_deleted(db_session):
    repo = AzDestinationRepository(db_session)
    await repo.create_destination(code="49", destination="Germany")
    await db_session.commit()

    content = "code,destination\n" + "9" * 40 + ",Too Long\n44,UK\n"
    with pytest.raises(ImportValidationError) as exc_info:
        await import_destinations(
            db_session,
            content,
            ColumnMapping(code=0, destination=1),
            mode=ImportMode.REPLACE,
            confirm_replace=True,
        )

    assert exc_info.value.errors == [
        {
            "row": 2,
            "column": "code",
            "value": "9" * 40,
            "message": "Code must be at most 32 characters",
        }
    ]
    assert await _jobs(db_session) == []
    assert await repo.count() == 1


@pytest.mark.asyncio
async def test_replace_requires_confirmation(db_session):
    with pytest.raises(ValidationError, match="confirmReplace"):
        await import_destinations(db_session, _csv(["44,UK,,"]), MAPPING, mode=ImportMode.REPLACE)


@pytest.mark.asyncio
async def test_replace_deletes_existing_before_queueing(db_session):
    repo = AzDestinationRepository(db_session)
    await repo.create_destination(code="49", destination="Germany")
    await repo.create_destination(code="48", destination="Poland")
    await db_session.commit()

    result = await import_destinations(
        db_session, _csv(["44,UK,,"]), MAPPING, mode=ImportMode.REPLACE, confirm_replace=True
    )

    assert result.deleted_count == 2
    assert result.mode == ImportMode.REPLACE
    assert await repo.count() == 0
    jobs = await _jobs(db_session)
    assert len(jobs) == 1
    assert jobs[0].payload["mode"] == "update"
