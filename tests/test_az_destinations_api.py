"""Tests for the A-Z destination API.

Covers:
- CRUD, search, regions and prefix normalization
- bulk upsert and the import-job endpoint
- CSV preview, import (including 422 on validation failure) and export
"""

import pytest
from sqlalchemy import select

from ratedeck.db.models.job import JobRow
from ratedeck.repositories.az_destination_repo import AzDestinationRepository

CSV = "Code,Destination,Region,Increment\n44,United Kingdom,Europe,60/1\n1,USA,North America,6-6\n"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _seed(db_session, *rows: tuple[str, str, str | None]) -> None:
    repo = AzDestinationRepository(db_session)
    for code, destination, region in rows:
        await repo.create_destination(code=code, destination=destination, region=region)
    await db_session.commit()


async def _job_count(db_session) -> int:
    return len((await db_session.execute(select(JobRow))).scalars().all())


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_and_get_destination(client):
    r = await client.post(
        "/api/az-destinations",
        json={"code": "44", "destination": "United Kingdom", "region": "Europe", "billingIncrement": "60-1"},
    )
    assert r.status_code == 201
    data = r.json()
    assert data["id"].startswith("azd_")
    assert data["billingIncrement"] == "60/1"
    assert data["gracePeriod"] == 0
    assert data["isActive"] is True

    r = await client.get(f"/api/az-destinations/{data['id']}")
    assert r.status_code == 200
    assert r.json()["code"] == "44"


@pytest.mark.asyncio
async def test_create_rejects_invalid_increment(client):
    r = await client.post(
        "/api/az-destinations",
        json={"code": "44", "destination": "UK", "billingIncrement": "45/45"},
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_create_duplicate_code_conflicts(client, db_session):
    await _seed(db_session, ("44", "UK", None))
    r = await client.post("/api/az-destinations", json={"code": "44", "destination": "UK again"})
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_list_search_and_regions(client, db_session):
    await _seed(
        db_session,
        ("44", "United Kingdom", "Europe"),
        ("447", "United Kingdom Mobile", "Europe"),
        ("1", "USA", "North America"),
    )

    r = await client.get("/api/az-destinations")
    assert r.json()["total"] == 3
    assert [d["code"] for d in r.json()["destinations"]] == ["1", "44", "447"]

    r = await client.get("/api/az-destinations", params={"search": "mobile"})
    assert [d["code"] for d in r.json()["destinations"]] == ["447"]

    r = await client.get("/api/az-destinations", params={"search": "44"})
    assert r.json()["total"] == 2

    r = await client.get("/api/az-destinations/regions")
    assert r.json() == ["Europe", "North America"]


@pytest.mark.asyncio
async def test_normalize_uses_longest_prefix(client, db_session):
    await _seed(db_session, ("44", "United Kingdom", "Europe"), ("447", "United Kingdom Mobile", "Europe"))

    r = await client.get("/api/az-destinations/normalize/447700900123")
    assert r.json()["code"] == "447"
    r = await client.get("/api/az-destinations/normalize/442079460000")
    assert r.json()["code"] == "44"
    r = await client.get("/api/az-destinations/normalize/999")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_update_destination(client, db_session):
    await _seed(db_session, ("44", "UK", None))
    dest = (await client.get("/api/az-destinations")).json()["destinations"][0]

    r = await client.patch(
        f"/api/az-destinations/{dest['id']}",
        json={"destination": "United Kingdom", "gracePeriod": 5, "billingIncrement": "1"},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["destination"] == "United Kingdom"
    assert data["gracePeriod"] == 5
    assert data["billingIncrement"] == "1/1"

    r = await client.patch("/api/az-destinations/azd_missing", json={"destination": "x"})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_delete_destination_and_delete_all(client, db_session):
    await _seed(db_session, ("44", "UK", None), ("33", "France", None), ("49", "Germany", None))
    dest = (await client.get("/api/az-destinations")).json()["destinations"][0]

    r = await client.delete(f"/api/az-destinations/{dest['id']}")
    assert r.status_code == 200
    r = await client.get(f"/api/az-destinations/{dest['id']}")
    assert r.status_code == 404

    r = await client.delete("/api/az-destinations")
    assert r.json() == {"success": True, "count": 2}


# ---------------------------------------------------------------------------
# Bulk and jobs
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_bulk_upsert_counts(client, db_session):
    await _seed(db_session, ("44", "UK", None), ("33", "France", None))
    r = await client.post(
        "/api/az-destinations/bulk",
        json={
            "destinations": [
                {"code": "44", "destination": "UK"},
                {"code": "33", "destination": "France Fixed"},
                {"code": "49", "destination": "Germany"},
            ]
        },
    )
    assert r.status_code == 200
    assert r.json() == {"success": True, "inserted": 1, "updated": 1, "skipped": 1}


@pytest.mark.asyncio
async def test_bulk_upsert_rejects_invalid_rows(client, db_session):
    r = await client.post(
        "/api/az-destinations/bulk",
        json={"destinations": [{"code": "44", "destination": "UK", "billingIncrement": "7/7"}]},
    )
    assert r.status_code == 422
    assert r.json()["error"]["details"][0]["column"] == "billingIncrement"
    assert await AzDestinationRepository(db_session).count() == 0


@pytest.mark.asyncio
async def test_import_job_endpoint(client, db_session):
    r = await client.post(
        "/api/az-destinations/import-job",
        json={"destinations": [{"code": "44", "destination": "UK"}], "mode": "update"},
    )
    assert r.status_code == 201
    assert r.json()["success"] is True
    job = await db_session.get(JobRow, r.json()["jobId"])
    assert job.job_type == "az_destination_import"
    assert job.payload["destinations"][0]["billingIncrement"] == "60/60"


@pytest.mark.asyncio
async def test_delete_all_job_endpoint(client, db_session):
    await _seed(db_session, ("44", "UK", None))
    r = await client.post("/api/az-destinations/delete-all-job")
    assert r.status_code == 201
    job = await db_session.get(JobRow, r.json()["jobId"])
    assert job.job_type == "az_destination_delete_all"
    assert job.payload["totalRecords"] == 1


# ---------------------------------------------------------------------------
# CSV import and export
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_import_preview(client):
    r = await client.post("/api/az-destinations/import/preview", json={"content": CSV, "maxRows": 1})
    assert r.status_code == 200
    data = r.json()
    assert data["headers"] == ["Code", "Destination", "Region", "Increment"]
    assert data["rows"] == [["44", "United Kingdom", "Europe", "60/1"]]
    assert data["totalRows"] == 2
    assert data["suggestedMapping"] == {"code": 0, "destination": 1, "region": 2, "billingIncrement": 3}


@pytest.mark.asyncio
async def test_import_preview_empty_file(client):
    r = await client.post("/api/az-destinations/import/preview", json={"content": ""})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_import_queues_jobs(client, db_session):
    r = await client.post(
        "/api/az-destinations/import",
        json={"content": CSV, "mapping": {"code": 0, "destination": 1, "region": 2, "billingIncrement": 3}},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["jobsQueued"] == 1
    assert data["totalDestinations"] == 2
    assert data["mode"] == "update"
    assert await _job_count(db_session) == 1


@pytest.mark.asyncio
async def test_import_validation_failure_returns_all_errors(client, db_session):
    content = "code,destination,increment\n44,UK,60/60\n33,,99\n"
    r = await client.post(
        "/api/az-destinations/import",
        json={"content": content, "mapping": {"code": 0, "destination": 1, "billingIncrement": 2}},
    )
    assert r.status_code == 422
    errors = r.json()["error"]["details"]
    assert {(e["row"], e["column"]) for e in errors} == {(3, "billingIncrement"), (3, "destination")}
    assert await _job_count(db_session) == 0


@pytest.mark.asyncio
async def test_export_csv(client, db_session):
    await _seed(db_session, ("44", "United Kingdom", "Europe"), ("1", "USA", None))
    r = await client.get("/api/az-destinations/export/csv")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert "attachment" in r.headers["content-disposition"]
    assert r.text.splitlines() == [
        "code,destination,region,billingIncrement,gracePeriod",
        "1,USA,,60/60,0",
        "44,United Kingdom,Europe,60/60,0",
    ]
