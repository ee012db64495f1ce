"""Pydantic models for Job entities and job-queue commands."""

from datetime import datetime
from typing import Any

from pydantic import Field

from ratedeck.models.common import CamelModel
from ratedeck.models.enums import JobStatus, JobType


class Job(CamelModel):
    id: int
    job_type: JobType
    payload: dict[str, Any]
    status: JobStatus
    attempts: int
    max_attempts: int
    priority: int = 0
    run_at: datetime | None = None
    timeout_ms: int | None = None
    created_at: datetime
    updated_at: datetime | None = None
    locked_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    error: str | None = None
    tags: list[str] = Field(default_factory=list)


class JobList(CamelModel):
    jobs: list[Job]
    labels: dict[str, str]
    categories: dict[str, list[str]]


class JobStats(CamelModel):
    pending: int
    processing: int
    completed: int
    failed: int
    cancelled: int
    success_rate: float


class WorkerStatus(CamelModel):
    running: bool
    stopping: bool = False


class CleanupRequest(CamelModel):
    older_than_days: int = Field(30, ge=0)


class ReclaimRequest(CamelModel):
    max_processing_minutes: int | None = Field(None, ge=1)


class EnqueueJobRequest(CamelModel):
    job_type: JobType
    payload: dict[str, Any] = Field(default_factory=dict)
    priority: int = 0
    max_attempts: int | None = Field(None, ge=1)


class EnqueueJobResponse(CamelModel):
    success: bool = True
    job_id: int
    message: str
