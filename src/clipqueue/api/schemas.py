"""Request and response schemas for the clipqueue API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from clipqueue.jobs.models import Job, JobPriority, JobStatus


# ------------------------------------------------------------------
# Requests
# ------------------------------------------------------------------


class EnqueueRequest(BaseModel):
    type: str = Field(..., description="Registered job type, e.g. video-generation")
    payload: dict[str, Any] = Field(default_factory=dict, description="Handler configuration")
    priority: JobPriority = Field(JobPriority.MEDIUM, description="high / medium / low")
    max_attempts: int | None = Field(None, ge=1, description="Attempt cap (default from settings)")


# ------------------------------------------------------------------
# Responses
# ------------------------------------------------------------------


class JobCreateResponse(BaseModel):
    job_id: str
    status: str
    type: str


class JobResponse(BaseModel):
    job_id: str
    type: str
    status: JobStatus
    priority: JobPriority
    payload: Any = None
    attempts: int = 0
    max_attempts: int = 3
    error: str | None = None
    created_at: int
    started_at: int | None = None
    completed_at: int | None = None

    @classmethod
    def from_job(cls, job: Job) -> JobResponse:
        return cls(
            job_id=job.id,
            type=job.type,
            status=job.status,
            priority=job.priority,
            payload=job.payload,
            attempts=job.attempts,
            max_attempts=job.max_attempts,
            error=job.error,
            created_at=job.created_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
        )


class CancelResponse(BaseModel):
    job_id: str
    cancelled: bool


class QueueStateResponse(BaseModel):
    running: bool
    in_flight: list[str] = Field(default_factory=list)


class CleanupResponse(BaseModel):
    removed: int
