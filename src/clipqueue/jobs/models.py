"""Job domain models."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    """Status of a job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class JobPriority(str, Enum):
    """Scheduling priority. HIGH is served first."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class JobType(str, Enum):
    """Canonical job types. The registry accepts any other tag as well."""

    VIDEO_GENERATION = "video-generation"
    STORY_ENHANCEMENT = "story-enhancement"
    BATCH = "batch"


def job_type_tag(job_type: str | JobType) -> str:
    """Normalize a type tag to its plain string form."""
    if isinstance(job_type, JobType):
        return job_type.value
    return str(job_type)


def new_job_id(now_ms: int) -> str:
    return f"queue_{now_ms}_{uuid4().hex[:9]}"


@dataclass
class Job:
    """One unit of work tracked by the queue.

    ``payload`` is opaque to the queue. Handlers conventionally write their
    output to ``payload["result"]``. Fields read from a persisted snapshot
    that this version does not know about are kept in ``extra`` and written
    back unchanged.
    """

    id: str
    type: str
    payload: Any = field(default_factory=dict)
    priority: JobPriority = JobPriority.MEDIUM
    status: JobStatus = JobStatus.PENDING
    created_at: int = 0
    started_at: int | None = None
    completed_at: int | None = None
    attempts: int = 0
    max_attempts: int = 3
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def processing_time(self) -> float | None:
        """Seconds between start and completion, if both are known."""
        if self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at) / 1000

    @property
    def result(self) -> Any:
        if isinstance(self.payload, dict):
            return self.payload.get("result")
        return None

    def copy(self) -> Job:
        """Shallow copy; the payload object is shared."""
        return dataclasses.replace(self, extra=dict(self.extra))


class QueueStats(BaseModel):
    """Aggregate counts and timings over the current snapshot."""

    total: int = Field(0, description="Number of tracked jobs")
    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    average_processing_time: float = Field(
        0.0, description="Mean seconds from start to completion of completed jobs"
    )
    success_rate: float = Field(
        100.0, description="completed / (completed + failed) in percent"
    )
