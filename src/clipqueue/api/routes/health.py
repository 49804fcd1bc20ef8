"""Liveness and scheduler state."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from clipqueue.api.deps import get_manager
from clipqueue.jobs.manager import QueueManager

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    scheduler_started: bool
    processing_enabled: bool
    pending: int
    in_flight: int
    job_types: list[str]


@router.get("/health", response_model=HealthResponse)
async def health_check(mgr: QueueManager = Depends(get_manager)) -> HealthResponse:
    """Report whether the scheduler is up and how much work it holds.

    ``status`` is ``degraded`` when the periodic scheduler is not running,
    since queued jobs then only move on enqueue or resume.
    """
    from clipqueue import __version__

    return HealthResponse(
        status="healthy" if mgr.started else "degraded",
        version=__version__,
        scheduler_started=mgr.started,
        processing_enabled=mgr.running,
        pending=len(mgr.pending_jobs()),
        in_flight=len(mgr.in_flight),
        job_types=mgr.registered_types,
    )
