"""Queue-wide endpoints: stats, pause/resume, cleanup."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from clipqueue.api.deps import get_manager
from clipqueue.api.schemas import CleanupResponse, QueueStateResponse
from clipqueue.jobs.manager import QueueManager
from clipqueue.jobs.models import QueueStats

router = APIRouter(prefix="/api/v1/queue", tags=["queue"])


def _state(mgr: QueueManager) -> QueueStateResponse:
    return QueueStateResponse(running=mgr.running, in_flight=sorted(mgr.in_flight))


@router.get("/stats", response_model=QueueStats)
async def get_stats(mgr: QueueManager = Depends(get_manager)) -> QueueStats:
    return mgr.stats()


@router.get("/state", response_model=QueueStateResponse)
async def get_state(mgr: QueueManager = Depends(get_manager)) -> QueueStateResponse:
    return _state(mgr)


@router.post("/pause", response_model=QueueStateResponse)
async def pause_queue(mgr: QueueManager = Depends(get_manager)) -> QueueStateResponse:
    mgr.pause()
    return _state(mgr)


@router.post("/resume", response_model=QueueStateResponse)
async def resume_queue(mgr: QueueManager = Depends(get_manager)) -> QueueStateResponse:
    mgr.resume()
    return _state(mgr)


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup(
    older_than_ms: int | None = Query(None, ge=0),
    mgr: QueueManager = Depends(get_manager),
) -> CleanupResponse:
    return CleanupResponse(removed=mgr.clear_old_jobs(older_than_ms))
