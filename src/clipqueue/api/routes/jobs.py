"""Job endpoints: enqueue, inspect and cancel."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from clipqueue.api.deps import get_manager
from clipqueue.api.schemas import CancelResponse, EnqueueRequest, JobCreateResponse, JobResponse
from clipqueue.errors import InvalidJobError
from clipqueue.jobs.manager import QueueManager
from clipqueue.jobs.models import JobStatus

router = APIRouter(prefix="/api/v1/jobs", tags=["jobs"])


@router.post("", response_model=JobCreateResponse, status_code=202)
async def create_job(
    req: EnqueueRequest,
    mgr: QueueManager = Depends(get_manager),
) -> JobCreateResponse:
    try:
        job_id = mgr.enqueue(req.type, req.payload, req.priority, req.max_attempts)
    except InvalidJobError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    job = mgr.status(job_id)
    return JobCreateResponse(job_id=job_id, status=job.status.value, type=job.type)


@router.get("", response_model=list[JobResponse])
async def list_jobs(
    status: JobStatus | None = None,
    type: str | None = None,
    mgr: QueueManager = Depends(get_manager),
) -> list[JobResponse]:
    return [JobResponse.from_job(j) for j in mgr.list_jobs(status=status, job_type=type)]


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: str,
    mgr: QueueManager = Depends(get_manager),
) -> JobResponse:
    job = mgr.status(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobResponse.from_job(job)


@router.delete("/{job_id}", response_model=CancelResponse)
async def cancel_job(
    job_id: str,
    mgr: QueueManager = Depends(get_manager),
) -> CancelResponse:
    if not mgr.cancel(job_id):
        raise HTTPException(status_code=404, detail="Job not found")
    return CancelResponse(job_id=job_id, cancelled=True)
