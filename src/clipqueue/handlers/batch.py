"""Built-in batch handler: runs child jobs one after another."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from clipqueue.errors import BatchJobError, HandlerConfigurationError
from clipqueue.jobs.manager import Handler, QueueManager
from clipqueue.jobs.models import Job, JobPriority, JobStatus

logger = logging.getLogger(__name__)


def make_batch_handler(manager: QueueManager, poll_interval: float = 1.0) -> Handler:
    """Create the ``batch`` executor bound to ``manager``.

    The payload is ``{"operations": [{"type": ..., "payload": ...}, ...]}``.
    Each operation is enqueued as a low-priority, single-attempt child job
    and polled until it finishes. The first failed child fails the batch
    with the child's error message; children that already completed stay in
    the queue. On success ``payload["result"]`` is ``{"results": [...]}``
    holding each child's result in order.

    Raises:
        HandlerConfigurationError: the manager cannot run a child while the
            batch itself holds a slot.
    """
    if manager.concurrency_cap < 2:
        raise HandlerConfigurationError(
            "batch jobs need a concurrency cap of at least 2 "
            f"(configured: {manager.concurrency_cap})"
        )

    async def handle_batch(job: Job) -> None:
        operations = _operations(job.payload)
        results: list[Any] = []

        for i, operation in enumerate(operations, 1):
            child_id = manager.enqueue(
                operation["type"],
                operation.get("payload"),
                priority=JobPriority.LOW,
                max_attempts=1,
            )
            logger.info("Batch %s: started step %d/%d as %s", job.id, i, len(operations), child_id)

            child = await wait_for_job(manager, child_id, poll_interval)
            if child.status != JobStatus.COMPLETED:
                raise BatchJobError(child.error or f"sub-job {child_id} failed")
            results.append(child.result)

        job.payload["result"] = {"results": results}

    return handle_batch


async def wait_for_job(manager: QueueManager, job_id: str, poll_interval: float = 1.0) -> Job:
    """Poll ``manager`` until the job is completed or failed."""
    while True:
        job = manager.status(job_id)
        if job is None:
            raise BatchJobError(f"sub-job {job_id} not found")
        if job.is_terminal:
            return job
        await asyncio.sleep(poll_interval)


def _operations(payload: Any) -> list[dict[str, Any]]:
    operations = payload.get("operations") if isinstance(payload, dict) else None
    if not isinstance(operations, list):
        raise BatchJobError("batch payload needs an 'operations' list")
    for operation in operations:
        if not isinstance(operation, dict) or "type" not in operation:
            raise BatchJobError(f"invalid batch operation: {operation!r}")
    return operations
