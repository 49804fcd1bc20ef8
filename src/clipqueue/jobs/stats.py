"""Statistics derived from a queue snapshot."""

from collections.abc import Iterable

from clipqueue.jobs.models import Job, JobStatus, QueueStats


def compute_stats(jobs: Iterable[Job]) -> QueueStats:
    """Count jobs by status and average the processing time of completed ones."""
    counts = {status: 0 for status in JobStatus}
    durations: list[float] = []
    total = 0

    for job in jobs:
        total += 1
        counts[job.status] += 1
        if job.status == JobStatus.COMPLETED and job.processing_time is not None:
            durations.append(job.processing_time)

    completed = counts[JobStatus.COMPLETED]
    failed = counts[JobStatus.FAILED]
    finished = completed + failed

    return QueueStats(
        total=total,
        pending=counts[JobStatus.PENDING],
        processing=counts[JobStatus.PROCESSING],
        completed=completed,
        failed=failed,
        average_processing_time=sum(durations) / len(durations) if durations else 0.0,
        success_rate=completed / finished * 100 if finished else 100.0,
    )
