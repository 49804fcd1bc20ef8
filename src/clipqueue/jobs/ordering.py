"""Priority ordering applied at enqueue time."""

from collections.abc import Sequence

from clipqueue.jobs.models import Job, JobPriority, JobStatus

PRIORITY_RANK: dict[JobPriority, int] = {
    JobPriority.HIGH: 0,
    JobPriority.MEDIUM: 1,
    JobPriority.LOW: 2,
}


def priority_rank(priority: JobPriority) -> int:
    return PRIORITY_RANK[priority]


def insertion_index(queue: Sequence[Job], priority: JobPriority) -> int:
    """Return where a new pending job of ``priority`` goes.

    The job lands in front of the first pending job with a strictly lower
    priority, and behind everything else. Processing and finished jobs keep
    their slots and never block or attract an insertion.
    """
    rank = priority_rank(priority)
    for index, job in enumerate(queue):
        if job.status == JobStatus.PENDING and priority_rank(job.priority) > rank:
            return index
    return len(queue)
