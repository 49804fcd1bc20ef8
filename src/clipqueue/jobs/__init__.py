"""Job queue core for clipqueue."""

from clipqueue.jobs.manager import QueueManager
from clipqueue.jobs.models import Job, JobPriority, JobStatus, JobType, QueueStats
from clipqueue.jobs.storage import FileStorage, MemoryStorage, SnapshotStore
from clipqueue.jobs.instance import get_queue_manager

__all__ = [
    "FileStorage",
    "Job",
    "JobPriority",
    "JobStatus",
    "JobType",
    "MemoryStorage",
    "QueueManager",
    "QueueStats",
    "SnapshotStore",
    "get_queue_manager",
]
