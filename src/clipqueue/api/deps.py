"""FastAPI dependencies."""

from __future__ import annotations

from clipqueue.jobs.instance import get_queue_manager
from clipqueue.jobs.manager import QueueManager


def get_manager() -> QueueManager:
    """Dependency that provides the shared QueueManager instance."""
    return get_queue_manager()
