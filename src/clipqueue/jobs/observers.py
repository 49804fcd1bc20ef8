"""Observer registries for job transitions and statistics."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from clipqueue.jobs.models import Job, QueueStats

logger = logging.getLogger(__name__)

JobCallback = Callable[[Job], Any]
StatsCallback = Callable[[QueueStats], Any]
Unsubscribe = Callable[[], None]


class ObserverBus:
    """Fan-out of job and stats notifications.

    Callbacks run synchronously in registration order. A callback that
    raises is logged and skipped; the remaining callbacks still run.
    """

    def __init__(self) -> None:
        self._job_callbacks: dict[str, list[JobCallback]] = {}
        self._stats_callbacks: list[StatsCallback] = []

    def subscribe_job(self, job_id: str, callback: JobCallback) -> Unsubscribe:
        self._job_callbacks.setdefault(job_id, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._job_callbacks.get(job_id)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._job_callbacks[job_id]

        return unsubscribe

    def subscribe_stats(self, callback: StatsCallback) -> Unsubscribe:
        self._stats_callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._stats_callbacks:
                self._stats_callbacks.remove(callback)

        return unsubscribe

    def drop_job(self, job_id: str) -> None:
        """Forget every subscription for a job that no longer exists."""
        self._job_callbacks.pop(job_id, None)

    def notify_job(self, job: Job) -> None:
        callbacks = self._job_callbacks.get(job.id)
        if not callbacks:
            return
        snapshot = job.copy()
        for callback in list(callbacks):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Job observer failed for %s", job.id)

    def notify_stats(self, stats: QueueStats) -> None:
        for callback in list(self._stats_callbacks):
            try:
                callback(stats)
            except Exception:
                logger.exception("Stats observer failed")
