"""Queue manager: ordered snapshot, scheduler, retry policy and GC."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from clipqueue.errors import HandlerConfigurationError, InvalidJobError, UnknownJobTypeError
from clipqueue.jobs.models import (
    Job,
    JobPriority,
    JobStatus,
    JobType,
    QueueStats,
    job_type_tag,
    new_job_id,
)
from clipqueue.jobs.observers import JobCallback, ObserverBus, StatsCallback, Unsubscribe
from clipqueue.jobs.ordering import insertion_index
from clipqueue.jobs.stats import compute_stats
from clipqueue.jobs.storage import FileStorage, MemoryStorage, SnapshotStore

if TYPE_CHECKING:
    from clipqueue.config import Settings

logger = logging.getLogger(__name__)

Handler = Callable[[Job], Awaitable[Any]]
Clock = Callable[[], int]

DEFAULT_RETENTION_MS = 24 * 60 * 60 * 1000
UNKNOWN_JOB_TYPE = "unknown job type"
BUDGET_EXHAUSTED = "attempt budget exhausted"


def system_clock() -> int:
    """Wall-clock time in milliseconds."""
    return int(time.time() * 1000)


class QueueManager:
    """Persistent priority queue with a cooperative, capped scheduler.

    All state lives in one ordered list of Job records. Every transition is
    written to the snapshot store before observers hear about it. Handlers
    run as asyncio tasks on the loop that calls :meth:`tick`; everything
    else is synchronous and needs no locking.

    Loading re-queues jobs left ``processing`` by an earlier session. Pass
    ``recover=False`` to edit a snapshot that a running service still owns.
    """

    def __init__(
        self,
        store: SnapshotStore | None = None,
        *,
        concurrency_cap: int = 1,
        tick_interval: float = 5.0,
        gc_interval: float = 3600.0,
        retention_ms: int = DEFAULT_RETENTION_MS,
        default_max_attempts: int = 3,
        clock: Clock | None = None,
        recover: bool = True,
    ) -> None:
        if concurrency_cap < 1:
            raise ValueError("concurrency_cap must be >= 1")
        self._store = store if store is not None else SnapshotStore(MemoryStorage())
        self._concurrency_cap = concurrency_cap
        self._tick_interval = tick_interval
        self._gc_interval = gc_interval
        self._retention_ms = retention_ms
        self._default_max_attempts = default_max_attempts
        self._clock = clock or system_clock

        self._queue: list[Job] = []
        self._handlers: dict[str, Handler] = {}
        self._observers = ObserverBus()
        self._in_flight: set[str] = set()
        self._tasks: set[asyncio.Task[None]] = set()
        self._running = True
        self._ticker: asyncio.Task[None] | None = None
        self._collector: asyncio.Task[None] | None = None

        self._load(recover)

    @classmethod
    def from_settings(
        cls, settings: Settings, *, clock: Clock | None = None, recover: bool = True
    ) -> QueueManager:
        """Build a manager backed by the configured file store."""
        storage = FileStorage(settings.storage_dir) if settings.storage_dir is not None else None
        return cls(
            SnapshotStore(storage, settings.storage_key),
            concurrency_cap=settings.concurrency_cap,
            tick_interval=settings.tick_interval,
            gc_interval=settings.gc_interval,
            retention_ms=settings.retention_ms,
            default_max_attempts=settings.default_max_attempts,
            clock=clock,
            recover=recover,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    @property
    def concurrency_cap(self) -> int:
        return self._concurrency_cap

    @property
    def started(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    @property
    def registered_types(self) -> list[str]:
        return sorted(self._handlers)

    def now(self) -> int:
        return self._clock()

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    def register_handler(self, job_type: str | JobType, handler: Handler) -> None:
        """Register (or replace) the executor for a job type.

        Jobs already running keep the handler they were started with.
        """
        if not callable(handler):
            raise HandlerConfigurationError(f"Handler for {job_type!r} is not callable")
        tag = job_type_tag(job_type)
        if tag in self._handlers:
            logger.info("Replacing handler for job type %s", tag)
        self._handlers[tag] = handler

    def enqueue(
        self,
        job_type: str | JobType,
        payload: Any = None,
        priority: JobPriority | str = JobPriority.MEDIUM,
        max_attempts: int | None = None,
    ) -> str:
        """Add a job and return its id.

        Raises:
            UnknownJobTypeError: no handler is registered for ``job_type``.
            InvalidJobError: bad priority or ``max_attempts`` < 1.
        """
        tag = job_type_tag(job_type)
        if tag not in self._handlers:
            raise UnknownJobTypeError(f"{UNKNOWN_JOB_TYPE}: {tag}")
        try:
            priority = JobPriority(priority)
        except ValueError:
            raise InvalidJobError(f"Invalid priority: {priority!r}") from None
        if max_attempts is None:
            max_attempts = self._default_max_attempts
        if isinstance(max_attempts, bool) or not isinstance(max_attempts, int) or max_attempts < 1:
            raise InvalidJobError(f"max_attempts must be a positive integer, got {max_attempts!r}")

        now = self._clock()
        job = Job(
            id=new_job_id(now),
            type=tag,
            payload=payload if payload is not None else {},
            priority=priority,
            created_at=now,
            max_attempts=max_attempts,
        )
        self._queue.insert(insertion_index(self._queue, priority), job)
        self._commit()
        logger.info("Added %s job %s (priority=%s)", tag, job.id, priority.value)

        self._schedule_tick()
        return job.id

    def cancel(self, job_id: str) -> bool:
        """Remove a job whatever its status.

        A handler already running for it is not interrupted; its outcome is
        discarded when it resolves.
        """
        index = self._index(job_id)
        if index is None:
            return False
        job = self._queue.pop(index)
        self._in_flight.discard(job_id)
        self._observers.drop_job(job_id)
        self._commit()
        logger.info("Cancelled %s job %s (was %s)", job.type, job_id, job.status.value)
        return True

    def status(self, job_id: str) -> Job | None:
        index = self._index(job_id)
        return self._queue[index] if index is not None else None

    def list_jobs(
        self,
        status: JobStatus | str | None = None,
        job_type: str | JobType | None = None,
    ) -> list[Job]:
        """Return jobs in queue order, optionally filtered by status and type."""
        wanted_status = JobStatus(status) if status is not None else None
        wanted_type = job_type_tag(job_type) if job_type is not None else None
        return [
            job
            for job in self._queue
            if (wanted_status is None or job.status == wanted_status)
            and (wanted_type is None or job.type == wanted_type)
        ]

    def pending_jobs(self) -> list[Job]:
        return self.list_jobs(status=JobStatus.PENDING)

    def stats(self) -> QueueStats:
        return compute_stats(self._queue)

    def subscribe_job(self, job_id: str, callback: JobCallback) -> Unsubscribe:
        return self._observers.subscribe_job(job_id, callback)

    def subscribe_stats(self, callback: StatsCallback) -> Unsubscribe:
        return self._observers.subscribe_stats(callback)

    def pause(self) -> None:
        """Stop promoting jobs. Running handlers are unaffected."""
        self._running = False
        logger.info("Queue processing paused")

    def resume(self) -> None:
        """Allow promotions again and tick right away when a loop is running."""
        self._running = True
        logger.info("Queue processing resumed")
        if _running_loop() is not None:
            self.tick()

    def clear_old_jobs(self, older_than_ms: int | None = None) -> int:
        """Drop finished jobs created before ``now - older_than_ms``.

        Pending and processing jobs are kept regardless of age.
        """
        if older_than_ms is None:
            older_than_ms = self._retention_ms
        cutoff = self._clock() - older_than_ms

        kept: list[Job] = []
        for job in self._queue:
            if job.is_terminal and job.created_at < cutoff:
                self._observers.drop_job(job.id)
            else:
                kept.append(job)

        removed = len(self._queue) - len(kept)
        if removed:
            self._queue = kept
            self._commit()
            logger.info("Cleared %d old jobs", removed)
        return removed

    # ------------------------------------------------------------------
    # Scheduler
    # ------------------------------------------------------------------

    def tick(self) -> list[str]:
        """Promote pending jobs into free concurrency slots.

        Must be called from a running event loop, since promoted handlers are
        started as tasks. Returns the ids promoted by this tick.
        """
        if not self._running or len(self._in_flight) >= self._concurrency_cap:
            return []
        pending = [j for j in self._queue if j.status == JobStatus.PENDING]
        if not pending:
            return []
        loop = asyncio.get_running_loop()

        promoted: list[str] = []
        for job in pending:
            if len(self._in_flight) >= self._concurrency_cap:
                break
            if job.attempts >= job.max_attempts:
                # Recovered from a session that had already used the last attempt.
                self._mark_failed(job, BUDGET_EXHAUSTED)
                continue
            self._promote(job, loop)
            promoted.append(job.id)
        return promoted

    def start(self) -> None:
        """Start the periodic tick and GC tasks on the running loop."""
        loop = asyncio.get_running_loop()
        if self._ticker is None or self._ticker.done():
            self._ticker = loop.create_task(
                self._periodic(self._tick_interval, self.tick), name="clipqueue:tick"
            )
        if self._collector is None or self._collector.done():
            self._collector = loop.create_task(
                self._periodic(self._gc_interval, self.clear_old_jobs), name="clipqueue:gc"
            )
        self.tick()

    async def stop(self) -> None:
        """Cancel the periodic tasks and any running handlers.

        Interrupted jobs go back to ``pending`` with their attempts kept, so
        a later :meth:`start` picks them up again.
        """
        tasks = [t for t in (self._ticker, self._collector) if t is not None]
        tasks.extend(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._ticker = None
        self._collector = None

        self._in_flight.clear()
        requeued = self._requeue_interrupted()
        if requeued:
            logger.info("Re-queued %d jobs interrupted by stop", requeued)
            self._commit()

    async def drain(self, timeout: float | None = None, poll_interval: float = 0.01) -> None:
        """Tick until nothing is running and nothing can be promoted.

        Returns early with jobs still pending when the queue is paused.
        """

        async def _settle() -> None:
            while True:
                self.tick()
                if not self._tasks:
                    return
                await asyncio.wait(
                    set(self._tasks),
                    timeout=poll_interval,
                    return_when=asyncio.FIRST_COMPLETED,
                )

        await asyncio.wait_for(_settle(), timeout)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _promote(self, job: Job, loop: asyncio.AbstractEventLoop) -> None:
        handler = self._handlers.get(job.type)
        job.status = JobStatus.PROCESSING
        job.started_at = self._clock()
        job.attempts += 1
        self._in_flight.add(job.id)
        self._commit(job)
        logger.info(
            "Processing %s job %s (attempt %d/%d)", job.type, job.id, job.attempts, job.max_attempts
        )

        task = loop.create_task(self._run(job, handler), name=f"clipqueue:{job.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, job: Job, handler: Handler | None) -> None:
        if handler is None:
            if self._is_current(job):
                self._mark_failed(job, UNKNOWN_JOB_TYPE)
            return
        try:
            await handler(job)
        except Exception as e:
            if self._is_current(job):
                self._on_failure(job, e)
        else:
            if self._is_current(job):
                self._on_success(job)

    def _on_success(self, job: Job) -> None:
        job.status = JobStatus.COMPLETED
        job.completed_at = self._clock()
        job.error = None
        self._in_flight.discard(job.id)
        self._commit(job)
        logger.info("Completed %s job %s in %.2fs", job.type, job.id, job.processing_time or 0.0)

    def _on_failure(self, job: Job, error: Exception) -> None:
        message = str(error) or type(error).__name__
        if job.attempts < job.max_attempts:
            job.status = JobStatus.PENDING
            job.started_at = None
            self._in_flight.discard(job.id)
            self._commit(job)
            logger.warning(
                "Retrying %s job %s after failure (attempt %d/%d): %s",
                job.type,
                job.id,
                job.attempts,
                job.max_attempts,
                message,
            )
        else:
            self._mark_failed(job, message, exc_info=error)

    def _mark_failed(
        self, job: Job, message: str, exc_info: BaseException | None = None
    ) -> None:
        job.status = JobStatus.FAILED
        job.completed_at = self._clock()
        job.error = message
        self._in_flight.discard(job.id)
        self._commit(job)
        logger.error("Failed %s job %s: %s", job.type, job.id, message, exc_info=exc_info)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, recover: bool) -> None:
        self._queue = self._store.load()
        if not recover:
            return
        recovered = self._requeue_interrupted()
        if recovered:
            logger.info("Re-queued %d jobs interrupted by the previous session", recovered)
            self._store.save(self._queue)

    def _requeue_interrupted(self) -> int:
        count = 0
        for job in self._queue:
            if job.status == JobStatus.PROCESSING:
                job.status = JobStatus.PENDING
                job.started_at = None
                count += 1
        return count

    def _commit(self, job: Job | None = None) -> None:
        """Persist the snapshot, then notify observers."""
        self._store.save(self._queue)
        if job is not None:
            self._observers.notify_job(job)
        self._observers.notify_stats(self.stats())

    def _schedule_tick(self) -> None:
        loop = _running_loop()
        if loop is not None:
            loop.call_soon(self.tick)

    def _index(self, job_id: str) -> int | None:
        for index, job in enumerate(self._queue):
            if job.id == job_id:
                return index
        return None

    def _is_current(self, job: Job) -> bool:
        if any(j is job for j in self._queue):
            return True
        logger.info("Discarding outcome of cancelled %s job %s", job.type, job.id)
        return False

    async def _periodic(self, interval: float, action: Callable[[], object]) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                action()
            except Exception:
                logger.exception("Periodic %s failed", getattr(action, "__name__", action))


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
