"""Durable storage for the queue snapshot.

The queue keeps its whole state as one serialized blob under a fixed key in
a small key/value store, mirroring the shape of browser ``localStorage``.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticSerializationError

from clipqueue.errors import StorageError
from clipqueue.jobs.models import Job, JobPriority, JobStatus

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "video_queue"


class KeyValueStorage(Protocol):
    """Interface for string key/value persistence."""

    def get_item(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    def remove_item(self, key: str) -> None:
        """Delete ``key`` if present."""
        ...


class MemoryStorage:
    """Process-local storage. Useful for tests and ephemeral queues."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage:
    """One JSON file per key inside ``directory``.

    Writes go to a temporary file in the same directory and are moved into
    place, so a crash mid-write leaves the previous snapshot intact.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Cannot read {path}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write {path}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot remove {self._path(key)}: {e}") from e


class StoredJob(BaseModel):
    """Wire form of a Job inside the persisted snapshot."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    id: str
    type: str
    payload: Any = None
    priority: JobPriority = JobPriority.MEDIUM
    status: JobStatus = JobStatus.PENDING
    created_at: int = 0
    started_at: int | None = None
    completed_at: int | None = None
    attempts: int = 0
    max_attempts: int = 3
    error: str | None = None

    @classmethod
    def from_job(cls, job: Job) -> StoredJob:
        return cls(
            **job.extra,
            id=job.id,
            type=job.type,
            payload=job.payload,
            priority=job.priority,
            status=job.status,
            created_at=job.created_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
            attempts=job.attempts,
            max_attempts=job.max_attempts,
            error=job.error,
        )

    def to_job(self) -> Job:
        return Job(
            id=self.id,
            type=self.type,
            payload=self.payload,
            priority=self.priority,
            status=self.status,
            created_at=self.created_at,
            started_at=self.started_at,
            completed_at=self.completed_at,
            attempts=self.attempts,
            max_attempts=self.max_attempts,
            error=self.error,
            extra=dict(self.model_extra or {}),
        )


_SNAPSHOT = TypeAdapter(list[StoredJob])


def dump_snapshot(jobs: Iterable[Job]) -> str:
    """Serialize jobs, in order, to the persisted JSON form."""
    records = [StoredJob.from_job(job) for job in jobs]
    return _SNAPSHOT.dump_json(records, by_alias=True, exclude_none=True).decode("utf-8")


def parse_snapshot(blob: str | bytes) -> list[Job]:
    """Parse a persisted snapshot. Raises ValidationError on a corrupt blob."""
    return [record.to_job() for record in _SNAPSHOT.validate_json(blob)]


class SnapshotStore:
    """Reads and writes the queue snapshot under a single key.

    A ``None`` storage means durable storage is unavailable: the queue still
    works, but only in memory for the lifetime of the process.
    """

    def __init__(
        self,
        storage: KeyValueStorage | None,
        key: str = DEFAULT_STORAGE_KEY,
    ) -> None:
        self.storage = storage
        self.key = key

    @property
    def available(self) -> bool:
        return self.storage is not None

    def load(self) -> list[Job]:
        """Load the stored snapshot; an empty list when missing or unusable."""
        if self.storage is None:
            logger.warning("Durable storage unavailable; queue '%s' is memory-only", self.key)
            return []
        try:
            blob = self.storage.get_item(self.key)
        except StorageError:
            logger.warning("Failed to read queue snapshot '%s'; starting empty", self.key, exc_info=True)
            return []
        if not blob:
            return []
        try:
            return parse_snapshot(blob)
        except ValidationError as e:
            logger.warning(
                "Discarding corrupt queue snapshot '%s' (%d errors); starting empty",
                self.key,
                e.error_count(),
            )
            return []

    def save(self, jobs: Iterable[Job]) -> bool:
        """Persist the snapshot. Failures are logged, never raised."""
        if self.storage is None:
            return False
        try:
            self.storage.set_item(self.key, dump_snapshot(jobs))
        except (StorageError, PydanticSerializationError):
            logger.exception("Failed to save queue snapshot '%s'", self.key)
            return False
        return True
