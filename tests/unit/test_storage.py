"""Tests for snapshot storage backends."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from clipqueue.errors import StorageError
from clipqueue.jobs.models import Job, JobPriority, JobStatus
from clipqueue.jobs.storage import (
    FileStorage,
    MemoryStorage,
    SnapshotStore,
    dump_snapshot,
    parse_snapshot,
)


class BrokenStorage(MemoryStorage):
    def get_item(self, key: str) -> str | None:
        raise StorageError("disk on fire")

    def set_item(self, key: str, value: str) -> None:
        raise StorageError("disk on fire")


def _finished_job() -> Job:
    return Job(
        id="queue_1_abc",
        type="echo",
        payload={"input": 41, "result": 42},
        priority=JobPriority.HIGH,
        status=JobStatus.COMPLETED,
        created_at=1_000,
        started_at=2_000,
        completed_at=3_000,
        attempts=1,
        max_attempts=3,
    )


class TestSerialization:
    def test_camel_case_keys_and_none_omitted(self) -> None:
        data = json.loads(dump_snapshot([Job(id="j1", type="echo", created_at=5)]))
        assert data == [
            {
                "id": "j1",
                "type": "echo",
                "payload": {},
                "priority": "medium",
                "status": "pending",
                "createdAt": 5,
                "attempts": 0,
                "maxAttempts": 3,
            }
        ]

    def test_parse_restores_fields(self) -> None:
        job = _finished_job()
        restored = parse_snapshot(dump_snapshot([job]))[0]
        assert restored.status == JobStatus.COMPLETED
        assert restored.priority == JobPriority.HIGH
        assert restored.payload == {"input": 41, "result": 42}
        assert (restored.created_at, restored.started_at, restored.completed_at) == (1_000, 2_000, 3_000)

    def test_unknown_fields_are_preserved(self) -> None:
        blob = json.dumps([{"id": "j1", "type": "echo", "createdAt": 1, "progress": 65}])
        job = parse_snapshot(blob)[0]
        assert job.extra == {"progress": 65}
        assert json.loads(dump_snapshot([job]))[0]["progress"] == 65


class TestFileStorage:
    def test_missing_key(self, tmp_path: Path) -> None:
        assert FileStorage(tmp_path).get_item("video_queue") is None

    def test_set_get_remove(self, tmp_path: Path) -> None:
        storage = FileStorage(tmp_path / "nested")
        storage.set_item("video_queue", "[]")
        assert (tmp_path / "nested" / "video_queue.json").read_text() == "[]"
        assert storage.get_item("video_queue") == "[]"
        storage.remove_item("video_queue")
        assert storage.get_item("video_queue") is None

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        storage = FileStorage(tmp_path)
        storage.set_item("video_queue", "[1]")
        storage.set_item("video_queue", "[2]")
        assert [p.name for p in tmp_path.iterdir()] == ["video_queue.json"]

    def test_undecodable_file_raises_storage_error(self, tmp_path: Path) -> None:
        (tmp_path / "video_queue.json").write_bytes(b"\xff\xfe[garbage")
        with pytest.raises(StorageError):
            FileStorage(tmp_path).get_item("video_queue")


class TestSnapshotStore:
    def test_round_trip(self) -> None:
        store = SnapshotStore(MemoryStorage())
        assert store.save([_finished_job()])
        assert store.load()[0].id == "queue_1_abc"

    def test_uses_configured_key(self) -> None:
        storage = MemoryStorage()
        SnapshotStore(storage, key="other").save([])
        assert storage.get_item("other") == "[]"
        assert storage.get_item("video_queue") is None

    def test_empty_storage(self) -> None:
        assert SnapshotStore(MemoryStorage()).load() == []

    def test_corrupt_blob_starts_empty(self, caplog: pytest.LogCaptureFixture) -> None:
        store = SnapshotStore(MemoryStorage({"video_queue": "{not json"}))
        with caplog.at_level(logging.WARNING):
            assert store.load() == []
        assert "corrupt" in caplog.text

    def test_undecodable_file_starts_empty(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        (tmp_path / "video_queue.json").write_bytes(b"\xff\xfe[garbage")
        store = SnapshotStore(FileStorage(tmp_path))
        with caplog.at_level(logging.WARNING):
            assert store.load() == []
        assert "starting empty" in caplog.text

    def test_invalid_status_counts_as_corrupt(self) -> None:
        blob = json.dumps([{"id": "j1", "type": "echo", "status": "exploded"}])
        assert SnapshotStore(MemoryStorage({"video_queue": blob})).load() == []

    def test_unavailable_storage(self, caplog: pytest.LogCaptureFixture) -> None:
        store = SnapshotStore(None)
        with caplog.at_level(logging.WARNING):
            assert store.load() == []
        assert not store.available
        assert store.save([_finished_job()]) is False
        assert "unavailable" in caplog.text

    def test_storage_errors_are_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        store = SnapshotStore(BrokenStorage())
        with caplog.at_level(logging.WARNING):
            assert store.load() == []
            assert store.save([_finished_job()]) is False
        assert "Failed to save" in caplog.text

    def test_unserializable_payload_is_logged(self) -> None:
        store = SnapshotStore(MemoryStorage())
        assert store.save([Job(id="j1", type="echo", payload={"fn": object()})]) is False
