"""clipqueue command-line interface.

Usage:
    clipqueue serve
    clipqueue list [--status pending] [--type batch]
    clipqueue stats
    clipqueue cancel <job_id>
    clipqueue clear-old [--older-than-ms 86400000]

Every command except ``serve`` works directly on the persisted snapshot
configured by ``CLIPQUEUE_STORAGE_DIR`` / ``CLIPQUEUE_STORAGE_KEY``. They never
re-queue ``processing`` jobs, but a running service keeps its own copy of
the queue and overwrites the snapshot on its next change. Use the HTTP API
(``DELETE /api/v1/jobs/{id}``, ``POST /api/v1/queue/cleanup``) while it runs.
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone

from clipqueue.config import Settings, settings
from clipqueue.jobs.manager import QueueManager
from clipqueue.jobs.models import Job, JobStatus
from clipqueue.jobs.stats import compute_stats
from clipqueue.jobs.storage import FileStorage, SnapshotStore


def _store(cfg: Settings) -> SnapshotStore:
    storage = FileStorage(cfg.storage_dir) if cfg.storage_dir is not None else None
    return SnapshotStore(storage, cfg.storage_key)


def _fmt_ms(ms: int | None) -> str:
    if ms is None:
        return "-"
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _format_job(job: Job) -> str:
    line = (
        f"{job.id:>28} | {job.type:<18} | {job.status.value:<10} | {job.priority.value:<6} "
        f"| attempts={job.attempts}/{job.max_attempts} | created={_fmt_ms(job.created_at)}"
    )
    if job.error:
        line += f" | error={job.error}"
    return line


def cmd_list(args: argparse.Namespace, cfg: Settings) -> int:
    jobs = _store(cfg).load()
    if args.status:
        jobs = [j for j in jobs if j.status == JobStatus(args.status)]
    if args.type:
        jobs = [j for j in jobs if j.type == args.type]

    if not jobs:
        print("No jobs.")
        return 0
    for job in jobs:
        print(_format_job(job))
    return 0


def cmd_stats(args: argparse.Namespace, cfg: Settings) -> int:
    stats = compute_stats(_store(cfg).load())
    print(json.dumps(stats.model_dump(), indent=2))
    return 0


def cmd_cancel(args: argparse.Namespace, cfg: Settings) -> int:
    manager = QueueManager.from_settings(cfg, recover=False)
    if not manager.cancel(args.job_id):
        print(f"Error: job {args.job_id} not found.", file=sys.stderr)
        return 1
    print(f"Cancelled {args.job_id}.")
    return 0


def cmd_clear_old(args: argparse.Namespace, cfg: Settings) -> int:
    manager = QueueManager.from_settings(cfg, recover=False)
    removed = manager.clear_old_jobs(args.older_than_ms)
    print(f"Removed {removed} finished job(s).")
    return 0


def cmd_serve(args: argparse.Namespace, cfg: Settings) -> int:
    from clipqueue.main import main as serve

    serve()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clipqueue",
        description="clipqueue - content-generation job queue",
    )
    subparsers = parser.add_subparsers(dest="command", help="available commands")

    subparsers.add_parser("serve", help="run the HTTP service with the scheduler")

    p_list = subparsers.add_parser("list", help="list jobs in queue order")
    p_list.add_argument("--status", choices=[s.value for s in JobStatus], help="filter by status")
    p_list.add_argument("--type", type=str, help="filter by job type")

    subparsers.add_parser("stats", help="print queue statistics as JSON")

    p_cancel = subparsers.add_parser("cancel", help="remove a job from the queue")
    p_cancel.add_argument("job_id", type=str, help="job id")

    p_clear = subparsers.add_parser("clear-old", help="drop finished jobs past the retention window")
    p_clear.add_argument(
        "--older-than-ms", type=int, default=None,
        help="retention window in ms (default: CLIPQUEUE_RETENTION_MS)",
    )
    return parser


_COMMANDS = {
    "serve": cmd_serve,
    "list": cmd_list,
    "stats": cmd_stats,
    "cancel": cmd_cancel,
    "clear-old": cmd_clear_old,
}


def main(argv: list[str] | None = None, cfg: Settings | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    cfg = cfg or settings
    logging.basicConfig(level=cfg.log_level)
    return _COMMANDS[args.command](args, cfg)


if __name__ == "__main__":
    sys.exit(main())
