"""Process-wide queue manager."""

from __future__ import annotations

import asyncio
import logging

from clipqueue.config import settings
from clipqueue.jobs.manager import QueueManager

logger = logging.getLogger(__name__)

_queue_manager: QueueManager | None = None


def get_queue_manager() -> QueueManager:
    """Return the shared manager, creating it on first use.

    The first call loads the persisted snapshot and registers the built-in
    handlers. When called from a running event loop the scheduler is
    started as well; otherwise it starts on the first call that has one.
    """
    global _queue_manager

    if _queue_manager is None:
        from clipqueue.handlers import register_default_handlers

        _queue_manager = QueueManager.from_settings(settings)
        register_default_handlers(_queue_manager, poll_interval=settings.batch_poll_interval)
        logger.info("Queue manager initialized with %d jobs", _queue_manager.stats().total)

    if not _queue_manager.started and _has_running_loop():
        _queue_manager.start()
    return _queue_manager


def set_queue_manager(manager: QueueManager | None) -> None:
    """Install ``manager`` as the shared instance (or clear it)."""
    global _queue_manager
    _queue_manager = manager


async def reset_queue_manager() -> None:
    """Stop and discard the shared manager."""
    global _queue_manager

    if _queue_manager is not None:
        await _queue_manager.stop()
        _queue_manager = None


def _has_running_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True
