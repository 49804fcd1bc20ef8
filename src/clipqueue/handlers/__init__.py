"""Executors for the canonical job types."""

from __future__ import annotations

import logging

from clipqueue.handlers.batch import make_batch_handler, wait_for_job
from clipqueue.handlers.story_enhancement import StoryEnhancer, make_story_enhancement_handler
from clipqueue.handlers.video_generation import VideoPipeline, make_video_generation_handler
from clipqueue.jobs.manager import QueueManager
from clipqueue.jobs.models import JobType

logger = logging.getLogger(__name__)

__all__ = [
    "StoryEnhancer",
    "VideoPipeline",
    "make_batch_handler",
    "make_story_enhancement_handler",
    "make_video_generation_handler",
    "register_default_handlers",
    "wait_for_job",
]


def register_default_handlers(
    manager: QueueManager,
    *,
    video_pipeline: VideoPipeline | None = None,
    story_enhancer: StoryEnhancer | None = None,
    poll_interval: float = 1.0,
) -> list[str]:
    """Register the canonical handlers whose collaborators are available.

    Returns:
        The job types that were registered.
    """
    registered: list[str] = []

    if manager.concurrency_cap >= 2:
        manager.register_handler(JobType.BATCH, make_batch_handler(manager, poll_interval))
        registered.append(JobType.BATCH.value)
    else:
        logger.warning("Batch jobs disabled: concurrency cap %d < 2", manager.concurrency_cap)

    if video_pipeline is not None:
        manager.register_handler(
            JobType.VIDEO_GENERATION, make_video_generation_handler(video_pipeline)
        )
        registered.append(JobType.VIDEO_GENERATION.value)

    if story_enhancer is not None:
        manager.register_handler(
            JobType.STORY_ENHANCEMENT, make_story_enhancement_handler(story_enhancer)
        )
        registered.append(JobType.STORY_ENHANCEMENT.value)

    return registered
