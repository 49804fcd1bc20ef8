"""Handler for ``story-enhancement`` jobs."""

from __future__ import annotations

from typing import Any, Protocol

from clipqueue.jobs.manager import Handler
from clipqueue.jobs.models import Job

DEFAULT_TARGET_DURATION = 5


class StoryEnhancer(Protocol):
    """Interface for the LLM service that rewrites stories for narration."""

    async def enhance_story(self, story: dict[str, Any], target_duration: float) -> str:
        """Rewrite ``story`` to fit roughly ``target_duration`` minutes."""
        ...


def make_story_enhancement_handler(enhancer: StoryEnhancer) -> Handler:
    async def handle_story_enhancement(job: Job) -> None:
        payload = job.payload if isinstance(job.payload, dict) else {}
        story = payload.get("story")
        if not story:
            raise ValueError("story-enhancement payload needs a 'story'")
        target_duration = payload.get("target_duration", DEFAULT_TARGET_DURATION)

        enhanced = await enhancer.enhance_story(story, target_duration)
        job.payload["result"] = {"enhanced": enhanced}

    return handle_story_enhancement
