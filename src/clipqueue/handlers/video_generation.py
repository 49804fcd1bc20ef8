"""Handler for ``video-generation`` jobs."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from clipqueue.jobs.manager import Handler
from clipqueue.jobs.models import Job


class VideoPipeline(Protocol):
    """Interface for the video generation pipeline (script, voice, render)."""

    async def generate_video(self, request: Mapping[str, Any]) -> Mapping[str, Any]:
        """Render a video for a generation request.

        Args:
            request: Generation configuration (story, background video,
                voice settings, duration, captions).

        Returns:
            Mapping with ``video_url``, optional ``audio_url`` and ``costs``.
        """
        ...


def make_video_generation_handler(pipeline: VideoPipeline) -> Handler:
    async def handle_video_generation(job: Job) -> None:
        if not isinstance(job.payload, dict):
            raise ValueError("video-generation payload must be a mapping")
        request = {k: v for k, v in job.payload.items() if k != "result"}
        result = await pipeline.generate_video(request)
        if not result.get("video_url"):
            raise ValueError("video pipeline returned no video_url")
        job.payload["result"] = dict(result)

    return handle_video_generation
