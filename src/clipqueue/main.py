"""Main entry point for the clipqueue HTTP service."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from clipqueue.api.routes import health, jobs, queue
from clipqueue.config import settings
from clipqueue.jobs.instance import get_queue_manager, reset_queue_manager
from clipqueue.jobs.models import JobType

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the shared queue on startup, stop it on shutdown."""
    manager = get_queue_manager()
    logger.info("Queue ready: %s", manager.stats().model_dump())
    if JobType.BATCH.value not in manager.registered_types:
        logger.warning(
            "Batch jobs are unavailable at concurrency cap %d; "
            "set CLIPQUEUE_CONCURRENCY_CAP=2 or more to enable them",
            manager.concurrency_cap,
        )
    yield
    await reset_queue_manager()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="clipqueue",
        description="Background job queue for content-generation workflows",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(health.router)
    app.include_router(jobs.router)
    app.include_router(queue.router)

    return app


app = create_app()


def main() -> None:
    """Run the application."""
    logging.basicConfig(level=settings.log_level)
    uvicorn.run(
        "clipqueue.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
