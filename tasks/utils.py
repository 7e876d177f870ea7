import asyncio
import logging

from core.database import AsyncSessionLocal, engine

logger = logging.getLogger(__name__)


def run_with_session(job, *args, **kwargs):
    """Run ``job(db, *args)`` to completion from a synchronous Celery worker."""

    async def runner():
        try:
            async with AsyncSessionLocal() as db:
                return await job(db, *args, **kwargs)
        finally:
            # pooled connections are bound to the loop asyncio.run is about to close
            await engine.dispose()

    return asyncio.run(runner())


def enqueue(task, *args):
    """Queue a Celery task; a broker outage is logged and never fails the request."""
    try:
        task.delay(*args)
        return True
    except Exception as e:
        logger.error(f"Failed to enqueue {task.name}: {e}")
        return False
