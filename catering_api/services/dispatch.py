"""
Fire-and-forget side effects

Notifications, webhooks and broadcasts run after the HTTP response through
FastAPI's BackgroundTasks. Every job goes through `SideEffectDispatcher` so
failures are logged in one place and never reach the caller.
"""
import asyncio
import logging
from typing import Any, Callable
from fastapi import BackgroundTasks
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


class SideEffectDispatcher:
    """Queues best-effort jobs on a request's BackgroundTasks"""

    def submit(self, background_tasks: BackgroundTasks, name: str, func: Callable, *args: Any, **kwargs: Any):
        logger.debug("Queued side effect %s", name)
        background_tasks.add_task(self._run, name, func, *args, **kwargs)

    async def _run(self, name: str, func: Callable, *args: Any, **kwargs: Any):
        try:
            if asyncio.iscoroutinefunction(func):
                await func(*args, **kwargs)
            else:
                await run_in_threadpool(func, *args, **kwargs)
        except Exception:
            logger.exception("Side effect %s failed", name)


dispatcher = SideEffectDispatcher()
