"""Task coordinator.

Tracks every background task spawned on behalf of the kit so that closing the
kit cancels all outstanding work.
"""

import asyncio
import logging
from typing import Coroutine, Optional, Set

logger = logging.getLogger(__name__)


class TaskCoordinator:
    """Owns the lifetime of background asyncio tasks."""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine, name: Optional[str] = None) -> asyncio.Task:
        """Schedule ``coro`` on the running loop and track it until it finishes."""
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f'Background task {task.get_name()!r} failed', exc_info=error)

    @property
    def active(self) -> int:
        return len(self._tasks)

    async def cancel_all(self) -> None:
        """Cancel every tracked task and wait for them to finish."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
