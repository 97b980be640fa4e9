"""Session token polling.

Keeps the active session's token fresh while the application is in the
foreground. The poll interval must stay below the session token lifetime so a
valid token is always at hand.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .tasks import TaskCoordinator

logger = logging.getLogger(__name__)

# Session tokens are minted with a 60 second lifetime
SESSION_TOKEN_LIFETIME = 60.0


class SessionPollingManager:
    """Periodic token refresh on a cooperative timer.

    ``refresh`` is awaited as soon as the timer starts and then once per
    tick. It returns False when there is no active session, which stops the
    timer; any exception is logged and the timer keeps running.

    Args:
        refresh: Coroutine function refreshing the active session's token
        tasks: Task coordinator tracking the timer task
        interval: Seconds between refreshes (0 < interval < 60)

    Raises:
        ValueError: If the interval is not strictly shorter than the token lifetime
    """

    def __init__(self, refresh: Callable[[], Awaitable[bool]], tasks: TaskCoordinator, interval: float = 5.0):
        if not 0 < interval < SESSION_TOKEN_LIFETIME:
            raise ValueError(
                f'poll interval must be between 0 and {SESSION_TOKEN_LIFETIME:.0f} seconds, got {interval}'
            )
        self._refresh = refresh
        self._tasks = tasks
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def is_polling(self) -> bool:
        return self._task is not None and not self._task.done()

    def start_polling(self) -> None:
        """Start the timer. Does nothing if it is already running."""
        if self.is_polling:
            return
        self._task = self._tasks.spawn(self._run(), name='session-polling')
        logger.debug(f'Session polling started (every {self.interval}s)')

    def stop_polling(self) -> None:
        """Cancel the timer. Safe to call when it is not running."""
        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
                logger.debug('Session polling stopped')
            self._task = None

    async def _run(self) -> None:
        # Refresh before the first sleep
        while True:
            try:
                keep_running = await self._refresh()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning('Session token refresh failed; will retry on the next tick', exc_info=True)
                keep_running = True
            if not keep_running:
                logger.debug('No active session; session polling stopped')
                return
            await asyncio.sleep(self.interval)
