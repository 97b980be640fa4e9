"""Application lifecycle observer.

Host applications report foreground/background transitions with ``post``,
from any thread. Events are queued onto the kit's event loop and dispatched
there in order, so handlers always run on the state owner's context.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from .tasks import TaskCoordinator

logger = logging.getLogger(__name__)


class LifecycleEvent(str, Enum):
    WILL_ENTER_FOREGROUND = 'will_enter_foreground'
    DID_ENTER_BACKGROUND = 'did_enter_background'


Handler = Callable[[], Awaitable[None]]


class LifecycleManager:
    """Dispatches lifecycle events to the kit.

    Args:
        on_will_enter_foreground: Awaited when the app returns to the foreground
        on_did_enter_background: Awaited when the app moves to the background
        tasks: Task coordinator tracking the dispatch task
    """

    def __init__(self, on_will_enter_foreground: Handler, on_did_enter_background: Handler, tasks: TaskCoordinator):
        self._handlers = {
            LifecycleEvent.WILL_ENTER_FOREGROUND: on_will_enter_foreground,
            LifecycleEvent.DID_ENTER_BACKGROUND: on_did_enter_background,
        }
        self._tasks = tasks
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_observing(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Begin dispatching events. Must be called on the kit's event loop."""
        if self.is_observing:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._task = self._tasks.spawn(self._dispatch(), name='lifecycle-observer')

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._queue = None

    def post(self, event: LifecycleEvent) -> None:
        """Report a lifecycle transition. Thread-safe; ignored when not observing."""
        loop, queue = self._loop, self._queue
        if loop is None or queue is None or loop.is_closed():
            logger.debug(f'Dropping lifecycle event {event.value}; observer is not running')
            return
        loop.call_soon_threadsafe(queue.put_nowait, LifecycleEvent(event))

    async def _dispatch(self) -> None:
        queue = self._queue
        while True:
            event = await queue.get()
            logger.debug(f'Lifecycle event: {event.value}')
            try:
                await self._handlers[event]()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.error(f'Lifecycle handler for {event.value} failed', exc_info=True)
