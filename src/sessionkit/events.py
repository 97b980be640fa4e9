"""Authentication events.

The kit emits an event whenever a sign-in or sign-up completes, the user signs
out, or the active session changes. Subscribers receive events through their
own queue, so a slow subscriber never blocks the kit.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Union

from .models import Session, SignIn, SignUp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignInCompleted:
    sign_in: SignIn
    session: Session


@dataclass(frozen=True)
class SignUpCompleted:
    sign_up: SignUp
    session: Session


@dataclass(frozen=True)
class SignedOut:
    session_id: Optional[str] = None


@dataclass(frozen=True)
class SessionChanged:
    previous_session_id: Optional[str]
    session: Optional[Session]


AuthEvent = Union[SignInCompleted, SignUpCompleted, SignedOut, SessionChanged]


class EventEmitter:
    """Fan-out of auth events to async subscribers.

    Example:
        >>> with kit.events.subscribe() as events:
        ...     async for event in events:
        ...         if isinstance(event, SignedOut):
        ...             break
    """

    def __init__(self, max_queue_size: int = 100):
        self._max_queue_size = max_queue_size
        self._subscribers: List[asyncio.Queue] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def emit(self, event: AuthEvent) -> None:
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f'Dropping {type(event).__name__} for a subscriber that is not keeping up')

    def subscribe(self) -> 'Subscription':
        """Register a subscriber. Events emitted from now on are queued for it."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers.append(queue)
        return Subscription(self, queue)

    def _unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)


class Subscription:
    """Async iterator over the events queued for one subscriber."""

    def __init__(self, emitter: EventEmitter, queue: asyncio.Queue):
        self._emitter = emitter
        self._queue = queue

    async def get(self) -> AuthEvent:
        return await self._queue.get()

    def drain(self) -> List[AuthEvent]:
        """Return every queued event without waiting."""
        events = []
        while not self._queue.empty():
            events.append(self._queue.get_nowait())
        return events

    def close(self) -> None:
        self._emitter._unsubscribe(self._queue)

    def __aiter__(self) -> AsyncIterator[AuthEvent]:
        return self

    async def __anext__(self) -> AuthEvent:
        return await self._queue.get()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
