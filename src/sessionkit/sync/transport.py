"""Sync transport abstraction.

A transport moves one application context (a small dict of opaque values)
between the primary and companion processes. Delivery is fire-and-forget and
only the latest context matters. Transports report what happens to them as
events; the events may be emitted from any thread.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple, Union

from ..errors import SyncError

logger = logging.getLogger(__name__)

DEVICE_TOKEN_KEY = 'clerkDeviceToken'
CLIENT_KEY = 'clerkClient'
ENVIRONMENT_KEY = 'clerkEnvironment'


@dataclass(frozen=True)
class ChannelActivated:
    """The channel finished activating, successfully or not."""

    activated: bool
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class ContextReceived:
    """The peer published a new application context."""

    context: Dict[str, Any] = field(default_factory=dict)


SyncEvent = Union[ChannelActivated, ContextReceived]
EventListener = Callable[[SyncEvent], None]


class SyncTransport(ABC):
    """Bidirectional application-context channel to the peer device."""

    def __init__(self):
        self._listener: Optional[EventListener] = None
        self._received_context: Optional[Dict[str, Any]] = None

    @property
    def received_application_context(self) -> Optional[Dict[str, Any]]:
        """The latest context the peer published, kept even when nobody was listening."""
        return self._received_context

    def set_listener(self, listener: Optional[EventListener]) -> None:
        """Register the callback receiving transport events. May be called from any thread."""
        self._listener = listener

    def _emit(self, event: SyncEvent) -> None:
        if isinstance(event, ContextReceived):
            self._received_context = dict(event.context)
        listener = self._listener
        if listener is None:
            logger.debug(f'Dropping {type(event).__name__}; no listener registered')
            return
        listener(event)

    @property
    @abstractmethod
    def is_reachable(self) -> bool:
        """True when the channel is supported, activated, paired and the peer app installed."""
        pass

    @abstractmethod
    def activate(self) -> None:
        """Start activating the channel. Completion is reported as ChannelActivated."""
        pass

    @abstractmethod
    def update_application_context(self, context: Dict[str, Any]) -> None:
        """Publish ``context`` to the peer, replacing the previous one.

        Raises:
            SyncError: If the context cannot be sent
        """
        pass


class InMemorySyncTransport(SyncTransport):
    """Transport connecting two endpoints in the same process.

    Contexts are delivered on a separate thread, the way platform connectivity
    frameworks deliver them on their own background queue.

    Example:
        >>> primary, companion = InMemorySyncTransport.pair()
    """

    def __init__(self, deliver_in_thread: bool = True):
        super().__init__()
        self.peer: Optional['InMemorySyncTransport'] = None
        self.activated = False
        self.paired = True
        self.installed = True
        self.sent: list = []
        self._deliver_in_thread = deliver_in_thread

    @classmethod
    def pair(cls, deliver_in_thread: bool = True) -> Tuple['InMemorySyncTransport', 'InMemorySyncTransport']:
        first, second = cls(deliver_in_thread), cls(deliver_in_thread)
        first.peer, second.peer = second, first
        return first, second

    @property
    def is_reachable(self) -> bool:
        return self.activated and self.paired and self.installed and self.peer is not None

    def activate(self) -> None:
        self.activated = True
        self._dispatch(self, ChannelActivated(activated=True))

    def update_application_context(self, context: Dict[str, Any]) -> None:
        if not self.is_reachable:
            raise SyncError('Sync channel is not reachable')
        self.sent.append(dict(context))
        self._dispatch(self.peer, ContextReceived(context=dict(context)))

    def _dispatch(self, target: 'InMemorySyncTransport', event: SyncEvent) -> None:
        if self._deliver_in_thread:
            thread = threading.Thread(target=target._emit, args=(event,), name='sync-transport', daemon=True)
            thread.start()
        else:
            target._emit(event)
