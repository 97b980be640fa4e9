"""Cross-device sync coordinator.

Publishes the local device token, Client and Environment to the peer device and
merges contexts received from it. Transport events arrive on the transport's
own thread and are queued onto the kit's event loop before any state is read or
written.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol

from pydantic import ValidationError

from ..errors import CredentialStoreError, SyncError
from ..lifecycle.tasks import TaskCoordinator
from ..models import Client, Environment
from ..storage.store import CredentialStore, StoreKey
from .merge import DeviceRole, merge_client, merge_device_token, merge_environment
from .transport import (
    CLIENT_KEY,
    DEVICE_TOKEN_KEY,
    ENVIRONMENT_KEY,
    ChannelActivated,
    ContextReceived,
    SyncEvent,
    SyncTransport,
)

logger = logging.getLogger(__name__)

# Sent in place of the client when the device is signed out
EMPTY_CLIENT = b''


class SyncOwner(Protocol):
    """The owner of the state the coordinator publishes and merges into."""

    @property
    def client(self) -> Optional[Client]: ...

    @property
    def environment(self) -> Environment: ...

    def apply_synced_client(self, client: Optional[Client]) -> None: ...

    def apply_synced_environment(self, environment: Environment) -> None: ...


class SyncCoordinator:
    """Keeps the primary and companion devices in step.

    Args:
        owner: Holder of the Client and Environment
        transport: Channel to the peer device
        store: Credential store holding the device token and synced flag
        role: Whether this device is the primary or the companion
        tasks: Task coordinator tracking the event consumer
    """

    def __init__(
        self,
        owner: SyncOwner,
        transport: SyncTransport,
        store: CredentialStore,
        role: DeviceRole,
        tasks: TaskCoordinator,
    ):
        self._owner = owner
        self._transport = transport
        self._store = store
        self.role = role
        self._tasks = tasks
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None
        self._merging = False

    @property
    def is_merging(self) -> bool:
        return self._merging

    def start(self) -> None:
        """Subscribe to transport events and activate the channel."""
        if self._task is not None and not self._task.done():
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._task = self._tasks.spawn(self._consume(), name='sync-coordinator')
        self._transport.set_listener(self._on_transport_event)
        self._transport.activate()

    def stop(self) -> None:
        self._transport.set_listener(None)
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._queue = None

    def _on_transport_event(self, event: SyncEvent) -> None:
        # Called on the transport's thread
        loop, queue = self._loop, self._queue
        if loop is None or queue is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(queue.put_nowait, event)

    async def _consume(self) -> None:
        queue = self._queue
        while True:
            event = await queue.get()
            self.handle_event(event)

    def handle_event(self, event: SyncEvent) -> None:
        """Apply one transport event. Must run on the kit's event loop."""
        if isinstance(event, ChannelActivated):
            if event.error is not None:
                logger.error(f'Sync channel activation failed: {event.error}')
            elif event.activated:
                logger.debug('Sync channel activated')
                # The peer may have published before this side was listening
                received = self._transport.received_application_context
                if received:
                    self.apply_context(received)
                self.sync_all()
        elif isinstance(event, ContextReceived):
            self.apply_context(event.context)

    # Outbound

    def build_context(self) -> Dict[str, Any]:
        """Gather the device token, Client (or the empty sentinel) and Environment."""
        context: Dict[str, Any] = {}

        try:
            token = self._store.get_string(StoreKey.DEVICE_TOKEN)
        except CredentialStoreError:
            logger.warning('Failed to read device token for sync', exc_info=True)
            token = None
        if token is not None:
            context[DEVICE_TOKEN_KEY] = token

        client = self._owner.client
        context[CLIENT_KEY] = client.model_dump_json().encode('utf-8') if client is not None else EMPTY_CLIENT

        environment = self._owner.environment
        if not environment.is_empty:
            context[ENVIRONMENT_KEY] = environment.model_dump_json().encode('utf-8')

        return context

    def sync_all(self) -> None:
        """Publish the current state to the peer.

        A no-op while a received context is being merged, and when the channel
        is not reachable. Failures are logged.
        """
        if self._merging:
            return
        if not self._transport.is_reachable:
            logger.debug('Sync channel not reachable; skipping sync')
            return
        try:
            self._transport.update_application_context(self.build_context())
        except SyncError:
            logger.error('Failed to send sync context', exc_info=True)

    # Inbound

    def apply_context(self, context: Dict[str, Any]) -> None:
        """Merge a received context field by field."""
        self._merging = True
        try:
            self._merge_device_token(context)
            self._merge_client(context)
            self._merge_environment(context)
        finally:
            self._merging = False

    def _merge_device_token(self, context: Dict[str, Any]) -> None:
        received = context.get(DEVICE_TOKEN_KEY)
        if received is not None and not isinstance(received, str):
            logger.warning('Ignoring non-string device token in sync context')
            return
        try:
            local = self._store.get_string(StoreKey.DEVICE_TOKEN)
            has_synced = self._store.has(StoreKey.DEVICE_TOKEN_SYNCED)
            result = merge_device_token(self.role, local, received, has_synced)
            if result.accepted:
                self._store.set(StoreKey.DEVICE_TOKEN, result.value)
            if received is not None and not has_synced:
                self._store.set(StoreKey.DEVICE_TOKEN_SYNCED, 'true')
        except CredentialStoreError:
            logger.error('Failed to merge synced device token', exc_info=True)

    def _merge_client(self, context: Dict[str, Any]) -> None:
        if CLIENT_KEY not in context:
            return
        data = context[CLIENT_KEY]
        signed_out = data is None or len(data) == 0
        received = None
        if not signed_out:
            try:
                received = Client.model_validate_json(data)
            except (ValidationError, ValueError, TypeError):
                logger.error('Failed to decode synced client', exc_info=True)
                return

        result = merge_client(self.role, self._owner.client, received, signed_out=signed_out)
        if result.accepted:
            self._owner.apply_synced_client(result.value)

    def _merge_environment(self, context: Dict[str, Any]) -> None:
        data = context.get(ENVIRONMENT_KEY)
        if not data:
            return
        try:
            received = Environment.model_validate_json(data)
        except (ValidationError, ValueError, TypeError):
            logger.error('Failed to decode synced environment', exc_info=True)
            return

        result = merge_environment(self._owner.environment, received)
        if result.accepted:
            self._owner.apply_synced_environment(result.value)
