"""Cache & reconciliation for Client and Environment snapshots.

Snapshots are written to the credential store on every change and read once at
startup, before any network call. A cached value is applied only if nothing has
been set yet, so a network response that arrives first always wins; later
network responses replace the cached value wholesale anyway.
"""

import logging
from typing import Optional, Protocol

from pydantic import ValidationError

from ..errors import CredentialStoreError
from ..models import Client, Environment
from .store import CredentialStore, StoreKey

logger = logging.getLogger(__name__)


class CacheCoordinator(Protocol):
    """The owner of Client/Environment state the cache manager writes into."""

    @property
    def has_client(self) -> bool: ...

    @property
    def is_environment_empty(self) -> bool: ...

    def set_client_if_needed(self, client: Optional[Client]) -> None: ...

    def set_environment_if_needed(self, environment: Environment) -> None: ...


class CacheManager:
    """Persists and restores Client/Environment snapshots.

    Every failure here is logged and swallowed: cached data is optional and must
    never block initialization or disturb an active session.

    Args:
        coordinator: Owner of the in-memory state
        store: Credential store holding the snapshots
    """

    def __init__(self, coordinator: CacheCoordinator, store: CredentialStore):
        self._coordinator = coordinator
        self._store = store

    async def load_cached_data(self) -> None:
        """Apply cached snapshots unless fresher state is already present."""
        self._load_cached_client()
        self._load_cached_environment()

    def _load_cached_client(self) -> None:
        try:
            client = self.load_client()
        except (CredentialStoreError, ValidationError, ValueError):
            logger.error('Failed to load cached client; initialization will continue without it', exc_info=True)
            return

        if client is None:
            return
        if not self._coordinator.has_client:
            logger.debug(f'Restoring cached client {client.id}')
            self._coordinator.set_client_if_needed(client)

    def _load_cached_environment(self) -> None:
        try:
            environment = self.load_environment()
        except (CredentialStoreError, ValidationError, ValueError):
            logger.error('Failed to load cached environment; initialization will continue without it', exc_info=True)
            return

        if environment is None:
            return
        if self._coordinator.is_environment_empty:
            logger.debug('Restoring cached environment')
            self._coordinator.set_environment_if_needed(environment)

    def load_client(self) -> Optional[Client]:
        """Decode the cached Client snapshot.

        Raises:
            CredentialStoreError: If the store cannot be read
            ValidationError: If the snapshot cannot be decoded
        """
        data = self._store.get(StoreKey.CACHED_CLIENT)
        if data is None:
            return None
        return Client.model_validate_json(data)

    def load_environment(self) -> Optional[Environment]:
        data = self._store.get(StoreKey.CACHED_ENVIRONMENT)
        if data is None:
            return None
        return Environment.model_validate_json(data)

    def save_client(self, client: Client) -> None:
        try:
            self._store.set(StoreKey.CACHED_CLIENT, client.model_dump_json())
        except CredentialStoreError:
            logger.error('Failed to save client to the credential store; offline start may be affected', exc_info=True)

    def save_environment(self, environment: Environment) -> None:
        try:
            self._store.set(StoreKey.CACHED_ENVIRONMENT, environment.model_dump_json())
        except CredentialStoreError:
            logger.error('Failed to save environment to the credential store', exc_info=True)

    def delete_client(self) -> None:
        try:
            self._store.delete(StoreKey.CACHED_CLIENT)
        except CredentialStoreError:
            logger.error('Failed to delete cached client from the credential store', exc_info=True)
