"""Secure credential store.

Key/value persistence for the small amount of state that must survive a restart:
the cached Client and Environment snapshots, the device token, the sync flag and
the attestation key id. All keys live under one application-scoped service name.
"""

import base64
import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Optional, Union

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from ..errors import CredentialStoreError

logger = logging.getLogger(__name__)


class StoreKey(str, Enum):
    """Fixed keys used in the credential store."""

    CACHED_CLIENT = 'cachedClient'
    CACHED_ENVIRONMENT = 'cachedEnvironment'
    DEVICE_TOKEN = 'deviceToken'
    DEVICE_TOKEN_SYNCED = 'deviceTokenSynced'
    ATTEST_KEY_ID = 'attestKeyId'


Value = Union[bytes, str]


def _key(key: Union[StoreKey, str]) -> str:
    return key.value if isinstance(key, StoreKey) else key


class CredentialStore(ABC):
    """Abstract key/value store for credentials.

    Values are stored as bytes; ``str`` values are UTF-8 encoded. Implementations
    raise ``CredentialStoreError`` on backend failures and return None for
    missing keys.
    """

    @abstractmethod
    def set(self, key: Union[StoreKey, str], value: Value) -> None:
        """Store ``value`` under ``key``, overwriting any previous value."""
        pass

    @abstractmethod
    def get(self, key: Union[StoreKey, str]) -> Optional[bytes]:
        """Return the bytes stored under ``key``, or None."""
        pass

    @abstractmethod
    def delete(self, key: Union[StoreKey, str]) -> None:
        """Remove ``key``. Deleting a missing key is not an error."""
        pass

    def has(self, key: Union[StoreKey, str]) -> bool:
        return self.get(key) is not None

    def get_string(self, key: Union[StoreKey, str]) -> Optional[str]:
        data = self.get(key)
        if data is None:
            return None
        try:
            return data.decode('utf-8')
        except UnicodeDecodeError as e:
            raise CredentialStoreError(f'Value for {_key(key)!r} is not valid UTF-8') from e


class InMemoryCredentialStore(CredentialStore):
    """Process-local store. State is lost on restart.

    Used in tests and on hosts without an OS keychain.
    """

    def __init__(self, initial: Optional[Dict[str, Value]] = None):
        self._items: Dict[str, bytes] = {}
        self._lock = threading.Lock()
        for key, value in (initial or {}).items():
            self.set(key, value)

    def set(self, key: Union[StoreKey, str], value: Value) -> None:
        data = value.encode('utf-8') if isinstance(value, str) else bytes(value)
        with self._lock:
            self._items[_key(key)] = data

    def get(self, key: Union[StoreKey, str]) -> Optional[bytes]:
        with self._lock:
            return self._items.get(_key(key))

    def delete(self, key: Union[StoreKey, str]) -> None:
        with self._lock:
            self._items.pop(_key(key), None)


class KeyringCredentialStore(CredentialStore):
    """Store backed by the OS secure store through ``keyring``.

    keyring picks the best backend for the platform (macOS Keychain, Windows
    Credential Locker, Secret Service). Values are base64 encoded because keyring
    stores text.

    Args:
        service: Application-scoped service name namespacing every key
    """

    def __init__(self, service: str):
        self.service = service

    def set(self, key: Union[StoreKey, str], value: Value) -> None:
        data = value.encode('utf-8') if isinstance(value, str) else bytes(value)
        try:
            keyring.set_password(self.service, _key(key), base64.b64encode(data).decode('ascii'))
        except KeyringError as e:
            raise CredentialStoreError(f'Failed to store {_key(key)!r}: {e}') from e

    def get(self, key: Union[StoreKey, str]) -> Optional[bytes]:
        try:
            encoded = keyring.get_password(self.service, _key(key))
        except KeyringError as e:
            raise CredentialStoreError(f'Failed to read {_key(key)!r}: {e}') from e
        if encoded is None:
            return None
        try:
            return base64.b64decode(encoded, validate=True)
        except ValueError as e:
            raise CredentialStoreError(f'Stored value for {_key(key)!r} is corrupt') from e

    def delete(self, key: Union[StoreKey, str]) -> None:
        try:
            keyring.delete_password(self.service, _key(key))
        except PasswordDeleteError:
            logger.debug(f'Nothing stored under {_key(key)!r} to delete')
        except KeyringError as e:
            raise CredentialStoreError(f'Failed to delete {_key(key)!r}: {e}') from e
