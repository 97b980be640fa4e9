"""Kit options and publishable-key parsing.

Every option has a code default; a few can also be supplied through environment
variables so that deployments can change them without code changes:

- ``SESSIONKIT_PUBLISHABLE_KEY``: used when ``configure()`` receives no key
- ``SESSIONKIT_PROXY_URL``: Frontend API proxy (e.g. https://proxy.example.com/__clerk)
- ``SESSIONKIT_DEBUG``: ``1``/``true``/``yes`` turns on request tracing
"""

from __future__ import annotations

import base64
import binascii
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

from ..api.retry import RetryConfig
from ..errors import InvalidPublishableKeyError, MissingPublishableKeyError
from ..lifecycle.polling import SESSION_TOKEN_LIFETIME
from ..sync.merge import DeviceRole

if TYPE_CHECKING:
    from ..attestation import AttestationProvider
    from ..storage.store import CredentialStore
    from ..sync.transport import SyncTransport

PUBLISHABLE_KEY_ENV = 'SESSIONKIT_PUBLISHABLE_KEY'
PROXY_URL_ENV = 'SESSIONKIT_PROXY_URL'
DEBUG_ENV = 'SESSIONKIT_DEBUG'

LIVE_KEY_PREFIX = 'pk_live_'
TEST_KEY_PREFIX = 'pk_test_'

_TRUTHY = {'1', 'true', 'yes', 'on'}


class InstanceType(str, Enum):
    PRODUCTION = 'production'
    DEVELOPMENT = 'development'


def _env_flag(name: str) -> bool:
    return os.getenv(name, '').strip().lower() in _TRUTHY


@dataclass
class SessionKitOptions:
    """Options accepted by ``SessionKit.configure``.

    Args:
        proxy_url: Full URL of a Frontend API proxy; overrides the key's host
        debug_mode: Trace every request and response at DEBUG
        keychain_service: Service name namespacing every credential store key
        app_identifier: Application identifier sent during device attestation
        poll_interval: Seconds between session token refreshes
        token_expiration_buffer: Cached tokens closer than this to expiry are re-fetched
        request_timeout: HTTP timeout in seconds
        retry: Retry policy for rate-limited and transient failures
        sync_enabled: Publish and merge state with a peer device
        sync_role: This device's role in sync
        sync_transport: Channel to the peer device; required when sync is enabled
        store: Credential store; defaults to the OS keyring
        attestation_provider: Platform attestation capability; None when unavailable
    """

    proxy_url: Optional[str] = field(default_factory=lambda: os.getenv(PROXY_URL_ENV) or None)
    debug_mode: bool = field(default_factory=lambda: _env_flag(DEBUG_ENV))
    keychain_service: str = 'sessionkit'
    app_identifier: Optional[str] = None
    poll_interval: float = 5.0
    token_expiration_buffer: float = 10.0
    request_timeout: float = 30.0
    retry: RetryConfig = field(default_factory=RetryConfig)
    sync_enabled: bool = False
    sync_role: DeviceRole = DeviceRole.PRIMARY
    sync_transport: Optional['SyncTransport'] = None
    store: Optional['CredentialStore'] = None
    attestation_provider: Optional['AttestationProvider'] = None

    def __post_init__(self):
        if not 0 < self.poll_interval < SESSION_TOKEN_LIFETIME:
            raise ValueError(f'poll_interval must be between 0 and {SESSION_TOKEN_LIFETIME:.0f} seconds')
        if self.token_expiration_buffer < 0:
            raise ValueError('token_expiration_buffer must not be negative')
        if self.sync_enabled and self.sync_transport is None:
            raise ValueError('sync_enabled requires a sync_transport')


@dataclass(frozen=True)
class PublishableKey:
    """A parsed publishable key.

    Attributes:
        raw: The key as supplied
        frontend_api_url: Origin of the Frontend API encoded in the key
        instance_type: Production for ``pk_live_`` keys, development otherwise
    """

    raw: str
    frontend_api_url: str
    instance_type: InstanceType


def resolve_publishable_key(publishable_key: Optional[str]) -> str:
    """Return the explicit key, else the environment variable.

    Raises:
        MissingPublishableKeyError: If neither is set or both are blank
    """
    key = (publishable_key or '').strip() or os.getenv(PUBLISHABLE_KEY_ENV, '').strip()
    if not key:
        raise MissingPublishableKeyError()
    return key


def parse_publishable_key(publishable_key: str) -> PublishableKey:
    """Decode the Frontend API host from a publishable key.

    The key is ``pk_test_<b64>`` or ``pk_live_<b64>`` where ``<b64>`` decodes to
    ``<frontend-api-host>$``.

    Raises:
        InvalidPublishableKeyError: If the prefix is wrong or the payload does not decode

    Example:
        >>> parse_publishable_key('pk_test_Y2xlcmsuZXhhbXBsZS5jb20k').frontend_api_url
        'https://clerk.example.com'
    """
    if publishable_key.startswith(LIVE_KEY_PREFIX):
        payload, instance_type = publishable_key[len(LIVE_KEY_PREFIX) :], InstanceType.PRODUCTION
    elif publishable_key.startswith(TEST_KEY_PREFIX):
        payload, instance_type = publishable_key[len(TEST_KEY_PREFIX) :], InstanceType.DEVELOPMENT
    else:
        raise InvalidPublishableKeyError(publishable_key)

    try:
        padded = payload + '=' * (-len(payload) % 4)
        decoded = base64.b64decode(padded, validate=True).decode('utf-8')
    except (binascii.Error, ValueError):
        raise InvalidPublishableKeyError(publishable_key) from None

    host = decoded[:-1] if decoded.endswith('$') else decoded
    if not host or '$' in host or '/' in host or ' ' in host:
        raise InvalidPublishableKeyError(publishable_key)

    return PublishableKey(raw=publishable_key, frontend_api_url=f'https://{host}', instance_type=instance_type)
