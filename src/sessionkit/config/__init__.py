"""Kit configuration."""

from .options import (
    DEBUG_ENV,
    PROXY_URL_ENV,
    PUBLISHABLE_KEY_ENV,
    InstanceType,
    PublishableKey,
    SessionKitOptions,
    parse_publishable_key,
    resolve_publishable_key,
)

__all__ = [
    'DEBUG_ENV',
    'InstanceType',
    'PROXY_URL_ENV',
    'PUBLISHABLE_KEY_ENV',
    'PublishableKey',
    'SessionKitOptions',
    'parse_publishable_key',
    'resolve_publishable_key',
]
