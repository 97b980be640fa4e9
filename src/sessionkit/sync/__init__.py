"""Cross-device sync channel."""

from .coordinator import EMPTY_CLIENT, SyncCoordinator
from .merge import DeviceRole, MergeResult, merge_client, merge_device_token, merge_environment
from .transport import (
    CLIENT_KEY,
    DEVICE_TOKEN_KEY,
    ENVIRONMENT_KEY,
    ChannelActivated,
    ContextReceived,
    InMemorySyncTransport,
    SyncEvent,
    SyncTransport,
)

__all__ = [
    'CLIENT_KEY',
    'ChannelActivated',
    'ContextReceived',
    'DEVICE_TOKEN_KEY',
    'DeviceRole',
    'EMPTY_CLIENT',
    'ENVIRONMENT_KEY',
    'InMemorySyncTransport',
    'MergeResult',
    'SyncCoordinator',
    'SyncEvent',
    'SyncTransport',
    'merge_client',
    'merge_device_token',
    'merge_environment',
]
