"""Secure credential store and snapshot cache."""

from .cache import CacheCoordinator, CacheManager
from .store import CredentialStore, InMemoryCredentialStore, KeyringCredentialStore, StoreKey

__all__ = [
    'CacheCoordinator',
    'CacheManager',
    'CredentialStore',
    'InMemoryCredentialStore',
    'KeyringCredentialStore',
    'StoreKey',
]
