"""SessionKit - client-side authentication session lifecycle with cross-device sync."""

from sessionkit.auth import CredentialProvider
from sessionkit.config import InstanceType, SessionKitOptions
from sessionkit.errors import APIResponseError, SessionKitError
from sessionkit.events import SessionChanged, SignedOut, SignInCompleted, SignUpCompleted
from sessionkit.kit import SessionKit
from sessionkit.lifecycle import LifecycleEvent
from sessionkit.models import Client, Environment, FactorStrategy, Session, SignIn, SignUp, User
from sessionkit.storage import InMemoryCredentialStore, KeyringCredentialStore
from sessionkit.sync import DeviceRole, InMemorySyncTransport

__all__ = [
    'APIResponseError',
    'Client',
    'CredentialProvider',
    'DeviceRole',
    'Environment',
    'FactorStrategy',
    'InMemoryCredentialStore',
    'InMemorySyncTransport',
    'InstanceType',
    'KeyringCredentialStore',
    'LifecycleEvent',
    'Session',
    'SessionChanged',
    'SessionKit',
    'SessionKitError',
    'SessionKitOptions',
    'SignIn',
    'SignInCompleted',
    'SignUp',
    'SignUpCompleted',
    'SignedOut',
    'User',
]
