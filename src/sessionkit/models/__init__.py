"""Resource models for the Frontend API."""

from .client import Client
from .common import Resource, now_ms
from .environment import (
    AuthConfig,
    DeviceAttestationMode,
    DisplayConfig,
    Environment,
    FraudSettings,
    NativeFraudSettings,
    PreferredSignInStrategy,
    UserSettings,
)
from .factor import Factor
from .session import EmailAddress, PhoneNumber, PublicUserData, Session, SessionStatus, SessionTask, TokenResource, User
from .sign_in import SignIn, SignInStatus, SignInUserData
from .sign_up import SignUp, SignUpStatus
from .strategy import FactorStrategy, StrategyKind
from .verification import Verification, VerificationStatus

__all__ = [
    'AuthConfig',
    'Client',
    'DeviceAttestationMode',
    'DisplayConfig',
    'EmailAddress',
    'Environment',
    'Factor',
    'FactorStrategy',
    'FraudSettings',
    'NativeFraudSettings',
    'PhoneNumber',
    'PreferredSignInStrategy',
    'PublicUserData',
    'Resource',
    'Session',
    'SessionStatus',
    'SessionTask',
    'SignIn',
    'SignInStatus',
    'SignInUserData',
    'SignUp',
    'SignUpStatus',
    'StrategyKind',
    'TokenResource',
    'User',
    'Verification',
    'VerificationStatus',
    'now_ms',
]
