"""Verification state of a factor attempt."""

from enum import Enum
from typing import Any, Dict, Optional

from .common import Resource
from .strategy import FactorStrategy


class VerificationStatus(str, Enum):
    UNVERIFIED = 'unverified'
    VERIFIED = 'verified'
    TRANSFERABLE = 'transferable'
    FAILED = 'failed'
    EXPIRED = 'expired'
    UNKNOWN = 'unknown'

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN


class Verification(Resource):
    """Result of preparing or attempting a factor.

    ``nonce`` carries the passkey challenge and ``external_verification_redirect_url``
    the URL an external (OAuth/SSO) flow must open.
    """

    status: Optional[VerificationStatus] = None
    strategy: Optional[FactorStrategy] = None
    attempts: Optional[int] = None
    expire_at: Optional[int] = None
    error: Optional[Dict[str, Any]] = None
    external_verification_redirect_url: Optional[str] = None
    nonce: Optional[str] = None

    @property
    def is_verified(self) -> bool:
        return self.status is VerificationStatus.VERIFIED
