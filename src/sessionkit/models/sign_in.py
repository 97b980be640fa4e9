"""Sign-in attempts."""

from enum import Enum
from typing import List, Optional

from pydantic import Field

from .common import Resource
from .factor import Factor
from .strategy import FactorStrategy
from .verification import Verification


class SignInStatus(str, Enum):
    NEEDS_IDENTIFIER = 'needs_identifier'
    NEEDS_FIRST_FACTOR = 'needs_first_factor'
    NEEDS_SECOND_FACTOR = 'needs_second_factor'
    NEEDS_NEW_PASSWORD = 'needs_new_password'
    COMPLETE = 'complete'
    ABANDONED = 'abandoned'
    UNKNOWN = 'unknown'

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN


class SignInUserData(Resource):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    has_image: bool = False


class SignIn(Resource):
    """One in-progress sign-in ceremony.

    The status is published by the server in every response; the client never
    computes it. Each prepare/attempt call returns a new SignIn which replaces
    the one the caller holds.
    """

    id: str
    status: SignInStatus
    supported_identifiers: List[str] = Field(default_factory=list)
    identifier: Optional[str] = None
    supported_first_factors: List[Factor] = Field(default_factory=list)
    supported_second_factors: List[Factor] = Field(default_factory=list)
    first_factor_verification: Optional[Verification] = None
    second_factor_verification: Optional[Verification] = None
    user_data: Optional[SignInUserData] = None
    created_session_id: Optional[str] = None
    abandon_at: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (SignInStatus.COMPLETE, SignInStatus.ABANDONED)

    def identifying_first_factor(self, strategy: FactorStrategy) -> Optional[Factor]:
        """The supported first factor of ``strategy`` bound to the supplied identifier."""
        for factor in self.supported_first_factors:
            if factor.strategy == strategy and factor.safe_identifier == self.identifier:
                return factor
        return None

    def identifying_second_factor(self, strategy: FactorStrategy) -> Optional[Factor]:
        return next((f for f in self.supported_second_factors if f.strategy == strategy), None)
