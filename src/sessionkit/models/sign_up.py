"""Sign-up attempts."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field

from .common import Resource
from .verification import Verification


class SignUpStatus(str, Enum):
    MISSING_REQUIREMENTS = 'missing_requirements'
    COMPLETE = 'complete'
    ABANDONED = 'abandoned'
    UNKNOWN = 'unknown'

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN


class SignUp(Resource):
    """One in-progress registration ceremony.

    ``verifications`` is keyed by field name (``email_address``, ``phone_number``).
    """

    id: str
    status: SignUpStatus
    required_fields: List[str] = Field(default_factory=list)
    optional_fields: List[str] = Field(default_factory=list)
    missing_fields: List[str] = Field(default_factory=list)
    unverified_fields: List[str] = Field(default_factory=list)
    verifications: Dict[str, Optional[Verification]] = Field(default_factory=dict)
    username: Optional[str] = None
    email_address: Optional[str] = None
    phone_number: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    password_enabled: bool = False
    created_session_id: Optional[str] = None
    created_user_id: Optional[str] = None
    abandon_at: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (SignUpStatus.COMPLETE, SignUpStatus.ABANDONED)

    @property
    def identifier(self) -> Optional[str]:
        return self.email_address or self.phone_number or self.username

    def verification(self, field: str) -> Optional[Verification]:
        return self.verifications.get(field)
