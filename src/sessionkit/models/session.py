"""Sessions and the users they belong to."""

from enum import Enum
from typing import List, Optional

from pydantic import Field

from .common import Resource


class SessionStatus(str, Enum):
    ACTIVE = 'active'
    PENDING = 'pending'
    ENDED = 'ended'
    EXPIRED = 'expired'
    REMOVED = 'removed'
    REPLACED = 'replaced'
    ABANDONED = 'abandoned'
    REVOKED = 'revoked'
    UNKNOWN = 'unknown'

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN


class EmailAddress(Resource):
    id: str
    email_address: str


class PhoneNumber(Resource):
    id: str
    phone_number: str


class User(Resource):
    id: str
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    primary_email_address_id: Optional[str] = None
    primary_phone_number_id: Optional[str] = None
    email_addresses: List[EmailAddress] = Field(default_factory=list)
    phone_numbers: List[PhoneNumber] = Field(default_factory=list)
    image_url: Optional[str] = None
    two_factor_enabled: bool = False
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    @property
    def primary_email_address(self) -> Optional[EmailAddress]:
        return next((e for e in self.email_addresses if e.id == self.primary_email_address_id), None)


class PublicUserData(Resource):
    identifier: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    has_image: bool = False


class SessionTask(Resource):
    """An outstanding step (e.g. organization selection) that keeps a session pending."""

    key: str


class TokenResource(Resource):
    jwt: str


class Session(Resource):
    """One authenticated grant on a device."""

    id: str
    status: SessionStatus
    last_active_at: int = 0
    expire_at: Optional[int] = None
    abandon_at: Optional[int] = None
    last_active_organization_id: Optional[str] = None
    tasks: Optional[List[SessionTask]] = None
    user: Optional[User] = None
    public_user_data: Optional[PublicUserData] = None
    last_active_token: Optional[TokenResource] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    @property
    def identifier(self) -> Optional[str]:
        """The identifier (email, phone, username) used to create this session."""
        return self.public_user_data.identifier if self.public_user_data else None

    @property
    def task_keys(self) -> List[str]:
        return [task.key for task in self.tasks or []]
