"""The Client aggregate: all authentication state held for one device."""

from typing import List, Optional

from pydantic import Field

from .common import Resource
from .session import Session, SessionStatus
from .sign_in import SignIn
from .sign_up import SignUp


class Client(Resource):
    """Root aggregate for a device's authentication state.

    Replaced wholesale on every remote fetch; never mutated in place.
    """

    id: str
    sessions: List[Session] = Field(default_factory=list)
    last_active_session_id: Optional[str] = None
    sign_in: Optional[SignIn] = None
    sign_up: Optional[SignUp] = None
    updated_at: int = 0
    created_at: Optional[int] = None

    @property
    def active_sessions(self) -> List[Session]:
        """Sessions that can back authenticated requests.

        Pending sessions (outstanding tasks) are excluded.
        """
        return [s for s in self.sessions if s.status is SessionStatus.ACTIVE]

    @property
    def active_session(self) -> Optional[Session]:
        """The last active session, if it is currently active."""
        return next((s for s in self.active_sessions if s.id == self.last_active_session_id), None)

    @property
    def last_active_session(self) -> Optional[Session]:
        """The last active session if it is active or pending."""
        return next(
            (
                s
                for s in self.sessions
                if s.id == self.last_active_session_id and s.status in (SessionStatus.ACTIVE, SessionStatus.PENDING)
            ),
            None,
        )

    def session_by_id(self, session_id: Optional[str]) -> Optional[Session]:
        if session_id is None:
            return None
        return next((s for s in self.sessions if s.id == session_id), None)
