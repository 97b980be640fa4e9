"""Sessions resource: removal, activation and token minting."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ..models import Session, TokenResource

if TYPE_CHECKING:
    from .frontend import FrontendClient


class SessionsResource:
    """Operations on sessions of the current Client.

    Args:
        api: Parent FrontendClient instance
    """

    def __init__(self, api: 'FrontendClient'):
        self._api = api

    async def remove(self, session_id: str) -> Session:
        """Sign out of one session, leaving the others on the device intact."""
        payload = await self._api._send('POST', f'/client/sessions/{session_id}/remove')
        return Session.model_validate(payload)

    async def touch(self, session_id: str, active_organization_id: Optional[str] = None) -> Session:
        """Mark a session as the device's active session.

        Args:
            session_id: Session to activate
            active_organization_id: Organization to make active within the session

        Returns:
            The touched Session
        """
        body = {'active_organization_id': active_organization_id}
        payload = await self._api._send('POST', f'/client/sessions/{session_id}/touch', json=body)
        return Session.model_validate(payload)

    async def token(self, session_id: str, template: Optional[str] = None) -> Optional[TokenResource]:
        """Mint a fresh session token.

        Args:
            session_id: Session to mint the token for
            template: Optional JWT template name

        Returns:
            The token, or None if the server returned an empty body
        """
        path = f'/client/sessions/{session_id}/tokens'
        if template:
            path = f'{path}/{template}'
        payload = await self._api._send('POST', path)
        return TokenResource.model_validate(payload) if payload else None
