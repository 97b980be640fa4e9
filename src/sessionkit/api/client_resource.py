"""Client resource: GET/PUT/DELETE /client."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ..models import Client

if TYPE_CHECKING:
    from .frontend import FrontendClient


class ClientResource:
    """Operations on the device's Client.

    Args:
        api: Parent FrontendClient instance
    """

    def __init__(self, api: 'FrontendClient'):
        self._api = api

    async def get(self) -> Optional[Client]:
        """Fetch the current Client.

        Returns:
            The Client, or None if the device has no client yet

        Example:
            >>> client = await api.client.get()
            >>> client.active_session
        """
        payload = await self._api._send('GET', '/client')
        return Client.model_validate(payload) if payload is not None else None

    async def create(self) -> Client:
        """Create (or replace) the Client for this device."""
        payload = await self._api._send('PUT', '/client')
        return Client.model_validate(payload)

    async def destroy(self) -> Optional[Client]:
        """Delete the Client, ending every session on this device."""
        payload = await self._api._send('DELETE', '/client')
        return Client.model_validate(payload) if payload is not None else None
