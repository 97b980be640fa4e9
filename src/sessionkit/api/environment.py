"""Environment resource."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..models import Environment

if TYPE_CHECKING:
    from .frontend import FrontendClient


class EnvironmentResource:
    def __init__(self, api: 'FrontendClient'):
        self._api = api

    async def get(self) -> Environment:
        """Fetch the instance configuration snapshot."""
        payload = await self._api._send('GET', '/environment')
        return Environment.model_validate(payload or {})
