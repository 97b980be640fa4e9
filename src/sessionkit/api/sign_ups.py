"""Sign-ups resource."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from ..models import FactorStrategy, SignUp

if TYPE_CHECKING:
    from .frontend import FrontendClient


class SignUpsResource:
    """Operations on sign-up attempts.

    Args:
        api: Parent FrontendClient instance
    """

    def __init__(self, api: 'FrontendClient'):
        self._api = api

    async def create(self, params: Dict[str, Any]) -> SignUp:
        """Start a sign-up attempt with the supplied field values."""
        payload = await self._api._send('POST', '/client/sign_ups', json=params)
        return SignUp.model_validate(payload)

    async def update(self, sign_up_id: str, params: Dict[str, Any]) -> SignUp:
        """Supply missing field values on an existing attempt."""
        payload = await self._api._send('PATCH', f'/client/sign_ups/{sign_up_id}', json=params)
        return SignUp.model_validate(payload)

    async def get(self, sign_up_id: str) -> SignUp:
        payload = await self._api._send('GET', f'/client/sign_ups/{sign_up_id}')
        return SignUp.model_validate(payload)

    async def prepare_verification(self, sign_up_id: str, strategy: FactorStrategy) -> SignUp:
        body = {'strategy': strategy.raw_value}
        payload = await self._api._send('POST', f'/client/sign_ups/{sign_up_id}/prepare_verification', json=body)
        return SignUp.model_validate(payload)

    async def attempt_verification(self, sign_up_id: str, strategy: FactorStrategy, code: str) -> SignUp:
        body = {'strategy': strategy.raw_value, 'code': code}
        payload = await self._api._send('POST', f'/client/sign_ups/{sign_up_id}/attempt_verification', json=body)
        return SignUp.model_validate(payload)
