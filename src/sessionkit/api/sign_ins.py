"""Sign-ins resource.

Each call performs one round-trip and returns the SignIn published by the
server. Callers must replace the attempt they hold with the returned one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from ..models import FactorStrategy, SignIn

if TYPE_CHECKING:
    from .frontend import FrontendClient


def _strategy_params(strategy: FactorStrategy, **fields: Any) -> Dict[str, Any]:
    params: Dict[str, Any] = {'strategy': strategy.raw_value}
    params.update({k: v for k, v in fields.items() if v is not None})
    return params


class SignInsResource:
    """Operations on sign-in attempts.

    Args:
        api: Parent FrontendClient instance

    Example:
        >>> sign_in = await api.sign_ins.create({'identifier': 'user@example.com'})
        >>> sign_in = await api.sign_ins.prepare_first_factor(sign_in.id, email_code, email_address_id='idn_1')
    """

    def __init__(self, api: 'FrontendClient'):
        self._api = api

    async def create(self, params: Dict[str, Any]) -> SignIn:
        """Start a sign-in attempt.

        Args:
            params: Identifying data, e.g. ``{'identifier': ...}``, ``{'strategy': 'passkey'}``
                or ``{'strategy': 'oauth_token_apple', 'token': ...}``
        """
        payload = await self._api._send('POST', '/client/sign_ins', json=params)
        return SignIn.model_validate(payload)

    async def get(self, sign_in_id: str, rotating_token_nonce: Optional[str] = None) -> SignIn:
        params = {'rotating_token_nonce': rotating_token_nonce} if rotating_token_nonce else None
        payload = await self._api._send('GET', f'/client/sign_ins/{sign_in_id}', params=params)
        return SignIn.model_validate(payload)

    async def prepare_first_factor(
        self,
        sign_in_id: str,
        strategy: FactorStrategy,
        email_address_id: Optional[str] = None,
        phone_number_id: Optional[str] = None,
    ) -> SignIn:
        body = _strategy_params(strategy, email_address_id=email_address_id, phone_number_id=phone_number_id)
        payload = await self._api._send('POST', f'/client/sign_ins/{sign_in_id}/prepare_first_factor', json=body)
        return SignIn.model_validate(payload)

    async def attempt_first_factor(self, sign_in_id: str, strategy: FactorStrategy, **credential: Any) -> SignIn:
        """Submit a first-factor credential.

        Args:
            sign_in_id: Sign-in attempt id
            strategy: The factor's strategy
            **credential: ``code``, ``password``, ``public_key_credential`` or ``token``
        """
        body = _strategy_params(strategy, **credential)
        payload = await self._api._send('POST', f'/client/sign_ins/{sign_in_id}/attempt_first_factor', json=body)
        return SignIn.model_validate(payload)

    async def prepare_second_factor(
        self, sign_in_id: str, strategy: FactorStrategy, phone_number_id: Optional[str] = None
    ) -> SignIn:
        body = _strategy_params(strategy, phone_number_id=phone_number_id)
        payload = await self._api._send('POST', f'/client/sign_ins/{sign_in_id}/prepare_second_factor', json=body)
        return SignIn.model_validate(payload)

    async def attempt_second_factor(self, sign_in_id: str, strategy: FactorStrategy, code: str) -> SignIn:
        body = _strategy_params(strategy, code=code)
        payload = await self._api._send('POST', f'/client/sign_ins/{sign_in_id}/attempt_second_factor', json=body)
        return SignIn.model_validate(payload)

    async def reset_password(self, sign_in_id: str, password: str, sign_out_of_other_sessions: bool = False) -> SignIn:
        body = {'password': password, 'sign_out_of_other_sessions': sign_out_of_other_sessions}
        payload = await self._api._send('POST', f'/client/sign_ins/{sign_in_id}/reset_password', json=body)
        return SignIn.model_validate(payload)
