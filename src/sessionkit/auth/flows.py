"""Sign-in and sign-up state machines.

The server decides every status transition; these flows only perform one
round-trip per step and hand back the attempt the server published. Callers
must always continue from the most recently returned attempt.

When an attempt reaches ``complete`` the kit promotes the session it created to
the active session and drops the finished attempt from the Client.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..errors import UserCancelledError
from ..models import Factor, FactorStrategy, SignIn, SignInStatus, SignUp, SignUpStatus, StrategyKind
from . import factors

if TYPE_CHECKING:
    from ..kit import SessionKit

logger = logging.getLogger(__name__)


class CredentialProvider(ABC):
    """An external flow that obtains a credential from the user.

    Implementations wrap a platform passkey sheet or a social sign-in SDK and
    raise ``UserCancelledError`` when the user dismisses it.
    """

    @property
    @abstractmethod
    def strategy(self) -> FactorStrategy:
        """``passkey`` or an ``oauth_token_<provider>`` strategy."""
        pass

    @abstractmethod
    async def obtain_credential(self, challenge: Optional[str] = None) -> str:
        """Run the external flow.

        Args:
            challenge: Server challenge to sign (passkeys only)

        Returns:
            The credential: a serialized public key credential or an ID token

        Raises:
            UserCancelledError: If the user dismissed the flow
        """
        pass


class SignInFlow:
    """Drives sign-in attempts.

    Args:
        kit: The kit owning Client state

    Example:
        >>> sign_in = await kit.sign_in.create(identifier='user@example.com')
        >>> factor = kit.sign_in.starting_first_factor(sign_in)
        >>> sign_in = await kit.sign_in.prepare_first_factor(sign_in, factor.strategy)
        >>> sign_in = await kit.sign_in.attempt_first_factor(sign_in, factor.strategy, code='424242')
        >>> sign_in.status
        <SignInStatus.COMPLETE: 'complete'>
    """

    def __init__(self, kit: 'SessionKit'):
        self._kit = kit

    @property
    def _api(self):
        return self._kit.api

    async def create(
        self, identifier: Optional[str] = None, strategy: Optional[FactorStrategy] = None, **params: Any
    ) -> SignIn:
        """Start a sign-in attempt.

        Args:
            identifier: Email address, phone number or username
            strategy: Strategy to start with (e.g. passkey, an ID token provider)
            **params: Extra fields such as ``password`` or ``token``

        Returns:
            The new SignIn
        """
        body: Dict[str, Any] = {k: v for k, v in params.items() if v is not None}
        if identifier is not None:
            body['identifier'] = identifier
        if strategy is not None:
            body['strategy'] = strategy.raw_value
        return await self._settle(await self._api.sign_ins.create(body))

    async def prepare_first_factor(
        self, sign_in: SignIn, strategy: FactorStrategy, factor: Optional[Factor] = None
    ) -> SignIn:
        """Ask the server to prepare a first factor (e.g. send a code).

        The factor bound to the supplied identifier is used to address the code
        unless ``factor`` is given.
        """
        factor = factor or factors.factor_for_strategy(sign_in, strategy)
        return await self._settle(
            await self._api.sign_ins.prepare_first_factor(
                sign_in.id,
                strategy,
                email_address_id=factor.email_address_id if factor else None,
                phone_number_id=factor.phone_number_id if factor else None,
            )
        )

    async def attempt_first_factor(self, sign_in: SignIn, strategy: FactorStrategy, **credential: Any) -> SignIn:
        """Submit a first-factor credential (``code``, ``password``, ``public_key_credential`` or ``token``)."""
        return await self._settle(await self._api.sign_ins.attempt_first_factor(sign_in.id, strategy, **credential))

    async def prepare_second_factor(self, sign_in: SignIn, strategy: FactorStrategy) -> SignIn:
        factor = sign_in.identifying_second_factor(strategy)
        return await self._settle(
            await self._api.sign_ins.prepare_second_factor(
                sign_in.id, strategy, phone_number_id=factor.phone_number_id if factor else None
            )
        )

    async def attempt_second_factor(self, sign_in: SignIn, strategy: FactorStrategy, code: str) -> SignIn:
        return await self._settle(await self._api.sign_ins.attempt_second_factor(sign_in.id, strategy, code))

    async def reset_password(
        self, sign_in: SignIn, password: str, sign_out_of_other_sessions: bool = False
    ) -> SignIn:
        """Set a new password after a reset-password factor was verified."""
        return await self._settle(
            await self._api.sign_ins.reset_password(sign_in.id, password, sign_out_of_other_sessions)
        )

    async def reload(self, sign_in: SignIn, rotating_token_nonce: Optional[str] = None) -> SignIn:
        """Fetch the latest server state of ``sign_in``."""
        return await self._settle(await self._api.sign_ins.get(sign_in.id, rotating_token_nonce))

    async def authenticate_with_credential(self, provider: CredentialProvider) -> Optional[SignIn]:
        """Sign in through an external credential flow.

        Passkeys: a passkey sign-in is created, the server challenge is handed to
        the provider and the resulting credential attempted. ID tokens: the token
        from the provider is exchanged for a sign-in directly.

        Returns:
            The resulting SignIn, or None if the user cancelled

        Raises:
            ValueError: If the provider's strategy is neither passkey nor ID token
            APIResponseError: If the server rejects the credential
        """
        strategy = provider.strategy
        try:
            if strategy.kind is StrategyKind.PASSKEY:
                sign_in = await self.create(strategy=strategy)
                verification = sign_in.first_factor_verification
                credential = await provider.obtain_credential(verification.nonce if verification else None)
                return await self.attempt_first_factor(sign_in, strategy, public_key_credential=credential)

            if strategy.kind is StrategyKind.ID_TOKEN:
                token = await provider.obtain_credential()
                return await self.create(strategy=strategy, token=token)
        except UserCancelledError:
            logger.debug(f'User cancelled {strategy.raw_value} sign-in')
            return None

        raise ValueError(f'Unsupported credential strategy: {strategy.raw_value}')

    def starting_first_factor(self, sign_in: SignIn) -> Optional[Factor]:
        """The factor to present first, per the instance's preferred strategy."""
        return factors.starting_first_factor(sign_in, self._kit.environment.preferred_sign_in_strategy)

    def starting_second_factor(self, sign_in: SignIn) -> Optional[Factor]:
        return factors.starting_second_factor(sign_in)

    def alternative_first_factors(self, sign_in: SignIn, current: Optional[Factor] = None) -> List[Factor]:
        return factors.alternative_first_factors(sign_in, current, self._kit.environment.preferred_sign_in_strategy)

    def reset_password_factor(self, sign_in: SignIn) -> Optional[Factor]:
        return factors.reset_password_factor(sign_in)

    async def _settle(self, sign_in: SignIn) -> SignIn:
        if sign_in.status is SignInStatus.COMPLETE:
            await self._kit._promote(sign_in, sign_in.created_session_id, sign_in.identifier)
        elif sign_in.status is SignInStatus.ABANDONED:
            self._kit._discard_attempt(sign_in)
        return sign_in


class SignUpFlow:
    """Drives sign-up attempts.

    Args:
        kit: The kit owning Client state
    """

    def __init__(self, kit: 'SessionKit'):
        self._kit = kit

    @property
    def _api(self):
        return self._kit.api

    async def create(self, **fields: Any) -> SignUp:
        """Start a sign-up attempt (``email_address``, ``phone_number``, ``username``, ``password``...)."""
        body = {k: v for k, v in fields.items() if v is not None}
        return await self._settle(await self._api.sign_ups.create(body))

    async def update(self, sign_up: SignUp, **fields: Any) -> SignUp:
        body = {k: v for k, v in fields.items() if v is not None}
        return await self._settle(await self._api.sign_ups.update(sign_up.id, body))

    async def prepare_verification(self, sign_up: SignUp, strategy: FactorStrategy) -> SignUp:
        return await self._settle(await self._api.sign_ups.prepare_verification(sign_up.id, strategy))

    async def attempt_verification(self, sign_up: SignUp, strategy: FactorStrategy, code: str) -> SignUp:
        return await self._settle(await self._api.sign_ups.attempt_verification(sign_up.id, strategy, code))

    async def reload(self, sign_up: SignUp) -> SignUp:
        return await self._settle(await self._api.sign_ups.get(sign_up.id))

    async def _settle(self, sign_up: SignUp) -> SignUp:
        if sign_up.status is SignUpStatus.COMPLETE:
            await self._kit._promote(sign_up, sign_up.created_session_id, sign_up.identifier)
        elif sign_up.status is SignUpStatus.ABANDONED:
            self._kit._discard_attempt(sign_up)
        return sign_up
